"""
Emergency switch that pauses automatic payment link generation.

Disabling payments and requesting a backup are rate limited per performer
against the audit log (EMERGENCY_MAX_CALLS_PER_HOUR / _PER_DAY).
"""

from datetime import timedelta
from typing import Any, Dict

from db.store import BookingStore
from utils.constants import (
    EMERGENCY_MAX_CALLS_PER_DAY,
    EMERGENCY_MAX_CALLS_PER_HOUR,
    PAYMENTS_STATUS_KEY,
)
from utils.datetime_utils import utc_now
from utils.exceptions import RateLimitExceededError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="payments.log")

PAYMENTS_DISABLED_ACTION = "payments_disabled"
BACKUP_ACTION = "emergency_backup_created"


class PaymentsSwitch:
    """Reads and flips the payments_disabled flag in system status."""

    def __init__(
        self,
        store: BookingStore,
        max_calls_per_hour: int = EMERGENCY_MAX_CALLS_PER_HOUR,
        max_calls_per_day: int = EMERGENCY_MAX_CALLS_PER_DAY,
    ):
        self.store = store
        self.max_calls_per_hour = max_calls_per_hour
        self.max_calls_per_day = max_calls_per_day

    async def status(self) -> Dict[str, Any]:
        record = await self.store.get_system_status(PAYMENTS_STATUS_KEY)
        return {
            "payments_disabled": bool(record.get("payments_disabled", False)),
            "reason": record.get("reason"),
            "updated_by": record.get("updated_by"),
            "updated_at": record.get("updated_at"),
        }

    async def is_paused(self) -> bool:
        return (await self.status())["payments_disabled"]

    async def check_rate_limit(self, performed_by: str, action: str) -> None:
        """
        Raise RateLimitExceededError when the performer already ran the
        action too often in the last hour or day.
        """
        now = utc_now()
        windows = (
            (timedelta(hours=1), self.max_calls_per_hour),
            (timedelta(days=1), self.max_calls_per_day),
        )
        for window, limit in windows:
            calls = await self.store.count_audit_logs(action, performed_by, now - window)
            if calls >= limit:
                logger.warning(
                    f"Emergency rate limit hit: {performed_by} ran {action} "
                    f"{calls} times in {window}"
                )
                raise RateLimitExceededError("Emergency function rate limit exceeded")

    async def disable(self, performed_by: str, reason: str) -> Dict[str, Any]:
        await self.check_rate_limit(performed_by, PAYMENTS_DISABLED_ACTION)

        await self.store.set_system_status(
            PAYMENTS_STATUS_KEY,
            {
                "payments_disabled": True,
                "reason": reason,
                "updated_by": performed_by,
                "updated_at": utc_now(),
            },
        )
        await self.store.add_audit_log(
            {"action": PAYMENTS_DISABLED_ACTION, "performed_by": performed_by, "reason": reason}
        )
        logger.warning(f"Payments disabled by {performed_by}: {reason}")
        return await self.status()

    async def enable(self, performed_by: str, reason: str = "") -> Dict[str, Any]:
        await self.store.set_system_status(
            PAYMENTS_STATUS_KEY,
            {
                "payments_disabled": False,
                "reason": reason or None,
                "updated_by": performed_by,
                "updated_at": utc_now(),
            },
        )
        await self.store.add_audit_log(
            {"action": "payments_enabled", "performed_by": performed_by, "reason": reason}
        )
        logger.info(f"Payments re-enabled by {performed_by}")
        return await self.status()

    async def create_backup(
        self,
        performed_by: str,
        incident_id: str,
        severity: str,
        justification: str,
    ) -> Dict[str, Any]:
        """Record an emergency backup request for the operators to act on."""
        await self.check_rate_limit(performed_by, BACKUP_ACTION)

        now = utc_now()
        backup_id = f"emergency_backup_{int(now.timestamp() * 1000)}"
        record = {
            "backup_id": backup_id,
            "incident_id": incident_id,
            "severity": severity,
            "justification": justification,
            "created_by": performed_by,
            "created_at": now,
            "status": "in_progress",
        }
        await self.store.add_emergency_backup(record)
        await self.store.add_audit_log(
            {
                "action": BACKUP_ACTION,
                "performed_by": performed_by,
                "incident_id": incident_id,
                "backup_id": backup_id,
                "severity": severity,
                "reason": justification,
            }
        )
        logger.warning(f"Emergency backup {backup_id} requested by {performed_by} ({incident_id})")
        return record
