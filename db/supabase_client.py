"""
Supabase booking store.

Tables:
- bookings: one row per booking (columns match models.booking.Booking)
- admin_logs: append-only audit trail for privileged actions
- system_status: keyed operational flags (e.g. the emergency payments switch)
- pending_role_assignments: role requests awaiting a super admin decision
- emergency_backups: emergency backup requests
- alerts: monitoring alerts such as a low payment success rate

Row Level Security (RLS) Notes:
==============================
This store uses the service_role key, which bypasses RLS. The public web
form only ever reaches bookings through the API server, so RLS should deny
anonymous access to every table:

CREATE POLICY "No anonymous access" ON bookings FOR ALL USING (false);
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from supabase import Client as SupabaseClientType
from supabase import create_client

from db.store import BookingStore
from models.admin import RoleRequest, RoleRequestStatus
from models.booking import Booking, BookingStatus
from utils.constants import (
    ADMIN_LOGS_COLLECTION,
    ALERTS_COLLECTION,
    BOOKINGS_COLLECTION,
    EMERGENCY_BACKUPS_COLLECTION,
    PENDING_ROLE_ASSIGNMENTS_COLLECTION,
    SYSTEM_STATUS_COLLECTION,
)
from utils.datetime_utils import parse_iso_datetime, to_iso_string, utc_now
from utils.exceptions import BookingNotFoundError, RoleRequestNotFoundError, StoreError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="store.log")

_DATETIME_FIELDS = (
    "booking_date",
    "rental_start",
    "rental_end",
    "paid_at",
    "owner_notified_at",
    "created_at",
    "updated_at",
)


class SupabaseBookingStore(BookingStore):
    """
    Supabase (PostgREST) booking store.

    The supabase client is synchronous; every request runs in a worker
    thread so handlers never block the event loop.
    """

    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[SupabaseClientType] = None):
        super().__init__()
        self.client: SupabaseClientType = client or create_client(supabase_url, supabase_key)

    async def _execute(self, query):
        return await asyncio.to_thread(query.execute)

    # ========== Booking Operations ==========

    async def insert_booking(self, data: Dict[str, Any]) -> str:
        try:
            response = await self._execute(
                self.client.table(BOOKINGS_COLLECTION).insert(self._serialize(data))
            )
        except Exception as e:
            raise StoreError(f"Failed to create booking: {e}") from e

        if not response.data:
            raise StoreError("Failed to create booking: no data returned")

        self._notify_change()
        return str(response.data[0]["id"])

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        try:
            response = await self._execute(
                self.client.table(BOOKINGS_COLLECTION).select("*").eq("id", booking_id)
            )
        except Exception as e:
            raise StoreError(f"Failed to get booking: {e}") from e

        if response.data:
            return self._parse_booking(response.data[0])
        return None

    async def update_booking(
        self,
        booking_id: str,
        fields: Dict[str, Any],
        clear_fields: Iterable[str] = (),
    ) -> Booking:
        update_data = self._serialize(fields)
        # A cleared column is stored as NULL
        for field in clear_fields:
            update_data[field] = None

        try:
            response = await self._execute(
                self.client.table(BOOKINGS_COLLECTION)
                .update(update_data)
                .eq("id", booking_id)
            )
        except Exception as e:
            raise StoreError(f"Failed to update booking: {e}") from e

        if not response.data:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        self._notify_change()
        return self._parse_booking(response.data[0])

    async def query_bookings(
        self,
        status: Optional[BookingStatus] = None,
        created_since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Booking]:
        try:
            query = self.client.table(BOOKINGS_COLLECTION).select("*")

            if status is not None:
                query = query.eq("status", BookingStatus(status).value)
            if created_since is not None:
                query = query.gte("created_at", to_iso_string(created_since))

            query = query.order("created_at", desc=True)
            if limit is not None:
                query = query.limit(limit)

            response = await self._execute(query)
        except Exception as e:
            raise StoreError(f"Failed to query bookings: {e}") from e

        return [self._parse_booking(item) for item in response.data or []]

    # ========== Admin Records ==========

    async def add_audit_log(self, entry: Dict[str, Any]) -> None:
        data = self._serialize({**entry, "timestamp": utc_now()})
        try:
            await self._execute(self.client.table(ADMIN_LOGS_COLLECTION).insert(data))
        except Exception as e:
            raise StoreError(f"Failed to write audit log: {e}") from e

    async def get_system_status(self, key: str) -> Dict[str, Any]:
        try:
            response = await self._execute(
                self.client.table(SYSTEM_STATUS_COLLECTION).select("*").eq("key", key)
            )
        except Exception as e:
            raise StoreError(f"Failed to read system status: {e}") from e

        if not response.data:
            return {}
        record = dict(response.data[0])
        record.pop("key", None)
        return record

    async def set_system_status(self, key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = self._serialize({"key": key, **fields})
        try:
            response = await self._execute(
                self.client.table(SYSTEM_STATUS_COLLECTION).upsert(data)
            )
        except Exception as e:
            raise StoreError(f"Failed to update system status: {e}") from e

        record = dict(response.data[0]) if response.data else dict(data)
        record.pop("key", None)
        return record

    async def count_audit_logs(self, action: str, performed_by: str, since: datetime) -> int:
        try:
            response = await self._execute(
                self.client.table(ADMIN_LOGS_COLLECTION)
                .select("id", count="exact")
                .eq("action", action)
                .eq("performed_by", performed_by)
                .gte("timestamp", to_iso_string(since))
            )
        except Exception as e:
            raise StoreError(f"Failed to count audit logs: {e}") from e

        if response.count is not None:
            return response.count
        return len(response.data or [])

    async def add_alert(self, entry: Dict[str, Any]) -> None:
        data = self._serialize({**entry, "timestamp": utc_now()})
        try:
            await self._execute(self.client.table(ALERTS_COLLECTION).insert(data))
        except Exception as e:
            raise StoreError(f"Failed to write alert: {e}") from e

    async def add_emergency_backup(self, record: Dict[str, Any]) -> None:
        try:
            await self._execute(
                self.client.table(EMERGENCY_BACKUPS_COLLECTION).insert(self._serialize(record))
            )
        except Exception as e:
            raise StoreError(f"Failed to record emergency backup: {e}") from e

    # ========== Role Requests ==========

    async def insert_role_request(self, data: Dict[str, Any]) -> str:
        try:
            response = await self._execute(
                self.client.table(PENDING_ROLE_ASSIGNMENTS_COLLECTION).insert(self._serialize(data))
            )
        except Exception as e:
            raise StoreError(f"Failed to create role request: {e}") from e

        if not response.data:
            raise StoreError("Failed to create role request: no data returned")
        return str(response.data[0]["id"])

    async def get_role_request(self, request_id: str) -> Optional[RoleRequest]:
        try:
            response = await self._execute(
                self.client.table(PENDING_ROLE_ASSIGNMENTS_COLLECTION)
                .select("*")
                .eq("id", request_id)
            )
        except Exception as e:
            raise StoreError(f"Failed to get role request: {e}") from e

        if response.data:
            return self._parse_role_request(response.data[0])
        return None

    async def update_role_request(self, request_id: str, fields: Dict[str, Any]) -> RoleRequest:
        try:
            response = await self._execute(
                self.client.table(PENDING_ROLE_ASSIGNMENTS_COLLECTION)
                .update(self._serialize(fields))
                .eq("id", request_id)
            )
        except Exception as e:
            raise StoreError(f"Failed to update role request: {e}") from e

        if not response.data:
            raise RoleRequestNotFoundError(f"Role request {request_id} not found")
        return self._parse_role_request(response.data[0])

    async def query_role_requests(
        self, status: Optional[RoleRequestStatus] = None
    ) -> List[RoleRequest]:
        try:
            query = self.client.table(PENDING_ROLE_ASSIGNMENTS_COLLECTION).select("*")
            if status is not None:
                query = query.eq("status", RoleRequestStatus(status).value)
            response = await self._execute(query.order("created_at", desc=True))
        except Exception as e:
            raise StoreError(f"Failed to query role requests: {e}") from e

        return [self._parse_role_request(item) for item in response.data or []]

    # ========== Helper Methods ==========

    @staticmethod
    def _serialize(data: Dict[str, Any]) -> Dict[str, Any]:
        """Convert datetimes and enums to JSON-friendly values."""
        result = {}
        for key, value in data.items():
            if isinstance(value, datetime):
                value = to_iso_string(value)
            elif isinstance(value, Enum):
                value = value.value
            result[key] = value
        return result

    def _parse_booking(self, item: dict) -> Booking:
        """
        Parse booking data from database response.

        NULL columns are dropped so they read as absent fields.
        """
        item = {k: v for k, v in item.items() if v is not None}
        for field in _DATETIME_FIELDS:
            if isinstance(item.get(field), str):
                item[field] = parse_iso_datetime(item[field])
        item["id"] = str(item["id"])
        return Booking(**item)

    def _parse_role_request(self, item: dict) -> RoleRequest:
        item = {k: v for k, v in item.items() if v is not None}
        for field in ("created_at", "decided_at"):
            if isinstance(item.get(field), str):
                item[field] = parse_iso_datetime(item[field])
        item["id"] = str(item["id"])
        return RoleRequest(**item)
