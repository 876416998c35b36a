"""
Admin role assignment, audited in admin_logs.

Super admins assign roles directly. Admins can instead file a request that
a designated super admin approves or rejects; approval writes the claims.
"""

from typing import Any, Dict, List, Optional

from auth.gate import AuthorizationGate
from db.store import BookingStore
from models.admin import (
    AdminClaims,
    AdminRole,
    RoleRequest,
    RoleRequestStatus,
    permissions_for_role,
)
from utils.datetime_utils import utc_now
from utils.exceptions import AuthError, RoleRequestNotFoundError, ValidationError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="auth.log")

# Roles allowed to file role assignment requests
REQUESTER_ROLES = (AdminRole.SUPER_ADMIN, AdminRole.ADMIN)
DECISIONS = ("approve", "reject")


def _parse_role(role: str) -> AdminRole:
    try:
        return AdminRole(role)
    except ValueError as e:
        raise ValidationError("Invalid role specified") from e


class RoleManager:
    """Privileged claim management. Callers are re-verified on every call."""

    def __init__(self, gate: AuthorizationGate, store: BookingStore):
        self.gate = gate
        self.identity = gate.identity
        self.store = store

    async def assign_role(self, token: Optional[str], target_uid: str, role: str) -> Dict[str, Any]:
        if not target_uid or not role:
            raise ValidationError("targetUid and role are required")
        parsed_role = _parse_role(role)

        caller = await self.gate.require_super_admin(token)

        await self._write_role_claims(target_uid, parsed_role)
        await self.store.add_audit_log(
            {
                "action": "role_assigned",
                "target_uid": target_uid,
                "role": parsed_role.value,
                "performed_by": caller.uid,
            }
        )
        logger.info(f"Role {parsed_role.value} assigned to {target_uid} by {caller.uid}")
        return {"success": True, "message": f"Role {parsed_role.value} assigned successfully"}

    async def remove_role(self, token: Optional[str], target_uid: str) -> Dict[str, Any]:
        if not target_uid:
            raise ValidationError("targetUid is required")

        caller = await self.gate.require_super_admin(token)

        await self.identity.set_claims(
            target_uid, AdminClaims(uid=target_uid).to_metadata()
        )
        await self.store.add_audit_log(
            {"action": "role_removed", "target_uid": target_uid, "performed_by": caller.uid}
        )
        logger.info(f"Admin role removed from {target_uid} by {caller.uid}")
        return {"success": True, "message": "Admin role removed successfully"}

    async def get_permissions(self, token: Optional[str]) -> AdminClaims:
        return await self.gate.authenticate(token)

    async def list_admin_users(self, token: Optional[str]) -> List[AdminClaims]:
        await self.gate.require_admin(token)
        users = await self.identity.list_users()
        return [user for user in users if user.admin]

    # ========== Role Requests ==========

    async def request_role_assignment(
        self,
        token: Optional[str],
        target_uid: str,
        role: str,
        business_justification: str,
        manager_approval: bool = False,
    ) -> Dict[str, Any]:
        if not target_uid or not role or not business_justification:
            raise ValidationError("targetUid, role and businessJustification are required")
        parsed_role = _parse_role(role)

        caller = await self.gate.require_admin(token)
        if caller.role not in REQUESTER_ROLES:
            logger.warning(f"Role request denied for {caller.uid} ({caller.role})")
            raise AuthError("Insufficient permissions to request role assignments")

        request_id = await self.store.insert_role_request(
            {
                "target_uid": target_uid,
                "role": parsed_role.value,
                "business_justification": business_justification,
                "manager_approval": bool(manager_approval),
                "requested_by": caller.uid,
                "status": RoleRequestStatus.PENDING.value,
                "created_at": utc_now(),
            }
        )
        await self.store.add_audit_log(
            {
                "action": "role_assignment_requested",
                "request_id": request_id,
                "target_uid": target_uid,
                "role": parsed_role.value,
                "reason": business_justification,
                "performed_by": caller.uid,
            }
        )
        logger.info(
            f"Role request {request_id}: {parsed_role.value} for {target_uid} "
            f"requested by {caller.uid}"
        )
        return {
            "success": True,
            "requestId": request_id,
            "message": "Role assignment request submitted for Super Admin approval",
        }

    async def approve_role_assignment(
        self,
        token: Optional[str],
        request_id: str,
        action: str,
        reason: str = "",
    ) -> Dict[str, Any]:
        """
        Approve or reject a pending role request.

        Only a designated super admin may decide. A request can be decided
        once; approving writes the requested role's claims for the target.
        """
        if not request_id:
            raise ValidationError("requestId is required")
        if action not in DECISIONS:
            raise ValidationError("Invalid action. Must be 'approve' or 'reject'")

        caller = await self.gate.require_super_admin(token)

        request = await self.store.get_role_request(request_id)
        if request is None:
            raise RoleRequestNotFoundError(f"Role request {request_id} not found")
        if request.status != RoleRequestStatus.PENDING.value:
            raise ValidationError("Request is not pending approval")

        role = AdminRole(request.role)
        if action == "approve":
            await self._write_role_claims(request.target_uid, role)
            status = RoleRequestStatus.APPROVED
            reason = reason or "Approved by Super Admin"
        else:
            status = RoleRequestStatus.REJECTED
            reason = reason or "Rejected by Super Admin"

        await self.store.update_role_request(
            request_id,
            {
                "status": status.value,
                "decided_by": caller.uid,
                "decided_at": utc_now(),
                "decision_reason": reason,
            },
        )
        await self.store.add_audit_log(
            {
                "action": f"role_assignment_{status.value}",
                "request_id": request_id,
                "target_uid": request.target_uid,
                "role": role.value,
                "reason": reason,
                "performed_by": caller.uid,
            }
        )
        logger.info(f"Role request {request_id} {status.value} by {caller.uid}")

        if status == RoleRequestStatus.APPROVED:
            message = "Role assignment approved and applied"
        else:
            message = "Role assignment rejected"
        return {"success": True, "message": message}

    async def get_pending_role_requests(self, token: Optional[str]) -> List[RoleRequest]:
        await self.gate.require_super_admin(token)
        return await self.store.query_role_requests(RoleRequestStatus.PENDING)

    async def _write_role_claims(self, target_uid: str, role: AdminRole) -> None:
        claims = AdminClaims(
            uid=target_uid,
            admin=True,
            role=role,
            permissions=permissions_for_role(role),
        )
        await self.identity.set_claims(target_uid, claims.to_metadata())
