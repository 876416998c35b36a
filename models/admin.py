"""Admin roles, permissions and identity claims."""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AdminRole(str, Enum):
    """Admin roles, highest privilege first."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    VIEWER = "viewer"


class Permission(str, Enum):
    """Permission tags carried in admin claims."""

    # Booking management
    VIEW_BOOKINGS = "view_bookings"
    EDIT_BOOKINGS = "edit_bookings"
    DELETE_BOOKINGS = "delete_bookings"
    CONFIRM_BOOKINGS = "confirm_bookings"

    # Payment management
    VIEW_PAYMENTS = "view_payments"
    PROCESS_PAYMENTS = "process_payments"
    GENERATE_PAYMENT_LINKS = "generate_payment_links"

    # User management
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"
    ASSIGN_ROLES = "assign_roles"

    # System management
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_SYSTEM = "manage_system"
    VIEW_LOGS = "view_logs"


ROLE_PERMISSIONS: Dict[AdminRole, FrozenSet[Permission]] = {
    AdminRole.SUPER_ADMIN: frozenset(Permission),
    AdminRole.ADMIN: frozenset(
        {
            Permission.VIEW_BOOKINGS,
            Permission.EDIT_BOOKINGS,
            Permission.CONFIRM_BOOKINGS,
            Permission.VIEW_PAYMENTS,
            Permission.PROCESS_PAYMENTS,
            Permission.GENERATE_PAYMENT_LINKS,
            Permission.VIEW_USERS,
            Permission.VIEW_ANALYTICS,
        }
    ),
    AdminRole.MANAGER: frozenset(
        {
            Permission.VIEW_BOOKINGS,
            Permission.EDIT_BOOKINGS,
            Permission.CONFIRM_BOOKINGS,
            Permission.VIEW_PAYMENTS,
            Permission.VIEW_ANALYTICS,
        }
    ),
    AdminRole.VIEWER: frozenset(
        {
            Permission.VIEW_BOOKINGS,
            Permission.VIEW_PAYMENTS,
            Permission.VIEW_ANALYTICS,
        }
    ),
}


def permissions_for_role(role: AdminRole) -> List[str]:
    """Sorted permission tags for a role, as written into claims."""
    return sorted(p.value for p in ROLE_PERMISSIONS[role])


class AdminClaims(BaseModel):
    """Identity plus custom claims for an authenticated user."""

    uid: str
    email: Optional[str] = None
    admin: bool = False
    role: Optional[AdminRole] = None
    permissions: List[str] = Field(default_factory=list)
    emergency_access: bool = False

    @classmethod
    def from_metadata(
        cls, uid: str, email: Optional[str], metadata: Optional[dict]
    ) -> "AdminClaims":
        """Build claims from identity provider app metadata."""
        metadata = metadata or {}
        role = metadata.get("role")
        try:
            parsed_role = AdminRole(role) if role else None
        except ValueError:
            parsed_role = None
        return cls(
            uid=uid,
            email=email,
            admin=bool(metadata.get("admin", False)),
            role=parsed_role,
            permissions=list(metadata.get("permissions") or []),
            emergency_access=bool(metadata.get("emergency_access", False)),
        )

    def to_metadata(self) -> dict:
        return {
            "admin": self.admin,
            "role": self.role.value if self.role else None,
            "permissions": list(self.permissions),
            "emergency_access": self.emergency_access,
        }


class RoleRequestStatus(str, Enum):
    PENDING = "pending_super_admin_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class RoleRequest(BaseModel):
    """
    A role assignment waiting for a super admin decision.

    Admins file these; only a designated super admin can approve one, and
    approval is what writes the claims.
    """

    id: Optional[str] = None
    target_uid: str
    role: AdminRole
    business_justification: str
    manager_approval: bool = False
    requested_by: str
    status: RoleRequestStatus = RoleRequestStatus.PENDING
    created_at: datetime
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    decision_reason: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)
