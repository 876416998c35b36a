"""
Server-side authorization.

Every privileged request re-verifies the caller's token with the identity
provider; claims cached by a dashboard are never trusted.
"""

from typing import Iterable, Optional

from auth.identity import IdentityProvider
from models.admin import AdminClaims, AdminRole, Permission
from utils.exceptions import AuthError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="auth.log")

INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


def has_permission(claims: Optional[AdminClaims], permission: Permission) -> bool:
    """Set-membership test against the caller's claims."""
    if claims is None or not claims.admin:
        return False
    return Permission(permission).value in claims.permissions


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an 'Authorization: Bearer ...' header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthorizationGate:
    """Verifies tokens and checks role/permission claims."""

    def __init__(
        self,
        identity: IdentityProvider,
        super_admin_uids: Iterable[str] = (),
        emergency_team_uids: Iterable[str] = (),
    ):
        self.identity = identity
        self.super_admin_uids = set(super_admin_uids)
        self.emergency_team_uids = set(emergency_team_uids)

    async def authenticate(self, token: Optional[str]) -> AdminClaims:
        if not token:
            raise AuthError("Authentication required")
        return await self.identity.verify_token(token)

    async def require_admin(self, token: Optional[str]) -> AdminClaims:
        claims = await self.authenticate(token)
        if not claims.admin:
            logger.warning(f"Non-admin {claims.uid} denied")
            raise AuthError(INSUFFICIENT_PERMISSIONS)
        return claims

    async def require_permission(self, token: Optional[str], permission: Permission) -> AdminClaims:
        claims = await self.authenticate(token)
        if not has_permission(claims, permission):
            logger.warning(f"User {claims.uid} denied {Permission(permission).value}")
            raise AuthError(INSUFFICIENT_PERMISSIONS)
        return claims

    async def require_super_admin(self, token: Optional[str]) -> AdminClaims:
        claims = await self.require_admin(token)
        if claims.role != AdminRole.SUPER_ADMIN:
            raise AuthError(INSUFFICIENT_PERMISSIONS)
        # When a designated list is configured the uid must be on it too
        if self.super_admin_uids and claims.uid not in self.super_admin_uids:
            logger.warning(f"Super admin claim for undesignated uid {claims.uid}")
            raise AuthError(INSUFFICIENT_PERMISSIONS)
        return claims

    async def require_emergency_access(self, token: Optional[str]) -> AdminClaims:
        claims = await self.require_super_admin(token)
        if not claims.emergency_access or claims.uid not in self.emergency_team_uids:
            logger.warning(f"Emergency action denied for {claims.uid}")
            raise AuthError(INSUFFICIENT_PERMISSIONS)
        return claims
