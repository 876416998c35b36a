"""Admin authentication and authorization."""

from .gate import AuthorizationGate, bearer_token, has_permission
from .identity import IdentityProvider, SupabaseIdentityProvider
from .roles import RoleManager
from .session import AdminSession

__all__ = [
    "AdminSession",
    "AuthorizationGate",
    "IdentityProvider",
    "RoleManager",
    "SupabaseIdentityProvider",
    "bearer_token",
    "has_permission",
]
