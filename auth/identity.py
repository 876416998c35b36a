"""
Identity provider adapter.

Admin identities and their claims live in Supabase Auth; claims are kept
in each user's app_metadata, which only the service role can write.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client as SupabaseClientType
from supabase import create_client

from models.admin import AdminClaims
from utils.exceptions import AuthError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="auth.log")

# One message for every sign-in failure so callers cannot probe accounts
INVALID_CREDENTIALS = "Invalid email or password"


class IdentityProvider(ABC):
    """Operations the booking system needs from the identity service."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Tuple[AdminClaims, str]:
        """Return the signed-in user's claims and access token."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the provider session."""

    @abstractmethod
    async def verify_token(self, token: str) -> AdminClaims:
        """Verify an access token and return the caller's claims."""

    @abstractmethod
    async def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        """Replace a user's custom claims."""

    @abstractmethod
    async def list_users(self) -> List[AdminClaims]:
        """Every user with their claims."""


class SupabaseIdentityProvider(IdentityProvider):
    """Supabase Auth (GoTrue) implementation."""

    def __init__(
        self,
        supabase_url: Optional[str],
        supabase_key: Optional[str],
        client: Optional[SupabaseClientType] = None,
    ):
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self._client = client

    @property
    def client(self) -> SupabaseClientType:
        if self._client is None:
            if not (self.supabase_url and self.supabase_key):
                raise AuthError("Authentication is not configured")
            self._client = create_client(self.supabase_url, self.supabase_key)
        return self._client

    @staticmethod
    def _claims(user: Any) -> AdminClaims:
        return AdminClaims.from_metadata(
            str(user.id), getattr(user, "email", None), getattr(user, "app_metadata", None)
        )

    async def sign_in(self, email: str, password: str) -> Tuple[AdminClaims, str]:
        try:
            response = await asyncio.to_thread(
                self.client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except Exception as e:
            logger.warning(f"Sign-in failed for {email}: {e}")
            raise AuthError(INVALID_CREDENTIALS) from e

        if not response or not response.user or not response.session:
            raise AuthError(INVALID_CREDENTIALS)
        return self._claims(response.user), response.session.access_token

    async def sign_out(self) -> None:
        await asyncio.to_thread(self.client.auth.sign_out)

    async def verify_token(self, token: str) -> AdminClaims:
        try:
            response = await asyncio.to_thread(self.client.auth.get_user, token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthError("Authentication required") from e

        if not response or not response.user:
            raise AuthError("Authentication required")
        return self._claims(response.user)

    async def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        await asyncio.to_thread(
            self.client.auth.admin.update_user_by_id,
            uid,
            {"app_metadata": claims},
        )

    async def list_users(self) -> List[AdminClaims]:
        users = await asyncio.to_thread(self.client.auth.admin.list_users)
        return [self._claims(user) for user in users]
