"""
Admin dashboard session.

current_user and is_authenticated are pushed to watchers whenever the
session changes; nothing polls the identity provider.
"""

from typing import Callable, List, Optional

from auth.identity import IdentityProvider
from models.admin import AdminClaims
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="auth.log")

UserWatcher = Callable[[Optional[AdminClaims]], None]
Unsubscribe = Callable[[], None]


class AdminSession:
    """Signed-in admin state for one dashboard client."""

    def __init__(self, identity: IdentityProvider):
        self.identity = identity
        self._user: Optional[AdminClaims] = None
        self._token: Optional[str] = None
        self._watchers: List[UserWatcher] = []

    @property
    def current_user(self) -> Optional[AdminClaims]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def access_token(self) -> Optional[str]:
        return self._token

    def watch(self, callback: UserWatcher) -> Unsubscribe:
        """
        Observe current_user. The callback receives the current value
        immediately and then every change until unsubscribed.
        """
        self._watchers.append(callback)
        callback(self._user)

        def unsubscribe() -> None:
            if callback in self._watchers:
                self._watchers.remove(callback)

        return unsubscribe

    def watch_authenticated(self, callback: Callable[[bool], None]) -> Unsubscribe:
        """Observe is_authenticated."""
        return self.watch(lambda user: callback(user is not None))

    async def sign_in(self, email: str, password: str) -> AdminClaims:
        """
        Raises:
            AuthError: On bad credentials (generic message)
        """
        user, token = await self.identity.sign_in(email, password)
        self._token = token
        self._set_user(user)
        logger.info(f"Admin {user.uid} signed in")
        return user

    async def sign_out(self) -> None:
        try:
            await self.identity.sign_out()
        finally:
            self._token = None
            self._set_user(None)

    def _set_user(self, user: Optional[AdminClaims]) -> None:
        self._user = user
        for watcher in list(self._watchers):
            watcher(user)
