"""
Pytest configuration and shared fixtures.

Components are wired with build_services() using in-memory fakes for the
identity provider, payment provider and notification channels.
"""

import json
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from assistant.travel import TravelAssistant
from auth.identity import IdentityProvider
from config import Settings
from container import build_services
from db.memory_store import InMemoryBookingStore
from models.admin import AdminClaims, AdminRole, permissions_for_role
from notifications.channels import NotificationChannel, OwnerMessage
from payments.stripe import PaymentLinkRequest, PaymentProvider
from utils.exceptions import AuthError, PaymentProviderError, SignatureError

VALID_SIGNATURE = "t=1234567890,v1=valid"


class FakeIdentityProvider(IdentityProvider):
    """Token -> claims map standing in for Supabase Auth."""

    def __init__(self) -> None:
        self.tokens: Dict[str, AdminClaims] = {}
        self.passwords: Dict[str, str] = {}
        self.claims_written: List[tuple] = []
        self.signed_out = False

    def add_user(
        self,
        token: str,
        uid: str,
        role: Optional[AdminRole] = None,
        emergency_access: bool = False,
        email: Optional[str] = None,
    ) -> AdminClaims:
        claims = AdminClaims(
            uid=uid,
            email=email,
            admin=role is not None,
            role=role,
            permissions=permissions_for_role(role) if role else [],
            emergency_access=emergency_access,
        )
        self.tokens[token] = claims
        return claims

    async def sign_in(self, email: str, password: str):
        for token, claims in self.tokens.items():
            if claims.email == email and self.passwords.get(email) == password:
                return claims, token
        raise AuthError("Invalid email or password")

    async def sign_out(self) -> None:
        self.signed_out = True

    async def verify_token(self, token: str) -> AdminClaims:
        if token not in self.tokens:
            raise AuthError("Authentication required")
        return self.tokens[token]

    async def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        self.claims_written.append((uid, claims))
        for token, existing in self.tokens.items():
            if existing.uid == uid:
                self.tokens[token] = AdminClaims.from_metadata(uid, existing.email, claims)

    async def list_users(self) -> List[AdminClaims]:
        return list(self.tokens.values())


class FakePaymentProvider(PaymentProvider):
    """Records payment link requests; accepts only VALID_SIGNATURE."""

    def __init__(self, configured: bool = True, fail: bool = False) -> None:
        self._configured = configured
        self.fail = fail
        self.requests: List[PaymentLinkRequest] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def create_payment_link(self, request: PaymentLinkRequest) -> str:
        self.requests.append(request)
        if self.fail:
            raise PaymentProviderError("Payment processing error: card_declined")
        return f"https://checkout.stripe.test/{request.booking_id}"

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if signature != VALID_SIGNATURE:
            raise SignatureError("Invalid signature")
        return json.loads(payload.decode("utf-8"))


class FakeChannel(NotificationChannel):
    def __init__(self, name: str, configured: bool = True, fail: bool = False) -> None:
        self.name = name
        self._configured = configured
        self.fail = fail
        self.messages: List[OwnerMessage] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def _deliver(self, message: OwnerMessage) -> None:
        if self.fail:
            raise ConnectionError(f"{self.name} unreachable")
        self.messages.append(message)


@pytest.fixture
def settings():
    return Settings(
        store_backend="memory",
        environment="test",
        supabase_url=None,
        supabase_key=None,
        stripe_secret_key=None,
        stripe_webhook_secret=None,
        resend_api_key=None,
        telegram_bot_token=None,
        chat_webhook_url=None,
        claude_api_key=None,
        super_admin_uids="root-uid",
        emergency_response_team="root-uid",
    )


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def identity():
    provider = FakeIdentityProvider()
    provider.add_user("root-token", "root-uid", AdminRole.SUPER_ADMIN, emergency_access=True)
    provider.add_user("admin-token", "admin-uid", AdminRole.ADMIN)
    provider.add_user("viewer-token", "viewer-uid", AdminRole.VIEWER)
    provider.add_user("user-token", "user-uid")
    return provider


@pytest.fixture
def payment_provider():
    return FakePaymentProvider()


@pytest.fixture
def owner_channel():
    return FakeChannel("email")


@pytest.fixture
def services(settings, store, identity, payment_provider, owner_channel):
    return build_services(
        settings,
        store=store,
        identity=identity,
        payment_provider=payment_provider,
        channels=[owner_channel],
        assistant=TravelAssistant(api_key=None, model="test-model"),
    )


@pytest.fixture
def booking_form():
    return {
        "customerName": "Jane Doe",
        "customerPhone": "+23012345",
        "customerEmail": "jane@example.com",
        "serviceName": "Sightseeing Tour",
        "bookingDate": "2024-03-01",
    }


@pytest.fixture
def rental_form():
    return {
        "customerName": "Jane Doe",
        "customerPhone": "+23012345",
        "serviceName": "Car Rental",
        "startDate": "2024-03-01",
        "endDate": "2024-03-03",
    }


@pytest.fixture
def channel_factory():
    return FakeChannel


@pytest.fixture
def provider_factory():
    return FakePaymentProvider


@pytest.fixture
def stripe_signature():
    return VALID_SIGNATURE


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table
