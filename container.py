"""
Component wiring.

Everything is built from one Settings instance; tests pass fakes for the
store, identity provider, payment provider, channels or assistant.
"""

from dataclasses import dataclass
from typing import List, Optional

from assistant.travel import TravelAssistant
from auth.gate import AuthorizationGate
from auth.identity import IdentityProvider, SupabaseIdentityProvider
from auth.roles import RoleManager
from bookings.events import BookingEventBus
from bookings.feed import BookingFeed
from bookings.lifecycle import BookingLifecycle
from config import Settings
from db.memory_store import InMemoryBookingStore
from db.store import BookingStore
from db.supabase_client import SupabaseBookingStore
from notifications.channels import (
    ChatWebhookChannel,
    EmailChannel,
    NotificationChannel,
    TelegramChannel,
)
from notifications.dispatcher import NotificationDispatcher
from payments.emergency import PaymentsSwitch
from payments.orchestrator import PaymentOrchestrator
from payments.stripe import PaymentProvider, StripePaymentProvider


@dataclass
class Services:
    settings: Settings
    store: BookingStore
    events: BookingEventBus
    feed: BookingFeed
    lifecycle: BookingLifecycle
    dispatcher: NotificationDispatcher
    payments: PaymentOrchestrator
    payments_switch: PaymentsSwitch
    gate: AuthorizationGate
    roles: RoleManager
    assistant: TravelAssistant


def build_store(settings: Settings) -> BookingStore:
    if settings.store_backend == "memory":
        return InMemoryBookingStore()
    return SupabaseBookingStore(settings.supabase_url, settings.supabase_key)


def build_channels(settings: Settings) -> List[NotificationChannel]:
    """Channels in fallback order: email, Telegram, chat webhook."""
    timeout = settings.notification_timeout_seconds
    return [
        EmailChannel(
            api_key=settings.resend_api_key,
            sender=settings.notify_email_from,
            recipient=settings.notify_email_to,
            endpoint=settings.notify_email_endpoint,
            timeout_seconds=timeout,
        ),
        TelegramChannel(settings.telegram_bot_token, settings.telegram_owner_chat_id),
        ChatWebhookChannel(
            settings.chat_webhook_url,
            settings.chat_webhook_token,
            timeout_seconds=timeout,
        ),
    ]


def build_services(
    settings: Settings,
    *,
    store: Optional[BookingStore] = None,
    identity: Optional[IdentityProvider] = None,
    payment_provider: Optional[PaymentProvider] = None,
    channels: Optional[List[NotificationChannel]] = None,
    assistant: Optional[TravelAssistant] = None,
) -> Services:
    store = store or build_store(settings)
    events = BookingEventBus()
    feed = BookingFeed(store)
    lifecycle = BookingLifecycle(store, events=events, feed=feed)

    dispatcher = NotificationDispatcher(
        lifecycle, channels if channels is not None else build_channels(settings)
    )

    if payment_provider is None and settings.stripe_secret_key:
        payment_provider = StripePaymentProvider(
            secret_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
            base_url=settings.app_base_url,
            currency=settings.stripe_currency,
        )
    payments_switch = PaymentsSwitch(
        store,
        max_calls_per_hour=settings.emergency_max_calls_per_hour,
        max_calls_per_day=settings.emergency_max_calls_per_day,
    )
    payments = PaymentOrchestrator(lifecycle, payment_provider, payments_switch)

    events.on_booking_created(dispatcher.handle_booking_created)
    if settings.payments_enabled:
        events.on_booking_created(payments.handle_booking_created)

    if identity is None:
        identity = SupabaseIdentityProvider(settings.supabase_url, settings.supabase_key)
    gate = AuthorizationGate(
        identity,
        super_admin_uids=settings.super_admin_uid_list,
        emergency_team_uids=settings.emergency_team_uid_list,
    )

    return Services(
        settings=settings,
        store=store,
        events=events,
        feed=feed,
        lifecycle=lifecycle,
        dispatcher=dispatcher,
        payments=payments,
        payments_switch=payments_switch,
        gate=gate,
        roles=RoleManager(gate, store),
        assistant=assistant or TravelAssistant(settings.claude_api_key, settings.claude_model),
    )
