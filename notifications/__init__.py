"""Owner notification channels and dispatcher."""

from .channels import (
    ChatWebhookChannel,
    DeliveryResult,
    DeliveryStatus,
    EmailChannel,
    NotificationChannel,
    OwnerMessage,
    TelegramChannel,
)
from .dispatcher import DispatchOutcome, NotificationDispatcher, build_owner_message

__all__ = [
    "ChatWebhookChannel",
    "DeliveryResult",
    "DeliveryStatus",
    "DispatchOutcome",
    "EmailChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "OwnerMessage",
    "TelegramChannel",
    "build_owner_message",
]
