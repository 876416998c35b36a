"""
Owner notification dispatcher.

Runs once per booking-created event. Channels are tried in order and the
first successful delivery stamps owner_notified_at on the booking. There is
no retry here: a booking left unmarked is picked up again by event
redelivery.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from bookings.lifecycle import BookingLifecycle
from models.booking import Booking
from notifications.channels import (
    DeliveryResult,
    DeliveryStatus,
    NotificationChannel,
    OwnerMessage,
)
from utils.exceptions import NotificationError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="notifications.log")


class DispatchOutcome(BaseModel):
    booking_id: str
    delivered_via: Optional[str] = None
    attempts: List[DeliveryResult] = Field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.delivered_via is not None


def build_owner_message(booking: Booking) -> OwnerMessage:
    """Human readable summary of a new booking."""
    date_label = booking.date_label()
    lines = [
        "New booking request",
        f"Booking ID: {booking.id}",
        f"Service: {booking.service_name}",
        f"Date: {date_label}",
        f"Name: {booking.customer_name}",
        f"Phone: {booking.customer_phone}",
        f"Email: {booking.customer_email or '-'}",
        f"Notes: {booking.notes or '-'}",
    ]
    return OwnerMessage(
        booking_id=booking.id or "",
        subject=f"New booking: {booking.service_name} ({date_label})",
        text="\n".join(lines),
        service_name=booking.service_name,
        date=date_label,
    )


class NotificationDispatcher:
    """Alerts the operator about new bookings with channel fallback."""

    def __init__(self, lifecycle: BookingLifecycle, channels: List[NotificationChannel]):
        self.lifecycle = lifecycle
        self.channels = channels

    async def handle_booking_created(self, booking: Booking) -> DispatchOutcome:
        message = build_owner_message(booking)
        outcome = DispatchOutcome(booking_id=message.booking_id)

        for channel in self.channels:
            result = await channel.send(message)
            outcome.attempts.append(result)
            if result.sent:
                outcome.delivered_via = channel.name
                break

        if not outcome.delivered:
            if all(a.status == DeliveryStatus.NOT_CONFIGURED for a in outcome.attempts):
                reason = "no notification channel is configured"
            else:
                reason = "all configured channels failed"
            error = NotificationError(
                f"Owner not notified for booking {booking.id}: {reason}"
            )
            logger.error(f"IntegrationError: {error}")
            return outcome

        await self.lifecycle.mark_owner_notified(booking.id)
        logger.info(f"Owner notified about booking {booking.id} via {outcome.delivered_via}")
        return outcome
