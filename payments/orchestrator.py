"""
Payment link orchestration.

On booking creation a pending booking gets a hosted payment link (or is
left for offline payment when Stripe is unavailable). Stripe webhooks then
confirm the booking.
"""

from enum import Enum
from typing import Any, Dict, Optional

from bookings.lifecycle import BookingLifecycle
from bookings.pricing import booking_amount
from models.booking import Booking, BookingStatus
from payments.emergency import PaymentsSwitch
from payments.stripe import PaymentLinkRequest, PaymentProvider
from utils.exceptions import IntegrationError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="payments.log")

CONFIRMING_EVENTS = ("checkout.session.completed", "payment_intent.succeeded")


class PaymentOutcome(str, Enum):
    SKIPPED = "skipped"
    LINKED = "linked"
    MANUAL = "manual"
    ERROR = "error"


class PaymentOrchestrator:
    """Generates payment links for new bookings and reconciles webhooks."""

    def __init__(
        self,
        lifecycle: BookingLifecycle,
        provider: Optional[PaymentProvider],
        switch: Optional[PaymentsSwitch] = None,
    ):
        self.lifecycle = lifecycle
        self.provider = provider
        self.switch = switch

    @property
    def configured(self) -> bool:
        return bool(self.provider and self.provider.configured)

    async def handle_booking_created(self, booking: Booking) -> PaymentOutcome:
        # Re-read so a duplicate delivery sees the link set by the first one
        current = await self.lifecycle.get_booking(booking.id) or booking

        if current.status != BookingStatus.PENDING.value or current.payment_link:
            logger.info(
                f"Skipping payment link for booking {current.id}: "
                f"status={current.status}, has_link={bool(current.payment_link)}"
            )
            return PaymentOutcome.SKIPPED

        if not self.configured or (self.switch and await self.switch.is_paused()):
            await self.lifecycle.mark_pending_payment(current.id)
            logger.info(f"Booking {current.id} left for manual payment follow-up")
            return PaymentOutcome.MANUAL

        request = PaymentLinkRequest(
            booking_id=current.id,
            customer_name=current.customer_name,
            customer_phone=current.customer_phone,
            service_name=current.service_name,
            amount=booking_amount(current),
            description=f"Booking for {current.customer_name} on {current.date_label()}",
        )

        try:
            url = await self.provider.create_payment_link(request)
        except IntegrationError as e:
            logger.error(f"Payment link failed for booking {current.id}: {e}", exc_info=True)
            await self.lifecycle.mark_error(current.id)
            return PaymentOutcome.ERROR

        await self.lifecycle.update_payment_link(current.id, url)
        logger.info(f"Payment link generated for booking {current.id}: {url}")
        return PaymentOutcome.LINKED

    async def handle_webhook_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a verified provider event.

        Only payment-completion events change state; everything else is
        acknowledged and ignored.
        """
        event_type = event.get("type")
        if event_type not in CONFIRMING_EVENTS:
            logger.info(f"Unhandled event type {event_type}")
            return {"status": "ignored", "event_type": event_type}

        data_object = (event.get("data") or {}).get("object") or {}
        metadata = data_object.get("metadata") or {}
        booking_id = metadata.get("booking_id") or metadata.get("bookingId")

        if not booking_id:
            logger.warning(f"No booking ID found in {event_type} metadata")
            return {"status": "ignored", "event_type": event_type, "reason": "missing_booking_id"}

        return await self.confirm_payment(booking_id)

    async def confirm_payment(self, booking_id: str) -> Dict[str, Any]:
        booking = await self.lifecycle.get_booking(booking_id)
        if booking is None:
            logger.warning(f"Payment received for unknown booking {booking_id}")
            return {"status": "ignored", "booking_id": booking_id, "reason": "unknown_booking"}

        if booking.status == BookingStatus.CONFIRMED.value:
            logger.info(f"Booking {booking_id} already confirmed")
            return {"status": "already_confirmed", "booking_id": booking_id}

        await self.lifecycle.update_status(booking_id, BookingStatus.CONFIRMED)
        logger.info(f"Booking {booking_id} confirmed after successful payment")
        return {"status": "confirmed", "booking_id": booking_id}
