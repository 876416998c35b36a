"""
Booking lifecycle controller.

Owns booking creation and every status transition:

    pending -> pending_payment -> confirmed
    pending -> cancelled
    pending_payment / confirmed -> cancelled
    pending -> error (payment provider failure)

paid_at is present only while a booking is confirmed.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from bookings.events import BookingEventBus
from bookings.feed import BookingFeed, BookingSubscription
from bookings.pricing import rental_days
from db.store import BookingStore
from models.booking import Booking, BookingFormData, BookingStatus
from models.service import find_service
from utils.constants import MAX_NAME_LENGTH, MAX_NOTES_LENGTH
from utils.datetime_utils import parse_form_date, utc_now
from utils.exceptions import ValidationError
from utils.logging_config import setup_logging
from utils.validation import sanitize_text, validate_email, validate_phone

logger = setup_logging(name=__name__, log_file="bookings.log")


class BookingLifecycle:
    """Creates bookings and applies status transitions."""

    def __init__(
        self,
        store: BookingStore,
        events: Optional[BookingEventBus] = None,
        feed: Optional[BookingFeed] = None,
    ):
        self.store = store
        self.events = events
        self.feed = feed or BookingFeed(store)

    # ========== Creation ==========

    @staticmethod
    def parse_form(form: Union[BookingFormData, Mapping[str, Any], None]) -> BookingFormData:
        if isinstance(form, BookingFormData):
            return form
        try:
            return BookingFormData.model_validate(dict(form or {}))
        except PydanticValidationError as e:
            errors = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationError("Invalid booking form", errors=errors) from e

    def build_document(self, form: Union[BookingFormData, Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Validate a form submission and build the booking document.

        Optional fields are left out entirely when empty.

        Raises:
            ValidationError: If required fields are missing or dates are invalid
        """
        form = self.parse_form(form)

        errors: List[Dict[str, str]] = []

        name = sanitize_text(form.customer_name, MAX_NAME_LENGTH)
        phone = sanitize_text(form.customer_phone, 40)
        email = sanitize_text(form.customer_email, 254)
        service_name = sanitize_text(form.service_name, MAX_NAME_LENGTH)
        notes = sanitize_text(form.notes, MAX_NOTES_LENGTH)

        if not name:
            errors.append({"field": "customer_name", "message": "Name is required"})
        if not phone:
            errors.append({"field": "customer_phone", "message": "Phone is required"})
        elif not validate_phone(phone):
            errors.append({"field": "customer_phone", "message": "Phone number is invalid"})
        if email and not validate_email(email):
            errors.append({"field": "customer_email", "message": "Email address is invalid"})
        if not service_name:
            errors.append({"field": "service_name", "message": "Service is required"})

        service = find_service(service_name) if service_name else None
        if service:
            service_name = service.name

        document: Dict[str, Any] = {}
        rental_mode = bool(service and service.rental and (form.start_date or form.end_date))

        if rental_mode:
            start = parse_form_date(form.start_date)
            end = parse_form_date(form.end_date)
            if start is None:
                errors.append({"field": "start_date", "message": "Start date is required"})
            if end is None:
                errors.append({"field": "end_date", "message": "End date is required"})
            if start is not None and end is not None:
                if end < start:
                    errors.append(
                        {"field": "end_date", "message": "End date cannot be before start date"}
                    )
                elif rental_days(start, end) <= 0:
                    errors.append({"field": "end_date", "message": "Rental period is empty"})
                else:
                    document["rental_start"] = start
                    document["rental_end"] = end
        else:
            booking_date = parse_form_date(form.booking_date)
            if booking_date is None:
                errors.append({"field": "booking_date", "message": "Booking date is required"})
            else:
                document["booking_date"] = booking_date

        if errors:
            raise ValidationError(
                "Invalid booking: " + "; ".join(e["message"] for e in errors),
                errors=errors,
            )

        now = utc_now()
        document.update(
            {
                "customer_name": name,
                "customer_phone": phone,
                "service_name": service_name,
                "status": BookingStatus.PENDING.value,
                "created_at": now,
                "updated_at": now,
            }
        )
        if email:
            document["customer_email"] = email
        if notes:
            document["notes"] = notes
        return document

    async def create_booking(self, form: Union[BookingFormData, Mapping[str, Any]]) -> str:
        """
        Create a pending booking and publish the booking-created event.

        Returns:
            The generated booking id

        Raises:
            ValidationError: If the form is invalid (nothing is written)
            StoreError: If persistence fails
        """
        document = self.build_document(form)
        booking_id = await self.store.insert_booking(document)
        logger.info(
            f"Created booking {booking_id} for {document['service_name']} "
            f"({document['customer_name']})"
        )

        if self.events is not None:
            self.events.publish_created(Booking(id=booking_id, **document))
        return booking_id

    # ========== Queries ==========

    def list_bookings(self) -> BookingSubscription:
        """Live feed of all bookings, newest first."""
        return self.feed.subscribe()

    def list_bookings_by_status(self, status: Union[BookingStatus, str]) -> BookingSubscription:
        """Live feed of bookings with one status, newest first."""
        return self.feed.subscribe(self._parse_status(status))

    async def get_bookings(self, status: Optional[Union[BookingStatus, str]] = None) -> List[Booking]:
        """One-off snapshot, newest first."""
        parsed = self._parse_status(status) if status else None
        return await self.store.query_bookings(status=parsed)

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        self._require_id(booking_id)
        return await self.store.get_booking(booking_id)

    # ========== Transitions ==========

    async def update_status(self, booking_id: str, status: Union[BookingStatus, str]) -> Booking:
        """
        Set a booking's status.

        confirmed sets paid_at; every other status clears it.

        Raises:
            ValidationError: If the id is empty or the status unknown
            BookingNotFoundError: If the booking does not exist
        """
        self._require_id(booking_id)
        new_status = self._parse_status(status)
        now = utc_now()

        fields: Dict[str, Any] = {"status": new_status.value, "updated_at": now}
        clear_fields = ()
        if new_status == BookingStatus.CONFIRMED:
            fields["paid_at"] = now
        else:
            clear_fields = ("paid_at",)

        booking = await self.store.update_booking(booking_id, fields, clear_fields)
        logger.info(f"Booking {booking_id} status -> {new_status.value}")
        return booking

    async def update_payment_link(self, booking_id: str, url: str) -> Booking:
        self._require_id(booking_id)
        booking = await self.store.update_booking(
            booking_id,
            {
                "payment_link": url,
                "status": BookingStatus.PENDING_PAYMENT.value,
                "updated_at": utc_now(),
            },
            ("paid_at",),
        )
        logger.info(f"Booking {booking_id} has payment link, awaiting payment")
        return booking

    async def mark_pending_payment(self, booking_id: str) -> Booking:
        """Await offline payment (no link)."""
        return await self.update_status(booking_id, BookingStatus.PENDING_PAYMENT)

    async def mark_error(self, booking_id: str) -> Booking:
        return await self.update_status(booking_id, BookingStatus.ERROR)

    async def mark_owner_notified(self, booking_id: str) -> Booking:
        self._require_id(booking_id)
        now = utc_now()
        return await self.store.update_booking(
            booking_id, {"owner_notified_at": now, "updated_at": now}
        )

    # ========== Helpers ==========

    @staticmethod
    def _require_id(booking_id: str) -> None:
        if not booking_id or not str(booking_id).strip():
            raise ValidationError(
                "Booking ID is required",
                errors=[{"field": "booking_id", "message": "Booking ID is required"}],
            )

    @staticmethod
    def _parse_status(status: Union[BookingStatus, str]) -> BookingStatus:
        if isinstance(status, BookingStatus):
            return status
        try:
            return BookingStatus.parse(status)
        except ValueError as e:
            raise ValidationError(
                f"Invalid booking status: {status}",
                errors=[{"field": "status", "message": f"Unknown status '{status}'"}],
            ) from e
