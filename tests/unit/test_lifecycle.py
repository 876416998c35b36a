"""
Unit tests for the booking lifecycle controller.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from bookings.events import BookingEventBus
from bookings.lifecycle import BookingLifecycle
from models.booking import BookingStatus
from utils.exceptions import BookingNotFoundError, StoreError, ValidationError


@pytest.fixture
def lifecycle(store):
    return BookingLifecycle(store)


class TestCreateBooking:
    """Test booking creation and form validation."""

    @pytest.mark.asyncio
    async def test_create_single_date_booking(self, lifecycle, store, booking_form):
        booking_id = await lifecycle.create_booking(booking_form)

        assert booking_id in store.bookings
        booking = await lifecycle.get_booking(booking_id)
        assert booking.status == "pending"
        assert booking.service_name == "Sightseeing Tour"
        assert booking.booking_date == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert booking.customer_email == "jane@example.com"
        assert booking.created_at == booking.updated_at
        assert booking.paid_at is None
        assert booking.payment_link is None

    @pytest.mark.asyncio
    async def test_create_rental_booking(self, lifecycle, store, rental_form):
        booking_id = await lifecycle.create_booking(rental_form)

        booking = await lifecycle.get_booking(booking_id)
        assert booking.is_rental
        assert booking.rental_start == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert booking.rental_end == datetime(2024, 3, 3, tzinfo=timezone.utc)
        assert booking.booking_date is None

    @pytest.mark.asyncio
    async def test_car_rental_with_single_date(self, lifecycle, store):
        """A rental service booked for one day uses booking_date."""
        booking_id = await lifecycle.create_booking(
            {
                "customerName": "Jane Doe",
                "customerPhone": "+23012345",
                "serviceName": "Car Rental",
                "bookingDate": "2024-03-01",
            }
        )

        booking = await lifecycle.get_booking(booking_id)
        assert booking.status == "pending"
        assert booking.booking_date is not None
        assert not booking.is_rental

    @pytest.mark.asyncio
    async def test_optional_fields_left_out(self, lifecycle, store, booking_form):
        booking_form.pop("customerEmail")
        booking_form["notes"] = "   "

        booking_id = await lifecycle.create_booking(booking_form)

        document = store.bookings[booking_id]
        assert "customer_email" not in document
        assert "notes" not in document
        assert "paid_at" not in document

    @pytest.mark.asyncio
    async def test_service_name_canonicalized(self, lifecycle, booking_form):
        booking_form["serviceName"] = "catamaran trip"

        booking_id = await lifecycle.create_booking(booking_form)

        booking = await lifecycle.get_booking(booking_id)
        assert booking.service_name == "Catamaran Trip"

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, lifecycle, store):
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_booking({"serviceName": "Sightseeing Tour"})

        fields = {error["field"] for error in exc_info.value.errors}
        assert {"customer_name", "customer_phone", "booking_date"} <= fields
        assert store.bookings == {}

    @pytest.mark.asyncio
    async def test_invalid_phone_and_email(self, lifecycle, booking_form):
        booking_form["customerPhone"] = "call me"
        booking_form["customerEmail"] = "not-an-email"

        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_booking(booking_form)

        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"customer_phone", "customer_email"}

    @pytest.mark.asyncio
    async def test_rental_end_before_start(self, lifecycle, store, rental_form):
        rental_form["startDate"] = "2024-03-05"
        rental_form["endDate"] = "2024-03-01"

        with pytest.raises(ValidationError, match="End date cannot be before start date"):
            await lifecycle.create_booking(rental_form)
        assert store.bookings == {}

    @pytest.mark.asyncio
    async def test_rental_missing_end_date(self, lifecycle, rental_form):
        rental_form.pop("endDate")

        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_booking(rental_form)
        assert exc_info.value.errors == [
            {"field": "end_date", "message": "End date is required"}
        ]

    @pytest.mark.asyncio
    async def test_non_string_field_rejected(self, lifecycle, booking_form):
        booking_form["customerName"] = 12345

        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_booking(booking_form)
        assert exc_info.value.errors[0]["field"] == "customerName"

    @pytest.mark.asyncio
    async def test_publishes_created_event(self, store, booking_form):
        published = []

        class RecordingBus:
            def publish_created(self, booking):
                published.append(booking)

        lifecycle = BookingLifecycle(store, events=RecordingBus())
        booking_id = await lifecycle.create_booking(booking_form)

        assert len(published) == 1
        assert published[0].id == booking_id
        assert published[0].customer_name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_store_failure_propagates_without_event(self, store, booking_form):
        handler = AsyncMock()
        events = BookingEventBus()
        events.on_booking_created(handler)
        store.insert_booking = AsyncMock(side_effect=StoreError("connection refused"))
        lifecycle = BookingLifecycle(store, events=events)

        with pytest.raises(StoreError):
            await lifecycle.create_booking(booking_form)
        await events.drain()

        handler.assert_not_called()
        assert events.pending_tasks == 0
        assert store.bookings == {}


class TestStatusTransitions:
    """Test status updates and the paid_at invariant."""

    @pytest.mark.asyncio
    async def test_confirm_sets_paid_at(self, lifecycle, booking_form):
        booking_id = await lifecycle.create_booking(booking_form)
        created = await lifecycle.get_booking(booking_id)

        booking = await lifecycle.update_status(booking_id, BookingStatus.CONFIRMED)

        assert booking.status == "confirmed"
        assert booking.paid_at is not None
        assert booking.updated_at >= created.updated_at

    @pytest.mark.asyncio
    async def test_cancel_clears_paid_at(self, lifecycle, store, booking_form):
        booking_id = await lifecycle.create_booking(booking_form)
        await lifecycle.update_status(booking_id, "confirmed")

        booking = await lifecycle.update_status(booking_id, "cancelled")

        assert booking.status == "cancelled"
        assert booking.paid_at is None
        assert "paid_at" not in store.bookings[booking_id]

    @pytest.mark.asyncio
    async def test_payment_link_moves_to_pending_payment(self, lifecycle, booking_form):
        booking_id = await lifecycle.create_booking(booking_form)

        booking = await lifecycle.update_payment_link(booking_id, "https://pay.test/abc")

        assert booking.status == "pending_payment"
        assert booking.payment_link == "https://pay.test/abc"
        assert booking.paid_at is None

    @pytest.mark.asyncio
    async def test_mark_owner_notified(self, lifecycle, booking_form):
        booking_id = await lifecycle.create_booking(booking_form)

        booking = await lifecycle.mark_owner_notified(booking_id)

        assert booking.owner_notified_at is not None
        assert booking.status == "pending"

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, lifecycle, booking_form):
        booking_id = await lifecycle.create_booking(booking_form)

        with pytest.raises(ValidationError, match="Invalid booking status"):
            await lifecycle.update_status(booking_id, "refunded")

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, lifecycle):
        with pytest.raises(ValidationError, match="Booking ID is required"):
            await lifecycle.update_status("", BookingStatus.CONFIRMED)

    @pytest.mark.asyncio
    async def test_unknown_booking(self, lifecycle):
        with pytest.raises(BookingNotFoundError):
            await lifecycle.update_status("missing", BookingStatus.CANCELLED)


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_bookings_filters_by_status(self, lifecycle, booking_form):
        first = await lifecycle.create_booking(booking_form)
        second = await lifecycle.create_booking(booking_form)
        await lifecycle.update_status(second, "confirmed")

        pending = await lifecycle.get_bookings("pending")
        everything = await lifecycle.get_bookings()

        assert [b.id for b in pending] == [first]
        assert [b.id for b in everything] == [second, first]

    @pytest.mark.asyncio
    async def test_get_missing_booking(self, lifecycle):
        assert await lifecycle.get_booking("missing") is None
