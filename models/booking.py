"""Booking models for tour and rental requests."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BookingStatus(str, Enum):
    """Booking status."""

    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @classmethod
    def parse(cls, value: str) -> "BookingStatus":
        """Return the status for a raw value, raising ValueError if unknown."""
        return cls(str(value).strip().lower())


class Booking(BaseModel):
    """Booking document as stored in the bookings collection."""

    id: Optional[str] = None
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    service_name: str
    booking_date: Optional[datetime] = None
    rental_start: Optional[datetime] = None
    rental_end: Optional[datetime] = None
    notes: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    payment_link: Optional[str] = None
    paid_at: Optional[datetime] = None
    owner_notified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "customer_name": "Jane Doe",
                "customer_phone": "+23012345",
                "service_name": "Car Rental",
                "rental_start": "2024-03-01T00:00:00+00:00",
                "rental_end": "2024-03-03T00:00:00+00:00",
                "status": "pending",
            }
        },
    )

    @property
    def is_rental(self) -> bool:
        return self.rental_start is not None and self.rental_end is not None

    def date_label(self) -> str:
        """Human readable date or rental range."""
        if self.is_rental:
            return (
                f"{self.rental_start.strftime('%Y-%m-%d')} to "
                f"{self.rental_end.strftime('%Y-%m-%d')}"
            )
        if self.booking_date:
            return self.booking_date.strftime("%Y-%m-%d")
        return "not set"


class BookingFormData(BaseModel):
    """
    Raw booking form submission.

    Accepts both snake_case and the camelCase names the web form posts.
    Fields are loose strings; the lifecycle controller does the validation.
    """

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    service_name: Optional[str] = None
    booking_date: Optional[str] = None  # yyyy-mm-dd for single-day services
    start_date: Optional[str] = None  # yyyy-mm-dd for rentals
    end_date: Optional[str] = None
    notes: Optional[str] = Field(default=None)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
