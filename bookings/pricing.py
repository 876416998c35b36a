"""Rental day counting and booking amounts."""

import math
from datetime import datetime
from typing import Optional, Union

from models.booking import Booking
from models.service import find_service
from utils.constants import DAY_MS, DEFAULT_SERVICE_PRICE
from utils.datetime_utils import parse_form_date

DateInput = Optional[Union[str, datetime]]


def rental_days(start: DateInput, end: DateInput) -> int:
    """
    Inclusive number of rental days between two dates.

    Returns 0 when either date is missing or unparseable, or when end
    precedes start.
    """
    start_dt = parse_form_date(start)
    end_dt = parse_form_date(end)
    if start_dt is None or end_dt is None:
        return 0

    diff_ms = (end_dt - start_dt).total_seconds() * 1000
    days = math.ceil(diff_ms / DAY_MS) + 1
    return days if days > 0 else 0


def rental_total(start: DateInput, end: DateInput, price_per_day: int) -> int:
    return rental_days(start, end) * price_per_day


def service_price(service_name: str) -> int:
    service = find_service(service_name)
    return service.price if service else DEFAULT_SERVICE_PRICE


def booking_amount(booking: Booking) -> int:
    """Amount owed for a booking: per-day price times days for rentals."""
    price = service_price(booking.service_name)
    if booking.is_rental:
        days = rental_days(booking.rental_start, booking.rental_end)
        return days * price if days else price
    return price
