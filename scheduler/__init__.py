"""Scheduled jobs: booking event redelivery and the payment monitor."""

from .monitoring import add_payment_monitor, check_payment_success_rate
from .redelivery import create_scheduler, redeliver_unnotified

__all__ = [
    "add_payment_monitor",
    "check_payment_success_rate",
    "create_scheduler",
    "redeliver_unnotified",
]
