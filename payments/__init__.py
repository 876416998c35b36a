"""Payment processing with Stripe."""

from .emergency import PaymentsSwitch
from .orchestrator import PaymentOrchestrator, PaymentOutcome
from .stripe import PaymentLinkRequest, PaymentProvider, StripePaymentProvider

__all__ = [
    "PaymentLinkRequest",
    "PaymentOrchestrator",
    "PaymentOutcome",
    "PaymentProvider",
    "PaymentsSwitch",
    "StripePaymentProvider",
]
