"""
Stripe integration for booking payments.

Narrow adapter: create a hosted Checkout Session for a booking and verify
webhook events. The Stripe SDK is synchronous, so calls run in a worker
thread.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import stripe
from pydantic import BaseModel, Field

from utils.exceptions import PaymentProviderError, SignatureError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="payments.log")

# Retry configuration
_MAX_RETRIES = 3
_RETRY_DELAY = 1.0  # seconds
_RETRY_BACKOFF = 2.0  # exponential backoff multiplier


class PaymentLinkRequest(BaseModel):
    """What the provider needs to price and label a booking."""

    booking_id: str
    customer_name: str
    customer_phone: str
    service_name: str
    amount: int = Field(..., gt=0, description="Amount in whole currency units")
    description: str = ""


class PaymentProvider(ABC):
    """Operations the booking system needs from a payment provider."""

    @property
    @abstractmethod
    def configured(self) -> bool:
        """True when payment links and webhooks can be used."""

    @abstractmethod
    async def create_payment_link(self, request: PaymentLinkRequest) -> str:
        """
        Create a hosted payment page for a booking and return its URL.

        Raises:
            PaymentProviderError: If the provider call fails
        """

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook payload and return the event envelope.

        Raises:
            SignatureError: If the signature is missing or invalid
        """


class StripePaymentProvider(PaymentProvider):
    """Stripe Checkout Sessions plus webhook signature verification."""

    def __init__(
        self,
        secret_key: Optional[str],
        webhook_secret: Optional[str],
        base_url: str,
        currency: str = "usd",
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.base_url = base_url.rstrip("/")
        self.currency = currency

    @property
    def configured(self) -> bool:
        return bool(self.secret_key and self.webhook_secret)

    def success_url(self, booking_id: str) -> str:
        return f"{self.base_url}/admin?payment=success&booking={booking_id}"

    async def create_payment_link(self, request: PaymentLinkRequest) -> str:
        """
        Create a Checkout Session for a booking.

        Client errors (4xx) fail immediately; server and network errors are
        retried with exponential backoff.
        """
        metadata = {
            "booking_id": request.booking_id,
            "customer_name": request.customer_name,
            "customer_phone": request.customer_phone,
            "service_name": request.service_name,
        }
        delay = _RETRY_DELAY

        for attempt in range(_MAX_RETRIES):
            try:
                session = await asyncio.to_thread(
                    stripe.checkout.Session.create,
                    api_key=self.secret_key,
                    mode="payment",
                    line_items=[
                        {
                            "price_data": {
                                "currency": self.currency,
                                "product_data": {
                                    "name": f"{request.service_name} - {request.customer_name}",
                                    "description": request.description or request.service_name,
                                },
                                # Stripe amounts are in the smallest currency unit
                                "unit_amount": request.amount * 100,
                            },
                            "quantity": 1,
                        }
                    ],
                    metadata=metadata,
                    payment_intent_data={"metadata": metadata},
                    success_url=self.success_url(request.booking_id),
                )
                logger.info(
                    f"Created checkout session {session.id} for booking {request.booking_id}"
                )
                return session.url

            except stripe.StripeError as e:
                if e.http_status and 400 <= e.http_status < 500:
                    logger.error(
                        f"Stripe client error creating checkout for booking {request.booking_id}: {e}",
                        exc_info=True,
                    )
                    raise PaymentProviderError(f"Payment processing error: {e}") from e

                if attempt < _MAX_RETRIES - 1:
                    logger.warning(
                        f"Stripe error (attempt {attempt + 1}/{_MAX_RETRIES}) for booking "
                        f"{request.booking_id}: {e}. Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                    delay *= _RETRY_BACKOFF
                else:
                    logger.error(
                        f"Stripe error creating checkout for booking {request.booking_id} "
                        f"after {_MAX_RETRIES} attempts: {e}",
                        exc_info=True,
                    )
                    raise PaymentProviderError(
                        f"Payment processing error after {_MAX_RETRIES} attempts: {e}"
                    ) from e

        raise PaymentProviderError(f"Failed to create checkout for booking {request.booking_id}")

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not self.webhook_secret:
            raise SignatureError("Stripe webhook secret is not configured")
        if not signature:
            raise SignatureError("Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise SignatureError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise SignatureError(f"Invalid signature: {e}") from e

        return json.loads(payload.decode("utf-8"))
