"""
Custom exception classes for better error handling.
Provides specific error types instead of generic exceptions.
"""

from typing import Dict, List, Optional


class ValidationError(Exception):
    """Raised when booking form or API input validation fails."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []


class StoreError(Exception):
    """Base exception for persistence operations."""

    pass


class NotFoundError(StoreError):
    """Raised when a stored record does not exist."""

    pass


class BookingNotFoundError(NotFoundError):
    """Raised when a booking is not found."""

    pass


class RoleRequestNotFoundError(NotFoundError):
    pass


class AuthError(Exception):
    """Raised on bad credentials or missing claims."""

    pass


class RateLimitExceededError(Exception):
    """Raised when a caller exceeds the emergency action limits."""

    pass


class IntegrationError(Exception):
    """Base exception for notification and payment provider failures."""

    pass


class NotificationError(IntegrationError):
    """Raised when no notification channel delivered a message."""

    pass


class PaymentProviderError(IntegrationError):
    """Raised when payment session creation fails."""

    pass


class AssistantUnavailableError(IntegrationError):
    """Raised when the travel assistant cannot answer."""

    pass


class SignatureError(Exception):
    """Raised when webhook signature verification fails."""

    pass
