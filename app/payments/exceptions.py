"""
Payment-specific exceptions for payment operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentValidationError - Payment request validation failures
    ├── WebhookSignatureError - Webhook signature mismatch (never retried)
    └── PaymentProcessingError - Payment processing failures
        └── ProviderError - Base for payment provider failures
            ├── ProviderUnavailableError - Transport failure after all retries
            └── ProviderResponseInvalidError - Unparseable provider body after all retries

    InvalidStateTransitionError - Payment status move not allowed (inherits ConflictError)

Usage:
    from payments.exceptions import ProviderUnavailableError, TransportFailureKind

    try:
        response = client.request("GET", f"/transaction/verify/{reference}")
    except ProviderUnavailableError as e:
        if e.kind == TransportFailureKind.TIMEOUT:
            ...
        message = e.user_message()
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


class TransportFailureKind(str, enum.Enum):
    """
    Classification of a failed outbound call.

    UNKNOWN failures are not retried; every other kind is.
    """

    RESET = "reset"
    UNREACHABLE = "unreachable"
    REFUSED = "refused"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# Caller-facing wording per failure kind; "{service}" is the service noun
# ("payment" for initialization, "verification" for verification).
TRANSPORT_FAILURE_MESSAGES = {
    TransportFailureKind.RESET: (
        "Connection to {service} service was reset. Please try again."
    ),
    TransportFailureKind.UNREACHABLE: (
        "Unable to reach {service} service. Please check your connection."
    ),
    TransportFailureKind.REFUSED: (
        "{Service} service refused connection. Please try again later."
    ),
    TransportFailureKind.TIMEOUT: "{Service} service timeout. Please try again.",
    TransportFailureKind.UNKNOWN: "{Service} service temporarily unavailable",
}


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    All payment-specific exceptions inherit from this class,
    which itself inherits from BaseApplicationError for
    consistent API error responses.
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentValidationError(PaymentError):
    """Raised when a payment request is invalid (amount, currency, email)."""

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class WebhookSignatureError(PaymentError):
    """
    Raised when a webhook signature does not match its raw body.

    Never retried and never accompanied by a state change. The receiving
    view answers 400 and logs the rejection at WARNING.
    """

    default_error_code: str = "INVALID_SIGNATURE"


class PaymentProcessingError(PaymentError):
    """Raised when payment processing with a provider fails."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderError(PaymentProcessingError):
    """
    Base exception for payment provider failures.

    Attributes:
        cause: The last underlying exception, kept for logging only
        attempts: How many attempts were made before giving up
        is_retryable: Whether another attempt may succeed
    """

    default_error_code: str = "PROVIDER_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        cause: BaseException | None = None,
        attempts: int = 0,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if attempts:
            details["attempts"] = attempts
        super().__init__(message, error_code=error_code, details=details)
        self.cause = cause
        self.attempts = attempts


class ProviderUnavailableError(ProviderError):
    """
    The provider could not be reached after the retry ceiling.

    Covers connection reset, unresolvable host, refused connection and
    per-attempt timeout, plus unclassified transport errors (which are
    raised on the first attempt).
    """

    default_error_code: str = "PROVIDER_UNAVAILABLE"

    def __init__(
        self,
        kind: TransportFailureKind,
        cause: BaseException | None = None,
        attempts: int = 0,
    ):
        super().__init__(
            f"Payment provider unavailable ({kind.value})",
            cause=cause,
            attempts=attempts,
            details={"kind": kind.value},
        )
        self.kind = kind
        self.is_retryable = kind != TransportFailureKind.UNKNOWN

    def user_message(self, service: str = "payment") -> str:
        """Return the caller-facing message for this failure kind."""
        template = TRANSPORT_FAILURE_MESSAGES[self.kind]
        return template.format(service=service, Service=service.capitalize())


class ProviderResponseInvalidError(ProviderError):
    """The provider answered, but the body could not be parsed."""

    default_error_code: str = "PROVIDER_RESPONSE_INVALID"
    is_retryable: bool = True

    def __init__(self, cause: BaseException | None = None, attempts: int = 0):
        super().__init__(
            "Payment provider returned an invalid response",
            cause=cause,
            attempts=attempts,
        )

    def user_message(self, service: str = "payment") -> str:
        return TRANSPORT_FAILURE_MESSAGES[TransportFailureKind.UNKNOWN].format(
            service=service, Service=service.capitalize()
        )


# =============================================================================
# State Transition Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a payment status transition is not allowed.

    Attributes:
        details: Contains current_state and target_state

    Example:
        raise InvalidStateTransitionError(
            "Cannot move registration from 'refunded' to 'paid'",
            details={"current_state": "refunded", "target_state": "paid"},
        )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"
