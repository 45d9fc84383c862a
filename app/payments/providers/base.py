"""
Base payment provider protocol definition.

Defines the interface that all payment providers must implement, so the
transaction initiator, verifier and webhook receiver never depend on one
provider's field names or signing scheme.

Usage:
    from payments.providers.base import BaseProviderImpl

    class MyProvider(BaseProviderImpl):
        name = "myprovider"

        def initialize(self, request):
            ...

        def verify(self, reference):
            ...

        def parse_webhook(self, raw_body, headers):
            ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Protocol, runtime_checkable

from payments.exceptions import (
    TRANSPORT_FAILURE_MESSAGES,
    ProviderResponseInvalidError,
    ProviderUnavailableError,
    TransportFailureKind,
)

# Normalized webhook event types understood by the webhook handlers
CHARGE_SUCCESS = "charge.success"
CHARGE_FAILED = "charge.failed"

# Normalized transaction status reported by verify()
TRANSACTION_SUCCESS = "success"


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class InitializeRequest:
    """
    Parameters for starting a provider transaction.

    Attributes:
        email: Payer email
        amount: Amount in major currency units
        currency: ISO 4217 currency code
        reference: Locally generated correlation reference
        callback_url: Where the provider sends the payer afterwards
        metadata: Descriptive metadata (event name, customer name, ids)
    """

    email: str
    amount: Decimal
    currency: str
    reference: str
    callback_url: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderResult:
    """
    Logical outcome of a provider call.

    Attributes:
        success: Provider's logical success flag (and a data payload present)
        message: Provider's message, passed on to the caller
        data: Provider's data payload (checkout handle, transaction mirror)
        transaction_status: Normalized transaction status for verify()
        raw: Full provider response body
    """

    success: bool
    message: str = ""
    data: dict[str, Any] | None = None
    transaction_status: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.success and self.transaction_status == TRANSACTION_SUCCESS


@dataclass
class WebhookNotification:
    """
    A signature-verified webhook, normalized across providers.

    Attributes:
        event_id: Provider's event id, if it sends one
        event_type: Normalized type (charge.success, charge.failed) or the
            provider's own type for events without a mapping
        reference: Payment reference the event is about
        data: The event's transaction object
        payload: Full parsed body
    """

    event_id: str | None
    event_type: str
    reference: str | None
    data: dict[str, Any] = field(default_factory=dict)
    payload: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class PaymentProvider(Protocol):
    """
    Protocol for payment provider implementations.

    Required Methods:
        initialize: Start a transaction and return the checkout handle
        verify: Fetch authoritative transaction status by reference
        parse_webhook: Verify a webhook signature and normalize its body
        describe_error: Caller-facing message for a provider failure
    """

    name: str

    def initialize(self, request: InitializeRequest) -> ProviderResult:
        """
        Start a provider transaction.

        Raises:
            ProviderUnavailableError: Transport failure after retries
            ProviderResponseInvalidError: Unparseable body after retries
        """
        ...

    def verify(
        self, reference: str, handle: dict[str, Any] | None = None
    ) -> ProviderResult:
        """
        Fetch the provider's view of a transaction.

        Args:
            reference: Payment reference
            handle: Checkout handle stored at initialization, for providers
                that look transactions up by their own id
        """
        ...

    def parse_webhook(
        self, raw_body: bytes, headers: Mapping[str, str]
    ) -> WebhookNotification:
        """
        Verify and normalize a webhook delivery.

        Raises:
            WebhookSignatureError: Signature missing or not matching raw_body
        """
        ...

    def describe_error(self, error: Exception, service: str = "payment") -> str:
        ...


class BaseProviderImpl:
    """
    Base implementation with shared functionality.

    Providers can inherit from this for common utilities.
    """

    name: str = ""

    def get_logger(self) -> logging.Logger:
        return logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def describe_error(self, error: Exception, service: str = "payment") -> str:
        """
        Translate a provider failure into a caller-facing message.

        Args:
            error: Exception raised by initialize() or verify()
            service: Service noun used in the message

        Returns:
            Message safe to show to the payer
        """
        if isinstance(error, (ProviderUnavailableError, ProviderResponseInvalidError)):
            return error.user_message(service)
        return TRANSPORT_FAILURE_MESSAGES[TransportFailureKind.UNKNOWN].format(
            service=service, Service=service.capitalize()
        )


def to_minor_units(amount: Decimal | float | int | str) -> int:
    """
    Convert a major-unit amount to the provider's minor units.

    Multiplies by 100 and rounds half up, so 19.99 -> 1999 and
    10.005 -> 1001. Floats are converted through their shortest repr
    to avoid binary noise.
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
