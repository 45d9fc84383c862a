"""
Transaction initiator service.

Starts a provider transaction for a registration (or a standalone amount)
and records the provider's checkout handle on the registration.

Reference format:
    <prefix>_<unix time in ms>_<9 random base-36 chars>
    e.g. evt_1700000000000_k3j9x0a2b

    Collisions are improbable but not impossible; the unique constraint on
    Registration.payment_reference is the final guard.

Re-initialization:
    A registration's payment reference is never overwritten. Asking to
    initialize a registration that already has one returns the stored
    checkout handle (pending or failed registrations) or is refused
    (paid, refunded or cancelled registrations).

Usage:
    from payments.services import InitializeParams, TransactionInitiator

    result = TransactionInitiator.initialize(
        InitializeParams(
            email="ada@example.com",
            amount=Decimal("5000"),
            currency="NGN",
            registration_id=registration.id,
        )
    )
    if result.success:
        redirect_to = result.data["authorization_url"]
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.utils import timezone

from core.services import BaseService, ServiceResult
from events.models import Registration

from payments.exceptions import ProviderError
from payments.providers import InitializeRequest, get_provider
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    import uuid

    from payments.providers import PaymentProvider


REFERENCE_ALPHABET = string.ascii_lowercase + string.digits
REFERENCE_SUFFIX_LENGTH = 9

# Checkout handle keys kept on the registration
HANDLE_KEYS = ("reference", "access_code", "authorization_url", "session_id")

REUSABLE_STATUSES = (PaymentStatus.PENDING, PaymentStatus.FAILED)


def generate_reference(prefix: str | None = None) -> str:
    """
    Generate a payment reference.

    Args:
        prefix: Reference prefix (default: settings.PAYMENT_REFERENCE_PREFIX)

    Returns:
        Reference string like "evt_1700000000000_k3j9x0a2b"
    """
    prefix = prefix or settings.PAYMENT_REFERENCE_PREFIX
    timestamp_ms = int(time.time() * 1000)
    suffix = "".join(
        secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_SUFFIX_LENGTH)
    )
    return f"{prefix}_{timestamp_ms}_{suffix}"


def build_callback_url() -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/payment/callback"


# =============================================================================
# Parameter Types
# =============================================================================


@dataclass
class InitializeParams:
    """
    Parameters for starting a transaction.

    Attributes:
        email: Payer email (required)
        amount: Amount in major currency units (required, positive)
        currency: ISO 4217 code (default: settings.PAYMENT_DEFAULT_CURRENCY)
        event_name: Shown on the provider's checkout page
        customer_name: Shown on the provider's checkout page
        registration_id: Registration to attach the transaction to
        provider: Provider name (default: settings.DEFAULT_PAYMENT_PROVIDER)
    """

    email: str
    amount: Decimal
    currency: str | None = None
    event_name: str | None = None
    customer_name: str | None = None
    registration_id: uuid.UUID | str | None = None
    provider: str | None = None


# =============================================================================
# Transaction Initiator
# =============================================================================


class TransactionInitiator(BaseService):
    """
    Starts provider transactions.

    Error codes:
        VALIDATION_ERROR: Missing email or non-positive amount
        REGISTRATION_NOT_PAYABLE: Registration is paid, refunded or cancelled
        PAYMENT_IN_PROGRESS: Reference exists but no checkout handle to reuse
        PROVIDER_REJECTED: Provider answered with a logical failure
        PROVIDER_UNAVAILABLE / PROVIDER_RESPONSE_INVALID: Transport failure
    """

    @classmethod
    def initialize(
        cls,
        params: InitializeParams,
        provider: PaymentProvider | None = None,
    ) -> ServiceResult[dict[str, Any]]:
        """
        Start a transaction and return the provider's checkout handle.

        Persisting the handle onto the registration is best-effort: once the
        provider has created the transaction, a local failure is logged and
        the handle is still returned.

        Args:
            params: What to charge and for which registration
            provider: Provider to use (resolved from params.provider if omitted)

        Returns:
            ServiceResult with the provider's data payload (including
            "reference") on success
        """
        logger = cls.get_logger()

        if not params.email or params.amount is None:
            return ServiceResult.failure(
                "Email and amount are required",
                error_code="VALIDATION_ERROR",
            )
        amount = Decimal(str(params.amount))
        if amount <= 0:
            return ServiceResult.failure(
                "Amount must be greater than zero",
                error_code="VALIDATION_ERROR",
            )

        registration = cls._load_registration(params.registration_id)
        if registration is not None:
            early = cls._check_existing(registration)
            if early is not None:
                return early

        provider = provider or get_provider(params.provider)
        reference = generate_reference()
        request = InitializeRequest(
            email=params.email,
            amount=amount,
            currency=(params.currency or settings.PAYMENT_DEFAULT_CURRENCY).upper(),
            reference=reference,
            callback_url=build_callback_url(),
            metadata={
                "event_name": params.event_name or "Event Registration",
                "customer_name": params.customer_name or "Customer",
                "registration_id": str(params.registration_id or "N/A"),
            },
        )

        log_context = {
            "reference": reference,
            "provider": provider.name,
            "amount": str(amount),
            "currency": request.currency,
            "registration_id": str(params.registration_id) if params.registration_id else None,
        }
        logger.info("Initializing payment transaction", extra=log_context)

        try:
            result = provider.initialize(request)
        except ProviderError as e:
            logger.error(
                "Payment provider unavailable during initialization",
                extra={**log_context, "error_code": e.error_code, "cause": repr(e.cause)},
            )
            return ServiceResult.failure(
                provider.describe_error(e, "payment"),
                error_code=e.error_code,
                errors={"detail": [str(e.cause or e)]},
            )

        if not result.success:
            logger.warning(
                "Payment provider rejected initialization",
                extra={**log_context, "provider_message": result.message},
            )
            return ServiceResult.failure(
                result.message or "Failed to initialize transaction",
                error_code="PROVIDER_REJECTED",
                data=result.raw,
            )

        data = {**result.data, "reference": result.data.get("reference") or reference}

        if params.registration_id:
            cls._attach_to_registration(
                params.registration_id, registration, provider.name, reference, data
            )

        logger.info("Payment transaction initialized", extra=log_context)
        return ServiceResult.success(data)

    @classmethod
    def _load_registration(cls, registration_id) -> Registration | None:
        if not registration_id:
            return None
        try:
            return Registration.objects.filter(pk=registration_id).first()
        except (DjangoValidationError, ValueError, DatabaseError):
            cls.get_logger().warning(
                "Could not load registration for payment initialization",
                extra={"registration_id": str(registration_id)},
                exc_info=True,
            )
            return None

    @classmethod
    def _check_existing(cls, registration: Registration) -> ServiceResult | None:
        """
        Decide whether an existing registration can start a new transaction.

        Returns:
            A result to return immediately, or None to proceed
        """
        status = registration.payment_status
        if status not in REUSABLE_STATUSES:
            return ServiceResult.failure(
                f"Registration payment is already {status}",
                error_code="REGISTRATION_NOT_PAYABLE",
            )

        if not registration.payment_reference:
            return None

        handle = registration.get_checkout_handle()
        if handle is None:
            return ServiceResult.failure(
                "A payment is already in progress for this registration",
                error_code="PAYMENT_IN_PROGRESS",
            )

        cls.get_logger().info(
            "Returning existing checkout handle",
            extra={
                "registration_id": str(registration.pk),
                "reference": registration.payment_reference,
            },
        )
        return ServiceResult.success(
            {**handle, "reference": registration.payment_reference}
        )

    @classmethod
    def _attach_to_registration(
        cls,
        registration_id,
        registration: Registration | None,
        provider_name: str,
        reference: str,
        data: dict[str, Any],
    ) -> bool:
        """
        Record reference and checkout handle on the registration.

        Only writes when the registration has no reference yet. Failures
        are logged and swallowed.

        Returns:
            True if the registration was updated
        """
        logger = cls.get_logger()
        log_context = {"registration_id": str(registration_id), "reference": reference}

        if registration is None:
            logger.error(
                "Registration not found, payment handle not stored",
                extra=log_context,
            )
            return False

        handle = {key: data[key] for key in HANDLE_KEYS if data.get(key)}
        provider_data = {**(registration.provider_data or {}), provider_name: handle}

        try:
            rows = Registration.objects.filter(
                pk=registration.pk,
                payment_reference__isnull=True,
            ).update(
                payment_method=provider_name,
                payment_reference=reference,
                provider_data=provider_data,
                updated_at=timezone.now(),
            )
        except DatabaseError:
            logger.error(
                "Failed to store payment handle on registration",
                extra=log_context,
                exc_info=True,
            )
            return False

        if rows == 0:
            logger.warning(
                "Registration already has a payment reference, handle not stored",
                extra=log_context,
            )
            return False

        logger.info("Registration updated with payment handle", extra=log_context)
        return True
