"""
Transaction verifier service.

Pulls the authoritative status of a transaction from the provider and,
when it reports success, moves the matching registration to paid through
the transition guard.

Verification is idempotent: verifying an already paid registration
again is a no-op success. A missing registration is not an error; the
provider's answer is returned either way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.db import DatabaseError

from core.services import BaseService, ServiceResult

from payments.exceptions import ProviderError
from payments.providers import get_provider, list_providers
from payments.services.payment_state import PaymentStateService
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from events.models import Registration
    from payments.providers import PaymentProvider, ProviderResult


# Transaction fields mirrored into provider_data after a successful check
MIRROR_KEYS = ("id", "status", "amount", "currency", "channel", "fees", "paid_at", "session_id")


class TransactionVerifier(BaseService):
    """
    Verifies transactions by reference.

    Error codes:
        REFERENCE_REQUIRED: Empty reference
        VERIFICATION_FAILED: Provider answered with a logical failure
        PROVIDER_UNAVAILABLE / PROVIDER_RESPONSE_INVALID: Transport failure
    """

    @classmethod
    def verify(
        cls,
        reference: str,
        provider: PaymentProvider | None = None,
        source: str = "verification",
    ) -> ServiceResult[dict[str, Any]]:
        """
        Verify a transaction and reconcile the registration.

        Args:
            reference: Payment reference
            provider: Provider to ask (defaults to the registration's payment
                method, then settings.DEFAULT_PAYMENT_PROVIDER)
            source: Label recorded in logs for the status transition

        Returns:
            ServiceResult with the provider's transaction data on success
        """
        logger = cls.get_logger()

        if not reference:
            return ServiceResult.failure(
                "Transaction reference is required",
                error_code="REFERENCE_REQUIRED",
            )

        registration = cls._find_registration(reference)
        provider = provider or cls._provider_for(registration)
        handle = (registration.provider_data or {}).get(provider.name) if registration else None

        log_context = {"reference": reference, "provider": provider.name}
        logger.info("Verifying payment transaction", extra=log_context)

        try:
            result = provider.verify(reference, handle=handle)
        except ProviderError as e:
            logger.error(
                "Payment provider unavailable during verification",
                extra={**log_context, "error_code": e.error_code, "cause": repr(e.cause)},
            )
            return ServiceResult.failure(
                provider.describe_error(e, "verification"),
                error_code=e.error_code,
                errors={"detail": [str(e.cause or e)]},
            )

        if not result.success:
            logger.warning(
                "Payment provider reported verification failure",
                extra={**log_context, "provider_message": result.message},
            )
            return ServiceResult.failure(
                result.message or "Transaction verification failed",
                error_code="VERIFICATION_FAILED",
                data=result.raw,
            )

        if result.is_paid:
            cls._mark_paid(reference, registration, provider.name, result, source)
        else:
            logger.info(
                f"Transaction not successful yet: {result.transaction_status}",
                extra=log_context,
            )

        return ServiceResult.success(result.data)

    @classmethod
    def _provider_for(cls, registration: Registration | None) -> PaymentProvider:
        if registration is not None and registration.payment_method in list_providers():
            return get_provider(registration.payment_method)
        return get_provider()

    @classmethod
    def _find_registration(cls, reference: str) -> Registration | None:
        try:
            return PaymentStateService.get_by_reference(reference)
        except DatabaseError:
            cls.get_logger().error(
                "Registration lookup failed during verification",
                extra={"reference": reference},
                exc_info=True,
            )
            return None

    @classmethod
    def _mark_paid(
        cls,
        reference: str,
        registration: Registration | None,
        provider_name: str,
        result: ProviderResult,
        source: str,
    ) -> None:
        """Move the registration to paid; local failures are logged only."""
        logger = cls.get_logger()
        log_context = {"reference": reference, "source": source}

        # The initiator may have stored the reference after our first lookup
        registration = registration or cls._find_registration(reference)
        if registration is None:
            logger.info("No registration found for verified reference", extra=log_context)
            return

        mirror = {key: result.data[key] for key in MIRROR_KEYS if key in (result.data or {})}
        try:
            outcome = PaymentStateService.transition(
                registration,
                PaymentStatus.PAID,
                source=source,
                provider_payload=(provider_name, {"transaction": mirror}),
            )
        except DatabaseError:
            logger.error(
                "Failed to mark registration paid after verification",
                extra={**log_context, "registration_id": str(registration.pk)},
                exc_info=True,
            )
            return

        if not outcome.success:
            logger.warning(
                f"Verified payment not applied: {outcome.error}",
                extra={**log_context, "registration_id": str(registration.pk)},
            )
