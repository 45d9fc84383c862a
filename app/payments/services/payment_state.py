"""
Registration payment status transition guard.

Every path that changes a registration's payment status (verification,
webhooks, staff updates) goes through PaymentStateService.transition().
The allowed moves come from the django-fsm transitions on Registration;
the write itself is a compare-and-set:

    UPDATE registration
       SET payment_status = <target>, <target>_at = now, version = version + 1
     WHERE id = <id> AND payment_status = <status we checked against>

If another request changed the status in between, zero rows match; the
guard re-reads the row and evaluates the transition again against the
fresh status. A delayed charge.failed for a registration that has since
been paid is therefore rejected instead of overwriting it.

Usage:
    from payments.services import PaymentStateService
    from payments.state_machines import PaymentStatus

    result = PaymentStateService.transition(
        registration, PaymentStatus.PAID, source="webhook"
    )
    if result.success and result.data.changed:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from django.db.models import F
from django.utils import timezone
from django_fsm import can_proceed

from core.services import BaseService, ServiceResult
from events.models import Registration

from payments.exceptions import InvalidStateTransitionError
from payments.state_machines import PaymentStatus


@dataclass
class TransitionOutcome:
    """
    Result of a transition attempt.

    Attributes:
        registration: The registration, refreshed from the database
        previous_status: Status the guard last evaluated against
        status: Status after the attempt
        changed: Whether this call wrote a new status
    """

    registration: Registration
    previous_status: str
    status: str
    changed: bool


class PaymentStateService(BaseService):
    """
    Compare-and-set payment status updates for registrations.

    All methods are class methods - no instance state is maintained.
    """

    # Re-reads allowed when the status changes underneath us
    MAX_CAS_ATTEMPTS = 5

    @classmethod
    def get_by_reference(cls, reference: str) -> Registration | None:
        """Return the registration holding this payment reference, if any."""
        if not reference:
            return None
        return (
            Registration.objects.select_related("event")
            .filter(payment_reference=reference)
            .first()
        )

    @classmethod
    def is_allowed(cls, registration: Registration, target: str) -> bool:
        """Check the FSM transition table for current status -> target."""
        transition = Registration.STATUS_TRANSITIONS.get(target)
        if transition is None:
            return False
        method_name, _ = transition
        return can_proceed(getattr(registration, method_name))

    @classmethod
    def transition(
        cls,
        registration: Registration,
        target: str,
        source: str,
        force: bool = False,
        provider_payload: tuple[str, dict[str, Any]] | None = None,
    ) -> ServiceResult[TransitionOutcome]:
        """
        Move a registration to a new payment status.

        A move to the current status is a no-op success. A move the FSM
        does not allow fails with INVALID_STATE_TRANSITION and writes
        nothing, unless force is set (staff override), in which case
        only the compare-and-set applies.

        Args:
            registration: Registration to update (refreshed in place)
            target: PaymentStatus value to move to
            source: Who asked (verification, webhook, admin, reconciliation)
            force: Skip the transition table
            provider_payload: Optional (provider name, data) to merge into
                provider_data in the same write

        Returns:
            ServiceResult with TransitionOutcome as data (also on failure)
        """
        logger = cls.get_logger()
        log_context = {
            "registration_id": str(registration.pk),
            "target_status": target,
            "source": source,
            "force": force,
        }

        if target not in PaymentStatus.values:
            return ServiceResult.failure(
                f"Unknown payment status: {target}",
                error_code="INVALID_STATUS",
            )

        for _ in range(cls.MAX_CAS_ATTEMPTS):
            current = registration.payment_status
            outcome = TransitionOutcome(
                registration=registration,
                previous_status=current,
                status=current,
                changed=False,
            )

            if current == target:
                logger.info(
                    "Payment status already at target, nothing to do",
                    extra=log_context,
                )
                return ServiceResult.success(outcome)

            if not force and not cls.is_allowed(registration, target):
                error = InvalidStateTransitionError(
                    f"Cannot move registration from '{current}' to '{target}'",
                    details={"current_state": current, "target_state": target},
                )
                logger.warning(
                    f"Rejected payment status transition {current} -> {target}",
                    extra={**log_context, "current_status": current},
                )
                return ServiceResult.failure(
                    error.message,
                    error_code=error.error_code,
                    data=outcome,
                )

            updates = cls._build_updates(registration, target, provider_payload)
            rows = Registration.objects.filter(
                pk=registration.pk,
                payment_status=current,
            ).update(**updates)

            try:
                registration.refresh_from_db()
            except Registration.DoesNotExist:
                logger.error("Registration disappeared during transition", extra=log_context)
                return ServiceResult.failure(
                    "Registration not found",
                    error_code="REGISTRATION_NOT_FOUND",
                )

            if rows == 1:
                outcome.status = registration.payment_status
                outcome.changed = True
                logger.info(
                    f"Payment status moved {current} -> {target}",
                    extra={**log_context, "previous_status": current},
                )
                return ServiceResult.success(outcome)

            logger.info(
                "Payment status changed concurrently, re-evaluating",
                extra={
                    **log_context,
                    "expected_status": current,
                    "found_status": registration.payment_status,
                },
            )

        return ServiceResult.failure(
            "Registration was modified concurrently, please retry",
            error_code="CONCURRENT_MODIFICATION",
        )

    @classmethod
    def _build_updates(
        cls,
        registration: Registration,
        target: str,
        provider_payload: tuple[str, dict[str, Any]] | None,
    ) -> dict[str, Any]:
        """
        Compute the column values for the conditional update.

        Runs the FSM transition method on the in-memory instance to pick up
        its side effects (timestamps); the instance is re-read afterwards.
        """
        now = timezone.now()
        transition = Registration.STATUS_TRANSITIONS.get(target)
        updates: dict[str, Any] = {
            "payment_status": target,
            "version": F("version") + 1,
            # update() bypasses auto_now
            "updated_at": now,
        }

        if transition is not None:
            method_name, timestamp_field = transition
            method = getattr(registration, method_name)
            if can_proceed(method):
                method()
                updates[timestamp_field] = getattr(registration, timestamp_field)
            else:
                updates[timestamp_field] = now

        if provider_payload is not None:
            provider_name, payload = provider_payload
            provider_data = dict(registration.provider_data or {})
            provider_data[provider_name] = {
                **(provider_data.get(provider_name) or {}),
                **payload,
            }
            updates["provider_data"] = provider_data

        return updates
