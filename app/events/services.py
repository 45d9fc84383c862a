"""
Registration service layer.

This module provides business logic for:
- Creating registrations (ticket and amount validation, duplicates)
- Listing an event's registrations
- Staff payment status updates through the transition guard

Usage:
    from events.services import RegistrationService

    result = RegistrationService.create(
        serializer.validated_data,
        request_context={"user_agent": ua, "ip_address": ip, "referrer": ref},
    )
    if result.success:
        registration = result.data
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.services import BaseService, ServiceResult

from payments.services import PaymentStateService
from payments.state_machines import PaymentMethod, PaymentStatus

from events.models import Event, Registration

if TYPE_CHECKING:
    from django.db.models import QuerySet


# Allowed gap between total_amount and price x quantity
AMOUNT_TOLERANCE = Decimal("0.01")

# A new registration is a duplicate if one of these exists for event + email
ACTIVE_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PAID)


class RegistrationService(BaseService):
    """
    Service for event registrations.

    Error codes:
        EVENT_NOT_FOUND: Unknown event id
        INVALID_TICKET_TYPE: Ticket type is not one of the event's packages
        AMOUNT_MISMATCH: total_amount != price x quantity
        DUPLICATE_REGISTRATION: Same event + email already pending or paid
        REGISTRATION_NOT_FOUND: Unknown registration id
        REFERENCE_IMMUTABLE: Registration already has a different reference
        REFERENCE_IN_USE: Reference belongs to another registration
    """

    @classmethod
    def create(
        cls,
        data: dict[str, Any],
        request_context: dict[str, Any] | None = None,
    ) -> ServiceResult[Registration]:
        """
        Create a registration.

        Free registrations (total 0) are created paid; everything else
        starts pending.

        Args:
            data: Validated RegistrationCreateSerializer data
            request_context: user_agent, ip_address, referrer of the request

        Returns:
            ServiceResult with the created Registration
        """
        logger = cls.get_logger()

        event = Event.objects.filter(pk=data["event"]).first()
        if event is None:
            return ServiceResult.failure("Event not found", error_code="EVENT_NOT_FOUND")

        package = event.get_ticket_package(data["ticket_type"])
        if package is None:
            return ServiceResult.failure(
                "Invalid ticket type",
                error_code="INVALID_TICKET_TYPE",
                errors={"ticket_type": ["Not a ticket package of this event"]},
            )

        quantity = data["ticket_quantity"]
        total = Decimal(str(data["total_amount"]))
        expected = Decimal(str(package.get("price", 0))) * quantity
        if abs(total - expected) > AMOUNT_TOLERANCE:
            return ServiceResult.failure(
                "Total amount does not match ticket price",
                error_code="AMOUNT_MISMATCH",
                errors={"total_amount": [f"Expected {expected}, received {total}"]},
            )

        email = data["customer_email"]
        if Registration.objects.filter(
            event=event,
            customer_email__iexact=email,
            payment_status__in=ACTIVE_STATUSES,
        ).exists():
            return ServiceResult.failure(
                "You have already registered for this event with this email",
                error_code="DUPLICATE_REGISTRATION",
            )

        fields: dict[str, Any] = {
            "event": event,
            "customer_name": data["customer_name"],
            "customer_email": email,
            "customer_phone": data["customer_phone"],
            "ticket_type": data["ticket_type"],
            "ticket_quantity": quantity,
            "total_amount": total,
            "payment_method": data.get("payment_method") or PaymentMethod.PAYSTACK,
            "metadata": {**(data.get("metadata") or {}), **(request_context or {})},
        }
        if data.get("currency"):
            fields["currency"] = data["currency"].upper()

        registration = Registration(**fields)
        if registration.is_free:
            registration.mark_paid()

        with cls.atomic():
            registration.save()

        logger.info(
            "Created registration",
            extra={
                "registration_id": str(registration.id),
                "event_id": str(event.id),
                "payment_status": registration.payment_status,
            },
        )
        return ServiceResult.success(registration)

    @classmethod
    def list_for_event(
        cls,
        event_id: uuid.UUID | str,
        status: str | None = None,
        payment_method: str | None = None,
    ) -> QuerySet[Registration]:
        """
        Registrations for an event, newest first.

        Unrecognized filter values are ignored.
        """
        queryset = Registration.objects.select_related("event").filter(event_id=event_id)
        if status in PaymentStatus.values:
            queryset = queryset.filter(payment_status=status)
        if payment_method in PaymentMethod.values:
            queryset = queryset.filter(payment_method=payment_method)
        return queryset.order_by("-created_at")

    @classmethod
    def update_payment_status(
        cls,
        registration_id: uuid.UUID | str,
        payment_status: str,
        payment_reference: str | None = None,
        notes: str | None = None,
        force: bool = False,
    ) -> ServiceResult[Registration]:
        """
        Staff update of a registration's payment status.

        The status change goes through PaymentStateService like every other
        path. A payment reference can only be filled in when the
        registration has none.

        Args:
            registration_id: Registration to update
            payment_status: Target status
            payment_reference: Reference to record (only if none is stored)
            notes: Stored as metadata["admin_notes"]
            force: Skip the transition table

        Returns:
            ServiceResult with the refreshed Registration
        """
        logger = cls.get_logger()

        registration = Registration.objects.select_related("event").filter(
            pk=registration_id
        ).first()
        if registration is None:
            return ServiceResult.failure(
                "Registration not found",
                error_code="REGISTRATION_NOT_FOUND",
            )

        if (
            payment_reference
            and registration.payment_reference
            and registration.payment_reference != payment_reference
        ):
            return ServiceResult.failure(
                "Payment reference cannot be changed once set",
                error_code="REFERENCE_IMMUTABLE",
            )
        if (
            payment_reference
            and Registration.objects.filter(payment_reference=payment_reference)
            .exclude(pk=registration.pk)
            .exists()
        ):
            return ServiceResult.failure(
                "Payment reference is already used by another registration",
                error_code="REFERENCE_IN_USE",
            )

        with cls.atomic():
            if payment_reference and not registration.payment_reference:
                try:
                    with cls.atomic():
                        Registration.objects.filter(
                            pk=registration.pk,
                            payment_reference__isnull=True,
                        ).update(payment_reference=payment_reference, updated_at=timezone.now())
                except IntegrityError:
                    return ServiceResult.failure(
                        "Payment reference is already used by another registration",
                        error_code="REFERENCE_IN_USE",
                    )

            result = PaymentStateService.transition(
                registration,
                payment_status,
                source="admin",
                force=force,
            )
            if not result.success:
                # Undo the reference claim along with the refused status change
                transaction.set_rollback(True)
                return ServiceResult.failure(
                    result.error,
                    error_code=result.error_code,
                )

        if notes:
            registration.refresh_from_db(fields=["metadata"])
            metadata = {**(registration.metadata or {}), "admin_notes": notes}
            Registration.objects.filter(pk=registration.pk).update(
                metadata=metadata, updated_at=timezone.now()
            )

        registration.refresh_from_db()
        logger.info(
            "Payment status updated by staff",
            extra={
                "registration_id": str(registration.pk),
                "payment_status": registration.payment_status,
                "force": force,
            },
        )
        return ServiceResult.success(registration)
