"""
Event and Registration models.

Registration is the one record shared by every payment confirmation path:
the client callback (verification), the provider webhook, and staff
updates. Its payment_status is an FSM field; the allowed moves are declared
with django-fsm transitions below and enforced at write time by
payments.services.PaymentStateService.

Usage:
    from events.models import Event, Registration

    event = Event.objects.get(pk=event_id)
    package = event.get_ticket_package("VIP")

    registration = Registration.objects.create(
        event=event,
        customer_name="Ada Obi",
        customer_email="ada@example.com",
        customer_phone="+2348000000000",
        ticket_type="VIP",
        ticket_quantity=2,
        total_amount=Decimal("10000.00"),
    )
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentMethod, PaymentStatus


def default_currency() -> str:
    """Currency assigned to registrations that do not name one."""
    return settings.PAYMENT_DEFAULT_CURRENCY


class Event(UUIDPrimaryKeyMixin, BaseModel):
    """
    An event attendees can register for.

    Fields:
        name: Display name
        description: Optional long description
        starts_at: When the event starts
        location: Free-form venue/location text
        ticket_packages: List of {"label": str, "price": number} dicts
    """

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    starts_at = models.DateTimeField(null=True, blank=True)
    location = models.CharField(max_length=255, blank=True, default="")
    ticket_packages = models.JSONField(
        default=list,
        blank=True,
        help_text='Ticket packages, e.g. [{"label": "Regular", "price": 5000}]',
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name

    def get_ticket_package(self, label: str) -> dict[str, Any] | None:
        """Return the ticket package with the given label, or None."""
        for package in self.ticket_packages or []:
            if isinstance(package, dict) and package.get("label") == label:
                return package
        return None


class Registration(UUIDPrimaryKeyMixin, BaseModel):
    """
    One attendee's registration for an event, with its payment state.

    State Flow:
        PENDING -> PAID
        PENDING -> FAILED -> PAID
        PENDING -> CANCELLED
        PAID -> REFUNDED

    Fields:
        event: The event registered for (immutable after creation)
        customer_*: Attendee contact details
        ticket_type/ticket_quantity: What was bought
        total_amount: Price in major currency units, validated at creation
        currency: ISO 4217 currency code
        payment_method: Provider or offline method
        payment_status: Current FSM state
        payment_reference: Correlation id shared with the provider; set once
        provider_data: Audit payloads keyed by provider name
        metadata: Request context (user agent, IP, referrer) and admin notes
        version: Incremented on every status write
        *_at: When each status was reached
        last_reconciled_at: Last provider check by the reconciliation sweep

    Note:
        payment_status is never assigned directly outside of the FSM
        transitions or PaymentStateService's conditional update.
    """

    event = models.ForeignKey(
        Event,
        on_delete=models.PROTECT,
        related_name="registrations",
    )

    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=32)

    ticket_type = models.CharField(max_length=100)
    ticket_quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Total in major currency units",
    )
    currency = models.CharField(max_length=3, default=default_currency)

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PAYSTACK,
    )
    payment_status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        help_text="Current payment status (managed by FSM)",
    )
    payment_reference = models.CharField(
        max_length=100,
        unique=True,
        null=True,
        blank=True,
        help_text="Reference generated when a provider transaction is initialized",
    )

    provider_data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Provider payloads keyed by provider name (audit/display only)",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Request context and admin notes",
    )

    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented on every payment status write",
    )

    paid_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    last_reconciled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the reconciliation sweep last asked the provider about this registration",
    )

    # Target status -> (transition method, timestamp field it sets)
    STATUS_TRANSITIONS = {
        PaymentStatus.PAID: ("mark_paid", "paid_at"),
        PaymentStatus.FAILED: ("mark_failed", "failed_at"),
        PaymentStatus.CANCELLED: ("cancel", "cancelled_at"),
        PaymentStatus.REFUNDED: ("refund", "refunded_at"),
    }

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["event", "payment_status"],
                name="events_regi_event_i_3f1a2c_idx",
            ),
            models.Index(
                fields=["customer_email"],
                name="events_regi_custome_8b4d1e_idx",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"Registration({self.id}, {self.customer_email}, "
            f"{self.payment_status})"
        )

    @property
    def is_free(self) -> bool:
        return self.total_amount <= 0

    def get_checkout_handle(self) -> dict[str, Any] | None:
        """
        Return the stored checkout handle for the current payment method.

        Returns:
            The provider's initialization payload (authorization URL,
            access code, reference), or None if nothing was stored.
        """
        data = (self.provider_data or {}).get(self.payment_method) or {}
        if not data.get("authorization_url"):
            return None
        return data

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=payment_status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.PAID,
    )
    def mark_paid(self):
        """Provider confirmed the charge."""
        self.paid_at = timezone.now()

    @transition(
        field=payment_status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self):
        """Provider reported the charge as failed."""
        self.failed_at = timezone.now()

    @transition(
        field=payment_status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.CANCELLED,
    )
    def cancel(self):
        self.cancelled_at = timezone.now()

    @transition(
        field=payment_status,
        source=PaymentStatus.PAID,
        target=PaymentStatus.REFUNDED,
    )
    def refund(self):
        self.refunded_at = timezone.now()
