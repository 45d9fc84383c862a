"""
DRF serializers for events app.

This module provides serializers for:
- Registration creation requests
- Registration detail/list responses
- Staff payment status updates

Ticket/amount validation and duplicate detection live in
RegistrationService; serializers only check shape and types.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.state_machines import PaymentMethod, PaymentStatus

from events.models import Event, Registration


class EventSummarySerializer(serializers.ModelSerializer):
    """Event fields embedded in registration responses."""

    class Meta:
        model = Event
        fields = ["id", "name", "starts_at", "location"]
        read_only_fields = fields


class RegistrationSerializer(serializers.ModelSerializer):
    """
    Registration detail.

    provider_data is omitted; it holds raw provider payloads for audit.
    """

    event = EventSummarySerializer(read_only=True)

    class Meta:
        model = Registration
        fields = [
            "id",
            "event",
            "customer_name",
            "customer_email",
            "customer_phone",
            "ticket_type",
            "ticket_quantity",
            "total_amount",
            "currency",
            "payment_method",
            "payment_status",
            "payment_reference",
            "paid_at",
            "failed_at",
            "cancelled_at",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RegistrationCreateSerializer(serializers.Serializer):
    """
    Request body for POST /api/v1/registrations/.

    Fields:
        event: Event id (required)
        customer_name/customer_email/customer_phone: Attendee details
        ticket_type: Label of one of the event's ticket packages
        ticket_quantity: Number of tickets (>= 1)
        total_amount: Price x quantity, in major currency units
        currency: ISO 4217 code (optional)
        payment_method: Provider or offline method (default: paystack)
        metadata: Extra client context (optional)
    """

    event = serializers.UUIDField()
    customer_name = serializers.CharField(max_length=200)
    customer_email = serializers.EmailField()
    customer_phone = serializers.CharField(max_length=32)
    ticket_type = serializers.CharField(max_length=100)
    ticket_quantity = serializers.IntegerField(min_value=1)
    total_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0"),
    )
    currency = serializers.CharField(
        max_length=3, min_length=3, required=False, allow_blank=True
    )
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices,
        default=PaymentMethod.PAYSTACK,
    )
    metadata = serializers.DictField(required=False, default=dict)


class PaymentStatusUpdateSerializer(serializers.Serializer):
    """
    Request body for PATCH /api/v1/registrations/<id>/payment-status/.

    force skips the transition table (staff override); the write is still
    a compare-and-set on the current status.
    """

    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)
    payment_reference = serializers.CharField(
        max_length=100, required=False, allow_blank=True
    )
    notes = serializers.CharField(required=False, allow_blank=True)
    force = serializers.BooleanField(default=False)
