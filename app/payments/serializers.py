"""
DRF serializers for payments app.

This module provides serializers for:
- Transaction initialization requests
- The {status, message, data} response envelope
- The registration payment status projection

Request and response keys are camelCase to match the browser client.

Related files:
    - views.py: Payment API views
    - services/: TransactionInitiator, TransactionVerifier

Usage:
    serializer = InitializeTransactionSerializer(data=request.data)
    if serializer.is_valid():
        params = serializer.to_params()
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.providers import list_providers
from payments.services import InitializeParams


class InitializeTransactionSerializer(serializers.Serializer):
    """
    Request body for POST /api/v1/payments/initialize/.

    Fields:
        email: Payer email (required)
        amount: Amount in major currency units (required, > 0)
        currency: ISO 4217 code (optional)
        eventName: Shown on the checkout page (optional)
        customerName: Shown on the checkout page (optional)
        registrationId: Registration to attach the transaction to (optional)
        provider: Provider name (optional)
    """

    email = serializers.EmailField()
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=3,
        min_value=Decimal("0.01"),
    )
    currency = serializers.CharField(
        max_length=3, min_length=3, required=False, allow_blank=True
    )
    eventName = serializers.CharField(
        source="event_name", max_length=200, required=False, allow_blank=True
    )
    customerName = serializers.CharField(
        source="customer_name", max_length=200, required=False, allow_blank=True
    )
    registrationId = serializers.CharField(
        source="registration_id", max_length=64, required=False, allow_blank=True
    )
    provider = serializers.ChoiceField(choices=list_providers(), required=False)

    def to_params(self) -> InitializeParams:
        data = self.validated_data
        return InitializeParams(
            email=data["email"],
            amount=data["amount"],
            currency=data.get("currency") or None,
            event_name=data.get("event_name") or None,
            customer_name=data.get("customer_name") or None,
            registration_id=data.get("registration_id") or None,
            provider=data.get("provider") or None,
        )


class PaymentResponseSerializer(serializers.Serializer):
    """
    Response envelope used by the initialize, verify and status endpoints.

    Fields:
        status: Whether the operation succeeded
        message: Human-readable outcome
        data: Provider payload or projection (optional)
        error: Underlying error detail (DEBUG only)
    """

    status = serializers.BooleanField()
    message = serializers.CharField(required=False)
    data = serializers.JSONField(required=False)
    error = serializers.CharField(required=False)


class PaymentStatusSerializer(serializers.Serializer):
    """
    Read-only projection of a registration's payment fields.

    Usage:
        PaymentStatusSerializer(registration).data
    """

    paymentStatus = serializers.CharField(source="payment_status", read_only=True)
    paymentMethod = serializers.CharField(source="payment_method", read_only=True)
    amount = serializers.DecimalField(
        source="total_amount", max_digits=12, decimal_places=2, read_only=True
    )
    currency = serializers.CharField(read_only=True)
    eventName = serializers.CharField(source="event.name", read_only=True)
    customerName = serializers.CharField(source="customer_name", read_only=True)
    paidAt = serializers.DateTimeField(source="paid_at", read_only=True)
