"""
State enums for registration payments.

These are Django TextChoices for database storage and admin integration.
The payment status field on Registration is driven by django-fsm.

State Machines Overview:

Registration payment status:
    pending → paid | failed | cancelled
    failed → paid (a later authoritative success wins)
    paid → refunded

WebhookEvent processing status:
    pending → processing → processed
    pending → processing → failed (can retry)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Payment status of a Registration.

    Terminal with respect to failure reports: PAID, REFUNDED.
    A paid registration never moves back to FAILED or PENDING, whatever
    order provider notifications arrive in.

    State Flow:
        PENDING → PAID
        PENDING → FAILED → PAID
        PENDING → CANCELLED
        PAID → REFUNDED
    """

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    """
    How a registration is paid.

    PAYSTACK and STRIPE are provider-backed and go through the provider
    registry; MANUAL and BANK_TRANSFER are settled by staff.
    """

    PAYSTACK = "paystack", "Paystack"
    STRIPE = "stripe", "Stripe"
    MANUAL = "manual", "Manual"
    BANK_TRANSFER = "bank_transfer", "Bank Transfer"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "PaymentMethod",
    "PaymentStatus",
    "WebhookEventStatus",
]
