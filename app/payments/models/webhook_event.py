"""
WebhookEvent model for provider webhook tracking.

Stores every signature-verified webhook delivery for idempotent
processing and audit trails. The (provider, event_id) unique constraint
makes redeliveries of an already processed event detectable.

Providers that do not send an event id (Paystack) are keyed by the
SHA-256 of the raw body, so byte-identical redeliveries collapse onto one
record.

Usage:
    from payments.models import WebhookEvent
    from payments.state_machines import WebhookEventStatus

    event, created = WebhookEvent.objects.get_or_create(
        provider="paystack",
        event_id=body_hash,
        defaults={
            "event_type": "charge.success",
            "reference": "evt_1700000000000_ab12cd34e",
            "payload": payload,
        },
    )

    if not created and event.is_processed:
        # Duplicate delivery - already applied
        return HttpResponse("OK", status=200)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks provider webhook events for idempotent processing.

    Processing Flow:
        1. Webhook arrives, provider verifies the signature
        2. Insert/get WebhookEvent by (provider, event_id)
        3. If exists and PROCESSED -> return 200 (duplicate)
        4. Set status to PROCESSING
        5. Route to the handler for its event type
        6. Set status to PROCESSED or FAILED
        7. If FAILED, the retry task picks it up later

    Fields:
        provider: Provider name (paystack, stripe)
        event_id: Provider event id, or SHA-256 of the raw body
        event_type: Normalized event type (charge.success, charge.failed, ...)
        reference: Payment reference the event is about
        payload: Full JSON payload
        status: Processing status
        processed_at: When the event was successfully processed
        error_message: Error details if processing failed
        retry_count: Number of processing attempts
    """

    provider = models.CharField(
        max_length=20,
        help_text="Provider that sent the webhook",
    )

    event_id = models.CharField(
        max_length=255,
        help_text="Provider event id, or SHA-256 of the raw body",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Normalized event type (e.g., 'charge.success')",
    )

    reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        help_text="Payment reference carried by the event",
    )

    payload = models.JSONField(
        help_text="Full webhook payload (JSON)",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "event_id"],
                name="webhook_event_unique_per_provider",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "retry_count"], name="payments_we_status_3c9e1a_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.provider}, {self.event_type}, {self.reference})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        """Failed and still under MAX_WEBHOOK_RETRIES attempts."""
        return self.is_failed and self.retry_count < MAX_WEBHOOK_RETRIES

    # The mark_* helpers only set fields; callers save.

    def mark_processing(self) -> None:
        """Count a processing attempt."""
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_data(self) -> dict:
        """Return the event's transaction object from the stored payload."""
        data = (self.payload or {}).get("data")
        if isinstance(data, dict):
            # Stripe nests the object one level deeper
            if isinstance(data.get("object"), dict):
                return data["object"]
            return data
        return {}
