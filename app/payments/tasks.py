"""
Celery tasks for payment reconciliation.

This module provides periodic tasks for:
- Re-verifying pending registrations whose payer never returned to the
  callback page and whose webhook never arrived
- Retrying failed webhook events
- Resetting webhook events stuck in processing

Usage:
    from payments.tasks import reconcile_pending_registrations

    # Run a sweep now (normally scheduled via CELERY_BEAT_SCHEDULE)
    reconcile_pending_registrations.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db.models import F, Q
from django.utils import timezone

from events.models import Registration

from payments.models import WebhookEvent
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES
from payments.services import TransactionVerifier
from payments.state_machines import PaymentStatus, WebhookEventStatus
from payments.webhooks.handlers import process_webhook_event

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

RECONCILE_BATCH_SIZE = 100
WEBHOOK_RETRY_BATCH_SIZE = 100
STUCK_PROCESSING_THRESHOLD_MINUTES = 30


# =============================================================================
# Reconciliation Tasks
# =============================================================================


@shared_task
def reconcile_pending_registrations(older_than_minutes: int | None = None) -> dict:
    """
    Periodic task to re-verify pending registrations with the provider.

    Picks registrations that are still pending, carry a payment reference
    and were last touched more than PAYMENT_RECONCILE_AFTER_MINUTES ago.
    Each one goes through TransactionVerifier, so a paid transaction moves
    the registration to paid exactly as a manual verify would.

    Every checked registration is stamped with last_reconciled_at and is
    not checked again until the same threshold has passed. Batches are
    taken never-checked first, then least recently checked, so abandoned
    transactions cannot crowd newer ones out of the batch.

    Args:
        older_than_minutes: Override for the age threshold

    Returns:
        Dict with counts of checked, paid and errored registrations
    """
    minutes = (
        older_than_minutes
        if older_than_minutes is not None
        else settings.PAYMENT_RECONCILE_AFTER_MINUTES
    )
    now = timezone.now()
    cutoff = now - timedelta(minutes=minutes)

    references = list(
        Registration.objects.filter(
            payment_status=PaymentStatus.PENDING,
            payment_reference__isnull=False,
            updated_at__lt=cutoff,
        )
        .filter(Q(last_reconciled_at__isnull=True) | Q(last_reconciled_at__lt=cutoff))
        .order_by(F("last_reconciled_at").asc(nulls_first=True), "updated_at")
        .values_list("payment_reference", flat=True)[:RECONCILE_BATCH_SIZE]
    )

    stats = {"checked": 0, "paid": 0, "errors": 0}
    for reference in references:
        stats["checked"] += 1
        # Stamped before the call so a failing reference still rotates out
        Registration.objects.filter(payment_reference=reference).update(
            last_reconciled_at=now
        )
        result = TransactionVerifier.verify(reference, source="reconciliation")
        if not result.success:
            stats["errors"] += 1
            logger.warning(
                f"Reconciliation verify failed: {result.error}",
                extra={"reference": reference, "error_code": result.error_code},
            )
            continue

        if (
            Registration.objects.filter(
                payment_reference=reference, payment_status=PaymentStatus.PAID
            ).exists()
        ):
            stats["paid"] += 1

    if stats["checked"]:
        logger.info(
            f"Reconciled {stats['checked']} pending registrations",
            extra=stats,
        )

    return stats


# =============================================================================
# Webhook Maintenance Tasks
# =============================================================================


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to retry failed webhook events.

    Finds failed webhooks that haven't exceeded max retries and runs them
    through their handler again.

    Returns:
        Dict with counts of retried and recovered webhooks
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:WEBHOOK_RETRY_BATCH_SIZE]

    stats = {"retried": 0, "processed": 0}
    for webhook in failed_webhooks:
        stats["retried"] += 1
        log_context = {
            "webhook_event_id": str(webhook.id),
            "provider": webhook.provider,
            "retry_count": webhook.retry_count,
        }
        try:
            result = process_webhook_event(webhook)
        except Exception as e:
            # Already marked failed by process_webhook_event
            logger.error(
                f"Webhook retry raised {type(e).__name__}",
                extra=log_context,
            )
            continue

        if result.success:
            stats["processed"] += 1
            logger.info("Failed webhook recovered on retry", extra=log_context)

    if stats["retried"]:
        logger.info(
            f"Retried {stats['retried']} failed webhooks",
            extra=stats,
        )

    return stats


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Periodic task to reset stuck webhooks.

    Webhooks left in PROCESSING by a crashed worker are moved to FAILED
    so retry_failed_webhooks picks them up.

    Returns:
        Dict with count of webhooks reset
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save(update_fields=["status", "error_message", "updated_at"])
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "provider": webhook.provider,
            },
        )

    return {"reset_count": reset_count}
