"""
Webhook endpoint views for payment providers.

The view:
1. Verifies the webhook signature over the raw request body
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Applies the event through the handler registry
4. Returns 200 "OK"

Responses are plain text, per provider convention:
- 200: Event applied, duplicate, unknown type, unknown reference, or a
  correctly signed body that is not JSON (logged and dropped; a redelivery
  of the same bytes could not succeed)
- 400: Invalid signature (no state change)
- 404: Unknown provider
- 500: Unexpected processing fault (event marked failed, provider retries)

Usage:
    # In urls.py
    from payments.webhooks.views import payment_webhook

    urlpatterns = [
        path("webhook/", payment_webhook, name="webhook"),
        path("webhooks/<str:provider_name>/", payment_webhook, name="provider-webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.helpers import get_client_ip, hash_bytes

from payments.exceptions import PaymentValidationError, WebhookSignatureError
from payments.models import WebhookEvent
from payments.providers import get_provider
from payments.state_machines import WebhookEventStatus
from payments.webhooks.handlers import process_webhook_event

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def payment_webhook(request: HttpRequest, provider_name: str | None = None) -> HttpResponse:
    """
    Receive a provider webhook and apply it.

    Security:
    - Signature is checked against the exact bytes received, before parsing
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - (provider, event_id) is unique; Paystack deliveries are keyed by the
      SHA-256 of the raw body
    - Already processed duplicates return 200 without being re-applied
    - Status changes go through the compare-and-set transition guard, so
      concurrent or late deliveries cannot regress a paid registration
    """
    try:
        provider = get_provider(provider_name)
    except ValueError:
        logger.warning(
            "Webhook received for unknown provider",
            extra={"provider": provider_name},
        )
        return HttpResponse("Unknown provider", status=404)

    raw_body = request.body

    # Step 1: Verify signature
    try:
        notification = provider.parse_webhook(raw_body, request.headers)
    except WebhookSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={
                "provider": provider.name,
                "error": e.message,
                "ip_address": get_client_ip(request),
            },
        )
        return HttpResponse("Invalid signature", status=400)
    except PaymentValidationError as e:
        logger.warning(
            "Signed webhook payload could not be parsed, acknowledging",
            extra={
                "provider": provider.name,
                "error": e.message,
                "body_sha256": hash_bytes(raw_body),
            },
        )
        return HttpResponse("OK", status=200)

    event_id = notification.event_id or hash_bytes(raw_body)
    log_context = {
        "provider": provider.name,
        "event_id": event_id,
        "event_type": notification.event_type,
        "reference": notification.reference,
    }
    logger.info(f"Received webhook: {notification.event_type}", extra=log_context)

    try:
        # Step 2: Create/get WebhookEvent (idempotent)
        webhook_event, created = WebhookEvent.objects.get_or_create(
            provider=provider.name,
            event_id=event_id,
            defaults={
                "event_type": notification.event_type,
                "reference": notification.reference or "",
                "payload": notification.payload,
                "status": WebhookEventStatus.PENDING,
            },
        )

        # Step 3: If already processed, return success
        if not created and webhook_event.is_processed:
            logger.info("Webhook already processed, returning success", extra=log_context)
            return HttpResponse("OK", status=200)

        # Step 4: Apply
        result = process_webhook_event(webhook_event)
    except Exception as e:
        logger.error(
            f"Webhook processing failed: {type(e).__name__}",
            extra=log_context,
            exc_info=True,
        )
        return HttpResponse("Webhook processing failed", status=500)

    if not result.success:
        return HttpResponse("Webhook processing failed", status=500)

    return HttpResponse("OK", status=200)
