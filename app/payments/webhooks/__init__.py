"""
Webhook handling for payment provider events.

This module provides the receiving view and handlers for provider
webhooks. Deliveries are verified, stored idempotently, and applied
before the response is sent.

Usage:
    # In urls.py
    from payments.webhooks.views import payment_webhook

    urlpatterns = [
        path("webhook/", payment_webhook, name="webhook"),
    ]
"""

from payments.webhooks.handlers import (
    dispatch_webhook,
    process_webhook_event,
    register_handler,
)
from payments.webhooks.views import payment_webhook

__all__ = [
    "dispatch_webhook",
    "payment_webhook",
    "process_webhook_event",
    "register_handler",
]
