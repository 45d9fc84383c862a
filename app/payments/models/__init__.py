"""
Payment domain models.

This module contains payment-related models:
- WebhookEvent: Provider webhook deliveries, for idempotent processing and replay

The Registration model carrying payment status lives in the events app.
"""

from payments.models.webhook_event import WebhookEvent

__all__ = [
    "WebhookEvent",
]
