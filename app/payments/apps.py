"""
Payments app configuration.

This app provides payment reconciliation infrastructure including:
- Provider adapters with bounded retry
- Webhook receipt and audit trail
- Payment status transition guard
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # Register webhook handlers with the dispatcher
        import payments.webhooks.handlers  # noqa: F401
