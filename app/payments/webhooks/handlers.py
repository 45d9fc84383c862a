"""
Webhook event handlers for payment provider events.

This module provides a handler registry and implementations for
processing normalized webhook events. Providers map their own event
types onto charge.success / charge.failed before events get here.

The handler registry allows:
- Clean separation between event routing and handling
- Easy extension for new event types
- Unknown event types acknowledged without error

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    # Register a custom handler
    @register_handler("refund.processed")
    def handle_refund(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    # Process a stored event (status bookkeeping included)
    result = process_webhook_event(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.services import ServiceResult

from payments.models import WebhookEvent
from payments.providers import CHARGE_FAILED, CHARGE_SUCCESS
from payments.services import PaymentStateService
from payments.state_machines import PaymentStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: Normalized event type (e.g., "charge.success")

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    If no handler is registered, logs and returns success so unknown
    event types never fail a delivery.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"webhook_event_id": str(webhook_event.id)},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={
            "webhook_event_id": str(webhook_event.id),
            "reference": webhook_event.reference,
        },
    )
    return handler(webhook_event)


def process_webhook_event(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Run a stored webhook event through its handler and record the outcome.

    Raises:
        Exception: Anything the handler raises, after the event is marked failed
    """
    webhook_event.mark_processing()
    webhook_event.save(update_fields=["status", "retry_count", "updated_at"])

    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        logger.error(
            f"Webhook handler raised {type(e).__name__}",
            extra={"webhook_event_id": str(webhook_event.id)},
            exc_info=True,
        )
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save(
            update_fields=["status", "processed_at", "error_message", "updated_at"]
        )
    else:
        webhook_event.mark_failed(result.error or "Handler failed")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        logger.warning(
            f"Webhook handler failed: {result.error}",
            extra={
                "webhook_event_id": str(webhook_event.id),
                "error_code": result.error_code,
            },
        )
    return result


# =============================================================================
# Charge Handlers
# =============================================================================


def _apply_status(webhook_event: WebhookEvent, target: str) -> ServiceResult:
    """
    Move the registration referenced by the event to target.

    A missing registration and a rejected transition (e.g. charge.failed
    for a registration that is already paid) are both acknowledged as
    no-ops.
    """
    log_context = {
        "webhook_event_id": str(webhook_event.id),
        "reference": webhook_event.reference,
        "target_status": target,
    }

    registration = PaymentStateService.get_by_reference(webhook_event.reference)
    if registration is None:
        logger.info("No registration found for webhook reference", extra=log_context)
        return ServiceResult.success(None)

    data = webhook_event.get_data()
    mirror = {
        key: data[key]
        for key in ("id", "status", "amount", "currency", "channel", "gateway_response")
        if key in data
    }
    result = PaymentStateService.transition(
        registration,
        target,
        source="webhook",
        provider_payload=(webhook_event.provider, {"webhook": mirror}),
    )

    if not result.success and result.error_code == "INVALID_STATE_TRANSITION":
        logger.info(
            "Webhook status change not applied: transition not allowed",
            extra={**log_context, "current_status": registration.payment_status},
        )
        return ServiceResult.success(result.data)

    return result


@register_handler(CHARGE_SUCCESS)
def handle_charge_success(webhook_event: WebhookEvent) -> ServiceResult:
    """Provider confirmed the charge: registration becomes paid."""
    return _apply_status(webhook_event, PaymentStatus.PAID)


@register_handler(CHARGE_FAILED)
def handle_charge_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Provider reported a failed charge: pending registration becomes failed."""
    return _apply_status(webhook_event, PaymentStatus.FAILED)
