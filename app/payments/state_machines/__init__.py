"""
State machine enums for registration payments.

The transition rules themselves are declared with django-fsm on
events.models.Registration.
"""

from payments.state_machines.states import (
    PaymentMethod,
    PaymentStatus,
    WebhookEventStatus,
)

__all__ = [
    "PaymentMethod",
    "PaymentStatus",
    "WebhookEventStatus",
]
