"""
Pytest fixtures for webhook tests.

Provides signed Paystack deliveries as raw bytes, plus the registration
fixtures shared with the payments tests.
"""

import hashlib
import hmac
import json

import pytest
from django.test import RequestFactory

from payments.tests.conftest import (  # noqa: F401
    WEBHOOK_SECRET,
    event,
    payment_settings,
    pending_registration,
    registration,
)


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def charge_payload(reference, event_type="charge.success", status="success"):
    return {
        "event": event_type,
        "data": {
            "id": 4099260516,
            "status": status,
            "reference": reference,
            "amount": 500000,
            "currency": "NGN",
            "channel": "card",
            "gateway_response": "Successful" if status == "success" else "Declined",
        },
    }


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


@pytest.fixture
def make_webhook_request(rf):
    """
    Build a POST to the Paystack webhook with a signed raw body.

    Pass signature=None to omit the header, or a string to override it.
    """

    def _make(payload, signature="sign", path="/api/v1/payments/webhook/"):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        headers = {}
        if signature == "sign":
            headers["HTTP_X_PAYSTACK_SIGNATURE"] = sign(body)
        elif signature is not None:
            headers["HTTP_X_PAYSTACK_SIGNATURE"] = signature
        return rf.post(path, data=body, content_type="application/json", **headers)

    return _make
