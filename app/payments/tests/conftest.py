"""
Pytest fixtures for payment tests.

Providers are real implementations wired to a mocked requests.Session,
so the full request/parse/retry path runs without network access.

Usage:
    def test_verify(paystack, mock_session, pending_registration):
        mock_session.request.return_value = make_response(
            200, verify_payload(pending_registration.payment_reference)
        )
        result = TransactionVerifier.verify(
            pending_registration.payment_reference, provider=paystack
        )
"""

from unittest.mock import MagicMock

import pytest
import requests

from payments.adapters import ProviderHttpClient
from payments.providers import PaystackProvider

from events.tests.factories import EventFactory, RegistrationFactory

WEBHOOK_SECRET = "sk_test_webhook_secret"


# =============================================================================
# HTTP Helpers
# =============================================================================


def make_response(status_code=200, payload=None, json_error=None):
    """Build a mock requests.Response with a canned JSON body."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload if payload is not None else {}
    return response


def initialize_payload(reference, access_code="acc_test123"):
    return {
        "status": True,
        "message": "Authorization URL created",
        "data": {
            "authorization_url": f"https://checkout.paystack.com/{access_code}",
            "access_code": access_code,
            "reference": reference,
        },
    }


def verify_payload(reference, status="success", amount=500000):
    return {
        "status": True,
        "message": "Verification successful",
        "data": {
            "id": 4099260516,
            "status": status,
            "reference": reference,
            "amount": amount,
            "currency": "NGN",
            "channel": "card",
            "fees": 7500,
            "gateway_response": "Successful",
            "paid_at": "2024-01-15T10:00:00.000Z",
        },
    }


# =============================================================================
# Provider Fixtures
# =============================================================================


@pytest.fixture
def sleeps():
    """Records delays requested by the retry loop."""
    return []


@pytest.fixture
def mock_session():
    """A requests.Session whose request() is a MagicMock."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def paystack(mock_session, sleeps):
    """PaystackProvider sending through mock_session."""
    client = ProviderHttpClient(
        base_url="https://api.paystack.test",
        headers={"Authorization": "Bearer sk_test"},
        timeout=15,
        max_attempts=3,
        sleep=sleeps.append,
        session=mock_session,
    )
    return PaystackProvider(client, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def payment_settings(settings):
    """Deterministic payment settings."""
    settings.DEFAULT_PAYMENT_PROVIDER = "paystack"
    settings.PAYSTACK_WEBHOOK_SECRET = WEBHOOK_SECRET
    settings.PAYMENT_DEFAULT_CURRENCY = "NGN"
    settings.PAYMENT_REFERENCE_PREFIX = "evt"
    settings.FRONTEND_URL = "https://tickets.example.com"
    settings.DEBUG = False
    return settings


# =============================================================================
# Registration Fixtures
# =============================================================================


@pytest.fixture
def event(db):
    return EventFactory()


@pytest.fixture
def registration(db, event):
    """Pending registration without a reference (5000 NGN)."""
    return RegistrationFactory(event=event)


@pytest.fixture
def pending_registration(db, event):
    """Pending registration that has been initialized with Paystack."""
    registration = RegistrationFactory(event=event, with_reference=True)
    registration.provider_data = {
        "paystack": {
            "reference": registration.payment_reference,
            "access_code": "acc_existing",
            "authorization_url": "https://checkout.paystack.com/acc_existing",
        }
    }
    registration.save(update_fields=["provider_data"])
    return registration
