"""
Tests for TransactionInitiator.

Tests cover:
- Reference generation
- Request sent to the provider (minor units, callback, metadata)
- Checkout handle stored on the registration
- Reference immutability on re-initialization
- Unknown registration ids swallowed
- Provider refusals and transport failures
"""

import re
import uuid
from decimal import Decimal

import pytest
import requests

from payments.services import InitializeParams, TransactionInitiator, generate_reference
from payments.state_machines import PaymentStatus

from events.models import Registration
from events.tests.factories import RegistrationFactory

from .conftest import initialize_payload, make_response

REFERENCE_PATTERN = re.compile(r"^evt_\d{13}_[a-z0-9]{9}$")


def sent_body(mock_session):
    return mock_session.request.call_args.kwargs["json"]


class TestGenerateReference:
    def test_format(self, settings):
        settings.PAYMENT_REFERENCE_PREFIX = "evt"

        assert REFERENCE_PATTERN.match(generate_reference())

    def test_custom_prefix(self):
        assert generate_reference("tkt").startswith("tkt_")

    def test_unique(self):
        references = {generate_reference("evt") for _ in range(200)}

        assert len(references) == 200


@pytest.mark.django_db
@pytest.mark.usefixtures("payment_settings")
class TestInitialize:
    def test_initialize_with_registration(self, paystack, mock_session, registration):
        mock_session.request.side_effect = lambda method, url, **kw: make_response(
            200, initialize_payload(kw["json"]["reference"])
        )

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                currency="ngn",
                event_name="Lagos Tech Summit",
                customer_name="Ada Obi",
                registration_id=registration.id,
            ),
            provider=paystack,
        )

        assert result.success
        reference = result.data["reference"]
        assert REFERENCE_PATTERN.match(reference)
        assert result.data["authorization_url"] == "https://checkout.paystack.com/acc_test123"

        method, url = mock_session.request.call_args.args
        assert (method, url) == ("POST", "https://api.paystack.test/transaction/initialize")
        body = sent_body(mock_session)
        assert body["amount"] == 500000
        assert body["currency"] == "NGN"
        assert body["callback_url"] == "https://tickets.example.com/payment/callback"
        assert body["metadata"]["registration_id"] == str(registration.id)
        assert body["metadata"]["custom_fields"][0]["value"] == "Lagos Tech Summit"

        stored = Registration.objects.get(pk=registration.pk)
        assert stored.payment_reference == reference
        assert stored.payment_method == "paystack"
        assert stored.provider_data["paystack"] == {
            "reference": reference,
            "access_code": "acc_test123",
            "authorization_url": "https://checkout.paystack.com/acc_test123",
        }
        assert stored.payment_status == PaymentStatus.PENDING

    def test_amount_rounding(self, paystack, mock_session):
        mock_session.request.return_value = make_response(200, initialize_payload("x"))

        TransactionInitiator.initialize(
            InitializeParams(email="ada@example.com", amount=Decimal("10.005")),
            provider=paystack,
        )

        assert sent_body(mock_session)["amount"] == 1001

    def test_defaults(self, paystack, mock_session):
        mock_session.request.return_value = make_response(200, initialize_payload("x"))

        TransactionInitiator.initialize(
            InitializeParams(email="ada@example.com", amount=Decimal("19.99")),
            provider=paystack,
        )

        body = sent_body(mock_session)
        assert body["amount"] == 1999
        assert body["currency"] == "NGN"
        assert body["metadata"]["event_name"] == "Event Registration"
        assert body["metadata"]["customer_name"] == "Customer"
        assert body["metadata"]["registration_id"] == "N/A"

    def test_standalone_amount_returns_reference(self, paystack, mock_session):
        mock_session.request.return_value = make_response(
            200,
            {
                "status": True,
                "message": "Authorization URL created",
                "data": {"authorization_url": "https://checkout.paystack.com/a"},
            },
        )

        result = TransactionInitiator.initialize(
            InitializeParams(email="ada@example.com", amount=Decimal("100")),
            provider=paystack,
        )

        assert result.success
        assert REFERENCE_PATTERN.match(result.data["reference"])

    @pytest.mark.parametrize(
        "email,amount",
        [("", Decimal("100")), ("ada@example.com", None), ("ada@example.com", Decimal("0"))],
    )
    def test_validation(self, paystack, mock_session, email, amount):
        result = TransactionInitiator.initialize(
            InitializeParams(email=email, amount=amount), provider=paystack
        )

        assert result.error_code == "VALIDATION_ERROR"
        mock_session.request.assert_not_called()

    def test_unknown_registration_is_swallowed(self, paystack, mock_session):
        mock_session.request.return_value = make_response(200, initialize_payload("x"))

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id=uuid.uuid4(),
            ),
            provider=paystack,
        )

        assert result.success
        assert result.data["authorization_url"]

    def test_malformed_registration_id_is_swallowed(self, paystack, mock_session):
        mock_session.request.return_value = make_response(200, initialize_payload("x"))

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id="not-a-uuid",
            ),
            provider=paystack,
        )

        assert result.success


@pytest.mark.django_db
@pytest.mark.usefixtures("payment_settings")
class TestReinitialize:
    """A stored reference is never overwritten."""

    def test_pending_returns_stored_handle(self, paystack, mock_session, pending_registration):
        reference = pending_registration.payment_reference

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id=pending_registration.id,
            ),
            provider=paystack,
        )

        assert result.success
        assert result.data["reference"] == reference
        assert result.data["authorization_url"] == "https://checkout.paystack.com/acc_existing"
        mock_session.request.assert_not_called()
        assert Registration.objects.get(pk=pending_registration.pk).payment_reference == reference

    def test_paid_registration_is_refused(self, paystack, mock_session):
        registration = RegistrationFactory(
            with_reference=True, payment_status=PaymentStatus.PAID
        )

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id=registration.id,
            ),
            provider=paystack,
        )

        assert result.error_code == "REGISTRATION_NOT_PAYABLE"
        mock_session.request.assert_not_called()

    def test_reference_without_handle(self, paystack, mock_session):
        registration = RegistrationFactory(with_reference=True)

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id=registration.id,
            ),
            provider=paystack,
        )

        assert result.error_code == "PAYMENT_IN_PROGRESS"

    def test_reference_set_concurrently_is_kept(self, paystack, mock_session, registration):
        """Another initialize stored a reference while ours was in flight."""

        def respond(method, url, **kwargs):
            Registration.objects.filter(pk=registration.pk).update(
                payment_reference="evt_1700000000000_concurrnt"
            )
            return make_response(200, initialize_payload(kwargs["json"]["reference"]))

        mock_session.request.side_effect = respond

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id=registration.id,
            ),
            provider=paystack,
        )

        assert result.success
        stored = Registration.objects.get(pk=registration.pk)
        assert stored.payment_reference == "evt_1700000000000_concurrnt"


@pytest.mark.django_db
@pytest.mark.usefixtures("payment_settings")
class TestProviderFailures:
    def test_provider_refusal(self, paystack, mock_session, registration):
        mock_session.request.return_value = make_response(
            400, {"status": False, "message": "Invalid key"}
        )

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id=registration.id,
            ),
            provider=paystack,
        )

        assert not result.success
        assert result.error_code == "PROVIDER_REJECTED"
        assert result.error == "Invalid key"
        assert result.data == {"status": False, "message": "Invalid key"}
        assert Registration.objects.get(pk=registration.pk).payment_reference is None

    def test_timeout_after_retries(self, paystack, mock_session, sleeps, registration):
        mock_session.request.side_effect = requests.exceptions.ReadTimeout("read timed out")

        result = TransactionInitiator.initialize(
            InitializeParams(
                email="ada@example.com",
                amount=Decimal("5000"),
                registration_id=registration.id,
            ),
            provider=paystack,
        )

        assert result.error_code == "PROVIDER_UNAVAILABLE"
        assert result.error == "Payment service timeout. Please try again."
        assert mock_session.request.call_count == 3
        assert sleeps == [1.0, 2.0]
        assert Registration.objects.get(pk=registration.pk).payment_reference is None

    def test_transient_failure_then_success(self, paystack, mock_session, sleeps):
        mock_session.request.side_effect = [
            ConnectionResetError("Connection reset by peer"),
            make_response(200, initialize_payload("x")),
        ]

        result = TransactionInitiator.initialize(
            InitializeParams(email="ada@example.com", amount=Decimal("5000")),
            provider=paystack,
        )

        assert result.success
        assert sleeps == [1.0]
