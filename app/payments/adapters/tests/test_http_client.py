"""
Tests for the provider HTTP client.

Tests cover:
- Transport error classification
- Linear retry ceiling and delays
- Response parse failures
- HTTP error statuses returned as results
"""

import socket

import pytest
import requests

from payments.adapters import LinearRetry, ProviderHttpClient, classify_transport_error
from payments.exceptions import (
    ProviderResponseInvalidError,
    ProviderUnavailableError,
    TransportFailureKind,
)

from .conftest import make_response


def build_client(session, sleeper, max_attempts=3):
    return ProviderHttpClient(
        base_url="https://api.example.test/",
        headers={"Authorization": "Bearer sk_test"},
        timeout=15,
        max_attempts=max_attempts,
        sleep=sleeper,
        session=session,
    )


# =============================================================================
# Classification Tests
# =============================================================================


class TestClassifyTransportError:
    """Tests for classify_transport_error."""

    def test_timeout(self):
        assert (
            classify_transport_error(requests.exceptions.ReadTimeout("read timed out"))
            == TransportFailureKind.TIMEOUT
        )

    def test_connect_timeout_is_timeout(self):
        """ConnectTimeout is also a ConnectionError; timeout wins."""
        assert (
            classify_transport_error(requests.exceptions.ConnectTimeout())
            == TransportFailureKind.TIMEOUT
        )

    def test_reset(self):
        assert classify_transport_error(ConnectionResetError()) == TransportFailureKind.RESET

    def test_refused_wrapped_in_requests_error(self):
        error = requests.exceptions.ConnectionError(ConnectionRefusedError(111, "refused"))

        assert classify_transport_error(error) == TransportFailureKind.REFUSED

    def test_unresolvable_host_through_cause_chain(self):
        try:
            try:
                raise socket.gaierror(-2, "Name or service not known")
            except socket.gaierror as inner:
                raise requests.exceptions.ConnectionError("boom") from inner
        except requests.exceptions.ConnectionError as error:
            kind = classify_transport_error(error)

        assert kind == TransportFailureKind.UNREACHABLE

    def test_message_hint_fallback(self):
        error = requests.exceptions.ConnectionError("[Errno 111] Connection refused")

        assert classify_transport_error(error) == TransportFailureKind.REFUSED

    def test_unrecognized_error_is_unknown(self):
        error = requests.exceptions.InvalidURL("no host supplied")

        assert classify_transport_error(error) == TransportFailureKind.UNKNOWN


# =============================================================================
# Retry Tests
# =============================================================================


class TestLinearRetry:
    """Tests for LinearRetry."""

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            LinearRetry(max_attempts=0)

    def test_delay_grows_linearly(self):
        retry = LinearRetry(backoff_seconds=1.0)

        assert [retry.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]

    def test_non_provider_errors_propagate_immediately(self, sleeper):
        retry = LinearRetry(max_attempts=3, sleep=sleeper)
        calls = []

        def operation(attempt):
            calls.append(attempt)
            raise KeyError("bug")

        with pytest.raises(KeyError):
            retry.run(operation)

        assert calls == [1]
        assert sleeper.calls == []


# =============================================================================
# ProviderHttpClient Tests
# =============================================================================


class TestProviderHttpClient:
    """Tests for ProviderHttpClient.request."""

    def test_success_returns_parsed_payload(self, mock_session, sleeper):
        mock_session.request.return_value = make_response(
            200, {"status": True, "data": {"reference": "evt_1"}}
        )
        client = build_client(mock_session, sleeper)

        response = client.request("get", "/transaction/verify/evt_1")

        assert response.ok
        assert response.payload["data"]["reference"] == "evt_1"
        assert response.attempts == 1
        assert sleeper.calls == []

        args, kwargs = mock_session.request.call_args
        assert args == ("GET", "https://api.example.test/transaction/verify/evt_1")
        assert kwargs["timeout"] == 15
        assert kwargs["headers"]["Authorization"] == "Bearer sk_test"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_retry_ceiling_with_linear_delays(self, mock_session, sleeper):
        """Every attempt resets: exactly max_attempts calls, then unavailable."""
        mock_session.request.side_effect = ConnectionResetError(104, "reset")
        client = build_client(mock_session, sleeper, max_attempts=3)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            client.request("POST", "/transaction/initialize", json={"amount": 100})

        assert mock_session.request.call_count == 3
        assert sleeper.calls == [1.0, 2.0]
        assert exc_info.value.kind == TransportFailureKind.RESET
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.cause, ConnectionResetError)

    def test_recovers_after_transient_failure(self, mock_session, sleeper):
        mock_session.request.side_effect = [
            requests.exceptions.ReadTimeout("timed out"),
            make_response(200, {"status": True, "data": {}}),
        ]
        client = build_client(mock_session, sleeper)

        response = client.request("GET", "/transaction/verify/evt_1")

        assert response.attempts == 2
        assert sleeper.calls == [1.0]

    def test_unknown_transport_error_not_retried(self, mock_session, sleeper):
        mock_session.request.side_effect = requests.exceptions.InvalidURL("bad url")
        client = build_client(mock_session, sleeper)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            client.request("GET", "/transaction/verify/evt_1")

        assert mock_session.request.call_count == 1
        assert sleeper.calls == []
        assert exc_info.value.kind == TransportFailureKind.UNKNOWN

    def test_unparseable_body_is_retried(self, mock_session, sleeper):
        mock_session.request.return_value = make_response(
            502, json_error=ValueError("Expecting value")
        )
        client = build_client(mock_session, sleeper)

        with pytest.raises(ProviderResponseInvalidError) as exc_info:
            client.request("GET", "/transaction/verify/evt_1")

        assert mock_session.request.call_count == 3
        assert sleeper.calls == [1.0, 2.0]
        assert exc_info.value.attempts == 3

    def test_non_object_body_is_invalid(self, mock_session, sleeper):
        mock_session.request.return_value = make_response(200, ["not", "an", "object"])
        client = build_client(mock_session, sleeper, max_attempts=1)

        with pytest.raises(ProviderResponseInvalidError):
            client.request("GET", "/transaction/verify/evt_1")

    def test_client_error_status_returned_not_raised(self, mock_session, sleeper):
        mock_session.request.return_value = make_response(
            400, {"status": False, "message": "Invalid key"}
        )
        client = build_client(mock_session, sleeper)

        response = client.request("POST", "/transaction/initialize", json={})

        assert not response.ok
        assert response.status_code == 400
        assert response.payload["message"] == "Invalid key"
        assert mock_session.request.call_count == 1


class TestUserMessages:
    """Caller-facing wording for transport failures."""

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (TransportFailureKind.RESET, "Connection to payment service was reset. Please try again."),
            (TransportFailureKind.REFUSED, "Payment service refused connection. Please try again later."),
            (TransportFailureKind.TIMEOUT, "Payment service timeout. Please try again."),
            (TransportFailureKind.UNKNOWN, "Payment service temporarily unavailable"),
        ],
    )
    def test_payment_wording(self, kind, expected):
        assert ProviderUnavailableError(kind).user_message() == expected

    def test_verification_wording(self):
        error = ProviderUnavailableError(TransportFailureKind.TIMEOUT)

        assert error.user_message("verification") == (
            "Verification service timeout. Please try again."
        )

    def test_unreachable_wording(self):
        error = ProviderUnavailableError(TransportFailureKind.UNREACHABLE)

        assert error.user_message().startswith("Unable to reach payment service")
