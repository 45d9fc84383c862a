"""
Paystack payment provider.

Talks to the Paystack transaction API through ProviderHttpClient and
verifies webhooks with HMAC-SHA512 over the raw request body.

Endpoints used:
    POST /transaction/initialize
    GET  /transaction/verify/:reference

Webhook:
    Header X-Paystack-Signature carries hex(HMAC-SHA512(secret, raw_body)).
    The signature is computed over the bytes exactly as received; the body
    is parsed only after the signature matches.

Usage:
    from payments.providers.paystack import PaystackProvider

    provider = PaystackProvider.from_settings()
    result = provider.initialize(request)
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import TYPE_CHECKING, Any, Callable, Mapping
from urllib.parse import quote

from django.conf import settings

from payments.adapters import ProviderHttpClient
from payments.exceptions import PaymentValidationError, WebhookSignatureError
from payments.providers.base import (
    BaseProviderImpl,
    InitializeRequest,
    ProviderResult,
    WebhookNotification,
    to_minor_units,
)

if TYPE_CHECKING:
    import requests

    from payments.adapters import ProviderResponse


class PaystackProvider(BaseProviderImpl):
    """
    Paystack implementation of the PaymentProvider protocol.

    Args:
        client: HTTP client already configured with base URL and bearer token
        webhook_secret: Key for webhook HMAC-SHA512 signatures
    """

    name = "paystack"
    signature_header = "X-Paystack-Signature"

    def __init__(self, client: ProviderHttpClient, webhook_secret: str):
        self.client = client
        self.webhook_secret = webhook_secret

    @classmethod
    def from_settings(
        cls,
        sleep: Callable[[float], None] = time.sleep,
        session: requests.Session | None = None,
    ) -> PaystackProvider:
        """Build a provider from Django settings."""
        client = ProviderHttpClient(
            base_url=settings.PAYSTACK_BASE_URL,
            headers={"Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}"},
            timeout=settings.PAYMENT_PROVIDER_TIMEOUT_SECONDS,
            max_attempts=settings.PAYMENT_PROVIDER_MAX_ATTEMPTS,
            sleep=sleep,
            session=session,
        )
        return cls(client, webhook_secret=settings.PAYSTACK_WEBHOOK_SECRET)

    # =========================================================================
    # Transactions
    # =========================================================================

    def initialize(self, request: InitializeRequest) -> ProviderResult:
        event_name = request.metadata.get("event_name") or "Event Registration"
        customer_name = request.metadata.get("customer_name") or "Customer"
        body = {
            "email": request.email,
            "amount": to_minor_units(request.amount),
            "currency": request.currency,
            "reference": request.reference,
            "callback_url": request.callback_url,
            "metadata": {
                **request.metadata,
                "custom_fields": [
                    {
                        "display_name": "Event Name",
                        "variable_name": "event_name",
                        "value": event_name,
                    },
                    {
                        "display_name": "Customer Name",
                        "variable_name": "customer_name",
                        "value": customer_name,
                    },
                ],
            },
        }
        response = self.client.request("POST", "/transaction/initialize", json=body)
        return self._to_result(response, "Failed to initialize transaction")

    def verify(self, reference: str, handle: dict[str, Any] | None = None) -> ProviderResult:
        response = self.client.request(
            "GET", f"/transaction/verify/{quote(reference, safe='')}"
        )
        result = self._to_result(response, "Transaction verification failed")
        if result.success:
            result.transaction_status = result.data.get("status")
        return result

    def _to_result(self, response: ProviderResponse, failure_message: str) -> ProviderResult:
        payload = response.payload
        data = payload.get("data")
        if payload.get("status") is True and isinstance(data, dict) and data:
            return ProviderResult(
                success=True,
                message=payload.get("message", ""),
                data=data,
                raw=payload,
            )
        return ProviderResult(
            success=False,
            message=payload.get("message") or failure_message,
            raw=payload,
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    def compute_signature(self, raw_body: bytes) -> str:
        return hmac.new(
            self.webhook_secret.encode("utf-8"), raw_body, hashlib.sha512
        ).hexdigest()

    def parse_webhook(
        self, raw_body: bytes, headers: Mapping[str, str]
    ) -> WebhookNotification:
        """
        Verify the signature over raw_body, then parse it.

        Raises:
            WebhookSignatureError: Missing secret, missing header or mismatch
            PaymentValidationError: Signed body is not a JSON object
        """
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret is not configured")

        signature = (headers.get(self.signature_header) or "").strip()
        if not signature:
            raise WebhookSignatureError("Missing webhook signature")

        expected = self.compute_signature(raw_body)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
            raise WebhookSignatureError("Invalid webhook signature")

        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            raise PaymentValidationError("Webhook body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise PaymentValidationError("Webhook body must be a JSON object")

        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        return WebhookNotification(
            # Paystack sends no event id; the receiver falls back to a body hash
            event_id=None,
            event_type=str(payload.get("event") or ""),
            reference=data.get("reference"),
            data=data,
            payload=payload,
        )
