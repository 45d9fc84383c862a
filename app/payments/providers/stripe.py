"""
Stripe payment provider.

Uses Stripe Checkout Sessions through an explicitly constructed
``stripe.StripeClient``; the SDK's module-level configuration is never
touched. SDK calls go through the same LinearRetry loop as raw HTTP
providers, and the client's own network retries are disabled so the
attempt ceiling holds.

Reference mapping:
    Our payment reference is sent as client_reference_id and in metadata.
    The Checkout Session id is returned in the checkout handle and stored
    with the registration; verify() needs it to retrieve the session.

Webhook event mapping:
    checkout.session.completed (payment_status=paid)  -> charge.success
    checkout.session.async_payment_succeeded          -> charge.success
    checkout.session.async_payment_failed             -> charge.failed
    checkout.session.expired                          -> charge.failed
"""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping

import stripe
from django.conf import settings

from payments.adapters.http_client import LinearRetry, classify_transport_error
from payments.exceptions import (
    PaymentValidationError,
    ProviderResponseInvalidError,
    ProviderUnavailableError,
    WebhookSignatureError,
)
from payments.providers.base import (
    CHARGE_FAILED,
    CHARGE_SUCCESS,
    TRANSACTION_SUCCESS,
    BaseProviderImpl,
    InitializeRequest,
    ProviderResult,
    WebhookNotification,
    to_minor_units,
)

PAID_SESSION_STATES = ("paid", "no_payment_required")

EVENT_TYPE_MAP = {
    "checkout.session.async_payment_succeeded": CHARGE_SUCCESS,
    "checkout.session.async_payment_failed": CHARGE_FAILED,
    "checkout.session.expired": CHARGE_FAILED,
}


def _session_status(payment_status: str | None, status: str | None) -> str:
    """Normalize a Checkout Session into success/failed/pending."""
    if payment_status in PAID_SESSION_STATES:
        return TRANSACTION_SUCCESS
    if status == "expired":
        return "failed"
    return "pending"


class StripeProvider(BaseProviderImpl):
    """
    Stripe Checkout implementation of the PaymentProvider protocol.

    Args:
        api_key: Stripe secret key
        webhook_secret: Webhook endpoint signing secret
        timeout: Per-attempt timeout in seconds
        max_attempts: Retry ceiling
        sleep: Sleep primitive between attempts
        client: Prebuilt StripeClient; one is built from api_key/timeout
            when omitted
    """

    name = "stripe"
    signature_header = "Stripe-Signature"

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        timeout: float = 15,
        max_attempts: int = 3,
        sleep: Callable[[float], None] = time.sleep,
        client: stripe.StripeClient | None = None,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.retry = LinearRetry(max_attempts=max_attempts, sleep=sleep)
        self.client = client or stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=0,
        )

    @classmethod
    def from_settings(cls, sleep: Callable[[float], None] = time.sleep) -> StripeProvider:
        return cls(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            timeout=settings.PAYMENT_PROVIDER_TIMEOUT_SECONDS,
            max_attempts=settings.PAYMENT_PROVIDER_MAX_ATTEMPTS,
            sleep=sleep,
        )

    def _call(self, operation_name: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Call a Stripe SDK function inside the retry loop.

        Connection errors become ProviderUnavailableError; any other
        StripeError propagates so the caller can report the provider's
        message as a logical failure.
        """

        def attempt_call(attempt: int) -> Any:
            try:
                return func(*args, **kwargs)
            except stripe.APIConnectionError as exc:
                raise ProviderUnavailableError(
                    classify_transport_error(exc), cause=exc, attempts=attempt
                ) from exc
            except stripe.APIError as exc:
                if "invalid response body" not in str(exc).lower():
                    raise
                raise ProviderResponseInvalidError(cause=exc, attempts=attempt) from exc

        result, _ = self.retry.run(attempt_call, operation_name=operation_name)
        return result

    # =========================================================================
    # Transactions
    # =========================================================================

    def initialize(self, request: InitializeRequest) -> ProviderResult:
        event_name = request.metadata.get("event_name") or "Event Registration"
        metadata = {
            key: str(value)
            for key, value in request.metadata.items()
            if value is not None
        }
        metadata["reference"] = request.reference
        separator = "&" if "?" in request.callback_url else "?"

        try:
            session = self._call(
                "checkout.sessions.create",
                self.client.checkout.sessions.create,
                params={
                    "mode": "payment",
                    "payment_method_types": ["card"],
                    "line_items": [
                        {
                            "price_data": {
                                "currency": request.currency.lower(),
                                "product_data": {"name": event_name},
                                "unit_amount": to_minor_units(request.amount),
                            },
                            "quantity": 1,
                        }
                    ],
                    "customer_email": request.email,
                    "client_reference_id": request.reference,
                    "metadata": metadata,
                    "success_url": (
                        f"{request.callback_url}{separator}reference={request.reference}"
                    ),
                    "cancel_url": f"{settings.FRONTEND_URL.rstrip('/')}/events/cancel",
                },
                options={"idempotency_key": f"checkout:{request.reference}"},
            )
        except stripe.StripeError as e:
            self.get_logger().warning(
                "Stripe rejected checkout session creation",
                extra={"reference": request.reference, "stripe_code": e.code},
            )
            return ProviderResult(
                success=False,
                message=e.user_message or "Failed to initialize transaction",
            )

        data = {
            "reference": request.reference,
            "session_id": session.id,
            "authorization_url": session.url,
        }
        return ProviderResult(
            success=True,
            message="Checkout session created",
            data=data,
            raw=session.to_dict(),
        )

    def verify(self, reference: str, handle: dict[str, Any] | None = None) -> ProviderResult:
        session_id = (handle or {}).get("session_id")
        if not session_id:
            return ProviderResult(
                success=False,
                message="No checkout session recorded for this reference",
            )

        try:
            session = self._call(
                "checkout.sessions.retrieve",
                self.client.checkout.sessions.retrieve,
                session_id,
            )
        except stripe.StripeError as e:
            return ProviderResult(
                success=False,
                message=e.user_message or "Transaction verification failed",
            )

        status = _session_status(session.payment_status, session.status)
        data = {
            "reference": session.client_reference_id or reference,
            "session_id": session.id,
            "status": status,
            "payment_status": session.payment_status,
            "amount": session.amount_total,
            "currency": session.currency,
        }
        return ProviderResult(
            success=True,
            message="Transaction verification successful",
            data=data,
            transaction_status=status,
            raw=session.to_dict(),
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    def parse_webhook(
        self, raw_body: bytes, headers: Mapping[str, str]
    ) -> WebhookNotification:
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret is not configured")

        signature = headers.get(self.signature_header) or ""
        if not signature:
            raise WebhookSignatureError("Missing webhook signature")

        try:
            event = stripe.Webhook.construct_event(raw_body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError("Invalid webhook signature") from e
        except ValueError as e:
            raise PaymentValidationError("Webhook body is not valid JSON") from e

        payload = event.to_dict()
        event_type = payload.get("type") or ""
        session = (payload.get("data") or {}).get("object") or {}
        metadata = session.get("metadata") or {}

        if event_type == "checkout.session.completed":
            normalized = (
                CHARGE_SUCCESS
                if session.get("payment_status") in PAID_SESSION_STATES
                else event_type
            )
        else:
            normalized = EVENT_TYPE_MAP.get(event_type, event_type)

        return WebhookNotification(
            event_id=payload.get("id"),
            event_type=normalized,
            reference=session.get("client_reference_id") or metadata.get("reference"),
            data=dict(session),
            payload=payload,
        )
