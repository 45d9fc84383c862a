"""
DRF views for payments app.

This module provides API views for:
- Transaction initialization
- Transaction verification
- Registration payment status lookup

Related files:
    - services/: TransactionInitiator, TransactionVerifier
    - serializers.py: Request/response serializers
    - webhooks/views.py: Provider webhook endpoint
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/initialize/ - Start a provider transaction
    GET /api/v1/payments/verify/<reference>/ - Verify and reconcile
    GET /api/v1/payments/status/<reference>/ - Payment status projection
    POST /api/v1/payments/webhook/ - Default provider webhook
    POST /api/v1/payments/webhooks/<provider>/ - Provider-specific webhook

Response body:
    {"status": bool, "message": str, "data": {...}}
    Failure bodies carry "error" with the underlying cause only when DEBUG
    is on.

Security:
    - Payment endpoints are open to the payer's browser (throttled)
    - Webhooks verify the provider signature
"""

from __future__ import annotations

import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult

from payments.serializers import (
    InitializeTransactionSerializer,
    PaymentResponseSerializer,
    PaymentStatusSerializer,
)
from payments.services import PaymentStateService, TransactionInitiator, TransactionVerifier

logger = logging.getLogger(__name__)


# Service error code -> HTTP status; anything else is a 400
ERROR_STATUS_CODES = {
    "REGISTRATION_NOT_PAYABLE": status.HTTP_409_CONFLICT,
    "PAYMENT_IN_PROGRESS": status.HTTP_409_CONFLICT,
    "PROVIDER_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "PROVIDER_RESPONSE_INVALID": status.HTTP_502_BAD_GATEWAY,
}


def failure_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult as a {status, message} body."""
    body = {"status": False, "message": result.error}
    if result.data is not None:
        body["data"] = result.data
    if settings.DEBUG and result.errors:
        body["error"] = "; ".join(result.errors.get("detail", []))
    return Response(
        body,
        status=ERROR_STATUS_CODES.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


class InitializeTransactionView(APIView):
    """
    Start a provider transaction.

    POST /api/v1/payments/initialize/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Initialize payment transaction",
        tags=["Payments"],
        request=InitializeTransactionSerializer,
        responses={
            200: OpenApiResponse(response=PaymentResponseSerializer),
            400: OpenApiResponse(description="Invalid request or provider refusal"),
            409: OpenApiResponse(description="Registration cannot be paid"),
            503: OpenApiResponse(description="Payment service unavailable"),
        },
        examples=[
            OpenApiExample(
                "Initialize Request",
                value={
                    "email": "ada@example.com",
                    "amount": 5000,
                    "currency": "NGN",
                    "eventName": "Lagos Tech Summit",
                    "customerName": "Ada Obi",
                    "registrationId": "6f1c1a4e-1c7e-4d5e-9a55-3f1c2f7c9e10",
                },
                request_only=True,
            ),
        ],
    )
    def post(self, request):
        serializer = InitializeTransactionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "status": False,
                    "message": "Email and amount are required",
                    "errors": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = TransactionInitiator.initialize(serializer.to_params())
        if not result.success:
            return failure_response(result)

        return Response(
            {
                "status": True,
                "message": "Transaction initialized successfully",
                "data": result.data,
            }
        )


class VerifyTransactionView(APIView):
    """
    Verify a transaction with the provider and reconcile the registration.

    GET /api/v1/payments/verify/<reference>/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Verify payment transaction",
        tags=["Payments"],
        responses={
            200: OpenApiResponse(response=PaymentResponseSerializer),
            400: OpenApiResponse(description="Provider reported a failure"),
            503: OpenApiResponse(description="Verification service unavailable"),
        },
    )
    def get(self, request, reference: str):
        result = TransactionVerifier.verify(reference.strip())
        if not result.success:
            return failure_response(result)

        return Response(
            {
                "status": True,
                "message": "Transaction verification successful",
                "data": result.data,
            }
        )


class PaymentStatusView(APIView):
    """
    Read-only projection of a registration's payment fields.

    GET /api/v1/payments/status/<reference>/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Get payment status by reference",
        tags=["Payments"],
        responses={
            200: OpenApiResponse(response=PaymentResponseSerializer),
            404: OpenApiResponse(description="Registration not found"),
        },
    )
    def get(self, request, reference: str):
        registration = PaymentStateService.get_by_reference(reference)
        if registration is None:
            return Response(
                {"status": False, "message": "Registration not found"},
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response(
            {"status": True, "data": PaymentStatusSerializer(registration).data}
        )
