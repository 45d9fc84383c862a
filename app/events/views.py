"""
DRF views for events app.

Endpoints:
    POST /api/v1/registrations/ - Create a registration
    GET /api/v1/registrations/<id>/ - Registration detail
    PATCH /api/v1/registrations/<id>/payment-status/ - Staff status update
    GET /api/v1/events/<event_id>/registrations/ - Registrations for an event
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from core.helpers import get_client_ip

from events.models import Registration
from events.serializers import (
    PaymentStatusUpdateSerializer,
    RegistrationCreateSerializer,
    RegistrationSerializer,
)
from events.services import RegistrationService

ERROR_STATUS_CODES = {
    "EVENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "REGISTRATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATE_TRANSITION": status.HTTP_409_CONFLICT,
    "CONCURRENT_MODIFICATION": status.HTTP_409_CONFLICT,
    "REFERENCE_IMMUTABLE": status.HTTP_409_CONFLICT,
    "REFERENCE_IN_USE": status.HTTP_409_CONFLICT,
}


def error_status(error_code: str | None) -> int:
    return ERROR_STATUS_CODES.get(error_code, status.HTTP_400_BAD_REQUEST)


class RegistrationCreateView(APIView):
    """
    POST /api/v1/registrations/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Register for an event",
        tags=["Registrations"],
        request=RegistrationCreateSerializer,
        responses={
            201: RegistrationSerializer,
            400: OpenApiResponse(description="Invalid ticket, amount or duplicate"),
            404: OpenApiResponse(description="Event not found"),
        },
    )
    def post(self, request):
        serializer = RegistrationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RegistrationService.create(
            serializer.validated_data,
            request_context={
                "user_agent": request.META.get("HTTP_USER_AGENT", ""),
                "ip_address": get_client_ip(request),
                "referrer": request.META.get("HTTP_REFERER", ""),
            },
        )
        if not result.success:
            return Response(result.to_response(), status=error_status(result.error_code))

        return Response(
            {
                "success": True,
                "message": "Registration created successfully",
                "data": RegistrationSerializer(result.data).data,
            },
            status=status.HTTP_201_CREATED,
        )


class RegistrationDetailView(APIView):
    """
    GET /api/v1/registrations/<id>/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Get registration",
        tags=["Registrations"],
        responses={200: RegistrationSerializer},
    )
    def get(self, request, pk):
        registration = get_object_or_404(
            Registration.objects.select_related("event"), pk=pk
        )
        return Response(RegistrationSerializer(registration).data)


class RegistrationPaymentStatusView(APIView):
    """
    Staff-only payment status update.

    PATCH /api/v1/registrations/<id>/payment-status/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="Update registration payment status",
        tags=["Registrations"],
        request=PaymentStatusUpdateSerializer,
        responses={
            200: RegistrationSerializer,
            404: OpenApiResponse(description="Registration not found"),
            409: OpenApiResponse(description="Transition not allowed"),
        },
    )
    def patch(self, request, pk):
        serializer = PaymentStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = RegistrationService.update_payment_status(
            pk,
            data["payment_status"],
            payment_reference=data.get("payment_reference") or None,
            notes=data.get("notes") or None,
            force=data["force"],
        )
        if not result.success:
            return Response(result.to_response(), status=error_status(result.error_code))

        return Response(
            {
                "success": True,
                "message": "Payment status updated successfully",
                "data": RegistrationSerializer(result.data).data,
            }
        )


class EventRegistrationListView(APIView):
    """
    GET /api/v1/events/<event_id>/registrations/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="List registrations for an event",
        tags=["Registrations"],
        parameters=[
            OpenApiParameter("status", str, description="Filter by payment status"),
            OpenApiParameter("payment_method", str, description="Filter by payment method"),
        ],
        responses={200: RegistrationSerializer(many=True)},
    )
    def get(self, request, event_id):
        registrations = RegistrationService.list_for_event(
            event_id,
            status=request.query_params.get("status"),
            payment_method=request.query_params.get("payment_method"),
        )
        data = RegistrationSerializer(registrations, many=True).data
        return Response({"success": True, "count": len(data), "data": data})
