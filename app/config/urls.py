"""
URL configuration for the event booking payments service.

URL Structure:
    /                                  - ReDoc API documentation
    /schema/                           - OpenAPI schema (YAML)
    /admin/                            - Django admin interface
    /health/                           - Health check endpoint
    /api/v1/registrations/             - Registration endpoints
        (POST)                         - Create a registration
        {id}/                          - Registration detail
        {id}/payment-status/           - Staff payment status update (PATCH)
    /api/v1/events/{id}/registrations/ - Registrations for an event
    /api/v1/payments/                  - Payment endpoints
        initialize/                    - Start a provider transaction (POST)
        verify/{reference}/            - Verify a transaction (GET)
        status/{reference}/            - Registration payment status (GET)
        webhook/                       - Default provider webhook (POST)
        webhooks/{provider}/           - Provider specific webhook (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# All routes here are prefixed with /api/v1/
api_v1_patterns = [
    path("", include("events.urls")),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Event Booking Admin"
admin.site.site_title = "Event Booking Admin"
admin.site.index_title = "Registrations and payments"
