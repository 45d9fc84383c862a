"""
URL configuration for the events app.

Routes (prefixed with /api/v1/):
    - registrations/ - Create a registration (POST)
    - registrations/<id>/ - Registration detail (GET)
    - registrations/<id>/payment-status/ - Staff status update (PATCH)
    - events/<event_id>/registrations/ - Registrations for an event (GET)
"""

from django.urls import path

from events import views

app_name = "events"

urlpatterns = [
    path("registrations/", views.RegistrationCreateView.as_view(), name="registration-create"),
    path(
        "registrations/<uuid:pk>/",
        views.RegistrationDetailView.as_view(),
        name="registration-detail",
    ),
    path(
        "registrations/<uuid:pk>/payment-status/",
        views.RegistrationPaymentStatusView.as_view(),
        name="registration-payment-status",
    ),
    path(
        "events/<uuid:event_id>/registrations/",
        views.EventRegistrationListView.as_view(),
        name="event-registrations",
    ),
]
