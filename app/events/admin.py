"""
Events admin configuration.

Payment fields on Registration are read-only here; status changes go
through the admin actions, which use the same transition guard as the
payment endpoints.
"""

from django.contrib import admin, messages

from payments.services import PaymentStateService
from payments.state_machines import PaymentStatus

from events.models import Event, Registration


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "starts_at", "location", "created_at"]
    search_fields = ["id", "name", "location"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    """
    Admin configuration for Registration.

    Provides visibility into payment status and provider payloads.
    """

    list_display = [
        "id",
        "event",
        "customer_email",
        "ticket_type",
        "ticket_quantity",
        "total_amount",
        "currency",
        "payment_method",
        "payment_status",
        "payment_reference",
        "created_at",
    ]
    list_filter = ["payment_status", "payment_method", "created_at"]
    search_fields = ["id", "customer_email", "customer_name", "payment_reference"]
    list_select_related = ["event"]
    readonly_fields = [
        "id",
        "payment_status",
        "payment_reference",
        "provider_data",
        "version",
        "paid_at",
        "failed_at",
        "cancelled_at",
        "refunded_at",
        "last_reconciled_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    actions = ["mark_paid", "mark_cancelled", "mark_refunded"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "event"),
            },
        ),
        (
            "Attendee",
            {
                "fields": (
                    "customer_name",
                    "customer_email",
                    "customer_phone",
                    "ticket_type",
                    "ticket_quantity",
                ),
            },
        ),
        (
            "Payment",
            {
                "fields": (
                    "total_amount",
                    "currency",
                    "payment_method",
                    "payment_status",
                    "payment_reference",
                    "version",
                ),
            },
        ),
        (
            "Provider Data",
            {
                "fields": ("provider_data", "metadata"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "paid_at",
                    "failed_at",
                    "cancelled_at",
                    "refunded_at",
                    "last_reconciled_at",
                    "created_at",
                    "updated_at",
                ),
            },
        ),
    )

    def _transition_selected(self, request, queryset, target: str) -> None:
        changed = 0
        rejected = 0
        for registration in queryset:
            result = PaymentStateService.transition(registration, target, source="admin")
            if not result.success:
                rejected += 1
            elif result.data.changed:
                changed += 1

        self.message_user(request, f"{changed} registration(s) moved to {target}.")
        if rejected:
            self.message_user(
                request,
                f"{rejected} registration(s) cannot move to {target}.",
                level=messages.WARNING,
            )

    @admin.action(description="Mark selected registrations as paid")
    def mark_paid(self, request, queryset):
        self._transition_selected(request, queryset, PaymentStatus.PAID)

    @admin.action(description="Cancel selected registrations")
    def mark_cancelled(self, request, queryset):
        self._transition_selected(request, queryset, PaymentStatus.CANCELLED)

    @admin.action(description="Mark selected registrations as refunded")
    def mark_refunded(self, request, queryset):
        self._transition_selected(request, queryset, PaymentStatus.REFUNDED)
