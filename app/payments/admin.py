"""
Payment admin configuration.

Registers WebhookEvent so staff can inspect deliveries and requeue
failed ones.
"""

from django.contrib import admin

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Webhook events are immutable once received; only the processing
    status can be reset for a retry.
    """

    list_display = [
        "id",
        "provider",
        "event_type",
        "reference",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["provider", "status", "event_type", "created_at"]
    search_fields = ["id", "event_id", "reference", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "provider",
        "event_id",
        "event_type",
        "reference",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["requeue_for_retry"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "provider", "event_id", "event_type", "reference", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.action(description="Requeue selected events for retry")
    def requeue_for_retry(self, request, queryset):
        updated = queryset.exclude(status=WebhookEventStatus.PROCESSED).update(
            status=WebhookEventStatus.FAILED,
            retry_count=0,
        )
        self.message_user(request, f"{updated} webhook event(s) requeued.")

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        """Disable adding webhook events through admin."""
        return False
