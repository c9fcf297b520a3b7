"""
Django admin configuration for licenses app.
"""
import json

from django.contrib import admin
from django.utils.html import format_html

from licenses.infrastructure.models import AuditLog, License, ProcessedEvent


@admin.register(License)
class LicenseAdmin(admin.ModelAdmin):
    """Admin interface for License model."""

    list_display = [
        "license_key",
        "email",
        "plan_type",
        "status_display",
        "expires_at",
        "deletion_scheduled_at",
        "created_at",
    ]
    list_filter = ["status", "plan_type", "expires_at", "created_at"]
    search_fields = [
        "license_key",
        "email",
        "stripe_customer_id",
        "stripe_subscription_id",
    ]
    readonly_fields = [
        "id",
        "license_key",
        "key_hash",
        "last_event_at",
        "created_at",
        "updated_at",
    ]
    fieldsets = (
        (
            "Basic Information",
            {
                "fields": ("id", "license_key", "email", "plan_type", "status"),
            },
        ),
        (
            "Billing",
            {
                "fields": ("stripe_customer_id", "stripe_subscription_id", "last_event_at"),
            },
        ),
        (
            "Expiration",
            {
                "fields": ("expires_at", "deletion_scheduled_at"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("key_hash", "created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def status_display(self, obj):
        """Display status with color coding."""
        colors = {
            "active": "green",
            "deletion_scheduled": "orange",
            "inactive": "gray",
            "cancelled": "red",
        }
        color = colors.get(obj.status, "black")
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color,
            obj.status.upper(),
        )

    status_display.short_description = "Status"


@admin.register(ProcessedEvent)
class ProcessedEventAdmin(admin.ModelAdmin):
    """Admin interface for ProcessedEvent model."""

    list_display = ["event_id", "event_type", "status", "event_created_at", "created_at"]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["event_id", "outcome"]
    readonly_fields = [
        "id",
        "event_id",
        "event_type",
        "outcome",
        "event_created_at",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request):
        """Processed events are recorded by the webhook only."""
        return False


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Admin interface for AuditLog model."""

    list_display = [
        "action",
        "entity_type",
        "entity_id",
        "actor",
        "created_at",
    ]
    list_filter = ["action", "entity_type", "created_at"]
    search_fields = ["actor", "entity_id"]
    readonly_fields = ["id", "created_at", "changes_display"]
    fieldsets = (
        (
            "Basic Information",
            {
                "fields": ("id", "entity_type", "entity_id", "action"),
            },
        ),
        (
            "Details",
            {
                "fields": ("actor", "changes_display", "created_at"),
            },
        ),
    )

    def changes_display(self, obj):
        """Display changes in a formatted way."""
        if obj.changes:
            return format_html(
                '<pre style="background: #f5f5f5; padding: 10px; '
                'border-radius: 4px; overflow-x: auto;">{}</pre>',
                json.dumps(obj.changes, indent=2),
            )
        return "-"

    changes_display.short_description = "Changes"

    def has_add_permission(self, request):
        """Audit logs are read-only."""
        return False

    def has_change_permission(self, request, obj=None):
        """Audit logs are read-only."""
        return False

    def has_delete_permission(self, request, obj=None):
        """Audit logs should not be deleted."""
        return False
