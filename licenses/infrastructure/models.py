"""
License, ProcessedEvent and AuditLog models.
"""
import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone

from licenses.domain.license_key import generate_license_key, hash_license_key


class License(models.Model):
    """
    The local record of a tenant's entitlement.

    Mirrors the provider subscription; one row per tenant email.
    """

    STATUS_CHOICES = [
        ("active", "Active"),
        ("cancelled", "Cancelled"),
        ("inactive", "Inactive"),
        ("deletion_scheduled", "Deletion Scheduled"),
    ]

    PLAN_CHOICES = [
        ("monthly", "Monthly"),
        ("annual", "Annual"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    license_key = models.CharField(max_length=64, unique=True, db_index=True)
    key_hash = models.CharField(
        max_length=64, db_index=True, help_text="Hashed version for secure lookup"
    )
    email = models.EmailField(unique=True)
    stripe_customer_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    stripe_subscription_id = models.CharField(max_length=255, null=True, blank=True)
    plan_type = models.CharField(max_length=20, choices=PLAN_CHOICES, default="annual")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    expires_at = models.DateTimeField(null=True, blank=True)
    deletion_scheduled_at = models.DateTimeField(null=True, blank=True)
    last_event_at = models.DateTimeField(
        null=True, blank=True, help_text="Provider creation time of the last applied event"
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "licenses"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["stripe_subscription_id"],
                condition=Q(stripe_subscription_id__isnull=False),
                name="unique_license_subscription",
            ),
        ]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["stripe_subscription_id"]),
        ]

    def __str__(self):
        return f"{self.license_key} ({self.email})"

    def save(self, *args, **kwargs):
        """Generate license key and hash on first save."""
        if not self.license_key:
            self.license_key = generate_license_key()
        if not self.key_hash:
            self.key_hash = hash_license_key(self.license_key)
        super().save(*args, **kwargs)

    @property
    def is_active(self) -> bool:
        """
        Check if license currently grants access.

        Returns:
            True if license is active and not expired
        """
        if self.status not in ("active", "deletion_scheduled"):
            return False
        if self.expires_at and self.expires_at < timezone.now():
            return False
        return True


class ProcessedEvent(models.Model):
    """
    A provider event that has been claimed for processing.

    The unique ``event_id`` is the at-most-once guard for webhook deliveries.
    """

    STATUS_CHOICES = [
        ("processing", "Processing"),
        ("processed", "Processed"),
        ("ignored", "Ignored"),
        ("failed", "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="processing")
    outcome = models.TextField(blank=True, default="")
    event_created_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "processed_events"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event_type"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self):
        return f"{self.event_type} {self.event_id} ({self.status})"


class AuditLog(models.Model):
    """
    Immutable audit trail of all license-related changes.
    """

    ACTION_CHOICES = [
        ("license_issued", "License Issued"),
        ("license_renewed", "License Renewed"),
        ("license_cancelled", "License Cancelled"),
        ("license_deactivated", "License Deactivated"),
        ("plan_changed", "Plan Changed"),
        ("account_deletion_scheduled", "Account Deletion Scheduled"),
        ("account_deletion_cancelled", "Account Deletion Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    entity_type = models.CharField(max_length=50)
    entity_id = models.UUIDField()
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    changes = models.JSONField(default=dict, help_text="Details of the change")
    actor = models.CharField(max_length=255, help_text="Who performed the action")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "audit_logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["created_at"]),
            models.Index(fields=["action"]),
        ]

    def __str__(self):
        return f"{self.action} - {self.entity_type} {self.entity_id}"
