"""
License domain entity.

This is the core domain entity representing a tenant's entitlement.
It holds the reconciliation state machine and is independent of
infrastructure. Every transition returns a new instance.
"""
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from core.domain.value_objects import Email, LicenseStatus, PlanType
from licenses.domain.license_key import generate_license_key
from licenses.domain.services import calculate_expiry


@dataclass(frozen=True)
class License:
    """
    License domain entity.

    A cached projection of the provider's subscription for one tenant.
    This is an immutable value object with business logic.
    """

    id: uuid.UUID
    license_key: str
    email: Email
    plan_type: PlanType
    status: LicenseStatus
    expires_at: Optional[datetime]
    stripe_customer_id: Optional[str]
    stripe_subscription_id: Optional[str]
    deletion_scheduled_at: Optional[datetime]
    last_event_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        """Validate license entity."""
        if not self.license_key:
            raise ValueError("License key is required")
        if self.status == LicenseStatus.ACTIVE and self.expires_at is None:
            raise ValueError("An active license requires an expiration date")
        if self.status == LicenseStatus.DELETION_SCHEDULED:
            if self.deletion_scheduled_at is None:
                raise ValueError("Scheduled deletion requires a deletion date")
        elif self.deletion_scheduled_at is not None:
            raise ValueError("Deletion date is only valid while deletion is scheduled")

    @classmethod
    def issue(
        cls,
        email: str,
        plan_type: PlanType,
        now: datetime,
        stripe_customer_id: Optional[str] = None,
        stripe_subscription_id: Optional[str] = None,
        event_at: Optional[datetime] = None,
        license_id: Optional[uuid.UUID] = None,
    ) -> "License":
        """
        Issue a new active license after a completed checkout.

        Args:
            email: Tenant billing email
            plan_type: Purchased plan
            now: Current time
            stripe_customer_id: Provider customer id
            stripe_subscription_id: Provider subscription id
            event_at: Provider creation time of the triggering event
            license_id: Optional UUID (generated if not provided)

        Returns:
            License entity instance
        """
        return cls(
            id=license_id or uuid.uuid4(),
            license_key=generate_license_key(),
            email=Email(email),
            plan_type=plan_type,
            status=LicenseStatus.ACTIVE,
            expires_at=calculate_expiry(plan_type, now),
            stripe_customer_id=stripe_customer_id,
            stripe_subscription_id=stripe_subscription_id,
            deletion_scheduled_at=None,
            last_event_at=event_at,
            created_at=now,
            updated_at=now,
        )

    def is_active(self, current_time: datetime) -> bool:
        """
        Check if the license currently grants access.

        Args:
            current_time: Current time

        Returns:
            True if the license is active and not expired
        """
        if self.status not in (LicenseStatus.ACTIVE, LicenseStatus.DELETION_SCHEDULED):
            return False
        return self.expires_at is not None and self.expires_at > current_time

    def is_stale(self, event_at: Optional[datetime]) -> bool:
        """True when ``event_at`` is strictly older than the last applied event."""
        if event_at is None or self.last_event_at is None:
            return False
        return event_at < self.last_event_at

    def _touch(self, now: datetime, event_at: Optional[datetime]) -> dict:
        changes = {"updated_at": now}
        if event_at is not None and (
            self.last_event_at is None or event_at > self.last_event_at
        ):
            changes["last_event_at"] = event_at
        return changes

    def reissue(
        self,
        plan_type: PlanType,
        now: datetime,
        stripe_customer_id: Optional[str],
        stripe_subscription_id: Optional[str],
        event_at: Optional[datetime] = None,
    ) -> "License":
        """
        Re-link a returning tenant's license to a new subscription.

        The license key is kept; billing linkage and expiry are replaced.
        """
        if self.status == LicenseStatus.ACTIVE:
            raise ValueError("License is already active")
        return replace(
            self,
            plan_type=plan_type,
            status=LicenseStatus.ACTIVE,
            expires_at=calculate_expiry(plan_type, now),
            stripe_customer_id=stripe_customer_id or self.stripe_customer_id,
            stripe_subscription_id=stripe_subscription_id,
            deletion_scheduled_at=None,
            **self._touch(now, event_at),
        )

    def renew(self, now: datetime, event_at: Optional[datetime] = None) -> "License":
        """
        Advance the expiration by one plan interval from ``now``.

        The interval is measured from the processing time rather than the
        previous expiration so late deliveries never leave a gap.
        A scheduled deletion keeps its status.
        """
        if self.status == LicenseStatus.CANCELLED:
            raise ValueError("Cannot renew a cancelled license")

        new_status = (
            LicenseStatus.DELETION_SCHEDULED
            if self.status == LicenseStatus.DELETION_SCHEDULED
            else LicenseStatus.ACTIVE
        )
        return replace(
            self,
            status=new_status,
            expires_at=calculate_expiry(self.plan_type, now),
            **self._touch(now, event_at),
        )

    def end_subscription(
        self, now: datetime, event_at: Optional[datetime] = None
    ) -> "License":
        """Apply the provider's final subscription deletion."""
        return replace(
            self,
            status=LicenseStatus.CANCELLED,
            deletion_scheduled_at=None,
            **self._touch(now, event_at),
        )

    def cancel(self, now: datetime) -> "License":
        """Cancel immediately on the tenant's request."""
        return self.end_subscription(now)

    def mark_payment_failed(
        self, now: datetime, event_at: Optional[datetime] = None
    ) -> "License":
        """Deactivate the license after a failed invoice payment."""
        if self.status == LicenseStatus.CANCELLED:
            raise ValueError("Cannot deactivate a cancelled license")
        return replace(
            self,
            status=LicenseStatus.INACTIVE,
            deletion_scheduled_at=None,
            **self._touch(now, event_at),
        )

    def change_plan(self, plan_type: PlanType, now: datetime) -> "License":
        """Record the plan the tenant switched to."""
        return replace(self, plan_type=plan_type, updated_at=now)

    def schedule_deletion(self, deletion_at: datetime, now: datetime) -> "License":
        """
        Start the account-deletion grace period.

        Args:
            deletion_at: When the account will be deleted
            now: Current time

        Returns:
            New License instance with deletion scheduled
        """
        if self.status == LicenseStatus.DELETION_SCHEDULED:
            return self
        return replace(
            self,
            status=LicenseStatus.DELETION_SCHEDULED,
            deletion_scheduled_at=deletion_at,
            updated_at=now,
        )

    def cancel_deletion(self, now: datetime) -> "License":
        """
        Abort a scheduled account deletion and restore the license.

        Returns:
            New License instance with active status
        """
        if self.status != LicenseStatus.DELETION_SCHEDULED:
            raise ValueError("No account deletion is scheduled")
        return replace(
            self,
            status=LicenseStatus.ACTIVE,
            deletion_scheduled_at=None,
            expires_at=self.expires_at or now,
            updated_at=now,
        )
