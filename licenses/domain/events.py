"""
License domain events.

Domain events represent something that happened in the license domain.
"""

import uuid
from datetime import datetime
from typing import Optional

from core.domain.events import DomainEvent


class LicenseIssued(DomainEvent):
    """Event raised when a license is issued or re-issued after checkout."""

    def __init__(
        self,
        license_id: uuid.UUID,
        license_key: str,
        email: str,
        plan_type: str,
        expires_at: datetime,
        reissued: bool = False,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize LicenseIssued event.

        Args:
            license_id: License UUID
            license_key: Human readable license key
            email: Tenant email the key is delivered to
            plan_type: Purchased plan
            expires_at: Expiration of the first billing interval
            reissued: True when an existing license was relinked
            occurred_at: When the event occurred
        """
        super().__init__(aggregate_id=str(license_id), occurred_at=occurred_at)
        self.license_id = license_id
        self.license_key = license_key
        self.email = email
        self.plan_type = plan_type
        self.expires_at = expires_at
        self.reissued = reissued


class LicenseRenewed(DomainEvent):
    """Event raised when a license is renewed."""

    def __init__(
        self,
        license_id: uuid.UUID,
        new_expiration: datetime,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=str(license_id), occurred_at=occurred_at)
        self.license_id = license_id
        self.new_expiration = new_expiration


class LicenseCancelled(DomainEvent):
    """Event raised when a license reaches the cancelled state."""

    def __init__(
        self,
        license_id: uuid.UUID,
        reason: str,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=str(license_id), occurred_at=occurred_at)
        self.license_id = license_id
        self.reason = reason


class LicenseDeactivated(DomainEvent):
    """Event raised when a failed payment deactivates a license."""

    def __init__(
        self,
        license_id: uuid.UUID,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=str(license_id), occurred_at=occurred_at)
        self.license_id = license_id


class PlanChanged(DomainEvent):
    """Event raised when a tenant switches plan."""

    def __init__(
        self,
        license_id: uuid.UUID,
        old_plan: str,
        new_plan: str,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=str(license_id), occurred_at=occurred_at)
        self.license_id = license_id
        self.old_plan = old_plan
        self.new_plan = new_plan


class AccountDeletionScheduled(DomainEvent):
    """Event raised when a tenant schedules account deletion."""

    def __init__(
        self,
        license_id: uuid.UUID,
        deletion_at: datetime,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=str(license_id), occurred_at=occurred_at)
        self.license_id = license_id
        self.deletion_at = deletion_at


class AccountDeletionCancelled(DomainEvent):
    """Event raised when a scheduled account deletion is withdrawn."""

    def __init__(
        self,
        license_id: uuid.UUID,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=str(license_id), occurred_at=occurred_at)
        self.license_id = license_id
