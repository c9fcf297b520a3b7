"""
Account deletion handlers.

Scheduling and withdrawing account deletion is purely local; the
payment provider is not contacted.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from django.utils import timezone

from core.domain.events import EventBus
from core.domain.exceptions import InvalidLicenseStatusError, LicenseNotFoundError
from core.domain.value_objects import LicenseStatus
from core.infrastructure.events import event_bus as default_event_bus
from licenses.application.commands.account_deletion import (
    CancelAccountDeletionCommand,
    ScheduleAccountDeletionCommand,
)
from licenses.application.dto.license_dto import AccountDeletionDTO
from licenses.domain.events import AccountDeletionCancelled, AccountDeletionScheduled
from licenses.domain.license import License
from licenses.domain.services import DEFAULT_DELETION_GRACE_DAYS, calculate_deletion_date
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


class ScheduleAccountDeletionHandler:
    """Handler for ScheduleAccountDeletionCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        grace_days: int = DEFAULT_DELETION_GRACE_DAYS,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        """Initialize handler with repository."""
        self.license_repository = license_repository
        self.grace_days = grace_days
        self.event_bus = event_bus or default_event_bus
        self.clock = clock

    async def handle(self, command: ScheduleAccountDeletionCommand) -> AccountDeletionDTO:
        """
        Handle schedule account deletion command.

        Scheduling twice keeps the first deletion date.

        Args:
            command: ScheduleAccountDeletionCommand

        Returns:
            AccountDeletionDTO with the deletion date

        Raises:
            LicenseNotFoundError: If the caller has no license
            InvalidLicenseStatusError: If the license is not active
        """
        now = self.clock()
        deletion_at = calculate_deletion_date(now, self.grace_days)
        scheduled = {"new": False}

        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None:
                raise LicenseNotFoundError()
            if current.status == LicenseStatus.DELETION_SCHEDULED:
                return current
            if current.status != LicenseStatus.ACTIVE:
                raise InvalidLicenseStatusError(
                    f"Cannot schedule deletion of a {current.status} license"
                )
            scheduled["new"] = True
            return current.schedule_deletion(deletion_at, now)

        license = await self.license_repository.update_with_lock(
            mutate, email=command.caller.email.value
        )

        if scheduled["new"]:
            logger.info(
                f"Account deletion scheduled for license {license.id} "
                f"at {license.deletion_scheduled_at.isoformat()}"
            )
            await self.event_bus.publish(
                AccountDeletionScheduled(
                    license_id=license.id, deletion_at=license.deletion_scheduled_at
                )
            )

        return AccountDeletionDTO(
            message="Account deletion scheduled",
            deletion_date=license.deletion_scheduled_at,
        )


class CancelAccountDeletionHandler:
    """Handler for CancelAccountDeletionCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        """Initialize handler with repository."""
        self.license_repository = license_repository
        self.event_bus = event_bus or default_event_bus
        self.clock = clock

    async def handle(self, command: CancelAccountDeletionCommand) -> AccountDeletionDTO:
        """
        Handle cancel account deletion command.

        Args:
            command: CancelAccountDeletionCommand

        Returns:
            AccountDeletionDTO

        Raises:
            LicenseNotFoundError: If the caller has no license
            InvalidLicenseStatusError: If no deletion is scheduled
        """
        now = self.clock()

        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None:
                raise LicenseNotFoundError()
            if current.status != LicenseStatus.DELETION_SCHEDULED:
                raise InvalidLicenseStatusError("No account deletion is scheduled")
            return current.cancel_deletion(now)

        license = await self.license_repository.update_with_lock(
            mutate, email=command.caller.email.value
        )
        logger.info(f"Account deletion cancelled for license {license.id}")
        await self.event_bus.publish(AccountDeletionCancelled(license_id=license.id))

        return AccountDeletionDTO(message="Account deletion cancelled")
