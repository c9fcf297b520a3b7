"""
Unit tests for account deletion handlers.
"""

from datetime import timedelta

import pytest

from core.domain.exceptions import InvalidLicenseStatusError, LicenseNotFoundError
from core.domain.value_objects import LicenseStatus
from licenses.application.commands.account_deletion import (
    CancelAccountDeletionCommand,
    ScheduleAccountDeletionCommand,
)
from licenses.application.handlers.account_deletion_handlers import (
    CancelAccountDeletionHandler,
    ScheduleAccountDeletionHandler,
)
from licenses.domain.events import AccountDeletionCancelled, AccountDeletionScheduled


@pytest.fixture
def schedule_handler(memory_license_repository, event_bus, clock):
    return ScheduleAccountDeletionHandler(
        license_repository=memory_license_repository,
        grace_days=14,
        event_bus=event_bus,
        clock=clock,
    )


@pytest.fixture
def cancel_handler(memory_license_repository, event_bus, clock):
    return CancelAccountDeletionHandler(
        license_repository=memory_license_repository,
        event_bus=event_bus,
        clock=clock,
    )


@pytest.mark.asyncio
class TestScheduleAccountDeletion:
    """Tests for ScheduleAccountDeletionHandler."""

    async def test_schedule_deletion(
        self, schedule_handler, memory_license_repository, make_license, caller, recorder, now
    ):
        """Test the grace period starts from now."""
        license = memory_license_repository.add(make_license())

        result = await schedule_handler.handle(ScheduleAccountDeletionCommand(caller=caller))

        assert result.message == "Account deletion scheduled"
        assert result.deletion_date == now + timedelta(days=14)
        stored = memory_license_repository.get(license.id)
        assert stored.status == LicenseStatus.DELETION_SCHEDULED
        assert stored.deletion_scheduled_at == now + timedelta(days=14)
        assert isinstance(recorder.events[0], AccountDeletionScheduled)

    async def test_schedule_twice_keeps_first_date(
        self, memory_license_repository, make_license, caller, recorder, event_bus, now
    ):
        """Test a repeated request neither moves the date nor republishes."""
        memory_license_repository.add(make_license())
        first = ScheduleAccountDeletionHandler(
            memory_license_repository, event_bus=event_bus, clock=lambda: now
        )
        later = ScheduleAccountDeletionHandler(
            memory_license_repository, event_bus=event_bus, clock=lambda: now + timedelta(days=2)
        )

        await first.handle(ScheduleAccountDeletionCommand(caller=caller))
        result = await later.handle(ScheduleAccountDeletionCommand(caller=caller))

        assert result.deletion_date == now + timedelta(days=14)
        assert len(recorder.events) == 1

    async def test_schedule_for_inactive_license(
        self, schedule_handler, memory_license_repository, make_license, caller
    ):
        """Test only active licenses can be scheduled for deletion."""
        memory_license_repository.add(make_license(status=LicenseStatus.CANCELLED))

        with pytest.raises(InvalidLicenseStatusError):
            await schedule_handler.handle(ScheduleAccountDeletionCommand(caller=caller))

    async def test_schedule_without_license(self, schedule_handler, caller):
        with pytest.raises(LicenseNotFoundError):
            await schedule_handler.handle(ScheduleAccountDeletionCommand(caller=caller))


@pytest.mark.asyncio
class TestCancelAccountDeletion:
    """Tests for CancelAccountDeletionHandler."""

    async def test_cancel_scheduled_deletion(
        self, cancel_handler, memory_license_repository, make_license, caller, recorder
    ):
        """Test the license returns to active."""
        license = memory_license_repository.add(
            make_license(status=LicenseStatus.DELETION_SCHEDULED)
        )

        result = await cancel_handler.handle(CancelAccountDeletionCommand(caller=caller))

        assert result.message == "Account deletion cancelled"
        stored = memory_license_repository.get(license.id)
        assert stored.status == LicenseStatus.ACTIVE
        assert stored.deletion_scheduled_at is None
        assert isinstance(recorder.events[0], AccountDeletionCancelled)

    async def test_cancel_when_nothing_scheduled(
        self, cancel_handler, memory_license_repository, make_license, caller, recorder
    ):
        """Test cancelling without a schedule is rejected."""
        license = memory_license_repository.add(make_license())

        with pytest.raises(InvalidLicenseStatusError):
            await cancel_handler.handle(CancelAccountDeletionCommand(caller=caller))
        assert memory_license_repository.get(license.id) == license
        assert recorder.events == []
