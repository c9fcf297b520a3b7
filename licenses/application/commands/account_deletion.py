"""
Account deletion commands.

Commands to schedule or withdraw the deletion of a tenant account.
"""

from dataclasses import dataclass

from core.domain.value_objects import CallerIdentity


@dataclass
class ScheduleAccountDeletionCommand:
    """Command to start the account-deletion grace period."""

    caller: CallerIdentity


@dataclass
class CancelAccountDeletionCommand:
    """Command to cancel a scheduled account deletion."""

    caller: CallerIdentity
