"""
ReactivateSubscriptionCommand.

Command to withdraw a pending end-of-period cancellation.
"""

from dataclasses import dataclass

from core.domain.value_objects import CallerIdentity


@dataclass
class ReactivateSubscriptionCommand:
    """Command to reactivate a subscription pending cancellation."""

    caller: CallerIdentity
