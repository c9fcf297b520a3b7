"""
CancelSubscriptionCommand.

Command to cancel the caller's subscription.
"""

from dataclasses import dataclass

from core.domain.value_objects import CallerIdentity


@dataclass
class CancelSubscriptionCommand:
    """Command to cancel a subscription, refunding inside the cooling period."""

    caller: CallerIdentity
