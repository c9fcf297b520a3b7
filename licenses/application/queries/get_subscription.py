"""
GetSubscriptionQuery.

Query to get the caller's license and live subscription state.
"""
from dataclasses import dataclass

from core.domain.value_objects import CallerIdentity


@dataclass
class GetSubscriptionQuery:
    """Query to get subscription status for the caller."""

    caller: CallerIdentity
