"""
ChangePlanCommand.

Command to move the caller's subscription to another plan.
"""

from dataclasses import dataclass

from core.domain.value_objects import CallerIdentity


@dataclass
class ChangePlanCommand:
    """Command to change plan."""

    caller: CallerIdentity
    target_plan: str
