"""
CreatePortalSessionCommand.

Command to open a hosted billing portal session for the caller.
"""

from dataclasses import dataclass
from typing import Optional

from core.domain.value_objects import CallerIdentity


@dataclass
class CreatePortalSessionCommand:
    """Command to create a billing portal session."""

    caller: CallerIdentity
    return_url: Optional[str] = None
