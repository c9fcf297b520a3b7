"""
ReconcileEventCommand.

Command to apply a verified provider webhook event to local license state.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class ReconcileEventCommand:
    """Command carrying a verified, decoded webhook payload."""

    payload: Dict[str, Any]
