"""
ListInvoicesQuery.

Query to list the caller's recent invoices.
"""
from dataclasses import dataclass

from core.domain.value_objects import CallerIdentity


@dataclass
class ListInvoicesQuery:
    """Query to list invoices for the caller."""

    caller: CallerIdentity
    limit: int = 12
