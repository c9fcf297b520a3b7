"""
Transient views of provider billing objects.

Snapshots are read from the payment provider on demand and never cached
beyond a single command.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

TERMINATED_STATUSES = frozenset({"canceled", "incomplete_expired"})


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Live state of a provider subscription."""

    id: str
    status: str
    created_at: datetime
    current_period_start: Optional[datetime]
    current_period_end: Optional[datetime]
    cancel_at_period_end: bool
    price_id: Optional[str]
    item_id: Optional[str]
    customer_id: Optional[str] = None
    pending_price_id: Optional[str] = None
    unit_amount: Optional[int] = None
    currency: Optional[str] = None
    interval: Optional[str] = None

    @property
    def is_terminated(self) -> bool:
        """True when the provider has fully ended the subscription."""
        return self.status in TERMINATED_STATUSES

    def has_price(self, price_id: str) -> bool:
        """True when the subscription is on, or pending a move to, ``price_id``."""
        return price_id in (self.price_id, self.pending_price_id)


@dataclass(frozen=True)
class InvoiceSnapshot:
    """A provider invoice, amounts in minor units."""

    id: str
    status: Optional[str]
    paid: bool
    amount_paid: int
    amount_due: int
    total: int
    currency: Optional[str]
    payment_intent_id: Optional[str]
    created_at: Optional[datetime]
    number: Optional[str] = None
    pdf_url: Optional[str] = None
    hosted_url: Optional[str] = None

    @property
    def is_refundable(self) -> bool:
        """A settled charge that a refund can be issued against."""
        return self.paid and self.amount_paid > 0 and bool(self.payment_intent_id)


@dataclass(frozen=True)
class RefundSnapshot:
    """Result of a refund request."""

    id: str
    amount: int
    status: Optional[str]


@dataclass(frozen=True)
class CheckoutSessionSnapshot:
    """A hosted checkout session opened with the provider."""

    id: str
    url: str


def to_major_units(amount: Optional[int]) -> float:
    """Convert a minor-unit amount (cents) to major units."""
    return round((amount or 0) / 100, 2)
