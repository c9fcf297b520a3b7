"""
License and subscription DTOs for API responses.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass
class LicenseDTO:
    """DTO for license information."""

    id: uuid.UUID
    license_key: str
    email: str
    plan_type: str
    status: str
    expires_at: Optional[datetime]
    deletion_scheduled_at: Optional[datetime]
    created_at: datetime


@dataclass
class WebhookResultDTO:
    """DTO for webhook acknowledgment."""

    event_id: str
    event_type: str
    action: str
    outcome: str
    duplicate: bool = False
    received: bool = True


@dataclass
class CancellationResultDTO:
    """DTO for cancel subscription response."""

    refunded: bool
    mode: str
    refund_amount: float
    effective_date: Optional[datetime]
    message: str


@dataclass
class PlanChangeResultDTO:
    """DTO for change plan response."""

    new_plan: str
    effective_date: Optional[datetime]
    prorated_amount: float
    message: str


@dataclass
class ReactivationResultDTO:
    """DTO for reactivate subscription response."""

    cancel_at_period_end: bool
    message: str


@dataclass
class AccountDeletionDTO:
    """DTO for account deletion responses."""

    message: str
    deletion_date: Optional[datetime] = None


@dataclass
class SubscriptionStatusDTO:
    """DTO for the live subscription view."""

    license: LicenseDTO
    subscription_id: Optional[str]
    plan: str
    status: str
    current_period_start: Optional[datetime]
    current_period_end: Optional[datetime]
    cancel_at_period_end: bool
    price: Optional[float]
    currency: Optional[str]
    created: Optional[datetime]
    cooling_days_left: int
    fallback: bool = False


@dataclass
class InvoiceDTO:
    """DTO for an invoice, amounts in major units."""

    id: str
    number: Optional[str]
    status: Optional[str]
    amount_paid: float
    amount_due: float
    total: float
    currency: Optional[str]
    created: Optional[datetime]
    invoice_pdf: Optional[str]
    hosted_invoice_url: Optional[str]


@dataclass
class InvoiceListDTO:
    """DTO for the invoice list."""

    invoices: List[InvoiceDTO]


@dataclass
class PortalSessionDTO:
    """DTO for a billing portal session."""

    url: str


@dataclass
class CheckoutSessionDTO:
    """DTO for a hosted checkout session."""

    session_id: str
    url: str
    plan: str
