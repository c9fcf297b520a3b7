"""
Pytest configuration and shared fixtures.
"""

import asyncio
import hashlib
import hmac
import json
import time
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Dict, List, Optional, Set

import pytest
from rest_framework.test import APIClient

from core.domain.events import DomainEvent, EventHandler
from core.domain.exceptions import PaymentProviderError
from core.domain.value_objects import CallerIdentity, Email, LicenseStatus, PlanType
from core.infrastructure.events import InMemoryEventBus
from licenses.domain.events import (
    AccountDeletionCancelled,
    AccountDeletionScheduled,
    LicenseCancelled,
    LicenseDeactivated,
    LicenseIssued,
    LicenseRenewed,
    PlanChanged,
)
from licenses.domain.license import License
from licenses.domain.subscription import (
    CheckoutSessionSnapshot,
    InvoiceSnapshot,
    RefundSnapshot,
    SubscriptionSnapshot,
)
from licenses.infrastructure.caller_resolver import sign_staff_cookie
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository
from licenses.infrastructure.repositories.django_processed_event_repository import (
    DjangoProcessedEventRepository,
)
from licenses.ports.license_repository import LicenseMutation, LicenseRepository
from licenses.ports.payment_gateway import PaymentGateway
from licenses.ports.processed_event_repository import (
    ProcessedEventRepository,
    ProcessedEventStatus,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
WEBHOOK_SECRET = "whsec_test_secret"
MONTHLY_PRICE = "price_monthly_test"
ANNUAL_PRICE = "price_annual_test"
PRICES = {"monthly": MONTHLY_PRICE, "annual": ANNUAL_PRICE}


# ---------------------------------------------------------------------------
# In-memory adapters
# ---------------------------------------------------------------------------


class InMemoryLicenseRepository(LicenseRepository):
    """LicenseRepository keeping licenses in a dict, serialized by an asyncio lock."""

    def __init__(self):
        self.licenses: Dict[uuid.UUID, License] = {}
        self._lock = asyncio.Lock()

    def add(self, license: License) -> License:
        self.licenses[license.id] = license
        return license

    def get(self, license_id: uuid.UUID) -> License:
        return self.licenses[license_id]

    def _by_email(self, email: str) -> Optional[License]:
        email = email.strip().lower()
        return next((lic for lic in self.licenses.values() if lic.email.value == email), None)

    def _by_subscription(self, subscription_id: str) -> Optional[License]:
        return next(
            (
                lic
                for lic in self.licenses.values()
                if lic.stripe_subscription_id == subscription_id
            ),
            None,
        )

    async def find_by_email(self, email: str) -> Optional[License]:
        return self._by_email(email)

    async def find_by_subscription_id(self, subscription_id: str) -> Optional[License]:
        return self._by_subscription(subscription_id)

    async def update_with_lock(
        self,
        mutation: LicenseMutation,
        email: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> Optional[License]:
        if (email is None) == (subscription_id is None):
            raise ValueError("Exactly one of email and subscription_id is required")
        async with self._lock:
            current = self._by_email(email) if email else self._by_subscription(subscription_id)
            updated = mutation(current)
            if updated is None:
                return None
            if updated is current:
                return current
            return self.add(updated)


class InMemoryProcessedEventRepository(ProcessedEventRepository):
    """ProcessedEventRepository backed by a dict."""

    def __init__(self):
        self.events: Dict[str, dict] = {}

    async def claim(self, event_id, event_type, event_created_at=None) -> bool:
        existing = self.events.get(event_id)
        if existing is None:
            self.events[event_id] = {
                "event_type": event_type,
                "status": ProcessedEventStatus.PROCESSING,
                "outcome": "",
            }
            return True
        if existing["status"] == ProcessedEventStatus.FAILED:
            existing["status"] = ProcessedEventStatus.PROCESSING
            existing["outcome"] = ""
            return True
        return False

    async def mark(self, event_id, status, outcome="") -> None:
        if event_id in self.events:
            self.events[event_id].update(status=status, outcome=outcome)


class FakePaymentGateway(PaymentGateway):
    """
    Scriptable payment provider.

    ``failures`` maps an operation name to the error it raises without
    applying; ``lost_responses`` holds operations that apply and then raise,
    like a call whose response never arrived.
    """

    def __init__(self):
        self.subscriptions: Dict[str, SubscriptionSnapshot] = {}
        self.invoices: Dict[str, InvoiceSnapshot] = {}
        self.earlier_invoices: Dict[str, List[InvoiceSnapshot]] = {}
        self.customer_invoices: Dict[str, List[InvoiceSnapshot]] = {}
        self.refunds: List[str] = []
        self.checkout_sessions: List[Dict[str, str]] = []
        self.calls: List[str] = []
        self.failures: Dict[str, Exception] = {}
        self.lost_responses: Set[str] = set()
        self.ignored_mutations: Set[str] = set()

    def _perform(self, operation, apply=None):
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]
        if apply is not None and operation not in self.ignored_mutations:
            apply()
        if operation in self.lost_responses:
            raise PaymentProviderError(f"{operation} timed out")

    def _update(self, subscription_id, **changes):
        self.subscriptions[subscription_id] = replace(
            self.subscriptions[subscription_id], **changes
        )

    def mutations(self) -> List[str]:
        return [
            call
            for call in self.calls
            if call in ("cancel_subscription", "set_cancel_at_period_end", "change_price")
        ]

    async def retrieve_subscription(self, subscription_id):
        self._perform("retrieve_subscription")
        if subscription_id not in self.subscriptions:
            raise PaymentProviderError(f"No such subscription: {subscription_id}")
        return self.subscriptions[subscription_id]

    def _cancel(self, subscription_id):
        self._update(subscription_id, status="canceled")
        # Stripe settles the proration with a zero-amount final invoice.
        if subscription_id in self.invoices:
            self.earlier_invoices.setdefault(subscription_id, []).append(
                self.invoices[subscription_id]
            )
        self.invoices[subscription_id] = build_invoice(
            invoice_id=f"in_final_{subscription_id}",
            amount_paid=0,
            amount_due=0,
            payment_intent_id=None,
        )

    def _all_invoices(self, subscription_id) -> List[InvoiceSnapshot]:
        """Invoices of a subscription, newest first."""
        latest = [self.invoices[subscription_id]] if subscription_id in self.invoices else []
        return latest + list(reversed(self.earlier_invoices.get(subscription_id, [])))

    async def cancel_subscription(self, subscription_id):
        self._perform("cancel_subscription", lambda: self._cancel(subscription_id))

    async def set_cancel_at_period_end(self, subscription_id, cancel_at_period_end):
        self._perform(
            "set_cancel_at_period_end",
            lambda: self._update(subscription_id, cancel_at_period_end=cancel_at_period_end),
        )

    async def change_price(self, subscription_id, item_id, price_id):
        self._perform(
            "change_price",
            lambda: self._update(subscription_id, pending_price_id=price_id),
        )

    async def latest_invoice(self, subscription_id):
        self._perform("latest_invoice")
        return self.invoices.get(subscription_id)

    async def latest_refundable_invoice(self, subscription_id):
        self._perform("latest_refundable_invoice")
        return next(
            (invoice for invoice in self._all_invoices(subscription_id) if invoice.is_refundable),
            None,
        )

    async def refund_payment(self, payment_intent_id):
        self._perform("refund_payment")
        self.refunds.append(payment_intent_id)
        amount = next(
            (
                invoice.amount_paid
                for subscription_id in self.invoices
                for invoice in self._all_invoices(subscription_id)
                if invoice.payment_intent_id == payment_intent_id
            ),
            0,
        )
        return RefundSnapshot(id=f"re_{len(self.refunds)}", amount=amount, status="succeeded")

    async def list_invoices(self, customer_id, limit=12):
        self._perform("list_invoices")
        return self.customer_invoices.get(customer_id, [])[:limit]

    async def create_portal_session(self, customer_id, return_url):
        self._perform("create_portal_session")
        return f"https://billing.stripe.test/session/{customer_id}?return={return_url}"

    async def create_checkout_session(self, email, plan, price_id, success_url, cancel_url):
        self._perform("create_checkout_session")
        self.checkout_sessions.append(
            {
                "email": email,
                "plan": plan,
                "price_id": price_id,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        session_id = f"cs_test_{len(self.checkout_sessions)}"
        return CheckoutSessionSnapshot(
            id=session_id, url=f"https://checkout.stripe.test/{session_id}"
        )


class RecordingEventHandler(EventHandler):
    """Collects every published domain event."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    async def handle(self, event: DomainEvent) -> None:
        self.events.append(event)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_license(
    email: str = "owner@cafe.example",
    plan_type: PlanType = PlanType.MONTHLY,
    status: LicenseStatus = LicenseStatus.ACTIVE,
    subscription_id: Optional[str] = "sub_123",
    customer_id: Optional[str] = "cus_123",
    expires_at: Optional[datetime] = None,
    last_event_at: Optional[datetime] = None,
    created_at: datetime = NOW - timedelta(days=3),
) -> License:
    license = License.issue(
        email=email,
        plan_type=plan_type,
        now=created_at,
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription_id,
        event_at=last_event_at,
    )
    changes = {"status": status}
    if expires_at is not None:
        changes["expires_at"] = expires_at
    if status == LicenseStatus.DELETION_SCHEDULED:
        changes["deletion_scheduled_at"] = NOW + timedelta(days=14)
    return replace(license, **changes)


def build_subscription(
    subscription_id: str = "sub_123",
    status: str = "active",
    created_at: datetime = NOW - timedelta(days=3),
    price_id: str = MONTHLY_PRICE,
    cancel_at_period_end: bool = False,
    customer_id: str = "cus_123",
) -> SubscriptionSnapshot:
    return SubscriptionSnapshot(
        id=subscription_id,
        status=status,
        created_at=created_at,
        current_period_start=created_at,
        current_period_end=created_at + timedelta(days=30),
        cancel_at_period_end=cancel_at_period_end,
        price_id=price_id,
        item_id="si_123",
        customer_id=customer_id,
        unit_amount=2900,
        currency="usd",
        interval="month",
    )


def build_invoice(
    invoice_id: str = "in_123",
    paid: bool = True,
    amount_paid: int = 2900,
    amount_due: int = 2900,
    payment_intent_id: Optional[str] = "pi_123",
) -> InvoiceSnapshot:
    return InvoiceSnapshot(
        id=invoice_id,
        status="paid" if paid else "open",
        paid=paid,
        amount_paid=amount_paid,
        amount_due=amount_due,
        total=amount_due,
        currency="usd",
        payment_intent_id=payment_intent_id,
        created_at=NOW - timedelta(days=3),
        number="INV-0001",
        pdf_url="https://pay.stripe.test/invoice/in_123/pdf",
        hosted_url="https://pay.stripe.test/invoice/in_123",
    )


def build_event(
    event_type: str,
    data_object: dict,
    event_id: Optional[str] = None,
    created: Optional[datetime] = None,
) -> dict:
    """Build a Stripe event envelope."""
    return {
        "id": event_id or f"evt_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": event_type,
        "created": int((created or NOW).timestamp()),
        "data": {"object": data_object},
    }


def checkout_session(
    email: str = "owner@cafe.example",
    subscription_id: Optional[str] = "sub_123",
    customer_id: Optional[str] = "cus_123",
    plan: Optional[str] = "monthly",
) -> dict:
    return {
        "id": "cs_test_123",
        "object": "checkout.session",
        "customer": customer_id,
        "customer_email": email,
        "subscription": subscription_id,
        "metadata": {"plan": plan} if plan else {},
    }


def invoice_object(subscription_id: str = "sub_123", invoice_id: str = "in_123") -> dict:
    return {"id": invoice_id, "object": "invoice", "subscription": subscription_id}


def subscription_object(subscription_id: str = "sub_123") -> dict:
    return {"id": subscription_id, "object": "subscription", "status": "canceled"}


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None):
    """Produce a Stripe-Signature header for ``payload``."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def encode_event(event: dict) -> bytes:
    return json.dumps(event).encode("utf-8")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock():
    """Fixed clock."""
    return lambda: NOW


@pytest.fixture
def caller():
    """Fixture for the staff caller of a command."""
    return CallerIdentity(email=Email("owner@cafe.example"), staff_id="staff-1")


@pytest.fixture
def memory_license_repository():
    """Fixture for an in-memory LicenseRepository."""
    return InMemoryLicenseRepository()


@pytest.fixture
def memory_processed_event_repository():
    """Fixture for an in-memory ProcessedEventRepository."""
    return InMemoryProcessedEventRepository()


@pytest.fixture
def payment_gateway():
    """Fixture for the scriptable payment provider."""
    return FakePaymentGateway()


@pytest.fixture
def recorder():
    """Handler recording published domain events."""
    return RecordingEventHandler()


@pytest.fixture
def event_bus(recorder):
    """Fresh event bus with the recorder subscribed to every license event."""
    bus = InMemoryEventBus()
    for event_type in (
        LicenseIssued,
        LicenseRenewed,
        LicenseCancelled,
        LicenseDeactivated,
        PlanChanged,
        AccountDeletionScheduled,
        AccountDeletionCancelled,
    ):
        bus.subscribe(event_type, recorder)
    return bus


@pytest.fixture
def license_repository():
    """Fixture for the Django LicenseRepository."""
    return DjangoLicenseRepository()


@pytest.fixture
def processed_event_repository():
    """Fixture for the Django ProcessedEventRepository."""
    return DjangoProcessedEventRepository()


@pytest.fixture
def now():
    """The instant returned by the fixed clock."""
    return NOW


@pytest.fixture
def prices():
    """Configured price id per plan."""
    return dict(PRICES)


@pytest.fixture
def make_license():
    """Factory for License entities."""
    return build_license


@pytest.fixture
def make_subscription():
    """Factory for SubscriptionSnapshot."""
    return build_subscription


@pytest.fixture
def make_invoice():
    """Factory for InvoiceSnapshot."""
    return build_invoice


@pytest.fixture
def stripe_payloads():
    """Builders for Stripe webhook payloads and signature headers."""
    return SimpleNamespace(
        event=build_event,
        checkout_session=checkout_session,
        invoice=invoice_object,
        subscription=subscription_object,
        encode=encode_event,
        sign=sign_payload,
        secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def api_client():
    """Fixture for DRF API client."""
    return APIClient()


@pytest.fixture
def staff_client(api_client):
    """API client carrying a signed staff session for owner@cafe.example."""
    api_client.cookies["current_staff"] = sign_staff_cookie("staff-1", "owner@cafe.example")
    return api_client


@pytest.fixture
def stripe_gateway(payment_gateway, monkeypatch):
    """Route every API handler to the scriptable payment provider."""
    monkeypatch.setattr("api.dependencies.get_payment_gateway", lambda: payment_gateway)
    return payment_gateway
