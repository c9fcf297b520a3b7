"""
Unit tests for the Stripe gateway mappings and error translation.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
import stripe

from core.domain.exceptions import PaymentProviderError
from licenses.infrastructure.stripe_gateway import (
    StripePaymentGateway,
    to_invoice_snapshot,
    to_subscription_snapshot,
)

CREATED = 1709294400  # 2024-03-01 12:00 UTC


def stripe_subscription(**overrides):
    subscription = {
        "id": "sub_123",
        "status": "active",
        "created": CREATED,
        "cancel_at_period_end": False,
        "customer": {"id": "cus_123", "object": "customer"},
        "items": {
            "data": [
                {
                    "id": "si_123",
                    "current_period_start": CREATED,
                    "current_period_end": CREATED + 30 * 86400,
                    "price": {
                        "id": "price_monthly_test",
                        "unit_amount": 2900,
                        "currency": "usd",
                        "recurring": {"interval": "month"},
                    },
                }
            ]
        },
    }
    subscription.update(overrides)
    return subscription


class TestSubscriptionMapping:
    """Tests for to_subscription_snapshot."""

    def test_period_from_item(self):
        """Test newer API versions carry the period on the item."""
        snapshot = to_subscription_snapshot(stripe_subscription())

        assert snapshot.created_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert snapshot.current_period_end == datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)
        assert snapshot.price_id == "price_monthly_test"
        assert snapshot.item_id == "si_123"
        assert snapshot.customer_id == "cus_123"
        assert snapshot.interval == "month"
        assert snapshot.pending_price_id is None

    def test_pending_update(self):
        """Test a price change awaiting payment is exposed."""
        snapshot = to_subscription_snapshot(
            stripe_subscription(
                pending_update={"subscription_items": [{"price": {"id": "price_annual_test"}}]}
            )
        )

        assert snapshot.has_price("price_annual_test")
        assert snapshot.has_price("price_monthly_test")

    def test_terminated(self):
        assert to_subscription_snapshot(stripe_subscription(status="canceled")).is_terminated


class TestInvoiceMapping:
    """Tests for to_invoice_snapshot."""

    def test_legacy_payment_intent(self):
        snapshot = to_invoice_snapshot(
            {
                "id": "in_123",
                "status": "paid",
                "amount_paid": 2900,
                "amount_due": 2900,
                "total": 2900,
                "payment_intent": "pi_123",
                "created": CREATED,
            }
        )

        assert snapshot.paid is True
        assert snapshot.payment_intent_id == "pi_123"

    def test_payment_intent_from_payments(self):
        """Test newer API versions list payments on the invoice."""
        snapshot = to_invoice_snapshot(
            {
                "id": "in_123",
                "status": "open",
                "amount_due": 2900,
                "payments": {"data": [{"payment": {"payment_intent": "pi_456"}}]},
            }
        )

        assert snapshot.paid is False
        assert snapshot.amount_paid == 0
        assert snapshot.payment_intent_id == "pi_456"


@pytest.mark.asyncio
class TestStripePaymentGateway:
    """Tests for StripePaymentGateway."""

    async def test_retrieve_subscription(self):
        client = SimpleNamespace(
            subscriptions=SimpleNamespace(retrieve=lambda subscription_id: stripe_subscription())
        )

        snapshot = await StripePaymentGateway(client).retrieve_subscription("sub_123")

        assert snapshot.id == "sub_123"

    async def test_stripe_error_is_translated(self):
        """Test provider failures surface as PaymentProviderError."""

        def retrieve(subscription_id):
            raise stripe.APIConnectionError("Network unreachable")

        client = SimpleNamespace(subscriptions=SimpleNamespace(retrieve=retrieve))

        with pytest.raises(PaymentProviderError):
            await StripePaymentGateway(client).retrieve_subscription("sub_123")

    async def test_latest_invoice_empty(self):
        client = SimpleNamespace(
            invoices=SimpleNamespace(list=lambda params: SimpleNamespace(data=[]))
        )

        assert await StripePaymentGateway(client).latest_invoice("sub_123") is None

    async def test_latest_refundable_invoice_skips_zero_amount(self):
        """Test the final proration invoice of a cancellation is passed over."""
        requests = []

        def list_invoices(params):
            requests.append(params)
            return SimpleNamespace(
                data=[
                    {"id": "in_final", "status": "paid", "amount_paid": 0, "payment_intent": None},
                    {
                        "id": "in_first",
                        "status": "paid",
                        "paid": True,
                        "amount_paid": 2900,
                        "payment_intent": "pi_123",
                    },
                ]
            )

        client = SimpleNamespace(invoices=SimpleNamespace(list=list_invoices))

        invoice = await StripePaymentGateway(client).latest_refundable_invoice("sub_123")

        assert invoice.id == "in_first"
        assert invoice.payment_intent_id == "pi_123"
        assert requests[0]["subscription"] == "sub_123"
        assert requests[0]["status"] == "paid"

    async def test_latest_refundable_invoice_none(self):
        client = SimpleNamespace(
            invoices=SimpleNamespace(
                list=lambda params: SimpleNamespace(
                    data=[{"id": "in_final", "status": "paid", "amount_paid": 0}]
                )
            )
        )

        assert await StripePaymentGateway(client).latest_refundable_invoice("sub_123") is None

    async def test_create_checkout_session(self):
        """Test the session is a subscription checkout tagged with the plan."""
        requests = []

        def create(params):
            requests.append(params)
            return {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}

        client = SimpleNamespace(checkout=SimpleNamespace(sessions=SimpleNamespace(create=create)))

        session = await StripePaymentGateway(client).create_checkout_session(
            email="buyer@cafe.example",
            plan="monthly",
            price_id="price_monthly_test",
            success_url="https://app.example/success",
            cancel_url="https://app.example/pay",
        )

        assert session.id == "cs_test_1"
        assert session.url == "https://checkout.stripe.com/c/pay/cs_test_1"
        params = requests[0]
        assert params["mode"] == "subscription"
        assert params["customer_email"] == "buyer@cafe.example"
        assert params["line_items"] == [{"price": "price_monthly_test", "quantity": 1}]
        assert params["metadata"] == {"plan": "monthly"}
