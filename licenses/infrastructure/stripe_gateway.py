"""
Stripe implementation of the PaymentGateway port.

Wraps an explicitly constructed ``stripe.StripeClient``; there is no
module-level API key. Calls are blocking and run in a worker thread.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

import stripe
from asgiref.sync import sync_to_async

from core.domain.exceptions import PaymentProviderError
from core.metrics import payment_provider_duration_seconds, payment_provider_errors_total
from licenses.domain.classifier import normalize_stripe_id
from licenses.domain.subscription import (
    CheckoutSessionSnapshot,
    InvoiceSnapshot,
    RefundSnapshot,
    SubscriptionSnapshot,
)
from licenses.infrastructure.config import get_stripe_settings
from licenses.ports.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)


def build_stripe_client() -> stripe.StripeClient:
    """
    Build a Stripe client from the STRIPE settings block.

    Every request carries a bounded timeout and a bounded number of
    network retries.
    """
    config = get_stripe_settings()
    return stripe.StripeClient(
        config["SECRET_KEY"],
        http_client=stripe.RequestsClient(timeout=config["TIMEOUT_SECONDS"]),
        max_network_retries=config["MAX_NETWORK_RETRIES"],
    )


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _first(collection: Any) -> Any:
    data = (collection or {}).get("data") or []
    return data[0] if data else {}


def to_subscription_snapshot(subscription: Any) -> SubscriptionSnapshot:
    """
    Map a Stripe subscription object to a snapshot.

    Billing period bounds are read from the subscription, or from its first
    item on API versions that moved them there.
    """
    item = _first(subscription.get("items"))
    price = item.get("price") or {}
    recurring = price.get("recurring") or {}

    pending_items = (subscription.get("pending_update") or {}).get("subscription_items") or []
    pending_price_id = None
    if pending_items:
        pending_price_id = normalize_stripe_id(pending_items[0].get("price"))

    return SubscriptionSnapshot(
        id=subscription["id"],
        status=subscription.get("status"),
        created_at=_timestamp(subscription.get("created")),
        current_period_start=_timestamp(
            subscription.get("current_period_start") or item.get("current_period_start")
        ),
        current_period_end=_timestamp(
            subscription.get("current_period_end") or item.get("current_period_end")
        ),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        price_id=price.get("id"),
        item_id=item.get("id"),
        customer_id=normalize_stripe_id(subscription.get("customer")),
        pending_price_id=pending_price_id,
        unit_amount=price.get("unit_amount"),
        currency=price.get("currency"),
        interval=recurring.get("interval"),
    )


def to_invoice_snapshot(invoice: Any) -> InvoiceSnapshot:
    """Map a Stripe invoice object to a snapshot."""
    payment_intent_id = normalize_stripe_id(invoice.get("payment_intent"))
    if payment_intent_id is None:
        payment = _first(invoice.get("payments")).get("payment") or {}
        payment_intent_id = normalize_stripe_id(payment.get("payment_intent"))

    status = invoice.get("status")
    return InvoiceSnapshot(
        id=invoice["id"],
        status=status,
        paid=bool(invoice.get("paid")) or status == "paid",
        amount_paid=invoice.get("amount_paid") or 0,
        amount_due=invoice.get("amount_due") or 0,
        total=invoice.get("total") or 0,
        currency=invoice.get("currency"),
        payment_intent_id=payment_intent_id,
        created_at=_timestamp(invoice.get("created")),
        number=invoice.get("number"),
        pdf_url=invoice.get("invoice_pdf"),
        hosted_url=invoice.get("hosted_invoice_url"),
    )


class StripePaymentGateway(PaymentGateway):
    """
    PaymentGateway backed by the Stripe API.

    Stripe errors (including timeouts) are converted to PaymentProviderError.
    """

    def __init__(self, client: stripe.StripeClient):
        """
        Initialize gateway.

        Args:
            client: Configured Stripe client
        """
        self.client = client

    async def _call(self, operation: str, fn: Callable[[], Any]) -> Any:
        start = time.perf_counter()
        try:
            return await sync_to_async(fn, thread_sensitive=False)()
        except stripe.StripeError as e:
            payment_provider_errors_total.labels(operation=operation).inc()
            logger.error(
                f"Stripe {operation} failed: {e}",
                extra={"operation": operation, "stripe_request_id": e.request_id},
            )
            raise PaymentProviderError(e.user_message or f"Payment provider {operation} failed")
        finally:
            payment_provider_duration_seconds.labels(operation=operation).observe(
                time.perf_counter() - start
            )

    async def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        subscription = await self._call(
            "retrieve_subscription",
            lambda: self.client.subscriptions.retrieve(subscription_id),
        )
        return to_subscription_snapshot(subscription)

    async def cancel_subscription(self, subscription_id: str) -> None:
        await self._call(
            "cancel_subscription",
            lambda: self.client.subscriptions.cancel(
                subscription_id, params={"prorate": True, "invoice_now": True}
            ),
        )

    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> None:
        await self._call(
            "update_subscription",
            lambda: self.client.subscriptions.update(
                subscription_id, params={"cancel_at_period_end": cancel_at_period_end}
            ),
        )

    async def change_price(self, subscription_id: str, item_id: str, price_id: str) -> None:
        await self._call(
            "change_price",
            lambda: self.client.subscriptions.update(
                subscription_id,
                params={
                    "items": [{"id": item_id, "price": price_id}],
                    "proration_behavior": "always_invoice",
                    "payment_behavior": "pending_if_incomplete",
                    "cancel_at_period_end": False,
                },
            ),
        )

    async def latest_invoice(self, subscription_id: str) -> Optional[InvoiceSnapshot]:
        invoices = await self._call(
            "list_invoices",
            lambda: self.client.invoices.list(
                params={"subscription": subscription_id, "limit": 1}
            ),
        )
        if not invoices.data:
            return None
        return to_invoice_snapshot(invoices.data[0])

    async def latest_refundable_invoice(self, subscription_id: str) -> Optional[InvoiceSnapshot]:
        invoices = await self._call(
            "list_invoices",
            lambda: self.client.invoices.list(
                params={"subscription": subscription_id, "status": "paid", "limit": 10}
            ),
        )
        snapshots = (to_invoice_snapshot(invoice) for invoice in invoices.data)
        return next((invoice for invoice in snapshots if invoice.is_refundable), None)

    async def refund_payment(self, payment_intent_id: str) -> RefundSnapshot:
        refund = await self._call(
            "create_refund",
            lambda: self.client.refunds.create(
                params={
                    "payment_intent": payment_intent_id,
                    "reason": "requested_by_customer",
                }
            ),
        )
        return RefundSnapshot(
            id=refund["id"],
            amount=refund.get("amount") or 0,
            status=refund.get("status"),
        )

    async def list_invoices(self, customer_id: str, limit: int = 12) -> List[InvoiceSnapshot]:
        invoices = await self._call(
            "list_invoices",
            lambda: self.client.invoices.list(
                params={"customer": customer_id, "limit": limit}
            ),
        )
        return [to_invoice_snapshot(invoice) for invoice in invoices.data]

    async def create_portal_session(self, customer_id: str, return_url: str) -> str:
        session = await self._call(
            "create_portal_session",
            lambda: self.client.billing_portal.sessions.create(
                params={"customer": customer_id, "return_url": return_url}
            ),
        )
        return session["url"]

    async def create_checkout_session(
        self,
        email: str,
        plan: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionSnapshot:
        session = await self._call(
            "create_checkout_session",
            lambda: self.client.checkout.sessions.create(
                params={
                    "mode": "subscription",
                    "customer_email": email,
                    "line_items": [{"price": price_id, "quantity": 1}],
                    "success_url": success_url,
                    "cancel_url": cancel_url,
                    "metadata": {"plan": plan},
                    "subscription_data": {"metadata": {"plan": plan}},
                }
            ),
        )
        return CheckoutSessionSnapshot(id=session["id"], url=session["url"])
