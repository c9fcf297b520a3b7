"""
Payment gateway port (interface).

The subscription provider is the source of truth for billing state.
Every method raises PaymentProviderError when the provider call fails.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from licenses.domain.subscription import (
    CheckoutSessionSnapshot,
    InvoiceSnapshot,
    RefundSnapshot,
    SubscriptionSnapshot,
)


class PaymentGateway(ABC):
    """Abstract client for the subscription provider."""

    @abstractmethod
    async def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        """
        Fetch the live state of a subscription.

        Args:
            subscription_id: Provider subscription id

        Returns:
            SubscriptionSnapshot
        """
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel a subscription immediately, prorating and invoicing now."""
        pass

    @abstractmethod
    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> None:
        """
        Set or clear the pending end-of-period cancellation.

        Args:
            subscription_id: Provider subscription id
            cancel_at_period_end: New flag value
        """
        pass

    @abstractmethod
    async def change_price(self, subscription_id: str, item_id: str, price_id: str) -> None:
        """
        Move the subscription item to a new price.

        Proration is invoiced and the update stays pending until payment
        succeeds.

        Args:
            subscription_id: Provider subscription id
            item_id: Subscription item to update
            price_id: Target price id
        """
        pass

    @abstractmethod
    async def latest_invoice(self, subscription_id: str) -> Optional[InvoiceSnapshot]:
        """Return the most recent invoice of a subscription, if any."""
        pass

    @abstractmethod
    async def latest_refundable_invoice(self, subscription_id: str) -> Optional[InvoiceSnapshot]:
        """
        Return the newest paid invoice of a subscription that carries a charge.

        Zero-amount invoices, such as the final proration invoice of a
        cancellation, are skipped.
        """
        pass

    @abstractmethod
    async def refund_payment(self, payment_intent_id: str) -> RefundSnapshot:
        """
        Issue a full refund against a payment.

        Args:
            payment_intent_id: Provider payment intent id

        Returns:
            RefundSnapshot
        """
        pass

    @abstractmethod
    async def list_invoices(self, customer_id: str, limit: int = 12) -> List[InvoiceSnapshot]:
        """Return the customer's most recent invoices, newest first."""
        pass

    @abstractmethod
    async def create_portal_session(self, customer_id: str, return_url: str) -> str:
        """
        Open a hosted billing portal session.

        Returns:
            Portal URL
        """
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        email: str,
        plan: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionSnapshot:
        """
        Open a hosted subscription checkout for a new customer.

        The plan name is stored in the session metadata, where the
        completed-checkout webhook reads it back.

        Args:
            email: Buyer email, prefilled and echoed on the session
            plan: Plan name
            price_id: Provider price id of the plan
            success_url: Redirect after payment
            cancel_url: Redirect when the buyer abandons checkout

        Returns:
            CheckoutSessionSnapshot with the hosted URL
        """
        pass
