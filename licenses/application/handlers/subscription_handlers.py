"""
Subscription command handlers.

Handlers for cancel, change plan and reactivate. Each reads the live
subscription, performs at most one provider mutation, confirms it by
re-reading, and only then touches the local license.
"""
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from django.db import DatabaseError
from django.utils import timezone

from core.domain.events import EventBus
from core.domain.exceptions import (
    AlreadyOnPlanError,
    LicenseNotFoundError,
    NoActiveSubscriptionError,
    NoPendingCancellationError,
    PaymentProviderError,
)
from core.domain.value_objects import CallerIdentity, CancellationMode
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import refunds_issued_total
from licenses.application.commands.cancel_subscription import CancelSubscriptionCommand
from licenses.application.commands.change_plan import ChangePlanCommand
from licenses.application.commands.reactivate_subscription import (
    ReactivateSubscriptionCommand,
)
from licenses.application.dto.license_dto import (
    CancellationResultDTO,
    PlanChangeResultDTO,
    ReactivationResultDTO,
)
from licenses.domain.events import LicenseCancelled, PlanChanged
from licenses.domain.license import License
from licenses.domain.services import (
    DEFAULT_COOLING_PERIOD_DAYS,
    evaluate_cooling_period,
    resolve_plan_price,
)
from licenses.domain.subscription import InvoiceSnapshot, SubscriptionSnapshot, to_major_units
from licenses.ports.license_repository import LicenseMutation, LicenseRepository
from licenses.ports.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)


class SubscriptionCommandHandler:
    """Shared plumbing for handlers that mutate the provider subscription."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        payment_gateway: PaymentGateway,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        """Initialize handler with repository and gateway."""
        self.license_repository = license_repository
        self.payment_gateway = payment_gateway
        self.event_bus = event_bus or default_event_bus
        self.clock = clock

    async def _load_license(self, caller: CallerIdentity) -> License:
        license = await self.license_repository.find_by_email(caller.email.value)
        if license is None:
            raise LicenseNotFoundError()
        if not license.stripe_subscription_id:
            raise NoActiveSubscriptionError()
        return license

    async def _live_subscription(self, license: License) -> SubscriptionSnapshot:
        subscription = await self.payment_gateway.retrieve_subscription(
            license.stripe_subscription_id
        )
        if subscription.is_terminated:
            raise NoActiveSubscriptionError()
        return subscription

    async def _mutate_and_confirm(
        self,
        subscription_id: str,
        mutate: Callable[[], Awaitable[None]],
        confirmed: Callable[[SubscriptionSnapshot], bool],
    ) -> SubscriptionSnapshot:
        """
        Perform a provider mutation and prove it took effect.

        The subscription is always re-read afterwards, so a call that
        succeeded but lost its response is still recognised.

        Args:
            subscription_id: Provider subscription id
            mutate: The provider call
            confirmed: Predicate the re-read subscription must satisfy

        Returns:
            The confirmed live subscription

        Raises:
            PaymentProviderError: If the outcome cannot be confirmed
        """
        call_error: Optional[PaymentProviderError] = None
        try:
            await mutate()
        except PaymentProviderError as e:
            logger.warning(
                f"Provider call for subscription {subscription_id} failed, "
                f"re-reading to determine outcome: {e.message}"
            )
            call_error = e

        try:
            live = await self.payment_gateway.retrieve_subscription(subscription_id)
        except PaymentProviderError:
            raise call_error or PaymentProviderError(
                "Could not confirm the change with the payment provider"
            )

        if not confirmed(live):
            raise call_error or PaymentProviderError(
                "Payment provider did not apply the change"
            )
        if call_error is not None:
            logger.info(f"Provider change to {subscription_id} confirmed despite call error")
        return live

    async def _persist(
        self, license: License, mutation: LicenseMutation
    ) -> Optional[License]:
        """
        Write the local side of a confirmed provider change.

        A failure here leaves provider and local state divergent; it is
        logged at CRITICAL with the subscription id and re-raised.
        """
        try:
            return await self.license_repository.update_with_lock(
                mutation, email=license.email.value
            )
        except DatabaseError:
            logger.critical(
                f"Local license update failed after provider change to subscription "
                f"{license.stripe_subscription_id}; manual reconciliation required",
                exc_info=True,
                extra={
                    "license_id": str(license.id),
                    "subscription_id": license.stripe_subscription_id,
                },
            )
            raise


class CancelSubscriptionHandler(SubscriptionCommandHandler):
    """Handler for CancelSubscriptionCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        payment_gateway: PaymentGateway,
        cooling_period_days: int = DEFAULT_COOLING_PERIOD_DAYS,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        super().__init__(license_repository, payment_gateway, event_bus, clock)
        self.cooling_period_days = cooling_period_days

    async def handle(self, command: CancelSubscriptionCommand) -> CancellationResultDTO:
        """
        Handle cancel subscription command.

        Inside the cooling period the subscription is cancelled now, the
        latest payment refunded and the license cancelled locally. After it,
        the subscription is flagged to cancel at period end and the license
        stays active until the provider's deletion event.

        Args:
            command: CancelSubscriptionCommand

        Returns:
            CancellationResultDTO

        Raises:
            LicenseNotFoundError: If the caller has no license
            NoActiveSubscriptionError: If there is no live subscription
            PaymentProviderError: If the provider change cannot be confirmed
        """
        license = await self._load_license(command.caller)
        subscription = await self._live_subscription(license)
        now = self.clock()

        decision = evaluate_cooling_period(
            subscription.created_at, now, self.cooling_period_days
        )
        logger.info(
            f"Cancelling subscription {subscription.id}: "
            f"{decision.days_since_creation} days old, mode {decision.mode}"
        )

        if decision.within_cooling_period:
            return await self._cancel_immediately(license, subscription, now)
        return await self._cancel_at_period_end(subscription)

    async def _cancel_immediately(
        self, license: License, subscription: SubscriptionSnapshot, now: datetime
    ) -> CancellationResultDTO:
        refund_error: Optional[PaymentProviderError] = None
        invoice: Optional[InvoiceSnapshot] = None
        # Looked up before the cancel call, which adds a zero-amount final invoice.
        try:
            invoice = await self.payment_gateway.latest_refundable_invoice(subscription.id)
        except PaymentProviderError as e:
            refund_error = e

        await self._mutate_and_confirm(
            subscription.id,
            lambda: self.payment_gateway.cancel_subscription(subscription.id),
            lambda live: live.is_terminated,
        )

        refunded = False
        refund_amount = 0
        if invoice is not None and invoice.is_refundable:
            try:
                refund = await self.payment_gateway.refund_payment(invoice.payment_intent_id)
                refunded = True
                refund_amount = refund.amount or invoice.amount_paid
                refunds_issued_total.inc()
            except PaymentProviderError as e:
                refund_error = e

        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None or current.status.is_terminal:
                return None
            return current.cancel(now)

        cancelled = await self._persist(license, mutate)
        if cancelled is not None:
            await self.event_bus.publish(
                LicenseCancelled(license_id=cancelled.id, reason="cooling_period_cancellation")
            )

        if refund_error is not None:
            logger.error(
                f"Subscription {subscription.id} cancelled but refund failed: "
                f"{refund_error.message}",
                extra={"subscription_id": subscription.id},
            )
            raise PaymentProviderError(
                "Subscription cancelled but the refund could not be issued"
            )

        message = (
            "Subscription cancelled and refunded (cooling period)"
            if refunded
            else "Subscription cancelled (cooling period)"
        )
        return CancellationResultDTO(
            refunded=refunded,
            mode=CancellationMode.IMMEDIATE.value,
            refund_amount=to_major_units(refund_amount),
            effective_date=now,
            message=message,
        )

    async def _cancel_at_period_end(
        self, subscription: SubscriptionSnapshot
    ) -> CancellationResultDTO:
        live = subscription
        if not subscription.cancel_at_period_end:
            live = await self._mutate_and_confirm(
                subscription.id,
                lambda: self.payment_gateway.set_cancel_at_period_end(subscription.id, True),
                lambda s: s.cancel_at_period_end,
            )
        return CancellationResultDTO(
            refunded=False,
            mode=CancellationMode.PERIOD_END.value,
            refund_amount=0.0,
            effective_date=live.current_period_end,
            message="Subscription will be cancelled at period end",
        )


class ChangePlanHandler(SubscriptionCommandHandler):
    """Handler for ChangePlanCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        payment_gateway: PaymentGateway,
        prices: Dict[str, str],
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        """
        Initialize handler.

        Args:
            license_repository: License persistence
            payment_gateway: Subscription provider
            prices: Provider price id per plan name
            event_bus: Bus for domain events
            clock: Source of "now"
        """
        super().__init__(license_repository, payment_gateway, event_bus, clock)
        self.prices = prices

    async def handle(self, command: ChangePlanCommand) -> PlanChangeResultDTO:
        """
        Handle change plan command.

        The live price is compared, not the local plan. The local plan is
        updated as soon as the provider accepts the change, before the
        proration invoice settles.

        Args:
            command: ChangePlanCommand

        Returns:
            PlanChangeResultDTO

        Raises:
            InvalidPlanError: If the plan is unknown or has no price
            AlreadyOnPlanError: If the subscription is already on that price
            PaymentProviderError: If the provider change cannot be confirmed
        """
        plan, price_id = resolve_plan_price(command.target_plan, self.prices)
        license = await self._load_license(command.caller)
        subscription = await self._live_subscription(license)

        if subscription.price_id == price_id:
            raise AlreadyOnPlanError()
        if not subscription.item_id:
            raise NoActiveSubscriptionError("Subscription has no billable item")

        live = await self._mutate_and_confirm(
            subscription.id,
            lambda: self.payment_gateway.change_price(
                subscription.id, subscription.item_id, price_id
            ),
            lambda s: s.has_price(price_id),
        )

        prorated_amount = 0
        try:
            invoice = await self.payment_gateway.latest_invoice(subscription.id)
            if invoice is not None:
                prorated_amount = invoice.amount_due
        except PaymentProviderError as e:
            logger.warning(f"Could not read proration invoice for {subscription.id}: {e.message}")

        now = self.clock()
        old_plan = license.plan_type

        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None:
                return None
            return current.change_plan(plan, now)

        updated = await self._persist(license, mutate)
        if updated is not None:
            await self.event_bus.publish(
                PlanChanged(
                    license_id=updated.id,
                    old_plan=old_plan.value,
                    new_plan=plan.value,
                )
            )

        return PlanChangeResultDTO(
            new_plan=plan.value,
            effective_date=live.current_period_end,
            prorated_amount=to_major_units(prorated_amount),
            message=f"Your plan will change to {plan.value} at the end of your current billing period",
        )


class ReactivateSubscriptionHandler(SubscriptionCommandHandler):
    """Handler for ReactivateSubscriptionCommand."""

    async def handle(self, command: ReactivateSubscriptionCommand) -> ReactivationResultDTO:
        """
        Handle reactivate subscription command.

        Args:
            command: ReactivateSubscriptionCommand

        Returns:
            ReactivationResultDTO

        Raises:
            NoActiveSubscriptionError: If the subscription is gone or terminated
            NoPendingCancellationError: If no cancellation is pending
        """
        license = await self._load_license(command.caller)
        subscription = await self._live_subscription(license)
        if not subscription.cancel_at_period_end:
            raise NoPendingCancellationError()

        await self._mutate_and_confirm(
            subscription.id,
            lambda: self.payment_gateway.set_cancel_at_period_end(subscription.id, False),
            lambda s: not s.cancel_at_period_end,
        )
        logger.info(f"Subscription {subscription.id} reactivated")

        return ReactivationResultDTO(
            cancel_at_period_end=False,
            message="Subscription reactivated successfully",
        )
