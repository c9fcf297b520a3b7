"""
Webhook reconciliation handler.

Applies verified provider events to local license state. This is the only
writer of license status, expiry and billing linkage outside the tenant
commands.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from django.utils import timezone

from core.domain.events import DomainEvent, EventBus
from core.domain.exceptions import MalformedEventError
from core.domain.value_objects import LicenseStatus
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import license_transitions_total, webhook_events_total
from licenses.application.commands.reconcile_event import ReconcileEventCommand
from licenses.application.dto.license_dto import WebhookResultDTO
from licenses.application.services.idempotency_guard import Admission, IdempotencyGuard
from licenses.domain.classifier import (
    ProviderEvent,
    ReconciliationAction,
    extract_checkout,
    extract_subscription_id,
    parse_event,
)
from licenses.domain.events import (
    LicenseCancelled,
    LicenseDeactivated,
    LicenseIssued,
    LicenseRenewed,
)
from licenses.domain.license import License
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


@dataclass
class _Outcome:
    """What applying one event did."""

    name: str
    applied: bool = False
    events: List[DomainEvent] = field(default_factory=list)


class ReconcileEventHandler:
    """
    Handler for ReconcileEventCommand.

    Every event passes through the idempotency guard before any side effect,
    and every license mutation runs under the repository's row lock.
    """

    def __init__(
        self,
        license_repository: LicenseRepository,
        idempotency_guard: IdempotencyGuard,
        enforce_event_ordering: bool = True,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        """
        Initialize handler.

        Args:
            license_repository: License persistence
            idempotency_guard: At-most-once admission of event ids
            enforce_event_ordering: Discard events older than the last applied one
            event_bus: Bus for domain events (defaults to the process bus)
            clock: Source of "now"
        """
        self.license_repository = license_repository
        self.idempotency_guard = idempotency_guard
        self.enforce_event_ordering = enforce_event_ordering
        self.event_bus = event_bus or default_event_bus
        self.clock = clock

    async def handle(self, command: ReconcileEventCommand) -> WebhookResultDTO:
        """
        Handle a verified webhook payload.

        Args:
            command: ReconcileEventCommand

        Returns:
            WebhookResultDTO describing the acknowledgment

        Raises:
            MalformedEventError: If the envelope lacks id, type or data.object
        """
        event = parse_event(command.payload)
        action = event.action

        admission = await self.idempotency_guard.admit(event.id, event.type, event.created_at)
        if admission is Admission.DUPLICATE:
            webhook_events_total.labels(event_type=event.type, outcome="duplicate").inc()
            return WebhookResultDTO(
                event_id=event.id,
                event_type=event.type,
                action=action.value,
                outcome="duplicate",
                duplicate=True,
            )

        try:
            outcome = await self._apply(event, action)
        except MalformedEventError as e:
            logger.warning(f"Acknowledging malformed {event.type} event {event.id}: {e.message}")
            outcome = _Outcome(name="malformed")
        except Exception as e:
            await self.idempotency_guard.release(event.id, str(e))
            webhook_events_total.labels(event_type=event.type, outcome="failed").inc()
            logger.error(
                f"Failed to apply {event.type} event {event.id}: {e}",
                exc_info=True,
                extra={"event_id": event.id, "event_type": event.type},
            )
            raise

        await self.idempotency_guard.complete(event.id, outcome.name, applied=outcome.applied)
        webhook_events_total.labels(event_type=event.type, outcome=outcome.name).inc()
        if outcome.applied:
            license_transitions_total.labels(transition=outcome.name).inc()

        logger.info(
            f"Webhook {event.type} {event.id}: {outcome.name}",
            extra={"event_id": event.id, "event_type": event.type, "outcome": outcome.name},
        )

        for domain_event in outcome.events:
            await self.event_bus.publish(domain_event)

        return WebhookResultDTO(
            event_id=event.id,
            event_type=event.type,
            action=action.value,
            outcome=outcome.name,
        )

    async def _apply(self, event: ProviderEvent, action: ReconciliationAction) -> _Outcome:
        if action is ReconciliationAction.ISSUE_LICENSE:
            return await self._issue(event)
        if action is ReconciliationAction.IGNORE:
            logger.info(f"Ignoring unhandled event type {event.type}")
            return _Outcome(name="ignored")

        subscription_id = extract_subscription_id(event)
        if not subscription_id:
            logger.info(f"{event.type} event {event.id} has no subscription, nothing to do")
            return _Outcome(name="no_subscription")

        if action is ReconciliationAction.RENEW_LICENSE:
            return await self._renew(event, subscription_id)
        if action is ReconciliationAction.END_SUBSCRIPTION:
            return await self._end_subscription(event, subscription_id)
        return await self._mark_payment_failed(event, subscription_id)

    def _is_stale(self, license: License, event: ProviderEvent) -> bool:
        if self.enforce_event_ordering and license.is_stale(event.created_at):
            logger.info(
                f"Discarding stale {event.type} event {event.id} for license {license.id}"
            )
            return True
        return False

    async def _issue(self, event: ProviderEvent) -> _Outcome:
        details = extract_checkout(event.data_object)

        if details.subscription_id:
            linked = await self.license_repository.find_by_subscription_id(
                details.subscription_id
            )
            if linked is not None:
                return _Outcome(name="already_linked")

        now = self.clock()
        outcome = _Outcome(name="license_issued", applied=True)

        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None:
                return License.issue(
                    email=details.email,
                    plan_type=details.plan_type,
                    now=now,
                    stripe_customer_id=details.customer_id,
                    stripe_subscription_id=details.subscription_id,
                    event_at=event.created_at,
                )
            if (
                details.subscription_id
                and current.stripe_subscription_id == details.subscription_id
            ):
                outcome.name, outcome.applied = "already_linked", False
                return None
            if current.status == LicenseStatus.ACTIVE:
                logger.warning(
                    f"Checkout {event.id} for {details.email} ignored: "
                    f"license {current.id} is already active on "
                    f"subscription {current.stripe_subscription_id}"
                )
                outcome.name, outcome.applied = "active_license_exists", False
                return None
            if self._is_stale(current, event):
                outcome.name, outcome.applied = "stale_event", False
                return None
            outcome.name = "license_reissued"
            return current.reissue(
                plan_type=details.plan_type,
                now=now,
                stripe_customer_id=details.customer_id,
                stripe_subscription_id=details.subscription_id,
                event_at=event.created_at,
            )

        saved = await self.license_repository.update_with_lock(mutate, email=details.email)
        if saved is not None and outcome.applied:
            outcome.events.append(
                LicenseIssued(
                    license_id=saved.id,
                    license_key=saved.license_key,
                    email=saved.email.value,
                    plan_type=saved.plan_type.value,
                    expires_at=saved.expires_at,
                    reissued=outcome.name == "license_reissued",
                )
            )
        return outcome

    async def _renew(self, event: ProviderEvent, subscription_id: str) -> _Outcome:
        now = self.clock()
        outcome = _Outcome(name="license_renewed", applied=True)

        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None:
                outcome.name, outcome.applied = "license_not_found", False
                return None
            if self._is_stale(current, event):
                outcome.name, outcome.applied = "stale_event", False
                return None
            if current.status.is_terminal:
                outcome.name, outcome.applied = "terminal_status", False
                return None
            return current.renew(now, event_at=event.created_at)

        saved = await self.license_repository.update_with_lock(
            mutate, subscription_id=subscription_id
        )
        if saved is not None and outcome.applied:
            outcome.events.append(
                LicenseRenewed(license_id=saved.id, new_expiration=saved.expires_at)
            )
        elif outcome.name == "license_not_found":
            logger.warning(f"Renewal {event.id} for unknown subscription {subscription_id}")
        return outcome

    async def _end_subscription(self, event: ProviderEvent, subscription_id: str) -> _Outcome:
        now = self.clock()
        outcome = _Outcome(name="license_cancelled", applied=True)

        # The terminal transition is applied regardless of event age.
        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None:
                outcome.name, outcome.applied = "license_not_found", False
                return None
            if current.status.is_terminal:
                outcome.name, outcome.applied = "already_cancelled", False
                return None
            return current.end_subscription(now, event_at=event.created_at)

        saved = await self.license_repository.update_with_lock(
            mutate, subscription_id=subscription_id
        )
        if saved is not None and outcome.applied:
            outcome.events.append(
                LicenseCancelled(license_id=saved.id, reason="subscription_deleted")
            )
        elif outcome.name == "license_not_found":
            logger.warning(f"Deletion {event.id} for unknown subscription {subscription_id}")
        return outcome

    async def _mark_payment_failed(self, event: ProviderEvent, subscription_id: str) -> _Outcome:
        now = self.clock()
        outcome = _Outcome(name="license_deactivated", applied=True)

        def mutate(current: Optional[License]) -> Optional[License]:
            if current is None:
                outcome.name, outcome.applied = "license_not_found", False
                return None
            if self._is_stale(current, event):
                outcome.name, outcome.applied = "stale_event", False
                return None
            if current.status.is_terminal:
                outcome.name, outcome.applied = "terminal_status", False
                return None
            if current.status == LicenseStatus.INACTIVE:
                outcome.name, outcome.applied = "already_inactive", False
                return None
            return current.mark_payment_failed(now, event_at=event.created_at)

        saved = await self.license_repository.update_with_lock(
            mutate, subscription_id=subscription_id
        )
        if saved is not None and outcome.applied:
            outcome.events.append(LicenseDeactivated(license_id=saved.id))
        elif outcome.name == "license_not_found":
            logger.warning(
                f"Payment failure {event.id} for unknown subscription {subscription_id}"
            )
        return outcome
