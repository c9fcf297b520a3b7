"""
Event handlers for domain events.

These handlers process domain events asynchronously for side effects
like audit logging and license delivery emails.
"""

import logging
from typing import Dict, Type

from asgiref.sync import sync_to_async

from core.domain.events import DomainEvent, EventHandler
from licenses.domain.events import (
    AccountDeletionCancelled,
    AccountDeletionScheduled,
    LicenseCancelled,
    LicenseDeactivated,
    LicenseIssued,
    LicenseRenewed,
    PlanChanged,
)

logger = logging.getLogger(__name__)

AUDIT_ACTIONS: Dict[Type[DomainEvent], str] = {
    LicenseIssued: "license_issued",
    LicenseRenewed: "license_renewed",
    LicenseCancelled: "license_cancelled",
    LicenseDeactivated: "license_deactivated",
    PlanChanged: "plan_changed",
    AccountDeletionScheduled: "account_deletion_scheduled",
    AccountDeletionCancelled: "account_deletion_cancelled",
}

# Payload attributes never written to the audit trail.
_REDACTED = {"license_key"}


def _audit_changes(event: DomainEvent) -> dict:
    base = set(event.to_dict()) | {"license_id"}
    changes = {}
    for name, value in vars(event).items():
        if name in base or name in _REDACTED:
            continue
        changes[name] = value.isoformat() if hasattr(value, "isoformat") else value
    return changes


class AuditLogEventHandler(EventHandler):
    """
    Event handler for audit logging.

    Writes every license domain event to the AuditLog table.
    """

    async def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for audit logging.

        Args:
            event: Domain event to log
        """
        action = AUDIT_ACTIONS.get(type(event))
        if action is None:
            return

        logger.info(
            "Audit log: %s - %s",
            event.event_type,
            event.aggregate_id,
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
                "aggregate_id": event.aggregate_id,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )
        await self._write(event, action)

    @sync_to_async
    def _write(self, event: DomainEvent, action: str) -> None:
        from licenses.infrastructure.models import AuditLog

        AuditLog.objects.create(
            entity_type="license",
            entity_id=event.aggregate_id,
            action=action,
            changes=_audit_changes(event),
            actor="system",
        )


class LicenseEmailEventHandler(EventHandler):
    """
    Event handler for license delivery.

    Queues the license email on Celery so the webhook response is not held
    up by mail delivery.
    """

    async def handle(self, event: DomainEvent) -> None:
        """
        Handle LicenseIssued by queueing the license email.

        Args:
            event: Domain event
        """
        if not isinstance(event, LicenseIssued):
            return

        from core.tasks import send_license_email_task

        await sync_to_async(send_license_email_task.delay, thread_sensitive=False)(
            email=event.email,
            license_key=event.license_key,
            plan_type=event.plan_type,
            expires_at=event.expires_at.isoformat() if event.expires_at else None,
        )
        logger.info(f"License email queued for license {event.license_id}")


# Register event handlers
def register_event_handlers():
    """Register all event handlers with the event bus."""
    from core.infrastructure.events import event_bus

    audit_handler = AuditLogEventHandler()
    email_handler = LicenseEmailEventHandler()

    for event_type in AUDIT_ACTIONS:
        event_bus.subscribe(event_type, audit_handler)

    event_bus.subscribe(LicenseIssued, email_handler)

    logger.info("Event handlers registered")
