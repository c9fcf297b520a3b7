"""
At-most-once admission of provider events.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from licenses.ports.processed_event_repository import (
    ProcessedEventRepository,
    ProcessedEventStatus,
)

logger = logging.getLogger(__name__)


class Admission(Enum):
    """Result of presenting an event to the guard."""

    FIRST_SEEN = "first_seen"
    DUPLICATE = "duplicate"


class IdempotencyGuard:
    """
    Guard that admits each provider event id for processing once.

    The claim is recorded before any side effect. If processing fails the
    claim is released so the provider's retry can take it again.
    """

    def __init__(self, processed_event_repository: ProcessedEventRepository):
        """Initialize guard with repository."""
        self.repository = processed_event_repository

    async def admit(
        self,
        event_id: str,
        event_type: str,
        event_created_at: Optional[datetime] = None,
    ) -> Admission:
        """
        Claim an event id.

        Args:
            event_id: Provider event id
            event_type: Provider event type tag
            event_created_at: Provider creation time

        Returns:
            Admission.FIRST_SEEN when the caller must process the event,
            Admission.DUPLICATE otherwise
        """
        claimed = await self.repository.claim(event_id, event_type, event_created_at)
        if not claimed:
            logger.info(f"Duplicate event {event_id} ({event_type}) skipped")
            return Admission.DUPLICATE
        return Admission.FIRST_SEEN

    async def complete(self, event_id: str, outcome: str, applied: bool = True) -> None:
        """
        Mark a claimed event as finished.

        Args:
            event_id: Provider event id
            outcome: What processing did
            applied: False when the event was acknowledged without a state change
        """
        status = ProcessedEventStatus.PROCESSED if applied else ProcessedEventStatus.IGNORED
        await self.repository.mark(event_id, status, outcome)

    async def release(self, event_id: str, error: str) -> None:
        """
        Give up a claim after a processing failure.

        Args:
            event_id: Provider event id
            error: Failure description
        """
        logger.warning(f"Releasing claim on event {event_id}: {error}")
        await self.repository.mark(event_id, ProcessedEventStatus.FAILED, error)
