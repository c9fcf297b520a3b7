"""
Django implementation of ProcessedEventRepository port.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from licenses.infrastructure.models import ProcessedEvent
from licenses.ports.processed_event_repository import (
    ProcessedEventRepository,
    ProcessedEventStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_LEASE_SECONDS = 300


class DjangoProcessedEventRepository(ProcessedEventRepository):
    """
    Django ORM implementation of ProcessedEventRepository.

    The claim is an INSERT guarded by the unique ``event_id`` constraint,
    performed before any side effect. A ``processing`` claim whose holder
    has not finished within the lease is treated as abandoned.
    """

    def __init__(self, claim_lease_seconds: int = DEFAULT_CLAIM_LEASE_SECONDS):
        """
        Initialize repository.

        Args:
            claim_lease_seconds: Age after which a processing claim can be taken again
        """
        self.claim_lease = timedelta(seconds=claim_lease_seconds)

    @sync_to_async
    def claim(
        self,
        event_id: str,
        event_type: str,
        event_created_at: Optional[datetime] = None,
    ) -> bool:
        """
        Atomically claim an event for processing.

        Args:
            event_id: Provider event id
            event_type: Provider event type tag
            event_created_at: Provider creation time

        Returns:
            True if this caller owns the event, False for a duplicate
        """
        try:
            with transaction.atomic():
                ProcessedEvent.objects.create(
                    event_id=event_id,
                    event_type=event_type,
                    status=ProcessedEventStatus.PROCESSING,
                    event_created_at=event_created_at,
                )
            return True
        except IntegrityError:
            pass

        # The conditional update is the claim; only one retry can win it.
        now = timezone.now()
        reclaimable = Q(status=ProcessedEventStatus.FAILED) | Q(
            status=ProcessedEventStatus.PROCESSING, updated_at__lt=now - self.claim_lease
        )
        reclaimed = (
            ProcessedEvent.objects.filter(reclaimable, event_id=event_id)
            .update(status=ProcessedEventStatus.PROCESSING, outcome="", updated_at=now)
        )
        if reclaimed:
            logger.info(f"Re-claimed failed or abandoned event {event_id}")
        return bool(reclaimed)

    @sync_to_async
    def mark(self, event_id: str, status: str, outcome: str = "") -> None:
        """
        Record the final status of a claimed event.

        Args:
            event_id: Provider event id
            status: One of ProcessedEventStatus
            outcome: Short description of what happened
        """
        ProcessedEvent.objects.filter(event_id=event_id).update(
            status=status, outcome=outcome[:1000], updated_at=timezone.now()
        )
