"""
Processed event repository port (interface).

Records which provider events have been handled so redeliveries are
applied at most once.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class ProcessedEventStatus:
    """Lifecycle of a processed event record."""

    PROCESSING = "processing"
    PROCESSED = "processed"
    IGNORED = "ignored"
    FAILED = "failed"


class ProcessedEventRepository(ABC):
    """Abstract repository for processed provider events."""

    @abstractmethod
    async def claim(
        self,
        event_id: str,
        event_type: str,
        event_created_at: Optional[datetime] = None,
    ) -> bool:
        """
        Atomically claim an event for processing.

        A new event id is inserted as ``processing``. An event id that
        previously failed, or whose ``processing`` claim outlived its lease
        because the worker died, is claimed again. Any other existing
        record means the event was already taken.

        Args:
            event_id: Provider event id
            event_type: Provider event type tag
            event_created_at: Provider creation time

        Returns:
            True if this caller owns the event, False for a duplicate
        """
        pass

    @abstractmethod
    async def mark(self, event_id: str, status: str, outcome: str = "") -> None:
        """
        Record the final status of a claimed event.

        Args:
            event_id: Provider event id
            status: One of ProcessedEventStatus
            outcome: Short description of what happened
        """
        pass
