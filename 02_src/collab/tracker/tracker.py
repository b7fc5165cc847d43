"""Tracker implementation for creating TraceEvents."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..logging_config import get_logger
from ..models import TraceEvent
from ..storage import IStorage

logger = get_logger(__name__)


class ITracker(Protocol):
    """Creating TraceEvents through direct calls."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        ...


class Tracker:
    """Creates TraceEvents and persists them to Storage."""

    def __init__(self, storage: IStorage):
        self._storage = storage

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        await self._storage.save_trace_event(trace_event)
        logger.debug("Tracked %s from %s", event_type, actor)


class NullTracker:
    """Tracker that records nothing; used when no storage is wired in."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        return None
