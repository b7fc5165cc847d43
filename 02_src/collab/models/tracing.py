"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single observability event for a collaboration run."""

    id: str
    event_type: str  # e.g. "request_received", "round_completed"
    actor: str  # orchestrator, worker id or coordinator
    data: dict  # full self-contained data for display
    timestamp: datetime
