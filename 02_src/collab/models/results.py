"""Collaboration outcome data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .messages import Message
from .tasks import SubtaskResult


class CollaborationMode(str, Enum):
    """Execution strategy for resolving a TaskBreakdown."""

    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"
    REACTIVE = "reactive"


@dataclass
class AgentInteraction:
    """One worker-to-worker exchange observed in the reactive strategy."""

    from_worker: str
    to: str
    message: Message
    response_time: int  # milliseconds
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_worker,
            "to": self.to,
            "message": self.message.to_dict(),
            "response_time": self.response_time,
            "success": self.success,
        }


@dataclass
class CollaborationResult:
    """Everything produced for one request."""

    task_id: str
    subtask_results: list[SubtaskResult]
    final_response: str
    participating_workers: list[str]
    total_tokens: int
    processing_time: int  # milliseconds
    mode: CollaborationMode
    coordinator_summary: str | None = None
    rounds: int = 0
    message_history: list[Message] = field(default_factory=list)
    interactions: list[AgentInteraction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "subtask_results": [r.to_dict() for r in self.subtask_results],
            "final_response": self.final_response,
            "participating_workers": list(self.participating_workers),
            "total_tokens": self.total_tokens,
            "processing_time": self.processing_time,
            "mode": self.mode.value,
            "coordinator_summary": self.coordinator_summary,
            "rounds": self.rounds,
            "message_history": [m.to_dict() for m in self.message_history],
            "interactions": [i.to_dict() for i in self.interactions],
        }
