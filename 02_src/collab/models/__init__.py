"""Core data models for the collaboration service."""

from .messages import BROADCAST, CauseBy, ChatTurn, Message, Role, recipients
from .results import AgentInteraction, CollaborationMode, CollaborationResult
from .tasks import (
    Analysis,
    AnalysisError,
    AssignmentStrategy,
    Complexity,
    FinalSummary,
    Subtask,
    SubtaskResult,
    TaskAssignmentSpec,
    TaskBreakdown,
)
from .tracing import TraceEvent
from .workers import (
    ADVISOR,
    ANALYST,
    COORDINATOR,
    DEFAULT_WORKERS,
    Specialty,
    WorkerConfig,
    WorkerStatus,
)

__all__ = [
    # Messages
    "BROADCAST",
    "CauseBy",
    "ChatTurn",
    "Message",
    "Role",
    "recipients",
    # Tasks
    "Analysis",
    "AnalysisError",
    "AssignmentStrategy",
    "Complexity",
    "FinalSummary",
    "Subtask",
    "SubtaskResult",
    "TaskAssignmentSpec",
    "TaskBreakdown",
    # Results
    "AgentInteraction",
    "CollaborationMode",
    "CollaborationResult",
    # Workers
    "ADVISOR",
    "ANALYST",
    "COORDINATOR",
    "DEFAULT_WORKERS",
    "Specialty",
    "WorkerConfig",
    "WorkerStatus",
    # Tracing
    "TraceEvent",
]
