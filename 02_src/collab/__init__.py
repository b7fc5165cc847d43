"""Collab: a team of expert workers answering one request together."""

from .aggregation import ResultAggregator
from .app import Application, IApplication
from .coordination import Coordinator, TaskAssigner
from .errors import (
    AssignmentError,
    CollabError,
    CompletionError,
    RoutingWarning,
    WorkerNotFoundError,
)
from .event_bus import Environment, IEnvironment, Mailbox
from .llm import ILLMProvider, LLMProvider, MockLLMProvider
from .models import (
    CauseBy,
    CollaborationMode,
    CollaborationResult,
    Message,
    Subtask,
    SubtaskResult,
    TaskBreakdown,
    TraceEvent,
    WorkerConfig,
)
from .orchestration import Orchestrator
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .workers import Worker

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "CauseBy",
    "CollaborationMode",
    "CollaborationResult",
    "Message",
    "Subtask",
    "SubtaskResult",
    "TaskBreakdown",
    "TraceEvent",
    "WorkerConfig",
    # Errors
    "CollabError",
    "AssignmentError",
    "WorkerNotFoundError",
    "CompletionError",
    "RoutingWarning",
    # Components
    "Environment",
    "IEnvironment",
    "Mailbox",
    "Worker",
    "Coordinator",
    "TaskAssigner",
    "ResultAggregator",
    "Orchestrator",
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "ILLMProvider",
    "LLMProvider",
    "MockLLMProvider",
]
