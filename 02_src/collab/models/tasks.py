"""Task breakdown and result data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

Complexity = Literal["simple", "moderate", "complex"]


class AssignmentStrategy(str, Enum):
    """How a TaskBreakdown was produced."""

    AI_PROVIDED = "ai_provided"
    KEYWORD_SCORED = "keyword_scored"
    LOCAL_FALLBACK = "local_fallback"


@dataclass
class Subtask:
    """One unit of delegated work."""

    description: str
    assigned_worker: str
    priority: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    completed: bool = False
    result: str | None = None
    reasoning: str = ""


@dataclass
class TaskBreakdown:
    """Ordered subtasks derived from one request."""

    task_id: str
    original_query: str
    subtasks: list[Subtask]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    analysis_summary: str | None = None
    strategy: AssignmentStrategy = AssignmentStrategy.LOCAL_FALLBACK

    def ordered(self) -> list[Subtask]:
        """Subtasks sorted by priority (stable for equal priorities)."""
        return sorted(self.subtasks, key=lambda s: s.priority)

    def priority_of(self, subtask_id: str, default: int = 999) -> int:
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask.priority
        return default


@dataclass(frozen=True)
class SubtaskResult:
    """Output of one completed subtask. Produced once, never mutated."""

    subtask_id: str
    worker_id: str
    result: str
    tokens: int = 0
    processing_time: int = 0  # milliseconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtask_id": self.subtask_id,
            "worker_id": self.worker_id,
            "result": self.result,
            "tokens": self.tokens,
            "processing_time": self.processing_time,
        }


@dataclass
class TaskAssignmentSpec:
    """A (description, worker, reasoning) triple proposed by the analyzer."""

    description: str
    worker: str
    reasoning: str = ""


@dataclass
class Analysis:
    """Structured complexity analysis of a request."""

    original_query: str
    complexity: Complexity = "moderate"
    required_specializations: list[str] = field(default_factory=list)
    suggested_approach: str = ""
    task_breakdown: list[str] = field(default_factory=list)
    reasoning: str = ""
    task_assignments: list[TaskAssignmentSpec] = field(default_factory=list)


@dataclass
class AnalysisError:
    """Why an analysis could not be obtained; selects the local fallback path."""

    original_query: str
    reason: str
    raw: str | None = None


@dataclass
class FinalSummary:
    """Coordinator's structured synthesis of all worker results."""

    original_query: str
    key_insights: list[str] = field(default_factory=list)
    actionable_advice: list[str] = field(default_factory=list)
    synthesized_conclusion: str = ""
    next_steps: list[str] | None = None
