"""Worker-related data models."""

from dataclasses import dataclass, field
from enum import Enum


class Specialty(str, Enum):
    """Broad expertise bucket used by assignment and aggregation heuristics."""

    TECHNICAL = "technical_analysis"
    PRACTICAL = "practical_advice"
    COORDINATION = "coordination"


@dataclass
class WorkerConfig:
    """Static description of a worker (persona + completion parameters)."""

    id: str
    name: str
    personality: str
    specialty: Specialty
    specialization: str = ""
    capabilities: list[str] = field(default_factory=list)
    max_tokens: int | None = None
    temperature: float = 0.7

    def describe(self) -> str:
        """Short human-readable description."""
        skills = ", ".join(self.capabilities[:3])
        return f"{self.name} ({self.specialization or self.specialty.value}) - {skills}"


@dataclass
class WorkerStatus:
    """Snapshot of a worker's runtime state."""

    worker_id: str
    name: str
    is_idle: bool
    mailbox_size: int
    memory_size: int
    watching: list[str]


ANALYST = WorkerConfig(
    id="analyst",
    name="Analyst",
    personality=(
        "You are Analyst, a curious technical expert. You dig into the essence "
        "of a problem and give rigorous, well-reasoned explanations."
    ),
    specialty=Specialty.TECHNICAL,
    specialization="Technical analysis and theory",
    capabilities=[
        "deep analysis",
        "theoretical research",
        "scientific explanation",
        "logical reasoning",
        "knowledge synthesis",
    ],
    temperature=0.3,
)

ADVISOR = WorkerConfig(
    id="advisor",
    name="Advisor",
    personality=(
        "You are Advisor, a pragmatic solutions expert. You focus on workable "
        "recommendations and concrete implementation steps."
    ),
    specialty=Specialty.PRACTICAL,
    specialization="Practical advice and implementation",
    capabilities=[
        "practical advice",
        "solution design",
        "step planning",
        "problem solving",
        "execution guidance",
    ],
    temperature=0.7,
)

COORDINATOR = WorkerConfig(
    id="coordinator",
    name="Coordinator",
    personality=(
        "You are Coordinator, responsible for analysing request complexity, "
        "planning how the team collaborates and merging expert answers."
    ),
    specialty=Specialty.COORDINATION,
    specialization="Task coordination",
    capabilities=[
        "task analysis",
        "work assignment",
        "team coordination",
        "result integration",
    ],
    temperature=0.5,
)

DEFAULT_WORKERS = (ANALYST, ADVISOR)
