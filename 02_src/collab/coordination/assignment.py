"""Task assignment: split a request into subtasks and pick a worker for each."""

import random
import re
import uuid
from typing import Sequence

from ..errors import AssignmentError
from ..logging_config import get_logger
from ..models import (
    Analysis,
    AnalysisError,
    AssignmentStrategy,
    ChatTurn,
    Specialty,
    Subtask,
    TaskBreakdown,
    WorkerConfig,
)
from .coordinator import IAnalyzer

logger = get_logger(__name__)

# Tunable heuristics. Kept for behavioural compatibility, not load-bearing.
KEYWORD_WEIGHT = 2
SCORE_MARGIN = 1
COMPLEXITY_LENGTH_THRESHOLD = 20

STRONG_TECHNICAL_KEYWORDS = (
    "principle", "principles", "mechanism", "theory", "theoretical", "science",
    "scientific", "analysis", "analyze", "analyse", "concept", "concepts",
    "technical", "technology", "algorithm", "algorithms", "system", "systems",
)
STRONG_PRACTICAL_KEYWORDS = (
    "how to", "advice", "recommend", "recommendation", "method", "methods",
    "steps", "practical", "concrete", "specific", "hands-on", "guide",
    "guidance", "plan", "solution", "solutions",
)

COMPLEXITY_INDICATORS = (
    "compare", "comparison", "versus", "difference", "differences", "pros and cons",
    "analyze", "analyse", "analysis", "evaluate", "evaluation", "what should",
    "why", "how", "reason", "reasons", "impact", "effect", "effects", "significance",
    "method", "methods", "steps", "process", "solve", "solution", "problem",
    "suggest", "suggestion", "recommend", "choose", "choice",
)

SIMPLE_TECHNICAL_KEYWORDS = (
    "technology", "technical", "principle", "concept", "definition", "theory",
    "science", "engineering", "algorithm", "data", "programming", "code",
    "system", "architecture", "design", "analysis",
)
SIMPLE_PRACTICAL_KEYWORDS = (
    "advice", "recommend", "choose", "use", "usage", "operate", "life", "health",
    "feelings", "relationship", "work", "career", "study", "learn", "habit",
    "habits", "tip", "tips", "method", "practice",
)

_CLAUSE_SPLIT = re.compile(r"[?!;。？！；]|\.(?=\s|$)")


def _contains(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def _count(text: str, keywords: Sequence[str]) -> int:
    return sum(1 for kw in keywords if _contains(text, kw))


def is_complex_query(query: str) -> bool:
    """Local classifier used when no analyzer output is available."""
    lowered = query.lower()
    clauses = [c for c in _CLAUSE_SPLIT.split(lowered) if c.strip()]
    return (
        any(_contains(lowered, word) for word in COMPLEXITY_INDICATORS)
        or len(clauses) > 1
        or len(query) > COMPLEXITY_LENGTH_THRESHOLD
    )


class TaskAssigner:
    """Turns a request (plus optional analysis) into a validated TaskBreakdown.

    The strategy is picked by what is available:

    * ``AI_PROVIDED``: the analysis carries explicit task assignments.
    * ``KEYWORD_SCORED``: the analysis carries only text fragments.
    * ``LOCAL_FALLBACK``: no usable analysis at all.
    """

    def __init__(
        self,
        technical_worker: str,
        practical_worker: str,
        default_worker: str | None = None,
        rng: random.Random | None = None,
    ):
        self._technical = technical_worker
        self._practical = practical_worker
        self._default = default_worker or technical_worker
        self._rng = rng or random.Random()

    @classmethod
    def for_workers(
        cls, workers: Sequence[WorkerConfig], rng: random.Random | None = None
    ) -> "TaskAssigner":
        """Map specialties onto the first worker of each kind."""
        if not workers:
            raise AssignmentError("No workers available for assignment")
        technical = next((w.id for w in workers if w.specialty == Specialty.TECHNICAL), workers[0].id)
        practical = next((w.id for w in workers if w.specialty == Specialty.PRACTICAL), technical)
        return cls(technical, practical, default_worker=technical, rng=rng)

    @property
    def default_worker(self) -> str:
        return self._default

    @staticmethod
    def select_strategy(analysis: Analysis | AnalysisError | None) -> AssignmentStrategy:
        if isinstance(analysis, Analysis):
            if analysis.task_assignments:
                return AssignmentStrategy.AI_PROVIDED
            return AssignmentStrategy.KEYWORD_SCORED
        return AssignmentStrategy.LOCAL_FALLBACK

    async def decompose(
        self,
        query: str,
        history: Sequence[ChatTurn] = (),
        analyzer: IAnalyzer | None = None,
        analysis: Analysis | AnalysisError | None = None,
    ) -> TaskBreakdown:
        """Obtain an analysis (unless supplied) and assign."""
        if not query or not query.strip():
            raise AssignmentError("Request text is empty")
        if analysis is None and analyzer is not None:
            analysis = await analyzer.analyze(query, history)
        return self.assign(query, analysis)

    def assign(
        self, query: str, analysis: Analysis | AnalysisError | None = None
    ) -> TaskBreakdown:
        """Build and validate a breakdown. Raises AssignmentError if invalid."""
        if not query or not query.strip():
            raise AssignmentError("Request text is empty")

        strategy = self.select_strategy(analysis)
        if strategy == AssignmentStrategy.AI_PROVIDED:
            subtasks = self._from_assignments(analysis)
            summary = self.describe(analysis)
        elif strategy == AssignmentStrategy.KEYWORD_SCORED:
            subtasks = self._from_breakdown(analysis)
            summary = self.describe(analysis)
        else:
            if isinstance(analysis, AnalysisError):
                logger.warning("Analyzer unavailable (%s); using local classifier", analysis.reason)
            subtasks = self._local_fallback(query)
            summary = "Local fallback classification"

        breakdown = TaskBreakdown(
            task_id=str(uuid.uuid4()),
            original_query=query,
            subtasks=subtasks,
            analysis_summary=summary,
            strategy=strategy,
        )
        self.validate(breakdown)
        logger.info(
            "Task %s split into %d subtasks via %s",
            breakdown.task_id,
            len(subtasks),
            strategy.value,
            extra={"task_id": breakdown.task_id},
        )
        return breakdown

    @staticmethod
    def validate(breakdown: TaskBreakdown) -> None:
        """Reject breakdowns that must not be scheduled."""
        if not breakdown.task_id or not breakdown.original_query:
            raise AssignmentError("Breakdown is missing task id or request text")
        if not breakdown.subtasks:
            raise AssignmentError("Breakdown has no subtasks")
        for subtask in breakdown.subtasks:
            if not (subtask.id and subtask.description and subtask.assigned_worker):
                raise AssignmentError(f"Subtask {subtask.id!r} is incomplete")
            if subtask.priority <= 0:
                raise AssignmentError(f"Subtask {subtask.id!r} has non-positive priority")

    @staticmethod
    def describe(analysis: Analysis) -> str:
        return (
            "Coordinator analysis:\n"
            f"- Complexity: {analysis.complexity}\n"
            f"- Required specializations: {', '.join(analysis.required_specializations)}\n"
            f"- Suggested approach: {analysis.suggested_approach}\n"
            f"- Reasoning: {analysis.reasoning}"
        )

    # AI_PROVIDED

    @staticmethod
    def _from_assignments(analysis: Analysis) -> list[Subtask]:
        return [
            Subtask(
                description=a.description,
                assigned_worker=a.worker,
                priority=index,
                reasoning=f"Coordinator decision: {a.reasoning}",
            )
            for index, a in enumerate(analysis.task_assignments, 1)
        ]

    # KEYWORD_SCORED

    def _from_breakdown(self, analysis: Analysis) -> list[Subtask]:
        if analysis.task_breakdown:
            subtasks = []
            for index, fragment in enumerate(analysis.task_breakdown, 1):
                worker = self.score_fragment(fragment, analysis.required_specializations)
                subtasks.append(
                    Subtask(
                        description=fragment,
                        assigned_worker=worker,
                        priority=index,
                        reasoning=f"Keyword scoring: assigned to {worker}",
                    )
                )
            return subtasks

        query = analysis.original_query
        if analysis.complexity == "simple":
            worker = self._by_specializations(analysis.required_specializations)
            return [
                Subtask(
                    description=query,
                    assigned_worker=worker,
                    priority=1,
                    reasoning=f"Single expert: {worker} matches the request",
                )
            ]
        return [
            Subtask(
                description=f"Analyse the core points and technical aspects in depth: {query}",
                assigned_worker=self._technical,
                priority=1,
                reasoning="Technical analysis and theoretical depth",
            ),
            Subtask(
                description=f"Provide practical advice and concrete solutions: {query}",
                assigned_worker=self._practical,
                priority=2,
                reasoning="Practical advice and concrete solutions",
            ),
        ]

    def score_fragment(self, fragment: str, required_specializations: Sequence[str] = ()) -> str:
        """Pick a worker for one fragment by weighted keyword score."""
        lowered = fragment.lower()
        technical = KEYWORD_WEIGHT * _count(lowered, STRONG_TECHNICAL_KEYWORDS)
        practical = KEYWORD_WEIGHT * _count(lowered, STRONG_PRACTICAL_KEYWORDS)

        if technical > practical + SCORE_MARGIN:
            return self._technical
        if practical > technical + SCORE_MARGIN:
            return self._practical
        return self._by_specializations(required_specializations)

    def _by_specializations(self, required: Sequence[str]) -> str:
        wants_technical = Specialty.TECHNICAL.value in required
        wants_practical = Specialty.PRACTICAL.value in required
        if wants_technical and not wants_practical:
            return self._technical
        if wants_practical and not wants_technical:
            return self._practical
        return self._default

    # LOCAL_FALLBACK

    def _local_fallback(self, query: str) -> list[Subtask]:
        if is_complex_query(query):
            return [
                Subtask(
                    description=f"Analyse the core points and key concepts of the question: {query}",
                    assigned_worker=self._technical,
                    priority=1,
                    reasoning="Keyword classification: technical analysis",
                ),
                Subtask(
                    description=f"Give a detailed answer with practical advice: {query}",
                    assigned_worker=self._practical,
                    priority=2,
                    reasoning="Keyword classification: practical advice",
                ),
            ]

        worker = self.vote(query)
        return [
            Subtask(
                description=query,
                assigned_worker=worker,
                priority=1,
                reasoning="Keyword classification: simple request",
            )
        ]

    def vote(self, query: str) -> str:
        """Symmetric keyword-count vote for simple requests."""
        lowered = query.lower()
        technical = _count(lowered, SIMPLE_TECHNICAL_KEYWORDS)
        practical = _count(lowered, SIMPLE_PRACTICAL_KEYWORDS)

        if technical == practical:
            if technical == 0:
                return self._default
            return self._rng.choice([self._technical, self._practical])
        return self._technical if technical > practical else self._practical
