"""Coordinator: AI-assisted request analysis and final summary."""

import json
import re
from typing import Iterable, Protocol, Sequence

from ..config import Settings
from ..errors import CompletionError
from ..llm import ILLMProvider
from ..logging_config import get_logger
from ..models import (
    COORDINATOR,
    Analysis,
    AnalysisError,
    ChatTurn,
    FinalSummary,
    Specialty,
    SubtaskResult,
    TaskAssignmentSpec,
    WorkerConfig,
)

logger = get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_COMPLEXITIES = ("simple", "moderate", "complex")


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


class IAnalyzer(Protocol):
    """Produces a structured complexity analysis of a request."""

    async def analyze(
        self, query: str, history: Sequence[ChatTurn] = ()
    ) -> Analysis | AnalysisError:
        """Analysis on success, AnalysisError when the analyzer is unusable."""
        ...


class ISummarizer(Protocol):
    """Merges worker results into a FinalSummary."""

    async def summarize(
        self, query: str, results: Sequence[SubtaskResult]
    ) -> FinalSummary:
        """Raises CompletionError when the summary cannot be produced."""
        ...


def parse_analysis(
    query: str, text: str, known_workers: Iterable[str] | None = None
) -> Analysis | AnalysisError:
    """Extract the analyzer's JSON object from free text.

    Assignments naming workers outside ``known_workers`` are dropped.
    """
    match = _JSON_OBJECT.search(text or "")
    candidate = match.group(0) if match else (text or "").strip()

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        return AnalysisError(query, f"invalid JSON: {e.msg}", raw=text)

    if not isinstance(parsed, dict):
        return AnalysisError(query, "analysis is not a JSON object", raw=text)

    raw_assignments = parsed.get("taskAssignments")
    if not parsed.get("complexity") or not isinstance(raw_assignments, list):
        return AnalysisError(query, "missing complexity or taskAssignments", raw=text)

    allowed = set(known_workers) if known_workers is not None else None
    assignments = [
        TaskAssignmentSpec(
            description=str(item["description"]),
            worker=str(item["assignedAgent"]),
            reasoning=_text(item.get("reasoning")),
        )
        for item in raw_assignments
        if isinstance(item, dict)
        and isinstance(item.get("description"), str)
        and isinstance(item.get("assignedAgent"), str)
        and item["description"].strip()
        and item["assignedAgent"].strip()
        and (allowed is None or item["assignedAgent"] in allowed)
    ]

    complexity = parsed["complexity"]
    if not isinstance(complexity, str) or complexity not in _COMPLEXITIES:
        complexity = "moderate"

    specializations = parsed.get("requiredSpecializations")
    if not isinstance(specializations, list):
        specializations = [Specialty.TECHNICAL.value]

    return Analysis(
        original_query=query,
        complexity=complexity,
        required_specializations=[str(s) for s in specializations],
        suggested_approach=_text(parsed.get("suggestedApproach")) or default_approach(complexity),
        task_breakdown=[a.description for a in assignments],
        reasoning=_text(parsed.get("coordinatorReasoning")) or "AI-assisted collaboration strategy",
        task_assignments=assignments,
    )


def default_approach(complexity: str) -> str:
    if complexity == "simple":
        return "Single expert: route to the best matching worker"
    if complexity == "complex":
        return "Multi-expert: cover both the analytical and the practical angle"
    return "Flexible: assign experts according to the request"


_SECTION_HEADINGS = {
    "key insight": "insights",
    "key insights": "insights",
    "core point": "insights",
    "core points": "insights",
    "actionable advice": "advice",
    "practical advice": "advice",
    "recommendation": "advice",
    "recommendations": "advice",
    "conclusion": "conclusion",
    "overall answer": "conclusion",
    "next step": "next",
    "next steps": "next",
    "follow-up": "next",
    "follow-ups": "next",
}


def _section_of(line: str) -> str | None:
    """Section a heading line opens, or None for content lines."""
    name = re.sub(r"[#*_]", "", _strip_bullet(line)).strip().rstrip(":").strip().lower()
    return _SECTION_HEADINGS.get(name)


def _strip_bullet(line: str) -> str:
    return re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", line).strip()


def key_insights_from(results: Sequence[SubtaskResult]) -> list[str]:
    return [f"{r.worker_id}: {r.result[:100]}..." for r in results]


def parse_summary(
    query: str, text: str, results: Sequence[SubtaskResult]
) -> FinalSummary:
    """Split sectioned summary text; missing parts are derived from the results."""
    sections: dict[str, list[str]] = {"insights": [], "advice": [], "conclusion": [], "next": []}
    current: str | None = None

    for line in (text or "").splitlines():
        if not line.strip():
            continue
        heading = _section_of(line)
        if heading:
            current = heading
            continue
        if current is not None:
            sections[current].append(_strip_bullet(line))

    insights = [s for s in sections["insights"] if s] or key_insights_from(results)
    conclusion = " ".join(s for s in sections["conclusion"] if s)
    if not conclusion:
        conclusion = (text or "")[:200].strip()
        if len(text or "") > 200:
            conclusion += "..."

    return FinalSummary(
        original_query=query,
        key_insights=insights,
        actionable_advice=[s for s in sections["advice"] if s],
        synthesized_conclusion=conclusion,
        next_steps=[s for s in sections["next"] if s] or None,
    )


class Coordinator:
    """Analyzes requests and summarizes results using the completion service."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        workers: Sequence[WorkerConfig],
        settings: Settings | None = None,
        config: WorkerConfig = COORDINATOR,
    ):
        self._llm = llm_provider
        self._workers = list(workers)
        self._config = config
        self._max_tokens = (settings or Settings()).max_tokens

    @property
    def coordinator_id(self) -> str:
        return self._config.id

    @property
    def name(self) -> str:
        return self._config.name

    def set_workers(self, workers: Sequence[WorkerConfig]) -> None:
        self._workers = list(workers)

    def _team_description(self) -> str:
        return "\n".join(
            f"- {w.id} ({w.name}): {w.specialization}; {', '.join(w.capabilities)}"
            for w in self._workers
        )

    def analysis_prompt(self, query: str) -> str:
        worker_ids = "|".join(w.id for w in self._workers)
        return f"""{self._config.personality}

As the team coordinator, analyse the user's request and plan the collaboration.

Team members:
{self._team_description()}

Request: "{query}"

Reply with JSON only, no other text:
{{
  "complexity": "simple|moderate|complex",
  "requiredSpecializations": ["{Specialty.TECHNICAL.value}", "{Specialty.PRACTICAL.value}"],
  "suggestedApproach": "how the team should collaborate",
  "taskAssignments": [
    {{"description": "concrete subtask", "assignedAgent": "{worker_ids}", "reasoning": "why"}}
  ],
  "coordinatorReasoning": "overall reasoning"
}}

Rules:
- simple: one concept or basic question, one expert is enough
- moderate: some depth or several aspects
- complex: needs several experts
- every subtask names exactly one expert and a reason"""

    async def analyze(
        self, query: str, history: Sequence[ChatTurn] = ()
    ) -> Analysis | AnalysisError:
        messages = [turn.to_dict() for turn in history]
        messages.append({"role": "user", "content": query})

        try:
            completion = await self._llm.complete(
                messages=messages,
                system=self.analysis_prompt(query),
                max_tokens=self._max_tokens,
                temperature=self._config.temperature,
            )
        except CompletionError as e:
            logger.error("Coordinator analysis failed: %s", e)
            return AnalysisError(query, str(e))

        outcome = parse_analysis(query, completion.text, (w.id for w in self._workers))
        if isinstance(outcome, AnalysisError):
            logger.warning("Coordinator analysis unparseable: %s", outcome.reason)
        else:
            logger.info("Coordinator analysis complete: complexity=%s", outcome.complexity)
        return outcome

    def summary_prompt(self, query: str, results: Sequence[SubtaskResult]) -> str:
        names = {w.id: w.name for w in self._workers}
        answers = "\n\n".join(
            f"{i}. {names.get(r.worker_id, r.worker_id)}'s answer:\n{r.result}"
            for i, r in enumerate(results, 1)
        )
        return f"""{self._config.personality}

As the team coordinator, merge the experts' answers into one high-quality summary.

Original request: {query}

Expert answers:
{answers}

Use exactly these section headings, one item per line:
Key insights
Actionable advice
Conclusion
Next steps

Merge viewpoints without repetition and keep the most valuable information."""

    async def summarize(
        self, query: str, results: Sequence[SubtaskResult]
    ) -> FinalSummary:
        completion = await self._llm.complete(
            messages=[{"role": "user", "content": f'Summarize the experts\' answers to "{query}"'}],
            system=self.summary_prompt(query, results),
            max_tokens=self._max_tokens,
            temperature=self._config.temperature,
        )
        return parse_summary(query, completion.text, results)
