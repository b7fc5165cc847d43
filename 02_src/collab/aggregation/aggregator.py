"""ResultAggregator: merges subtask results into one final answer."""

from typing import Mapping, Sequence

from ..coordination import ISummarizer
from ..logging_config import get_logger
from ..models import FinalSummary, Specialty, SubtaskResult, TaskBreakdown, WorkerConfig

logger = get_logger(__name__)

NO_RESULTS_TEXT = "Sorry, no usable result was produced for this request."

ANALYSIS_MARKERS = ("analysis", "concept", "principle", "theory", "mechanism")
ADVICE_MARKERS = ("recommend", "suggest", "advice", "method", "steps")


def _has_marker(text: str, markers: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


class ResultAggregator:
    """Pure formatting of results; the only side channel is the optional summarizer."""

    def __init__(self, workers: Mapping[str, WorkerConfig] | None = None):
        self._workers = dict(workers or {})

    def set_workers(self, workers: Mapping[str, WorkerConfig]) -> None:
        self._workers = dict(workers)

    def display_name(self, worker_id: str) -> str:
        config = self._workers.get(worker_id)
        return config.name if config else worker_id

    def _specialty(self, worker_id: str) -> Specialty | None:
        config = self._workers.get(worker_id)
        return config.specialty if config else None

    def is_analysis(self, result: SubtaskResult) -> bool:
        if _has_marker(result.result, ANALYSIS_MARKERS):
            return True
        if _has_marker(result.result, ADVICE_MARKERS):
            return False
        return self._specialty(result.worker_id) == Specialty.TECHNICAL

    def is_advice(self, result: SubtaskResult) -> bool:
        if _has_marker(result.result, ADVICE_MARKERS):
            return True
        if _has_marker(result.result, ANALYSIS_MARKERS):
            return False
        return self._specialty(result.worker_id) == Specialty.PRACTICAL

    # Heuristic merge

    def aggregate(
        self, breakdown: TaskBreakdown | None, results: Sequence[SubtaskResult]
    ) -> str:
        """Merge results without any external call. Same input, same output."""
        if not results:
            return NO_RESULTS_TEXT
        if len(results) == 1:
            return results[0].result

        ordered = sorted(
            results,
            key=lambda r: breakdown.priority_of(r.subtask_id) if breakdown else 999,
        )
        analysis = next((r for r in ordered if self.is_analysis(r)), None)
        advice = next((r for r in ordered if r is not analysis and self.is_advice(r)), None)

        parts = []
        if breakdown is not None:
            parts.append(f'Our team\'s answer to "{breakdown.original_query}":\n\n')
        if analysis is not None:
            parts.append(f"## Analysis - {self.display_name(analysis.worker_id)}\n\n{analysis.result}\n\n")
        if advice is not None:
            parts.append(f"## Practical advice - {self.display_name(advice.worker_id)}\n\n{advice.result}\n\n")
        for result in ordered:
            if result is analysis or result is advice:
                continue
            parts.append(f"## Supplementary - {self.display_name(result.worker_id)}\n\n{result.result}\n\n")

        parts.append(self.footer(results))
        return "".join(parts)

    def participants(self, results: Sequence[SubtaskResult]) -> list[str]:
        """Distinct worker ids in first-appearance order."""
        return list(dict.fromkeys(r.worker_id for r in results))

    def footer(self, results: Sequence[SubtaskResult]) -> str:
        if len(results) <= 1:
            return ""
        names = ", ".join(self.display_name(w) for w in self.participants(results))
        total_time = sum(r.processing_time for r in results)
        total_tokens = sum(r.tokens for r in results)
        return (
            "---\n\n"
            "**Collaboration**  \n"
            f"Participants: {names} | Processing time: {total_time}ms | Tokens: {total_tokens}"
        )

    def collaboration_summary(self, results: Sequence[SubtaskResult]) -> str:
        if not results:
            return "No collaboration took place"
        names = [self.display_name(w) for w in self.participants(results)]
        if len(names) == 1:
            return f"Completed by {names[0]} alone"
        return f"Completed jointly by {', '.join(names)}"

    # Summarizer path

    def render_summary(self, summary: FinalSummary, results: Sequence[SubtaskResult]) -> str:
        parts = ["# Coordinated answer\n\n"]

        if summary.key_insights:
            parts.append("## Key insights\n\n")
            parts.extend(f"**{i}.** {item}\n\n" for i, item in enumerate(summary.key_insights, 1))
        if summary.actionable_advice:
            parts.append("## Actionable advice\n\n")
            parts.extend(f"**{i}.** {item}\n\n" for i, item in enumerate(summary.actionable_advice, 1))
        if summary.synthesized_conclusion:
            parts.append(f"## Conclusion\n\n> **{summary.synthesized_conclusion}**\n\n")
        if summary.next_steps:
            parts.append("## Next steps\n\n")
            parts.extend(f"{i}. {step}\n" for i, step in enumerate(summary.next_steps, 1))
            parts.append("\n")

        parts.append("---\n\n### Background reference\n\n")
        parts.append("*Detailed expert answers the summary above is based on:*\n\n")
        for result in results:
            parts.append(f"**{self.display_name(result.worker_id)}:**\n\n{result.result}\n\n")

        parts.append(self.footer(results))
        return "".join(parts)

    async def compose(
        self,
        breakdown: TaskBreakdown | None,
        results: Sequence[SubtaskResult],
        summarizer: ISummarizer | None = None,
    ) -> tuple[str, FinalSummary | None]:
        """Prefer the summarizer; fall back to the heuristic merge if it fails."""
        if summarizer is None or not results:
            return self.aggregate(breakdown, results), None

        query = breakdown.original_query if breakdown else ""
        try:
            summary = await summarizer.summarize(query, results)
        except Exception as e:
            logger.warning("Summary failed, using heuristic merge: %s", e, exc_info=True)
            return self.aggregate(breakdown, results), None

        return self.render_summary(summary, results), summary
