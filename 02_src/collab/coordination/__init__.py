"""Coordination module: analysis, summary and task assignment."""

from .assignment import TaskAssigner, is_complex_query
from .coordinator import (
    Coordinator,
    IAnalyzer,
    ISummarizer,
    parse_analysis,
    parse_summary,
)

__all__ = [
    "Coordinator",
    "IAnalyzer",
    "ISummarizer",
    "TaskAssigner",
    "is_complex_query",
    "parse_analysis",
    "parse_summary",
]
