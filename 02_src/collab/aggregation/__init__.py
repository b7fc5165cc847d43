"""Aggregation module."""

from .aggregator import NO_RESULTS_TEXT, ResultAggregator

__all__ = ["NO_RESULTS_TEXT", "ResultAggregator"]
