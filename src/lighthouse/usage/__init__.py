"""Execution history normalisation."""

from lighthouse.usage.normalizer import (
    ExecutionRecord,
    MIN_TREND_SAMPLE,
    error_rate_percent,
    group_executions,
    guard_finite,
    summarize_executions,
    usage_from_counts,
)

__all__ = [
    "ExecutionRecord",
    "MIN_TREND_SAMPLE",
    "error_rate_percent",
    "group_executions",
    "guard_finite",
    "summarize_executions",
    "usage_from_counts",
]
