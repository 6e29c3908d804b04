"""Execution-history normalisation.

Turns raw per-workflow execution records into `UsageStats`:
run/error/filtered counts, error rate, longest failure streak, most common
error and a first-half vs second-half error trend.

Every derived number goes through `guard_finite`; a clamped value marks the
summary low-confidence instead of propagating NaN or infinity.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from lighthouse.core.models import ErrorTrend, UsageStats
from lighthouse.utils.logging import get_logger

logger = get_logger(__name__)

# Below this many runs the trend is reported as insufficient data.
MIN_TREND_SAMPLE = 10

# Second-half density must move more than 20% against the first half to count as a trend.
TREND_INCREASE_FACTOR = 1.2
TREND_DECREASE_FACTOR = 0.8

ERROR_STATUSES = frozenset({"error", "failed", "failure"})
SUCCESS_STATUSES = frozenset({"success"})
FILTERED_STATUSES = frozenset({"filtered", "halted", "stopped", "skipped"})


@dataclass(frozen=True)
class ExecutionRecord:
    """One row of execution history."""
    workflow_id: str
    status: str
    error_message: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def normalized_status(self) -> str:
        return self.status.strip().lower()

    @property
    def is_error(self) -> bool:
        return self.normalized_status in ERROR_STATUSES

    @property
    def is_success(self) -> bool:
        return self.normalized_status in SUCCESS_STATUSES

    @property
    def is_filtered(self) -> bool:
        return self.normalized_status in FILTERED_STATUSES


def guard_finite(value: float) -> float:
    """Return `value`, or 0.0 when it is NaN or infinite."""
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def _guarded(value: float) -> Tuple[float, bool]:
    return guard_finite(value), not math.isfinite(value)


def error_rate_percent(error_count: int, total_runs: int) -> float:
    """Error rate as a percentage; exactly 0.0 when there were no runs."""
    if total_runs <= 0:
        return 0.0
    return guard_finite(error_count / total_runs * 100.0)


def _ordered(records: Sequence[ExecutionRecord]) -> List[ExecutionRecord]:
    if records and all(r.timestamp for r in records):
        # ISO timestamps sort lexicographically; sorted() is stable for ties.
        return sorted(records, key=lambda r: r.timestamp or "")
    return list(records)


def compute_trend(error_flags: Sequence[bool]) -> ErrorTrend:
    """Compare error density in the first half of the window with the second half."""
    total = len(error_flags)
    if total < MIN_TREND_SAMPLE:
        return ErrorTrend.INSUFFICIENT_DATA

    mid = total // 2
    first_rate = sum(error_flags[:mid]) / mid
    second_rate = sum(error_flags[mid:]) / (total - mid)

    if second_rate > first_rate * TREND_INCREASE_FACTOR:
        return ErrorTrend.INCREASING
    if second_rate < first_rate * TREND_DECREASE_FACTOR:
        return ErrorTrend.DECREASING
    return ErrorTrend.STABLE


def longest_error_streak(error_flags: Iterable[bool]) -> int:
    longest = current = 0
    for is_error in error_flags:
        if is_error:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def most_common_error(records: Iterable[ExecutionRecord]) -> Optional[str]:
    """Most frequent non-empty error message; ties go to the first one seen."""
    counts = Counter(
        r.error_message.strip()
        for r in records
        if r.is_error and r.error_message and r.error_message.strip()
    )
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def summarize_executions(records: Sequence[ExecutionRecord]) -> UsageStats:
    """Summarise one workflow's execution records."""
    ordered = _ordered(records)
    error_flags = [r.is_error for r in ordered]

    total = len(ordered)
    errors = sum(error_flags)
    timestamps = [r.timestamp for r in ordered if r.timestamp]
    return UsageStats(
        total_runs=total,
        success_count=sum(1 for r in ordered if r.is_success),
        error_count=errors,
        filtered_count=sum(1 for r in ordered if r.is_filtered),
        error_rate=error_rate_percent(errors, total),
        most_common_error=most_common_error(ordered),
        max_streak=longest_error_streak(error_flags),
        trend=compute_trend(error_flags),
        last_run=max(timestamps) if timestamps else None,
    )


def group_executions(records: Iterable[ExecutionRecord]) -> Dict[str, UsageStats]:
    """Summarise a mixed execution table into per-workflow statistics."""
    by_workflow: Dict[str, List[ExecutionRecord]] = {}
    for record in records:
        by_workflow.setdefault(record.workflow_id, []).append(record)

    stats = {wid: summarize_executions(rows) for wid, rows in by_workflow.items()}
    logger.debug(
        "Summarised execution history",
        extra={"workflow_count": len(stats), "record_count": sum(map(len, by_workflow.values()))},
    )
    return stats


def usage_from_counts(
    total_runs: float,
    error_count: float,
    *,
    success_count: Optional[float] = None,
    filtered_count: float = 0,
    most_common_error: Optional[str] = None,
    max_streak: int = 0,
    trend: Optional[ErrorTrend] = None,
    last_run: Optional[str] = None,
) -> UsageStats:
    """Build statistics from pre-aggregated counts.

    Inconsistent input (negative or non-finite counts, more outcomes than
    runs) is clamped into range and the result is marked low-confidence.
    """
    low_confidence = False

    def _count(value: float) -> int:
        nonlocal low_confidence
        guarded, clamped = _guarded(float(value))
        if clamped or guarded < 0:
            low_confidence = True
            return 0
        return int(guarded)

    total = _count(total_runs)
    errors = _count(error_count)
    if errors > total:
        low_confidence = True
        errors = total

    # Outcomes are disjoint: errors first, then filtered, then successes.
    filtered = _count(filtered_count)
    if filtered > total - errors:
        low_confidence = True
        filtered = total - errors
    if success_count is None:
        successes = total - errors - filtered
    else:
        successes = _count(success_count)
        if successes > total - errors - filtered:
            low_confidence = True
            successes = total - errors - filtered

    if trend is None or total < MIN_TREND_SAMPLE:
        trend = ErrorTrend.INSUFFICIENT_DATA

    if low_confidence:
        logger.debug(
            "Clamped inconsistent usage counts",
            extra={"total_runs": total_runs, "error_count": error_count},
        )

    return UsageStats(
        total_runs=total,
        success_count=successes,
        error_count=errors,
        filtered_count=filtered,
        error_rate=error_rate_percent(errors, total),
        most_common_error=most_common_error,
        max_streak=min(max(max_streak, 0), errors),
        trend=trend,
        last_run=last_run,
        low_confidence=low_confidence,
    )
