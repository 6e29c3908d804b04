"""Error-loop detection.

A workflow whose runs fail often keeps consuming billable units for every step
of every failed run. The threshold is a hard cut: rates at or just below it are
not flagged.
"""

from __future__ import annotations

from typing import List, Optional

from lighthouse.core.models import ErrorTrend, UsageStats
from lighthouse.core.results import ConfidenceLevel, EfficiencyFlag, FlagCode, Severity

from .base import DetectionContext, Detector, DetectorKind

_TREND_NOTES = {
    ErrorTrend.INCREASING: "Error rate is increasing over time.",
    ErrorTrend.DECREASING: "Error rate is decreasing; most failures happened early in the window.",
    ErrorTrend.STABLE: "Error rate has remained stable.",
}


def _confidence(usage: UsageStats) -> ConfidenceLevel:
    if usage.low_confidence:
        return ConfidenceLevel.LOW
    if usage.trend is ErrorTrend.DECREASING:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.MEDIUM


class ErrorLoopDetector(Detector):
    kind = DetectorKind.ERROR_LOOP
    code = FlagCode.ERROR_LOOP
    effort_hours = 0.5

    def detect(self, ctx: DetectionContext) -> Optional[EfficiencyFlag]:
        usage = ctx.usage
        if not ctx.chain or usage is None or not usage.has_runs:
            return None

        t = ctx.thresholds
        if usage.error_rate <= t.error_rate_threshold:
            return None

        steps = ctx.steps_per_run
        units = usage.error_count * steps
        savings = units * ctx.price_per_unit

        notes: List[str] = [
            f"{usage.error_count} of {usage.total_runs} runs failed ({usage.error_rate:.1f}% error rate)."
        ]
        if usage.trend in _TREND_NOTES:
            notes.append(_TREND_NOTES[usage.trend])
        critical = usage.max_streak > t.critical_streak
        if critical:
            notes.append(f"Longest run of consecutive failures: {usage.max_streak}.")
        if usage.most_common_error:
            notes.append(f"Most common error: '{usage.most_common_error}'.")

        return self.make_flag(
            severity=Severity.HIGH if usage.error_rate > t.high_error_rate else Severity.MEDIUM,
            confidence=_confidence(usage),
            is_fallback=False,
            monthly_savings=savings,
            message=f"High error rate detected: {usage.error_rate:.1f}%",
            details=" ".join(notes),
            savings_explanation=(
                f"{usage.error_count} failed runs x {steps} steps = {units} wasted units "
                f"at ${ctx.price_per_unit:.4f} per unit"
            ),
            meta={
                "error_rate": usage.error_rate,
                "error_count": usage.error_count,
                "total_runs": usage.total_runs,
                "steps_per_run": steps,
                "wasted_units": units,
                "trend": usage.trend.value,
                "max_streak": usage.max_streak,
                "critical_streak": critical,
                "most_common_error": usage.most_common_error,
            },
        )
