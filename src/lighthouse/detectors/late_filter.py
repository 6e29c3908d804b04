"""Late-filter detection.

A filter should sit right after the entry step. Every write step that runs
before the filter is spent on items the filter later rejects. Read steps before
the filter are not counted: fetching data to filter on is a real dependency.

Only the canonical chain is inspected; filters on alternate branches are not
seen.
"""

from __future__ import annotations

from typing import Optional, Tuple

from lighthouse.core.models import ActionKind, Step
from lighthouse.core.results import ConfidenceLevel, EfficiencyFlag, FlagCode, Severity

from .base import DetectionContext, Detector, DetectorKind


def find_filter(steps: Tuple[Step, ...]) -> Optional[int]:
    """Index of the first filter step on the chain, if any."""
    for index, step in enumerate(steps):
        if step.kind is ActionKind.FILTER:
            return index
    return None


class LateFilterDetector(Detector):
    kind = DetectorKind.LATE_FILTER
    code = FlagCode.LATE_FILTER
    effort_hours = 1.0

    def detect(self, ctx: DetectionContext) -> Optional[EfficiencyFlag]:
        steps = ctx.chain.steps
        index = find_filter(steps)
        # Index 0 is the entry step and index 1 is the ideal filter slot.
        if index is None or index <= 1:
            return None

        writes = sum(1 for s in steps[1:index] if s.kind is ActionKind.WRITE)
        if writes == 0:
            return None

        t = ctx.thresholds
        usage = ctx.usage
        if usage is None:
            runs = t.fallback_monthly_runs
            rate = t.late_filter_fallback_rate
            is_fallback = True
            confidence = ConfidenceLevel.MEDIUM
            explanation = (
                f"Estimated: ~{runs} monthly runs x {writes} write step(s) before the filter "
                f"x {rate:.0%} assumed rejection rate (no execution data)"
            )
        elif not usage.has_runs:
            runs, rate = 0, 0.0
            is_fallback = True
            confidence = ConfidenceLevel.LOW
            explanation = "No executions recorded; savings cannot be estimated"
        elif usage.filtered_count > 0:
            runs = usage.total_runs
            rate = min(usage.filtered_count / usage.total_runs, 1.0)
            is_fallback = False
            confidence = ConfidenceLevel.HIGH
            explanation = (
                f"{runs} runs x {writes} write step(s) before the filter "
                f"x {rate:.0%} observed rejection rate"
            )
        else:
            runs = usage.total_runs
            rate = t.late_filter_fallback_rate
            is_fallback = False
            confidence = ConfidenceLevel.MEDIUM
            explanation = (
                f"{runs} runs x {writes} write step(s) before the filter "
                f"x {rate:.0%} assumed rejection rate (no rejections recorded)"
            )

        wasted = runs * writes * rate
        position = index + 1
        return self.make_flag(
            severity=Severity.HIGH,
            confidence=confidence,
            is_fallback=is_fallback,
            monthly_savings=wasted * ctx.price_per_unit,
            message="Filter is placed too late in the workflow",
            details=(
                f"The filter is step #{position} with {writes} write step(s) before it. "
                "Moving it right after the trigger stops those steps from running for "
                "items the filter rejects."
            ),
            savings_explanation=explanation,
            meta={
                "filter_position": position,
                "filter_step_id": steps[index].id,
                "writes_before_filter": writes,
                "rejection_rate": rate,
                "runs": runs,
                "wasted_units": wasted,
            },
        )
