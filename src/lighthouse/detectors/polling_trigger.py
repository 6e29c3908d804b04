"""Polling-trigger detection.

Polling triggers check for new data on an interval instead of being pushed
events. Recognition is approximate: the entry step's provider key is matched
by substring against a registry of providers known to poll. Providers outside
the registry are never flagged. An explicit polling interval on the step wins
over the registry.
"""

from __future__ import annotations

from typing import Optional, Tuple

from lighthouse.core.models import Step
from lighthouse.core.results import ConfidenceLevel, EfficiencyFlag, FlagCode, Severity
from lighthouse.utils.apps import app_display_name, provider_key

from .base import DetectionContext, Detector, DetectorKind

POLLING_PROVIDERS: Tuple[str, ...] = (
    "RSS",
    "WordPress",
    "GoogleSheets",
    "GoogleForms",
    "Airtable",
    "Excel",
    "Dropbox",
    "GoogleDrive",
    "OneDrive",
    "MySQL",
    "PostgreSQL",
    "SQLServer",
    "MongoDB",
)

_POLLING_KEYS = tuple(p.lower() for p in POLLING_PROVIDERS)


def matches_polling_registry(provider: str) -> bool:
    key = provider_key(provider)
    return bool(key) and any(p in key for p in _POLLING_KEYS)


def is_polling_step(step: Step) -> bool:
    if step.polling_interval_minutes is not None:
        return step.polling_interval_minutes > 0
    return matches_polling_registry(step.provider)


class PollingTriggerDetector(Detector):
    kind = DetectorKind.POLLING_TRIGGER
    code = FlagCode.POLLING_TRIGGER
    effort_hours = 2.0

    def detect(self, ctx: DetectionContext) -> Optional[EfficiencyFlag]:
        entry = ctx.chain.entry
        if entry is None or not is_polling_step(entry):
            return None

        t = ctx.thresholds
        steps = ctx.steps_per_run
        observed = ctx.observed_runs
        runs = observed if observed is not None else t.fallback_monthly_runs
        is_fallback = observed is None
        reduction = t.polling_reduction_rate
        wasted = runs * steps * reduction

        app = app_display_name(entry.provider)
        if is_fallback:
            explanation = (
                f"Estimated: ~{runs} monthly runs x {steps} steps x {reduction:.0%} "
                "polling overhead (no execution data)"
            )
        else:
            explanation = (
                f"{runs} runs x {steps} steps x {reduction:.0%} polling overhead "
                f"= {wasted:.0f} wasted units"
            )

        return self.make_flag(
            severity=Severity.MEDIUM,
            confidence=ConfidenceLevel.LOW if is_fallback else ConfidenceLevel.MEDIUM,
            is_fallback=is_fallback,
            monthly_savings=wasted * ctx.price_per_unit,
            message=f"Uses polling trigger: {app}",
            details=(
                f"The trigger '{app}' polls for new data on an interval and consumes units "
                "even when nothing changed. An instant (webhook) trigger avoids that overhead."
            ),
            savings_explanation=explanation,
            meta={
                "app": app,
                "provider": entry.provider,
                "polling_interval_minutes": entry.polling_interval_minutes,
                "runs": runs,
                "steps_per_run": steps,
                "reduction_rate": reduction,
                "wasted_units": wasted,
            },
        )
