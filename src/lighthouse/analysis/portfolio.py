"""Portfolio-level views built from per-workflow findings."""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Sequence, Tuple

from lighthouse.core.models import ActionKind, Workflow
from lighthouse.core.results import (
    AppUsage,
    FlagCode,
    PatternFinding,
    PlanAnalysis,
    PremiumFeatures,
    RankedOpportunity,
    Severity,
    WorkflowFinding,
)
from lighthouse.pricing.tiers import PriceResolution
from lighthouse.usage.normalizer import guard_finite
from lighthouse.utils.apps import app_display_name

from .costs import sum_savings

MAX_OPPORTUNITIES = 10

# A flag raised on at least this many workflows is reported as a pattern.
PATTERN_THRESHOLD = 3
PATTERN_HIGH_COUNT = 8
PATTERN_MEDIUM_COUNT = 5

# Usage below this share of the tier bound leaves room to downgrade.
DOWNGRADE_USAGE_CEILING = 0.7

_PATTERN_TEXT: Dict[FlagCode, Tuple[str, str]] = {
    FlagCode.POLLING_TRIGGER: (
        "Polling Trigger Overuse",
        "Switch to instant webhook triggers where possible to reduce polling overhead",
    ),
    FlagCode.LATE_FILTER: (
        "Late Filter Placement",
        "Move filters immediately after the trigger to stop spending units on rejected items",
    ),
    FlagCode.ERROR_LOOP: (
        "Widespread Error Loops",
        "Review authentication and configuration, and add error handling to the failing steps",
    ),
}


def rank_opportunities(findings: Sequence[WorkflowFinding]) -> List[RankedOpportunity]:
    """Top flags by monthly savings; ties broken by workflow id then flag code."""
    candidates = [(finding, flag) for finding in findings for flag in finding.flags]
    candidates.sort(
        key=lambda pair: (-pair[1].monthly_savings, pair[0].workflow_id, pair[1].code.value)
    )
    return [
        RankedOpportunity(
            workflow_id=finding.workflow_id,
            flag_code=flag.code,
            estimated_monthly_savings_usd=flag.monthly_savings,
            confidence=flag.confidence,
            is_fallback=flag.is_fallback,
            rank=rank,
        )
        for rank, (finding, flag) in enumerate(candidates[:MAX_OPPORTUNITIES], start=1)
    ]


def _pattern_severity(count: int) -> Severity:
    if count >= PATTERN_HIGH_COUNT:
        return Severity.HIGH
    if count >= PATTERN_MEDIUM_COUNT:
        return Severity.MEDIUM
    return Severity.LOW


def detect_patterns(findings: Sequence[WorkflowFinding]) -> List[PatternFinding]:
    """Flag codes shared by enough workflows to be worth fixing as a group."""
    groups: Dict[FlagCode, List[Tuple[str, float]]] = {}
    for finding in findings:
        for flag in finding.flags:
            groups.setdefault(flag.code, []).append((finding.workflow_id, flag.monthly_savings))

    patterns: List[PatternFinding] = []
    for code in FlagCode:
        members = groups.get(code, [])
        if len(members) < PATTERN_THRESHOLD:
            continue
        name, guidance = _PATTERN_TEXT[code]
        patterns.append(
            PatternFinding(
                flag_code=code,
                pattern_name=name,
                affected_workflow_ids=[wid for wid, _ in members],
                affected_count=len(members),
                total_waste_usd=sum_savings(s for _, s in members),
                refactor_guidance=guidance,
                severity=_pattern_severity(len(members)),
            )
        )
    patterns.sort(key=lambda p: (-(p.affected_count * p.total_waste_usd), p.flag_code.value))
    return patterns


def detect_premium_features(workflows: Sequence[Workflow]) -> PremiumFeatures:
    paths = filters = webhooks = custom_logic = False
    for workflow in workflows:
        for step in workflow.steps:
            action = step.action.lower()
            provider = step.provider.lower()
            if "path" in action or "path" in provider:
                paths = True
            if step.kind is ActionKind.FILTER or "filter" in action:
                filters = True
            if "webhook" in action or "webhook" in provider:
                webhooks = True
            if any(tag in provider for tag in ("code", "python", "javascript")):
                custom_logic = True
    return PremiumFeatures(paths=paths, filters=filters, webhooks=webhooks, custom_logic=custom_logic)


def analyze_plan(
    workflows: Sequence[Workflow], resolution: PriceResolution, monthly_units: int
) -> PlanAnalysis:
    bound = resolution.tier_bound
    percentile = guard_finite(monthly_units / bound) if bound > 0 else 0.0
    features = detect_premium_features(workflows)
    return PlanAnalysis(
        current_plan=resolution.plan,
        monthly_task_usage=monthly_units,
        tier_task_bound=bound,
        usage_percentile=percentile,
        premium_features_detected=features,
        downgrade_safe=percentile < DOWNGRADE_USAGE_CEILING and not features.paths,
    )


def app_inventory(workflows: Sequence[Workflow]) -> List[AppUsage]:
    """Provider usage across all steps, most used first."""
    counts = Counter(step.provider for workflow in workflows for step in workflow.steps)
    apps = [
        AppUsage(name=app_display_name(raw), raw_provider=raw, count=count)
        for raw, count in counts.items()
    ]
    apps.sort(key=lambda a: (-a.count, a.name, a.raw_provider))
    return apps
