"""Efficiency scoring and confidence rollups.

A workflow starts at 100 and loses a fixed penalty per flag, by severity.
Error loops weigh more than other flags of the same severity. The score never
goes below 0.
"""

from __future__ import annotations

from typing import Dict, Iterable, Sequence, Tuple

from lighthouse.core.results import (
    ConfidenceLevel,
    ConfidenceOverview,
    EfficiencyFlag,
    FlagCode,
    Severity,
    SeverityCounts,
    WorkflowFinding,
)

MAX_SCORE = 100

SEVERITY_PENALTIES: Dict[Severity, int] = {
    Severity.LOW: 5,
    Severity.MEDIUM: 10,
    Severity.HIGH: 25,
}

PENALTY_OVERRIDES: Dict[Tuple[FlagCode, Severity], int] = {
    (FlagCode.ERROR_LOOP, Severity.HIGH): 30,
    (FlagCode.ERROR_LOOP, Severity.MEDIUM): 20,
}


def flag_penalty(flag: EfficiencyFlag) -> int:
    override = PENALTY_OVERRIDES.get((flag.code, flag.severity))
    if override is not None:
        return override
    return SEVERITY_PENALTIES[flag.severity]


def efficiency_score(flags: Iterable[EfficiencyFlag]) -> int:
    """100 minus the summed penalties, floored at 0."""
    return max(MAX_SCORE - sum(flag_penalty(f) for f in flags), 0)


def count_severities(flags: Iterable[EfficiencyFlag]) -> SeverityCounts:
    counts = {s: 0 for s in Severity}
    for flag in flags:
        counts[flag.severity] += 1
    return SeverityCounts(
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
    )


def confidence_overview(findings: Sequence[WorkflowFinding]) -> ConfidenceOverview:
    """Count confidence levels across findings and their flags."""
    counts = {c: 0 for c in ConfidenceLevel}
    for finding in findings:
        counts[finding.confidence] += 1
        for flag in finding.flags:
            counts[flag.confidence] += 1
    return ConfidenceOverview(
        high=counts[ConfidenceLevel.HIGH],
        medium=counts[ConfidenceLevel.MEDIUM],
        low=counts[ConfidenceLevel.LOW],
    )
