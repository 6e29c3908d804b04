from __future__ import annotations

import math

import pytest

from lighthouse.analysis.costs import (
    MONTHS_PER_YEAR,
    annualize,
    flag_savings,
    savings_match,
    wasted_units,
)
from lighthouse.analysis.scoring import efficiency_score, flag_penalty
from lighthouse.core.results import (
    ConfidenceLevel,
    EfficiencyFlag,
    FlagCode,
    FlagImpact,
    FlagImplementation,
    Severity,
)


def _flag(code=FlagCode.LATE_FILTER, severity=Severity.HIGH, monthly=1.0):
    return EfficiencyFlag(
        code=code,
        severity=severity,
        confidence=ConfidenceLevel.MEDIUM,
        is_fallback=False,
        impact=FlagImpact(
            estimated_monthly_savings_usd=monthly,
            estimated_annual_savings_usd=annualize(monthly),
        ),
        implementation=FlagImplementation(estimated_effort_hours=1.0),
        message="test",
    )


def test_annualize_uses_twelve_months():
    assert MONTHS_PER_YEAR == 12
    assert annualize(1.5) == pytest.approx(18.0)


def test_flag_savings_is_straight_sum():
    flags = [_flag(monthly=0.1) for _ in range(10)]
    assert flag_savings(flags) == pytest.approx(1.0)
    assert savings_match(1.0, [f.monthly_savings for f in flags])


def test_wasted_units():
    assert wasted_units(1.5, 0.02) == 75
    assert wasted_units(1.0, 0.0) == 0
    assert wasted_units(math.nan, 0.02) == 0


def test_no_flags_scores_100():
    assert efficiency_score([]) == 100


@pytest.mark.parametrize(
    "code,severity,penalty",
    [
        (FlagCode.LATE_FILTER, Severity.HIGH, 25),
        (FlagCode.POLLING_TRIGGER, Severity.MEDIUM, 10),
        (FlagCode.POLLING_TRIGGER, Severity.LOW, 5),
        (FlagCode.ERROR_LOOP, Severity.HIGH, 30),
        (FlagCode.ERROR_LOOP, Severity.MEDIUM, 20),
    ],
)
def test_penalties(code, severity, penalty):
    assert flag_penalty(_flag(code=code, severity=severity)) == penalty


def test_score_is_floored_at_zero():
    flags = [_flag(code=FlagCode.ERROR_LOOP, severity=Severity.HIGH) for _ in range(5)]
    assert efficiency_score(flags) == 0

