"""Detector constants.

Values are fields of one frozen model so a caller can thread different
thresholds into an analysis explicitly; the defaults are the documented ones.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class DetectorThresholds(BaseModel):
    # Error-loop flags only when the error rate (percent) is strictly above this.
    error_rate_threshold: float = Field(default=10.0, ge=0, le=100)
    # Error loops above this rate are high severity.
    high_error_rate: float = Field(default=50.0, ge=0, le=100)
    # Consecutive failures worth calling out in flag details.
    critical_streak: int = Field(default=3, ge=1)

    # Monthly runs assumed when no execution history is available.
    fallback_monthly_runs: int = Field(default=500, ge=0)
    # Share of runs assumed to be rejected by a filter when none were observed.
    late_filter_fallback_rate: float = Field(default=0.30, gt=0, le=1)
    # Share of polling volume recoverable by switching to an instant trigger.
    polling_reduction_rate: float = Field(default=0.20, gt=0, le=1)

    model_config = {"extra": "forbid", "frozen": True}


DEFAULT_THRESHOLDS = DetectorThresholds()
