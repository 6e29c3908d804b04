"""Input domain models for workflow audits.

This module defines the immutable entities the analysis core consumes:
- Step: one node of a workflow, linked to its parent by identifier
- UsageStats: execution statistics summarised for one workflow
- Workflow: a workflow definition plus its optional statistics

All models are frozen. The core reads them and never mutates them; a fresh set
is built for every analysis call.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Absolute slack, in percentage points, allowed between a supplied error rate
# and the one derived from the counts.
ERROR_RATE_TOLERANCE = 1e-6


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class ActionKind(str, Enum):
    """What a step does to data."""
    FILTER = "filter"
    READ = "read"
    WRITE = "write"
    GENERIC = "generic"


class ErrorTrend(str, Enum):
    """Direction of the error rate across the observed window."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


# -----------------------------------------------------------------------------
# Step
# -----------------------------------------------------------------------------


class Step(BaseModel):
    """A single processing stage.

    `parent_id` is None only for the entry (trigger) step. `provider` names the
    integrated service, e.g. "GoogleSheetsV2CLIAPI@2.9.1".

    Examples:
        Step(id="1", kind=ActionKind.READ, provider="RSSCLIAPI@1.0.0")
        Step(id="2", parent_id="1", kind=ActionKind.FILTER, provider="FilterAPI")
    """
    id: str
    parent_id: Optional[str] = None
    kind: ActionKind = ActionKind.GENERIC
    provider: str = ""
    action: str = ""
    title: Optional[str] = None
    polling_interval_minutes: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("id", "parent_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        # Exports mix numeric and string identifiers.
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v

    @field_validator("polling_interval_minutes")
    @classmethod
    def validate_interval(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("polling_interval_minutes cannot be negative")
        return v


# -----------------------------------------------------------------------------
# Usage statistics
# -----------------------------------------------------------------------------


class UsageStats(BaseModel):
    """Execution statistics for one workflow.

    `error_rate` is a percentage derived from `error_count` and `total_runs`;
    it is exactly 0 when `total_runs` is 0. A supplied rate that disagrees with
    the counts is rejected. Success, error and filtered counts are disjoint
    and together never exceed `total_runs`. `low_confidence` is set when the
    summary had to clamp a non-finite or inconsistent value.
    """
    total_runs: int = 0
    success_count: int = 0
    error_count: int = 0
    filtered_count: int = 0
    error_rate: float = 0.0
    most_common_error: Optional[str] = None
    max_streak: int = 0
    trend: ErrorTrend = ErrorTrend.INSUFFICIENT_DATA
    last_run: Optional[str] = None
    low_confidence: bool = False

    model_config = {"extra": "forbid", "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def derive_error_rate(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        try:
            total = int(data.get("total_runs", 0))
            errors = int(data.get("error_count", 0))
        except (TypeError, ValueError):
            # Field validation reports the malformed count.
            return data
        if total <= 0 or errors < 0 or errors > total:
            # No runs gives 0; inconsistent counts are reported by count validation.
            derived = 0.0
        else:
            derived = errors / total * 100.0

        supplied = data.get("error_rate")
        if supplied is not None:
            try:
                rate = float(supplied)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"error_rate must be a number, got {supplied!r}") from exc
            if not math.isclose(rate, derived, rel_tol=1e-9, abs_tol=ERROR_RATE_TOLERANCE):
                raise ValueError(
                    f"error_rate ({rate}) does not match error_count/total_runs ({derived})"
                )
        return {**data, "error_rate": derived}

    @field_validator("total_runs", "success_count", "error_count", "filtered_count", "max_streak")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("counts cannot be negative")
        return v

    @field_validator("error_rate")
    @classmethod
    def validate_error_rate(cls, v: float) -> float:
        if not math.isfinite(v) or not 0.0 <= v <= 100.0:
            raise ValueError(f"error_rate must be a finite percentage, got {v}")
        return v

    @model_validator(mode="after")
    def validate_counts_consistent(self) -> "UsageStats":
        for field in ("error_count", "success_count", "filtered_count"):
            count = getattr(self, field)
            if count > self.total_runs:
                raise ValueError(
                    f"{field} ({count}) cannot exceed total_runs ({self.total_runs})"
                )
        outcomes = self.success_count + self.error_count + self.filtered_count
        if outcomes > self.total_runs:
            raise ValueError(
                f"success, error and filtered counts ({outcomes}) cannot exceed "
                f"total_runs ({self.total_runs})"
            )
        return self

    @property
    def has_runs(self) -> bool:
        return self.total_runs > 0


# -----------------------------------------------------------------------------
# Workflow
# -----------------------------------------------------------------------------


class Workflow(BaseModel):
    """A workflow definition as supplied by the extraction layer.

    Steps may arrive in any order; the graph builder reconstructs the chain
    from parent pointers.
    """
    id: str
    name: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)
    usage: Optional[UsageStats] = None
    active: bool = True

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v

    @property
    def display_name(self) -> str:
        """Human name, or a stable fallback built from the identifier."""
        if self.name and self.name.strip():
            return self.name.strip()
        return f"Workflow {self.id}"

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def with_usage(self, usage: Optional[UsageStats]) -> "Workflow":
        """Return a copy paired with `usage`; the original is left untouched."""
        return self.model_copy(update={"usage": usage})
