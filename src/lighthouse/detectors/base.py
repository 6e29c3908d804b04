"""Detector contract.

A detector looks at one workflow's ordered chain, its optional usage
statistics and the resolved unit price, and returns at most one flag. Having
no opinion is expressed by returning None; structurally valid but
uninteresting input never raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from lighthouse.analysis.costs import annualize
from lighthouse.core.models import UsageStats
from lighthouse.core.results import (
    ConfidenceLevel,
    EfficiencyFlag,
    FlagCode,
    FlagImpact,
    FlagImplementation,
    Severity,
)
from lighthouse.graph.builder import StepChain
from lighthouse.usage.normalizer import guard_finite

from .thresholds import DEFAULT_THRESHOLDS, DetectorThresholds


class DetectorKind(str, Enum):
    """Closed set of detectors. Adding a member requires a registry entry."""
    ERROR_LOOP = "error_loop"
    LATE_FILTER = "late_filter"
    POLLING_TRIGGER = "polling_trigger"


@dataclass(frozen=True)
class DetectionContext:
    """Everything a detector may look at for one workflow."""
    workflow_id: str
    chain: StepChain
    usage: Optional[UsageStats]
    price_per_unit: float
    thresholds: DetectorThresholds = DEFAULT_THRESHOLDS

    @property
    def steps_per_run(self) -> int:
        """Billable units consumed by one execution of the chain."""
        return len(self.chain)

    @property
    def observed_runs(self) -> Optional[int]:
        """Observed run count, or None without statistics or with zero runs."""
        if self.usage is None or not self.usage.has_runs:
            return None
        return self.usage.total_runs


class Detector(ABC):
    kind: DetectorKind
    code: FlagCode
    effort_hours: float

    @abstractmethod
    def detect(self, ctx: DetectionContext) -> Optional[EfficiencyFlag]:
        raise NotImplementedError

    def make_flag(
        self,
        *,
        severity: Severity,
        confidence: ConfidenceLevel,
        is_fallback: bool,
        monthly_savings: float,
        message: str,
        details: str,
        savings_explanation: str,
        meta: Optional[Dict[str, Any]] = None,
    ) -> EfficiencyFlag:
        monthly = guard_finite(monthly_savings)
        return EfficiencyFlag(
            code=self.code,
            severity=severity,
            confidence=confidence,
            is_fallback=is_fallback,
            impact=FlagImpact(
                estimated_monthly_savings_usd=monthly,
                estimated_annual_savings_usd=annualize(monthly),
            ),
            implementation=FlagImplementation(estimated_effort_hours=self.effort_hours),
            message=message,
            details=details,
            savings_explanation=savings_explanation,
            meta=meta or {},
        )
