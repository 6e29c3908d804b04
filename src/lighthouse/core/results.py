"""Canonical audit result schema, version 1.0.0.

This is the only output type of the analysis core. Field names and types are
part of the contract with downstream consumers: add optional fields, never
rename or retype existing ones. Breaking changes need a major version bump.

Financial fields are plain floats here; range and finiteness are enforced by
`lighthouse.analysis.validation` so that a bad value surfaces as an
`AuditValidationError` rather than a model construction error.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

SCHEMA_VERSION = "1.0.0"


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FlagCode(str, Enum):
    """Detected inefficiency patterns."""
    ERROR_LOOP = "ERROR_LOOP"
    LATE_FILTER = "LATE_FILTER"
    POLLING_TRIGGER = "POLLING_TRIGGER"


class WarningCode(str, Enum):
    INCOMPLETE_DATA = "INCOMPLETE_DATA"
    MALFORMED_GRAPH = "MALFORMED_GRAPH"
    UNUSUAL_PATTERN = "UNUSUAL_PATTERN"
    HIGH_COMPLEXITY = "HIGH_COMPLEXITY"


class FindingStatus(str, Enum):
    """Outcome of analysing one workflow.

    INCONCLUSIVE means the structure could not be analysed; it is never
    equivalent to CLEAN.
    """
    CLEAN = "clean"
    FLAGGED = "flagged"
    INCONCLUSIVE = "inconclusive"


_FROZEN = {"extra": "forbid", "frozen": True}


# -----------------------------------------------------------------------------
# Flags
# -----------------------------------------------------------------------------


class FlagImpact(BaseModel):
    estimated_monthly_savings_usd: float
    estimated_annual_savings_usd: float

    model_config = _FROZEN


class FlagImplementation(BaseModel):
    estimated_effort_hours: float

    model_config = _FROZEN


class EfficiencyFlag(BaseModel):
    """A detected efficiency issue with its savings estimate.

    `is_fallback` is true when the estimate rests on an assumed monthly volume
    because no execution statistics were available.
    """
    code: FlagCode
    severity: Severity
    confidence: ConfidenceLevel
    is_fallback: bool
    impact: FlagImpact
    implementation: FlagImplementation
    message: str
    details: str = ""
    savings_explanation: str = ""
    meta: Dict[str, Any] = Field(default_factory=dict)

    model_config = _FROZEN

    @property
    def monthly_savings(self) -> float:
        return self.impact.estimated_monthly_savings_usd


class AuditWarning(BaseModel):
    """Non-fatal note about data quality or an unusual structure."""
    code: WarningCode
    message: str

    model_config = _FROZEN


# -----------------------------------------------------------------------------
# Per-workflow findings
# -----------------------------------------------------------------------------


class WorkflowMetrics(BaseModel):
    steps: int
    monthly_tasks: int
    task_step_ratio: float

    model_config = _FROZEN


class WorkflowFinding(BaseModel):
    workflow_id: str
    workflow_name: str
    status: FindingStatus
    active: bool
    is_zombie: bool
    metrics: WorkflowMetrics
    confidence: ConfidenceLevel
    flags: List[EfficiencyFlag] = Field(default_factory=list)
    warnings: List[AuditWarning] = Field(default_factory=list)
    efficiency_score: int
    estimated_monthly_savings_usd: float

    model_config = _FROZEN


# -----------------------------------------------------------------------------
# Metadata and aggregates
# -----------------------------------------------------------------------------


class InputSources(BaseModel):
    workflow_definitions: bool
    execution_history: bool

    model_config = _FROZEN


class PricingAssumptions(BaseModel):
    plan_tier: str
    task_price_usd: float
    price_source: str
    tier_task_bound: int
    is_fallback: bool

    model_config = _FROZEN


class ConfidenceOverview(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0

    model_config = _FROZEN


class AuditMetadata(BaseModel):
    generated_at: Optional[str] = None
    input_sources: InputSources
    pricing_assumptions: PricingAssumptions
    confidence_overview: ConfidenceOverview

    model_config = _FROZEN


class SeverityCounts(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0

    model_config = _FROZEN


class GlobalMetrics(BaseModel):
    total_workflows: int
    active_workflows: int
    total_monthly_tasks: int
    estimated_monthly_waste_tasks: int
    estimated_monthly_waste_usd: float
    estimated_annual_waste_usd: float
    zombie_workflow_count: int
    inconclusive_workflow_count: int
    high_severity_flag_count: int
    flags_by_severity: SeverityCounts

    model_config = _FROZEN


class RankedOpportunity(BaseModel):
    workflow_id: str
    flag_code: FlagCode
    estimated_monthly_savings_usd: float
    confidence: ConfidenceLevel
    is_fallback: bool
    rank: int

    model_config = _FROZEN


class PremiumFeatures(BaseModel):
    paths: bool = False
    filters: bool = False
    webhooks: bool = False
    custom_logic: bool = False

    model_config = _FROZEN


class PlanAnalysis(BaseModel):
    current_plan: str
    monthly_task_usage: int
    tier_task_bound: int
    usage_percentile: float
    premium_features_detected: PremiumFeatures
    downgrade_safe: bool

    model_config = _FROZEN


class PatternFinding(BaseModel):
    """The same flag raised across several workflows."""
    flag_code: FlagCode
    pattern_name: str
    affected_workflow_ids: List[str]
    affected_count: int
    total_waste_usd: float
    refactor_guidance: str
    severity: Severity

    model_config = _FROZEN


class AppUsage(BaseModel):
    name: str
    raw_provider: str
    count: int

    model_config = _FROZEN


# -----------------------------------------------------------------------------
# Root
# -----------------------------------------------------------------------------


class AuditResult(BaseModel):
    """Complete audit result."""
    schema_version: str = SCHEMA_VERSION
    audit_metadata: AuditMetadata
    global_metrics: GlobalMetrics
    per_workflow_findings: List[WorkflowFinding]
    opportunities_ranked: List[RankedOpportunity] = Field(default_factory=list)
    plan_analysis: PlanAnalysis
    patterns: List[PatternFinding] = Field(default_factory=list)
    app_inventory: List[AppUsage] = Field(default_factory=list)

    model_config = _FROZEN

    def to_json(self, *, indent: Optional[int] = None) -> str:
        return self.model_dump_json(indent=indent)

    def finding_for(self, workflow_id: str) -> Optional[WorkflowFinding]:
        for finding in self.per_workflow_findings:
            if finding.workflow_id == workflow_id:
                return finding
        return None
