"""Per-workflow findings and the portfolio result.

Assembly only builds values; `lighthouse.analysis.validation` decides whether
the result may leave the core.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from lighthouse.core.models import Workflow
from lighthouse.core.results import (
    AuditMetadata,
    AuditResult,
    AuditWarning,
    ConfidenceLevel,
    EfficiencyFlag,
    FindingStatus,
    GlobalMetrics,
    InputSources,
    PricingAssumptions,
    WarningCode,
    WorkflowFinding,
    WorkflowMetrics,
)
from lighthouse.graph.builder import ChainStatus, StepChain, build_step_chain
from lighthouse.pricing.tiers import PriceResolution
from lighthouse.usage.normalizer import guard_finite

from .costs import annualize, flag_savings, wasted_units
from .portfolio import analyze_plan, app_inventory, detect_patterns, rank_opportunities
from .scoring import confidence_overview, count_severities, efficiency_score

# Workflows longer than this get a complexity warning.
HIGH_COMPLEXITY_STEPS = 20


@dataclass(frozen=True)
class PreparedWorkflow:
    """A workflow paired with its reconstructed chain."""
    workflow: Workflow
    chain: StepChain

    @property
    def steps_per_run(self) -> int:
        return len(self.chain) if self.chain.steps else self.workflow.step_count

    @property
    def monthly_units(self) -> int:
        usage = self.workflow.usage
        if usage is None:
            return 0
        return usage.total_runs * self.steps_per_run

    @property
    def is_zombie(self) -> bool:
        """Switched on, with history that shows no runs at all."""
        usage = self.workflow.usage
        return self.workflow.active and usage is not None and not usage.has_runs


def prepare_workflow(workflow: Workflow) -> PreparedWorkflow:
    return PreparedWorkflow(workflow=workflow, chain=build_step_chain(workflow.steps))


def collect_warnings(prepared: PreparedWorkflow) -> List[AuditWarning]:
    chain = prepared.chain
    usage = prepared.workflow.usage
    warnings: List[AuditWarning] = []

    if chain.status is ChainStatus.NO_ENTRY:
        warnings.append(AuditWarning(
            code=WarningCode.MALFORMED_GRAPH,
            message="No entry step found; every step has a parent",
        ))
    elif chain.status is ChainStatus.MULTIPLE_ENTRIES:
        warnings.append(AuditWarning(
            code=WarningCode.MALFORMED_GRAPH,
            message="More than one step has no parent; entry step is ambiguous",
        ))
    if chain.cycle_detected:
        warnings.append(AuditWarning(
            code=WarningCode.MALFORMED_GRAPH,
            message="Step links form a cycle; traversal stopped at the repeated step",
        ))
    if chain.has_branches:
        warnings.append(AuditWarning(
            code=WarningCode.UNUSUAL_PATTERN,
            message="Workflow branches; only the first branch in step order was analysed",
        ))
    elif chain.is_conclusive and chain.unreachable_step_ids:
        warnings.append(AuditWarning(
            code=WarningCode.UNUSUAL_PATTERN,
            message=f"{len(chain.unreachable_step_ids)} step(s) are not reachable from the entry step",
        ))

    if usage is None:
        warnings.append(AuditWarning(
            code=WarningCode.INCOMPLETE_DATA,
            message="No execution history; estimates use assumed volumes",
        ))
    elif usage.low_confidence:
        warnings.append(AuditWarning(
            code=WarningCode.INCOMPLETE_DATA,
            message="Execution statistics were inconsistent and have been clamped",
        ))

    if prepared.workflow.step_count > HIGH_COMPLEXITY_STEPS:
        warnings.append(AuditWarning(
            code=WarningCode.HIGH_COMPLEXITY,
            message=f"Workflow has {prepared.workflow.step_count} steps",
        ))
    return warnings


def _finding_confidence(prepared: PreparedWorkflow) -> ConfidenceLevel:
    usage = prepared.workflow.usage
    if not prepared.chain.is_conclusive or (usage is not None and usage.low_confidence):
        return ConfidenceLevel.LOW
    if usage is None:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH


def assemble_finding(prepared: PreparedWorkflow, flags: Sequence[EfficiencyFlag]) -> WorkflowFinding:
    workflow = prepared.workflow
    if not prepared.chain.is_conclusive:
        status = FindingStatus.INCONCLUSIVE
    elif flags:
        status = FindingStatus.FLAGGED
    else:
        status = FindingStatus.CLEAN

    steps = workflow.step_count
    monthly = prepared.monthly_units
    return WorkflowFinding(
        workflow_id=workflow.id,
        workflow_name=workflow.display_name,
        status=status,
        active=workflow.active,
        is_zombie=prepared.is_zombie,
        metrics=WorkflowMetrics(
            steps=steps,
            monthly_tasks=monthly,
            task_step_ratio=guard_finite(monthly / steps) if steps else 0.0,
        ),
        confidence=_finding_confidence(prepared),
        flags=list(flags),
        warnings=collect_warnings(prepared),
        efficiency_score=efficiency_score(flags),
        estimated_monthly_savings_usd=flag_savings(flags),
    )


def assemble_result(
    findings: Sequence[WorkflowFinding],
    workflows: Sequence[Workflow],
    resolution: PriceResolution,
    monthly_units: int,
    *,
    generated_at: Optional[str] = None,
) -> AuditResult:
    """Build the portfolio result from sorted findings. Does not validate."""
    flags = [flag for finding in findings for flag in finding.flags]
    monthly_waste = flag_savings(flags)
    severities = count_severities(flags)

    metadata = AuditMetadata(
        generated_at=generated_at,
        input_sources=InputSources(
            workflow_definitions=bool(workflows),
            execution_history=any(w.usage is not None for w in workflows),
        ),
        pricing_assumptions=PricingAssumptions(
            plan_tier=resolution.plan,
            task_price_usd=resolution.price_per_unit,
            price_source=resolution.source.value,
            tier_task_bound=resolution.tier_bound,
            is_fallback=resolution.is_fallback,
        ),
        confidence_overview=confidence_overview(findings),
    )
    metrics = GlobalMetrics(
        total_workflows=len(findings),
        active_workflows=sum(1 for f in findings if f.active),
        total_monthly_tasks=sum(f.metrics.monthly_tasks for f in findings),
        estimated_monthly_waste_tasks=wasted_units(monthly_waste, resolution.price_per_unit),
        estimated_monthly_waste_usd=monthly_waste,
        estimated_annual_waste_usd=annualize(monthly_waste),
        zombie_workflow_count=sum(1 for f in findings if f.is_zombie),
        inconclusive_workflow_count=sum(1 for f in findings if f.status is FindingStatus.INCONCLUSIVE),
        high_severity_flag_count=severities.high,
        flags_by_severity=severities,
    )
    return AuditResult(
        audit_metadata=metadata,
        global_metrics=metrics,
        per_workflow_findings=list(findings),
        opportunities_ranked=rank_opportunities(findings),
        plan_analysis=analyze_plan(workflows, resolution, monthly_units),
        patterns=detect_patterns(findings),
        app_inventory=app_inventory(workflows),
    )
