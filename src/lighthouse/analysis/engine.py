"""Portfolio analysis entry point.

`analyze` is a pure function of its arguments: it reads no settings, performs
no I/O and keeps no state between calls. Identical input gives a
byte-identical result.
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from lighthouse.config.settings import DEFAULT_CONFIG, AnalysisConfig
from lighthouse.core.exceptions import InvalidInputError
from lighthouse.core.models import Workflow
from lighthouse.core.results import AuditResult, WorkflowFinding
from lighthouse.detectors.base import DetectionContext
from lighthouse.detectors.registry import run_detectors
from lighthouse.detectors.thresholds import DetectorThresholds
from lighthouse.graph.builder import step_sort_key
from lighthouse.pricing.tiers import (
    FALLBACK_TASK_VOLUME,
    PriceResolution,
    apply_price_override,
    resolve_price,
)
from lighthouse.utils.logging import get_logger

from .assembler import PreparedWorkflow, assemble_finding, assemble_result, prepare_workflow
from .validation import validate_audit_result

logger = get_logger(__name__)


def analyze_workflow(
    prepared: PreparedWorkflow, price_per_unit: float, thresholds: DetectorThresholds
) -> WorkflowFinding:
    """Run every detector on one workflow and build its finding."""
    ctx = DetectionContext(
        workflow_id=prepared.workflow.id,
        chain=prepared.chain,
        usage=prepared.workflow.usage,
        price_per_unit=price_per_unit,
        thresholds=thresholds,
    )
    return assemble_finding(prepared, run_detectors(ctx))


def derive_task_volume(prepared: Sequence[PreparedWorkflow]) -> int:
    """Monthly billable units from usage, or the fallback volume when there is none."""
    if not any(p.workflow.usage is not None for p in prepared):
        return FALLBACK_TASK_VOLUME
    return sum(p.monthly_units for p in prepared)


def resolve_portfolio_price(
    plan: str,
    volume: int,
    config: AnalysisConfig,
    price_override: Optional[float] = None,
) -> PriceResolution:
    resolution = resolve_price(plan, volume, config.pricing_table, strict=config.strict_plan)
    return apply_price_override(resolution, price_override)


def _run_batch(
    prepared: Sequence[PreparedWorkflow], price_per_unit: float, config: AnalysisConfig
) -> List[WorkflowFinding]:
    thresholds = config.thresholds
    if config.max_workers > 1 and len(prepared) > config.parallel_threshold:
        logger.debug(
            "Analysing workflows in parallel",
            extra={"workflow_count": len(prepared), "max_workers": config.max_workers},
        )
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            findings = list(
                executor.map(lambda p: analyze_workflow(p, price_per_unit, thresholds), prepared)
            )
    else:
        findings = [analyze_workflow(p, price_per_unit, thresholds) for p in prepared]
    # Merge order is not meaningful; emit in canonical id order.
    findings.sort(key=lambda f: step_sort_key(f.workflow_id))
    return findings


def check_unique_ids(workflows: Sequence[Workflow]) -> None:
    """Raise InvalidInputError when two workflows share an identifier."""
    counts = Counter(w.id for w in workflows)
    duplicates = sorted((wid for wid, n in counts.items() if n > 1), key=step_sort_key)
    if duplicates:
        raise InvalidInputError(
            "Workflow ids must be unique", context={"duplicate_ids": duplicates}
        )


def analyze(
    workflows: Sequence[Workflow],
    plan: Optional[str] = None,
    *,
    price_override: Optional[float] = None,
    monthly_task_volume: Optional[int] = None,
    config: AnalysisConfig = DEFAULT_CONFIG,
    generated_at: Optional[str] = None,
) -> AuditResult:
    """Audit a batch of workflows.

    Args:
        workflows: Workflow definitions, each optionally paired with usage.
        plan: Plan family tag; defaults to `config.plan`.
        price_override: Unit price to use instead of the tier price.
        monthly_task_volume: Monthly billable units for tier selection. Derived
            from usage when omitted.
        config: Pricing table, detector thresholds and parallelism.
        generated_at: Timestamp to stamp on the result. The core has no clock.

    Returns:
        A validated AuditResult.

    Raises:
        AuditValidationError: The assembled result broke an invariant.
        InvalidInputError: Two workflows share an identifier.
        ConfigurationError: The price override is not a positive finite number.
        UnrecognizedPlanError: The plan is unknown and `config.strict_plan` is set.
    """
    check_unique_ids(workflows)
    plan_tag = plan if plan is not None else config.plan
    prepared = [prepare_workflow(w) for w in workflows]

    observed_units = sum(p.monthly_units for p in prepared)
    volume = monthly_task_volume if monthly_task_volume is not None else derive_task_volume(prepared)
    resolution = resolve_portfolio_price(plan_tag, volume, config, price_override)

    findings = _run_batch(prepared, resolution.price_per_unit, config)
    result = assemble_result(
        findings,
        workflows,
        resolution,
        resolution.volume if monthly_task_volume is not None else observed_units,
        generated_at=generated_at,
    )
    validate_audit_result(result, expected_workflows=len(workflows))

    logger.info(
        "Audit complete",
        extra={
            "workflow_count": len(findings),
            "flag_count": sum(len(f.flags) for f in findings),
            "monthly_waste_usd": round(result.global_metrics.estimated_monthly_waste_usd, 2),
            "price_per_unit": resolution.price_per_unit,
            "price_source": resolution.source.value,
        },
    )
    return result
