"""Audit result validation.

`validate_audit_result` fails closed: any violated invariant raises
`AuditValidationError` and the caller gets no result at all.
`parse_audit_result` is the consumer-side check that refuses payloads with an
unknown schema version.
"""

from __future__ import annotations

import json
import math
from typing import Any, Iterator, List, Mapping, Tuple, Union

from pydantic import ValidationError

from lighthouse.core.exceptions import AuditValidationError, UnrecognizedResultError
from lighthouse.core.results import SCHEMA_VERSION, AuditResult

from .costs import SAVINGS_EPSILON, annualize, flag_savings, savings_match
from .scoring import MAX_SCORE, efficiency_score


def _numbers(value: Any, path: str = "") -> Iterator[Tuple[str, float]]:
    if isinstance(value, bool):
        return
    if isinstance(value, (int, float)):
        yield path, value
    elif isinstance(value, Mapping):
        for key, item in value.items():
            yield from _numbers(item, f"{path}.{key}" if path else str(key))
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            yield from _numbers(item, f"{path}[{i}]")


def _check_numbers(result: AuditResult, problems: List[str]) -> None:
    for path, number in _numbers(result.model_dump(mode="python")):
        if isinstance(number, float) and not math.isfinite(number):
            problems.append(f"{path} is not finite ({number})")
        elif number < 0:
            problems.append(f"{path} is negative ({number})")


def _check_findings(result: AuditResult, expected_workflows: int, problems: List[str]) -> None:
    findings = result.per_workflow_findings
    if len(findings) != expected_workflows:
        problems.append(
            f"per_workflow_findings has {len(findings)} entries for {expected_workflows} workflows"
        )
    ids = [f.workflow_id for f in findings]
    if len(set(ids)) != len(ids):
        problems.append("per_workflow_findings contains duplicate workflow ids")

    for finding in findings:
        label = f"finding {finding.workflow_id}"
        if not 0 <= finding.efficiency_score <= MAX_SCORE:
            problems.append(f"{label}: efficiency_score {finding.efficiency_score} out of range")
        elif finding.efficiency_score != efficiency_score(finding.flags):
            problems.append(f"{label}: efficiency_score does not match its flags")
        if not math.isfinite(finding.estimated_monthly_savings_usd):
            continue
        if abs(finding.estimated_monthly_savings_usd - flag_savings(finding.flags)) > SAVINGS_EPSILON:
            problems.append(f"{label}: savings do not equal the sum of its flags")
        for flag in finding.flags:
            impact = flag.impact
            if abs(impact.estimated_annual_savings_usd - annualize(impact.estimated_monthly_savings_usd)) > SAVINGS_EPSILON:
                problems.append(f"{label}: {flag.code.value} annual savings is not 12x monthly")


def _check_totals(result: AuditResult, problems: List[str]) -> None:
    metrics = result.global_metrics
    flags = [flag for f in result.per_workflow_findings for flag in f.flags]
    if math.isfinite(metrics.estimated_monthly_waste_usd) and not savings_match(
        metrics.estimated_monthly_waste_usd, (f.monthly_savings for f in flags)
    ):
        problems.append("estimated_monthly_waste_usd does not equal the sum of flag savings")
    if metrics.total_workflows != len(result.per_workflow_findings):
        problems.append("total_workflows does not match the number of findings")
    if metrics.high_severity_flag_count != metrics.flags_by_severity.high:
        problems.append("high_severity_flag_count disagrees with flags_by_severity")
    price = result.audit_metadata.pricing_assumptions.task_price_usd
    if not price > 0:
        problems.append(f"task_price_usd must be positive ({price})")


def validate_audit_result(result: AuditResult, expected_workflows: int) -> AuditResult:
    """Check every invariant of an assembled result and return it unchanged."""
    problems: List[str] = []
    if result.schema_version != SCHEMA_VERSION:
        problems.append(f"schema_version is {result.schema_version!r}, expected {SCHEMA_VERSION!r}")
    _check_numbers(result, problems)
    _check_findings(result, expected_workflows, problems)
    _check_totals(result, problems)

    if problems:
        raise AuditValidationError(
            "Audit result failed validation",
            context={"problems": problems},
        )
    return result


def parse_audit_result(payload: Union[str, bytes, Mapping[str, Any]]) -> AuditResult:
    """Load a serialized result, rejecting any schema version other than the current one."""
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise UnrecognizedResultError("Audit result is not valid JSON", context={"error": str(exc)}) from exc
    else:
        data = payload

    if not isinstance(data, Mapping):
        raise UnrecognizedResultError("Audit result must be a JSON object")
    version = data.get("schema_version")
    if version != SCHEMA_VERSION:
        raise UnrecognizedResultError(
            "Unrecognized audit result schema version",
            context={"schema_version": version, "supported": SCHEMA_VERSION},
        )
    try:
        return AuditResult.model_validate(dict(data))
    except ValidationError as exc:
        raise UnrecognizedResultError(
            "Audit result does not match schema", context={"error": str(exc)}
        ) from exc
