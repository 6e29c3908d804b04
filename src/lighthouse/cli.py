"""CLI entrypoint: audit an export bundle or list its workflows."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .analysis.engine import analyze
from .config.settings import Settings, load_settings
from .core.exceptions import LighthouseException
from .ingest.export import load_bundle
from .utils.apps import app_display_name
from .utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lighthouse", description="Workflow efficiency audit")
    parser.add_argument("--log-level", help="Override LIGHTHOUSE_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    audit = sub.add_parser("audit", help="Run the audit and write the JSON result")
    audit.add_argument("bundle", type=Path, help="ZIP archive, directory or workflow JSON file")
    audit.add_argument("--plan", help="Plan family (default: LIGHTHOUSE_DEFAULT_PLAN)")
    audit.add_argument("--monthly-tasks", type=int, help="Monthly task volume for tier selection")
    audit.add_argument("--price-override", type=float, help="Price per task in USD")
    audit.add_argument(
        "--workflow-id", action="append", default=[], help="Only audit these workflows (repeatable)"
    )
    audit.add_argument("--strict-plan", action="store_true", help="Fail on an unknown plan")
    audit.add_argument("--generated-at", help="Timestamp to stamp on the result")
    audit.add_argument("--output", "-o", type=Path, help="Write JSON here instead of stdout")
    audit.add_argument("--indent", type=int, default=2)

    listing = sub.add_parser("list", help="Summarise workflows without running detectors")
    listing.add_argument("bundle", type=Path)
    return parser


def run_audit(args: argparse.Namespace, settings: Settings) -> int:
    config = settings.analysis_config(plan=args.plan, strict_plan=args.strict_plan or None)
    bundle = load_bundle(args.bundle)

    workflows = bundle.select(args.workflow_id) if args.workflow_id else bundle.workflows
    if args.workflow_id and len(workflows) != len(set(args.workflow_id)):
        missing = sorted(set(args.workflow_id) - {w.id for w in workflows})
        logger.warning("Unknown workflow ids ignored", extra={"workflow_ids": missing})

    result = analyze(
        workflows,
        config.plan,
        price_override=args.price_override,
        monthly_task_volume=args.monthly_tasks,
        config=config,
        generated_at=args.generated_at,
    )
    payload = result.to_json(indent=args.indent)
    if args.output:
        args.output.write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote audit result", extra={"path": str(args.output)})
    else:
        print(payload)
    return 0


def format_listing(rows: Sequence[Sequence[str]]) -> List[str]:
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    return ["  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in rows]


def run_list(args: argparse.Namespace) -> int:
    bundle = load_bundle(args.bundle)
    rows = [["ID", "NAME", "STATUS", "TRIGGER", "STEPS", "RUNS", "ERROR RATE"]]
    for workflow in bundle.workflows:
        entry = next((s for s in workflow.steps if s.parent_id is None), None)
        usage = workflow.usage
        rows.append([
            workflow.id,
            workflow.display_name,
            "on" if workflow.active else "off",
            app_display_name(entry.provider) if entry else "-",
            str(workflow.step_count),
            str(usage.total_runs) if usage else "-",
            f"{usage.error_rate:.1f}%" if usage and usage.has_runs else "-",
        ])
    for line in format_listing(rows):
        print(line)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        configure_logging(level=args.log_level or settings.log_level, json_logs=settings.json_logs)
        if args.command == "audit":
            return run_audit(args, settings)
        return run_list(args)
    except LighthouseException as exc:
        logger.error("Command failed", extra={"error": exc.message, "context": exc.context})
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
