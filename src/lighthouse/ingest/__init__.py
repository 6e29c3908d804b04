"""Export bundle ingestion."""

from .export import (
    WORKFLOW_FILE_CANDIDATES,
    ExportBundle,
    attach_usage,
    infer_kind,
    load_bundle,
    parse_execution_csv,
    parse_workflows,
)

__all__ = [
    "WORKFLOW_FILE_CANDIDATES",
    "ExportBundle",
    "attach_usage",
    "infer_kind",
    "load_bundle",
    "parse_execution_csv",
    "parse_workflows",
]
