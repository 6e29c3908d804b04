"""Export bundle ingestion.

A bundle is a ZIP archive, a directory or a single JSON file. Workflow
definitions come from the first of `WORKFLOW_FILE_CANDIDATES` found; execution
history comes from every CSV whose header has `zap_id` and `status` columns,
whatever the file is called.
"""

from __future__ import annotations

import csv
import io
import json
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from lighthouse.core.exceptions import ExportParseError
from lighthouse.core.models import ActionKind, Step, UsageStats, Workflow
from lighthouse.usage.normalizer import ExecutionRecord, group_executions
from lighthouse.utils.logging import get_logger

logger = get_logger(__name__)

WORKFLOW_FILE_CANDIDATES = ("zapfile.json", "zaps.json", "config.json")

_HISTORY_ID_COLUMN = "zap_id"
_HISTORY_STATUS_COLUMN = "status"
_ERROR_COLUMNS = ("error_message", "error")
_TIMESTAMP_COLUMN = "timestamp"
_ACTIVE_STATUSES = frozenset({"on", "active", "enabled"})


@dataclass(frozen=True)
class ExportBundle:
    """Parsed bundle contents, with usage already attached to workflows."""
    source: str
    workflows: List[Workflow] = field(default_factory=list)
    usage: Dict[str, UsageStats] = field(default_factory=dict)

    @property
    def has_execution_history(self) -> bool:
        return bool(self.usage)

    def select(self, workflow_ids: Iterable[str]) -> List[Workflow]:
        wanted = {str(w) for w in workflow_ids}
        return [w for w in self.workflows if w.id in wanted]


# -----------------------------------------------------------------------------
# Steps and workflows
# -----------------------------------------------------------------------------


def infer_kind(raw: Mapping[str, Any]) -> ActionKind:
    """Filter when the action or title mentions one; otherwise the export's read/write tag."""
    action = str(raw.get("action") or "").lower()
    title = str(raw.get("title") or "").lower()
    if "filter" in action or "filter" in title:
        return ActionKind.FILTER
    type_of = str(raw.get("type_of") or raw.get("type") or "").lower()
    if type_of == "read":
        return ActionKind.READ
    if type_of == "write":
        return ActionKind.WRITE
    return ActionKind.GENERIC


def _polling_interval(raw: Mapping[str, Any]) -> Optional[int]:
    stores = raw.get("triple_stores")
    if not isinstance(stores, Mapping):
        return None
    value = stores.get("polling_interval_override")
    # Zero means "no override" in exports, not "instant".
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None


def parse_step(raw: Mapping[str, Any], fallback_id: str) -> Step:
    step_id = raw.get("id")
    return Step(
        id=fallback_id if step_id is None else step_id,
        parent_id=raw.get("parent_id"),
        kind=infer_kind(raw),
        provider=str(raw.get("selected_api") or raw.get("app") or ""),
        action=str(raw.get("action") or ""),
        title=raw.get("title"),
        polling_interval_minutes=_polling_interval(raw),
        metadata={k: raw[k] for k in ("type_of", "type", "paused") if k in raw},
    )


def _raw_steps(raw: Mapping[str, Any]) -> List[Tuple[str, Mapping[str, Any]]]:
    steps = raw.get("steps", raw.get("actions"))
    if isinstance(steps, list):
        return [(str(i), s) for i, s in enumerate(steps)]
    nodes = raw.get("nodes")
    if isinstance(nodes, Mapping):
        return [(str(key), node) for key, node in nodes.items()]
    return []


def parse_workflow(raw: Mapping[str, Any]) -> Workflow:
    if "id" not in raw:
        raise ExportParseError("Workflow entry has no id", context={"keys": sorted(raw)})
    status = str(raw.get("status", raw.get("state", "on")) or "").lower()
    steps = []
    for fallback_id, node in _raw_steps(raw):
        if not isinstance(node, Mapping):
            raise ExportParseError("Step entry is not an object", context={"workflow_id": raw["id"]})
        steps.append(parse_step(node, fallback_id))
    return Workflow(
        id=raw["id"],
        name=raw.get("title", raw.get("name")),
        steps=steps,
        active=status in _ACTIVE_STATUSES,
    )


def parse_workflows(text: str) -> List[Workflow]:
    """Parse a workflow definitions document (`{"zaps": [...]}` or a bare list)."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExportParseError(
            "Workflow definitions are not valid JSON",
            context={"line": exc.lineno, "column": exc.colno, "error": exc.msg},
        ) from exc

    entries = data.get("zaps", data.get("workflows")) if isinstance(data, Mapping) else data
    if not isinstance(entries, list):
        raise ExportParseError("Workflow definitions must contain a 'zaps' list")
    try:
        return [parse_workflow(entry) for entry in entries if isinstance(entry, Mapping)]
    except ValidationError as exc:
        raise ExportParseError("Invalid workflow definition", context={"error": str(exc)}) from exc


# -----------------------------------------------------------------------------
# Execution history
# -----------------------------------------------------------------------------


def parse_execution_csv(text: str) -> List[ExecutionRecord]:
    """Records from one CSV; empty when the file is not execution history."""
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        return []
    columns = {name.strip().lower(): name for name in reader.fieldnames if name}
    if _HISTORY_ID_COLUMN not in columns or _HISTORY_STATUS_COLUMN not in columns:
        return []

    id_col = columns[_HISTORY_ID_COLUMN]
    status_col = columns[_HISTORY_STATUS_COLUMN]
    error_col = next((columns[c] for c in _ERROR_COLUMNS if c in columns), None)
    ts_col = columns.get(_TIMESTAMP_COLUMN)

    records: List[ExecutionRecord] = []
    for row in reader:
        workflow_id = (row.get(id_col) or "").strip()
        status = (row.get(status_col) or "").strip()
        if not workflow_id or not status:
            continue
        records.append(
            ExecutionRecord(
                workflow_id=workflow_id,
                status=status,
                error_message=(row.get(error_col) or None) if error_col else None,
                timestamp=(row.get(ts_col) or None) if ts_col else None,
            )
        )
    return records


def attach_usage(workflows: Iterable[Workflow], usage: Mapping[str, UsageStats]) -> List[Workflow]:
    return [w.with_usage(usage[w.id]) if w.id in usage else w for w in workflows]


# -----------------------------------------------------------------------------
# Bundles
# -----------------------------------------------------------------------------


def _pick_definitions(files: Mapping[str, str]) -> Optional[str]:
    by_name: Dict[str, str] = {}
    for name in sorted(files):
        by_name.setdefault(PurePosixPath(name).name.lower(), name)
    for candidate in WORKFLOW_FILE_CANDIDATES:
        if candidate in by_name:
            return by_name[candidate]
    return None


def _decode(name: str, payload: bytes) -> str:
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExportParseError("File is not UTF-8 text", context={"file": name}) from exc


def _read_zip(path: Path) -> Dict[str, str]:
    try:
        with zipfile.ZipFile(path) as archive:
            return {
                info.filename: _decode(info.filename, archive.read(info))
                for info in archive.infolist()
                if not info.is_dir() and info.filename.lower().endswith((".json", ".csv"))
            }
    except zipfile.BadZipFile as exc:
        raise ExportParseError("Not a valid ZIP archive", context={"path": str(path)}) from exc


def _read_dir(path: Path) -> Dict[str, str]:
    return {
        p.relative_to(path).as_posix(): _decode(p.name, p.read_bytes())
        for p in sorted(path.rglob("*"))
        if p.is_file() and p.suffix.lower() in (".json", ".csv")
    }


def read_bundle_files(path: Path) -> Dict[str, str]:
    """Text of every JSON and CSV file in the bundle, keyed by relative name."""
    path = Path(path)
    if not path.exists():
        raise ExportParseError("Export not found", context={"path": str(path)})
    if path.is_dir():
        return _read_dir(path)
    if zipfile.is_zipfile(path):
        return _read_zip(path)
    return {path.name: _decode(path.name, path.read_bytes())}


def load_bundle(path: Path) -> ExportBundle:
    """Read a bundle and return workflows with their execution statistics attached."""
    files = read_bundle_files(path)
    if Path(path).is_file() and not zipfile.is_zipfile(path) and len(files) == 1:
        definitions_name: Optional[str] = next(iter(files))
    else:
        definitions_name = _pick_definitions(files)
    if definitions_name is None:
        raise ExportParseError(
            "No workflow definitions found",
            context={"path": str(path), "expected": list(WORKFLOW_FILE_CANDIDATES)},
        )

    workflows = parse_workflows(files[definitions_name])

    records: List[ExecutionRecord] = []
    for name, text in sorted(files.items()):
        if name.lower().endswith(".csv"):
            try:
                records.extend(parse_execution_csv(text))
            except csv.Error as exc:
                raise ExportParseError("Malformed CSV", context={"file": name, "error": str(exc)}) from exc
    usage = group_executions(records)

    logger.info(
        "Loaded export bundle",
        extra={
            "path": str(path),
            "workflow_count": len(workflows),
            "execution_records": len(records),
            "definitions_file": definitions_name,
        },
    )
    return ExportBundle(source=str(path), workflows=attach_usage(workflows, usage), usage=usage)
