"""Shared fixtures for Lighthouse tests.

The factory fixtures build linear workflows from a compact description so each
test states only the steps and usage that matter to it.
"""

import json
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytest

from lighthouse.core.models import ActionKind, Step, UsageStats, Workflow
from lighthouse.usage.normalizer import usage_from_counts

StepSpec = Union[ActionKind, Tuple[ActionKind, str]]


@pytest.fixture
def make_chain():
    """Factory: list of step specs -> linearly linked steps with ids "1".."n".

    A spec is an ActionKind or an (ActionKind, provider) pair.
    """
    def _make(specs: Sequence[StepSpec]) -> List[Step]:
        steps: List[Step] = []
        for index, spec in enumerate(specs, start=1):
            kind, provider = spec if isinstance(spec, tuple) else (spec, "")
            steps.append(
                Step(
                    id=str(index),
                    parent_id=str(index - 1) if index > 1 else None,
                    kind=kind,
                    provider=provider,
                )
            )
        return steps

    return _make


@pytest.fixture
def make_workflow(make_chain):
    """Factory for a workflow with a linear chain and optional usage."""
    def _make(
        workflow_id: str = "100",
        specs: Sequence[StepSpec] = (ActionKind.READ, ActionKind.WRITE),
        usage: Optional[UsageStats] = None,
        name: Optional[str] = "Test Workflow",
        active: bool = True,
    ) -> Workflow:
        return Workflow(
            id=workflow_id,
            name=name,
            steps=make_chain(specs),
            usage=usage,
            active=active,
        )

    return _make


@pytest.fixture
def make_usage():
    """Factory for usage statistics from counts."""
    def _make(total_runs: int, error_count: int = 0, **kwargs: Any) -> UsageStats:
        return usage_from_counts(total_runs, error_count, **kwargs)

    return _make


@pytest.fixture
def zapfile_dict() -> Dict[str, Any]:
    """A small export with one polling workflow and one late-filter workflow."""
    return {
        "metadata": {"version": "1"},
        "zaps": [
            {
                "id": 101,
                "title": "RSS to Slack",
                "status": "on",
                "steps": [
                    {"id": 1, "parent_id": None, "type_of": "read", "selected_api": "RSSCLIAPI@1.0.0", "action": "new_item"},
                    {"id": 2, "parent_id": 1, "type_of": "write", "selected_api": "SlackCLIAPI@1.2.0", "action": "send_message"},
                ],
            },
            {
                "id": 202,
                "title": "Leads",
                "status": "off",
                "nodes": {
                    "10": {"id": 10, "parent_id": None, "type_of": "read", "selected_api": "WebHookCLIAPI", "action": "catch_hook"},
                    "11": {"id": 11, "parent_id": 10, "type_of": "write", "selected_api": "HubSpotCLIAPI", "action": "create_contact"},
                    "12": {"id": 12, "parent_id": 11, "type_of": "filter", "selected_api": "FilterAPI", "action": "filter"},
                },
            },
        ],
    }


@pytest.fixture
def task_history_csv() -> str:
    rows = ["zap_id,status,error_message,timestamp"]
    for i in range(20):
        status = "error" if i < 5 else "success"
        message = "Auth expired" if status == "error" else ""
        rows.append(f"101,{status},{message},2024-01-{i + 1:02d}T00:00:00Z")
    return "\n".join(rows) + "\n"


@pytest.fixture
def export_zip(tmp_path: Path, zapfile_dict: Dict[str, Any], task_history_csv: str) -> Path:
    """ZIP bundle with definitions and execution history."""
    path = tmp_path / "export.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("export/zapfile.json", json.dumps(zapfile_dict))
        archive.writestr("export/task_history.csv", task_history_csv)
        archive.writestr("export/readme.txt", "ignored")
    return path
