"""Tests for reading export bundles."""

import json

import pytest

from lighthouse.core.exceptions import ExportParseError
from lighthouse.core.models import ActionKind
from lighthouse.ingest.export import (
    infer_kind,
    load_bundle,
    parse_execution_csv,
    parse_workflows,
)


class TestParseWorkflows:
    """Workflow definitions in both the steps-array and legacy nodes-map shapes."""

    def test_steps_array_and_nodes_map(self, zapfile_dict):
        workflows = parse_workflows(json.dumps(zapfile_dict))
        assert [w.id for w in workflows] == ["101", "202"]

        rss, leads = workflows
        assert rss.name == "RSS to Slack"
        assert rss.active
        assert [s.id for s in rss.steps] == ["1", "2"]
        assert rss.steps[0].provider == "RSSCLIAPI@1.0.0"
        assert rss.steps[0].kind is ActionKind.READ

        assert not leads.active
        assert [s.kind for s in leads.steps] == [ActionKind.READ, ActionKind.WRITE, ActionKind.FILTER]
        assert leads.steps[1].parent_id == "10"

    def test_app_and_type_aliases(self):
        doc = {"zaps": [{"id": "x", "name": "Alias", "steps": [{"id": "a", "type": "write", "app": "Gmail"}]}]}
        step = parse_workflows(json.dumps(doc))[0].steps[0]
        assert step.kind is ActionKind.WRITE
        assert step.provider == "Gmail"

    def test_polling_interval_override(self):
        doc = {"zaps": [{"id": 1, "steps": [
            {"id": 1, "selected_api": "WebHookCLIAPI", "triple_stores": {"polling_interval_override": 5}},
            {"id": 2, "parent_id": 1, "triple_stores": {"polling_interval_override": 0}},
        ]}]}
        steps = parse_workflows(json.dumps(doc))[0].steps
        assert steps[0].polling_interval_minutes == 5
        assert steps[1].polling_interval_minutes is None

    def test_invalid_json_raises(self):
        with pytest.raises(ExportParseError) as exc_info:
            parse_workflows("{")
        assert "line" in exc_info.value.context

    def test_missing_zaps_list_raises(self):
        with pytest.raises(ExportParseError):
            parse_workflows(json.dumps({"metadata": {}}))

    def test_workflow_without_id_raises(self):
        with pytest.raises(ExportParseError):
            parse_workflows(json.dumps({"zaps": [{"title": "no id"}]}))


@pytest.mark.parametrize(
    "raw,kind",
    [
        ({"action": "filter"}, ActionKind.FILTER),
        ({"title": "Only continue if...Filter", "type_of": "write"}, ActionKind.FILTER),
        ({"type_of": "read"}, ActionKind.READ),
        ({"type": "WRITE"}, ActionKind.WRITE),
        ({}, ActionKind.GENERIC),
    ],
)
def test_infer_kind(raw, kind):
    assert infer_kind(raw) is kind


class TestExecutionCsv:
    def test_history_csv_is_detected_by_header(self, task_history_csv):
        records = parse_execution_csv(task_history_csv)
        assert len(records) == 20
        assert records[0].workflow_id == "101"
        assert records[0].is_error
        assert records[0].error_message == "Auth expired"

    def test_other_csv_is_ignored(self):
        assert parse_execution_csv("name,email\nA,a@example.com\n") == []

    def test_headers_are_case_insensitive(self):
        records = parse_execution_csv("Zap_ID,Status\n7,success\n")
        assert [(r.workflow_id, r.status) for r in records] == [("7", "success")]


class TestLoadBundle:
    def test_zip_bundle_attaches_usage(self, export_zip):
        bundle = load_bundle(export_zip)
        assert bundle.has_execution_history
        by_id = {w.id: w for w in bundle.workflows}
        assert by_id["101"].usage.total_runs == 20
        assert by_id["101"].usage.error_count == 5
        assert by_id["202"].usage is None

    def test_directory_bundle(self, tmp_path, zapfile_dict):
        (tmp_path / "zaps.json").write_text(json.dumps(zapfile_dict))
        bundle = load_bundle(tmp_path)
        assert len(bundle.workflows) == 2
        assert not bundle.has_execution_history

    def test_single_json_file(self, tmp_path, zapfile_dict):
        path = tmp_path / "my-export.json"
        path.write_text(json.dumps(zapfile_dict))
        assert len(load_bundle(path).workflows) == 2

    def test_bundle_without_definitions_raises(self, tmp_path):
        (tmp_path / "history.csv").write_text("zap_id,status\n1,success\n")
        with pytest.raises(ExportParseError):
            load_bundle(tmp_path)

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(ExportParseError):
            load_bundle(tmp_path / "nope.zip")

    def test_select_workflows(self, export_zip):
        bundle = load_bundle(export_zip)
        assert [w.id for w in bundle.select(["202", "999"])] == ["202"]
