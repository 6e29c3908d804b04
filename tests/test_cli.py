"""Tests for the lighthouse command line."""

import json

import pytest

from lighthouse.analysis.validation import parse_audit_result
from lighthouse.cli import build_parser, main
from lighthouse.core.results import FlagCode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("LIGHTHOUSE_DEFAULT_PLAN", "LIGHTHOUSE_PRICING_TABLE_PATH", "LIGHTHOUSE_STRICT_PLAN"):
        monkeypatch.delenv(name, raising=False)
    # Keep a stray .env in the working directory out of the settings.
    monkeypatch.chdir(tmp_path)


class TestAuditCommand:
    def test_writes_result_file(self, export_zip, tmp_path):
        out = tmp_path / "audit.json"
        code = main([
            "audit", str(export_zip),
            "--plan", "team",
            "--generated-at", "2024-06-01T00:00:00Z",
            "--output", str(out),
        ])
        assert code == 0

        result = parse_audit_result(out.read_text())
        assert result.audit_metadata.generated_at == "2024-06-01T00:00:00Z"
        assert result.audit_metadata.pricing_assumptions.plan_tier == "team"
        assert result.audit_metadata.input_sources.execution_history
        codes = {
            f.workflow_id: sorted(flag.code.value for flag in f.flags)
            for f in result.per_workflow_findings
        }
        assert codes["101"] == sorted([FlagCode.ERROR_LOOP.value, FlagCode.POLLING_TRIGGER.value])
        assert codes["202"] == [FlagCode.LATE_FILTER.value]

    def test_workflow_filter_and_price_override(self, export_zip, capsys):
        code = main(["audit", str(export_zip), "--workflow-id", "202", "--price-override", "0.01"])
        assert code == 0

        payload = json.loads(capsys.readouterr().out)
        assert [f["workflow_id"] for f in payload["per_workflow_findings"]] == ["202"]
        assert payload["audit_metadata"]["pricing_assumptions"]["task_price_usd"] == 0.01
        assert payload["audit_metadata"]["pricing_assumptions"]["price_source"] == "override"

    def test_strict_plan_failure_exits_nonzero(self, export_zip, capsys):
        code = main(["audit", str(export_zip), "--plan", "enterprise", "--strict-plan"])
        assert code == 1
        assert "Unknown plan family" in capsys.readouterr().err

    def test_missing_bundle_exits_nonzero(self, tmp_path, capsys):
        assert main(["audit", str(tmp_path / "missing.zip")]) == 1
        assert "error:" in capsys.readouterr().err


class TestListCommand:
    def test_lists_workflows(self, export_zip, capsys):
        assert main(["list", str(export_zip)]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("ID")
        assert any(line.startswith("101") and "RSS" in line and "25.0%" in line for line in lines)
        assert any(line.startswith("202") and "off" in line for line in lines)


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
