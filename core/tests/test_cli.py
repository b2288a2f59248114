"""Tests for the flowforge command-line interface."""

import json
from pathlib import Path

import pytest

import flowforge.cli
from flowforge.cli import main
from flowforge.storage.workflow_file import save_workflow


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """main() reconfigures the root logger; keep pytest's handlers intact."""
    monkeypatch.setattr(flowforge.cli, "configure_logging", lambda **kwargs: None)


@pytest.fixture
def branch_file(tmp_path: Path, branch_graph) -> Path:
    branch_graph.find_by_id("adult").add_metadata("owner", "risk-team")
    branch_graph.find_by_id("adult").add_metadata("reviewed", "2024-05-01")
    return save_workflow(branch_graph, tmp_path / "branch.json")


@pytest.fixture
def broken_file(tmp_path: Path) -> Path:
    path = tmp_path / "broken.json"
    path.write_text(
        json.dumps(
            {
                "nodes": [
                    {"id": "s", "name": "Start", "type": "START"},
                    {"id": "c", "name": "Check", "type": "CONDITION", "parameter": "x > 1"},
                ],
                "connections": [{"sourceId": "s", "targetId": "c"}],
            }
        )
    )
    return path


class TestValidate:
    def test_valid_file(self, branch_file, capsys):
        assert main(["validate", str(branch_file)]) == 0
        assert "Validation passed" in capsys.readouterr().out

    def test_invalid_file(self, broken_file, capsys):
        assert main(["validate", str(broken_file)]) == 1
        out = capsys.readouterr().out
        assert "out_degree" in out
        assert "Validation failed" in out

    def test_json_output(self, broken_file, capsys):
        main(["validate", str(broken_file), "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["ok"] is False
        assert data["diagnostics"][0]["kind"] == "out_degree"

    def test_unreadable_file(self, tmp_path, capsys):
        assert main(["validate", str(tmp_path / "absent.json")]) == 1
        assert "Error:" in capsys.readouterr().err

    @pytest.mark.parametrize("command", ["validate", "run", "info"])
    def test_undecodable_file(self, tmp_path, capsys, command):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"nodes": [{"id": "\xff\xfe", "name": "A", "type": "DATA"}]}')
        assert main([command, str(path)]) == 1
        assert "Error:" in capsys.readouterr().err


class TestRun:
    def test_yes_branch(self, branch_file, capsys):
        assert main(["run", str(branch_file), "--context", '{"age": 30}']) == 0
        out = capsys.readouterr().out
        assert "allow" in out
        assert "deny" not in out
        assert "Execution succeeded" in out

    def test_invalid_workflow_is_refused(self, broken_file, capsys):
        assert main(["run", str(broken_file)]) == 1
        assert "Workflow is not valid" in capsys.readouterr().err

    def test_no_validate_reports_failure(self, broken_file, capsys):
        assert main(["run", str(broken_file), "--no-validate", "--context", '{"x": "5"}']) == 1
        assert "Execution failed" in capsys.readouterr().out

    def test_bad_context(self, branch_file, capsys):
        assert main(["run", str(branch_file), "--context", "[1, 2]"]) == 1
        assert "invalid context" in capsys.readouterr().err

    def test_diamond_join_is_counted_once(self, tmp_path, capsys):
        path = tmp_path / "diamond.json"
        path.write_text(
            json.dumps(
                {
                    "nodes": [
                        {"id": "s", "name": "Start", "type": "START"},
                        {"id": "a", "name": "A", "type": "DATA"},
                        {"id": "b", "name": "B", "type": "DATA"},
                        {"id": "e", "name": "End", "type": "END"},
                    ],
                    "connections": [
                        {"sourceId": "s", "targetId": "a"},
                        {"sourceId": "s", "targetId": "b"},
                        {"sourceId": "a", "targetId": "e"},
                        {"sourceId": "b", "targetId": "e"},
                    ],
                }
            )
        )
        assert main(["run", str(path)]) == 0
        assert "Execution succeeded: 4 done, 0 failed, 0 skipped" in capsys.readouterr().out

    def test_explicit_start(self, branch_file, capsys):
        assert main(["run", str(branch_file), "--start", "allow"]) == 0
        out = capsys.readouterr().out
        assert "allow" in out
        assert "adult" not in out


class TestInfo:
    def test_lists_nodes_and_metadata(self, branch_file, capsys):
        assert main(["info", str(branch_file)]) == 0
        out = capsys.readouterr().out
        assert "[Condition] Adult? (ID: adult) Expression: age > 18" in out
        assert "owner = risk-team" in out
        assert "[No metadata]" in out
        assert "Start nodes: start" in out

    def test_metadata_key_filter(self, branch_file, capsys):
        main(["info", str(branch_file), "--metadata-key", "own"])
        out = capsys.readouterr().out
        assert "owner = risk-team" in out
        assert "reviewed" not in out

    def test_json(self, branch_file, capsys):
        main(["info", str(branch_file), "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["start_nodes"] == ["start"]
        assert len(data["connections"]) == 3
