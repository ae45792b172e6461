"""
Tests for fm_ranker/cli.py using typer's CliRunner.

Each test writes its own config file to ``tmp_path`` so the repository's
config/default.toml is never required.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fm_ranker import cli
from fm_ranker.engine import command

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """configure_logging() replaces root handlers; undo that after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path, fm_artifact) -> Path:
    path = tmp_path / "config" / "default.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "[engine]\n"
        f'model_path = "{fm_artifact.as_posix()}"\n'
        "instance_norm = false\n"
        "quiet = true\n"
        "[prediction]\n"
        "default_top_k = 2\n"
        "[logging]\n"
        'level = "WARNING"\n',
        encoding="utf-8",
    )
    return path


def _json_tail(output: str):
    return json.loads(output[output.index("["):])


class TestPredict:
    def test_options(self, config_file):
        result = runner.invoke(
            cli.app,
            ["predict", "--config", str(config_file), "--tasks", "1,2,5,7", "--fact", "3:2"],
        )
        assert result.exit_code == 0, result.output
        ranked = _json_tail(result.output)
        assert [r["task_id"] for r in ranked] == [1, 7]

    def test_top_k_override(self, config_file):
        result = runner.invoke(
            cli.app,
            ["predict", "--config", str(config_file), "--tasks", "1,2,5", "--top-k", "0"],
        )
        assert result.exit_code == 0, result.output
        assert _json_tail(result.output) == []

    def test_request_file(self, config_file, tmp_path):
        req = tmp_path / "request.json"
        req.write_text(json.dumps({"tasks": [1, 2, 5, 7], "keys": [3], "values": [2], "top_k": 3}))
        result = runner.invoke(cli.app, ["predict", "--config", str(config_file), "--request", str(req)])
        assert result.exit_code == 0, result.output
        assert [r["task_id"] for r in _json_tail(result.output)] == [1, 7, 5]

    def test_mismatched_request_file(self, config_file, tmp_path):
        req = tmp_path / "request.json"
        req.write_text(json.dumps({"tasks": [1], "keys": [3, 4], "values": [2]}))
        result = runner.invoke(cli.app, ["predict", "--config", str(config_file), "--request", str(req)])
        assert result.exit_code == 1

    def test_bad_fact_token(self, config_file):
        result = runner.invoke(
            cli.app, ["predict", "--config", str(config_file), "--tasks", "1", "--fact", "3"]
        )
        assert result.exit_code == 1

    def test_no_tasks(self, config_file):
        result = runner.invoke(cli.app, ["predict", "--config", str(config_file)])
        assert result.exit_code == 1

    def test_out_of_range_task_reports_error(self, config_file):
        result = runner.invoke(cli.app, ["predict", "--config", str(config_file), "--tasks", "1,999"])
        assert result.exit_code == 1

    def test_missing_model(self, config_file, tmp_path):
        result = runner.invoke(
            cli.app,
            ["predict", "--config", str(config_file), "--tasks", "1",
             "--model", str(tmp_path / "missing.pkl")],
        )
        assert result.exit_code == 1


class TestOtherCommands:
    def test_validate_config(self, config_file):
        result = runner.invoke(cli.app, ["validate-config", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "[OK] Config valid." in result.output

    def test_validate_config_missing(self, tmp_path):
        result = runner.invoke(cli.app, ["validate-config", "--config", str(tmp_path / "x.toml")])
        assert result.exit_code == 1

    def test_inspect_model(self, config_file, fm_artifact):
        result = runner.invoke(cli.app, ["inspect-model", str(fm_artifact), "--config", str(config_file)])
        assert result.exit_code == 0
        assert "Features:    8" in result.output

    def test_run_passes_extra_args(self, config_file, monkeypatch):
        seen = {}

        def fake_run(args, command_dir="", quiet=False):
            seen["args"] = list(args)
            return 0

        monkeypatch.setattr("fm_ranker.provider.run_engine_command", fake_run)
        result = runner.invoke(
            cli.app,
            ["run", "--config", str(config_file), "train", "train.txt", "-s", "0", "-m", "model.out"],
        )
        assert result.exit_code == 0, result.output
        assert seen["args"] == ["train", "train.txt", "-s", "0", "-m", "model.out"]

    def test_run_failure(self, config_file, monkeypatch):
        monkeypatch.setattr(command.shutil, "which", lambda name: None)
        result = runner.invoke(cli.app, ["run", "--config", str(config_file), "predict", "t.txt"])
        assert result.exit_code == 1
