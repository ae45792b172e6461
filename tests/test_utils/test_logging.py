"""
Tests for fm_ranker/utils/logging.py.

What we test
------------
- progress_level(): INFO normally, DEBUG when quiet.
- _JsonFormatter: one JSON object per record with ts/level/logger/msg,
  extra fields at the top level, exception text under "exc".
- configure_logging(): JSON lines written to the configured log file,
  level filtering applied to the file handler.
- Prediction-stage failures carry a "stage" field in JSON output.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from fm_ranker.config import LoggingConfig
from fm_ranker.engine.handle import EngineHandle
from fm_ranker.errors import DatasetError
from fm_ranker.models.request import PredictionRequest
from fm_ranker.pipeline.predict import PredictionPipeline
from fm_ranker.utils.logging import _JsonFormatter, configure_logging, progress_level


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("fm_ranker.test", logging.INFO, __file__, 1, msg, args, None)
    record.__dict__.update(extra)
    return record


class TestProgressLevel:
    def test_levels(self):
        assert progress_level(False) == logging.INFO
        assert progress_level(True) == logging.DEBUG


class TestJsonFormatter:
    def test_core_fields(self):
        payload = json.loads(_JsonFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "fm_ranker.test"
        assert payload["msg"] == "hello world"
        assert payload["ts"].endswith("Z")

    def test_extra_fields_included(self):
        payload = json.loads(_JsonFormatter().format(_record(stage="load_dataset")))
        assert payload["stage"] == "load_dataset"

    def test_exception_text(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "fm_ranker.test", logging.ERROR, __file__, 1, "failed", None,
                exc_info=sys.exc_info(),
            )
        payload = json.loads(_JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["exc"]


class TestConfigureLogging:
    def test_json_lines_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "fm.log"
        configure_logging(LoggingConfig(level="INFO", log_file=str(log_file), json_format=True))
        logging.getLogger("fm_ranker.test").info("ranked %d tasks", 3)
        logging.getLogger("fm_ranker.test").debug("not written")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["msg"] == "ranked 3 tasks"

    def test_stage_failure_logged_with_stage(self, tmp_path, stub_engine):
        log_file = tmp_path / "fm.log"
        configure_logging(LoggingConfig(level="INFO", log_file=str(log_file), json_format=True))
        stub_engine.fail_on_load = True
        request = PredictionRequest.from_arrays([10, 20, 30], [], [], 1)
        with pytest.raises(DatasetError):
            PredictionPipeline(EngineHandle(stub_engine), quiet=True).predict(request)
        for handler in logging.getLogger().handlers:
            handler.flush()

        records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        errors = [r for r in records if r["level"] == "ERROR"]
        assert errors and errors[0]["stage"] == "load_dataset"
