"""
Tests for fm_ranker/provider.py.

What we test
------------
- init → predict → dispose with the native backend.
- predict before init / after dispose → InvalidHandleError.
- init twice without dispose → InvalidHandleError.
- Key/value length mismatch rejected before the engine is touched.
- Out-of-range task ids surface as RequestValidationError.
- Context-manager use disposes on exit.
- from_config() copies engine settings.
- run() forwards to run_engine_command with the provider's settings.
"""

from __future__ import annotations

import pytest

from fm_ranker import provider as provider_module
from fm_ranker.config import AppConfig, EngineConfig
from fm_ranker.errors import (
    FMRankerError,
    InitializationError,
    InputLengthMismatchError,
    InvalidHandleError,
    RequestValidationError,
)
from fm_ranker.provider import FMProvider


@pytest.fixture
def provider(fm_artifact) -> FMProvider:
    return FMProvider(model_path=str(fm_artifact), instance_norm=False, quiet=True)


class TestLifecycle:
    def test_init_predict_dispose(self, provider):
        provider.init()
        result = provider.predict([1, 2, 5, 7], [3], [2], 2)
        assert result.task_ids() == [1, 7]
        provider.dispose()
        assert not provider.is_initialized

    def test_predict_before_init(self, provider):
        with pytest.raises(InvalidHandleError, match="init"):
            provider.predict([1], [], [], 1)

    def test_predict_after_dispose(self, provider):
        provider.init()
        provider.dispose()
        with pytest.raises(InvalidHandleError):
            provider.predict([1], [], [], 1)

    def test_double_init_rejected(self, provider):
        provider.init()
        with pytest.raises(InvalidHandleError, match="already holds"):
            provider.init()
        provider.dispose()

    def test_dispose_without_handle(self, provider):
        with pytest.raises(InvalidHandleError):
            provider.dispose()

    def test_reinit_after_dispose(self, provider):
        first = provider.init()
        provider.dispose()
        second = provider.init()
        assert second.handle_id != first.handle_id
        assert not first.is_valid
        provider.dispose()

    def test_init_failure_leaves_slot_empty(self, tmp_path):
        prov = FMProvider(model_path=str(tmp_path / "missing.pkl"))
        with pytest.raises(InitializationError):
            prov.init()
        assert prov.handle is None

    def test_context_manager(self, provider):
        with provider as p:
            assert p.is_initialized
            assert len(p.predict([1, 2], [], [], 5)) == 2
        assert provider.handle is None


class TestValidation:
    def test_length_mismatch_rejected(self, provider):
        provider.init()
        with pytest.raises(InputLengthMismatchError):
            provider.predict([1, 2], [3, 4], [1], 1)
        provider.dispose()

    def test_out_of_range_task_is_library_error(self, provider):
        provider.init()
        with pytest.raises(FMRankerError) as excinfo:
            provider.predict([-1, 2], [], [], 1)
        assert isinstance(excinfo.value, RequestValidationError)
        assert excinfo.value.stage == "request"
        provider.dispose()


class TestConfigAndRun:
    def test_from_config(self):
        config = AppConfig(
            engine=EngineConfig(
                backend="xlearn", model_path="m.out", sigmoid=True, quiet=True, command_dir="/opt/xl"
            )
        )
        prov = FMProvider.from_config(config)
        assert prov.backend == "xlearn"
        assert prov.model_path == "m.out"
        assert prov.sigmoid is True
        assert prov.quiet is True
        assert prov.command_dir == "/opt/xl"

    def test_run_forwards_args(self, monkeypatch):
        seen = {}

        def fake_run(args, command_dir="", quiet=False):
            seen.update(args=list(args), command_dir=command_dir, quiet=quiet)
            return 0

        monkeypatch.setattr(provider_module, "run_engine_command", fake_run)
        prov = FMProvider(command_dir="/opt/xl", quiet=True)
        assert prov.run(["train", "data.txt"]) == 0
        assert seen == {"args": ["train", "data.txt"], "command_dir": "/opt/xl", "quiet": True}
