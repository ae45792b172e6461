"""
Shared pytest fixtures for the fm-ranker test suite.

Provides:
  - ``StubEngine``: a ``ScoringEngine`` returning caller-chosen scores, so
    pipeline tests never depend on a real model.
  - ``stub_handle``: an ``EngineHandle`` wrapping a ``StubEngine``.
  - ``fm_artifact``: a tiny native FM artifact written to ``tmp_path``.
  - ``sample_request``: the tasks [10, 20, 30] / facts [(5, 2), (6, 1)] request.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
import pytest

from fm_ranker.engine.base import ScoringEngine
from fm_ranker.engine.fm_model import FactorizationMachine
from fm_ranker.engine.handle import EngineHandle
from fm_ranker.errors import DatasetError
from fm_ranker.models.matrix import FeatureMatrix
from fm_ranker.models.request import PredictionRequest


class StubEngine(ScoringEngine):
    """Engine returning a fixed score list; records every call it receives."""

    backend_name = "stub"

    def __init__(
        self,
        scores: Sequence[float] = (),
        fail_on_load: bool = False,
        instance_norm: bool = True,
        sigmoid: bool = False,
    ) -> None:
        super().__init__(instance_norm=instance_norm, sigmoid=sigmoid)
        self.scores = list(scores)
        self.fail_on_load = fail_on_load
        self.calls: list[str] = []
        self.loaded: list[FeatureMatrix] = []
        self._ready = False

    @property
    def is_initialized(self) -> bool:
        return self._ready

    def initialize(self, model_path, output_path=None, is_training=False) -> None:
        self.calls.append("initialize")
        self.model_path = model_path
        self._ready = True

    def load_dataset(self, matrix: FeatureMatrix) -> None:
        self.calls.append("load_dataset")
        if self.fail_on_load:
            raise DatasetError("stub rejected the matrix")
        self._matrix = matrix
        self.loaded.append(matrix)

    def run_inference(self) -> list[float]:
        self.calls.append("run_inference")
        matrix = self._require_dataset()
        return list(self.scores[: matrix.row_count])

    def dispose(self) -> None:
        self.calls.append("dispose")
        self._ready = False
        self._matrix = None


@pytest.fixture
def stub_engine_cls() -> type[StubEngine]:
    return StubEngine


@pytest.fixture
def stub_engine() -> StubEngine:
    engine = StubEngine(scores=[0.1, 0.9, 0.5])
    engine.initialize("stub-model")
    return engine


@pytest.fixture
def stub_handle(stub_engine: StubEngine) -> EngineHandle:
    return EngineHandle(stub_engine)


@pytest.fixture
def sample_request() -> PredictionRequest:
    return PredictionRequest.from_arrays(
        tasks=[10, 20, 30], keys=[5, 6], values=[2, 1], top_k=2
    )


@pytest.fixture
def small_fm() -> FactorizationMachine:
    """8-feature, 2-factor FM with easy-to-check parameters.

    linear weight of feature i is 0.1 * i; only features 1 and 3 have
    non-zero factors: v1 = [1, 1], v3 = [1, 0]  →  <v1, v3> = 1.
    """
    factors = np.zeros((8, 2))
    factors[1] = [1.0, 1.0]
    factors[3] = [1.0, 0.0]
    return FactorizationMachine(
        bias=0.5,
        linear=[0.1 * i for i in range(8)],
        factors=factors,
        trained_at="2026-01-01",
    )


@pytest.fixture
def fm_artifact(tmp_path: Path, small_fm: FactorizationMachine) -> Path:
    path = tmp_path / "models" / "fm_model.pkl"
    small_fm.save(path)
    return path
