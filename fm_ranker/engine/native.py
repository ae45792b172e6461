"""
In-process FM scoring engine backed by a joblib ``FactorizationMachine``
artifact and numpy.

This is the default backend: it needs no native library and validates the
matrix eagerly, so an out-of-range feature index is reported by
``load_dataset`` as ``DatasetError`` instead of surfacing as a numpy
``IndexError`` during inference.
"""

from __future__ import annotations

import logging
import pickle

from fm_ranker.engine.base import ScoringEngine
from fm_ranker.engine.fm_model import FactorizationMachine
from fm_ranker.errors import DatasetError, InferenceError, InitializationError
from fm_ranker.models.matrix import FeatureMatrix

logger = logging.getLogger(__name__)


class NativeFMEngine(ScoringEngine):
    """Score matrices with an in-memory ``FactorizationMachine``."""

    backend_name = "native"

    def __init__(self, instance_norm: bool = True, sigmoid: bool = False) -> None:
        super().__init__(instance_norm=instance_norm, sigmoid=sigmoid)
        self._model: FactorizationMachine | None = None

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    @property
    def model(self) -> FactorizationMachine | None:
        return self._model

    def initialize(
        self,
        model_path: str,
        output_path: str | None = None,
        is_training: bool = False,
    ) -> None:
        if is_training:
            raise InitializationError(
                "NativeFMEngine is prediction-only; use the 'train' command instead.",
                stage="initialize",
            )
        try:
            self._model = FactorizationMachine.load(model_path)
        except FileNotFoundError as exc:
            raise InitializationError(str(exc), stage="initialize") from exc
        except (KeyError, ValueError, OSError, EOFError, pickle.UnpicklingError) as exc:
            raise InitializationError(
                f"Could not read FM artifact {model_path}: {exc}", stage="initialize"
            ) from exc

        self.model_path  = str(model_path)
        self.output_path = output_path or None
        self._matrix     = None

    def load_dataset(self, matrix: FeatureMatrix) -> None:
        if self._model is None:
            raise DatasetError(
                "Cannot load a dataset into an uninitialised engine.", stage="load_dataset"
            )
        self._model.check_matrix(matrix)
        self._matrix = matrix
        logger.debug("Dataset loaded: %d rows, %d nodes", matrix.row_count, matrix.node_count)

    def run_inference(self) -> list[float]:
        matrix = self._require_dataset()
        try:
            scores = self._model.score(
                matrix, instance_norm=self.instance_norm, sigmoid=self.sigmoid
            )
        except (ValueError, IndexError, FloatingPointError) as exc:
            raise InferenceError(f"FM scoring failed: {exc}", stage="run_inference") from exc

        self._write_scores(scores)
        return scores

    def dispose(self) -> None:
        self._model  = None
        self._matrix = None
