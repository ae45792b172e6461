"""
xLearn-backed scoring engine.

``xlearn`` is an optional dependency (``pip install fm-ranker[xlearn]``) and
is imported lazily inside ``initialize()`` so the rest of the package works
without it.

Prediction flow per request
---------------------------
1. ``load_dataset`` keeps a reference to the matrix (no I/O yet).
2. ``run_inference`` writes the matrix as unlabeled libsvm into a scratch
   ``TemporaryDirectory``, points the FM model at it with ``setTest``,
   calls ``predict(model_path, out_path)`` and reads the scores back.
3. The scratch directory is removed on every exit path, including failures.

``instance_norm=False`` maps to ``disableNorm()`` and ``sigmoid=True`` to
``setSigmoid()``; both must match how the model was trained.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any

from fm_ranker.engine.base import ScoringEngine
from fm_ranker.errors import DatasetError, InferenceError, InitializationError
from fm_ranker.features.libsvm import write_libsvm
from fm_ranker.models.matrix import FeatureMatrix

logger = logging.getLogger(__name__)

_SCRATCH_PREFIX = "fm_ranker_"


class XLearnEngine(ScoringEngine):
    """Drive an ``xlearn`` FM model file for inference."""

    backend_name = "xlearn"

    def __init__(self, instance_norm: bool = True, sigmoid: bool = False) -> None:
        super().__init__(instance_norm=instance_norm, sigmoid=sigmoid)
        self._xl: Any = None        # xlearn module; None until initialize()
        self._fm: Any = None        # xlearn FM handle

    @property
    def is_initialized(self) -> bool:
        return self._fm is not None

    def initialize(
        self,
        model_path: str,
        output_path: str | None = None,
        is_training: bool = False,
    ) -> None:
        if is_training:
            raise InitializationError(
                "XLearnEngine only predicts; use the 'train' command for training.",
                stage="initialize",
            )
        try:
            import xlearn as xl
        except ImportError as exc:
            raise InitializationError(
                "The 'xlearn' backend requires the xlearn package "
                "(pip install fm-ranker[xlearn]).",
                stage="initialize",
            ) from exc

        if not Path(model_path).exists():
            raise InitializationError(
                f"xLearn model not found: {model_path}", stage="initialize"
            )

        self._xl = xl
        self._fm = xl.create_fm()
        if not self.instance_norm:
            self._fm.disableNorm()
        if self.sigmoid:
            self._fm.setSigmoid()

        self.model_path  = str(model_path)
        self.output_path = output_path or None
        self._matrix     = None
        logger.debug("xLearn FM handle created for %s", model_path)

    def load_dataset(self, matrix: FeatureMatrix) -> None:
        if self._fm is None:
            raise DatasetError(
                "Cannot load a dataset into an uninitialised engine.", stage="load_dataset"
            )
        if matrix.has_label:
            raise DatasetError(
                "Prediction matrices must not carry labels.", stage="load_dataset"
            )
        if matrix.row_count and matrix.min_feature_index < 0:
            raise DatasetError(
                f"Negative feature index {matrix.min_feature_index} in matrix.",
                stage="load_dataset",
            )
        self._matrix = matrix

    def run_inference(self) -> list[float]:
        matrix = self._require_dataset()
        if matrix.row_count == 0:
            return []

        with tempfile.TemporaryDirectory(prefix=_SCRATCH_PREFIX) as scratch:
            test_path = Path(scratch) / "test.libsvm"
            with open(test_path, "w", encoding="utf-8") as fh:
                write_libsvm(matrix, fh)

            out_path = Path(self.output_path) if self.output_path else Path(scratch) / "out.txt"
            out_path.parent.mkdir(parents=True, exist_ok=True)

            try:
                self._fm.setTest(str(test_path))
                self._fm.predict(self.model_path, str(out_path))
            except Exception as exc:
                # xlearn surfaces native failures as generic exceptions
                raise InferenceError(f"xLearn predict failed: {exc}", stage="run_inference") from exc

            scores = _read_scores(out_path)

        if len(scores) != matrix.row_count:
            raise InferenceError(
                f"xLearn returned {len(scores)} scores for {matrix.row_count} rows.",
                stage="run_inference",
            )
        return scores

    def dispose(self) -> None:
        self._fm     = None
        self._xl     = None
        self._matrix = None


def _read_scores(path: Path) -> list[float]:
    with open(path, encoding="utf-8") as fh:
        return [float(line) for line in fh if line.strip()]
