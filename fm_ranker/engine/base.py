"""
Abstract base class for scoring engines.

The bridge never scores anything itself; it drives an engine through four
calls, always in this order::

    engine.initialize(model_path, output_path)    # once
    engine.load_dataset(matrix)                   # per request
    scores = engine.run_inference()               # per request
    engine.dispose()                              # once

Contract every adapter must honour:
  - ``initialize`` raises ``InitializationError`` if the model cannot be loaded.
  - ``load_dataset`` raises ``DatasetError`` for a matrix the model cannot
    score (e.g. a feature index beyond its dimensionality).  It never
    truncates or drops rows.
  - ``run_inference`` returns exactly one float per row of the most recently
    loaded matrix, in row order, or raises ``InferenceError`` (no dataset
    loaded, engine not initialised, engine failure).
  - ``dispose`` releases everything; the instance is unusable afterwards.

Engines are NOT safe for concurrent use.  Callers sharing one model across
threads must serialise access or hold one engine per worker.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from fm_ranker.errors import InferenceError
from fm_ranker.models.matrix import FeatureMatrix

logger = logging.getLogger(__name__)


class ScoringEngine(ABC):
    """Base for all scoring engine adapters.

    Subclasses must:
      1. Set the ``backend_name`` class variable.
      2. Implement ``initialize``, ``load_dataset``, ``run_inference``, ``dispose``.

    Attributes:
        backend_name: Identifier used by ``create_engine()`` and the config.
        model_path:   Model location passed to ``initialize`` (``None`` before).
        output_path:  Optional file receiving scores after each inference pass.
    """

    backend_name: ClassVar[str]

    def __init__(self, instance_norm: bool = True, sigmoid: bool = False) -> None:
        self.instance_norm = instance_norm
        self.sigmoid = sigmoid
        self.model_path: str | None = None
        self.output_path: str | None = None
        self._matrix: FeatureMatrix | None = None

    @property
    @abstractmethod
    def is_initialized(self) -> bool:
        """True between a successful ``initialize`` and ``dispose``."""
        ...

    @abstractmethod
    def initialize(
        self,
        model_path: str,
        output_path: str | None = None,
        is_training: bool = False,
    ) -> None:
        """Load the model and prepare for scoring."""
        ...

    @abstractmethod
    def load_dataset(self, matrix: FeatureMatrix) -> None:
        """Bind ``matrix`` for the next ``run_inference`` call."""
        ...

    @abstractmethod
    def run_inference(self) -> list[float]:
        """Score every row of the loaded matrix."""
        ...

    @abstractmethod
    def dispose(self) -> None:
        """Release all engine resources."""
        ...

    def _require_dataset(self) -> FeatureMatrix:
        """Return the loaded matrix, raising ``InferenceError`` if unusable."""
        if not self.is_initialized:
            raise InferenceError(
                f"{self.__class__.__name__} is not initialised.", stage="run_inference"
            )
        if self._matrix is None:
            raise InferenceError(
                "No dataset loaded; call load_dataset() before run_inference().",
                stage="run_inference",
            )
        return self._matrix

    def _write_scores(self, scores: list[float]) -> None:
        """Write scores to ``output_path`` (one per line) when configured."""
        if not self.output_path:
            return
        path = Path(self.output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("".join(f"{s:.6f}\n" for s in scores), encoding="utf-8")
        logger.debug("Scores written: %s (%d rows)", path, len(scores))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(model_path={self.model_path!r}, "
            f"initialized={self.is_initialized})"
        )
