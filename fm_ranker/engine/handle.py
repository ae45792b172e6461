"""
Engine instance lifecycle: initialise once, reuse, dispose exactly once.

``EngineHandle`` is the owned reference returned by ``initialize_engine()``.
It forwards ``load_dataset`` / ``run_inference`` to the wrapped engine and
refuses every call once ``dispose_engine()`` has run — the handle keeps its
``handle_id`` for logging but its engine slot is cleared, so use-after-dispose
raises ``InvalidHandleError`` instead of touching freed state.

A handle is NOT safe for concurrent use.  There is no internal locking: at
most one ``load_dataset`` + ``run_inference`` pair may be in flight per handle.
"""

from __future__ import annotations

import itertools
import logging
from typing import Optional

from fm_ranker.engine.base import ScoringEngine
from fm_ranker.engine.factory import create_engine
from fm_ranker.errors import FMRankerError, InitializationError, InvalidHandleError
from fm_ranker.models.matrix import FeatureMatrix
from fm_ranker.utils.logging import progress_level

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


class EngineHandle:
    """Exclusive reference to one initialised scoring engine.

    Attributes:
        handle_id: Unique id issued at initialisation; stable after disposal.
        backend:   Backend name of the wrapped engine.
    """

    def __init__(self, engine: ScoringEngine) -> None:
        self.handle_id: int = next(_handle_ids)
        self.backend: str = engine.backend_name
        self._engine: Optional[ScoringEngine] = engine

    @property
    def is_disposed(self) -> bool:
        return self._engine is None

    @property
    def is_valid(self) -> bool:
        return self._engine is not None and self._engine.is_initialized

    @property
    def engine(self) -> ScoringEngine:
        """The wrapped engine.

        Raises:
            InvalidHandleError: The handle has been disposed, or wraps an
                engine that was never initialised.
        """
        if self._engine is None:
            raise InvalidHandleError(
                f"Engine handle #{self.handle_id} has been disposed."
            )
        if not self._engine.is_initialized:
            raise InvalidHandleError(
                f"Engine handle #{self.handle_id} wraps an uninitialised engine."
            )
        return self._engine

    def load_dataset(self, matrix: FeatureMatrix) -> None:
        self.engine.load_dataset(matrix)

    def run_inference(self) -> list[float]:
        return self.engine.run_inference()

    def _release(self) -> ScoringEngine:
        if self._engine is None:
            raise InvalidHandleError(
                f"Engine handle #{self.handle_id} has been disposed."
            )
        engine = self._engine
        self._engine = None
        return engine

    def __repr__(self) -> str:
        if self.is_disposed:
            state = "disposed"
        else:
            state = "valid" if self.is_valid else "uninitialised"
        return f"EngineHandle(id={self.handle_id}, backend={self.backend!r}, {state})"


def initialize_engine(
    model_path: str,
    output_path: str | None = None,
    backend: str = "native",
    instance_norm: bool = True,
    sigmoid: bool = False,
    quiet: bool = False,
) -> EngineHandle:
    """Create and initialise a scoring engine, returning its handle.

    Raises:
        InitializationError: Unknown backend, or the model could not be loaded.
    """
    level = progress_level(quiet)
    logger.log(level, "Start Initializing (backend=%s, model=%s)", backend, model_path)

    engine = create_engine(backend, instance_norm=instance_norm, sigmoid=sigmoid)
    try:
        engine.initialize(model_path, output_path or None, is_training=False)
    except FMRankerError:
        raise
    except Exception as exc:
        raise InitializationError(
            f"Engine initialisation failed: {exc}", stage="initialize"
        ) from exc

    handle = EngineHandle(engine)
    logger.log(level, "Finish Initializing (handle=%d)", handle.handle_id)
    return handle


def dispose_engine(handle: EngineHandle, quiet: bool = False) -> None:
    """Release the engine behind ``handle`` and invalidate the handle.

    Raises:
        InvalidHandleError: The handle was already disposed.
    """
    engine = handle._release()
    engine.dispose()
    logger.log(progress_level(quiet), "Engine handle #%d disposed", handle.handle_id)
