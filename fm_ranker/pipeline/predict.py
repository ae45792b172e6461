"""
Single-request prediction pipeline.

Stages (each a hard dependency on the previous one)::

    build_matrix   tasks + facts      -> FeatureMatrix
    load_dataset   FeatureMatrix      -> engine
    run_inference  engine             -> scores (one per row, row order)
    select_top_k   tasks + scores + K -> RankedResult

Error handling
--------------
Any failure aborts the whole request; no partial result is ever returned.
``FMRankerError`` subclasses propagate unchanged with their ``stage``
attribute filled in.  Any other exception is wrapped in ``PredictionError``
(chained with ``from``) so the caller always learns which stage failed.
Nothing is retried.

Quiet mode
----------
``quiet`` is an explicit per-pipeline (or per-call) option: progress lines
("Tasks amount", "Total predict time cost", ...) are logged at DEBUG instead
of INFO.  Failures are always logged at ERROR.

Usage::

    handle = initialize_engine("data/models/fm_model.pkl")
    pipeline = PredictionPipeline(handle)
    result = pipeline.predict(PredictionRequest.from_arrays(tasks, keys, values, 5))
    dispose_engine(handle)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from fm_ranker.engine.handle import EngineHandle
from fm_ranker.errors import FMRankerError, InvalidHandleError, PredictionError
from fm_ranker.features.matrix_builder import build_feature_matrix
from fm_ranker.models.request import PredictionRequest
from fm_ranker.models.result import RankedResult
from fm_ranker.ranking.top_k import select_top_k
from fm_ranker.utils.logging import progress_level
from fm_ranker.utils.timing import Stopwatch

logger = logging.getLogger(__name__)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    """Annotate failures raised inside the block with the stage ``name``."""
    try:
        yield
    except FMRankerError as exc:
        if exc.stage is None:
            exc.stage = name
        logger.error("Prediction stage [%s] FAILED: %s", name, exc, extra={"stage": name})
        raise
    except Exception as exc:
        logger.error("Prediction stage [%s] FAILED: %s", name, exc, extra={"stage": name})
        raise PredictionError(
            f"{type(exc).__name__}: {exc}", stage=name
        ) from exc


class PredictionPipeline:
    """Runs prediction requests against one engine handle.

    The pipeline owns no state beyond the handle reference and its quiet
    setting; every request builds and discards its own matrix and result.

    Attributes:
        handle: Engine handle used for every request.
        quiet:  Default quiet setting for ``predict()``.
    """

    def __init__(self, handle: EngineHandle, quiet: bool = False) -> None:
        self.handle = handle
        self.quiet = quiet

    def predict(
        self,
        request: PredictionRequest,
        quiet: Optional[bool] = None,
    ) -> RankedResult:
        """Rank ``request.tasks`` and return the top ``request.top_k``.

        Args:
            request: Validated prediction request.
            quiet:   Override the pipeline's quiet setting for this call.

        Raises:
            InvalidHandleError: The handle was disposed or never initialised.
            DatasetError / InferenceError: The engine rejected or failed on the matrix.
            PredictionError: Unexpected failure inside a stage.
        """
        level = progress_level(self.quiet if quiet is None else quiet)

        if not self.handle.is_valid:
            reason = "has been disposed" if self.handle.is_disposed else "is not initialised"
            raise InvalidHandleError(
                f"Engine handle #{self.handle.handle_id} {reason}.",
                stage="predict",
            )

        with Stopwatch() as sw:
            logger.log(level, "Reading input parameters ...")
            logger.log(level, "Tasks amount: %d", len(request.tasks))
            logger.log(level, "Knowledge amount: %d", len(request.facts))

            with _stage("build_matrix"):
                logger.log(level, "Generating prediction matrix ...")
                matrix = build_feature_matrix(request.tasks, request.fact_pairs)
                logger.log(level, "Prediction matrix was generated")

            with _stage("load_dataset"):
                self.handle.load_dataset(matrix)

            with _stage("run_inference"):
                scores = self.handle.run_inference()

            with _stage("select_top_k"):
                result = select_top_k(request.tasks, scores, request.top_k)

        logger.log(level, "Total predict time cost: %.6f (sec)", sw.elapsed)
        return result


def predict(
    handle: EngineHandle,
    tasks: Sequence[int],
    facts: Sequence[tuple[int, int]],
    k: int,
    quiet: bool = False,
) -> RankedResult:
    """Functional form of ``PredictionPipeline.predict``.

    Args:
        handle: Initialised engine handle.
        tasks:  Candidate task ids.
        facts:  ``(key, value)`` pairs shared by every task.
        k:      Requested result size.

    Raises:
        RequestValidationError: A task id or fact key is outside uint32 range.
    """
    request = PredictionRequest.from_arrays(
        tasks,
        [key for key, _ in facts],
        [value for _, value in facts],
        k,
    )
    return PredictionPipeline(handle, quiet=quiet).predict(request)
