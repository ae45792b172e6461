"""
Exception hierarchy for the FM ranking bridge.

Every failure raised by the library derives from ``FMRankerError`` so callers
can catch the whole family at the boundary.  The ``stage`` attribute records
which prediction stage failed (``"build_matrix"``, ``"load_dataset"``,
``"run_inference"``, ``"select_top_k"``, ``"initialize"``, ``"dispose"``) and
is filled in by the pipeline when the raising code did not set it.

No error in this module is ever retried or recovered internally: a failure
aborts the current request and no partial result is returned.
"""

from __future__ import annotations

from typing import Optional


class FMRankerError(Exception):
    """Base class for every error raised by ``fm_ranker``.

    Attributes:
        stage: Name of the stage that failed, or ``None`` if unknown.
    """

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class InitializationError(FMRankerError):
    """The scoring engine or its model could not be created."""


class InputLengthMismatchError(FMRankerError, ValueError):
    """Caller-supplied parallel arrays have different lengths.

    Attributes:
        left_name / right_name:   Names of the two arrays.
        left_len / right_len:     Their lengths.
    """

    def __init__(
        self,
        left_name: str,
        left_len: int,
        right_name: str,
        right_len: int,
        stage: Optional[str] = None,
    ) -> None:
        self.left_name  = left_name
        self.left_len   = left_len
        self.right_name = right_name
        self.right_len  = right_len
        super().__init__(
            f"Length mismatch: {left_name} has {left_len} entries, "
            f"{right_name} has {right_len}.",
            stage=stage,
        )


class DatasetError(FMRankerError):
    """The engine rejected a feature matrix (e.g. index beyond model size)."""


class InferenceError(FMRankerError):
    """The engine failed to produce scores for the loaded matrix."""


class InvalidHandleError(FMRankerError):
    """An engine handle was used before initialisation or after disposal."""


class PredictionError(FMRankerError):
    """Unexpected failure inside a prediction stage (original is chained)."""


class EngineCommandError(FMRankerError):
    """A pass-through engine command exited with a non-zero status.

    Attributes:
        returncode: Process exit status.
    """

    def __init__(self, message: str, returncode: int, stage: Optional[str] = None) -> None:
        self.returncode = returncode
        super().__init__(message, stage=stage)


class RequestValidationError(FMRankerError, ValueError):
    """A prediction request failed validation (e.g. task id outside uint32)."""
