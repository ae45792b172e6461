"""
Typed request contract at the caller boundary.

``PredictionRequest`` replaces the three loose integer arrays (tasks, fact
keys, fact values) plus a result size that callers used to pass across the
foreign-language boundary.  The key and value arrays are paired into
``Fact`` objects up front, so a length mismatch is rejected before any
engine is touched.

Both models are frozen — a request is never mutated once validated.
"""

from __future__ import annotations

from typing import Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from fm_ranker.errors import InputLengthMismatchError, RequestValidationError

UINT32_MAX = 2**32 - 1


def _check_uint32(v: int, what: str) -> int:
    if not 0 <= v <= UINT32_MAX:
        raise ValueError(f"{what} must be in [0, {UINT32_MAX}], got {v}.")
    return v


class Fact(BaseModel):
    """A shared contextual feature applied to every task row.

    Attributes:
        key:   Feature index in the model's feature space.
        value: Feature value (integer, as supplied by callers).
    """

    model_config = ConfigDict(frozen=True)

    key: int
    value: int

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: int) -> int:
        return _check_uint32(v, "Fact key")


class PredictionRequest(BaseModel):
    """One ranking request.

    Attributes:
        tasks: Candidate task ids; order defines matrix row order.
        facts: Knowledge facts shared by every task row.
        top_k: Requested result size. May exceed ``len(tasks)``; ``<= 0``
            yields an empty result.
    """

    model_config = ConfigDict(frozen=True)

    tasks: list[int]
    facts: list[Fact] = []
    top_k: int

    @field_validator("tasks")
    @classmethod
    def validate_tasks(cls, v: list[int]) -> list[int]:
        for task in v:
            _check_uint32(task, "Task id")
        return v

    @classmethod
    def from_arrays(
        cls,
        tasks: Sequence[int],
        keys: Sequence[int],
        values: Sequence[int],
        top_k: int,
    ) -> "PredictionRequest":
        """Build a request from flat parallel arrays.

        Raises:
            InputLengthMismatchError: ``keys`` and ``values`` differ in length.
            RequestValidationError: A task id or key is outside uint32 range.
        """
        if len(keys) != len(values):
            raise InputLengthMismatchError(
                "fact keys", len(keys), "fact values", len(values), stage="request"
            )
        try:
            return cls(
                tasks=list(tasks),
                facts=[Fact(key=k, value=v) for k, v in zip(keys, values)],
                top_k=top_k,
            )
        except ValidationError as exc:
            details = "; ".join(err["msg"] for err in exc.errors())
            raise RequestValidationError(
                f"Invalid prediction request: {details}", stage="request"
            ) from exc

    @property
    def fact_pairs(self) -> list[tuple[int, int]]:
        return [(f.key, f.value) for f in self.facts]
