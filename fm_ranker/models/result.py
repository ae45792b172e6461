"""
Ranked prediction output.

``ScoredCandidate`` couples a task id with the engine score of its row;
``RankedResult`` is the truncated, score-descending sequence returned to the
caller.  Order among exactly equal scores is not guaranteed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(frozen=True)
class ScoredCandidate:
    """A task id and the score its row received."""

    task_id: int
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"task_id": self.task_id, "score": self.score}


@dataclass(frozen=True)
class RankedResult:
    """Top-K candidates, descending by score.

    Attributes:
        candidates: At most ``K`` candidates; empty when ``K <= 0``.
    """

    candidates: tuple[ScoredCandidate, ...] = ()

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self) -> Iterator[ScoredCandidate]:
        return iter(self.candidates)

    def __getitem__(self, position: int) -> ScoredCandidate:
        return self.candidates[position]

    def task_ids(self) -> list[int]:
        return [c.task_id for c in self.candidates]

    def as_pairs(self) -> list[tuple[int, float]]:
        return [(c.task_id, c.score) for c in self.candidates]

    def to_dicts(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.candidates]
