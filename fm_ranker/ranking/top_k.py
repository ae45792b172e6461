"""
Top-K selection over engine scores.

Selection is a partial sort: ``numpy.argpartition`` moves the ``K`` best
scores to the front in O(N), then only that prefix is sorted.  Candidates
past the cutoff are never ordered and never returned.

Ordering guarantees
-------------------
- The returned prefix is non-increasing by score.
- Order among exactly equal scores is UNSPECIFIED.  It depends on the
  partition/sort internals and may differ between numpy versions; callers
  must not rely on it.
- NaN scores rank below every real score.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from fm_ranker.errors import InputLengthMismatchError
from fm_ranker.models.result import RankedResult, ScoredCandidate


def effective_k(k: int, n: int) -> int:
    """``min(k, n)``, clamped at zero."""
    return max(0, min(int(k), n))


def select_top_k(
    tasks: Sequence[int],
    scores: Sequence[float],
    k: int,
) -> RankedResult:
    """Return the ``min(k, len(tasks))`` highest-scoring tasks, descending.

    Args:
        tasks:  Task ids in row order.
        scores: One score per task, positionally aligned with ``tasks``.
        k:      Requested result size; ``<= 0`` yields an empty result.

    Raises:
        InputLengthMismatchError: ``len(tasks) != len(scores)``.
    """
    if len(tasks) != len(scores):
        raise InputLengthMismatchError(
            "tasks", len(tasks), "scores", len(scores), stage="select_top_k"
        )

    top = effective_k(k, len(tasks))
    if top == 0:
        return RankedResult()

    # Negate so that ascending partition/sort yields descending scores;
    # NaN stays NaN and lands at the end of both.
    neg = -np.asarray(scores, dtype=np.float64)

    if top < len(neg):
        idx = np.argpartition(neg, top - 1)[:top]
    else:
        idx = np.arange(len(neg))
    idx = idx[np.argsort(neg[idx])]

    return RankedResult(
        candidates=tuple(
            ScoredCandidate(task_id=int(tasks[i]), score=float(scores[i])) for i in idx
        )
    )
