"""
Prediction matrix construction.

Each task becomes one row: a one-hot node ``(task_id, 1)`` followed by one
node per knowledge fact, in the order given.  The fact ``FeatureNode``
objects are created once and shared by every row; each row still gets its
own tuple of 1 + F references, so no node is duplicated per task.

The builder does not deduplicate indices and does not check them against
the model dimensionality — out-of-range indices are reported by the engine
as ``DatasetError`` when the matrix is loaded.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from fm_ranker.models.matrix import FeatureMatrix, FeatureNode, FeatureRow

TASK_NODE_VALUE = 1


def build_feature_matrix(
    tasks: Sequence[int],
    facts: Iterable[tuple[int, int]] = (),
) -> FeatureMatrix:
    """Build the unlabeled prediction matrix for a set of candidate tasks.

    Args:
        tasks: Candidate task ids; row i corresponds to ``tasks[i]``.
        facts: ``(key, value)`` pairs shared by every row.

    Returns:
        ``FeatureMatrix`` with ``len(tasks)`` rows of ``1 + len(facts)`` nodes.
        An empty ``tasks`` sequence yields a matrix with zero rows.
    """
    fact_suffix = tuple(FeatureNode(index=int(k), value=v) for k, v in facts)

    rows = tuple(
        FeatureRow(nodes=(FeatureNode(index=int(task), value=TASK_NODE_VALUE),) + fact_suffix)
        for task in tasks
    )
    return FeatureMatrix(rows=rows, has_label=False)
