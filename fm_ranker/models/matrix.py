"""
Sparse feature matrix consumed by the scoring engines.

A ``FeatureMatrix`` is an ordered tuple of ``FeatureRow`` objects, each an
ordered tuple of ``FeatureNode(index, value)`` pairs.  Prediction matrices
never carry labels (``has_label`` is always ``False``).

Invariants for a matrix produced by ``build_feature_matrix``:
  - ``row_count == len(tasks)``.
  - every row has ``1 + len(facts)`` nodes: the task node, then the facts.
  - feature indices inside a row are NOT deduplicated; engines accumulate
    duplicates rather than merging them.

These are plain frozen dataclasses rather than pydantic models: a matrix is
rebuilt on every request and is never validated or serialised as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True, slots=True)
class FeatureNode:
    """One ``(feature index, feature value)`` entry of a sparse row."""

    index: int
    value: float


@dataclass(frozen=True, slots=True)
class FeatureRow:
    """Ordered nodes of a single matrix row."""

    nodes: tuple[FeatureNode, ...]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[FeatureNode]:
        return iter(self.nodes)

    def __getitem__(self, position: int) -> FeatureNode:
        return self.nodes[position]


@dataclass(frozen=True)
class FeatureMatrix:
    """Row-structured sparse matrix.

    Attributes:
        rows:      Rows in input (task) order.
        has_label: Whether rows carry supervised labels; ``False`` for prediction.
    """

    rows: tuple[FeatureRow, ...] = ()
    has_label: bool = False

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def node_count(self) -> int:
        return sum(len(r) for r in self.rows)

    @property
    def max_feature_index(self) -> int:
        """Largest feature index present, or -1 for a matrix with no nodes."""
        return max((n.index for r in self.rows for n in r.nodes), default=-1)

    @property
    def min_feature_index(self) -> int:
        """Smallest feature index present, or 0 for a matrix with no nodes."""
        return min((n.index for r in self.rows for n in r.nodes), default=0)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[FeatureRow]:
        return iter(self.rows)

    def __getitem__(self, position: int) -> FeatureRow:
        return self.rows[position]
