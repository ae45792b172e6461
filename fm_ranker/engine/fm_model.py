"""
Factorization-machine parameter artifact.

A trained second-order FM is fully described by three arrays:

  bias     w0           scalar
  linear   w  (n,)      one weight per feature index
  factors  V  (n, k)    one k-dimensional latent vector per feature index

Score of a sparse row ``x`` (nodes ``(i, x_i)``)::

    y = w0 + Σ w_i x_i + ½ Σ_f [ (Σ_i v_if x_i)² − Σ_i v_if² x_i² ]

The pairwise term uses the O(k·nnz) identity rather than the O(k·nnz²)
double sum.  Duplicate indices in a row are NOT merged: each node contributes
independently, exactly as the engine saw them.

Instance-wise normalisation
---------------------------
Models trained with per-instance normalisation expect every row scaled to
unit L2 norm before scoring.  ``score(..., instance_norm=True)`` applies
``x_i ← x_i / ||x||₂``; it must match the setting used at training time.

Training is out of scope here: artifacts are produced elsewhere and loaded
with ``FactorizationMachine.load()``.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from pathlib import Path
from typing import Any

import numpy as np

from fm_ranker.errors import DatasetError
from fm_ranker.models.matrix import FeatureMatrix

logger = logging.getLogger(__name__)


class FactorizationMachine:
    """Second-order FM parameters with batch scoring.

    Attributes:
        bias:    Global bias ``w0``.
        linear:  Linear weights, shape ``(num_features,)``.
        factors: Latent factors, shape ``(num_features, num_factors)``.
        MODEL_VERSION: Artifact schema version embedded in saved files.
    """

    MODEL_VERSION = "v1.0.0"

    def __init__(
        self,
        bias: float,
        linear: Any,
        factors: Any,
        trained_at: str = "",
    ) -> None:
        linear_arr  = np.asarray(linear, dtype=np.float64)
        factors_arr = np.asarray(factors, dtype=np.float64)

        if linear_arr.ndim != 1:
            raise ValueError(f"linear must be 1-D; got shape {linear_arr.shape}.")
        if factors_arr.ndim != 2:
            raise ValueError(f"factors must be 2-D; got shape {factors_arr.shape}.")
        if factors_arr.shape[0] != linear_arr.shape[0]:
            raise ValueError(
                f"factors has {factors_arr.shape[0]} rows but linear has "
                f"{linear_arr.shape[0]} weights."
            )

        self.bias       = float(bias)
        self.linear     = linear_arr
        self.factors    = factors_arr
        self.trained_at = trained_at

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def num_features(self) -> int:
        return int(self.linear.shape[0])

    @property
    def num_factors(self) -> int:
        return int(self.factors.shape[1])

    # ── Validation ────────────────────────────────────────────────────────────

    def check_matrix(self, matrix: FeatureMatrix) -> None:
        """Raise ``DatasetError`` if any feature index is outside the model.

        Raises:
            DatasetError: Index ``< 0`` or ``>= num_features``, or a labeled matrix.
        """
        if matrix.has_label:
            raise DatasetError(
                "Prediction matrices must not carry labels.", stage="load_dataset"
            )
        for row_id, row in enumerate(matrix):
            for node in row:
                if node.index < 0 or node.index >= self.num_features:
                    raise DatasetError(
                        f"Row {row_id}: feature index {node.index} is outside "
                        f"the model's feature space [0, {self.num_features}).",
                        stage="load_dataset",
                    )

    # ── Scoring ───────────────────────────────────────────────────────────────

    def score(
        self,
        matrix: FeatureMatrix,
        instance_norm: bool = True,
        sigmoid: bool = False,
    ) -> list[float]:
        """Score every row of a validated matrix.

        Args:
            matrix:        Matrix whose indices passed ``check_matrix()``.
            instance_norm: Scale each row to unit L2 norm first.
            sigmoid:       Map raw scores through the logistic function.

        Returns:
            One float per row, in row order.
        """
        scores: list[float] = []
        for row in matrix:
            idx = np.fromiter((n.index for n in row), dtype=np.int64, count=len(row))
            val = np.fromiter((n.value for n in row), dtype=np.float64, count=len(row))

            if instance_norm and len(row):
                norm = math.sqrt(float(np.dot(val, val)))
                if norm > 0.0:
                    val = val / norm

            linear_term = float(np.dot(self.linear[idx], val))

            vx = self.factors[idx] * val[:, None]          # (nnz, k)
            summed = vx.sum(axis=0)
            pair_term = 0.5 * float(np.dot(summed, summed) - np.sum(vx * vx))

            y = self.bias + linear_term + pair_term
            if sigmoid:
                y = _sigmoid(y)
            scores.append(y)
        return scores

    # ── Persistence ───────────────────────────────────────────────────────────

    def save(self, artifact_path: Path) -> None:
        """Serialize the parameters to a joblib pickle file."""
        import joblib

        artifact_path = Path(artifact_path)
        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(
            {
                "bias":          self.bias,
                "linear":        self.linear,
                "factors":       self.factors,
                "model_version": self.MODEL_VERSION,
                "trained_at":    self.trained_at or date.today().isoformat(),
            },
            artifact_path,
        )
        logger.info("FM artifact saved: %s", artifact_path)

    @classmethod
    def load(cls, artifact_path: Path) -> "FactorizationMachine":
        """Load an FM artifact written by ``save()``.

        Raises:
            FileNotFoundError: If ``artifact_path`` does not exist.
            KeyError:          If the artifact lacks a required array.
            ValueError:        If the artifact was written with a different
                               ``MODEL_VERSION``.
        """
        import joblib

        artifact_path = Path(artifact_path)
        if not artifact_path.exists():
            raise FileNotFoundError(f"FM artifact not found: {artifact_path}")

        state = joblib.load(artifact_path)
        version = state.get("model_version")
        if version != cls.MODEL_VERSION:
            raise ValueError(
                f"Unsupported FM artifact version {version!r} in {artifact_path} "
                f"(expected {cls.MODEL_VERSION!r})."
            )
        inst = cls(
            bias=state["bias"],
            linear=state["linear"],
            factors=state["factors"],
            trained_at=state.get("trained_at", ""),
        )
        logger.info(
            "FM artifact loaded: %s (features=%d, factors=%d, trained=%s)",
            artifact_path, inst.num_features, inst.num_factors, inst.trained_at,
        )
        return inst


def _sigmoid(z: float) -> float:
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)
