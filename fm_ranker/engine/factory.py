"""Backend name → ScoringEngine class lookup."""

from __future__ import annotations

from fm_ranker.engine.base import ScoringEngine
from fm_ranker.engine.native import NativeFMEngine
from fm_ranker.engine.xlearn_engine import XLearnEngine
from fm_ranker.errors import InitializationError

ENGINE_BACKENDS: dict[str, type[ScoringEngine]] = {
    NativeFMEngine.backend_name: NativeFMEngine,
    XLearnEngine.backend_name:   XLearnEngine,
}


def create_engine(
    backend: str = "native",
    instance_norm: bool = True,
    sigmoid: bool = False,
) -> ScoringEngine:
    """Instantiate an (uninitialised) engine for ``backend``.

    Raises:
        InitializationError: Unknown backend name.
    """
    engine_cls = ENGINE_BACKENDS.get(backend)
    if engine_cls is None:
        raise InitializationError(
            f"Unknown engine backend '{backend}'. "
            f"Must be one of {sorted(ENGINE_BACKENDS)}.",
            stage="initialize",
        )
    return engine_cls(instance_norm=instance_norm, sigmoid=sigmoid)
