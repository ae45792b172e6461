"""
Caller-facing provider: owns the engine handle slot and exposes the four
operations callers need — ``init``, ``predict``, ``dispose`` and ``run``.

The provider holds at most one handle.  ``init`` fills the slot (refusing to
overwrite a live handle), ``dispose`` empties it, and ``predict`` on an
empty slot raises ``InvalidHandleError``.  The quiet flag is stored on the
provider instance, not in process-wide state, and is passed explicitly to
every pipeline call.

Usage::

    provider = FMProvider.from_config(load_config())
    provider.init()
    result = provider.predict(tasks=[10, 20, 30], keys=[5, 6], values=[2, 1], top_size=2)
    provider.dispose()

or as a context manager::

    with FMProvider(model_path="model.pkl") as provider:
        provider.predict([10, 20, 30], [5, 6], [2, 1], 2)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from fm_ranker.config import AppConfig
from fm_ranker.engine.command import run_engine_command
from fm_ranker.engine.handle import EngineHandle, dispose_engine, initialize_engine
from fm_ranker.errors import InvalidHandleError
from fm_ranker.models.request import PredictionRequest
from fm_ranker.models.result import RankedResult
from fm_ranker.pipeline.predict import PredictionPipeline

logger = logging.getLogger(__name__)


class FMProvider:
    """Holds one engine handle and serves prediction requests with it.

    Not thread-safe: share a provider across threads only behind a lock,
    or create one provider per worker.
    """

    def __init__(
        self,
        model_path: str = "",
        output_path: str = "",
        backend: str = "native",
        instance_norm: bool = True,
        sigmoid: bool = False,
        quiet: bool = False,
        command_dir: str = "",
    ) -> None:
        self.model_path    = model_path
        self.output_path   = output_path
        self.backend       = backend
        self.instance_norm = instance_norm
        self.sigmoid       = sigmoid
        self.quiet         = quiet
        self.command_dir   = command_dir
        self._handle: Optional[EngineHandle] = None

    @classmethod
    def from_config(cls, config: AppConfig) -> "FMProvider":
        eng = config.engine
        return cls(
            model_path=eng.model_path,
            output_path=eng.output_path,
            backend=eng.backend,
            instance_norm=eng.instance_norm,
            sigmoid=eng.sigmoid,
            quiet=eng.quiet,
            command_dir=eng.command_dir,
        )

    @property
    def handle(self) -> Optional[EngineHandle]:
        return self._handle

    @property
    def is_initialized(self) -> bool:
        return self._handle is not None and self._handle.is_valid

    def init(
        self,
        model_path: Optional[str] = None,
        output_path: Optional[str] = None,
        quiet: Optional[bool] = None,
    ) -> EngineHandle:
        """Initialise the engine and store its handle.

        Raises:
            InitializationError: The model could not be loaded.
            InvalidHandleError:  A live handle is already stored.
        """
        if self.is_initialized:
            raise InvalidHandleError(
                f"Provider already holds live handle #{self._handle.handle_id}; "
                "dispose() it first.",
                stage="initialize",
            )
        if model_path is not None:
            self.model_path = model_path
        if output_path is not None:
            self.output_path = output_path
        if quiet is not None:
            self.quiet = quiet

        self._handle = initialize_engine(
            self.model_path,
            self.output_path or None,
            backend=self.backend,
            instance_norm=self.instance_norm,
            sigmoid=self.sigmoid,
            quiet=self.quiet,
        )
        return self._handle

    def predict(
        self,
        tasks: Sequence[int],
        keys: Sequence[int],
        values: Sequence[int],
        top_size: int,
    ) -> RankedResult:
        """Rank ``tasks`` given fact ``keys``/``values``; return the top ``top_size``.

        Raises:
            InputLengthMismatchError: ``keys`` and ``values`` differ in length.
            RequestValidationError:   A task id or key is outside uint32 range.
            InvalidHandleError:       ``init()`` was not called or was disposed.
        """
        request = PredictionRequest.from_arrays(tasks, keys, values, top_size)
        return self.predict_request(request)

    def predict_request(self, request: PredictionRequest) -> RankedResult:
        if self._handle is None:
            raise InvalidHandleError(
                "Provider has no engine handle; call init() first.", stage="predict"
            )
        return PredictionPipeline(self._handle, quiet=self.quiet).predict(request)

    def dispose(self) -> None:
        """Dispose the stored handle and clear the slot.

        Raises:
            InvalidHandleError: No handle is stored.
        """
        if self._handle is None:
            raise InvalidHandleError(
                "Provider has no engine handle to dispose.", stage="dispose"
            )
        handle, self._handle = self._handle, None
        dispose_engine(handle, quiet=self.quiet)

    def run(self, args: Sequence[str]) -> int:
        """Pass ``args`` (mode token first) through to the engine command line."""
        return run_engine_command(args, command_dir=self.command_dir, quiet=self.quiet)

    def __enter__(self) -> "FMProvider":
        if not self.is_initialized:
            self.init()
        return self

    def __exit__(self, *exc_info) -> None:
        if self._handle is not None:
            self.dispose()
