"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``FM_RANKER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The CLI and ``FMProvider`` receive an ``AppConfig`` instance — never raw
dicts or individual env var lookups scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

EngineBackend = Literal["native", "xlearn"]

# ── Sub-config models ─────────────────────────────────────────────────────────


class EngineConfig(BaseModel):
    """Scoring engine selection and model location.

    ``instance_norm`` and ``sigmoid`` must match how the model was trained;
    the bridge does not infer them from the model file.
    """

    model_config = ConfigDict(frozen=True)

    backend: EngineBackend = "native"
    model_path: str = "data/models/fm_model.pkl"
    output_path: str = ""
    instance_norm: bool = True
    sigmoid: bool = False
    quiet: bool = False
    command_dir: str = ""        # directory holding xlearn_train / xlearn_predict


class PredictionConfig(BaseModel):
    """Per-request defaults."""

    model_config = ConfigDict(frozen=True)

    default_top_k: int = 10

    @field_validator("default_top_k")
    @classmethod
    def validate_top_k(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"default_top_k must be >= 0, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth."""

    model_config = ConfigDict(frozen=True)

    engine: EngineConfig = EngineConfig()
    prediction: PredictionConfig = PredictionConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _truthy(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply FM_RANKER_* env vars to the raw config dict.

    Supported overrides:
      FM_RANKER_MODEL_PATH  → raw["engine"]["model_path"]
      FM_RANKER_BACKEND     → raw["engine"]["backend"]
      FM_RANKER_QUIET       → raw["engine"]["quiet"]
      FM_RANKER_LOG_LEVEL   → raw["logging"]["level"]
      FM_RANKER_DEBUG       → raw["debug"]
    """
    if model_path := os.environ.get("FM_RANKER_MODEL_PATH"):
        raw.setdefault("engine", {})["model_path"] = model_path

    if backend := os.environ.get("FM_RANKER_BACKEND"):
        raw.setdefault("engine", {})["backend"] = backend

    if quiet := os.environ.get("FM_RANKER_QUIET"):
        raw.setdefault("engine", {})["quiet"] = _truthy(quiet)

    if log_level := os.environ.get("FM_RANKER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("FM_RANKER_DEBUG"):
        raw["debug"] = _truthy(debug)

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        engine=EngineConfig(**raw.get("engine", {})),
        prediction=PredictionConfig(**raw.get("prediction", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
