"""
fm-ranker — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (predict, pass-through engine command, inspection).
  5. Report result to stdout.

Install and run::

    pip install -e .
    fm-ranker --help
    fm-ranker validate-config
    fm-ranker predict --model data/models/fm_model.pkl --tasks 10,20,30 \\
        --fact 5:2 --fact 6:1 --top-k 2
    fm-ranker predict --request request.json
    fm-ranker run train train.txt -s 0 -m model.out
    fm-ranker inspect-model data/models/fm_model.pkl
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="fm-ranker",
    help="Factorization-machine top-K task ranking bridge.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from fm_ranker.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from fm_ranker.utils.logging import configure_logging
    configure_logging(config.logging)


def _parse_int_list(raw: str) -> list[int]:
    """Parse ``"10,20,30"`` into ``[10, 20, 30]``."""
    return [int(tok) for tok in raw.split(",") if tok.strip()]


def _parse_fact(raw: str) -> tuple[int, int]:
    """Parse a ``KEY:VALUE`` fact token."""
    key, sep, value = raw.partition(":")
    if not sep:
        raise ValueError(f"Fact '{raw}' must be KEY:VALUE.")
    return int(key), int(value)


def _read_request_file(path: Path) -> dict[str, Any]:
    """Read ``{"tasks": [...], "keys": [...], "values": [...], "top_k": n}``."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Request file must contain a JSON object.")
    return data


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Engine backend:   {config.engine.backend}")
    typer.echo(f"  Model path:       {config.engine.model_path}")
    typer.echo(f"  Output path:      {config.engine.output_path or '(none)'}")
    typer.echo(f"  Default top-K:    {config.prediction.default_top_k}")
    typer.echo(f"  Quiet:            {config.engine.quiet}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("predict")
def predict(
    tasks: Optional[str] = typer.Option(
        None,
        "--tasks",
        "-t",
        help="Comma-separated candidate task ids, e.g. 10,20,30.",
    ),
    facts: Optional[list[str]] = typer.Option(
        None,
        "--fact",
        "-f",
        help="Knowledge fact as KEY:VALUE. Repeat for several facts.",
    ),
    top_k: Optional[int] = typer.Option(
        None,
        "--top-k",
        "-k",
        help="Result size (default: prediction.default_top_k).",
    ),
    request_file: Optional[str] = typer.Option(
        None,
        "--request",
        help="JSON request file with tasks, keys, values and optional top_k.",
    ),
    model_path: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Override engine.model_path from config.",
    ),
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        help="Override engine.backend (native | xlearn).",
    ),
    quiet: Optional[bool] = typer.Option(
        None,
        "--quiet/--verbose",
        help="Demote progress logging to DEBUG.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Rank candidate tasks against shared knowledge facts and print the top K as JSON."""
    from pydantic import ValidationError

    from fm_ranker.errors import FMRankerError
    from fm_ranker.models.request import PredictionRequest
    from fm_ranker.provider import FMProvider

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        if request_file:
            data = _read_request_file(Path(request_file))
            req_tasks  = list(data.get("tasks", []))
            req_keys   = list(data.get("keys", []))
            req_values = list(data.get("values", []))
            req_top_k  = data.get("top_k", config.prediction.default_top_k)
        else:
            if tasks is None:
                typer.echo("[ERROR] Pass --tasks or --request.", err=True)
                raise typer.Exit(code=1)
            pairs = [_parse_fact(f) for f in (facts or [])]
            req_tasks  = _parse_int_list(tasks)
            req_keys   = [k for k, _ in pairs]
            req_values = [v for _, v in pairs]
            req_top_k  = config.prediction.default_top_k
        if top_k is not None:
            req_top_k = top_k

        request = PredictionRequest.from_arrays(req_tasks, req_keys, req_values, req_top_k)
    except (OSError, ValueError, ValidationError) as exc:
        typer.echo(f"[ERROR] Invalid request: {exc}", err=True)
        raise typer.Exit(code=1)

    provider = FMProvider.from_config(config)
    if backend:
        provider.backend = backend
    if quiet is not None:
        provider.quiet = quiet

    try:
        provider.init(model_path=model_path)
        try:
            result = provider.predict_request(request)
        finally:
            provider.dispose()
    except FMRankerError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(result.to_dicts(), indent=2))


@app.command(
    "run",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(
    ctx: typer.Context,
    mode: str = typer.Argument(
        ...,
        help="'train' runs the training binary; any other value runs prediction.",
    ),
    quiet: Optional[bool] = typer.Option(
        None,
        "--quiet/--verbose",
        help="Suppress the engine's stdout.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Pass MODE and all remaining arguments through to the xLearn command line.

    \b
      fm-ranker run train train.txt -s 0 -m model.out
      fm-ranker run predict test.txt model.out -o out.txt
    """
    from fm_ranker.errors import FMRankerError
    from fm_ranker.provider import FMProvider

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    provider = FMProvider.from_config(config)
    if quiet is not None:
        provider.quiet = quiet

    try:
        provider.run([mode, *ctx.args])
    except FMRankerError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"[OK] Engine command '{mode}' finished.")


@app.command("inspect-model")
def inspect_model(
    artifact: str = typer.Argument(..., help="Path to a native FM artifact (.pkl)."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the dimensions of a native FM artifact."""
    from fm_ranker.engine.fm_model import FactorizationMachine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        model = FactorizationMachine.load(Path(artifact))
    except (OSError, KeyError, ValueError) as exc:
        typer.echo(f"[ERROR] Could not load artifact: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Artifact:      {artifact}")
    typer.echo(f"  Features:    {model.num_features}")
    typer.echo(f"  Factors:     {model.num_factors}")
    typer.echo(f"  Bias:        {model.bias:.6f}")
    typer.echo(f"  Trained at:  {model.trained_at or 'unknown'}")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
