"""
Pass-through command runner for the engine's own command line.

The first argument is a mode token: ``"train"`` selects the training
binary, any other value selects prediction.  The remaining arguments are
handed to the engine verbatim — this module does not parse or validate them::

    run_engine_command(["train", "train.txt", "-s", "0", "-m", "model.out"])
    # → xlearn_train train.txt -s 0 -m model.out

    run_engine_command(["predict", "test.txt", "model.out", "-o", "out.txt"])
    # → xlearn_predict test.txt model.out -o out.txt
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Sequence

from fm_ranker.errors import EngineCommandError
from fm_ranker.utils.logging import progress_level
from fm_ranker.utils.timing import Stopwatch

logger = logging.getLogger(__name__)

TRAIN_MODE = "train"
TRAIN_BINARY = "xlearn_train"
PREDICT_BINARY = "xlearn_predict"


def resolve_binary(mode: str, command_dir: str = "") -> str:
    """Return the executable path for ``mode``.

    Raises:
        EngineCommandError: The executable cannot be found.
    """
    name = TRAIN_BINARY if mode == TRAIN_MODE else PREDICT_BINARY
    if command_dir:
        candidate = Path(command_dir) / name
        if candidate.exists():
            return str(candidate)
        raise EngineCommandError(f"Engine binary not found: {candidate}", returncode=127)

    found = shutil.which(name)
    if found is None:
        raise EngineCommandError(
            f"Engine binary '{name}' not found on PATH. "
            "Install xLearn or set engine.command_dir.",
            returncode=127,
        )
    return found


def run_engine_command(
    args: Sequence[str],
    command_dir: str = "",
    quiet: bool = False,
) -> int:
    """Run the engine command line for ``args``.

    Args:
        args:        Mode token followed by engine-specific arguments.
        command_dir: Directory holding the engine binaries ("" → PATH lookup).
        quiet:       Suppress the engine's stdout and demote progress logs.

    Returns:
        The process exit status (always 0; failures raise).

    Raises:
        ValueError:          ``args`` is empty.
        EngineCommandError:  Binary missing or non-zero exit status.
    """
    if not args:
        raise ValueError("run_engine_command() needs at least a mode token.")

    mode, *engine_args = list(args)
    binary = resolve_binary(mode, command_dir)
    level = progress_level(quiet)

    logger.log(level, "Running engine command: %s %s", binary, " ".join(engine_args))
    with Stopwatch() as sw:
        completed = subprocess.run(
            [binary, *engine_args],
            stdout=subprocess.DEVNULL if quiet else None,
            check=False,
        )
    logger.log(level, "Total time cost: %.6f (sec)", sw.elapsed)

    if completed.returncode != 0:
        raise EngineCommandError(
            f"Engine command '{mode}' exited with status {completed.returncode}.",
            returncode=completed.returncode,
        )
    return completed.returncode
