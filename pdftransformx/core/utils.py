"""Utilities shared by pdftransformx components."""

from __future__ import annotations

import logging
import shutil
import subprocess
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, MutableMapping, Sequence

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    return logger


def configure_logging(level: str | int = logging.INFO) -> None:
    """Set the level of every ``pdftransformx`` logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root = get_logger("pdftransformx")
    root.setLevel(level)
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("pdftransformx.") and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def resolve_path(path: str | Path | None) -> Path:
    if path is None:
        raise ValueError("Path must not be None")
    return Path(path).expanduser().resolve()


@contextmanager
def time_block(logger: logging.Logger, message: str) -> Iterator[None]:
    """Context manager that logs the execution time of a code block."""
    start = datetime.now(tz=timezone.utc)
    logger.debug("Starting %s", message)
    try:
        yield
    finally:
        elapsed = (datetime.now(tz=timezone.utc) - start).total_seconds()
        logger.info("%s completed in %.2fs", message, elapsed)


def which(executables: Sequence[str]) -> str | None:
    """Return the first executable from *executables* found on ``PATH``."""

    for candidate in executables:
        found = shutil.which(candidate)
        if found:
            return found
    return None


def run_subprocess(
    command: Sequence[str],
    *,
    env: MutableMapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run *command* as an argument vector, capturing output.

    The command is never passed through a shell, so passwords and file names
    are delivered to the tool verbatim.
    """

    logger = get_logger("pdftransformx.subprocess")
    logger.debug("Executing command: %s", command[0])
    completed = subprocess.run(
        list(command),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=check,
        text=True,
    )
    logger.debug("Command finished with exit code %s", completed.returncode)
    return completed


def sizeof_fmt(num_bytes: float) -> str:
    """Format *num_bytes* into a human-friendly string."""

    step_unit = 1024.0
    for unit in ("bytes", "KiB", "MiB", "GiB"):
        if abs(num_bytes) < step_unit:
            return f"{num_bytes:3.1f} {unit}"
        num_bytes /= step_unit
    return f"{num_bytes:.1f} TiB"


__all__ = [
    "get_logger",
    "configure_logging",
    "resolve_path",
    "time_block",
    "which",
    "run_subprocess",
    "sizeof_fmt",
]
