"""
Logging setup for tractivity.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from tractivity.store.paths import get_log_dir

_LOG_INITIALISED = False


def default_log_path() -> Path:
    return get_log_dir() / "tractivity.log"


def configure(log_path: Optional[Path] = None, *, verbose: bool = False) -> None:
    """
    Configure loguru for the command-line front-end.

    Library modules only log; sinks are added here, once per process.
    """
    global _LOG_INITIALISED
    if _LOG_INITIALISED:
        return
    target = log_path or default_log_path()
    target.parent.mkdir(parents=True, exist_ok=True)

    # Keep console output and add a persistent file sink.
    _logger.remove()
    if sys.stderr is not None:
        _logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", enqueue=True)
    _logger.add(
        target,
        level="DEBUG",
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    _LOG_INITIALISED = True
