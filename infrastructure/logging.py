"""Logging initialization utilities using loguru."""

from __future__ import annotations

import os
from pathlib import Path
import sys

from loguru import logger

APP_DIR_NAME = "PhotoSequencer"


def get_log_directory() -> str:
    """Get the main log directory path (LOCALAPPDATA on Windows, XDG state elsewhere)."""
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        base = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return str(Path(base) / APP_DIR_NAME / "logs")


def init_logging(log_dir: str | None = None, level: str = "INFO", console: bool = False) -> Path:
    """Initialize rotating file logging under the given directory.

    Args:
        log_dir: Target directory; defaults to `get_log_directory()`.
        level: Minimum level for every sink.
        console: Also log to stderr (headless/CLI runs).

    Returns:
        The directory that receives the log files.
    """
    if log_dir is None:
        log_dir = get_log_directory()
    log_path = Path(os.path.expandvars(log_dir))
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "app_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
    if console:
        logger.add(sys.stderr, level=level, format="[{time:HH:mm:ss}] {level}: {message}")
    return log_path
