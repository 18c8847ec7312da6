"""Application-wide logging configuration utilities."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from quizsync import app_paths

_LOG_PATH: Optional[Path] = None
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, log_path: Optional[Path] = None) -> Path:
    """Configure logging to write to the QuizSync log file and to stderr.

    Parameters
    ----------
    level:
        The minimum logging level for the root logger. ``logging.INFO`` is used
        by default which reports every created, updated and healed set without
        being overly verbose.
    log_path:
        Optional override for the log file location.

    Returns
    -------
    pathlib.Path
        The path to the log file.
    """

    global _LOG_PATH

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.setLevel(level)
    else:
        root_logger.setLevel(min(root_logger.level, level))

    if _LOG_PATH is not None and log_path is None:
        return _LOG_PATH

    target = Path(log_path) if log_path is not None else app_paths.log_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        target.touch(exist_ok=True)
    except OSError:
        pass

    formatter = logging.Formatter(_FORMAT)

    already_configured = any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == str(target.resolve())
        for handler in root_logger.handlers
    )
    if not already_configured:
        file_handler = logging.FileHandler(target, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    has_console = any(
        type(handler) is logging.StreamHandler for handler in root_logger.handlers
    )
    if not has_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _LOG_PATH = target
    root_logger.debug("Logging configured. Writing to %s", target)
    return target


def get_log_path() -> Path:
    """Return the path to the QuizSync log file, configuring logging if needed."""

    if _LOG_PATH is None:
        return configure_logging()
    return _LOG_PATH
