"""Centralised helpers for managing QuizSync application directories."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

_APP_ENV_VARS: Iterable[str] = ("QUIZSYNC_HOME", "XDG_DATA_HOME", "LOCALAPPDATA", "APPDATA")


def _detect_base_directory() -> Path:
    for env_var in _APP_ENV_VARS:
        value = os.environ.get(env_var)
        if not value:
            continue
        base = Path(value).expanduser().resolve()
        if env_var == "QUIZSYNC_HOME":
            return base
        return base / "QuizSync"
    return Path.home().resolve() / ".quizsync"


APP_DIR: Path = _detect_base_directory()
LOG_DIR: Path = APP_DIR / "logs"


def ensure_directory(path: Path) -> Path:
    """Ensure that ``path`` exists, returning the :class:`~pathlib.Path`."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def data_path(*parts: str) -> Path:
    """Return a path rooted inside :data:`APP_DIR`, creating parent directories."""

    target = APP_DIR.joinpath(*parts)
    ensure_directory(target.parent)
    return target


def log_path(filename: str = "quizsync.log") -> Path:
    """Return the path of the application log file."""

    ensure_directory(LOG_DIR)
    return LOG_DIR / filename


__all__ = [
    "APP_DIR",
    "LOG_DIR",
    "data_path",
    "ensure_directory",
    "log_path",
]
