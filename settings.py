"""Application configuration helpers for QuizSync."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from quizsync import app_paths


logger = logging.getLogger(__name__)


DEFAULT_SETTINGS_PATH = os.getenv("QUIZSYNC_SETTINGS_PATH", str(app_paths.APP_DIR / "settings.json"))
DEFAULT_TOKEN_PATH = "credentials.json"
DEFAULT_VISIBILITY = "public"
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_ROMANIZED_LANG = "ja-ro"
DEFAULT_NATIVE_LANG = "ja"
DEFAULT_DEFINITIONS_LANG = "en"
DEFAULT_NATIVE_TITLE_SUFFIX = " (Kana)"

PERSISTENCE_ALL_OR_NOTHING = "all-or-nothing"
PERSISTENCE_INCREMENTAL = "incremental"
PERSISTENCE_MODES: Tuple[str, ...] = (PERSISTENCE_ALL_OR_NOTHING, PERSISTENCE_INCREMENTAL)
VISIBILITY_CHOICES: Tuple[str, ...] = ("public", "only_me", "password", "classes")

# Settings key -> environment variable. Environment values win over the file.
ENV_OVERRIDES: Mapping[str, str] = {
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
    "access_token": "ACCESS_TOKEN",
    "google_token_path": "QUIZSYNC_TOKEN_PATH",
    "persistence_mode": "QUIZSYNC_PERSISTENCE",
}
REQUIRED_KEYS: Tuple[str, ...] = ("client_id", "client_secret", "access_token")


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass
class SyncSettings:
    client_id: str
    client_secret: str
    access_token: str
    google_token_path: str = DEFAULT_TOKEN_PATH
    visibility: str = DEFAULT_VISIBILITY
    persistence_mode: str = PERSISTENCE_ALL_OR_NOTHING
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    romanized_lang: str = DEFAULT_ROMANIZED_LANG
    native_lang: str = DEFAULT_NATIVE_LANG
    definitions_lang: str = DEFAULT_DEFINITIONS_LANG
    native_title_suffix: str = DEFAULT_NATIVE_TITLE_SUFFIX
    journal_path: str = ""

    @property
    def incremental(self) -> bool:
        return self.persistence_mode == PERSISTENCE_INCREMENTAL

    def resolved_journal_path(self) -> Path:
        if self.journal_path:
            return Path(self.journal_path).expanduser()
        return app_paths.data_path("id_journal.jsonl")

    def to_json(self) -> Dict[str, object]:
        """Return the non-secret settings, suitable for logging or saving."""

        return {
            "google_token_path": self.google_token_path,
            "visibility": self.visibility,
            "persistence_mode": self.persistence_mode,
            "request_timeout": self.request_timeout,
            "romanized_lang": self.romanized_lang,
            "native_lang": self.native_lang,
            "definitions_lang": self.definitions_lang,
            "native_title_suffix": self.native_title_suffix,
            "journal_path": self.journal_path,
        }


def _read_settings_file(path: Optional[str]) -> Dict[str, object]:
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Settings file {path} could not be read: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a JSON object")
    return data


def _extract_text(value: object) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""


def _coerce_timeout(value: object) -> float:
    if value in (None, ""):
        return DEFAULT_REQUEST_TIMEOUT
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"request_timeout must be a number, got {value!r}") from exc
    if timeout <= 0:
        raise ConfigError("request_timeout must be positive")
    return timeout


def load_sync_settings(
    path: Optional[str] = DEFAULT_SETTINGS_PATH,
    env: Optional[Mapping[str, str]] = None,
    **overrides: object,
) -> SyncSettings:
    """Merge the settings file, the environment and explicit overrides.

    Raises :class:`ConfigError` when a required value is missing. No network
    activity happens here, so callers can fail fast before touching Google or
    Quizlet.
    """

    environ = os.environ if env is None else env
    data = _read_settings_file(path)

    merged: Dict[str, object] = dict(data)
    for key, variable in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value:
            merged[key] = value
    for key, value in overrides.items():
        if value not in (None, ""):
            merged[key] = value

    missing = [key for key in REQUIRED_KEYS if not _extract_text(merged.get(key))]
    if missing:
        variables = ", ".join(ENV_OVERRIDES[key] for key in missing)
        raise ConfigError(f"Missing required configuration: {variables}")

    persistence_mode = _extract_text(merged.get("persistence_mode")) or PERSISTENCE_ALL_OR_NOTHING
    if persistence_mode not in PERSISTENCE_MODES:
        raise ConfigError(
            f"persistence_mode must be one of {', '.join(PERSISTENCE_MODES)}, got {persistence_mode!r}"
        )

    visibility = _extract_text(merged.get("visibility")) or DEFAULT_VISIBILITY
    if visibility not in VISIBILITY_CHOICES:
        raise ConfigError(f"visibility must be one of {', '.join(VISIBILITY_CHOICES)}, got {visibility!r}")

    suffix = merged.get("native_title_suffix")
    settings = SyncSettings(
        client_id=_extract_text(merged["client_id"]),
        client_secret=_extract_text(merged["client_secret"]),
        access_token=_extract_text(merged["access_token"]),
        google_token_path=_extract_text(merged.get("google_token_path")) or DEFAULT_TOKEN_PATH,
        visibility=visibility,
        persistence_mode=persistence_mode,
        request_timeout=_coerce_timeout(merged.get("request_timeout")),
        romanized_lang=_extract_text(merged.get("romanized_lang")) or DEFAULT_ROMANIZED_LANG,
        native_lang=_extract_text(merged.get("native_lang")) or DEFAULT_NATIVE_LANG,
        definitions_lang=_extract_text(merged.get("definitions_lang")) or DEFAULT_DEFINITIONS_LANG,
        native_title_suffix=suffix if isinstance(suffix, str) and suffix else DEFAULT_NATIVE_TITLE_SUFFIX,
        journal_path=_extract_text(merged.get("journal_path")),
    )
    logger.debug("Loaded sync settings: %s", settings.to_json())
    return settings


__all__ = [
    "ConfigError",
    "SyncSettings",
    "DEFAULT_SETTINGS_PATH",
    "DEFAULT_TOKEN_PATH",
    "PERSISTENCE_ALL_OR_NOTHING",
    "PERSISTENCE_INCREMENTAL",
    "PERSISTENCE_MODES",
    "VISIBILITY_CHOICES",
    "load_sync_settings",
]
