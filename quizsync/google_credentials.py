"""Helpers for loading and validating stored Google OAuth user tokens."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence

from google.oauth2.credentials import Credentials

__all__ = [
    "CredentialsFileInvalidError",
    "DEFAULT_SCOPES",
    "TOKEN_URI",
    "build_credentials",
    "load_token_data",
]

TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_SCOPES: Sequence[str] = (
    "https://www.googleapis.com/auth/drive.appdata",
    "https://www.googleapis.com/auth/spreadsheets.readonly",
)

# Token files written by the Node googleapis client use ``access_token``,
# ``google-auth`` authorized-user files use ``token``.
_ACCESS_TOKEN_FIELDS: Iterable[str] = ("token", "access_token")


class CredentialsFileInvalidError(Exception):
    """Raised when the stored token file is missing or lacks required data."""


def _load_json(path: Path) -> Mapping[str, object]:
    try:
        with path.open("r", encoding="utf-8-sig") as handle:
            raw = handle.read()
    except OSError as exc:
        raise CredentialsFileInvalidError(f"Token file could not be read: {exc}") from exc

    payload_text = raw.lstrip("\ufeff").strip()
    if not payload_text:
        raise CredentialsFileInvalidError("Token file is empty.")

    try:
        payload = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        raise CredentialsFileInvalidError(f"Token file is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise CredentialsFileInvalidError("Token file must contain a JSON object.")
    return payload


def _first_text(payload: Mapping[str, object], fields: Iterable[str]) -> Optional[str]:
    for field in fields:
        value = payload.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _parse_scopes(payload: Mapping[str, object]) -> Optional[list[str]]:
    scopes = payload.get("scopes")
    if isinstance(scopes, list):
        return [str(scope) for scope in scopes if scope]
    scope = payload.get("scope")
    if isinstance(scope, str) and scope.strip():
        return scope.split()
    return None


def load_token_data(path: Path) -> Dict[str, object]:
    """Return normalised token data from ``path``.

    At least one of an access token or a refresh token must be present.
    """

    payload = _load_json(path)
    token = _first_text(payload, _ACCESS_TOKEN_FIELDS)
    refresh_token = _first_text(payload, ("refresh_token",))
    if not token and not refresh_token:
        raise CredentialsFileInvalidError("Token file missing fields: access_token, refresh_token")

    return {
        "token": token,
        "refresh_token": refresh_token,
        "token_uri": _first_text(payload, ("token_uri",)) or TOKEN_URI,
        "scopes": _parse_scopes(payload),
    }


def build_credentials(
    path: Path,
    client_id: str,
    client_secret: str,
    scopes: Optional[Sequence[str]] = None,
) -> Credentials:
    """Build Google user credentials from the token file and OAuth client pair."""

    if not path.exists():
        raise CredentialsFileInvalidError(f"Token file not found: {path}")
    data = load_token_data(path)
    return Credentials(
        token=data["token"],
        refresh_token=data["refresh_token"],
        token_uri=data["token_uri"],
        client_id=client_id,
        client_secret=client_secret,
        scopes=list(scopes or data["scopes"] or DEFAULT_SCOPES),
    )
