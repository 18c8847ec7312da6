"""Quizlet API 2.0 client used to create and overwrite flashcard sets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

import requests

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.quizlet.com/2.0"
USER_AGENT = "QuizSync"
GONE_STATUS_CODES = frozenset({404, 410})
# Quizlet rejects sets with empty term arrays, so new sets start with two
# blank cards and are filled by the first update.
PLACEHOLDER_CARDS: Tuple[str, str] = ("", "")

RemoteId = Union[str, int]


class RemoteError(RuntimeError):
    """Raised when a Quizlet request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SetNotFoundError(RemoteError):
    """Raised when Quizlet reports that a set no longer exists (404/410)."""


@dataclass(slots=True, frozen=True)
class SyncPayload:
    """Full content written to a set on every update.

    ``terms`` and ``definitions`` are index aligned.
    """

    title: str
    lang_terms: str
    lang_definitions: str
    terms: Tuple[str, ...]
    definitions: Tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.terms) != len(self.definitions):
            raise ValueError(
                f"terms ({len(self.terms)}) and definitions ({len(self.definitions)}) must have the same length"
            )


@dataclass(slots=True, frozen=True)
class CreationSpec:
    title: str
    visibility: str
    lang_terms: str
    lang_definitions: str
    terms: Tuple[str, ...] = PLACEHOLDER_CARDS
    definitions: Tuple[str, ...] = PLACEHOLDER_CARDS

    @classmethod
    def from_payload(cls, payload: SyncPayload, visibility: str) -> "CreationSpec":
        return cls(
            title=payload.title,
            visibility=visibility,
            lang_terms=payload.lang_terms,
            lang_definitions=payload.lang_definitions,
        )


def _form_fields(
    *,
    title: str,
    lang_terms: str,
    lang_definitions: str,
    terms: Sequence[str],
    definitions: Sequence[str],
    visibility: Optional[str] = None,
) -> List[Tuple[str, str]]:
    fields: List[Tuple[str, str]] = [
        ("title", title),
        ("whitespace", "1"),
        ("lang_terms", lang_terms),
        ("lang_definitions", lang_definitions),
    ]
    if visibility is not None:
        fields.append(("visibility", visibility))
    fields.extend(("terms[]", term) for term in terms)
    fields.extend(("definitions[]", definition) for definition in definitions)
    return fields


def _describe(response: requests.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        body = response.text
    if isinstance(body, dict):
        detail = body.get("error_description") or body.get("error")
        if detail:
            return f"HTTP {response.status_code}: {detail}"
    return f"HTTP {response.status_code}: {str(body)[:200]}"


class QuizletClient:
    """Thin wrapper around the Quizlet set endpoints."""

    def __init__(
        self,
        access_token: str,
        *,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
        base_url: str = API_BASE_URL,
    ) -> None:
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "User-Agent": USER_AGENT,
            }
        )

    def _send(self, method: str, url: str, fields: List[Tuple[str, str]]) -> requests.Response:
        try:
            return self._session.request(method, url, data=fields, timeout=self._timeout)
        except requests.RequestException as exc:
            raise RemoteError(f"Quizlet {method} {url} failed: {exc}") from exc

    def create_set(self, spec: CreationSpec) -> RemoteId:
        """Create a set and return its id."""

        url = f"{self._base_url}/sets"
        response = self._send(
            "POST",
            url,
            _form_fields(
                title=spec.title,
                visibility=spec.visibility,
                lang_terms=spec.lang_terms,
                lang_definitions=spec.lang_definitions,
                terms=spec.terms,
                definitions=spec.definitions,
            ),
        )
        if not response.ok:
            raise RemoteError(f"Unable to create set {spec.title!r}: {_describe(response)}", response.status_code)
        try:
            set_id = response.json()["set_id"]
        except (ValueError, KeyError, TypeError) as exc:
            raise RemoteError(f"Quizlet create response has no set_id: {response.text[:200]}") from exc
        return set_id

    def update_set(self, set_id: RemoteId, payload: SyncPayload) -> None:
        """Replace the whole content of ``set_id`` with ``payload``."""

        url = f"{self._base_url}/sets/{set_id}"
        response = self._send(
            "PUT",
            url,
            _form_fields(
                title=payload.title,
                lang_terms=payload.lang_terms,
                lang_definitions=payload.lang_definitions,
                terms=payload.terms,
                definitions=payload.definitions,
            ),
        )
        if response.status_code in GONE_STATUS_CODES:
            raise SetNotFoundError(f"Set {set_id} no longer exists", response.status_code)
        if not response.ok:
            raise RemoteError(f"Unable to update set {set_id}: {_describe(response)}", response.status_code)


__all__ = [
    "API_BASE_URL",
    "CreationSpec",
    "PLACEHOLDER_CARDS",
    "QuizletClient",
    "RemoteError",
    "RemoteId",
    "SetNotFoundError",
    "SyncPayload",
]
