"""Google Sheets client helpers for reading vocabulary tabs.

This module centralises all direct interactions with the Google Sheets API
used by QuizSync. Two read operations are exposed:

* ``list_tabs`` returns the id and title of every worksheet in the
  spreadsheet.
* ``get_rows`` returns the two-column ``A:B`` values of one worksheet.

Worksheet titles are always quoted according to A1 notation so titles with
spaces or apostrophes never trigger "Unable to parse range" errors.

Calls are made from worker threads while the orchestrator fans out over tabs.
``httplib2`` connections are not thread-safe, so each worker thread gets its
own API service object built by ``service_factory``.

All public entry points raise subclasses of :class:`SheetsClientError`.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Mapping, Sequence

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

VOCAB_COLUMNS = "A:B"


@dataclass(slots=True, frozen=True)
class SheetTab:
    """Identity of one worksheet tab."""

    tab_id: int
    title: str


class SheetsClientError(RuntimeError):
    """Base error raised for Sheets API failures."""


class SheetsApiResponseError(SheetsClientError):
    """Raised when the Google API returns an error response or is unreachable."""


def _normalise_title(title: str) -> str:
    """Return a worksheet title quoted according to A1 notation rules."""

    safe = (title or "").strip()
    if not safe:
        raise SheetsClientError("Worksheet title must not be empty.")
    if len(safe) >= 2 and safe[0] == safe[-1] == "'":
        safe = safe[1:-1].replace("''", "'")
    safe = safe.replace("'", "''")
    return f"'{safe}'"


def a1_range(title: str, columns: str = VOCAB_COLUMNS) -> str:
    """Return an A1 range covering ``columns`` of the worksheet ``title``."""

    return f"{_normalise_title(title)}!{columns}"


def build_sheets_service(credentials):
    """Return a Sheets v4 client for ``credentials``."""

    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


class GoogleSheetsClient:
    """Read-only helper that speaks to Google Sheets using the REST API."""

    def __init__(self, spreadsheet_id: str, service_factory: Callable[[], object]) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._service_factory = service_factory
        self._local = threading.local()

    @classmethod
    def from_credentials(cls, spreadsheet_id: str, credentials) -> "GoogleSheetsClient":
        return cls(spreadsheet_id, lambda: build_sheets_service(credentials))

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    def _service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            service = self._service_factory()
            self._local.service = service
        return service

    def _execute(self, request, action: str):
        try:
            return request.execute()
        except HttpError as exc:
            raise SheetsApiResponseError(f"Unable to {action}: {exc}") from exc
        except (OSError, httplib2.HttpLib2Error, GoogleAuthError) as exc:
            raise SheetsApiResponseError(f"Google Sheets is unreachable while trying to {action}: {exc}") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_tabs(self) -> List[SheetTab]:
        """Return every worksheet of the spreadsheet in display order."""

        request = self._service().spreadsheets().get(
            spreadsheetId=self._spreadsheet_id,
            includeGridData=False,
            fields="sheets.properties(sheetId,title)",
        )
        response = self._execute(request, "list worksheets")
        sheets: Sequence[Mapping[str, object]] = response.get("sheets", [])  # type: ignore[assignment]
        tabs: List[SheetTab] = []
        for sheet in sheets:
            properties = sheet.get("properties", {})
            if not isinstance(properties, Mapping):
                continue
            tabs.append(
                SheetTab(
                    tab_id=int(properties.get("sheetId", 0)),
                    title=str(properties.get("title", "")),
                )
            )
        logger.debug("Spreadsheet %s has %s tabs", self._spreadsheet_id, len(tabs))
        return tabs

    def get_rows(self, title: str, columns: str = VOCAB_COLUMNS) -> List[List[str]]:
        """Return the values of ``columns`` for the worksheet ``title``.

        Trailing empty cells are omitted by the API, so rows may be shorter
        than the requested column span.
        """

        range_spec = a1_range(title, columns)
        logger.info("Fetching %s", range_spec)
        request = (
            self._service()
            .spreadsheets()
            .values()
            .get(spreadsheetId=self._spreadsheet_id, range=range_spec, majorDimension="ROWS")
        )
        response = self._execute(request, f"fetch {range_spec}")
        return [
            [str(cell) for cell in row]
            for row in response.get("values", [])  # type: ignore[union-attr]
        ]


__all__ = [
    "GoogleSheetsClient",
    "SheetTab",
    "SheetsApiResponseError",
    "SheetsClientError",
    "VOCAB_COLUMNS",
    "a1_range",
    "build_sheets_service",
]
