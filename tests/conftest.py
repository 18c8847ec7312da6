"""Shared fakes for the QuizSync test suite."""
from __future__ import annotations

import itertools
import sys
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from quizsync.quizlet_client import CreationSpec, RemoteError, SetNotFoundError, SyncPayload  # noqa: E402
from quizsync.sheets_client import SheetsApiResponseError, SheetTab  # noqa: E402


class FakeQuizletClient:
    """Records create/update calls; ``gone`` ids answer 404 on update."""

    def __init__(
        self,
        *,
        ids: Optional[Iterable[object]] = None,
        gone: Iterable[object] = (),
        failing_updates: Iterable[object] = (),
        fail_create: bool = False,
        slow_titles: Iterable[str] = (),
        create_delay: float = 0.0,
    ) -> None:
        self._ids = iter(ids) if ids is not None else (f"SET-{n}" for n in itertools.count(1))
        self.gone = set(gone)
        self.failing_updates = set(failing_updates)
        self.fail_create = fail_create
        self.slow_titles = set(slow_titles)
        self.create_delay = create_delay
        self.creates: List[CreationSpec] = []
        self.updates: List[Tuple[object, SyncPayload]] = []
        self._lock = threading.Lock()

    def create_set(self, spec: CreationSpec):
        if spec.title in self.slow_titles:
            time.sleep(self.create_delay)
        with self._lock:
            self.creates.append(spec)
            if self.fail_create:
                raise RemoteError("create rejected", 500)
            return next(self._ids)

    def update_set(self, set_id, payload: SyncPayload) -> None:
        with self._lock:
            self.updates.append((set_id, payload))
            if set_id in self.gone:
                raise SetNotFoundError(f"Set {set_id} no longer exists", 404)
            if set_id in self.failing_updates:
                raise RemoteError("server error", 500)

    def updated_ids(self) -> List[object]:
        return [set_id for set_id, _ in self.updates]


class FakeSheets:
    def __init__(
        self,
        tabs: Mapping[Tuple[int, str], Sequence[Sequence[str]]],
        *,
        failing_titles: Iterable[str] = (),
    ) -> None:
        self._tabs = [SheetTab(tab_id=tab_id, title=title) for tab_id, title in tabs]
        self._rows: Dict[str, List[List[str]]] = {
            title: [list(row) for row in rows] for (_, title), rows in tabs.items()
        }
        self.failing_titles = set(failing_titles)
        self.fetched: List[str] = []

    def list_tabs(self) -> List[SheetTab]:
        return list(self._tabs)

    def get_rows(self, title: str) -> List[List[str]]:
        self.fetched.append(title)
        if title in self.failing_titles:
            raise SheetsApiResponseError(f"Unable to fetch '{title}'!A:B")
        return [list(row) for row in self._rows[title]]


class FakeStore:
    def __init__(self, initial: Optional[Dict[str, Dict[str, object]]] = None) -> None:
        self.data: Dict[str, Dict[str, object]] = {key: dict(value) for key, value in (initial or {}).items()}
        self.loads: List[str] = []
        self.saves: List[Tuple[str, Dict[str, object]]] = []

    def load(self, collection_id: str) -> Dict[str, object]:
        self.loads.append(collection_id)
        return dict(self.data.setdefault(collection_id, {}))

    def save(self, collection_id: str, mapping: Mapping[str, object]) -> None:
        self.saves.append((collection_id, dict(mapping)))
        self.data[collection_id] = dict(mapping)


def fake_kana(romanized: str) -> str:
    table = {"neko": "ねこ", "inu": "いぬ", "tori": "とり", "sakana": "さかな"}
    return table.get(romanized.lower(), f"<{romanized}>")


@pytest.fixture
def quizlet() -> FakeQuizletClient:
    return FakeQuizletClient()


@pytest.fixture
def animal_sheets() -> FakeSheets:
    return FakeSheets(
        {
            (0, "Animals"): [["Neko", "cat"], ["inu", "dog"]],
            (1, "More animals"): [["tori", "bird"], ["sakana", "fish"], ["neko", "cat"]],
        }
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
