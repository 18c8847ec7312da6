from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import FakeQuizletClient, FakeSheets, FakeStore, fake_kana
from quizsync.id_journal import IdJournal
from quizsync.orchestrator import Orchestrator
from quizsync.quizlet_client import RemoteError
from quizsync.sets import SetResolver, SetSynchronizer
from quizsync.sheets_client import SheetsApiResponseError
from quizsync.tabs import TabProcessor

SHEET_ID = "sheet-123"


def _orchestrator(
    store: FakeStore,
    sheets: FakeSheets,
    client: FakeQuizletClient,
    journal: IdJournal | None = None,
) -> Orchestrator:
    synchronizer = SetSynchronizer(client, SetResolver(client))
    processor = TabProcessor(sheets, synchronizer, transliterate=fake_kana)
    return Orchestrator(store, sheets, processor, journal=journal)


def test_run_creates_sets_and_saves_mapping_once(store: FakeStore, animal_sheets: FakeSheets) -> None:
    client = FakeQuizletClient()

    report = asyncio.run(_orchestrator(store, animal_sheets, client).run(SHEET_ID))

    assert store.loads == [SHEET_ID]
    assert len(store.saves) == 1
    saved = store.saves[0][1]
    assert set(saved) == {"0", "0:kana", "1", "1:kana"}
    assert all(saved.values())
    assert set(report.keys) == set(saved)
    assert set(report.created) == set(saved)
    assert len(client.creates) == 4
    assert len(client.updates) == 4


def test_second_run_reuses_cached_sets(store: FakeStore, animal_sheets: FakeSheets) -> None:
    first = FakeQuizletClient()
    asyncio.run(_orchestrator(store, animal_sheets, first).run(SHEET_ID))
    saved_after_first = dict(store.data[SHEET_ID])

    second = FakeQuizletClient(ids=["UNEXPECTED"])
    report = asyncio.run(_orchestrator(store, animal_sheets, second).run(SHEET_ID))

    assert second.creates == []
    assert sorted(second.updated_ids()) == sorted(saved_after_first.values())
    assert store.data[SHEET_ID] == saved_after_first
    assert report.created == ()


def test_run_heals_deleted_set(animal_sheets: FakeSheets) -> None:
    store = FakeStore({SHEET_ID: {"0": "OLD_ID", "0:kana": "K0", "1": "R1", "1:kana": "K1"}})
    client = FakeQuizletClient(ids=["NEW_ID"], gone={"OLD_ID"})

    report = asyncio.run(_orchestrator(store, animal_sheets, client).run(SHEET_ID))

    assert len(client.creates) == 1
    assert store.saves[-1][1]["0"] == "NEW_ID"
    assert report.healed == ("0",)


def test_tab_failure_aborts_save(store: FakeStore) -> None:
    sheets = FakeSheets(
        {(0, "Animals"): [["neko", "cat"]], (1, "Broken"): [["inu", "dog"]]},
        failing_titles={"Broken"},
    )
    client = FakeQuizletClient()

    with pytest.raises(SheetsApiResponseError):
        asyncio.run(_orchestrator(store, sheets, client).run(SHEET_ID))

    assert store.saves == []


def test_remote_failure_aborts_save(animal_sheets: FakeSheets) -> None:
    store = FakeStore({SHEET_ID: {"0": "R0", "0:kana": "K0", "1": "R1", "1:kana": "K1"}})
    client = FakeQuizletClient(failing_updates={"K1"})

    with pytest.raises(RemoteError):
        asyncio.run(_orchestrator(store, animal_sheets, client).run(SHEET_ID))

    assert store.saves == []


def test_incremental_mode_journals_ids_from_failed_run(tmp_path: Path) -> None:
    journal = IdJournal(tmp_path / "journal.jsonl")
    store = FakeStore()
    sheets = FakeSheets(
        {(0, "Animals"): [["neko", "cat"]], (1, "Birds"): [["tori", "bird"]]},
    )
    failing = FakeQuizletClient(failing_updates={"SET-4"})

    with pytest.raises(RemoteError):
        asyncio.run(_orchestrator(store, sheets, failing, journal).run(SHEET_ID))

    assert store.saves == []
    journaled = journal.replay(SHEET_ID)
    assert len(journaled) == 4
    assert set(journaled.values()) == {"SET-1", "SET-2", "SET-3", "SET-4"}

    retry = FakeQuizletClient(ids=["UNEXPECTED"])
    report = asyncio.run(_orchestrator(store, sheets, retry, journal).run(SHEET_ID))

    assert retry.creates == []
    assert store.saves[-1][1] == journaled
    assert report.created == ()
    assert journal.replay(SHEET_ID) == {}


def test_empty_tab_is_skipped_and_reported(store: FakeStore) -> None:
    sheets = FakeSheets({(0, "Animals"): [["neko", "cat"]], (5, "Draft"): []})
    client = FakeQuizletClient()

    report = asyncio.run(_orchestrator(store, sheets, client).run(SHEET_ID))

    assert report.skipped_tabs == ("Draft",)
    assert set(store.saves[0][1]) == {"0", "0:kana"}


def test_failed_run_waits_for_in_flight_creates_before_raising(tmp_path: Path) -> None:
    journal = IdJournal(tmp_path / "journal.jsonl")
    store = FakeStore({SHEET_ID: {"0": "R0", "0:kana": "K0"}})
    sheets = FakeSheets({(0, "Fast"): [["neko", "cat"]], (1, "Slow"): [["inu", "dog"]]})
    client = FakeQuizletClient(
        failing_updates={"R0"},
        slow_titles={"Slow", "Slow (Kana)"},
        create_delay=0.3,
    )

    with pytest.raises(RemoteError):
        asyncio.run(_orchestrator(store, sheets, client, journal).run(SHEET_ID))

    assert store.saves == []
    assert len(client.creates) == 2
    journaled = journal.replay(SHEET_ID)
    assert set(journaled) == {"1", "1:kana"}
    assert set(journaled.values()) == {"SET-1", "SET-2"}
