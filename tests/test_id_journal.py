from pathlib import Path

from quizsync.id_journal import IdJournal
from quizsync.set_cache import SetIdCache


def test_replay_returns_latest_value_per_key(tmp_path: Path) -> None:
    journal = IdJournal(tmp_path / "nested" / "journal.jsonl")
    journal.append("sheet-1", "0", 100)
    journal.append("sheet-1", "0", None)
    journal.append("sheet-1", "0", 101)
    journal.append("sheet-1", "0:kana", 200)
    journal.append("sheet-2", "0", 999)

    assert journal.replay("sheet-1") == {"0": 101, "0:kana": 200}
    assert journal.replay("sheet-2") == {"0": 999}
    assert journal.replay("unknown") == {}


def test_clear_keeps_other_collections(tmp_path: Path) -> None:
    journal = IdJournal(tmp_path / "journal.jsonl")
    journal.append("sheet-1", "0", 100)
    journal.append("sheet-2", "0", 999)

    journal.clear("sheet-1")
    assert journal.replay("sheet-1") == {}
    assert journal.replay("sheet-2") == {"0": 999}

    journal.clear("sheet-2")
    assert not journal.path.exists()


def test_corrupt_lines_are_skipped(tmp_path: Path) -> None:
    journal = IdJournal(tmp_path / "journal.jsonl")
    journal.append("sheet-1", "0", 100)
    with journal.path.open("a", encoding="utf-8") as handle:
        handle.write("{truncated\n\n[1, 2]\n")
    journal.append("sheet-1", "1", 101)

    assert journal.replay("sheet-1") == {"0": 100, "1": 101}


def test_cache_listener_feeds_journal(tmp_path: Path) -> None:
    journal = IdJournal(tmp_path / "journal.jsonl")
    cache = SetIdCache({"0": 1}, listener=lambda key, set_id: journal.append("sheet-1", key, set_id))

    cache.get("0")
    cache.invalidate("0")
    cache.record("0", 2)
    cache.record("0:kana", 3)

    assert journal.replay("sheet-1") == {"0": 2, "0:kana": 3}
    assert cache.touched == {"0", "0:kana"}
    assert cache.created == {"0", "0:kana"}
    assert cache.snapshot() == {"0": 2, "0:kana": 3}
