"""JSON lines journal of set ids resolved during a run.

Used by the ``incremental`` persistence mode: every id minted or invalidated
is appended immediately, so a run that fails before the final metadata save
does not orphan the Quizlet sets it created. The next run replays the
journal over the mapping loaded from Drive.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from quizsync.metadata_store import RemoteId

logger = logging.getLogger(__name__)


class IdJournal:
    """Append-only record of ``(collection, key, set_id)`` mutations."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        if self._path.parent and not self._path.parent.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, collection_id: str, key: str, set_id: Optional[RemoteId]) -> None:
        line = json.dumps({"collection": collection_id, "key": key, "set_id": set_id}, ensure_ascii=False)
        with self._lock:
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(line)
                handle.write("\n")

    def _read_entries(self) -> List[Mapping[str, object]]:
        with self._lock:
            if not self._path.exists():
                return []
            with self._path.open("r", encoding="utf-8") as handle:
                lines = handle.readlines()

        entries: List[Mapping[str, object]] = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping corrupt journal line in %s", self._path)
                continue
            if isinstance(payload, dict) and isinstance(payload.get("key"), str):
                entries.append(payload)
        return entries

    def replay(self, collection_id: str) -> Dict[str, Optional[RemoteId]]:
        """Return the latest journaled value of each key for ``collection_id``."""

        replayed: Dict[str, Optional[RemoteId]] = {}
        for entry in self._read_entries():
            if entry.get("collection") != collection_id:
                continue
            replayed[str(entry["key"])] = entry.get("set_id")  # type: ignore[assignment]
        return replayed

    def clear(self, collection_id: str) -> None:
        """Drop the entries of ``collection_id``, keeping other collections."""

        remaining = [entry for entry in self._read_entries() if entry.get("collection") != collection_id]
        with self._lock:
            if not remaining:
                try:
                    self._path.unlink()
                except FileNotFoundError:
                    pass
                return
            with self._path.open("w", encoding="utf-8") as handle:
                for entry in remaining:
                    handle.write(json.dumps(entry, ensure_ascii=False))
                    handle.write("\n")


__all__ = ["IdJournal"]
