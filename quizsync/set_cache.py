"""In-memory tab → set id cache owned by a single sync run."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Mapping, Optional, Set

from quizsync.metadata_store import RemoteId

logger = logging.getLogger(__name__)

MutationListener = Callable[[str, Optional[RemoteId]], None]


class SetIdCache:
    """Mapping of sync keys to Quizlet set ids.

    A ``None`` value marks an id that was invalidated because the set is gone.
    Every mutation is reported to ``listener`` before it returns.
    """

    def __init__(
        self,
        initial: Optional[Mapping[str, Optional[RemoteId]]] = None,
        *,
        listener: Optional[MutationListener] = None,
    ) -> None:
        self._values: Dict[str, Optional[RemoteId]] = dict(initial or {})
        self._touched: Set[str] = set()
        self._created: Set[str] = set()
        self._listener = listener
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[RemoteId]:
        with self._lock:
            self._touched.add(key)
            return self._values.get(key)

    def record(self, key: str, set_id: RemoteId) -> None:
        with self._lock:
            self._values[key] = set_id
            self._touched.add(key)
            self._created.add(key)
        if self._listener is not None:
            self._listener(key, set_id)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._values[key] = None
            self._touched.add(key)
        logger.debug("Invalidated cached set id for %s", key)
        if self._listener is not None:
            self._listener(key, None)

    def snapshot(self) -> Dict[str, Optional[RemoteId]]:
        with self._lock:
            return dict(self._values)

    @property
    def touched(self) -> Set[str]:
        with self._lock:
            return set(self._touched)

    @property
    def created(self) -> Set[str]:
        """Keys that received a newly minted id during this run."""

        with self._lock:
            return set(self._created)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


__all__ = ["MutationListener", "SetIdCache"]
