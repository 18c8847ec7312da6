"""Get-or-create resolution and self-healing updates of Quizlet sets.

:class:`SetResolver` is the only place new set ids are minted. It consults
the run's :class:`~quizsync.set_cache.SetIdCache` first, so a key that
already has an id never causes a create request.

:class:`SetSynchronizer` overwrites a resolved set with a full payload. When
Quizlet answers 404/410 the cached id is stale: it is invalidated, a new set
is created and the update is retried exactly once. Each upsert walks the
state machine below; any other path is a programming error.

::

    UNRESOLVED -> RESOLVED -> UPDATED
                  RESOLVED -> INVALIDATED -> RECREATED -> UPDATED
    (any non-terminal state) -> FAILED
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple

from quizsync.quizlet_client import (
    CreationSpec,
    QuizletClient,
    RemoteError,
    RemoteId,
    SetNotFoundError,
    SyncPayload,
)
from quizsync.set_cache import SetIdCache

logger = logging.getLogger(__name__)


class UpsertState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    INVALIDATED = "invalidated"
    RECREATED = "recreated"
    UPDATED = "updated"
    FAILED = "failed"


TRANSITIONS: Dict[UpsertState, FrozenSet[UpsertState]] = {
    UpsertState.UNRESOLVED: frozenset({UpsertState.RESOLVED, UpsertState.FAILED}),
    UpsertState.RESOLVED: frozenset({UpsertState.UPDATED, UpsertState.INVALIDATED, UpsertState.FAILED}),
    UpsertState.INVALIDATED: frozenset({UpsertState.RECREATED, UpsertState.FAILED}),
    UpsertState.RECREATED: frozenset({UpsertState.UPDATED, UpsertState.FAILED}),
    UpsertState.UPDATED: frozenset(),
    UpsertState.FAILED: frozenset(),
}


class UpsertTracker:
    """Records the states one upsert passes through."""

    def __init__(self, key: str) -> None:
        self.key = key
        self.history: List[UpsertState] = [UpsertState.UNRESOLVED]

    @property
    def state(self) -> UpsertState:
        return self.history[-1]

    @property
    def terminal(self) -> bool:
        return not TRANSITIONS[self.state]

    def advance(self, state: UpsertState) -> None:
        if state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal upsert transition for {self.key}: {self.state.name} -> {state.name}")
        self.history.append(state)


@dataclass(slots=True, frozen=True)
class UpsertOutcome:
    key: str
    set_id: RemoteId
    history: Tuple[UpsertState, ...]

    @property
    def state(self) -> UpsertState:
        return self.history[-1]

    @property
    def healed(self) -> bool:
        return UpsertState.INVALIDATED in self.history


class SetResolver:
    def __init__(self, client: QuizletClient) -> None:
        self._client = client

    async def get_or_create(self, cache: SetIdCache, key: str, spec: CreationSpec) -> RemoteId:
        """Return the cached set id for ``key`` or create a new set.

        A failed create raises :class:`RemoteError` and leaves ``key`` unset.
        """

        set_id = cache.get(key)
        if set_id not in (None, ""):
            logger.debug("Found existing set id %s for %s", set_id, key)
            return set_id  # type: ignore[return-value]

        logger.info("Creating new set for %s", key)
        set_id = await asyncio.to_thread(self._client.create_set, spec)
        cache.record(key, set_id)
        logger.info("Created set %s for %s", set_id, key)
        return set_id


class SetSynchronizer:
    def __init__(self, client: QuizletClient, resolver: SetResolver, *, visibility: str = "public") -> None:
        self._client = client
        self._resolver = resolver
        self._visibility = visibility

    async def _update(self, key: str, set_id: RemoteId, payload: SyncPayload) -> None:
        logger.info("Updating set %s: %s (%s cards)", set_id, key, len(payload.terms))
        await asyncio.to_thread(self._client.update_set, set_id, payload)
        logger.info("Updated set %s", set_id)

    async def upsert(self, cache: SetIdCache, key: str, payload: SyncPayload) -> UpsertOutcome:
        """Overwrite the set for ``key`` with ``payload``, healing a stale id once."""

        spec = CreationSpec.from_payload(payload, self._visibility)
        tracker = UpsertTracker(key)
        try:
            set_id = await self._resolver.get_or_create(cache, key, spec)
            tracker.advance(UpsertState.RESOLVED)
            try:
                await self._update(key, set_id, payload)
            except SetNotFoundError:
                logger.warning("Set %s for %s not found; clearing cached id and recreating", set_id, key)
                cache.invalidate(key)
                tracker.advance(UpsertState.INVALIDATED)
                set_id = await self._resolver.get_or_create(cache, key, spec)
                tracker.advance(UpsertState.RECREATED)
                try:
                    await self._update(key, set_id, payload)
                except SetNotFoundError as exc:
                    raise RemoteError(
                        f"Recreated set {set_id} for {key} was not found on retry", exc.status_code
                    ) from exc
            tracker.advance(UpsertState.UPDATED)
        except RemoteError:
            tracker.advance(UpsertState.FAILED)
            logger.error("Upsert of %s failed after %s", key, " -> ".join(s.name for s in tracker.history))
            raise
        return UpsertOutcome(key=key, set_id=set_id, history=tuple(tracker.history))


__all__ = [
    "SetResolver",
    "SetSynchronizer",
    "TRANSITIONS",
    "UpsertOutcome",
    "UpsertState",
    "UpsertTracker",
]
