"""Run a full spreadsheet → Quizlet synchronisation.

A run loads the set id mapping once, fans out over every tab concurrently
and saves the mapping once at the end. What happens to ids minted by a run
that fails part way depends on the persistence mode:

``all-or-nothing``
    Nothing is saved. Sets created before the failure stay on Quizlet but
    the next run will not know about them.

``incremental``
    Each mutation is journaled locally as it happens and replayed on the
    next run, so created sets are always reused.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from quizsync import drive_api
from quizsync.google_credentials import build_credentials
from quizsync.id_journal import IdJournal
from quizsync.metadata_store import MetadataStore
from quizsync.quizlet_client import QuizletClient
from quizsync.set_cache import SetIdCache
from quizsync.sets import SetResolver, SetSynchronizer
from quizsync.sheets_client import GoogleSheetsClient, SheetTab
from quizsync.tabs import PayloadOptions, TabProcessor, TabResult, gather_settled
from settings import SyncSettings

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    collection_id: str
    tabs: List[TabResult] = field(default_factory=list)
    keys: Tuple[str, ...] = ()
    created: Tuple[str, ...] = ()

    @property
    def healed(self) -> Tuple[str, ...]:
        return tuple(outcome.key for tab in self.tabs for outcome in tab.outcomes if outcome.healed)

    @property
    def skipped_tabs(self) -> Tuple[str, ...]:
        return tuple(tab.tab.title for tab in self.tabs if tab.skipped)


class Orchestrator:
    def __init__(
        self,
        store: MetadataStore,
        sheets: GoogleSheetsClient,
        processor: TabProcessor,
        *,
        journal: Optional[IdJournal] = None,
    ) -> None:
        self._store = store
        self._sheets = sheets
        self._processor = processor
        self._journal = journal

    async def _load_cache(self, collection_id: str) -> SetIdCache:
        mapping = await asyncio.to_thread(self._store.load, collection_id)
        if self._journal is None:
            return SetIdCache(mapping)

        replayed = self._journal.replay(collection_id)
        if replayed:
            logger.info("Replaying %s journaled set ids for %s", len(replayed), collection_id)
            mapping.update(replayed)
        journal = self._journal
        return SetIdCache(mapping, listener=lambda key, set_id: journal.append(collection_id, key, set_id))

    async def run(self, collection_id: str) -> RunReport:
        cache = await self._load_cache(collection_id)
        tabs: List[SheetTab] = await asyncio.to_thread(self._sheets.list_tabs)
        logger.info("Synchronising %s tabs of %s", len(tabs), collection_id)

        results = await gather_settled(*(self._processor.process(cache, tab) for tab in tabs))

        await asyncio.to_thread(self._store.save, collection_id, cache.snapshot())
        if self._journal is not None:
            self._journal.clear(collection_id)

        report = RunReport(
            collection_id=collection_id,
            tabs=list(results),
            keys=tuple(sorted(cache.touched)),
            created=tuple(sorted(cache.created)),
        )
        logger.info(
            "Synchronised %s tabs (%s sets, %s created, %s healed, %s tabs skipped)",
            len(report.tabs),
            len(report.keys),
            len(report.created),
            len(report.healed),
            len(report.skipped_tabs),
        )
        return report


def build_orchestrator(settings: SyncSettings, collection_id: str) -> Orchestrator:
    """Wire the Google and Quizlet clients described by ``settings``."""

    credentials = build_credentials(
        Path(settings.google_token_path).expanduser(),
        settings.client_id,
        settings.client_secret,
    )
    store = MetadataStore(drive_api.build_drive_service(credentials))
    sheets = GoogleSheetsClient.from_credentials(collection_id, credentials)
    client = QuizletClient(settings.access_token, timeout=settings.request_timeout)
    synchronizer = SetSynchronizer(client, SetResolver(client), visibility=settings.visibility)
    processor = TabProcessor(
        sheets,
        synchronizer,
        options=PayloadOptions(
            romanized_lang=settings.romanized_lang,
            native_lang=settings.native_lang,
            definitions_lang=settings.definitions_lang,
            native_title_suffix=settings.native_title_suffix,
        ),
    )
    journal = IdJournal(settings.resolved_journal_path()) if settings.incremental else None
    return Orchestrator(store, sheets, processor, journal=journal)


def run_sync(settings: SyncSettings, collection_id: str) -> RunReport:
    """Blocking entry point used by the command line tool."""

    orchestrator = build_orchestrator(settings, collection_id)
    return asyncio.run(orchestrator.run(collection_id))


__all__ = ["Orchestrator", "RunReport", "build_orchestrator", "run_sync"]
