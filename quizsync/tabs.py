"""Synchronise one spreadsheet tab into its romaji and kana Quizlet sets."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from quizsync.quizlet_client import SyncPayload
from quizsync.set_cache import SetIdCache
from quizsync.sets import SetSynchronizer, UpsertOutcome
from quizsync.sheets_client import GoogleSheetsClient, SheetTab
from quizsync.vocab import TabRecord, Transliterator, VocabEntry, derive, to_kana

logger = logging.getLogger(__name__)

NATIVE_KEY_SUFFIX = ":kana"


def sync_key(tab_id: int) -> str:
    return str(tab_id)


def native_sync_key(tab_id: int) -> str:
    return f"{tab_id}{NATIVE_KEY_SUFFIX}"


@dataclass(slots=True, frozen=True)
class PayloadOptions:
    romanized_lang: str = "ja-ro"
    native_lang: str = "ja"
    definitions_lang: str = "en"
    native_title_suffix: str = " (Kana)"


@dataclass(slots=True, frozen=True)
class TabResult:
    tab: SheetTab
    row_count: int
    outcomes: Tuple[UpsertOutcome, ...] = ()

    @property
    def skipped(self) -> bool:
        return not self.outcomes


def build_payloads(
    tab_name: str,
    entries: Sequence[VocabEntry],
    options: PayloadOptions = PayloadOptions(),
) -> Tuple[SyncPayload, SyncPayload]:
    """Return the romaji and kana payloads; both share one definitions tuple."""

    definitions = tuple(entry.definition for entry in entries)
    romanized = SyncPayload(
        title=tab_name,
        lang_terms=options.romanized_lang,
        lang_definitions=options.definitions_lang,
        terms=tuple(entry.romanized_term for entry in entries),
        definitions=definitions,
    )
    native = SyncPayload(
        title=f"{tab_name}{options.native_title_suffix}",
        lang_terms=options.native_lang,
        lang_definitions=options.definitions_lang,
        terms=tuple(entry.native_term for entry in entries),
        definitions=definitions,
    )
    return romanized, native


async def gather_settled(*awaitables):
    """Await every awaitable before raising the first failure.

    Work that is already in flight, such as a set being created in a worker
    thread, still gets recorded in the cache when a sibling fails.
    """

    results = await asyncio.gather(*awaitables, return_exceptions=True)
    failures = [result for result in results if isinstance(result, BaseException)]
    if failures:
        for extra in failures[1:]:
            logger.error("Another task failed in the same batch: %s", extra)
        raise failures[0]
    return list(results)


class TabProcessor:
    def __init__(
        self,
        sheets: GoogleSheetsClient,
        synchronizer: SetSynchronizer,
        *,
        options: Optional[PayloadOptions] = None,
        transliterate: Transliterator = to_kana,
    ) -> None:
        self._sheets = sheets
        self._synchronizer = synchronizer
        self._options = options or PayloadOptions()
        self._transliterate = transliterate

    async def fetch(self, tab: SheetTab) -> TabRecord:
        rows = await asyncio.to_thread(self._sheets.get_rows, tab.title)
        return TabRecord(tab_id=tab.tab_id, tab_name=tab.title, rows=rows)

    async def process(self, cache: SetIdCache, tab: SheetTab) -> TabResult:
        record = await self.fetch(tab)
        if not record.rows:
            logger.warning("Tab %r (%s) has no rows; skipping", record.tab_name, record.tab_id)
            return TabResult(tab=tab, row_count=0)

        entries = derive(record.rows, self._transliterate)
        logger.debug("Tab %r: %s vocabulary entries", record.tab_name, len(entries))
        romanized, native = build_payloads(record.tab_name, entries, self._options)

        outcomes = await gather_settled(
            self._synchronizer.upsert(cache, sync_key(record.tab_id), romanized),
            self._synchronizer.upsert(cache, native_sync_key(record.tab_id), native),
        )
        return TabResult(tab=tab, row_count=len(entries), outcomes=tuple(outcomes))


__all__ = [
    "NATIVE_KEY_SUFFIX",
    "PayloadOptions",
    "TabProcessor",
    "TabResult",
    "build_payloads",
    "gather_settled",
    "native_sync_key",
    "sync_key",
]
