"""Derive romaji/kana vocabulary entries from spreadsheet rows."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import jaconv

Transliterator = Callable[[str], str]


@dataclass(slots=True, frozen=True)
class VocabEntry:
    romanized_term: str
    definition: str
    native_term: str


@dataclass(slots=True)
class TabRecord:
    tab_id: int
    tab_name: str
    rows: List[List[str]]


# "nn" before a vowel or "y" is ん followed by a n-row syllable (minna → みんな).
_DOUBLE_N = re.compile(r"nn(?=[aiueoy])")
_CASE_RUNS = re.compile(r"[A-Z]+|[^A-Z]+")
_TRAILING_CONSONANTS = re.compile(r"[B-DF-HJ-NP-TV-Z]+$")


def _romaji_to_hiragana(text: str) -> str:
    return jaconv.alphabet2kana(_DOUBLE_N.sub("んn", text.lower()))


def _case_chunks(text: str) -> List[Tuple[str, bool]]:
    """Split ``text`` into ``(chunk, katakana)`` pairs by letter case.

    Trailing capital consonants that start a lowercase syllable (the ``N`` of
    ``Neko``) belong to the lowercase chunk.
    """

    chunks: List[Tuple[str, bool]] = []
    carry = ""
    runs = _CASE_RUNS.findall(text)
    for index, run in enumerate(runs):
        if not run.isupper():
            chunks.append((carry + run, False))
            carry = ""
            continue
        following = runs[index + 1] if index + 1 < len(runs) else ""
        if following[:1].islower():
            match = _TRAILING_CONSONANTS.search(run)
            if match:
                carry = match.group(0)
                run = run[: match.start()]
        if run:
            chunks.append((run, True))
    if carry:
        chunks.append((carry, False))
    return chunks


def to_kana(romanized: str) -> str:
    """Transliterate romaji into kana.

    Lowercase romaji becomes hiragana and uppercase romaji becomes katakana,
    so ``TEREBI`` gives テレビ while ``neko`` gives ねこ.
    """

    parts = []
    for chunk, katakana in _case_chunks(romanized):
        kana = _romaji_to_hiragana(chunk)
        parts.append(jaconv.hira2kata(kana) if katakana else kana)
    return "".join(parts)


def derive(rows: Sequence[Sequence[str]], transliterate: Transliterator = to_kana) -> List[VocabEntry]:
    """Return one :class:`VocabEntry` per row, in row order.

    Column A holds the romaji term, column B the definition. The romaji term is
    lowercased and the raw cell is transliterated, so capitals survive as
    katakana. A row without a definition raises :class:`IndexError`.
    """

    entries: List[VocabEntry] = []
    for row in rows:
        term = str(row[0])
        definition = str(row[1])
        entries.append(
            VocabEntry(
                romanized_term=term.lower(),
                definition=definition,
                native_term=transliterate(term),
            )
        )
    return entries


__all__ = ["TabRecord", "Transliterator", "VocabEntry", "derive", "to_kana"]
