"""
Lexicon data model and the in-memory Lexicon Store.

Loads the bulk dictionary feed (a JSON array, a {"words": [...]} object, or
JSON lines) into a read-optimized map keyed by lower-cased headword.  A
record that fails to parse is logged and skipped; the rest of the feed
still loads.

Usage:
    from vocab_engine.lexicon import LexiconStore

    store = LexiconStore.from_file("data/dictionary.json")
    print(f"{len(store)} entries, {len(store.skipped)} skipped")

    entry = store.get("bank")
    for d in entry.definitions:
        print(d.pos, d.meaning)
"""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from dataclasses import dataclass, replace
from enum import IntEnum
from pathlib import Path
from typing import Any, Iterable, Iterator

from vocab_engine.normalize import normalize


LOGGER = logging.getLogger(__name__)


class MalformedRecordError(ValueError):
    """A single feed record could not be turned into a LexiconEntry."""


class Difficulty(IntEnum):
    BASIC = 1
    MEDIUM = 2
    ADVANCED = 3
    EXPERT = 4

    @classmethod
    def parse(cls, raw: Any) -> Difficulty:
        if raw is None:
            return cls.MEDIUM
        if isinstance(raw, bool):
            raise MalformedRecordError(f"invalid difficulty: {raw!r}")
        if isinstance(raw, int):
            try:
                return cls(raw)
            except ValueError:
                raise MalformedRecordError(f"difficulty out of range: {raw}") from None
        if isinstance(raw, str):
            key = raw.strip()
            if key.isdigit():
                return cls.parse(int(key))
            if key in _DIFFICULTY_LABELS:
                return _DIFFICULTY_LABELS[key]
            try:
                return cls[key.upper()]
            except KeyError:
                raise MalformedRecordError(f"unknown difficulty: {raw!r}") from None
        raise MalformedRecordError(f"invalid difficulty: {raw!r}")


# Chinese difficulty labels used by the app's feed
_DIFFICULTY_LABELS: dict[str, Difficulty] = {
    "基础": Difficulty.BASIC,
    "中等": Difficulty.MEDIUM,
    "高级": Difficulty.ADVANCED,
    "专家": Difficulty.EXPERT,
}

# Part-of-speech abbreviations -> normalized labels
_POS_MAP: dict[str, str] = {
    "n": "NOUN", "noun": "NOUN",
    "v": "VERB", "verb": "VERB", "vt": "VERB", "vi": "VERB",
    "adj": "ADJECTIVE", "a": "ADJECTIVE", "adjective": "ADJECTIVE",
    "adv": "ADVERB", "ad": "ADVERB", "adverb": "ADVERB",
    "prep": "PREPOSITION", "preposition": "PREPOSITION",
    "conj": "CONJUNCTION", "conjunction": "CONJUNCTION",
    "pron": "PRONOUN", "pronoun": "PRONOUN",
    "int": "INTERJECTION", "interj": "INTERJECTION", "interjection": "INTERJECTION",
    "art": "ARTICLE", "article": "ARTICLE",
    "aux": "AUXILIARY", "auxiliary": "AUXILIARY",
    "modal": "MODAL",
    "phr": "PHRASE", "phrase": "PHRASE",
    "num": "NUMERAL",
}


def normalize_pos(raw: str | None) -> str:
    """Map a raw part-of-speech label ('n.', 'vt', 'Adj') to a normalized one."""
    if not isinstance(raw, str) or not raw.strip():
        return "UNKNOWN"
    key = raw.strip().rstrip(".").lower()
    return _POS_MAP.get(key, raw.strip().rstrip(".").upper() or "UNKNOWN")


@dataclass(frozen=True, slots=True)
class Definition:
    """One sense of a headword."""

    pos: str
    meaning: str
    secondary_meaning: str | None = None
    examples: tuple[str, ...] = ()
    context_keywords: frozenset[str] = frozenset()

    def __post_init__(self):
        if not self.meaning or not self.meaning.strip():
            raise ValueError("definition meaning must be non-empty")
        object.__setattr__(self, "examples", tuple(self.examples))
        object.__setattr__(
            self, "context_keywords",
            frozenset(k.strip().lower() for k in self.context_keywords if k and k.strip()),
        )

    @property
    def text(self) -> str:
        """Meaning text used for keyword scoring (primary + secondary)."""
        if self.secondary_meaning:
            return f"{self.meaning} {self.secondary_meaning}"
        return self.meaning


@dataclass(frozen=True, slots=True)
class LexiconEntry:
    """A dictionary entry; the headword is always stored lower-cased."""

    headword: str
    definitions: tuple[Definition, ...]
    phonetics: tuple[str, ...] = ()
    frequency: int = 0
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: frozenset[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "headword", self.headword.strip().lower())
        object.__setattr__(self, "definitions", tuple(self.definitions))
        object.__setattr__(self, "phonetics", tuple(self.phonetics))
        object.__setattr__(self, "tags", frozenset(self.tags))

    @property
    def key(self) -> str:
        return self.headword

    @property
    def primary(self) -> Definition | None:
        return self.definitions[0] if self.definitions else None

    def with_additions(
        self,
        definitions: Iterable[Definition] = (),
        tags: Iterable[str] = (),
    ) -> LexiconEntry:
        """A copy with extra definitions appended and extra tags added."""
        return replace(
            self,
            definitions=self.definitions + tuple(definitions),
            tags=self.tags | frozenset(tags),
        )

    def __repr__(self) -> str:
        return (
            f"LexiconEntry({self.headword!r}, {len(self.definitions)} sense(s), "
            f"freq={self.frequency}, {self.difficulty.name})"
        )


# ── Feed record parsing ─────────────────────────────────────────────────────

def _pick(raw: dict, *names: str, default: Any = None) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return default


def _string_list(value: Any, what: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedRecordError(f"{what} must be a list of strings")
    return [v for v in value if v.strip()]


def parse_definition(raw: Any) -> Definition:
    if not isinstance(raw, dict):
        raise MalformedRecordError("definition must be an object")
    meaning = raw.get("meaning")
    if not isinstance(meaning, str) or not meaning.strip():
        raise MalformedRecordError("definition without a meaning")
    pos = _pick(raw, "partOfSpeech", "part_of_speech", "pos")
    if pos is not None and not isinstance(pos, str):
        raise MalformedRecordError("part of speech must be a string")
    secondary = _pick(raw, "englishMeaning", "secondaryMeaning", "secondary_meaning")
    if secondary is not None and not isinstance(secondary, str):
        raise MalformedRecordError("secondary meaning must be a string")
    return Definition(
        pos=normalize_pos(pos),
        meaning=meaning.strip(),
        secondary_meaning=secondary.strip() if secondary and secondary.strip() else None,
        examples=tuple(_string_list(raw.get("examples"), "examples")),
        context_keywords=frozenset(
            _string_list(_pick(raw, "contextKeywords", "context_keywords"), "context keywords")
        ),
    )


def parse_record(raw: Any) -> LexiconEntry:
    """Build a LexiconEntry from one feed record, or raise MalformedRecordError."""
    if not isinstance(raw, dict):
        raise MalformedRecordError(f"record must be an object, got {type(raw).__name__}")

    headword = _pick(raw, "word", "headword")
    if not isinstance(headword, str) or not normalize(headword):
        raise MalformedRecordError(f"missing or non-alphabetic headword: {headword!r}")

    raw_defs = raw.get("definitions")
    if not isinstance(raw_defs, list) or not raw_defs:
        raise MalformedRecordError(f"{headword!r}: no definitions")
    definitions = tuple(parse_definition(d) for d in raw_defs)

    frequency = raw.get("frequency", 0)
    if isinstance(frequency, bool) or not isinstance(frequency, int):
        raise MalformedRecordError(f"{headword!r}: frequency must be an integer")

    return LexiconEntry(
        headword=headword,
        definitions=definitions,
        phonetics=tuple(_string_list(_pick(raw, "phonetics", "phonetic"), "phonetics")),
        frequency=frequency,
        difficulty=Difficulty.parse(raw.get("difficulty")),
        tags=frozenset(_string_list(raw.get("tags"), "tags")),
    )


def read_feed(path: str | Path) -> list[Any]:
    """Read raw records from a JSON array, a {"words": [...]} object, or JSON lines.

    Raises OSError if the file cannot be read and ValueError if it is not
    JSON at all; individual JSON-lines rows that fail to decode are
    returned as None so the loader can report them.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8-sig")
    stripped = text.lstrip()
    if stripped.startswith("["):
        return json.loads(text)
    if stripped.startswith("{"):
        try:
            doc = json.loads(text)
        except json.JSONDecodeError:
            doc = None  # JSON lines starting with an object
        if isinstance(doc, dict):
            words = doc.get("words")
            if isinstance(words, list):
                return words
            return [doc]

    records: list[Any] = []
    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as exc:
            LOGGER.warning("%s:%d: invalid JSON (%s)", path.name, lineno, exc.msg)
            records.append(None)
    return records


# ── Store ───────────────────────────────────────────────────────────────────

class LexiconStore:
    """
    Headword -> LexiconEntry map, read-optimized.

    Writes are copy-on-write: insert() builds a new dict under a lock and
    swaps the reference, so readers never lock and never observe a
    half-finished write.  Iteration follows insertion order, which makes
    fuzzy-match tie-breaks reproducible across loads of the same feed.
    """

    def __init__(self, entries: Iterable[LexiconEntry] = ()):
        data: dict[str, LexiconEntry] = {}
        for entry in entries:
            data[entry.key] = entry
        self._entries = data
        self._write_lock = threading.Lock()
        self.skipped: list[tuple[int, str]] = []  # (record index, reason)

    @classmethod
    def from_file(cls, path: str | Path) -> LexiconStore:
        """Load a store from a feed file (see read_feed for the formats)."""
        path = Path(path)
        return cls.from_records(read_feed(path), source=path.name)

    @classmethod
    def from_records(cls, records: Iterable[Any], source: str = "feed") -> LexiconStore:
        store = cls()
        data: dict[str, LexiconEntry] = {}
        for index, raw in enumerate(records):
            if raw is None:
                store.skipped.append((index, "invalid JSON"))
                continue
            try:
                entry = parse_record(raw)
            except ValueError as exc:
                LOGGER.warning("%s: skipping record %d: %s", source, index, exc)
                store.skipped.append((index, str(exc)))
                continue
            data[entry.key] = entry
        store._entries = data
        LOGGER.info("%s: loaded %d entries (%d skipped)", source, len(data), len(store.skipped))
        return store

    # ── Lookup ───────────────────────────────────────────────────────────

    def get(self, headword: str) -> LexiconEntry | None:
        return self._entries.get(headword.lower())

    def all(self) -> Iterator[tuple[str, LexiconEntry]]:
        """(key, entry) pairs in insertion order, over a stable snapshot."""
        yield from self._entries.items()

    def keys(self) -> Iterator[str]:
        yield from self._entries.keys()

    def snapshot(self) -> dict[str, LexiconEntry]:
        """The current backing map; replaced, never mutated, by writers."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, headword: object) -> bool:
        return isinstance(headword, str) and headword.lower() in self._entries

    # ── Writes ───────────────────────────────────────────────────────────

    def insert(self, entry: LexiconEntry) -> None:
        """Insert or overwrite (last write wins)."""
        self.insert_many([entry])

    def insert_many(self, entries: Iterable[LexiconEntry]) -> None:
        with self._write_lock:
            data = dict(self._entries)
            for entry in entries:
                data[entry.key] = entry
            self._entries = data

    def merge(self, other: LexiconStore) -> None:
        """Insert every entry of `other`; its entries shadow ours."""
        self.insert_many(entry for _, entry in other.all())
        self.skipped.extend(other.skipped)

    def clear(self) -> None:
        with self._write_lock:
            self._entries = {}
            self.skipped = []

    # ── Browsing ─────────────────────────────────────────────────────────

    def search(self, query: str, limit: int = 20) -> list[LexiconEntry]:
        """Entries whose headword starts with / contains the query, or whose
        meaning mentions it, most relevant first."""
        q = query.strip().lower()
        if not q:
            return []
        hits: list[tuple[float, int, LexiconEntry]] = []
        for position, (key, entry) in enumerate(self._entries.items()):
            if q in key or any(q in d.text.lower() for d in entry.definitions):
                hits.append((_search_score(entry, q), position, entry))
        hits.sort(key=lambda h: (-h[0], h[1]))
        return [entry for _, _, entry in hits[:limit]]

    def by_difficulty(self, difficulty: Difficulty, limit: int = 50) -> list[LexiconEntry]:
        out = [e for e in self._entries.values() if e.difficulty == difficulty]
        return out[:limit]

    def by_tag(self, tag: str) -> list[LexiconEntry]:
        return [e for e in self._entries.values() if tag in e.tags]

    def summary(self) -> str:
        entries = self._entries
        senses = sum(len(e.definitions) for e in entries.values())
        lines = [
            f"Entries:        {len(entries)}",
            f"Senses:         {senses}",
            f"Skipped:        {len(self.skipped)}",
            "",
            "Difficulty breakdown:",
        ]
        counts = Counter(e.difficulty for e in entries.values())
        for level in Difficulty:
            lines.append(f"  {level.name:10s} {counts.get(level, 0):7d}")
        return "\n".join(lines)


def _search_score(entry: LexiconEntry, query: str) -> float:
    score = 0.0
    if entry.headword == query:
        score += 100.0
    elif entry.headword.startswith(query):
        score += 50.0
    elif query in entry.headword:
        score += 25.0
    score += entry.frequency * 0.1
    # easier words first
    score += 5 - int(entry.difficulty)
    return score
