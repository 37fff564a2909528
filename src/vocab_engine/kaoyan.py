"""
Importer for word-book JSON-lines files (one nested record per line).

Each line looks like:

    {"wordRank": 1, "headWord": "cancel", "bookId": "KaoYan_1",
     "content": {"word": {"wordHead": "cancel", "wordId": "KaoYan_1_1",
        "content": {
            "usphone": "'kænsl", "ukphone": "'kænsl",
            "trans": [{"pos": "vt", "tranCn": "取消", "tranOther": "to decide ..."}],
            "sentence": {"sentences": [{"sContent": "...", "sCn": "..."}]},
            "syno": {"synos": [{"pos": "vt", "tran": "取消",
                                "hwds": [{"w": "call off"}]}]}}}}}

Accented Latin letters are folded to ASCII before decoding.  A line that is
not valid JSON or lacks a usable headword/translation is logged and skipped.

Usage:
    from vocab_engine.kaoyan import load_kaoyan

    store = load_kaoyan("data/KaoYan_1.json")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from vocab_engine.lexicon import (
    Definition,
    Difficulty,
    LexiconEntry,
    LexiconStore,
    MalformedRecordError,
    normalize_pos,
)
from vocab_engine.normalize import normalize


LOGGER = logging.getLogger(__name__)

_FOLD = str.maketrans({
    "é": "e", "ê": "e", "è": "e", "ë": "e",
    "à": "a", "â": "a", "ç": "c", "î": "i",
    "ï": "i", "ô": "o", "ù": "u", "û": "u",
    "ü": "u", "ÿ": "y",
})


def fold_accents(text: str) -> str:
    return text.translate(_FOLD)


def _word_content(raw: dict) -> dict:
    content = raw.get("content", {})
    if not isinstance(content, dict):
        return {}
    word = content.get("word", {})
    if not isinstance(word, dict):
        return {}
    inner = word.get("content", {})
    return inner if isinstance(inner, dict) else {}


def _list_of(value: Any, what: str) -> list:
    if not value and not isinstance(value, (int, float)):
        return []
    if not isinstance(value, list):
        raise MalformedRecordError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _group(content: dict, group: str, items: str) -> list[dict]:
    value = content.get(group)
    if isinstance(value, dict):
        seq = _list_of(value.get(items), f"{group}.{items}")
    else:
        seq = _list_of(value, group)
    return [v for v in seq if isinstance(v, dict)]


def parse_kaoyan_record(raw: Any) -> LexiconEntry:
    """Convert one decoded word-book record into a LexiconEntry."""
    if not isinstance(raw, dict):
        raise MalformedRecordError("record must be an object")
    headword = raw.get("headWord")
    if not isinstance(headword, str) or not normalize(headword):
        raise MalformedRecordError(f"missing or non-alphabetic headWord: {headword!r}")

    content = _word_content(raw)

    # synonyms become context keywords of the senses with the same POS
    synonyms: dict[str, set[str]] = {}
    for syno in _group(content, "syno", "synos"):
        pos = normalize_pos(syno.get("pos"))
        for hwd in _list_of(syno.get("hwds"), "syno.hwds"):
            w = hwd.get("w") if isinstance(hwd, dict) else None
            if isinstance(w, str) and w.strip():
                synonyms.setdefault(pos, set()).add(w.strip().lower())

    examples = tuple(
        s["sContent"].strip()
        for s in _group(content, "sentence", "sentences")
        if isinstance(s.get("sContent"), str) and s["sContent"].strip()
    )

    definitions: list[Definition] = []
    for tran in _list_of(content.get("trans"), "trans"):
        if not isinstance(tran, dict):
            continue
        meaning = tran.get("tranCn")
        if not isinstance(meaning, str) or not meaning.strip():
            continue
        other = tran.get("tranOther")
        pos = normalize_pos(tran.get("pos"))
        definitions.append(Definition(
            pos=pos,
            meaning=meaning.strip(),
            secondary_meaning=other.strip() if isinstance(other, str) and other.strip() else None,
            examples=examples if not definitions else (),
            context_keywords=frozenset(synonyms.get(pos, ())),
        ))
    if not definitions:
        raise MalformedRecordError(f"{headword!r}: no translations")

    phonetics = tuple(
        p.strip() for p in (content.get("usphone"), content.get("ukphone"))
        if isinstance(p, str) and p.strip()
    )
    tags = {raw["bookId"]} if isinstance(raw.get("bookId"), str) else set()

    return LexiconEntry(
        headword=headword,
        definitions=tuple(definitions),
        phonetics=tuple(dict.fromkeys(phonetics)),
        difficulty=Difficulty.ADVANCED,
        tags=frozenset(tags),
    )


def iter_kaoyan_lines(lines: Iterable[str], source: str = "word book") -> Iterable[tuple[int, Any]]:
    """Yield (line number, decoded record or None) for each non-blank line."""
    for lineno, line in enumerate(lines, 1):
        line = line.strip()
        if not line:
            continue
        try:
            yield lineno, json.loads(fold_accents(line))
        except json.JSONDecodeError as exc:
            LOGGER.warning("%s:%d: invalid JSON (%s)", source, lineno, exc.msg)
            yield lineno, None


def load_kaoyan(path: str | Path) -> LexiconStore:
    """Load a word-book JSON-lines file into a new LexiconStore."""
    path = Path(path)
    store = LexiconStore()
    entries: list[LexiconEntry] = []
    with path.open(encoding="utf-8-sig") as f:
        for lineno, raw in iter_kaoyan_lines(f, path.name):
            if raw is None:
                store.skipped.append((lineno, "invalid JSON"))
                continue
            try:
                entries.append(parse_kaoyan_record(raw))
            except ValueError as exc:
                LOGGER.warning("%s:%d: skipping: %s", path.name, lineno, exc)
                store.skipped.append((lineno, str(exc)))
    store.insert_many(entries)
    LOGGER.info("%s: loaded %d entries (%d skipped)", path.name, len(store), len(store.skipped))
    return store
