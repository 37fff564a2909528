"""Tests for the word-book importer (kaoyan.py)."""

import json
from pathlib import Path

import pytest

from vocab_engine.kaoyan import fold_accents, iter_kaoyan_lines, load_kaoyan, parse_kaoyan_record
from vocab_engine.lexicon import Difficulty, MalformedRecordError


def _record(head="cancel", trans=None, **content) -> dict:
    if trans is None:
        trans = [{"pos": "vt", "tranCn": "取消", "tranOther": "to decide that something will not happen"}]
    return {
        "wordRank": 1,
        "headWord": head,
        "bookId": "KaoYan_1",
        "content": {"word": {"wordHead": head, "content": {"trans": trans, **content}}},
    }


# ── parse_kaoyan_record ───────────────────────────────────────────────────────

def test_parse_basic():
    entry = parse_kaoyan_record(_record(usphone="'kænsl", ukphone="'kænsl"))
    assert entry.headword == "cancel"
    assert entry.difficulty is Difficulty.ADVANCED
    assert entry.tags == {"KaoYan_1"}
    assert entry.phonetics == ("'kænsl",)
    d = entry.primary
    assert d.pos == "VERB"
    assert d.meaning == "取消"
    assert d.secondary_meaning.startswith("to decide")


def test_parse_synonyms_become_keywords():
    raw = _record(syno={"synos": [{"pos": "vt", "tran": "取消", "hwds": [{"w": "Call off"}, {"w": "abolish"}]}]})
    assert parse_kaoyan_record(raw).primary.context_keywords == {"call off", "abolish"}


def test_parse_synonyms_only_for_matching_pos():
    trans = [{"pos": "vt", "tranCn": "取消"}, {"pos": "n", "tranCn": "取消令"}]
    raw = _record(trans=trans, syno={"synos": [{"pos": "n", "hwds": [{"w": "annulment"}]}]})
    entry = parse_kaoyan_record(raw)
    assert entry.definitions[0].context_keywords == frozenset()
    assert entry.definitions[1].context_keywords == {"annulment"}


def test_parse_examples_attach_to_first_sense():
    trans = [{"pos": "vt", "tranCn": "取消"}, {"pos": "n", "tranCn": "取消令"}]
    raw = _record(trans=trans, sentence={"sentences": [{"sContent": " The game was cancelled. "}]})
    entry = parse_kaoyan_record(raw)
    assert entry.definitions[0].examples == ("The game was cancelled.",)
    assert entry.definitions[1].examples == ()


def test_parse_skips_empty_translations():
    trans = [{"pos": "vt", "tranCn": ""}, "junk", {"pos": "n", "tranCn": "取消令"}]
    entry = parse_kaoyan_record(_record(trans=trans))
    assert [d.meaning for d in entry.definitions] == ["取消令"]


@pytest.mark.parametrize("raw", [
    [],
    {"headWord": ""},
    {"headWord": "cancel"},
    _record(trans=[]),
    _record(trans=5),
    _record(sentence={"sentences": 5}),
    _record(sentence="not a group"),
    _record(syno={"synos": 5}),
    _record(syno={"synos": [{"pos": "vt", "hwds": 5}]}),
])
def test_parse_malformed(raw):
    with pytest.raises(MalformedRecordError):
        parse_kaoyan_record(raw)


# ── Line reading ──────────────────────────────────────────────────────────────

def test_fold_accents():
    assert fold_accents("naïve café") == "naive cafe"


def test_iter_lines_reports_bad_json():
    lines = ['{"a": 1}', "", "{nope"]
    assert list(iter_kaoyan_lines(lines)) == [(1, {"a": 1}), (3, None)]


def test_load_kaoyan(tmp_path):
    p = tmp_path / "KaoYan_1.json"
    lines = [
        json.dumps(_record("cancel"), ensure_ascii=False),
        "{broken",
        json.dumps({"headWord": "empty"}),
        json.dumps(_record("naïve", trans=[{"pos": "adj", "tranCn": "天真的"}]), ensure_ascii=False),
    ]
    p.write_text("\n".join(lines), encoding="utf-8")

    store = load_kaoyan(p)
    assert len(store) == 2
    assert "naive" in store
    assert [n for n, _ in store.skipped] == [2, 3]


def test_load_kaoyan_skips_wrongly_typed_record(tmp_path):
    p = tmp_path / "KaoYan_1.json"
    lines = [json.dumps(_record("cancel"), ensure_ascii=False), json.dumps(_record("abolish", trans=5))]
    p.write_text("\n".join(lines), encoding="utf-8")

    store = load_kaoyan(p)
    assert "cancel" in store
    assert "abolish" not in store
    assert [n for n, _ in store.skipped] == [2]


def test_load_kaoyan_missing(tmp_path):
    with pytest.raises(OSError):
        load_kaoyan(tmp_path / "missing.json")


# ── Integration (sample data) ─────────────────────────────────────────────────
# Skipped if the sample files are missing.


def _find_data(filename: str) -> Path | None:
    """Look for data files in common locations."""
    for p in [Path("data") / filename, Path("../data") / filename]:
        if p.exists():
            return p
    return None


def test_sample_word_book_loads():
    p = _find_data("sample_kaoyan.json")
    if p is None:
        return  # skip if no data
    store = load_kaoyan(p)
    assert store.skipped == []
    cancel = store.get("cancel")
    assert cancel.primary.pos == "VERB"
    assert "call off" in cancel.primary.context_keywords
    assert "naive" in store
