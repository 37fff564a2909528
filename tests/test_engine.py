"""Tests for LexicalEngine and LookupResult (engine.py)."""

import json
import threading

import pytest
from unittest.mock import MagicMock

from vocab_engine.engine import LexicalEngine, LookupResult
from vocab_engine.lexicon import Definition, Difficulty, LexiconStore
from vocab_engine.resolver import Match


# ── Helpers ───────────────────────────────────────────────────────────────────

def _write_feed(path, records) -> str:
    path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
    return str(path)


def _engine_with(store: LexiconStore, **kwargs) -> LexicalEngine:
    return LexicalEngine(store, **kwargs)


# ── LookupResult ──────────────────────────────────────────────────────────────

def test_lookup_result_delegates_to_match():
    entry = MagicMock()
    entry.headword = "bank"
    m = Match(entry=entry, stage="stem", token="banks")
    r = LookupResult(query="Banks", match=m, definition=None)
    assert r.entry is entry
    assert r.stage == "stem"
    assert r.headword == "bank"
    assert "bank" in repr(r)


# ── lookup ────────────────────────────────────────────────────────────────────

def test_lookup_picks_sense_by_context(store):
    engine = _engine_with(store)
    r = engine.lookup("bank", context="deposited money at the bank")
    assert r.stage == "exact"
    assert r.definition is r.entry.definitions[0]

    r = engine.lookup("Banks", context="the river water rose over the banks")
    assert r.stage == "stem"
    assert r.definition is r.entry.definitions[1]


def test_lookup_miss_returns_none(store):
    assert _engine_with(store).lookup("zzzzzz") is None


def test_lookup_fuzzy(store):
    r = _engine_with(store).lookup("recieve")
    assert r.headword == "receive"
    assert r.stage == "fuzzy"


def test_resolve_and_contains(store):
    engine = _engine_with(store)
    assert engine.resolve("Running").headword == "run"
    assert engine.contains("Bank!")
    assert not engine.contains("running")
    assert not engine.contains("...")


def test_fuzzy_settings_passed_through(store):
    engine = _engine_with(store, fuzzy_threshold=0.9)
    assert engine.lookup("recieve") is None


# ── Cached primitives ─────────────────────────────────────────────────────────

def test_extract_keywords_cached():
    engine = LexicalEngine()
    first = engine.extract_keywords("deposited money at the bank")
    assert first == ("deposit", "money", "bank")
    assert engine.extract_keywords("deposited money at the bank") is first
    assert engine.caches.keywords.stats().hits == 1


def test_lemma_of_cached():
    engine = LexicalEngine()
    assert engine.lemma_of("running") == "run"
    assert "running" in engine.caches.stems


def test_surface_forms_and_normalize():
    engine = LexicalEngine()
    assert "studied" in engine.surface_forms_of("study")
    assert engine.normalize("  Hello, ") == "hello"
    assert list(engine.tokenize("Hi there")) == ["hi", "there"]


# ── Loading ───────────────────────────────────────────────────────────────────

def test_new_engine_is_unavailable():
    engine = LexicalEngine()
    assert not engine.available
    assert engine.lookup("bank") is None


def test_load_feed(tmp_path, records):
    engine = LexicalEngine()
    assert engine.load(_write_feed(tmp_path / "a.json", records))
    assert engine.available
    assert len(engine.lexicon) == 6


def test_load_glob_and_merge(tmp_path, records):
    _write_feed(tmp_path / "a.json", records[:3])
    _write_feed(tmp_path / "b.json", records[3:])
    engine = LexicalEngine()
    engine.load(str(tmp_path / "*.json"))
    assert len(engine.lexicon) == 6


def test_load_missing_feed_marks_unavailable(tmp_path, caplog):
    engine = LexicalEngine()
    assert not engine.load(tmp_path / "missing.json")
    assert not engine.available
    assert engine.lookup("bank") is None
    assert "missing.json" in caplog.text


def test_load_partial_failure_keeps_readable_feeds(tmp_path, records):
    engine = LexicalEngine()
    assert engine.load(tmp_path / "missing.json", _write_feed(tmp_path / "a.json", records))
    assert engine.available
    assert len(engine.lexicon) == 6


def test_failed_reload_keeps_previous_lexicon(tmp_path, store):
    engine = _engine_with(store)
    assert not engine.load(tmp_path / "missing.json")
    assert engine.available
    assert engine.lexicon is store


def test_load_kaoyan_book(tmp_path):
    book = tmp_path / "book.json"
    book.write_text(json.dumps({
        "headWord": "cancel", "bookId": "KaoYan_1",
        "content": {"word": {"content": {"trans": [{"pos": "vt", "tranCn": "取消"}]}}},
    }, ensure_ascii=False), encoding="utf-8")
    engine = LexicalEngine()
    engine.load(kaoyan=[book])
    assert engine.lookup("cancel").definition.meaning == "取消"


def test_undecodable_book_does_not_block_feeds(tmp_path, records, caplog):
    book = tmp_path / "book.json"
    book.write_bytes(b'{"headWord": "x"}\n\xff\xfe\n')
    engine = LexicalEngine()
    assert engine.load(_write_feed(tmp_path / "a.json", records), kaoyan=[book])
    assert engine.resolve("bank").headword == "bank"
    assert "book.json" in caplog.text


def test_load_publishes_atomically(tmp_path, records):
    engine = LexicalEngine()
    engine.load(_write_feed(tmp_path / "a.json", records))
    old = engine.lexicon
    engine.load(_write_feed(tmp_path / "b.json", records[:1]))
    assert engine.lexicon is not old
    assert len(old) == 6
    assert len(engine.lexicon) == 1


def test_load_in_background(tmp_path, records):
    engine = LexicalEngine()
    thread = engine.load_in_background(_write_feed(tmp_path / "a.json", records))
    assert isinstance(thread, threading.Thread)
    assert engine.wait_until_loaded(timeout=5)
    assert engine.resolve("bank").headword == "bank"


def test_close_waits_for_loader(tmp_path, records):
    with LexicalEngine() as engine:
        engine.load_in_background(_write_feed(tmp_path / "a.json", records))
    assert engine.available


# ── Custom entries ────────────────────────────────────────────────────────────

def test_add_custom_entry(store):
    engine = _engine_with(store)
    entry = engine.add_custom_entry(
        "Serendipity", [{"partOfSpeech": "n.", "meaning": "意外发现"}],
        difficulty=Difficulty.EXPERT, tags=["mine"],
    )
    assert entry.headword == "serendipity"
    assert engine.resolve("serendipity") is entry
    assert engine.by_tag("mine") == [entry]


def test_add_custom_entry_overwrites(store):
    engine = _engine_with(store)
    engine.add_custom_entry("bank", [Definition(pos="NOUN", meaning="长凳")])
    assert [d.meaning for d in engine.resolve("bank").definitions] == ["长凳"]


def test_add_custom_entry_merge(store):
    engine = _engine_with(store)
    engine.add_custom_entry("bank", [Definition(pos="VERB", meaning="存钱")], merge=True)
    assert [d.meaning for d in engine.resolve("bank").definitions] == ["银行", "河岸", "存钱"]


@pytest.mark.parametrize("headword, definitions", [
    ("", [Definition(pos="NOUN", meaning="x")]),
    ("123", [Definition(pos="NOUN", meaning="x")]),
    ("word", []),
])
def test_add_custom_entry_rejects(headword, definitions):
    with pytest.raises(ValueError):
        LexicalEngine().add_custom_entry(headword, definitions)


def test_custom_entries_survive_reload(tmp_path, records):
    engine = LexicalEngine()
    engine.add_custom_entry("bank", [Definition(pos="NOUN", meaning="mine")])
    engine.load(_write_feed(tmp_path / "a.json", records))
    assert engine.resolve("bank").primary.meaning == "mine"
    assert engine.resolve("run").headword == "run"


def test_merged_senses_follow_reloaded_feed(tmp_path, records):
    engine = LexicalEngine()
    engine.load(_write_feed(tmp_path / "a.json", records))
    engine.add_custom_entry("bank", [Definition(pos="VERB", meaning="存钱")], tags=["mine"], merge=True)

    updated = [dict(records[0], definitions=[{"partOfSpeech": "n.", "meaning": "银行机构"}])]
    engine.load(_write_feed(tmp_path / "b.json", updated))
    bank = engine.resolve("bank")
    assert [d.meaning for d in bank.definitions] == ["银行机构", "存钱"]
    assert "mine" in bank.tags


def test_merged_senses_kept_when_feed_drops_headword(tmp_path, records):
    engine = LexicalEngine()
    engine.load(_write_feed(tmp_path / "a.json", records))
    engine.add_custom_entry("bank", [Definition(pos="VERB", meaning="存钱")], merge=True)
    engine.load(_write_feed(tmp_path / "b.json", records[1:]))
    assert [d.meaning for d in engine.resolve("bank").definitions] == ["存钱"]


def test_merge_onto_custom_entry_survives_reload(tmp_path, records):
    engine = LexicalEngine()
    engine.add_custom_entry("bank", [Definition(pos="NOUN", meaning="mine")])
    engine.add_custom_entry("bank", [Definition(pos="VERB", meaning="存钱")], merge=True)
    engine.load(_write_feed(tmp_path / "a.json", records))
    assert [d.meaning for d in engine.resolve("bank").definitions] == ["mine", "存钱"]


def test_reset(store):
    engine = _engine_with(store)
    engine.add_custom_entry("zebra", [Definition(pos="NOUN", meaning="斑马")])
    engine.lookup("running")
    engine.reset()
    assert not engine.available
    assert len(engine.lexicon) == 0
    assert len(engine.caches.stems) == 0


# ── Browsing / memory / summary ───────────────────────────────────────────────

def test_search_and_by_difficulty(store):
    engine = _engine_with(store)
    assert engine.search("ban")[0].headword == "bank"
    assert [e.headword for e in engine.by_difficulty(Difficulty.ADVANCED)] == ["abandon"]


def test_reduce_and_restore_memory(store):
    engine = _engine_with(store, cache_capacity=100)
    engine.lookup("running")
    engine.reduce_memory()
    assert engine.caches.low_memory
    assert len(engine.caches.stems) == 0
    assert engine.caches.stems.capacity == 50
    # lookups still work in low-memory mode
    assert engine.resolve("running").headword == "run"
    engine.restore_memory()
    assert engine.caches.stems.capacity == 100


def test_summary(store):
    engine = _engine_with(store)
    engine.lookup("bank")
    text = engine.summary()
    assert "available" in text
    assert "Entries:" in text
    assert "exact=1" in text


# ── from_config ───────────────────────────────────────────────────────────────

def test_from_config_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        LexicalEngine.from_config(tmp_path / "nope.toml")


def test_from_config(tmp_path, records):
    data = tmp_path / "data"
    data.mkdir()
    _write_feed(data / "dict.json", records)
    cfg = tmp_path / "vocab_engine.toml"
    cfg.write_text(
        '[lexicon]\npaths = ["data/*.json"]\n'
        "[cache]\ncapacity = 64\n"
        "[resolver]\nfuzzy_threshold = 0.85\n"
        "[senses]\nkeyword_limit = 5\n",
        encoding="utf-8",
    )
    engine = LexicalEngine.from_config(cfg)
    assert engine.available
    assert len(engine.lexicon) == 6
    assert engine.caches.capacity == 64
    assert engine.resolver.fuzzy_threshold == 0.85
    assert engine.senses.keyword_limit == 5


def test_from_config_background(tmp_path, records):
    _write_feed(tmp_path / "dict.json", records)
    cfg = tmp_path / "vocab_engine.toml"
    cfg.write_text('[lexicon]\npaths = ["dict.json"]\n[loading]\nbackground = true\n', encoding="utf-8")
    with LexicalEngine.from_config(cfg) as engine:
        assert engine.wait_until_loaded(timeout=5)
        assert engine.resolve("child").headword == "child"


def test_from_project_config(config_path):
    with LexicalEngine.from_config(config_path) as engine:
        assert engine.wait_until_loaded(timeout=5)
        assert engine.lookup("bank", context="deposited money").definition.meaning == "银行"
