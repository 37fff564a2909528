"""Shared test fixtures."""

import tomllib
from pathlib import Path

import pytest

from vocab_engine.lexicon import LexiconEntry, LexiconStore, parse_record


def _find_config() -> Path | None:
    """Find vocab_engine.toml from the project root."""
    for base in [Path("."), Path("..")]:
        p = base / "vocab_engine.toml"
        if p.exists():
            return p.resolve()
    return None


BANK = {
    "word": "bank",
    "frequency": 120,
    "difficulty": "基础",
    "tags": ["finance"],
    "definitions": [
        {
            "partOfSpeech": "n.",
            "meaning": "银行",
            "englishMeaning": "an organization where people deposit money",
            "contextKeywords": ["money", "deposit", "loan"],
        },
        {
            "partOfSpeech": "n.",
            "meaning": "河岸",
            "englishMeaning": "the land along the side of a river",
            "contextKeywords": ["river", "water", "shore"],
        },
    ],
}


def _record(word: str, meaning: str, pos: str = "n.", **extra) -> dict:
    return {"word": word, "definitions": [{"partOfSpeech": pos, "meaning": meaning}], **extra}


@pytest.fixture
def records() -> list[dict]:
    return [
        BANK,
        _record("run", "跑", pos="v.", frequency=300, difficulty=1),
        _record("receive", "收到", pos="vt", frequency=90),
        _record("child", "孩子", difficulty=1),
        _record("study", "学习", pos="v.", difficulty="中等"),
        _record("abandon", "放弃", pos="vt", difficulty="高级", tags=["kaoyan"]),
    ]


@pytest.fixture
def store(records) -> LexiconStore:
    return LexiconStore.from_records(records, source="fixture")


@pytest.fixture
def config_path() -> Path:
    """Resolve vocab_engine.toml and check its lexicon feed exists.

    Skips the test if the config or the feed is not found.
    """
    path = _find_config()
    if path is None:
        pytest.skip("vocab_engine.toml not found")

    with path.open("rb") as f:
        cfg = tomllib.load(f)

    feeds = cfg.get("lexicon", {}).get("paths", [])
    if not feeds:
        pytest.skip("[lexicon] paths not configured in vocab_engine.toml")
    for feed in feeds:
        if not (path.parent / feed).exists():
            pytest.skip(f"Lexicon feed not found: {feed}")

    return path


@pytest.fixture
def bank() -> LexiconEntry:
    """The two-sense 'bank' entry: financial first, river second."""
    return parse_record(BANK)
