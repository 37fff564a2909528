"""
Lexical resolution engine: one service object holding the lexicon, the
morphology analyzer, the caches, the resolver and the sense selector.

Usage:
    from vocab_engine.engine import LexicalEngine

    engine = LexicalEngine.from_config()               # loads vocab_engine.toml
    result = engine.lookup("Running", context="she was running late")
    if result:
        print(result.entry.headword, result.definition.meaning)

    # Or build manually:
    engine = LexicalEngine()
    engine.load("data/dictionary.json")
    engine.load_in_background("data/big.json")          # publishes when complete
"""

from __future__ import annotations

import glob
import logging
import threading
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from vocab_engine.cache import DEFAULT_CAPACITY, CacheSet, keyword_key
from vocab_engine.kaoyan import load_kaoyan
from vocab_engine.lexicon import (
    Definition,
    Difficulty,
    LexiconEntry,
    LexiconStore,
    parse_definition,
)
from vocab_engine.morphology import MorphologyAnalyzer
from vocab_engine.normalize import (
    DEFAULT_KEYWORD_LIMIT,
    TokenStream,
    extract_keywords,
    normalize,
    tokenize,
)
from vocab_engine.resolver import FUZZY_MIN_LENGTH, FUZZY_THRESHOLD, Match, Resolver
from vocab_engine.senses import SenseSelector


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class LookupResult:
    """A resolved entry plus the sense chosen for the given context."""

    query: str
    match: Match
    definition: Definition | None

    @property
    def entry(self) -> LexiconEntry:
        return self.match.entry

    @property
    def stage(self) -> str:
        return self.match.stage

    @property
    def headword(self) -> str:
        return self.match.entry.headword

    def __repr__(self) -> str:
        meaning = self.definition.meaning if self.definition else None
        return f"LookupResult({self.query!r} -> {self.headword!r} [{self.stage}]: {meaning!r})"


class LexicalEngine:
    """
    Resolves raw words to lexicon entries and picks a sense by context.

    The lexicon is replaced atomically: loaders build a complete store and
    publish it with one reference swap, so a lookup never sees a partial
    load.  Entries added with add_custom_entry survive reloads and shadow
    bulk-imported entries with the same headword.
    """

    def __init__(
        self,
        lexicon: LexiconStore | None = None,
        *,
        cache_capacity: int = DEFAULT_CAPACITY,
        fuzzy_threshold: float = FUZZY_THRESHOLD,
        fuzzy_min_length: int = FUZZY_MIN_LENGTH,
        keyword_limit: int = DEFAULT_KEYWORD_LIMIT,
    ):
        self.analyzer = MorphologyAnalyzer()
        self.caches = CacheSet(cache_capacity)
        self.resolver = Resolver(
            lexicon,
            self.analyzer,
            self.caches,
            fuzzy_threshold=fuzzy_threshold,
            fuzzy_min_length=fuzzy_min_length,
        )
        self.senses = SenseSelector(
            keywords=self.extract_keywords,
            stem=self.lemma_of,
            keyword_limit=keyword_limit,
        )
        self.available = lexicon is not None
        self._lock = threading.Lock()
        self._custom: dict[str, LexiconEntry] = {}
        # user senses and tags merged onto whatever entry the feeds publish
        self._additions: dict[str, LexiconEntry] = {}
        self._loader: threading.Thread | None = None

    # ── Loading ──────────────────────────────────────────────────────────

    @property
    def lexicon(self) -> LexiconStore:
        return self.resolver.lexicon

    def load(self, *paths: str | Path, kaoyan: Iterable[str | Path] = ()) -> bool:
        """Load feed files (globs allowed) and publish them as the lexicon.

        Returns whether a new lexicon was published.  When no file could be
        read the current lexicon stays in place, so an engine that never
        loaded one stays unavailable and answers every lookup with None.
        """
        store = _build_store(_expand_paths(paths), _expand_paths(tuple(kaoyan)))
        if store is None:
            LOGGER.error("No lexicon feed could be loaded; keeping the current lexicon")
            return False
        self._publish(store)
        return True

    def load_in_background(
        self, *paths: str | Path, kaoyan: Iterable[str | Path] = (),
    ) -> threading.Thread:
        """Run load() on a worker thread; readers keep the old lexicon until it ends."""
        kaoyan = tuple(kaoyan)
        thread = threading.Thread(
            target=self.load, args=paths, kwargs={"kaoyan": kaoyan},
            name="lexicon-loader", daemon=True,
        )
        self._loader = thread
        thread.start()
        return thread

    def wait_until_loaded(self, timeout: float | None = None) -> bool:
        if self._loader is not None:
            self._loader.join(timeout)
        return self.available

    def _publish(self, store: LexiconStore) -> None:
        with self._lock:
            store.insert_many(self._custom.values())
            for key, extra in self._additions.items():
                base = store.get(key)
                if base is not None:
                    store.insert(base.with_additions(extra.definitions, extra.tags))
                else:
                    store.insert(extra)
            self.resolver.lexicon = store
            self.available = True
        LOGGER.info("Published lexicon with %d entries", len(store))

    @classmethod
    def from_config(cls, config_path: str | Path = "vocab_engine.toml") -> LexicalEngine:
        """Build an engine from a TOML config file.

        Paths in the config are resolved relative to the config file's
        directory.  Glob patterns in paths are expanded.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config not found: {config_path}")

        with config_path.open("rb") as f:
            cfg = tomllib.load(f)

        base_dir = config_path.parent
        cache_cfg = cfg.get("cache", {})
        resolver_cfg = cfg.get("resolver", {})
        senses_cfg = cfg.get("senses", {})

        engine = cls(
            cache_capacity=cache_cfg.get("capacity", DEFAULT_CAPACITY),
            fuzzy_threshold=resolver_cfg.get("fuzzy_threshold", FUZZY_THRESHOLD),
            fuzzy_min_length=resolver_cfg.get("fuzzy_min_length", FUZZY_MIN_LENGTH),
            keyword_limit=senses_cfg.get("keyword_limit", DEFAULT_KEYWORD_LIMIT),
        )

        feed_paths = _resolve_config_paths(cfg.get("lexicon", {}).get("paths", []), base_dir)
        book_paths = _resolve_config_paths(cfg.get("kaoyan", {}).get("paths", []), base_dir)
        if feed_paths or book_paths:
            if cfg.get("loading", {}).get("background", False):
                engine.load_in_background(*feed_paths, kaoyan=book_paths)
            else:
                engine.load(*feed_paths, kaoyan=book_paths)

        return engine

    # ── Text primitives (cached) ─────────────────────────────────────────

    def normalize(self, raw: str) -> str:
        return normalize(raw)

    def tokenize(self, text: str) -> TokenStream:
        return tokenize(text)

    def lemma_of(self, token: str) -> str:
        return self.resolver.lemma_of(token)

    def surface_forms_of(self, lemma: str) -> set[str]:
        return self.analyzer.surface_forms_of(lemma)

    def extract_keywords(self, text: str, limit: int = DEFAULT_KEYWORD_LIMIT) -> tuple[str, ...]:
        key = keyword_key(text, limit)
        cached = self.caches.keywords.get(key)
        if cached is not None:
            return cached
        keywords = extract_keywords(text, limit, stem=self.lemma_of)
        self.caches.keywords.put(key, keywords)
        return keywords

    # ── Resolution ───────────────────────────────────────────────────────

    def resolve(self, raw: str) -> LexiconEntry | None:
        return self.resolver.resolve(raw)

    def match(self, raw: str) -> Match | None:
        return self.resolver.match(raw)

    def select_sense(self, entry: LexiconEntry, context: str = "") -> Definition | None:
        return self.senses.select(entry, context)

    def lookup(self, raw: str, context: str = "") -> LookupResult | None:
        """Resolve `raw` and pick the sense that best fits `context`."""
        m = self.resolver.match(raw)
        if m is None:
            return None
        return LookupResult(query=raw, match=m, definition=self.senses.select(m.entry, context))

    # ── Writes ───────────────────────────────────────────────────────────

    def add_custom_entry(
        self,
        headword: str,
        definitions: Iterable[Definition | dict[str, Any]],
        *,
        phonetics: Iterable[str] = (),
        frequency: int = 0,
        difficulty: Difficulty = Difficulty.MEDIUM,
        tags: Iterable[str] = (),
        merge: bool = False,
    ) -> LexiconEntry:
        """Insert a user entry, overwriting (or with merge=True, extending)
        any entry with the same headword.

        A merge remembers only the added senses and tags, and reapplies them
        to whatever entry a later load publishes for that headword.
        """
        if not normalize(headword):
            raise ValueError(f"headword has no alphabetic content: {headword!r}")
        defs = tuple(d if isinstance(d, Definition) else parse_definition(d) for d in definitions)
        if not defs:
            raise ValueError(f"{headword!r}: at least one definition is required")

        tags = frozenset(tags)
        with self._lock:
            existing = self.lexicon.get(headword.strip())
            if merge and existing is not None:
                entry = existing.with_additions(defs, tags)
                if entry.key in self._custom:
                    self._custom[entry.key] = entry
                else:
                    extra = self._additions.get(entry.key)
                    self._additions[entry.key] = (
                        extra.with_additions(defs, tags) if extra is not None
                        else LexiconEntry(headword=headword, definitions=defs, tags=tags)
                    )
            else:
                entry = LexiconEntry(
                    headword=headword,
                    definitions=defs,
                    phonetics=tuple(phonetics),
                    frequency=frequency,
                    difficulty=difficulty,
                    tags=tags,
                )
                self._custom[entry.key] = entry
                self._additions.pop(entry.key, None)
            self.lexicon.insert(entry)
        LOGGER.debug("Added custom entry %r", entry.key)
        return entry

    def reset(self) -> None:
        """Drop the lexicon, user entries and caches (admin reset)."""
        with self._lock:
            self.resolver.lexicon = LexiconStore()
            self._custom.clear()
            self._additions.clear()
            self.available = False
        self.caches.clear()
        self.resolver.reset_counts()

    # ── Browsing ─────────────────────────────────────────────────────────

    def contains(self, word: str) -> bool:
        token = normalize(word)
        return bool(token) and token in self.lexicon

    def search(self, query: str, limit: int = 20) -> list[LexiconEntry]:
        return self.lexicon.search(query, limit)

    def by_difficulty(self, difficulty: Difficulty, limit: int = 50) -> list[LexiconEntry]:
        return self.lexicon.by_difficulty(difficulty, limit)

    def by_tag(self, tag: str) -> list[LexiconEntry]:
        return self.lexicon.by_tag(tag)

    # ── Memory pressure ──────────────────────────────────────────────────

    def reduce_memory(self) -> None:
        self.caches.reduce_size()

    def restore_memory(self) -> None:
        self.caches.restore_size()

    # ── Introspection ────────────────────────────────────────────────────

    def summary(self) -> str:
        state = "available" if self.available else "unavailable"
        custom = len(self._custom) + len(self._additions)
        lines = [f"LexicalEngine (lexicon {state}, {custom} custom entries)"]
        lines.append("  [lexicon]")
        for sub_line in self.lexicon.summary().split("\n"):
            lines.append(f"    {sub_line}")
        lines.append("  [caches]")
        for sub_line in self.caches.summary().split("\n"):
            lines.append(f"    {sub_line}")
        counts = self.resolver.stage_counts
        if counts:
            lines.append(
                "  [stages] " + ", ".join(f"{k}={counts[k]}" for k in ("exact", "stem", "fuzzy"))
            )
        return "\n".join(lines)

    def close(self) -> None:
        """Wait for a pending background load to finish."""
        if self._loader is not None:
            self._loader.join()
            self._loader = None

    def __enter__(self) -> LexicalEngine:
        return self

    def __exit__(self, *args) -> None:
        self.close()


# ── Store building ───────────────────────────────────────────────────────

def _build_store(feeds: list[Path], books: list[Path]) -> LexiconStore | None:
    """Merge every readable feed into one new store; None if none was readable."""
    store = LexiconStore()
    loaded = 0
    for path in feeds:
        try:
            part = LexiconStore.from_file(path)
        except (OSError, ValueError) as exc:
            LOGGER.error("Cannot read lexicon feed %s: %s", path, exc)
            continue
        store.merge(part)
        loaded += 1
    for path in books:
        try:
            part = load_kaoyan(path)
        except (OSError, ValueError) as exc:
            LOGGER.error("Cannot read word book %s: %s", path, exc)
            continue
        store.merge(part)
        loaded += 1
    return store if loaded else None


# ── Path helpers ─────────────────────────────────────────────────────────

def _expand_paths(paths: tuple[str | Path, ...]) -> list[Path]:
    """Expand globs and return sorted list of Paths."""
    result = []
    for p in paths:
        p_str = str(p)
        if "*" in p_str or "?" in p_str:
            result.extend(Path(m) for m in sorted(glob.glob(p_str)))
        else:
            result.append(Path(p))
    return result


def _resolve_config_paths(raw_paths: list[str], base_dir: Path) -> list[Path]:
    """Resolve config paths relative to base_dir, expanding globs."""
    result = []
    for p in raw_paths:
        full = base_dir / p if not Path(p).is_absolute() else Path(p)
        full_str = str(full)
        if "*" in full_str or "?" in full_str:
            result.extend(Path(m) for m in sorted(glob.glob(full_str)))
        else:
            result.append(full)
    return result
