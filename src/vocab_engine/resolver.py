"""
The matching cascade: exact lookup, then stem lookup, then fuzzy lookup.

Each stage runs only when the previous ones missed, so the cheap dict
lookups answer most queries and the linear edit-distance scan is the last
resort.

Usage:
    from vocab_engine.resolver import Resolver

    resolver = Resolver(store)
    resolver.resolve("Running")     # the 'run' entry (stem stage)
    resolver.match("recieve")       # Match(receive, stage='fuzzy', similarity=0.857)
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass

from vocab_engine.cache import CacheSet
from vocab_engine.lexicon import LexiconEntry, LexiconStore
from vocab_engine.morphology import MorphologyAnalyzer
from vocab_engine.normalize import normalize


LOGGER = logging.getLogger(__name__)

FUZZY_THRESHOLD = 0.8
FUZZY_MIN_LENGTH = 3

STAGE_EXACT = "exact"
STAGE_STEM = "stem"
STAGE_FUZZY = "fuzzy"


# ── Edit distance ───────────────────────────────────────────────────────────

def edit_distance(a: str, b: str) -> int:
    """Optimal-string-alignment distance.

    Insertions, deletions and substitutions cost 1, and so does swapping two
    adjacent characters (recieve -> receive is one edit).
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    prev2: list[int] = []
    prev = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        cur = [i] + [0] * len(b)
        ca = a[i - 1]
        for j in range(1, len(b) + 1):
            cb = b[j - 1]
            cost = 0 if ca == cb else 1
            best = min(
                prev[j] + 1,         # deletion
                cur[j - 1] + 1,      # insertion
                prev[j - 1] + cost,  # substitution
            )
            if i > 1 and j > 1 and ca == b[j - 2] and a[i - 2] == cb:
                best = min(best, prev2[j - 2] + 1)  # transposition
            cur[j] = best
        prev2, prev = prev, cur
    return prev[len(b)]


def similarity(a: str, b: str) -> float:
    """1 - distance / longest length, in [0, 1]."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    # (longest - d) / longest is exact for ratios like 4/5, so a score
    # that sits on the threshold compares equal to it
    return (longest - edit_distance(a, b)) / longest


# ── Resolver ────────────────────────────────────────────────────────────────

@dataclass(slots=True)
class Match:
    """A resolved entry tagged with the cascade stage that found it."""

    entry: LexiconEntry
    stage: str  # "exact", "stem", "fuzzy"
    token: str
    similarity: float = 1.0

    def __repr__(self) -> str:
        return (
            f"Match({self.token!r} -> {self.entry.headword!r} "
            f"[{self.stage}] {self.similarity:.3f})"
        )


class Resolver:
    """
    Maps a raw word to a LexiconEntry through the exact/stem/fuzzy cascade.

    `lexicon` may be replaced at any time (the engine swaps in a freshly
    loaded store); every query reads it once and works on that snapshot.
    """

    def __init__(
        self,
        lexicon: LexiconStore | None = None,
        analyzer: MorphologyAnalyzer | None = None,
        caches: CacheSet | None = None,
        *,
        fuzzy_threshold: float = FUZZY_THRESHOLD,
        fuzzy_min_length: int = FUZZY_MIN_LENGTH,
    ):
        self.lexicon = lexicon if lexicon is not None else LexiconStore()
        self.analyzer = analyzer or MorphologyAnalyzer()
        self.caches = caches or CacheSet()
        self.fuzzy_threshold = fuzzy_threshold
        self.fuzzy_min_length = fuzzy_min_length
        self.stage_counts: Counter[str] = Counter()
        # lemma -> first key with that lemma, for one backing-map snapshot
        self._stem_index: tuple[dict | None, dict[str, str]] = (None, {})

    # ── Cached primitives ────────────────────────────────────────────────

    def lemma_of(self, token: str) -> str:
        cached = self.caches.stems.get(token)
        if cached is not None:
            return cached
        lemma = self.analyzer.lemma_of(token)
        self.caches.stems.put(token, lemma)
        return lemma

    def similarity(self, a: str, b: str) -> float:
        key = (a, b)
        cached = self.caches.similarity.get(key)
        if cached is not None:
            return cached
        score = similarity(a, b)
        self.caches.similarity.put(key, score)
        return score

    # ── Cascade ──────────────────────────────────────────────────────────

    def resolve(self, raw: str) -> LexiconEntry | None:
        m = self.match(raw)
        return m.entry if m else None

    def match(self, raw: str) -> Match | None:
        token = normalize(raw)
        if not token:
            return None
        lexicon = self.lexicon

        self.stage_counts[STAGE_EXACT] += 1
        entry = lexicon.get(token)
        if entry is not None:
            return Match(entry, STAGE_EXACT, token)

        self.stage_counts[STAGE_STEM] += 1
        entry = self._match_stem(token, lexicon)
        if entry is not None:
            return Match(entry, STAGE_STEM, token)

        if len(token) < self.fuzzy_min_length:
            return None
        self.stage_counts[STAGE_FUZZY] += 1
        return self._match_fuzzy(token, lexicon)

    def _match_stem(self, token: str, lexicon: LexiconStore) -> LexiconEntry | None:
        lemma = self.lemma_of(token)
        entry = lexicon.get(lemma)
        if entry is not None:
            return entry
        key = self._lemma_index(lexicon).get(lemma)
        return lexicon.get(key) if key is not None else None

    def _lemma_index(self, lexicon: LexiconStore) -> dict[str, str]:
        """lemma -> first key (in store order) whose own lemma it is.

        Equivalent to scanning the keys in order for the first stem match;
        rebuilt whenever the store's backing map has been replaced.
        """
        snapshot = lexicon.snapshot()
        built_for, index = self._stem_index
        if built_for is snapshot:
            return index
        index = {}
        for key in snapshot:
            index.setdefault(self.analyzer.lemma_of(key), key)
        self._stem_index = (snapshot, index)
        LOGGER.debug("Built lemma index: %d lemmas for %d keys", len(index), len(snapshot))
        return index

    def _match_fuzzy(self, token: str, lexicon: LexiconStore) -> Match | None:
        threshold = self.fuzzy_threshold
        best: LexiconEntry | None = None
        best_score = threshold
        n = len(token)
        self.caches.reserve_similarity(len(lexicon))
        for key, entry in lexicon.all():
            # the length gap alone is a lower bound on the distance
            longest = max(n, len(key))
            if (longest - abs(n - len(key))) / longest <= best_score:
                continue
            score = self.similarity(token, key)
            if score > best_score:
                best, best_score = entry, score
        if best is None:
            return None
        return Match(best, STAGE_FUZZY, token, best_score)

    def reset_counts(self) -> None:
        self.stage_counts.clear()
