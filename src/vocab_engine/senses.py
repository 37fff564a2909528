"""
Context-based sense selection for polysemous entries.

Each definition is scored against the keywords of the surrounding text:

    +2.0  per context keyword in the definition's own keyword list
    +1.0  per context keyword among the keywords of its meaning text
    +0.5  per context keyword among the keywords of any example sentence

The strictly highest score wins; ties go to the earlier definition, so the
order of definitions in the feed ("primary sense first") decides
ambiguous cases.
"""

from __future__ import annotations

from typing import Callable, Sequence

from vocab_engine.lexicon import Definition, LexiconEntry
from vocab_engine.morphology import MorphologyAnalyzer
from vocab_engine.normalize import DEFAULT_KEYWORD_LIMIT, extract_keywords


OWN_KEYWORD_WEIGHT = 2.0
MEANING_WEIGHT = 1.0
EXAMPLE_WEIGHT = 0.5

KeywordFn = Callable[[str, int], tuple[str, ...]]
StemFn = Callable[[str], str]


class SenseSelector:
    """Picks the best-fitting Definition of an entry for a context string.

    `keywords` and `stem` default to the uncached pure functions; the engine
    passes its cached versions.
    """

    def __init__(
        self,
        keywords: KeywordFn | None = None,
        stem: StemFn | None = None,
        keyword_limit: int = DEFAULT_KEYWORD_LIMIT,
    ):
        self._keywords = keywords or (lambda text, limit: extract_keywords(text, limit))
        self._stem = stem or MorphologyAnalyzer().lemma_of
        self.keyword_limit = keyword_limit

    def context_keywords(self, context: str) -> tuple[str, ...]:
        return self._keywords(context, self.keyword_limit)

    def _own_keywords(self, definition: Definition) -> set[str]:
        own = set(definition.context_keywords)
        own |= {self._stem(k) for k in definition.context_keywords}
        return own

    def score(self, definition: Definition, keywords: Sequence[str]) -> float:
        if not keywords:
            return 0.0
        own = self._own_keywords(definition)
        meaning = set(self._keywords(definition.text, self.keyword_limit))
        examples: set[str] = set()
        for sentence in definition.examples:
            examples.update(self._keywords(sentence, self.keyword_limit))

        total = 0.0
        for word in keywords:
            if word in own:
                total += OWN_KEYWORD_WEIGHT
            if word in meaning:
                total += MEANING_WEIGHT
            if word in examples:
                total += EXAMPLE_WEIGHT
        return total

    def rank(self, entry: LexiconEntry, context: str) -> list[tuple[Definition, float]]:
        """Every definition with its score, in the entry's stored order."""
        keywords = self.context_keywords(context)
        return [(d, self.score(d, keywords)) for d in entry.definitions]

    def select(self, entry: LexiconEntry, context: str = "") -> Definition | None:
        definitions = entry.definitions
        if not definitions:
            return None
        if len(definitions) == 1:
            return definitions[0]

        keywords = self.context_keywords(context)
        if not keywords:
            return definitions[0]
        best = definitions[0]
        best_score = self.score(best, keywords)
        for definition in definitions[1:]:
            s = self.score(definition, keywords)
            if s > best_score:
                best, best_score = definition, s
        return best


def select_sense(entry: LexiconEntry, context: str = "") -> Definition | None:
    """Module-level convenience wrapper around an uncached SenseSelector."""
    return SenseSelector().select(entry, context)
