"""
Text normalization: canonical tokens, tokenization and keyword extraction.

Everything here is a pure function of its input.  The engine layers the
keyword cache on top of extract_keywords; nothing in this module caches.

Usage:
    from vocab_engine.normalize import normalize, tokenize, extract_keywords

    normalize("  Running! ")                      # 'running'
    list(tokenize("The bank, by the river."))      # ['the', 'bank', 'by', 'the', 'river']
    extract_keywords("deposited money at the bank")  # ('deposit', 'money', 'bank')
"""

from __future__ import annotations

import re
import unicodedata
from collections import Counter
from typing import Callable, Iterator

from vocab_engine.morphology import MorphologyAnalyzer


MIN_KEYWORD_LENGTH = 3
DEFAULT_KEYWORD_LIMIT = 10

STOP_WORDS: frozenset[str] = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "up", "about", "into", "through", "during",
    "before", "after", "above", "below", "between", "among", "throughout",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might",
    "must", "can", "shall", "this", "that", "these", "those", "i", "you",
    "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
    "my", "your", "his", "its", "our", "their", "mine", "yours",
    "hers", "ours", "theirs", "myself", "yourself", "himself", "herself",
    "itself", "ourselves", "yourselves", "themselves", "what", "which",
    "who", "whom", "whose", "where", "when", "why", "how", "all", "any",
    "both", "each", "few", "more", "most", "other", "some", "such",
    "no", "nor", "not", "only", "own", "same", "so", "than", "too",
    "very", "just", "now", "here", "there", "then", "once", "again",
    "also", "however", "therefore", "thus", "moreover", "furthermore",
    "nevertheless", "nonetheless", "meanwhile", "otherwise", "instead",
})

# Any run of non-letters/non-digits separates tokens
_TOKEN_RE = re.compile(r"[^\W_]+")
_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")
_WHITESPACE_RE = re.compile(r"\s+")

_default_analyzer = MorphologyAnalyzer()


def _is_edge_char(ch: str) -> bool:
    return ch.isspace() or unicodedata.category(ch)[0] in ("P", "S")


def normalize(raw: str) -> str:
    """Canonical token for a raw word, or '' when it has no letters."""
    if not raw:
        return ""
    start, end = 0, len(raw)
    while start < end and _is_edge_char(raw[start]):
        start += 1
    while end > start and _is_edge_char(raw[end - 1]):
        end -= 1
    token = raw[start:end].lower()
    if not any(ch.isalpha() for ch in token):
        return ""
    return token


class TokenStream:
    """Lazy, restartable token sequence over a piece of text.

    Each iteration re-scans the text, so the same stream can be consumed
    more than once.
    """

    __slots__ = ("text",)

    def __init__(self, text: str):
        self.text = text or ""

    def __iter__(self) -> Iterator[str]:
        for m in _TOKEN_RE.finditer(self.text):
            token = normalize(m.group(0))
            if token:
                yield token

    def __repr__(self) -> str:
        preview = self.text if len(self.text) <= 30 else self.text[:27] + "..."
        return f"TokenStream({preview!r})"


def tokenize(text: str) -> TokenStream:
    return TokenStream(text)


def is_stop_word(token: str) -> bool:
    return token.lower() in STOP_WORDS


def extract_keywords(
    text: str,
    limit: int = DEFAULT_KEYWORD_LIMIT,
    stem: Callable[[str], str] | None = None,
) -> tuple[str, ...]:
    """The `limit` most frequent content stems of `text`.

    Tokens shorter than three characters and stop words are dropped; the
    rest are reduced to their lemma.  Ties keep first-occurrence order.
    """
    if limit <= 0:
        return ()
    stem = stem or _default_analyzer.lemma_of
    counts: Counter[str] = Counter()
    for token in tokenize(text):
        if len(token) < MIN_KEYWORD_LENGTH or token in STOP_WORDS:
            continue
        counts[stem(token)] += 1
    return tuple(word for word, _ in counts.most_common(limit))


# ── Text helpers ────────────────────────────────────────────────────────────

def clean_text(text: str) -> str:
    """Trim and collapse every whitespace run (newlines included) to one space."""
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def split_sentences(text: str) -> list[str]:
    cleaned = clean_text(text)
    if not cleaned:
        return []
    return [s for s in _SENTENCE_END_RE.split(cleaned) if s]


def sentence_containing(word: str, text: str) -> str | None:
    """First sentence of `text` that contains `word` as a token."""
    target = normalize(word)
    if not target:
        return None
    for sentence in split_sentences(text):
        if target in tokenize(sentence):
            return sentence
    return None


def word_context(word: str, text: str, width: int = 50) -> str:
    """Up to `width` characters either side of the first occurrence of `word`."""
    target = normalize(word)
    if not target:
        return ""
    m = re.search(rf"(?<!\w){re.escape(target)}(?!\w)", text, flags=re.IGNORECASE)
    if m is None:
        return ""
    start = max(0, m.start() - width)
    end = min(len(text), m.end() + width)
    return clean_text(text[start:end])


def most_frequent_words(text: str, count: int = 10) -> list[tuple[str, int]]:
    """Most frequent non-stop-word tokens with their counts."""
    counts = Counter(t for t in tokenize(text) if t not in STOP_WORDS)
    return counts.most_common(count)


def text_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the two texts' token sets."""
    words_a = set(tokenize(a))
    words_b = set(tokenize(b))
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)
