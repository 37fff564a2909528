"""vocab-engine: lexical resolution and sense selection for a vocabulary app."""

from vocab_engine.normalize import normalize, tokenize, extract_keywords, TokenStream
from vocab_engine.morphology import MorphologyAnalyzer, SuffixRule
from vocab_engine.lexicon import (
    Definition, Difficulty, LexiconEntry, LexiconStore, MalformedRecordError,
)
from vocab_engine.kaoyan import load_kaoyan
from vocab_engine.cache import BoundedCache, CacheSet
from vocab_engine.resolver import Resolver, Match, edit_distance, similarity
from vocab_engine.senses import SenseSelector, select_sense
from vocab_engine.engine import LexicalEngine, LookupResult

__all__ = [
    "normalize", "tokenize", "extract_keywords", "TokenStream",
    "MorphologyAnalyzer", "SuffixRule",
    "Definition", "Difficulty", "LexiconEntry", "LexiconStore", "MalformedRecordError",
    "load_kaoyan",
    "BoundedCache", "CacheSet",
    "Resolver", "Match", "edit_distance", "similarity",
    "SenseSelector", "select_sense",
    "LexicalEngine", "LookupResult",
]
