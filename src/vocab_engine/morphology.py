"""
Rule-based English morphology: lemma guessing and surface-form generation.

Reverses regular inflection with ordered suffix rules and falls back on
irregular-form tables for strong verbs and irregular plurals.  The rule
tables are plain data so that their order (which decides tie-breaks in
lemma_of) can be inspected and tested on its own.

Usage:
    from vocab_engine.morphology import MorphologyAnalyzer

    morph = MorphologyAnalyzer()
    morph.lemma_of("running")          # 'run'
    morph.surface_forms_of("stop")     # {'stops', 'stopped', 'stopping', ...}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


VOWELS = frozenset("aeiou")
SIBILANT_ENDINGS = ("s", "x", "z", "ch", "sh")
MIN_STEM = 3


# ── Irregular tables ────────────────────────────────────────────────────────

IRREGULAR_PLURALS: dict[str, str] = {
    "children": "child",
    "feet": "foot",
    "teeth": "tooth",
    "men": "man",
    "women": "woman",
    "mice": "mouse",
    "geese": "goose",
}

IRREGULAR_VERBS: dict[str, str] = {
    "am": "be", "is": "be", "are": "be", "being": "be",
    "was": "be", "were": "be", "been": "be",
    "had": "have", "has": "have", "having": "have",
    "did": "do", "done": "do", "does": "do", "doing": "do",
    "went": "go", "gone": "go", "goes": "go", "going": "go",
    "came": "come", "comes": "come",
    "saw": "see", "seen": "see", "sees": "see",
    "took": "take", "taken": "take", "takes": "take",
    "got": "get", "gotten": "get", "gets": "get",
    "made": "make", "makes": "make",
    "said": "say", "says": "say",
    "thought": "think", "thinks": "think",
    "knew": "know", "known": "know", "knows": "know",
    "found": "find", "finds": "find",
    "gave": "give", "given": "give", "gives": "give",
    "told": "tell", "tells": "tell",
    "felt": "feel", "feels": "feel",
    "left": "leave", "leaves": "leave",
    "kept": "keep", "keeps": "keep",
    "held": "hold", "holds": "hold",
    "brought": "bring", "brings": "bring",
    "built": "build", "builds": "build",
    "bought": "buy", "buys": "buy",
    "caught": "catch", "catches": "catch",
    "chose": "choose", "chosen": "choose", "chooses": "choose",
    "cut": "cut", "cuts": "cut",
    "drew": "draw", "drawn": "draw", "draws": "draw",
    "drove": "drive", "driven": "drive", "drives": "drive",
    "ate": "eat", "eaten": "eat", "eats": "eat",
    "fell": "fall", "fallen": "fall", "falls": "fall",
    "flew": "fly", "flown": "fly", "flies": "fly",
    "forgot": "forget", "forgotten": "forget", "forgets": "forget",
    "grew": "grow", "grown": "grow", "grows": "grow",
    "heard": "hear", "hears": "hear",
    "hid": "hide", "hidden": "hide", "hides": "hide",
    "lay": "lie", "lain": "lie", "lies": "lie",
    "lost": "lose", "loses": "lose",
    "met": "meet", "meets": "meet",
    "paid": "pay", "pays": "pay",
    "put": "put", "puts": "put",
    "ran": "run", "runs": "run",
    "sang": "sing", "sung": "sing", "sings": "sing",
    "sat": "sit", "sits": "sit",
    "slept": "sleep", "sleeps": "sleep",
    "spoke": "speak", "spoken": "speak", "speaks": "speak",
    "spent": "spend", "spends": "spend",
    "stood": "stand", "stands": "stand",
    "swam": "swim", "swum": "swim", "swims": "swim",
    "taught": "teach", "teaches": "teach",
    "threw": "throw", "thrown": "throw", "throws": "throw",
    "understood": "understand", "understands": "understand",
    "woke": "wake", "woken": "wake", "wakes": "wake",
    "wore": "wear", "worn": "wear", "wears": "wear",
    "won": "win", "wins": "win",
    "wrote": "write", "written": "write", "writes": "write",
}


def _invert(table: dict[str, str]) -> dict[str, frozenset[str]]:
    inverse: dict[str, set[str]] = {}
    for form, lemma in table.items():
        inverse.setdefault(lemma, set()).add(form)
    return {lemma: frozenset(forms) for lemma, forms in inverse.items()}


_IRREGULAR_FORMS_OF = _invert({**IRREGULAR_PLURALS, **IRREGULAR_VERBS})


# ── Character-pattern helpers ───────────────────────────────────────────────

def is_vowel(ch: str) -> bool:
    return ch in VOWELS


def should_double(word: str) -> bool:
    """Whether the final consonant doubles before -ing/-ed/-er/-est.

    True when the word is at least 3 characters, ends consonant-vowel-
    consonant, and the last letter is not w, x or y: run -> running,
    stop -> stopping, but read -> reading and fix -> fixing.
    """
    if len(word) < 3:
        return False
    last, second, third = word[-1], word[-2], word[-3]
    if is_vowel(last):
        return False
    if not is_vowel(second):
        return False
    if is_vowel(third):
        return False
    if last in "wxy":
        return False
    return True


def _syllables(word: str) -> int:
    """Count vowel groups, a rough syllable count."""
    count = 0
    previous = False
    for ch in word:
        current = is_vowel(ch)
        if current and not previous:
            count += 1
        previous = current
    return count


def _consonant_before_y(word: str) -> bool:
    return len(word) > 1 and word.endswith("y") and not is_vowel(word[-2])


# ── Declarative suffix rules ────────────────────────────────────────────────

Guard = Callable[[str, str], bool]  # (token, stem) -> allowed


def _any_stem(token: str, stem: str) -> bool:
    return True


def _after_sibilant(token: str, stem: str) -> bool:
    return stem.endswith(SIBILANT_ENDINGS)


def _not_double_s(token: str, stem: str) -> bool:
    return not token.endswith("ss")


def _plural_s(token: str, stem: str) -> bool:
    return not token.endswith(("ss", "us", "is"))


def _would_not_double(token: str, stem: str) -> bool:
    # a one-syllable CVC stem would have doubled its consonant in the
    # surface form: "making" cannot come from "mak"
    return not (should_double(stem) and _syllables(stem) == 1)


@dataclass(frozen=True, slots=True)
class SuffixRule:
    """One suffix-stripping rule.

    The stem is ``token[:-len(suffix)]``; it must be at least MIN_STEM
    characters and pass ``guard``.  The plain candidate is
    ``stem + replacement``.  ``repairs`` adds alternative candidates from
    the same stem: "undouble" (stopp -> stop) and "restore_e" (mak -> make).
    """

    name: str
    group: str          # plural, verb, adjective
    suffix: str
    replacement: str = ""
    guard: Guard = _any_stem
    repairs: tuple[str, ...] = ()


LEMMA_RULES: tuple[SuffixRule, ...] = (
    # plural
    SuffixRule("plural-ies", "plural", "ies", "y"),
    SuffixRule("plural-es", "plural", "es", guard=_after_sibilant),
    SuffixRule("plural-s", "plural", "s", guard=_plural_s),
    # verb
    SuffixRule("verb-ied", "verb", "ied", "y"),
    SuffixRule("verb-ing", "verb", "ing", guard=_would_not_double,
               repairs=("restore_e", "undouble")),
    SuffixRule("verb-ed", "verb", "ed", guard=_would_not_double,
               repairs=("undouble", "restore_e")),
    SuffixRule("verb-s", "verb", "s", guard=_not_double_s),
    # adjective / adverb
    SuffixRule("adverb-ily", "adjective", "ily", "y"),
    SuffixRule("adverb-ly", "adjective", "ly"),
    SuffixRule("comparative-ier", "adjective", "ier", "y"),
    SuffixRule("superlative-iest", "adjective", "iest", "y"),
    SuffixRule("comparative-er", "adjective", "er", guard=_would_not_double,
               repairs=("undouble",)),
    SuffixRule("superlative-est", "adjective", "est", guard=_would_not_double,
               repairs=("undouble",)),
)


@dataclass(frozen=True, slots=True)
class MorphologicalCandidate:
    """A candidate lemma and the rule that produced it."""

    form: str
    rule: str
    consumed: int = 0   # length of the stripped suffix
    order: int = 0      # position of the rule in its table

    def sort_key(self) -> tuple[int, int, int, str]:
        return (-self.consumed, len(self.form), self.order, self.form)


def _undouble(stem: str) -> str | None:
    if len(stem) < 2 or stem[-1] != stem[-2] or is_vowel(stem[-1]):
        return None
    if stem[-1] in "lsz":
        return None
    single = stem[:-1]
    if len(single) < MIN_STEM or not should_double(single):
        return None
    return single


def apply_rule(rule: SuffixRule, token: str, order: int = 0) -> list[MorphologicalCandidate]:
    """Apply one rule to a token and return its candidates (maybe none)."""
    if not token.endswith(rule.suffix):
        return []
    stem = token[: -len(rule.suffix)]
    if len(stem) < MIN_STEM:
        return []

    consumed = len(rule.suffix)
    out: list[MorphologicalCandidate] = []
    if rule.guard(token, stem):
        out.append(MorphologicalCandidate(stem + rule.replacement, rule.name, consumed, order))

    for repair in rule.repairs:
        if repair == "undouble":
            single = _undouble(stem)
            if single is not None:
                out.append(MorphologicalCandidate(single, f"{rule.name}+undouble", consumed, order))
        elif repair == "restore_e":
            # loses to the plain stem on length whenever both exist
            if not stem.endswith("e"):
                out.append(MorphologicalCandidate(stem + "e", f"{rule.name}+e", consumed, order))
    return out


# ── Analyzer ────────────────────────────────────────────────────────────────

class MorphologyAnalyzer:
    """
    Downward stemming (lemma_of) and upward derivation (surface_forms_of).

    Stateless; the engine wraps lemma_of in its stem cache.
    """

    def __init__(self, rules: tuple[SuffixRule, ...] = LEMMA_RULES):
        self.rules = rules

    # ── Analysis (form -> lemma) ─────────────────────────────────────────

    def irregular_lemma(self, token: str) -> str | None:
        return IRREGULAR_PLURALS.get(token) or IRREGULAR_VERBS.get(token)

    def candidates(self, token: str) -> list[MorphologicalCandidate]:
        """All candidates from every rule, best first."""
        token = token.lower()
        found: list[MorphologicalCandidate] = []
        irregular = self.irregular_lemma(token)
        if irregular is not None:
            found.append(MorphologicalCandidate(irregular, "irregular", len(token), -1))

        rule_hits: list[MorphologicalCandidate] = []
        for order, rule in enumerate(self.rules):
            rule_hits.extend(apply_rule(rule, token, order))
        rule_hits.sort(key=MorphologicalCandidate.sort_key)
        found.extend(rule_hits)
        return found

    def stem_candidates(self, token: str) -> set[str]:
        """Union of every candidate stem (irregular and rule-based)."""
        return {c.form for c in self.candidates(token)}

    def lemma_of(self, token: str) -> str:
        """Best-guess lemma; the token itself when no rule applies.

        Reduction repeats until it settles ("readings" -> "reading" ->
        "read"), so the lemma of a lemma is itself.
        """
        lemma = token.lower()
        seen = {lemma}
        while True:
            found = self.candidates(lemma)
            if not found or found[0].form in seen:
                return lemma
            lemma = found[0].form
            seen.add(lemma)

    # ── Generation (lemma -> forms) ──────────────────────────────────────

    def surface_forms_of(self, lemma: str) -> set[str]:
        word = lemma.lower()
        if not word:
            return set()
        forms: set[str] = set()
        forms |= plural_forms(word)
        forms |= verb_forms(word)
        forms |= adjective_forms(word)
        forms |= _IRREGULAR_FORMS_OF.get(word, frozenset())
        forms.discard(word)
        return forms

    def all_forms(self, word: str) -> set[str]:
        """The word, its stem candidates, and the forms derived from it."""
        word = word.lower()
        return {word} | self.stem_candidates(word) | self.surface_forms_of(word)


# ── Generation rules ────────────────────────────────────────────────────────

def plural_forms(word: str) -> set[str]:
    forms = {word + "s"}
    if word.endswith(SIBILANT_ENDINGS):
        forms.add(word + "es")
    if _consonant_before_y(word):
        forms.add(word[:-1] + "ies")
    if word.endswith("f"):
        forms.add(word[:-1] + "ves")
    elif word.endswith("fe"):
        forms.add(word[:-2] + "ves")
    return forms


def verb_forms(word: str) -> set[str]:
    forms: set[str] = set()

    # third person singular
    if word.endswith(SIBILANT_ENDINGS):
        forms.add(word + "es")
    elif _consonant_before_y(word):
        forms.add(word[:-1] + "ies")
    else:
        forms.add(word + "s")

    # past tense / participle
    if word.endswith("e"):
        forms.add(word + "d")
    elif _consonant_before_y(word):
        forms.add(word[:-1] + "ied")
    elif should_double(word):
        forms.add(word + word[-1] + "ed")
    else:
        forms.add(word + "ed")

    # present participle
    if word.endswith("ie"):
        forms.add(word[:-2] + "ying")
    elif word.endswith("e") and not word.endswith("ee"):
        forms.add(word[:-1] + "ing")
    elif should_double(word):
        forms.add(word + word[-1] + "ing")
    else:
        forms.add(word + "ing")

    return forms


def adjective_forms(word: str) -> set[str]:
    forms: set[str] = set()

    # adverb
    if word.endswith("y"):
        forms.add(word[:-1] + "ily")
    elif word.endswith("le"):
        forms.add(word[:-2] + "ly")
    elif word.endswith("ic"):
        forms.add(word + "ally")
    else:
        forms.add(word + "ly")

    # comparative and superlative
    for suffix in ("er", "est"):
        if word.endswith("e"):
            forms.add(word + suffix[1:])
        elif _consonant_before_y(word):
            forms.add(word[:-1] + "i" + suffix)
        elif should_double(word):
            forms.add(word + word[-1] + suffix)
        else:
            forms.add(word + suffix)

    return forms
