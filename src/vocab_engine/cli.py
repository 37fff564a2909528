#!/usr/bin/env python3
"""
Vocabulary lexical-resolution CLI.

Loads feeds from vocab_engine.toml by default, or override with flags:

    python -m vocab_engine.cli --lookup "Running"
    python -m vocab_engine.cli --lookup bank --context "deposited money at the bank"
    python -m vocab_engine.cli --lexicon data/*.json --lemma studies
    python -m vocab_engine.cli --kaoyan data/KaoYan_1.json --search cancel
    python -m vocab_engine.cli --keywords "The river bank was muddy after the rain"
"""

import argparse
import logging
import sys
from pathlib import Path


def _find_default_config() -> Path | None:
    """Look for vocab_engine.toml in CWD."""
    candidate = Path("vocab_engine.toml")
    if candidate.exists():
        return candidate
    return None


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Resolve words against a vocabulary lexicon"
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Path to TOML config file (default: auto-detect vocab_engine.toml)",
    )
    parser.add_argument(
        "--lexicon",
        nargs="+",
        help="Path(s) to dictionary feed JSON (overrides config)",
    )
    parser.add_argument(
        "--kaoyan",
        nargs="+",
        help="Path(s) to word-book JSON-lines files (overrides config)",
    )
    parser.add_argument(
        "--lookup",
        help="Resolve a word and show the chosen sense",
    )
    parser.add_argument(
        "--context",
        default="",
        help="Sentence the word appeared in (use with --lookup)",
    )
    parser.add_argument(
        "--lemma",
        help="Show the lemma of a word form",
    )
    parser.add_argument(
        "--forms",
        help="Generate inflected forms of a lemma",
    )
    parser.add_argument(
        "--search",
        help="Search headwords and meanings",
    )
    parser.add_argument(
        "--keywords",
        help="Extract keywords from a piece of text",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    # ── Build engine ─────────────────────────────────────────────────────

    from vocab_engine.engine import LexicalEngine

    if args.lexicon or args.kaoyan:
        engine = LexicalEngine()
        engine.load(*(args.lexicon or ()), kaoyan=args.kaoyan or ())
    else:
        config_path = Path(args.config) if args.config else _find_default_config()
        if config_path is None:
            # text-only commands work without a lexicon
            if not (args.lemma or args.forms or args.keywords):
                parser.error(
                    "No vocab_engine.toml found and no --lexicon/--kaoyan flags given.\n"
                    "  Either create a config file or pass flags explicitly."
                )
            engine = LexicalEngine()
        else:
            engine = LexicalEngine.from_config(config_path)

    with engine:
        engine.wait_until_loaded()
        print(engine.summary())
        print()

        # ── Lookup ───────────────────────────────────────────────────────

        if args.lookup:
            if not engine.available:
                print("Lexicon not available.", file=sys.stderr)
                sys.exit(1)
            result = engine.lookup(args.lookup, context=args.context)
            if result is None:
                print(f"'{args.lookup}' not found")
            else:
                m = result.match
                print(f"═══ '{args.lookup}' -> '{result.headword}' ({m.stage}, {m.similarity:.3f}) ═══")
                entry = result.entry
                if entry.phonetics:
                    print(f"  /{' / '.join(entry.phonetics)}/")
                for d in entry.definitions:
                    marker = "*" if d is result.definition else " "
                    extra = f" ({d.secondary_meaning})" if d.secondary_meaning else ""
                    print(f" {marker} [{d.pos}] {d.meaning}{extra}")
            print()

        # ── Lemma / forms ────────────────────────────────────────────────

        if args.lemma:
            print(f"Lemma of '{args.lemma}': {engine.lemma_of(engine.normalize(args.lemma))}")
            print()

        if args.forms:
            forms = sorted(engine.surface_forms_of(engine.normalize(args.forms)))
            print(f"═══ Forms of '{args.forms}' ═══")
            for form in forms:
                print(f"  {form}")
            print()

        # ── Search ───────────────────────────────────────────────────────

        if args.search:
            hits = engine.search(args.search)
            if hits:
                for entry in hits:
                    primary = entry.primary
                    print(f"  {entry.headword:20s} {primary.meaning if primary else ''}")
            else:
                print(f"No entries match '{args.search}'.")
            print()

        # ── Keywords ─────────────────────────────────────────────────────

        if args.keywords:
            print(f"Keywords: {', '.join(engine.extract_keywords(args.keywords))}")
            print()


if __name__ == "__main__":
    main()
