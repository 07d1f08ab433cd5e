"""
Plain-text helpers shared by the parser, normalizer and fallback summarizer.

Slide text is rendered by tools that only handle a constrained character
set, so everything passes through `sanitize_text` first. Every helper is
idempotent: applying it to its own output changes nothing.
"""

import re
import unicodedata
from typing import List

TYPOGRAPHIC_REPLACEMENTS = {
    "\u2018": "'",  # single quotes
    "\u2019": "'",
    "\u201a": "'",
    "\u201b": "'",
    "\u2032": "'",
    "\u201c": '"',  # double quotes
    "\u201d": '"',
    "\u201e": '"',
    "\u201f": '"',
    "\u2033": '"',
    "\u00ab": '"',
    "\u00bb": '"',
    "\u2010": "-",  # hyphens and dashes
    "\u2011": "-",
    "\u2012": "-",
    "\u2013": "-",
    "\u2014": "-",
    "\u2015": "-",
    "\u2212": "-",
    "\u2026": "...",
    "\u2022": "-",  # bullet glyphs
    "\u2023": "-",
    "\u2043": "-",
    "\u25aa": "-",
    "\u25cf": "-",
    "\u00b7": "-",
}

_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_BULLET_PREFIX = re.compile(r"^(?:[-*+>~|]+\s*|\d{1,2}[.)]\s+)+")
_HEADLINE_DECORATION = re.compile(r"^(?:[\s#*\-+>~|=_:.,;!?]+|\d{1,2}[.)]\s+)+")
_TRAILING_CUT = re.compile(r"[\s,;:\-]+$")


def sanitize_text(value) -> str:
    """
    Reduce arbitrary text to single-line, printable, mostly-ASCII text.

    Typographic punctuation is transliterated, accents are decomposed and
    dropped, newlines and tabs become spaces, and control characters and
    pictographic symbols (emoji) are removed.
    """
    if value is None:
        return ""
    # Decompose first: NFKD can itself produce typographic dashes and quotes
    text = unicodedata.normalize("NFKD", str(value))
    for source, target in TYPOGRAPHIC_REPLACEMENTS.items():
        text = text.replace(source, target)

    kept = []
    for ch in text:
        if ch in "\n\r\t\v\f":
            kept.append(" ")
            continue
        category = unicodedata.category(ch)
        if category.startswith("C"):
            continue
        if ord(ch) > 127 and (category == "Mn" or category in ("So", "Sk")):
            continue
        kept.append(ch)
    return _WHITESPACE.sub(" ", "".join(kept)).strip()


def truncate_at_word(text: str, limit: int, ellipsis: str = "") -> str:
    """Cut `text` to at most `limit` chars, preferring the last word boundary."""
    if len(text) <= limit:
        return text
    budget = max(1, limit - len(ellipsis))
    cut = text[:budget]
    boundary = cut.rfind(" ")
    if boundary >= budget * 0.6:
        cut = cut[:boundary]
    cut = _TRAILING_CUT.sub("", cut) or text[:budget].strip()
    return f"{cut}{ellipsis}"


def clean_bullet_line(line: str) -> str:
    text = sanitize_text(sanitize_text(line).replace("**", ""))
    return _BULLET_PREFIX.sub("", text).strip()


def clean_headline_text(line: str) -> str:
    text = sanitize_text(sanitize_text(line).replace("**", ""))
    return _HEADLINE_DECORATION.sub("", text).strip()


def split_sentences(text: str) -> List[str]:
    """
    Split prose on sentence punctuation, falling back to semicolons when
    the text has no sentence boundaries at all.
    """
    collapsed = _WHITESPACE.sub(" ", text or "").strip()
    if not collapsed:
        return []
    sentences = [s.strip() for s in _SENTENCE_BOUNDARY.split(collapsed) if s.strip()]
    if len(sentences) <= 1 and ";" in collapsed:
        sentences = [s.strip() for s in collapsed.split(";") if s.strip()]
    return sentences


def ensure_terminal_punctuation(text: str) -> str:
    text = text.strip()
    if not text or text[-1] in ".!?":
        return text
    return f"{text}."
