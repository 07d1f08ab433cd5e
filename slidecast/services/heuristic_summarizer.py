"""
Heuristic Fallback Summarizer

Deterministic, network-free extractive summary used when the completion
service is unreachable, and as a per-slide donor when the model returns
thin slides. Sentences are split into contiguous chunks; each chunk
becomes one slide.
"""

import logging
import math
import re
from typing import List

from slidecast.models.schemas import (
    BULLET_MAX_CHARS,
    DOC_TITLE_MAX_CHARS,
    HEADLINE_MAX_CHARS,
    MAX_SLIDES,
    MIN_SLIDES,
    PARAGRAPH_MAX_CHARS,
    DocumentStats,
    SlideDeck,
)
from slidecast.services.normalizer import normalize_deck
from slidecast.services.text_utils import sanitize_text, split_sentences, truncate_at_word

logger = logging.getLogger(__name__)

NUMERIC_TOKEN = re.compile(r"\b\d+(?:\.\d+)?\b")
SECTION_BREAK = re.compile(r"\n\s*\n")
SECTION_MIN_CHARS = 120
SECTION_KEY_CHARS = 80

FALLBACK_BULLETS_PER_SLIDE = 4
HEADLINE_WORDS = 7

# (exclusive char ceiling, max unique sections or None, slide count)
SLIDE_COUNT_THRESHOLDS = (
    (1200, 1, 2),
    (2600, 2, 3),
    (4200, None, 4),
    (6200, None, 5),
    (8800, None, 6),
)


def count_numeric_tokens(text: str) -> int:
    return len(NUMERIC_TOKEN.findall(text))


def count_unique_sections(text: str) -> int:
    sections = [s.strip() for s in SECTION_BREAK.split(text)]
    sections = [s for s in sections if len(s) >= SECTION_MIN_CHARS]
    return len({s[:SECTION_KEY_CHARS] for s in sections})


def determine_slide_count(char_count: int, unique_sections: int) -> int:
    count = MAX_SLIDES
    for ceiling, max_sections, slides in SLIDE_COUNT_THRESHOLDS:
        if char_count < ceiling and (max_sections is None or unique_sections <= max_sections):
            count = slides
            break
    else:
        if char_count < 11500 or unique_sections >= 6:
            count = 7

    # Many distinct sections deserve room even in a short document
    if unique_sections >= 5:
        count = max(count, 6)
    return min(MAX_SLIDES, max(MIN_SLIDES, count))


def compute_document_stats(text: str) -> DocumentStats:
    char_count = len(text)
    unique_sections = count_unique_sections(text)
    return DocumentStats(
        char_count=char_count,
        numeric_tokens=count_numeric_tokens(text),
        unique_sections=unique_sections,
        target_slides=determine_slide_count(char_count, unique_sections),
    )


def chunk_sentences(sentences: List[str], target_count: int) -> List[List[str]]:
    if not sentences:
        return []
    size = math.ceil(len(sentences) / max(1, target_count))
    return [sentences[i:i + size] for i in range(0, len(sentences), size)]


def derive_headline(sentences: List[str], index: int) -> str:
    words = sanitize_text(sentences[0] if sentences else "").split()[:HEADLINE_WORDS]
    words = [w[:1].upper() + w[1:] for w in words]
    headline = " ".join(words).rstrip(".,;:!?")
    return truncate_at_word(headline, HEADLINE_MAX_CHARS) or f"Section {index + 1}"


def derive_doc_title(text: str, fallback: str) -> str:
    for line in (text or "").splitlines():
        candidate = sanitize_text(line)
        if len(candidate) >= 4 and any(ch.isalpha() for ch in candidate):
            return truncate_at_word(candidate, DOC_TITLE_MAX_CHARS)
    return fallback


def build_fallback_deck(text: str, target_count: int) -> SlideDeck:
    """
    Build a deck from the source text alone.

    The same text and target always produce the same slides.
    """
    target = min(MAX_SLIDES, max(MIN_SLIDES, target_count))
    chunks = chunk_sentences(split_sentences(sanitize_text(text)), target)

    slides = []
    for index, chunk in enumerate(chunks):
        slides.append({
            "headline": derive_headline(chunk, index),
            "paragraph": truncate_at_word(" ".join(chunk), PARAGRAPH_MAX_CHARS, ellipsis="..."),
            "bullets": [
                truncate_at_word(sentence, BULLET_MAX_CHARS, ellipsis="...")
                for sentence in chunk[:FALLBACK_BULLETS_PER_SLIDE]
            ],
            "chart": None,
        })

    first_headline = slides[0]["headline"] if slides else ""
    doc_title = derive_doc_title(text, first_headline)
    logger.info(f"Built heuristic summary with {len(slides)} slides from {len(text)} chars")
    return normalize_deck({"doc_title": doc_title, "slides": slides}, max_slides=target)
