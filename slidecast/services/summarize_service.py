"""
Slide-deck summarization pipeline.

source text -> statistics -> completion call -> salvage parse -> normalize
-> per-slide quality gate -> heuristic substitution -> SummaryResult

Only network-class failures of the completion call are converted into a
heuristic deck. Credential exhaustion and unusable answers propagate.
"""

import logging
from typing import List, Optional, Protocol, Tuple

from slidecast.models.schemas import (
    BULLET_MAX_CHARS,
    HEADLINE_MAX_CHARS,
    MAX_BULLETS,
    MIN_BULLETS,
    PARAGRAPH_MAX_CHARS,
    DocumentStats,
    SlideDeck,
    SummaryResult,
    deck_json_schema,
)
from slidecast.services.errors import is_network_error
from slidecast.services.heuristic_summarizer import build_fallback_deck, compute_document_stats
from slidecast.services.normalizer import normalize_deck
from slidecast.services.quality_gate import has_meaningful_content, is_weak_title
from slidecast.services.response_parser import require_structured_response

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = f"""You summarize documents into concise, video-ready slides.
Return exactly the requested number of slides, in the order the topics appear in the document.

Each slide needs:
- headline: Title Case, at most {HEADLINE_MAX_CHARS} characters, no emoji
- paragraph: 2-3 plain sentences carrying the main point, at most {PARAGRAPH_MAX_CHARS} characters
- bullets: {MIN_BULLETS} to {MAX_BULLETS} short supporting points, each at most {BULLET_MAX_CHARS} characters
- chart: null unless the document provides numbers worth plotting; then type bar, line or pie,
  non-empty categories and series of {{label, values}} with numeric values only

Also return docTitle: a specific title for the whole document (never just "Summary").
Prefer charts when numeric tokens are available. Valid JSON only."""


class CompletionClient(Protocol):
    async def complete(
        self,
        system: Optional[str],
        user: str,
        schema: Optional[dict] = None,
        temperature: float = 0.3,
        max_tokens: int = 1800,
    ) -> str:
        ...


def build_user_prompt(stats: DocumentStats, text: str) -> str:
    return "\n".join([
        f"Document characters: {stats.char_count}",
        f"Numeric tokens detected: {stats.numeric_tokens}",
        f"Detected sections: {stats.unique_sections}",
        f"Target slide count: {stats.target_slides}",
        "",
        "Document:",
        text,
    ])


def apply_quality_gate(deck: SlideDeck, fallback: SlideDeck, target: int) -> Tuple[SlideDeck, int]:
    """
    Replace thin slides with the fallback slide at the same position and
    fill positions the model left empty.

    Returns:
        (deck, number of slides taken from the fallback)
    """
    slides = list(deck.slides)
    doc_title = deck.doc_title
    replacements = 0

    for index, slide in enumerate(slides):
        if has_meaningful_content(slide) or index >= len(fallback.slides):
            continue
        logger.info(f"Slide {index + 1} ('{slide.headline}') is too thin; using heuristic content")
        slides[index] = fallback.slides[index]
        replacements += 1
        if index == 0 and is_weak_title(doc_title):
            doc_title = fallback.doc_title

    # The model returned fewer slides than planned
    while len(slides) < target and len(slides) < len(fallback.slides):
        slides.append(fallback.slides[len(slides)])
        replacements += 1

    return SlideDeck(doc_title=doc_title, slides=slides), replacements


async def summarize_to_slides(
    text: str,
    completion: CompletionClient,
    temperature: float = 0.3,
    max_tokens: int = 1800,
) -> SummaryResult:
    """
    Turn source text into a schema-valid slide deck.

    Raises:
        ValueError: the source text is empty
        ServiceError: non-network completion failure or an unusable response
        Exception: any other non-network error raised by the completion client
    """
    if not text or not text.strip():
        raise ValueError("No text content extracted from PDF")

    stats = compute_document_stats(text)
    target = stats.target_slides
    warnings: List[str] = []
    logger.info(
        f"Planning {target} slides ({stats.char_count} chars, "
        f"{stats.numeric_tokens} numeric tokens, {stats.unique_sections} sections)"
    )

    try:
        raw = await completion.complete(
            system=SYSTEM_PROMPT,
            user=build_user_prompt(stats, text),
            schema=deck_json_schema(),
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except Exception as e:
        if not is_network_error(e):
            raise
        logger.warning(f"Completion service unreachable, using heuristic summary: {e}")
        deck = build_fallback_deck(text, target)
        warnings.append(
            f"Summarizer unavailable ({str(e)[:160]}); generated heuristic summary instead."
        )
        stats = stats.model_copy(update={"planned_slides": len(deck.slides)})
        return SummaryResult(deck=deck, stats=stats, warnings=warnings)

    payload = require_structured_response(raw)
    deck = normalize_deck(payload, max_slides=target)

    fallback = build_fallback_deck(text, target)
    deck, replacements = apply_quality_gate(deck, fallback, target)

    if replacements:
        noun = "slide" if replacements == 1 else "slides"
        warnings.append(
            f"Replaced {replacements} {noun} with heuristic summaries because the model output was too thin."
        )

    stats = stats.model_copy(update={
        "planned_slides": len(deck.slides),
        "fallback_replacements": replacements,
    })
    logger.info(f"Planned {len(deck.slides)} slides ({replacements} heuristic replacements)")
    return SummaryResult(deck=deck, stats=stats, warnings=warnings)
