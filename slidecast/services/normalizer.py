"""
Content normalizer: coerce whatever the model produced into a SlideDeck.

The output always satisfies the SlideDeck model constraints. Placeholders
and filler bullets pad thin content, oversized text is cut at word
boundaries, and malformed charts are dropped rather than repaired.
Normalizing an already-normalized deck returns it unchanged.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from slidecast.models.schemas import (
    BULLET_MAX_CHARS,
    DOC_TITLE_MAX_CHARS,
    HEADLINE_MAX_CHARS,
    MAX_BULLETS,
    MAX_CHART_CATEGORIES,
    MAX_CHART_SERIES,
    MAX_CHART_VALUES,
    MAX_SLIDES,
    MIN_BULLETS,
    MIN_SLIDES,
    PARAGRAPH_MAX_CHARS,
    ChartType,
    SlideDeck,
)
from slidecast.services.text_utils import (
    clean_bullet_line,
    clean_headline_text,
    ensure_terminal_punctuation,
    sanitize_text,
    split_sentences,
    truncate_at_word,
)

logger = logging.getLogger(__name__)

DEFAULT_DOC_TITLE = "Generated Summary"
PLACEHOLDER_PARAGRAPH = "Key details for this section were not available in the generated summary."
FILLER_BULLETS = (
    "Add supporting detail here.",
    "Describe the key point clearly.",
    "Provide an example or note.",
)

HEADLINE_KEYS = ("headline", "title", "heading", "name")
PARAGRAPH_KEYS = ("paragraph", "summary", "body", "text", "content", "description")
BULLET_KEYS = ("bullets", "points", "key_points", "keyPoints", "bulletPoints", "items")
SLIDE_LIST_KEYS = ("slides", "sections")
TITLE_KEYS = ("doc_title", "docTitle", "title", "documentTitle")


def _first_value(data: Dict[str, Any], keys) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, "", []):
            return value
    return None


def _looks_like_slide(data: Dict[str, Any]) -> bool:
    has_headline = _first_value(data, HEADLINE_KEYS) is not None
    has_body = _first_value(data, PARAGRAPH_KEYS) is not None or _first_value(data, BULLET_KEYS) is not None
    return has_headline and has_body


def extract_slide_list(raw: Any) -> List[Any]:
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, dict):
        return []
    for key in SLIDE_LIST_KEYS:
        if isinstance(raw.get(key), list):
            return raw[key]
    if _looks_like_slide(raw):
        return [raw]
    return []


def extract_doc_title(raw: Any) -> str:
    title = _first_value(raw, TITLE_KEYS) if isinstance(raw, dict) else None
    # A single-slide object uses `title` for its own headline
    if isinstance(raw, dict) and not any(isinstance(raw.get(k), list) for k in SLIDE_LIST_KEYS):
        if _looks_like_slide(raw):
            title = _first_value(raw, ("doc_title", "docTitle", "documentTitle"))
    return normalize_doc_title(title)


def normalize_doc_title(value: Any) -> str:
    title = clean_headline_text(value) if isinstance(value, str) else ""
    title = truncate_at_word(title, DOC_TITLE_MAX_CHARS)
    return title or DEFAULT_DOC_TITLE


def normalize_headline(value: Any, index: int) -> str:
    headline = clean_headline_text(value) if isinstance(value, (str, int, float)) else ""
    headline = truncate_at_word(headline, HEADLINE_MAX_CHARS)
    return headline or f"Section {index + 1}"


def normalize_paragraph(value: Any, bullets: List[str]) -> str:
    if isinstance(value, list):
        value = " ".join(str(v) for v in value if v is not None)
    paragraph = sanitize_text(value) if isinstance(value, (str, int, float)) else ""
    if not paragraph and bullets:
        paragraph = " ".join(ensure_terminal_punctuation(b) for b in bullets)
    paragraph = truncate_at_word(paragraph, PARAGRAPH_MAX_CHARS, ellipsis="...")
    return paragraph or PLACEHOLDER_PARAGRAPH


def _dedupe(bullets: List[str]) -> List[str]:
    seen = set()
    unique = []
    for bullet in bullets:
        key = bullet.lower().rstrip(".!?;:")
        if bullet and key not in seen:
            seen.add(key)
            unique.append(bullet)
    return unique


def clean_bullets(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split("\n")
    if not isinstance(value, list):
        return []
    cleaned = []
    for entry in value:
        if not isinstance(entry, (str, int, float)):
            continue
        bullet = truncate_at_word(clean_bullet_line(entry), BULLET_MAX_CHARS, ellipsis="...")
        cleaned.append(bullet)
    return _dedupe(cleaned)[:MAX_BULLETS]


def pad_bullets(bullets: List[str], paragraph: str) -> List[str]:
    """Top up to MIN_BULLETS from paragraph sentences, then filler strings."""
    bullets = list(bullets)
    if len(bullets) >= MIN_BULLETS:
        return bullets

    if paragraph != PLACEHOLDER_PARAGRAPH:
        for sentence in split_sentences(paragraph):
            if len(bullets) >= MAX_BULLETS:
                break
            candidate = truncate_at_word(clean_bullet_line(sentence), BULLET_MAX_CHARS, ellipsis="...")
            bullets = _dedupe(bullets + [candidate])

    filler_index = 0
    while len(bullets) < MIN_BULLETS:
        candidate = FILLER_BULLETS[filler_index % len(FILLER_BULLETS)]
        filler_index += 1
        bullets = _dedupe(bullets + [candidate])
        if filler_index > len(FILLER_BULLETS) * 2:
            break
    return bullets


def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "").rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _numeric_values(values: Any) -> List[float]:
    if not isinstance(values, list):
        return []
    numbers = [_finite_number(v) for v in values]
    return [n for n in numbers if n is not None][:MAX_CHART_VALUES]


def normalize_chart(value: Any) -> Optional[Dict[str, Any]]:
    """Return a fully valid chart dict, or None when anything essential is missing."""
    if not isinstance(value, dict):
        return None

    chart_type = value.get("type")
    if isinstance(chart_type, ChartType):
        chart_type = chart_type.value
    chart_type = str(chart_type or "").strip().lower()
    if chart_type not in {t.value for t in ChartType}:
        return None

    raw_categories = value.get("categories")
    categories = []
    if isinstance(raw_categories, list):
        for category in raw_categories:
            if isinstance(category, bool) or not isinstance(category, (str, int, float)):
                continue
            label = truncate_at_word(sanitize_text(category), BULLET_MAX_CHARS)
            if label:
                categories.append(label)
    categories = categories[:MAX_CHART_CATEGORIES]

    raw_series = value.get("series")
    series = []
    if isinstance(raw_series, list) and raw_series and all(
        _finite_number(v) is not None for v in raw_series
    ):
        # A flat numeric array is a single unnamed series
        label = sanitize_text(value.get("label")) if isinstance(value.get("label"), str) else ""
        values = _numeric_values(raw_series)
        if values:
            series.append({"label": truncate_at_word(label, BULLET_MAX_CHARS) or "Values", "values": values})
    elif isinstance(raw_series, list):
        for entry in raw_series:
            if not isinstance(entry, dict):
                continue
            label = entry.get("label", entry.get("name"))
            label = truncate_at_word(sanitize_text(label), BULLET_MAX_CHARS) if isinstance(label, (str, int, float)) else ""
            values = _numeric_values(entry.get("values", entry.get("data")))
            if label and values:
                series.append({"label": label, "values": values})
    series = series[:MAX_CHART_SERIES]

    if not categories or not series:
        return None
    return {"type": chart_type, "categories": categories, "series": series}


def normalize_slide(raw: Any, index: int) -> Dict[str, Any]:
    if isinstance(raw, str):
        raw = {"paragraph": raw}
    if not isinstance(raw, dict):
        raw = {}

    bullets = clean_bullets(_first_value(raw, BULLET_KEYS))
    paragraph = normalize_paragraph(_first_value(raw, PARAGRAPH_KEYS), bullets)
    return {
        "headline": normalize_headline(_first_value(raw, HEADLINE_KEYS), index),
        "paragraph": paragraph,
        "bullets": pad_bullets(bullets, paragraph),
        "chart": normalize_chart(raw.get("chart")),
    }


def placeholder_slide(index: int) -> Dict[str, Any]:
    return normalize_slide({}, index)


def normalize_deck(raw: Any, max_slides: int = MAX_SLIDES) -> SlideDeck:
    """
    Coerce an arbitrary parsed payload into a schema-valid SlideDeck.

    Args:
        raw: Object or array from the salvage parser (or a dumped SlideDeck)
        max_slides: Upper bound on kept slides, clamped to the schema bounds
    """
    limit = min(MAX_SLIDES, max(MIN_SLIDES, max_slides))
    raw_slides = extract_slide_list(raw)[:limit]

    slides = [normalize_slide(s, i) for i, s in enumerate(raw_slides)]
    while len(slides) < MIN_SLIDES:
        slides.append(placeholder_slide(len(slides)))

    if len(raw_slides) < MIN_SLIDES:
        logger.info(f"Padded deck from {len(raw_slides)} to {len(slides)} slides")

    return SlideDeck.model_validate({"doc_title": extract_doc_title(raw), "slides": slides})
