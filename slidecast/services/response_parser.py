"""
Salvage parsing for completion responses.

Models are asked for strict JSON but regularly answer with fenced JSON,
JSON wrapped in chatter, or plain prose. `parse_structured_response` tries,
in order: the whole payload, a fenced code block, the outermost braces, and
finally slide-like blocks recovered from free text. It never raises; the
result says whether a document was recognized.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from slidecast.models.schemas import MAX_BULLETS
from slidecast.services.errors import ErrorKind, ServiceError
from slidecast.services.text_utils import clean_bullet_line, clean_headline_text

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
_SLIDE_MARKER = re.compile(
    r"^[ \t]*(?:#+[ \t]*)?\**[ \t]*Slide[ \t]+\d+[ \t]*[:.\-][ \t]*\**[ \t]*(.*)$",
    re.IGNORECASE | re.MULTILINE,
)
_ITALIC_LINE = re.compile(r"^\*([^*]+)\*$")
_BLANK_LINE = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class ParseResult:
    """Either a recognized document (`payload`) or the reason nothing was found."""
    payload: Any = None
    reason: Optional[str] = None
    strategy: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.payload is not None

    @classmethod
    def recognized(cls, payload: Any, strategy: str) -> "ParseResult":
        return cls(payload=payload, strategy=strategy)

    @classmethod
    def malformed(cls, reason: str) -> "ParseResult":
        return cls(reason=reason)


def _safe_load(candidate: str) -> Any:
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None
    # A bare string or number is valid JSON but not a document
    return data if isinstance(data, (dict, list)) else None


def try_extract_json(content: str) -> Optional[ParseResult]:
    cleaned = content.strip()

    direct = _safe_load(cleaned)
    if direct is not None:
        return ParseResult.recognized(direct, "direct")

    fenced = _FENCED_BLOCK.search(cleaned)
    if fenced:
        parsed = _safe_load(fenced.group(1).strip())
        if parsed is not None:
            return ParseResult.recognized(parsed, "fenced")

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        parsed = _safe_load(cleaned[first_brace:last_brace + 1])
        if parsed is not None:
            return ParseResult.recognized(parsed, "braces")

    return None


def _block_lines(block: str) -> List[str]:
    return [line.strip() for line in block.split("\n") if line.strip()]


def parse_explicit_slide_blocks(text: str) -> List[Dict[str, Any]]:
    """Recover slides introduced by "Slide N:" markers (bold or heading forms too)."""
    markers = list(_SLIDE_MARKER.finditer(text))
    slides = []
    for i, marker in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
        inline_title = marker.group(1).strip()
        lines = _block_lines(text[marker.end():end])

        if inline_title:
            headline_line = inline_title
        elif lines:
            headline_line = lines.pop(0)
        else:
            continue

        italic = _ITALIC_LINE.match(headline_line)
        if italic:
            headline_line = italic.group(1)

        bullets = [b for b in (clean_bullet_line(line) for line in lines) if b]
        slides.append({
            "headline": clean_headline_text(headline_line) or f"Slide {len(slides) + 1}",
            "bullets": bullets[:MAX_BULLETS],
        })
    return slides


def parse_grouped_sections(text: str) -> List[Dict[str, Any]]:
    """Treat each blank-line separated block as headline + bullet candidates."""
    slides = []
    for block in _BLANK_LINE.split(text):
        lines = _block_lines(block)
        if len(lines) < 2:
            continue
        bullets = [b for b in (clean_bullet_line(line) for line in lines[1:]) if b]
        if not bullets:
            continue
        slides.append({
            "headline": clean_headline_text(lines[0]) or f"Slide {len(slides) + 1}",
            "bullets": bullets[:MAX_BULLETS],
        })
    return slides


def parse_slides_from_text(content: str) -> Optional[ParseResult]:
    text = content.replace("\r\n", "\n")

    slides = parse_explicit_slide_blocks(text)
    strategy = "slide-markers"
    if not slides:
        slides = parse_grouped_sections(text)
        strategy = "grouped-sections"
    if not slides:
        return None

    payload = {
        "docTitle": slides[0]["headline"],
        "slides": [
            {"headline": s["headline"], "paragraph": "", "bullets": s["bullets"], "chart": None}
            for s in slides
        ],
    }
    return ParseResult.recognized(payload, strategy)


def parse_structured_response(content: Optional[str]) -> ParseResult:
    if not content or not content.strip():
        return ParseResult.malformed("empty response")

    result = try_extract_json(content) or parse_slides_from_text(content)
    if result is None:
        return ParseResult.malformed("response was not valid structured data")

    if result.strategy != "direct":
        logger.info(f"Salvaged structured response via {result.strategy}")
    return result


def require_structured_response(content: Optional[str], service: str = "Longcat") -> Any:
    """Return the salvaged payload or raise a non-retryable MALFORMED error."""
    result = parse_structured_response(content)
    if not result.ok:
        preview = (content or "")[:200]
        logger.error(f"Unusable {service} response ({result.reason}): {preview}")
        raise ServiceError(
            f"{service} response was not valid structured data ({result.reason})",
            kind=ErrorKind.MALFORMED,
            service=service,
        )
    return result.payload
