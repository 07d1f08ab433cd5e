from typing import List

from slidecast.models.schemas import Slide
from slidecast.services.normalizer import FILLER_BULLETS, PLACEHOLDER_PARAGRAPH

WEAK_TITLES = {
    "",
    "summary",
    "generated summary",
    "document summary",
    "overview",
    "untitled",
    "document",
    "presentation",
    "section 1",
    "slide 1",
}

PARAGRAPH_RICH_CHARS = 80
PARAGRAPH_SUPPORTED_CHARS = 40
BULLETS_TOTAL_CHARS = 50
SUPPORTING_BULLETS_CHARS = 30
SUBSTANTIAL_BULLET_CHARS = 20

_PLACEHOLDER_BULLETS = {b.lower() for b in FILLER_BULLETS} | {PLACEHOLDER_PARAGRAPH.lower()}


def real_bullets(slide: Slide) -> List[str]:
    """Bullets that carry content, i.e. not filler or placeholder text."""
    return [b for b in slide.bullets if b.strip() and b.lower() not in _PLACEHOLDER_BULLETS]


def has_meaningful_content(slide: Slide) -> bool:
    """
    A slide is worth keeping when it has a rich paragraph, two or more
    solid bullets, or a medium paragraph backed by some bullet content.
    """
    paragraph = slide.paragraph.strip()
    paragraph_ok = bool(paragraph) and paragraph != PLACEHOLDER_PARAGRAPH
    bullets = real_bullets(slide)
    bullet_chars = sum(len(b) for b in bullets)

    if paragraph_ok and len(paragraph) >= PARAGRAPH_RICH_CHARS:
        return True
    if len(bullets) >= 2 and bullet_chars >= BULLETS_TOTAL_CHARS:
        return True
    if paragraph_ok and len(paragraph) >= PARAGRAPH_SUPPORTED_CHARS:
        substantial = any(len(b) >= SUBSTANTIAL_BULLET_CHARS for b in bullets)
        return substantial or bullet_chars >= SUPPORTING_BULLETS_CHARS
    return False


def is_weak_title(title: str) -> bool:
    return (title or "").strip().lower() in WEAK_TITLES
