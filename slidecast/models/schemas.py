import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

MIN_SLIDES = 2
MAX_SLIDES = 8
MIN_BULLETS = 2
MAX_BULLETS = 5

DOC_TITLE_MAX_CHARS = 120
HEADLINE_MAX_CHARS = 80
PARAGRAPH_MAX_CHARS = 420
BULLET_MAX_CHARS = 120

MAX_CHART_CATEGORIES = 20
MAX_CHART_VALUES = 20
MAX_CHART_SERIES = 6


class ChartType(str, Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"


class ChartSeries(BaseModel):
    label: str = Field(min_length=1)
    values: List[float] = Field(min_length=1, max_length=MAX_CHART_VALUES)

    @field_validator("values")
    @classmethod
    def values_are_finite(cls, values: List[float]) -> List[float]:
        if not all(math.isfinite(v) for v in values):
            raise ValueError("chart values must be finite numbers")
        return values


class Chart(BaseModel):
    type: ChartType
    categories: List[str] = Field(min_length=1, max_length=MAX_CHART_CATEGORIES)
    series: List[ChartSeries] = Field(min_length=1, max_length=MAX_CHART_SERIES)


class Slide(BaseModel):
    headline: str = Field(min_length=1, max_length=HEADLINE_MAX_CHARS)
    paragraph: str = Field(
        min_length=1,
        max_length=PARAGRAPH_MAX_CHARS,
        description="Primary narrative content of the slide"
    )
    bullets: List[str] = Field(min_length=MIN_BULLETS, max_length=MAX_BULLETS)
    chart: Optional[Chart] = Field(
        default=None,
        description="Only present when the source carries quantitative data"
    )

    @field_validator("bullets")
    @classmethod
    def bullets_are_distinct(cls, bullets: List[str]) -> List[str]:
        if any(not b or len(b) > BULLET_MAX_CHARS for b in bullets):
            raise ValueError(f"bullets must be non-empty and at most {BULLET_MAX_CHARS} chars")
        if len({b.lower() for b in bullets}) != len(bullets):
            raise ValueError("bullets must not repeat")
        return bullets


class SlideDeck(BaseModel):
    doc_title: str = Field(min_length=1, max_length=DOC_TITLE_MAX_CHARS)
    slides: List[Slide] = Field(min_length=MIN_SLIDES, max_length=MAX_SLIDES)


class DocumentStats(BaseModel):
    char_count: int
    numeric_tokens: int
    unique_sections: int
    target_slides: int
    planned_slides: Optional[int] = None
    fallback_replacements: Optional[int] = None


class SummaryResult(BaseModel):
    deck: SlideDeck
    stats: DocumentStats
    warnings: List[str] = Field(default_factory=list)


class SummarizeTextRequest(BaseModel):
    text: str


class ProgressEntry(BaseModel):
    step: str
    status: str  # "started", "info", "completed", "error"
    detail: Optional[str] = None


class VoiceoverClip(BaseModel):
    index: int
    text: str
    file_path: str
    duration_seconds: float


def deck_json_schema(min_slides: int = MIN_SLIDES, max_slides: int = MAX_SLIDES) -> dict:
    """
    JSON schema sent to the completion service as a structured-output hint.

    Written by hand instead of derived from the pydantic models because
    strict structured-output endpoints reject `$defs` references.
    """
    chart_schema = {
        "anyOf": [
            {"type": "null"},
            {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "type": {"type": "string", "enum": [t.value for t in ChartType]},
                    "categories": {"type": "array", "minItems": 1, "items": {"type": "string"}},
                    "series": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "additionalProperties": False,
                            "properties": {
                                "label": {"type": "string"},
                                "values": {"type": "array", "minItems": 1, "items": {"type": "number"}},
                            },
                            "required": ["label", "values"],
                        },
                    },
                },
                "required": ["type", "categories", "series"],
            },
        ]
    }
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "docTitle": {"type": "string"},
            "slides": {
                "type": "array",
                "minItems": min_slides,
                "maxItems": max_slides,
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "headline": {"type": "string"},
                        "paragraph": {"type": "string"},
                        "bullets": {
                            "type": "array",
                            "minItems": MIN_BULLETS,
                            "maxItems": MAX_BULLETS,
                            "items": {"type": "string"},
                        },
                        "chart": chart_schema,
                    },
                    "required": ["headline", "paragraph", "bullets", "chart"],
                },
            },
        },
        "required": ["docTitle", "slides"],
    }
