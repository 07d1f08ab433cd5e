"""
Tests for slidecast.services.normalizer

The normalizer must turn anything into a valid SlideDeck, so a good part
of these tests throws hostile payloads at it and checks the invariants.
"""

import math

import pytest

from slidecast.models.schemas import (
    BULLET_MAX_CHARS,
    HEADLINE_MAX_CHARS,
    MAX_BULLETS,
    MAX_SLIDES,
    MIN_BULLETS,
    MIN_SLIDES,
    PARAGRAPH_MAX_CHARS,
    SlideDeck,
)
from slidecast.services.normalizer import (
    DEFAULT_DOC_TITLE,
    FILLER_BULLETS,
    PLACEHOLDER_PARAGRAPH,
    normalize_chart,
    normalize_deck,
)


def assert_schema_valid(deck: SlideDeck):
    assert deck.doc_title
    assert MIN_SLIDES <= len(deck.slides) <= MAX_SLIDES
    for slide in deck.slides:
        assert slide.headline and len(slide.headline) <= HEADLINE_MAX_CHARS
        assert slide.paragraph and len(slide.paragraph) <= PARAGRAPH_MAX_CHARS
        assert MIN_BULLETS <= len(slide.bullets) <= MAX_BULLETS
        assert all(b and len(b) <= BULLET_MAX_CHARS for b in slide.bullets)
        assert len({b.lower() for b in slide.bullets}) == len(slide.bullets)
        if slide.chart is not None:
            assert slide.chart.categories
            assert slide.chart.series
            for series in slide.chart.series:
                assert series.label
                assert series.values and all(math.isfinite(v) for v in series.values)


HOSTILE_INPUTS = [
    None,
    "",
    42,
    [],
    {},
    {"slides": "not a list"},
    {"slides": [None, 7, [], {"headline": None}]},
    {"docTitle": "   ", "slides": [{"headline": "", "paragraph": "", "bullets": []}]},
    {"slides": [{"headline": "\u2728\U0001F680 **Launch** \u2014 \u201cPhase\u201d 2\u2026", "bullets": ["\u2022 one", "\u2022 one", "e\u0301te\u0301\u0000\u200b"]}]},
    {"slides": [{"headline": "x" * 500, "paragraph": "word " * 400, "bullets": ["b" * 300, "c " * 200]}]},
    {"slides": [{"headline": f"S{i}", "paragraph": "p"} for i in range(30)]},
    {"slides": [{"headline": "Chart", "paragraph": "p", "chart": {"type": "bar", "categories": [], "series": [1, 2]}}]},
    {"slides": [{"headline": "Chart", "paragraph": "p", "chart": {"type": "bar", "categories": ["a"], "series": [{"label": "s", "values": [float("nan"), "x"]}]}}]},
]


class TestSchemaValidity:

    @pytest.mark.parametrize("raw", HOSTILE_INPUTS)
    def test_output_always_valid(self, raw):
        assert_schema_valid(normalize_deck(raw))

    @pytest.mark.parametrize("raw", HOSTILE_INPUTS)
    def test_idempotent(self, raw):
        once = normalize_deck(raw)
        twice = normalize_deck(once.model_dump())
        assert twice.model_dump_json() == once.model_dump_json()

    def test_idempotent_from_json_dump(self):
        raw = {
            "docTitle": "Energy Outlook 2030",
            "slides": [
                {
                    "headline": "Demand Keeps Climbing",
                    "paragraph": "Global demand rose 3.1% last year. Growth concentrated in Asia.",
                    "bullets": ["Demand up 3.1%"],
                    "chart": {"type": "line", "categories": ["2022", "2023"], "series": [10, 12.5]},
                }
            ],
        }
        once = normalize_deck(raw)
        assert normalize_deck(once.model_dump(mode="json")) == once


class TestSlideExtraction:

    def test_sections_key(self):
        deck = normalize_deck({"title": "Doc", "sections": [{"title": "A", "summary": "Alpha text."}, {"title": "B", "summary": "Beta text."}]})
        assert deck.doc_title == "Doc"
        assert [s.headline for s in deck.slides] == ["A", "B"]
        assert deck.slides[0].paragraph == "Alpha text."

    def test_single_slide_object(self):
        deck = normalize_deck({"headline": "Only One", "paragraph": "Some content here."})
        assert deck.slides[0].headline == "Only One"
        assert len(deck.slides) == MIN_SLIDES
        assert deck.doc_title == DEFAULT_DOC_TITLE

    def test_array_payload(self):
        deck = normalize_deck([{"headline": "A", "bullets": ["x1", "x2"]}, {"headline": "B", "bullets": ["y1", "y2"]}, {"headline": "C", "bullets": ["z1", "z2"]}])
        assert [s.headline for s in deck.slides] == ["A", "B", "C"]

    def test_clamped_to_max_slides_argument(self):
        raw = {"slides": [{"headline": f"H{i}", "paragraph": "p."} for i in range(6)]}
        assert len(normalize_deck(raw, max_slides=4).slides) == 4
        assert len(normalize_deck(raw, max_slides=1).slides) == MIN_SLIDES

    def test_padding_slides_are_placeholders(self):
        deck = normalize_deck({"slides": []})
        assert [s.headline for s in deck.slides] == ["Section 1", "Section 2"]
        assert all(s.paragraph == PLACEHOLDER_PARAGRAPH for s in deck.slides)
        assert deck.slides[0].bullets == list(FILLER_BULLETS[:2])


class TestFieldCleaning:

    def test_headline_decorations_and_typography(self):
        deck = normalize_deck({"slides": [{"headline": "\U0001F4C8 ## **Growth** \u2014 \u201cQ3\u201d\u2026", "paragraph": "p."}]})
        assert deck.slides[0].headline == 'Growth - "Q3"...'

    def test_headline_truncated_at_word_boundary(self):
        deck = normalize_deck({"slides": [{"headline": "word " * 40, "paragraph": "p."}]})
        headline = deck.slides[0].headline
        assert len(headline) <= HEADLINE_MAX_CHARS
        assert headline.endswith("word")

    def test_paragraph_from_bullets(self):
        deck = normalize_deck({"slides": [{"headline": "H", "bullets": ["First point", "Second point!"]}]})
        assert deck.slides[0].paragraph == "First point. Second point!"

    def test_paragraph_whitespace_collapsed(self):
        deck = normalize_deck({"slides": [{"headline": "H", "paragraph": "a\n\n  b\tc"}]})
        assert deck.slides[0].paragraph == "a b c"

    def test_bullets_cleaned_and_deduped(self):
        deck = normalize_deck({"slides": [{"headline": "H", "paragraph": "p.", "bullets": ["- Alpha", "\u2022 alpha", "1. Beta", "  ", "Gamma."]}]})
        assert deck.slides[0].bullets == ["Alpha", "Beta", "Gamma."]

    def test_bullets_derived_from_paragraph_sentences(self):
        deck = normalize_deck({"slides": [{"headline": "H", "paragraph": "Sales grew. Costs fell. Margins widened.", "bullets": []}]})
        assert deck.slides[0].bullets == ["Sales grew.", "Costs fell.", "Margins widened."]

    def test_filler_when_nothing_to_derive(self):
        deck = normalize_deck({"slides": [{"headline": "H", "bullets": ["Lonely"]}]})
        slide = deck.slides[0]
        assert slide.bullets[0] == "Lonely"
        assert slide.bullets[1] in FILLER_BULLETS

    def test_bullets_capped(self):
        deck = normalize_deck({"slides": [{"headline": "H", "paragraph": "p.", "bullets": [f"b{i}" for i in range(9)]}]})
        assert len(deck.slides[0].bullets) == MAX_BULLETS

    def test_control_characters_removed(self):
        deck = normalize_deck({"slides": [{"headline": "Bad\x07Bell\x1b", "paragraph": "line\x00one\nline two"}]})
        assert deck.slides[0].headline == "BadBell"
        assert deck.slides[0].paragraph == "lineone line two"


class TestChartNormalization:

    def test_flat_series_wrapped(self):
        chart = normalize_chart({"type": "BAR", "categories": ["a", "b"], "series": [1, "2.5", "3%"]})
        assert chart == {"type": "bar", "categories": ["a", "b"], "series": [{"label": "Values", "values": [1.0, 2.5, 3.0]}]}

    def test_object_series_filtered(self):
        chart = normalize_chart({
            "type": "pie",
            "categories": ["x", "", None, 2024],
            "series": [
                {"label": "ok", "values": [1, None, float("inf"), 2]},
                {"label": "", "values": [1]},
                {"label": "empty", "values": []},
                "junk",
            ],
        })
        assert chart["categories"] == ["x", "2024"]
        assert chart["series"] == [{"label": "ok", "values": [1.0, 2.0]}]

    def test_caps(self):
        chart = normalize_chart({
            "type": "line",
            "categories": [f"c{i}" for i in range(40)],
            "series": [{"label": f"s{i}", "values": list(range(50))} for i in range(10)],
        })
        assert len(chart["categories"]) == 20
        assert len(chart["series"]) == 6
        assert all(len(s["values"]) == 20 for s in chart["series"])

    @pytest.mark.parametrize("chart", [
        None,
        "bar",
        {"type": "scatter", "categories": ["a"], "series": [1]},
        {"type": "bar", "categories": [], "series": [1]},
        {"type": "bar", "categories": ["a"], "series": []},
        {"type": "bar", "categories": ["a"], "series": [{"label": "s", "values": ["n/a"]}]},
        {"type": "bar", "categories": ["a"], "series": [True, False]},
    ])
    def test_invalid_charts_dropped(self, chart):
        assert normalize_chart(chart) is None

    def test_dropped_chart_leaves_slide_valid(self):
        deck = normalize_deck({"slides": [{"headline": "H", "paragraph": "p.", "chart": {"type": "bar", "categories": ["a"], "series": [{"values": [1]}]}}]})
        assert deck.slides[0].chart is None
