"""
Tests for slidecast.services.response_parser
"""

import json

import pytest

from slidecast.services.errors import ErrorKind, ServiceError
from slidecast.services.response_parser import (
    parse_explicit_slide_blocks,
    parse_grouped_sections,
    parse_structured_response,
    require_structured_response,
)

DOC = {"docTitle": "Quarterly Review", "slides": [{"headline": "Revenue", "bullets": ["Up 12%"]}]}


class TestJsonStrategies:

    def test_direct_json(self):
        result = parse_structured_response(json.dumps(DOC))
        assert result.ok
        assert result.strategy == "direct"
        assert result.payload == DOC

    def test_fenced_json(self):
        result = parse_structured_response(f"Here you go:\n```json\n{json.dumps(DOC)}\n```\nEnjoy")
        assert result.strategy == "fenced"
        assert result.payload == DOC

    def test_braces_inside_chatter(self):
        result = parse_structured_response(f"Sure! {json.dumps(DOC)} Let me know.")
        assert result.strategy == "braces"
        assert result.payload["docTitle"] == "Quarterly Review"

    def test_top_level_array_is_accepted(self):
        result = parse_structured_response('[{"headline": "A", "paragraph": "B"}]')
        assert result.ok
        assert isinstance(result.payload, list)

    def test_bare_json_scalar_is_not_a_document(self):
        result = parse_structured_response('"just a string"')
        assert not result.ok


class TestTextStrategies:

    def test_explicit_slide_markers(self):
        text = (
            "**Slide 1:** Why It Matters\n"
            "- Costs are rising\n"
            "- Teams are stretched\n\n"
            "**Slide 2:**\n"
            "*The Plan*\n"
            "* Automate intake\n"
            "* Measure weekly\n"
        )
        result = parse_structured_response(text)
        assert result.strategy == "slide-markers"
        slides = result.payload["slides"]
        assert [s["headline"] for s in slides] == ["Why It Matters", "The Plan"]
        assert slides[0]["bullets"] == ["Costs are rising", "Teams are stretched"]
        assert slides[1]["bullets"] == ["Automate intake", "Measure weekly"]
        assert result.payload["docTitle"] == "Why It Matters"

    def test_heading_style_markers(self):
        slides = parse_explicit_slide_blocks("### Slide 1 - Intro\nfirst point\n### Slide 2: Outro\nlast point")
        assert [s["headline"] for s in slides] == ["Intro", "Outro"]

    def test_grouped_sections(self):
        text = "## Background\n- Old system is slow\n- Users complain\n\nResults\n1. Latency halved\n2. Fewer tickets"
        result = parse_structured_response(text)
        assert result.strategy == "grouped-sections"
        assert [s["headline"] for s in result.payload["slides"]] == ["Background", "Results"]
        assert result.payload["slides"][1]["bullets"] == ["Latency halved", "Fewer tickets"]

    def test_bullets_capped_at_five(self):
        lines = "\n".join(f"- point {i}" for i in range(9))
        slides = parse_grouped_sections(f"Heading\n{lines}")
        assert len(slides[0]["bullets"]) == 5

    def test_single_line_prose_is_malformed(self):
        result = parse_structured_response("I am sorry, I cannot help with that.")
        assert not result.ok
        assert "not valid structured data" in result.reason


class TestRequireStructuredResponse:

    @pytest.mark.parametrize("content", ["", "   ", None, "no structure here"])
    def test_raises_malformed(self, content):
        with pytest.raises(ServiceError) as exc_info:
            require_structured_response(content)
        assert exc_info.value.kind is ErrorKind.MALFORMED

    def test_returns_payload(self):
        assert require_structured_response(json.dumps(DOC)) == DOC
