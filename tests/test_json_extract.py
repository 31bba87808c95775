"""Tests for two-phase JSON extraction."""

import pytest

from podcast_engine.domain.errors import ProviderParseError
from podcast_engine.utils import extract_fields, parse_json_response
from podcast_engine.utils.json_extract import loads_lenient, strip_code_fences


class TestStrictPhase:
    """Tests for the fence-stripping JSON decode."""

    def test_plain_json(self):
        assert parse_json_response('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"topics": [{"topic": "A"}]}\n```\nThanks!'

        assert parse_json_response(text) == {"topics": [{"topic": "A"}]}

    def test_json_inside_prose(self):
        assert loads_lenient('Result: {"score": 40} as requested') == {"score": 40}

    def test_bare_array(self):
        assert parse_json_response('Bullets: ["one", "two", "three"]') == ["one", "two", "three"]

    def test_strip_code_fences_without_fence(self):
        assert strip_code_fences("  plain  ") == "plain"


class TestFieldExtraction:
    """Tests for the regex fallback phase."""

    def test_recovers_fields_with_raw_newlines_and_quotes(self):
        text = (
            '{"title": "Chip Wars", "description": "Rules tighten", '
            '"content": "Line one.\nShe said "enough" and left.\\nLine three."}'
        )

        data = parse_json_response(text, required_fields=["title", "description", "content"])

        assert data["title"] == "Chip Wars"
        assert data["description"] == "Rules tighten"
        assert data["content"].startswith("Line one.\nShe said \"enough\"")
        assert data["content"].endswith("Line three.")

    def test_extract_fields_skips_missing(self):
        assert extract_fields('{"title": "X"', ["title", "content"]) == {"title": "X"}

    def test_missing_required_field_raises(self):
        with pytest.raises(ProviderParseError) as exc_info:
            parse_json_response('{"title": "X", broken', required_fields=["title", "content"])

        assert "broken" in exc_info.value.raw

    def test_no_json_no_fields_raises(self):
        with pytest.raises(ProviderParseError):
            parse_json_response("Sorry, I cannot help with that.")
