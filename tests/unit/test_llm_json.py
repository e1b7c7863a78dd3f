"""
Unit tests for defensive JSON extraction from LLM responses.
"""

import pytest

from meal_planner.errors import AiFallbackParseError
from meal_planner.llm_json import parse_json_response, strip_code_fences


class TestParseJsonResponse:
    """Test recovery of JSON from typical model output."""

    def test_plain_json(self):
        """Clean JSON parses directly."""
        assert parse_json_response('{"reply": "hi"}') == {"reply": "hi"}

    def test_code_fence(self):
        """Markdown code fences are stripped."""
        assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self):
        """Text before and after the JSON is ignored."""
        content = 'Here is your list:\n{"items": []}\nEnjoy!'

        assert parse_json_response(content) == {"items": []}

    def test_trailing_commas(self):
        """Trailing commas are tolerated."""
        assert parse_json_response('{"items": [1, 2,],}') == {"items": [1, 2]}

    def test_bare_list(self):
        """Top-level arrays are returned as lists."""
        assert parse_json_response('[{"name": "Rice"}]') == [{"name": "Rice"}]

    @pytest.mark.parametrize("content", ["", "   ", "not json at all", '{"reply": '])
    def test_malformed_raises(self, content):
        """Unrecoverable output raises AiFallbackParseError."""
        with pytest.raises(AiFallbackParseError):
            parse_json_response(content)


def test_strip_code_fences_without_fence():
    """Content without fences is only trimmed."""
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'
