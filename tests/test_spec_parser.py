"""Tests for extracting specs from generator output."""

import pytest

from miniapp.llm.base import GenerationError, GenerationErrorKind
from miniapp.services.spec_parser import extract_json_object, parse_spec_payload, strip_code_fences

SPEC_JSON = '{"name": "Fenced", "pages": [{"id": "p1"}]}'


class TestSpecParser:
    def test_strip_code_fences(self):
        assert strip_code_fences(f"```json\n{SPEC_JSON}\n```") == SPEC_JSON
        assert strip_code_fences(f"  {SPEC_JSON}  ") == SPEC_JSON

    def test_extract_from_prose(self):
        content = f"Sure! Here is your app: {SPEC_JSON} Enjoy."
        assert extract_json_object(content)["name"] == "Fenced"

    def test_skips_unbalanced_braces(self):
        content = "{oops " + SPEC_JSON
        assert extract_json_object(content)["name"] == "Fenced"

    def test_parse_fenced_payload(self):
        spec = parse_spec_payload(f"Here you go\n```json\n{SPEC_JSON}\n```")
        assert spec.name == "Fenced"
        assert spec.pages[0].id == "p1"

    @pytest.mark.parametrize("content", ["", "no json here", '{"pages": []}'])
    def test_failures_are_parse_failed(self, content):
        with pytest.raises(GenerationError) as exc_info:
            parse_spec_payload(content)
        assert exc_info.value.kind is GenerationErrorKind.PARSE_FAILED
