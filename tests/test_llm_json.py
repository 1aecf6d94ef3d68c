"""Tests for language model JSON parsing."""

import pytest

from search_libs.common.errors import LLMResponseParseError
from search_service.intelligence.llm_json import extract_json_object, parse_llm_json, strip_code_fences


def test_plain_json():
    """Test plain JSON replies."""
    assert parse_llm_json('{"a": 1}') == {"a": 1}


def test_fenced_json():
    """Test replies wrapped in code fences."""
    assert parse_llm_json('```json\n{"exact_search": "x"}\n```') == {"exact_search": "x"}
    assert parse_llm_json('```\n{"a": 2}\n```') == {"a": 2}


def test_surrounding_prose():
    """Test the first object is taken from surrounding prose."""
    text = 'Here you go: {"a": 1, "b": {"c": 2}} and some trailing words {"ignored": true}'
    assert parse_llm_json(text) == {"a": 1, "b": {"c": 2}}


def test_braces_inside_strings():
    """Test braces inside strings do not end the object."""
    assert extract_json_object('x {"a": "}{", "b": "\\"}"} y') == '{"a": "}{", "b": "\\"}"}'
    assert parse_llm_json('{"a": "}{"}') == {"a": "}{"}


def test_trailing_commas():
    """Test trailing commas are tolerated."""
    assert parse_llm_json('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}


def test_trailing_commas_inside_strings_are_kept():
    """Test string values containing ",}" survive trailing comma cleanup."""
    assert parse_llm_json('{"a": "x,}",}') == {"a": "x,}"}
    assert parse_llm_json('{"a": ["y, ]", 1,],}') == {"a": ["y, ]", 1]}


def test_strip_code_fences():
    assert strip_code_fences("```json\n{}\n```") == "{}"


@pytest.mark.parametrize("text", [
    "",
    "   ",
    "no json here",
    "```json\n{bad}\n```",
    '{"a": 1',
    "[1, 2, 3]",
])
def test_unparseable_responses(text):
    """Test unrecoverable replies raise a parse error."""
    with pytest.raises(LLMResponseParseError):
        parse_llm_json(text)
