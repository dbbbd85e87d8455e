"""Tests for the safe JSON parser: limits, grammar and dangerous-key removal."""

import json
import logging

import pytest

from ideasynth.safety.json_parser import (
    DANGEROUS_KEYS,
    ParseError,
    ParseErrorKind,
    ParseLimits,
    nesting_depth,
    safe_parse,
    safe_parse_with_fallback,
)


def _kind(text, **kwargs) -> ParseErrorKind:
    with pytest.raises(ParseError) as exc_info:
        safe_parse(text, **kwargs)
    return exc_info.value.kind


# ---------------------------------------------------------------------------
# Valid input
# ---------------------------------------------------------------------------

class TestValidInput:

    def test_object_round_trip(self):
        value = {"title": "Intent router", "tags": ["aa", "intents"], "score": 0.91, "meta": {"n": 1, "ok": True}}
        assert safe_parse(json.dumps(value)) == value

    @pytest.mark.parametrize("text,expected", [
        ("[1, 2, 3]", [1, 2, 3]),
        ("42", 42),
        ("3.5", 3.5),
        ('"hello"', "hello"),
        ("true", True),
        ("null", None),
    ])
    def test_arrays_and_scalars_are_valid_documents(self, text, expected):
        assert safe_parse(text) == expected

    def test_surrounding_whitespace_is_ignored(self):
        assert safe_parse('  \n {"a": 1}\t ') == {"a": 1}


# ---------------------------------------------------------------------------
# Dangerous keys
# ---------------------------------------------------------------------------

class TestDangerousKeys:

    def test_proto_removed_at_top_level(self):
        result = safe_parse('{"__proto__": {"x": true}, "normal": "safe"}')
        assert result == {"normal": "safe"}

    def test_removed_at_every_depth(self):
        text = json.dumps({
            "a": {"constructor": {"prototype": 1}, "keep": 1},
            "list": [{"__proto__": {"polluted": True}, "id": 7}, [{"prototype": 2, "deep": {"__proto__": 3}}]],
            "normal": "safe",
        })
        result = safe_parse(text)
        assert result == {
            "a": {"keep": 1},
            "list": [{"id": 7}, [{"deep": {}}]],
            "normal": "safe",
        }
        serialized = json.dumps(result)
        for key in ("__proto__", "constructor", "prototype"):
            assert key not in serialized

    def test_python_dunder_keys_removed(self):
        result = safe_parse('{"__class__": "x", "__globals__": {}, "name": "ok"}')
        assert result == {"name": "ok"}

    def test_values_equal_to_dangerous_names_are_kept(self):
        assert safe_parse('{"field": "constructor"}') == {"field": "constructor"}

    def test_removal_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ideasynth.safety.json_parser"):
            safe_parse('{"outer": {"__proto__": {}}}')
        assert any("Dangerous key removed" in r.getMessage() for r in caplog.records)

    def test_canonical_set(self):
        assert {"__proto__", "constructor", "prototype"} <= DANGEROUS_KEYS


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

class TestRejections:

    @pytest.mark.parametrize("text", ["", "   ", "\n\t ", None])
    def test_empty_input(self, text):
        assert _kind(text) is ParseErrorKind.EMPTY_INPUT

    def test_non_string_input(self):
        assert _kind(b'{"a": 1}') is ParseErrorKind.EMPTY_INPUT

    def test_size_limit_checked_before_parsing(self):
        # Invalid JSON, but too big: size wins.
        assert _kind("{" * 50, max_size_bytes=10) is ParseErrorKind.SIZE_EXCEEDED

    def test_size_counts_utf8_bytes(self):
        text = '"' + "あ" * 4 + '"'  # 14 bytes, 6 characters
        assert _kind(text, max_size_bytes=10) is ParseErrorKind.SIZE_EXCEEDED
        assert safe_parse(text, max_size_bytes=14) == "あ" * 4

    def test_syntax_error_message(self):
        with pytest.raises(ParseError) as exc_info:
            safe_parse('{"a": }')
        assert exc_info.value.kind is ParseErrorKind.SYNTAX_ERROR
        assert str(exc_info.value).startswith("JSON syntax error:")
        assert "line 1" in str(exc_info.value)

    @pytest.mark.parametrize("text", ["NaN", "[Infinity]", '{"a": -Infinity}'])
    def test_non_standard_constants_rejected(self, text):
        assert _kind(text) is ParseErrorKind.SYNTAX_ERROR

    def test_depth_limit(self):
        text = "[" * 5 + "1" + "]" * 5
        assert safe_parse(text, max_depth=5) == [[[[[1]]]]]
        assert _kind(text, max_depth=4) is ParseErrorKind.DEPTH_EXCEEDED

    def test_empty_containers_add_no_depth(self):
        text = "[" * 5 + "]" * 5
        assert safe_parse(text, max_depth=4) == [[[[[]]]]]
        assert _kind(text, max_depth=3) is ParseErrorKind.DEPTH_EXCEEDED

    def test_default_depth_limit(self):
        text = '{"a": ' * 101 + "1" + "}" * 101
        assert _kind(text) is ParseErrorKind.DEPTH_EXCEEDED

    def test_pathological_nesting(self):
        text = "[" * 100_000 + "]" * 100_000
        assert _kind(text) is ParseErrorKind.DEPTH_EXCEEDED

    def test_limits_object_and_overrides(self):
        limits = ParseLimits(max_size_bytes=5, max_depth=1)
        assert _kind("[1, 2, 3]", limits=limits) is ParseErrorKind.SIZE_EXCEEDED
        assert safe_parse("[1, 2, 3]", limits=limits, max_size_bytes=100) == [1, 2, 3]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_nesting_depth():
    assert nesting_depth(1) == 0
    assert nesting_depth({"a": 1}) == 1
    assert nesting_depth({"a": [{"b": []}]}) == 3
    assert nesting_depth([[]]) == 1
    assert nesting_depth([]) == 0


def test_fallback_on_failure():
    assert safe_parse_with_fallback("{broken", {"default": True}) == {"default": True}
    assert safe_parse_with_fallback("", []) == []
    assert safe_parse_with_fallback('{"ok": 1}', None) == {"ok": 1}


def test_limits_from_settings(make_settings):
    settings = make_settings(json_max_size_bytes=2048, json_max_depth=10)
    assert ParseLimits.from_settings(settings) == ParseLimits(max_size_bytes=2048, max_depth=10)
