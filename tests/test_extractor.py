"""Tests for core/extractor.py — tolerant JSON recovery from model text."""

from __future__ import annotations

import json

import pytest

from core.errors import MalformedResponseError
from core.extractor import extract_json, outer_object, repair_trailing_commas, strip_fences


class TestStripFences:
    def test_no_fence_returns_trimmed_text(self):
        assert strip_fences('  {"a": 1}  ') == '{"a": 1}'

    def test_json_tagged_fence(self):
        assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_untagged_fence(self):
        assert strip_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_unbalanced_fence_falls_back_to_trims(self):
        assert strip_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_only_first_fenced_block_is_used(self):
        text = '```json\n{"first": true}\n```\nand\n```json\n{"second": true}\n```'
        assert extract_json(text) == {"first": True}


class TestOuterObject:
    def test_strips_surrounding_commentary(self):
        assert outer_object('Sure! {"a": {"b": 1}} Hope that helps.') == '{"a": {"b": 1}}'

    def test_no_braces(self):
        assert outer_object("no json here") is None


class TestRepair:
    def test_trailing_commas_removed(self):
        assert json.loads(repair_trailing_commas('{"a":[1,2,],}')) == {"a": [1, 2]}

    def test_whitespace_before_closer(self):
        assert repair_trailing_commas('[1, 2 ,\n ]') == "[1, 2 ]"


class TestExtractJson:
    def test_prose_and_fence(self):
        raw = 'Here you go:\n```json\n{"title": "X", "themes": []}\n```'
        assert extract_json(raw) == {"title": "X", "themes": []}

    def test_matches_direct_parse_of_inner_span(self):
        inner = '{"title": "X", "nested": {"list": [1, 2, 3]}}'
        raw = f"Analysis follows.\n```json\n{inner}\n```\nLet me know!"
        assert extract_json(raw) == json.loads(inner)

    def test_repairs_trailing_commas(self):
        assert extract_json('Result: {"a":[1,2,],}') == {"a": [1, 2]}

    def test_text_without_braces_fails(self):
        with pytest.raises(MalformedResponseError):
            extract_json("I could not analyze this video.")

    def test_unrecoverable_json_fails_with_diagnostics(self):
        raw = '{"title": "X", "summary": }'
        with pytest.raises(MalformedResponseError) as info:
            extract_json(raw)
        assert info.value.raw_length == len(raw)
        assert info.value.snippet == raw

    def test_empty_input_fails(self):
        with pytest.raises(MalformedResponseError):
            extract_json("")

    def test_non_object_json_fails(self):
        with pytest.raises(MalformedResponseError):
            extract_json("[1, 2, 3]")
