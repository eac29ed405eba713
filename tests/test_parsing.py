"""Tests for dialectic/parsing.py."""

from dialectic.parsing import extract_json_object


def test_plain_object():
    assert extract_json_object('{"a": 1}') == '{"a": 1}'


def test_fenced_object():
    assert extract_json_object('```json\n{"a": {"b": 2}}\n```') == '{"a": {"b": 2}}'


def test_object_inside_prose():
    assert extract_json_object('Here you go: {"a": 1} hope that helps {"b": 2}') == '{"a": 1}'


def test_no_object():
    assert extract_json_object("no json here") is None
    assert extract_json_object('{"unclosed": 1') is None
