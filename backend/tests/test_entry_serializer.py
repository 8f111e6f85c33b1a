from __future__ import annotations

import json

import pytest

from dsviewer.domain.entry import (
    EntryBool,
    EntryMapping,
    EntryNull,
    EntryNumber,
    EntrySequence,
    EntryString,
    entry_from_json,
    is_empty,
    scalar_text,
    serialize,
)


def test_entry_from_json_keeps_bool_distinct_from_number():
    assert entry_from_json(True) == EntryBool(True)
    assert entry_from_json(1) == EntryNumber(1)
    assert entry_from_json(None) == EntryNull()


def test_entry_from_json_preserves_key_order():
    e = entry_from_json({"b": 1, "a": 2, "c": 3})
    assert isinstance(e, EntryMapping)
    assert e.keys() == ["b", "a", "c"]


def test_entry_from_json_rejects_non_json_values():
    with pytest.raises(TypeError):
        entry_from_json({1, 2})


def test_serialize_matches_indented_json():
    raw = {
        "currency": 250,
        "ratio": 0.5,
        "name": "Zoë ✓",
        "flags": [True, False, None],
        "nested": {"empty": {}, "list": []},
    }
    assert serialize(entry_from_json(raw)) == json.dumps(raw, indent=2, ensure_ascii=False)


def test_serialize_empty_containers():
    assert serialize(EntryMapping()) == "{}"
    assert serialize(EntrySequence()) == "[]"


def test_serialize_non_finite_numbers_as_null():
    assert serialize(EntryNumber(float("nan"))) == "null"
    assert serialize(EntryNumber(float("inf"))) == "null"


def test_serialize_escapes_quotes_and_newlines():
    assert serialize(EntryString('say "hi"\n')) == '"say \\"hi\\"\\n"'


def test_scalar_text_shows_strings_raw():
    assert scalar_text(EntryString("hello")) == "hello"
    assert scalar_text(EntryBool(False)) == "false"
    assert scalar_text(EntryNull()) == "null"
    assert scalar_text(EntryNumber(250)) == "250"


def test_is_empty():
    assert is_empty(None)
    assert is_empty(EntryMapping())
    assert not is_empty(EntrySequence())
    assert not is_empty(EntryNumber(0))


def test_to_python_round_trip():
    raw = {"a": [1, {"b": None}], "c": "x"}
    assert entry_from_json(raw).to_python() == raw
