"""
Entry: the raw value stored under one datastore key.

Remote payloads are decoded JSON of any shape. They are converted once, at the
client boundary, into a closed set of variants so the serializer and the
summary-field builder can branch on the variant instead of probing Python
types all over the codebase.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Union

INDENT = "  "


@dataclass(frozen=True, slots=True)
class EntryNull:
    def to_python(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class EntryBool:
    value: bool

    def to_python(self) -> bool:
        return self.value


@dataclass(frozen=True, slots=True)
class EntryNumber:
    value: int | float

    def to_python(self) -> int | float:
        return self.value


@dataclass(frozen=True, slots=True)
class EntryString:
    value: str

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class EntryMapping:
    # Ordered (key, value) pairs; insertion order is the display order.
    items: tuple[tuple[str, "Entry"], ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def keys(self) -> list[str]:
        return [k for k, _v in self.items]

    def to_python(self) -> dict[str, Any]:
        return {k: v.to_python() for k, v in self.items}


@dataclass(frozen=True, slots=True)
class EntrySequence:
    items: tuple["Entry", ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def to_python(self) -> list[Any]:
        return [v.to_python() for v in self.items]


Entry = Union[EntryNull, EntryBool, EntryNumber, EntryString, EntryMapping, EntrySequence]


def entry_from_json(value: Any) -> Entry:
    """
    Convert a decoded JSON value (json.loads output) into an Entry.

    Raises TypeError for values JSON cannot produce (sets, bytes, objects).
    """
    if value is None:
        return EntryNull()
    # bool is a subclass of int; check it first.
    if isinstance(value, bool):
        return EntryBool(value)
    if isinstance(value, (int, float)):
        return EntryNumber(value)
    if isinstance(value, str):
        return EntryString(value)
    if isinstance(value, dict):
        return EntryMapping(tuple((str(k), entry_from_json(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return EntrySequence(tuple(entry_from_json(v) for v in value))
    raise TypeError(f"Unsupported entry value type: {type(value).__name__}")


def is_empty(entry: Entry | None) -> bool:
    """Absent entries and empty mappings both mean "nothing stored"."""
    if entry is None:
        return True
    return isinstance(entry, EntryMapping) and len(entry) == 0


def number_text(value: int | float) -> str:
    if isinstance(value, float):
        if not math.isfinite(value):
            # JSON has no NaN/Infinity.
            return "null"
        return json.dumps(value)
    return str(int(value))


def scalar_text(entry: Entry) -> str:
    """
    Text shown for a single value in a summary field.

    Strings are shown raw (unquoted). Everything else uses the canonical
    serializer so nested values never diverge from the full document.
    """
    if isinstance(entry, EntryString):
        return entry.value
    return serialize(entry)


def serialize(entry: Entry) -> str:
    """
    Canonical, human-readable form: insertion order, 2-space indentation,
    non-ASCII kept as-is. Same layout as json.dumps(indent=2, ensure_ascii=False).
    """
    out: list[str] = []
    _write(entry, 0, out)
    return "".join(out)


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _write(entry: Entry, depth: int, out: list[str]) -> None:
    if isinstance(entry, EntryNull):
        out.append("null")
    elif isinstance(entry, EntryBool):
        out.append("true" if entry.value else "false")
    elif isinstance(entry, EntryNumber):
        out.append(number_text(entry.value))
    elif isinstance(entry, EntryString):
        out.append(_quote(entry.value))
    elif isinstance(entry, EntryMapping):
        if not entry.items:
            out.append("{}")
            return
        pad = INDENT * (depth + 1)
        out.append("{\n")
        for i, (key, value) in enumerate(entry.items):
            if i:
                out.append(",\n")
            out.append(f"{pad}{_quote(key)}: ")
            _write(value, depth + 1, out)
        out.append("\n" + INDENT * depth + "}")
    elif isinstance(entry, EntrySequence):
        if not entry.items:
            out.append("[]")
            return
        pad = INDENT * (depth + 1)
        out.append("[\n")
        for i, value in enumerate(entry.items):
            if i:
                out.append(",\n")
            out.append(pad)
            _write(value, depth + 1, out)
        out.append("\n" + INDENT * depth + "]")
    else:
        raise TypeError(f"Not an Entry: {type(entry).__name__}")
