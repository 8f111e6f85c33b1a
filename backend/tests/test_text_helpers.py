from __future__ import annotations

from dsviewer.domain.entry import EntryNumber, EntryString
from dsviewer.presentation.text import (
    attachment_filename,
    clip,
    format_timestamp,
    humanize_label,
    truncate_error_message,
    truncate_label,
)


def test_error_message_is_capped_at_1000_chars():
    out = truncate_error_message("x" * 1500)
    assert len(out) == 1000
    assert out.endswith("...")
    assert out[:997] == "x" * 997


def test_short_error_message_is_unchanged():
    assert truncate_error_message("  boom  ") == "boom"


def test_label_truncation_keeps_exactly_max_len():
    label = "L" * 160
    out = truncate_label(label, 150)
    assert len(out) == 150
    assert out.endswith("...")


def test_clip_short_limit():
    assert clip("abcdef", 2) == "ab"
    assert clip("abc", 3) == "abc"


def test_humanize_label():
    assert humanize_label("lastUpdated") == "Last Updated"
    assert humanize_label("currency") == "Currency"
    assert humanize_label("coins_total") == "Coins total"
    assert humanize_label("HTTPStatus") == "HTTP Status"
    assert humanize_label("") == "(empty key)"


def test_format_timestamp_milliseconds_and_seconds():
    assert format_timestamp("lastUpdated", EntryNumber(1700000000000)) == "2023-11-14 22:13:20 UTC"
    assert format_timestamp("createdAt", EntryNumber(1700000000)) == "2023-11-14 22:13:20 UTC"


def test_format_timestamp_ignores_other_keys_and_values():
    assert format_timestamp("currency", EntryNumber(1700000000000)) is None
    assert format_timestamp("lastUpdated", EntryNumber(250)) is None
    assert format_timestamp("lastUpdated", EntryString("yesterday")) is None


def test_attachment_filename_is_sanitized():
    assert attachment_filename("gold_100") == "gold_100_data.json"
    assert attachment_filename("Player 1/../x") == "Player_1_.._x_data.json"
    assert attachment_filename("///") == "entry_data.json"
