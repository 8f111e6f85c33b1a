from __future__ import annotations

import re
from datetime import datetime, timezone

from ..domain.entry import Entry, EntryNumber

ELLIPSIS = "..."
ERROR_MESSAGE_CAP = 1000

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")

# Last word of a humanized key that marks an epoch timestamp.
_TIMESTAMP_WORDS = {
    "at",
    "time",
    "date",
    "timestamp",
    "ts",
    "updated",
    "created",
    "modified",
    "seen",
    "expires",
    "expiry",
}


def clip(text: str, limit: int) -> str:
    s = str(text or "")
    if len(s) <= limit:
        return s
    if limit <= len(ELLIPSIS):
        return s[:limit]
    return s[: limit - len(ELLIPSIS)] + ELLIPSIS


def truncate_error_message(message: str, cap: int = ERROR_MESSAGE_CAP) -> str:
    return clip(str(message or "").strip(), cap)


def humanize_label(key: str) -> str:
    """
    "lastUpdated" -> "Last Updated", "coins_total" -> "Coins total".
    """
    s = _CAMEL_BOUNDARY.sub(" ", str(key or ""))
    s = " ".join(s.replace("_", " ").replace("-", " ").split())
    if not s:
        return str(key or "") or "(empty key)"
    return s[0].upper() + s[1:]


def truncate_label(label: str, max_len: int) -> str:
    return clip(label, max_len)


def _epoch_seconds(value: int | float) -> float | None:
    v = float(value)
    if 1e9 <= v < 1e11:
        return v
    if 1e11 <= v < 1e14:
        return v / 1000.0
    return None


def format_timestamp(key: str, entry: Entry) -> str | None:
    """
    Render epoch seconds/milliseconds under a timestamp-like key as UTC time.

    Returns None when the key or value does not look like a timestamp.
    """
    if not isinstance(entry, EntryNumber):
        return None
    words = humanize_label(key).lower().split()
    if not words or words[-1] not in _TIMESTAMP_WORDS:
        return None
    seconds = _epoch_seconds(entry.value)
    if seconds is None:
        return None
    try:
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def attachment_filename(key: str, extension: str = ".json") -> str:
    safe = _UNSAFE_FILENAME.sub("_", str(key or "")).strip("._") or "entry"
    return f"{safe}_data{extension}"
