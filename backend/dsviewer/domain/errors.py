from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class DsViewerError(Exception):
    """Base error for failures that must reach the operator as a message."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class SizeOverflowError(DsViewerError):
    """The file fallback itself is larger than the host accepts."""

    size_bytes: int = 0
    limit_bytes: int = 0
