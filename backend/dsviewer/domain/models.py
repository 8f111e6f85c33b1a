from __future__ import annotations

from dataclasses import dataclass

from .entry import Entry


@dataclass(frozen=True, slots=True)
class TenantInfo:
    """Display metadata for one universe. Fetched per request, never cached."""

    universe_id: int
    display_name: str
    icon_url: str | None = None
    exists: bool = True
    # False when the lookup itself failed (network, auth), as opposed to a
    # universe that does not exist.
    reachable: bool = True


@dataclass(frozen=True, slots=True)
class FetchResult:
    """
    Uniform envelope for every datastore read.

    success=True with data=None means the key holds nothing (not found);
    success=False means the call itself failed and error_message says why.
    """

    success: bool
    data: Entry | None = None
    error_message: str | None = None

    @property
    def not_found(self) -> bool:
        return self.success and self.data is None

    @classmethod
    def found(cls, data: Entry) -> "FetchResult":
        return cls(success=True, data=data)

    @classmethod
    def missing(cls) -> "FetchResult":
        return cls(success=True, data=None)

    @classmethod
    def failed(cls, message: str) -> "FetchResult":
        return cls(success=False, data=None, error_message=str(message or "") or "Request failed")


@dataclass(frozen=True, slots=True)
class VerifyResult:
    success: bool
    error_message: str | None = None
    info: TenantInfo | None = None
