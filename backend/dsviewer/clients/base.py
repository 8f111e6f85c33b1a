from __future__ import annotations

from abc import ABC, abstractmethod

from ..domain.models import FetchResult, TenantInfo


class DataStoreClient(ABC):
    """
    Read-only access to a universe's datastores.

    Implementations must not raise for expected failures: transport errors,
    bad statuses and malformed bodies come back as FetchResult.failed(...),
    a missing key as FetchResult.missing(). Callers are expected to have
    checked the credential and the universe first, since every call is billed
    against the universe's API key rate limits.
    """

    def __init__(self, *, record_key_template: str = "Player_{user_id}") -> None:
        self._record_key_template = record_key_template

    def record_key(self, user_id: int) -> str:
        return self._record_key_template.format(user_id=user_id)

    @abstractmethod
    async def fetch_entry(self, key: str, universe_id: int, datastore: str) -> FetchResult:
        raise NotImplementedError

    async def fetch_record(self, user_id: int, universe_id: int, datastore: str) -> FetchResult:
        return await self.fetch_entry(self.record_key(user_id), universe_id, datastore)

    @abstractmethod
    async def fetch_tenant_metadata(self, universe_id: int) -> TenantInfo:
        """Best-effort: returns exists=False with a fallback name instead of failing."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None

    async def __aenter__(self) -> "DataStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
