from __future__ import annotations

from typing import Any

import httpx

from ..credentials.cache import CredentialCache
from ..domain.entry import entry_from_json
from ..domain.models import FetchResult, TenantInfo
from ..observability.logging import get_logger
from ..settings import Settings
from .base import DataStoreClient


log = get_logger("open_cloud")

_ENTRY_PATH = "/datastores/v1/universes/{universe_id}/standard-datastores/datastore/entries/entry"
_UNIVERSE_PATH = "/cloud/v2/universes/{universe_id}"
_ICON_PATH = "/v1/games/icons"


def _error_message(resp: httpx.Response) -> str:
    """
    Best-effort human message from an Open Cloud error body.
    """
    detail = ""
    try:
        body = resp.json() if resp.content else None
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = str(body.get("message") or body.get("error") or "").strip()
    if resp.status_code in (401, 403):
        prefix = f"API key rejected (HTTP {resp.status_code})"
    else:
        prefix = f"HTTP {resp.status_code}"
    return f"{prefix}: {detail}" if detail else prefix


class OpenCloudDataStoreClient(DataStoreClient):
    """
    DataStoreClient backed by the Roblox Open Cloud HTTP API.

    The API key for each request comes from the shared CredentialCache.
    Pass `transport` to route requests somewhere else (tests use
    httpx.MockTransport).
    """

    def __init__(
        self,
        credentials: CredentialCache,
        *,
        base_url: str = "https://apis.roblox.com",
        thumbnails_base_url: str = "https://thumbnails.roblox.com",
        timeout: float = 20.0,
        record_key_template: str = "Player_{user_id}",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(record_key_template=record_key_template)
        self._credentials = credentials
        self._base_url = str(base_url or "").rstrip("/")
        self._thumbnails_base_url = str(thumbnails_base_url or "").rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credentials: CredentialCache,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "OpenCloudDataStoreClient":
        return cls(
            credentials,
            base_url=settings.open_cloud_base_url,
            thumbnails_base_url=settings.thumbnails_base_url,
            timeout=float(settings.open_cloud_timeout_seconds),
            record_key_template=settings.record_key_template,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self, universe_id: int) -> dict[str, str] | None:
        key = self._credentials.get(universe_id)
        if not key:
            return None
        return {"x-api-key": key, "Accept": "application/json"}

    async def fetch_entry(self, key: str, universe_id: int, datastore: str) -> FetchResult:
        headers = self._headers(universe_id)
        if headers is None:
            return FetchResult.failed(f"No API key is configured for universe {universe_id}.")

        url = self._base_url + _ENTRY_PATH.format(universe_id=universe_id)
        params = {"datastoreName": datastore, "entryKey": key}
        try:
            resp = await self._http.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            log.warning(
                "datastore_fetch_failed",
                universe_id=universe_id,
                datastore=datastore,
                error=str(e) or type(e).__name__,
            )
            return FetchResult.failed(f"Could not reach the datastore service: {str(e) or type(e).__name__}")

        if resp.status_code == 404:
            return FetchResult.missing()
        if resp.status_code >= 400:
            msg = _error_message(resp)
            log.warning(
                "datastore_fetch_rejected",
                universe_id=universe_id,
                datastore=datastore,
                status_code=int(resp.status_code),
            )
            return FetchResult.failed(msg)

        try:
            payload: Any = resp.json()
        except ValueError:
            log.warning(
                "datastore_fetch_malformed",
                universe_id=universe_id,
                datastore=datastore,
                body_len=len(resp.content or b""),
            )
            return FetchResult.failed("The datastore service returned a malformed response.")

        if payload is None:
            return FetchResult.missing()
        return FetchResult.found(entry_from_json(payload))

    async def fetch_tenant_metadata(self, universe_id: int) -> TenantInfo:
        fallback = f"Universe {universe_id}"
        headers = self._headers(universe_id) or {"Accept": "application/json"}
        url = self._base_url + _UNIVERSE_PATH.format(universe_id=universe_id)
        try:
            resp = await self._http.get(url, headers=headers)
        except httpx.HTTPError as e:
            log.warning("universe_lookup_failed", universe_id=universe_id, error=str(e) or type(e).__name__)
            return TenantInfo(universe_id=universe_id, display_name=fallback, exists=False, reachable=False)

        if resp.status_code == 404:
            return TenantInfo(universe_id=universe_id, display_name=fallback, exists=False)
        if resp.status_code >= 400:
            log.warning("universe_lookup_rejected", universe_id=universe_id, status_code=int(resp.status_code))
            return TenantInfo(universe_id=universe_id, display_name=fallback, exists=False, reachable=False)

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            log.warning("universe_lookup_malformed", universe_id=universe_id)
            return TenantInfo(universe_id=universe_id, display_name=fallback, exists=False, reachable=False)

        name = str(body.get("displayName") or "").strip() or fallback
        icon = await self._fetch_icon_url(universe_id)
        return TenantInfo(universe_id=universe_id, display_name=name, icon_url=icon, exists=True)

    async def _fetch_icon_url(self, universe_id: int) -> str | None:
        url = self._thumbnails_base_url + _ICON_PATH
        params = {
            "universeIds": str(universe_id),
            "size": "512x512",
            "format": "Png",
            "isCircular": "false",
        }
        try:
            resp = await self._http.get(url, params=params)
            if resp.status_code >= 400:
                return None
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            log.info("universe_icon_unavailable", universe_id=universe_id, error=str(e) or type(e).__name__)
            return None

        data = body.get("data") if isinstance(body, dict) else None
        for item in data if isinstance(data, list) else []:
            if not isinstance(item, dict):
                continue
            if str(item.get("state") or "") != "Completed":
                continue
            img = str(item.get("imageUrl") or "").strip()
            if img:
                return img
        return None
