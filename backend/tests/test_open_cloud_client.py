from __future__ import annotations

import anyio
import httpx

from dsviewer.clients.open_cloud import OpenCloudDataStoreClient
from dsviewer.credentials.cache import CredentialCache
from dsviewer.domain.entry import EntryMapping, EntryNumber, entry_from_json

UNIVERSE = 123456


def _client(handler) -> OpenCloudDataStoreClient:
    return OpenCloudDataStoreClient(
        CredentialCache({str(UNIVERSE): "secret-key"}),
        base_url="https://apis.example.test",
        thumbnails_base_url="https://thumbs.example.test",
        transport=httpx.MockTransport(handler),
    )


def _fetch(handler, key="gold_100", universe_id=UNIVERSE, datastore="Economy"):
    async def _run():
        async with _client(handler) as c:
            return await c.fetch_entry(key, universe_id, datastore)

    return anyio.run(_run)


def test_fetch_entry_sends_key_and_params():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"currency": 250})

    res = _fetch(handler)

    assert res.success and res.data == entry_from_json({"currency": 250})
    req = seen[0]
    assert req.url.path == f"/datastores/v1/universes/{UNIVERSE}/standard-datastores/datastore/entries/entry"
    assert req.url.params["datastoreName"] == "Economy"
    assert req.url.params["entryKey"] == "gold_100"
    assert req.headers["x-api-key"] == "secret-key"


def test_fetch_entry_404_is_not_found():
    res = _fetch(lambda r: httpx.Response(404, json={"error": "NOT_FOUND"}))
    assert res.success and res.not_found


def test_fetch_entry_null_body_is_not_found():
    res = _fetch(lambda r: httpx.Response(200, content=b"null"))
    assert res.not_found


def test_fetch_entry_scalar_body():
    res = _fetch(lambda r: httpx.Response(200, content=b"42"))
    assert res.data == EntryNumber(42)


def test_fetch_entry_auth_rejection_is_failure():
    res = _fetch(lambda r: httpx.Response(403, json={"message": "Insufficient scope"}))
    assert not res.success
    assert res.error_message == "API key rejected (HTTP 403): Insufficient scope"


def test_fetch_entry_server_error_is_failure():
    res = _fetch(lambda r: httpx.Response(500, text=""))
    assert not res.success
    assert res.error_message == "HTTP 500"


def test_fetch_entry_malformed_json_is_failure():
    res = _fetch(lambda r: httpx.Response(200, content=b"{oops"))
    assert not res.success
    assert "malformed" in res.error_message


def test_fetch_entry_transport_error_is_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    res = _fetch(handler)
    assert not res.success
    assert "connection refused" in res.error_message


def test_fetch_entry_without_credential_makes_no_request():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    res = _fetch(handler, universe_id=999)
    assert not res.success
    assert seen == []


def test_fetch_record_uses_record_key():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    async def _run():
        async with _client(handler) as c:
            return await c.fetch_record(42, UNIVERSE, "player_currency")

    res = anyio.run(_run)
    assert res.data == EntryMapping()
    assert seen[0].url.params["entryKey"] == "Player_42"


def test_tenant_metadata_with_icon():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "thumbs.example.test":
            return httpx.Response(
                200,
                json={"data": [{"targetId": UNIVERSE, "state": "Completed", "imageUrl": "https://img/1.png"}]},
            )
        return httpx.Response(200, json={"displayName": "Obby World"})

    async def _run():
        async with _client(handler) as c:
            return await c.fetch_tenant_metadata(UNIVERSE)

    info = anyio.run(_run)
    assert info.exists and info.reachable
    assert info.display_name == "Obby World"
    assert info.icon_url == "https://img/1.png"


def test_tenant_metadata_missing_universe():
    async def _run():
        async with _client(lambda r: httpx.Response(404)) as c:
            return await c.fetch_tenant_metadata(UNIVERSE)

    info = anyio.run(_run)
    assert not info.exists
    assert info.reachable
    assert info.display_name == f"Universe {UNIVERSE}"


def test_tenant_metadata_unreachable():
    async def _run():
        async with _client(lambda r: httpx.Response(503)) as c:
            return await c.fetch_tenant_metadata(UNIVERSE)

    info = anyio.run(_run)
    assert not info.exists
    assert not info.reachable
