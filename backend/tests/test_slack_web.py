from __future__ import annotations

import json

import anyio
import httpx

from dsviewer.integrations.slack import slack_web
from dsviewer.integrations.slack.slack_render import SlackDelivery
from dsviewer.presentation.planner import Attachment

RESPONSE_URL = "https://hooks.slack.test/commands/r1"


def _delivery(with_file: bool) -> SlackDelivery:
    return SlackDelivery(
        messages=({"response_type": "in_channel", "text": "Datastore Entry: k"},),
        attachment=Attachment(filename="k_data.json", content=b'{\n  "a": 1\n}') if with_file else None,
        attachment_comment="Datastore Entry: k" if with_file else None,
    )


def _run(delivery: SlackDelivery, handler) -> None:
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await slack_web.deliver(delivery, response_url=RESPONSE_URL, channel_id="C123", client=client)

    anyio.run(_go)


def test_deliver_posts_messages_to_response_url():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    _run(_delivery(with_file=False), handler)

    assert [str(r.url) for r in seen] == [RESPONSE_URL]
    assert json.loads(seen[0].content)["text"] == "Datastore Entry: k"


def test_deliver_uploads_attachment(monkeypatch):
    monkeypatch.setattr(slack_web, "get_bot_token", lambda: "xoxb-test")
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if path.endswith("/files.getUploadURLExternal"):
            return httpx.Response(200, json={"ok": True, "upload_url": "https://files.slack.test/up", "file_id": "F1"})
        if path.endswith("/files.completeUploadExternal"):
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(200, text="ok")

    _run(_delivery(with_file=True), handler)

    urls = [str(r.url) for r in seen]
    assert urls == [
        RESPONSE_URL,
        "https://slack.com/api/files.getUploadURLExternal",
        "https://files.slack.test/up",
        "https://slack.com/api/files.completeUploadExternal",
    ]
    assert seen[1].headers["Authorization"] == "Bearer xoxb-test"
    assert seen[2].content == b'{\n  "a": 1\n}'
    complete = json.loads(seen[3].content)
    assert complete["files"] == [{"id": "F1", "title": "k_data.json"}]
    assert complete["channel_id"] == "C123"


def test_failed_upload_is_reported_to_user(monkeypatch):
    monkeypatch.setattr(slack_web, "get_bot_token", lambda: None)
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    _run(_delivery(with_file=True), handler)

    assert [str(r.url) for r in seen] == [RESPONSE_URL, RESPONSE_URL]
    notice = json.loads(seen[1].content)
    assert notice["response_type"] == "ephemeral"
    assert "k_data.json" in notice["text"]
    assert "slack_not_configured" in notice["text"]
