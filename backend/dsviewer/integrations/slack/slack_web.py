from __future__ import annotations

from typing import Any

import httpx

from ...observability.logging import get_logger
from ...presentation.planner import Attachment
from .slack_render import SlackDelivery
from .slack_secrets import get_bot_token


log = get_logger("slack")

SLACK_API_BASE = "https://slack.com/api"


async def slack_api_post(
    client: httpx.AsyncClient,
    *,
    method: str,
    json: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Call a Slack Web API POST endpoint, returning its decoded JSON payload.
    """
    token = get_bot_token()
    if not token:
        return {"ok": False, "error": "slack_not_configured"}

    m = str(method or "").strip().lstrip("/")
    if not m:
        return {"ok": False, "error": "invalid_method"}

    try:
        if data is not None:
            resp = await client.post(
                f"{SLACK_API_BASE}/{m}",
                headers={"Authorization": f"Bearer {token}"},
                data=data,
            )
        else:
            resp = await client.post(
                f"{SLACK_API_BASE}/{m}",
                headers={"Authorization": f"Bearer {token}"},
                json=json or {},
            )
        body = resp.json() if resp.content else {}
        if not isinstance(body, dict):
            return {"ok": False, "error": "invalid_response"}
        return body
    except (httpx.HTTPError, ValueError) as e:
        log.warning("slack_api_post_exception", method=m, error=str(e) or "unknown_error")
        return {"ok": False, "error": "request_failed"}


async def respond(client: httpx.AsyncClient, *, response_url: str, payload: dict[str, Any]) -> bool:
    """
    Post a message via response_url (slash commands). No bot token needed.
    """
    url = str(response_url or "").strip()
    if not url:
        return False
    try:
        r = await client.post(url, json=payload)
    except httpx.HTTPError as e:
        log.warning("slack_response_url_exception", error=str(e) or "unknown_error")
        return False
    if r.status_code >= 400:
        log.warning("slack_response_url_failed", status_code=int(r.status_code))
        return False
    return True


async def upload_file(
    client: httpx.AsyncClient,
    *,
    channel_id: str,
    attachment: Attachment,
    initial_comment: str | None = None,
) -> dict[str, Any]:
    """
    Upload a file to a channel with Slack's external upload flow:
    files.getUploadURLExternal -> POST bytes -> files.completeUploadExternal.
    """
    ch = str(channel_id or "").strip()
    if not ch:
        return {"ok": False, "error": "missing_channel"}

    ticket = await slack_api_post(
        client,
        method="files.getUploadURLExternal",
        data={"filename": attachment.filename, "length": str(len(attachment.content))},
    )
    if not bool(ticket.get("ok")):
        return ticket
    upload_url = str(ticket.get("upload_url") or "").strip()
    file_id = str(ticket.get("file_id") or "").strip()
    if not upload_url or not file_id:
        return {"ok": False, "error": "invalid_upload_ticket"}

    try:
        put = await client.post(upload_url, content=attachment.content)
    except httpx.HTTPError as e:
        log.warning("slack_file_upload_exception", error=str(e) or "unknown_error")
        return {"ok": False, "error": "upload_failed"}
    if put.status_code >= 400:
        log.warning("slack_file_upload_failed", status_code=int(put.status_code))
        return {"ok": False, "error": "upload_failed", "status_code": int(put.status_code)}

    payload: dict[str, Any] = {
        "files": [{"id": file_id, "title": attachment.filename}],
        "channel_id": ch,
    }
    if initial_comment:
        payload["initial_comment"] = initial_comment
    return await slack_api_post(client, method="files.completeUploadExternal", json=payload)


async def deliver(
    delivery: SlackDelivery,
    *,
    response_url: str,
    channel_id: str | None,
    client: httpx.AsyncClient | None = None,
) -> None:
    """
    Send every message of a rendered outcome, then its file (if any).

    A failed file upload is reported back to the caller instead of being
    dropped, since the file is the only place that data is shown.
    """
    own = client is None
    http = client or httpx.AsyncClient(timeout=20.0)
    try:
        for message in delivery.messages:
            await respond(http, response_url=response_url, payload=message)

        if delivery.attachment is None:
            return

        res = await upload_file(
            http,
            channel_id=str(channel_id or ""),
            attachment=delivery.attachment,
            initial_comment=delivery.attachment_comment,
        )
        if not bool(res.get("ok")):
            err = str(res.get("error") or "unknown_error")
            log.warning(
                "slack_attachment_delivery_failed",
                filename=delivery.attachment.filename,
                size_bytes=len(delivery.attachment.content),
                error=err,
            )
            await respond(
                http,
                response_url=response_url,
                payload={
                    "response_type": "ephemeral",
                    "text": f"Could not upload {delivery.attachment.filename} ({err}). "
                    "File uploads need SLACK_BOT_TOKEN with the files:write scope.",
                },
            )
    finally:
        if own:
            await http.aclose()
