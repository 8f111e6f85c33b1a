from __future__ import annotations

import hashlib
import hmac
import shlex
import time
from typing import Any
from urllib.parse import parse_qs

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from ..integrations.slack.slack_render import render_outcome
from ..integrations.slack.slack_secrets import get_signing_secret
from ..integrations.slack.slack_web import deliver
from ..observability.logging import get_logger
from ..pipeline.handler import EntryViewHandler
from ..settings import settings

router = APIRouter(tags=["integrations"])
log = get_logger("integrations_slack")

HELP_TEXT = "\n".join(
    [
        "*Datastore viewer Slack commands*",
        "- `/datastore help`",
        "- `/datastore entry <key> <universeId> <datastore>` (view one entry; alias `show`)",
        "- `/datastore record <userId> <universeId> [datastore]` (view a player's record; alias `player`)",
        "Quote keys that contain spaces: `/datastore entry \"my key\" 123 Economy`.",
    ]
)


def _verify_slack_signature(
    *,
    body: bytes,
    timestamp: str | None,
    signature: str | None,
    request_id: str | None = None,
) -> None:
    if not bool(settings.slack_enabled):
        # Treat disabled integrations as "not available" rather than auth failure.
        log.info("slack_request_rejected_integration_disabled", request_id=request_id)
        raise HTTPException(status_code=503, detail="Slack integration disabled")

    secret = get_signing_secret()
    if not secret:
        log.warning("slack_request_rejected_not_configured", request_id=request_id)
        raise HTTPException(status_code=503, detail="Slack not configured")

    ts = str(timestamp or "").strip()
    sig = str(signature or "").strip()
    if not ts or not sig:
        log.info(
            "slack_request_rejected_missing_signature_headers",
            request_id=request_id,
            has_timestamp=bool(ts),
            has_signature=bool(sig),
        )
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    try:
        ts_i = int(ts)
    except ValueError:
        log.info("slack_request_rejected_invalid_timestamp", request_id=request_id)
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    # Prevent replay attacks (5 minute window).
    now = int(time.time())
    if abs(now - ts_i) > 60 * 5:
        log.info("slack_request_rejected_replay_window", request_id=request_id, now=now, timestamp=ts_i)
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    base = b"v0:" + ts.encode("utf-8") + b":" + (body or b"")
    digest = hmac.new(secret.encode("utf-8"), base, hashlib.sha256).hexdigest()
    expected = f"v0={digest}"

    if not hmac.compare_digest(expected, sig):
        log.info(
            "slack_request_rejected_signature_mismatch",
            request_id=request_id,
            body_len=len(body or b""),
        )
        raise HTTPException(status_code=401, detail="Invalid Slack signature")


async def _require_slack_request(request: Request) -> bytes:
    body = await request.body()
    rid = getattr(getattr(request, "state", None), "request_id", None)
    _verify_slack_signature(
        body=body,
        timestamp=request.headers.get("X-Slack-Request-Timestamp"),
        signature=request.headers.get("X-Slack-Signature"),
        request_id=str(rid) if rid else None,
    )
    return body


def _handler(request: Request) -> EntryViewHandler:
    handler = getattr(request.app.state, "entry_view_handler", None)
    if handler is None:
        raise HTTPException(status_code=503, detail="Datastore viewer not configured")
    return handler


async def _run_view_command(
    *,
    handler: EntryViewHandler,
    sub: str,
    args: list[str],
    response_url: str,
    channel_id: str | None,
) -> None:
    if sub == "entry":
        outcome = await handler.show_entry(*args)
    else:
        outcome = await handler.show_record(*args)
    log.info("slack_view_command_done", sub=sub, kind=outcome.kind.value)
    await deliver(render_outcome(outcome), response_url=response_url, channel_id=channel_id)


@router.post("/slack/commands")
async def slack_commands(request: Request, background_tasks: BackgroundTasks) -> dict[str, Any]:
    body = await _require_slack_request(request)

    # Slack sends application/x-www-form-urlencoded for slash commands.
    form = parse_qs(body.decode("utf-8", errors="ignore"))
    text = str((form.get("text") or [""])[0] or "").strip()
    response_url = str((form.get("response_url") or [""])[0] or "").strip()
    channel_id = str((form.get("channel_id") or [""])[0] or "").strip() or None

    try:
        parts = shlex.split(text)
    except ValueError:
        return {"response_type": "ephemeral", "text": "Unbalanced quotes. Try `/datastore help`."}

    sub = (parts[0].lower() if parts else "help").strip()
    rest = parts[1:]

    # Keep this stable because tests assert this help text shape.
    if sub in ("help", "h", "?"):
        return {"response_type": "ephemeral", "text": HELP_TEXT}

    if sub in ("entry", "show"):
        if len(rest) != 3:
            return {
                "response_type": "ephemeral",
                "text": "Usage: `/datastore entry <key> <universeId> <datastore>`",
            }
        args = rest
        sub = "entry"
    elif sub in ("record", "player"):
        if len(rest) not in (2, 3):
            return {
                "response_type": "ephemeral",
                "text": "Usage: `/datastore record <userId> <universeId> [datastore]`",
            }
        args = rest if len(rest) == 3 else rest + [settings.slack_default_datastore]
        sub = "record"
    else:
        return {"response_type": "ephemeral", "text": "Unknown command. Try `/datastore help`."}

    if not response_url:
        return {"response_type": "ephemeral", "text": "Missing response_url; cannot reply."}

    # ACK quickly; answer via response_url in the background (avoids Slack 3s timeout).
    background_tasks.add_task(
        _run_view_command,
        handler=_handler(request),
        sub=sub,
        args=args,
        response_url=response_url,
        channel_id=channel_id,
    )
    return {"response_type": "ephemeral", "text": "Fetching…"}
