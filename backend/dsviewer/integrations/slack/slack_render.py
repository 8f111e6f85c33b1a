"""
Turn a ViewOutcome into Slack messages (Block Kit) and an optional file.

Slack hard limits honoured here: header text 150 chars, section text 3000,
section field text 2000, 10 fields per section, 50 blocks per message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...pipeline.handler import OutcomeKind, ViewOutcome
from ...presentation.planner import Attachment, RenderStrategy, SummaryField, unfence
from ...presentation.text import ELLIPSIS, attachment_filename, clip

HEADER_LIMIT = 150
SECTION_TEXT_LIMIT = 3000
FIELD_TEXT_LIMIT = 2000
FIELDS_PER_SECTION = 10
FOOTER_TEXT = "Datastore Entry Information"


@dataclass(frozen=True, slots=True)
class SlackDelivery:
    # response_url payloads, posted in order.
    messages: tuple[dict[str, Any], ...]
    attachment: Attachment | None = None
    attachment_comment: str | None = None


def escape_mrkdwn(text: str) -> str:
    return str(text or "").replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def clip_escaped(text: str, limit: int) -> str:
    """Escape, then clip on a character boundary so no entity is cut in half."""
    out = escape_mrkdwn(text)
    if len(out) <= limit:
        return out
    budget = max(limit - len(ELLIPSIS), 0)
    parts: list[str] = []
    size = 0
    for ch in str(text or ""):
        piece = escape_mrkdwn(ch)
        if size + len(piece) > budget:
            break
        parts.append(piece)
        size += len(piece)
    return "".join(parts) + ELLIPSIS


def _field(label: str, value: str) -> dict[str, Any]:
    head = f"*{clip_escaped(label, HEADER_LIMIT)}*\n"
    return {"type": "mrkdwn", "text": head + clip_escaped(value, FIELD_TEXT_LIMIT - len(head))}


def _field_sections(fields: tuple[SummaryField, ...]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for i in range(0, len(fields), FIELDS_PER_SECTION):
        chunk = fields[i : i + FIELDS_PER_SECTION]
        out.append({"type": "section", "fields": [_field(f.label, f.value) for f in chunk]})
    return out


def _body_section(body: str) -> dict[str, Any] | None:
    """Section holding the fenced body, or None when escaping pushes it past Slack's limit."""
    text = escape_mrkdwn(body)
    if len(text) > SECTION_TEXT_LIMIT:
        return None
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _header_blocks(outcome: ViewOutcome) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": clip(outcome.title or "Datastore Entry", HEADER_LIMIT)},
        }
    ]
    tenant = outcome.tenant
    if tenant is not None:
        section: dict[str, Any] = {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Experience:* {escape_mrkdwn(tenant.display_name)}"},
        }
        if tenant.icon_url:
            section["accessory"] = {
                "type": "image",
                "image_url": tenant.icon_url,
                "alt_text": clip(tenant.display_name, 200),
            }
        blocks.append(section)
    if outcome.context:
        blocks.append({"type": "section", "fields": [_field(k, v) for k, v in outcome.context]})
    blocks.append({"type": "divider"})
    return blocks


def _footer() -> dict[str, Any]:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": FOOTER_TEXT}]}


def _message(text: str, blocks: list[dict[str, Any]] | None = None, *, response_type: str) -> dict[str, Any]:
    payload: dict[str, Any] = {"response_type": response_type, "text": str(text or "").strip() or "(no text)"}
    if blocks:
        payload["blocks"] = blocks
    return payload


def render_outcome(outcome: ViewOutcome, *, response_type: str = "in_channel") -> SlackDelivery:
    if outcome.kind is not OutcomeKind.OK or outcome.plan is None:
        # Validation/credential/lookup problems are only shown to the caller.
        return SlackDelivery(messages=(_message(outcome.message or "Something went wrong.", response_type="ephemeral"),))

    plan = outcome.plan
    title = outcome.title or "Datastore Entry"
    blocks = _header_blocks(outcome) + _field_sections(plan.summary_fields)

    if plan.strategy is RenderStrategy.FENCED_BLOCK and plan.body:
        body = _body_section(plan.body)
        if body is not None:
            blocks.append(body)
            blocks.append(_footer())
            return SlackDelivery(messages=(_message(title, blocks, response_type=response_type),))
        return _as_file(outcome, blocks, response_type=response_type)

    if plan.strategy is RenderStrategy.SPLIT_BLOCK and plan.body:
        body = _body_section(plan.body)
        if body is None:
            return _as_file(outcome, blocks, response_type=response_type)
        blocks.append(_footer())
        return SlackDelivery(
            messages=(
                _message(title, blocks, response_type=response_type),
                _message(f"{title} (data)", [body], response_type=response_type),
            )
        )

    blocks.append(_footer())
    return SlackDelivery(
        messages=(_message(title, blocks, response_type=response_type),),
        attachment=plan.attachment,
        attachment_comment=title if plan.attachment else None,
    )


def _as_file(outcome: ViewOutcome, blocks: list[dict[str, Any]], *, response_type: str) -> SlackDelivery:
    """
    The planned body fits the surface limits but not once Slack's entity
    escaping is applied; ship the same document as a file instead.
    """
    body = outcome.plan.body if outcome.plan else None
    attachment = Attachment(
        filename=attachment_filename(outcome.key or "entry"),
        content=unfence(body).encode("utf-8") if body else b"",
    )
    blocks = blocks + [
        {"type": "section", "fields": [_field("Note", f"Data attached as {attachment.filename}.")]},
        _footer(),
    ]
    title = outcome.title or "Datastore Entry"
    return SlackDelivery(
        messages=(_message(title, blocks, response_type=response_type),),
        attachment=attachment,
        attachment_comment=title,
    )
