from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from ..settings import Settings


@dataclass(frozen=True, slots=True)
class SurfaceLimits:
    """
    Size budgets of one chat host, in characters unless noted.

    inline_field_limit: max length of one summary field value.
    message_limit: summary fields plus an inline fenced body, combined.
    fenced_block_soft_limit: rendered body must stay below this to go inline.
    description_hard_limit: max rendered body for a secondary block.
    key_label_max_len: labels longer than this are shortened with "...".
    max_summary_fields: per-key fields are only used up to this many keys.
    max_attachment_bytes: largest file the host accepts.
    """

    inline_field_limit: int
    message_limit: int
    fenced_block_soft_limit: int
    description_hard_limit: int
    key_label_max_len: int
    max_summary_fields: int
    max_attachment_bytes: int

    def __post_init__(self) -> None:
        if self.key_label_max_len <= 3:
            raise ValueError("key_label_max_len must leave room for the ellipsis")
        if self.inline_field_limit <= 3:
            raise ValueError("inline_field_limit must leave room for the ellipsis")
        if self.message_limit < 100:
            raise ValueError("message_limit is too small to hold a summary")
        if self.fenced_block_soft_limit > self.description_hard_limit:
            raise ValueError("fenced_block_soft_limit cannot exceed description_hard_limit")


PROFILES: dict[str, SurfaceLimits] = {
    # Section fields cap at 2000 chars (label and markup included), section
    # text at 3000.
    "slack": SurfaceLimits(
        inline_field_limit=1800,
        message_limit=2000,
        fenced_block_soft_limit=1900,
        description_hard_limit=3000,
        key_label_max_len=150,
        max_summary_fields=10,
        max_attachment_bytes=1024 * 1024 * 1024,
    ),
    # Embed field values cap at 1024, descriptions at 4096, content at 2000.
    "discord": SurfaceLimits(
        inline_field_limit=1024,
        message_limit=2000,
        fenced_block_soft_limit=1900,
        description_hard_limit=4096,
        key_label_max_len=256,
        max_summary_fields=25,
        max_attachment_bytes=8 * 1024 * 1024,
    ),
}


class RenderLayout(str, Enum):
    AUTO = "auto"
    INLINE = "inline"
    CODE_BLOCK = "code_block"
    SPLIT = "split"


def limits_for(profile: str, **overrides: int | None) -> SurfaceLimits:
    name = str(profile or "").strip().lower() or "slack"
    base = PROFILES.get(name)
    if base is None:
        raise ValueError(f"Unknown surface profile: {profile!r}")
    changes = {k: int(v) for k, v in overrides.items() if v is not None}
    return replace(base, **changes) if changes else base


def limits_from_settings(settings: Settings) -> SurfaceLimits:
    return limits_for(
        settings.surface_profile,
        message_limit=settings.surface_message_limit,
        fenced_block_soft_limit=settings.surface_fenced_soft_limit,
        description_hard_limit=settings.surface_description_limit,
        inline_field_limit=settings.surface_inline_field_limit,
        key_label_max_len=settings.surface_label_max_len,
    )


def layout_from_settings(settings: Settings) -> RenderLayout:
    raw = str(settings.render_layout or "").strip().lower() or RenderLayout.AUTO.value
    try:
        return RenderLayout(raw)
    except ValueError:
        raise ValueError(f"Unknown render layout: {settings.render_layout!r}") from None
