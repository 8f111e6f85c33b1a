"""
PresentationPlanner: decide how one datastore entry is shown in chat.

The planner never talks to the chat host. It returns a RenderPlan that the
surface adapter realizes, and it guarantees the plan fits the host's limits:
whatever does not fit inline is delivered as a file instead of being cut.

Strategies, in order of preference for the "auto" layout:

- FencedBlock: summary fields plus a ```json block in the same message.
- SplitBlock: summary fields, with the ```json block in a secondary block.
- FileAttachment: summary fields only; the document goes out as a file.

Thresholds are measured on the rendered (fenced) body so the fence markup
can never push a message past the host limit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..domain.entry import Entry, EntryMapping, EntryString, is_empty, scalar_text, serialize
from ..domain.errors import SizeOverflowError
from .limits import RenderLayout, SurfaceLimits
from .text import attachment_filename, clip, format_timestamp, humanize_label, truncate_label

NO_DATA_LABEL = "Data"
NO_DATA_TEXT = "No data stored"
EMPTY_STRING_TEXT = "(empty string)"
FENCE = "```"
FENCE_LANGUAGE = "json"


class RenderStrategy(str, Enum):
    INLINE_FIELDS = "inline_fields"
    FENCED_BLOCK = "fenced_block"
    SPLIT_BLOCK = "split_block"
    FILE_ATTACHMENT = "file_attachment"


@dataclass(frozen=True, slots=True)
class SummaryField:
    label: str
    value: str


@dataclass(frozen=True, slots=True)
class Attachment:
    filename: str
    content: bytes


@dataclass(frozen=True, slots=True)
class RenderPlan:
    strategy: RenderStrategy
    summary_fields: tuple[SummaryField, ...]
    body: str | None = None
    attachment: Attachment | None = None
    truncated: bool = False


@dataclass(frozen=True, slots=True)
class _Summary:
    fields: tuple[SummaryField, ...]
    label_truncated: bool
    # True when the fields alone show every value of the entry unclipped.
    complete: bool


def fence(text: str) -> str:
    return f"{FENCE}{FENCE_LANGUAGE}\n{text}\n{FENCE}"


def unfence(body: str) -> str:
    """Inverse of fence(); returns the document inside a rendered body."""
    head = f"{FENCE}{FENCE_LANGUAGE}\n"
    tail = f"\n{FENCE}"
    if not (body.startswith(head) and body.endswith(tail)):
        raise ValueError("Body is not a fenced block")
    return body[len(head) : len(body) - len(tail)]


def fields_size(fields: tuple[SummaryField, ...]) -> int:
    return sum(len(f.label) + len(f.value) for f in fields)


class PresentationPlanner:
    """Stateless; the same entry and limits always give an equal plan."""

    def __init__(
        self,
        limits: SurfaceLimits,
        *,
        layout: RenderLayout = RenderLayout.AUTO,
        format_timestamps: bool = True,
    ) -> None:
        self.limits = limits
        self.layout = RenderLayout(layout)
        self.format_timestamps = format_timestamps

    def plan(self, entry: Entry | None, *, key: str) -> RenderPlan:
        if is_empty(entry):
            return RenderPlan(
                strategy=RenderStrategy.INLINE_FIELDS,
                summary_fields=(SummaryField(NO_DATA_LABEL, NO_DATA_TEXT),),
            )

        text = serialize(entry)
        summary = self._summary(entry)

        if self.layout is RenderLayout.INLINE:
            if summary.complete:
                return RenderPlan(
                    strategy=RenderStrategy.INLINE_FIELDS,
                    summary_fields=summary.fields,
                    truncated=summary.label_truncated,
                )
            return self._attachment_plan(text, summary, key=key, reason="does not fit in fields")

        if FENCE in text:
            # A nested ``` would close the block early; only a file keeps it intact.
            return self._attachment_plan(text, summary, key=key, reason="cannot be shown in a code block")

        body = fence(text)
        size = len(body)
        lim = self.limits

        if (
            self.layout in (RenderLayout.AUTO, RenderLayout.CODE_BLOCK)
            and size < lim.fenced_block_soft_limit
            and fields_size(summary.fields) + size <= lim.message_limit
        ):
            return RenderPlan(
                strategy=RenderStrategy.FENCED_BLOCK,
                summary_fields=summary.fields,
                body=body,
                truncated=summary.label_truncated,
            )

        if self.layout in (RenderLayout.AUTO, RenderLayout.SPLIT) and size <= lim.description_hard_limit:
            return RenderPlan(
                strategy=RenderStrategy.SPLIT_BLOCK,
                summary_fields=summary.fields,
                body=body,
                truncated=summary.label_truncated,
            )

        return self._attachment_plan(text, summary, key=key, reason="is too large to display inline")

    # ---- summary fields ----

    def _field_value(self, key: str, value: Entry) -> str:
        if self.format_timestamps:
            ts = format_timestamp(key, value)
            if ts:
                return ts
        if isinstance(value, EntryString) and not value.value:
            return EMPTY_STRING_TEXT
        return scalar_text(value)

    def _value_budget(self, label: str) -> int:
        return min(self.limits.inline_field_limit, self.limits.message_limit - len(label))

    def _overview(self, entry: EntryMapping) -> SummaryField:
        keys = ", ".join(entry.keys())
        text = f"{len(entry)} top-level keys: {keys}"
        return SummaryField("Fields", clip(text, self._value_budget("Fields")))

    def _summary(self, entry: Entry) -> _Summary:
        lim = self.limits

        if not isinstance(entry, EntryMapping):
            raw = self._field_value("value", entry)
            shown = clip(raw, self._value_budget("Value"))
            return _Summary(
                fields=(SummaryField("Value", shown),),
                label_truncated=False,
                complete=shown == raw,
            )

        if len(entry) > lim.max_summary_fields:
            return _Summary(fields=(self._overview(entry),), label_truncated=False, complete=False)

        fields: list[SummaryField] = []
        label_truncated = False
        clipped = False
        for key, value in entry.items:
            label = humanize_label(key)
            short = truncate_label(label, lim.key_label_max_len)
            label_truncated = label_truncated or short != label
            raw = self._field_value(key, value)
            shown = clip(raw, lim.inline_field_limit)
            clipped = clipped or shown != raw
            fields.append(SummaryField(short, shown))

        out = tuple(fields)
        if fields_size(out) > lim.message_limit:
            return _Summary(fields=(self._overview(entry),), label_truncated=False, complete=False)
        return _Summary(fields=out, label_truncated=label_truncated, complete=not clipped)

    # ---- file fallback ----

    def _attachment_plan(self, text: str, summary: _Summary, *, key: str, reason: str) -> RenderPlan:
        filename = attachment_filename(key)
        content = text.encode("utf-8")
        if len(content) > self.limits.max_attachment_bytes:
            raise SizeOverflowError(
                message=(
                    f"Entry is {len(content)} bytes, larger than the "
                    f"{self.limits.max_attachment_bytes} byte attachment limit."
                ),
                size_bytes=len(content),
                limit_bytes=self.limits.max_attachment_bytes,
            )

        # Long keys make long filenames; the note alone must still fit the message.
        note_text = f"Data {reason}; attached as {filename}."
        note = SummaryField("Note", clip(note_text, self._value_budget("Note")))
        fields = summary.fields
        if fields_size(fields) + fields_size((note,)) > self.limits.message_limit:
            fields = ()
        return RenderPlan(
            strategy=RenderStrategy.FILE_ATTACHMENT,
            summary_fields=fields + (note,),
            attachment=Attachment(filename=filename, content=content),
            truncated=True,
        )
