from __future__ import annotations

import json

import pytest

from dsviewer.domain.entry import EntryMapping, EntryString, entry_from_json, serialize
from dsviewer.domain.errors import SizeOverflowError
from dsviewer.presentation.limits import PROFILES, RenderLayout, SurfaceLimits, limits_for
from dsviewer.presentation.planner import (
    PresentationPlanner,
    RenderStrategy,
    SummaryField,
    fence,
    unfence,
)


def _limits(**overrides) -> SurfaceLimits:
    base = dict(
        inline_field_limit=1000,
        message_limit=5000,
        fenced_block_soft_limit=200,
        description_hard_limit=400,
        key_label_max_len=20,
        max_summary_fields=10,
        max_attachment_bytes=10_000,
    )
    base.update(overrides)
    return SurfaceLimits(**base)


def _string_with_body_len(n: int) -> EntryString:
    # serialize() adds 2 quotes, fence() adds "```json\n" and "\n```".
    return EntryString("a" * (n - 14))


def test_gold_100_end_to_end_plan():
    raw = {"currency": 250, "lastUpdated": 1700000000000}
    planner = PresentationPlanner(PROFILES["slack"])

    plan = planner.plan(entry_from_json(raw), key="gold_100")

    assert plan.strategy is RenderStrategy.FENCED_BLOCK
    assert plan.summary_fields == (
        SummaryField("Currency", "250"),
        SummaryField("Last Updated", "2023-11-14 22:13:20 UTC"),
    )
    assert plan.body == "```json\n" + json.dumps(raw, indent=2) + "\n```"
    assert plan.attachment is None
    assert plan.truncated is False


def test_empty_mapping_gives_placeholder_field():
    plan = PresentationPlanner(_limits()).plan(EntryMapping(), key="k")
    assert plan.strategy is RenderStrategy.INLINE_FIELDS
    assert plan.summary_fields == (SummaryField("Data", "No data stored"),)
    assert plan.body is None
    assert plan.truncated is False


def test_absent_entry_gives_placeholder_field():
    plan = PresentationPlanner(_limits()).plan(None, key="k")
    assert plan.summary_fields == (SummaryField("Data", "No data stored"),)


@pytest.mark.parametrize(
    "body_len,expected",
    [
        (199, RenderStrategy.FENCED_BLOCK),
        (200, RenderStrategy.SPLIT_BLOCK),
        (400, RenderStrategy.SPLIT_BLOCK),
        (401, RenderStrategy.FILE_ATTACHMENT),
    ],
)
def test_strategy_boundaries(body_len, expected):
    entry = _string_with_body_len(body_len)
    plan = PresentationPlanner(_limits()).plan(entry, key="k")
    if plan.body is not None:
        assert len(plan.body) == body_len
    assert plan.strategy is expected


def test_fenced_body_round_trips_to_canonical_text():
    entry = entry_from_json({"a": [1, 2, {"b": "ü"}], "c": None})
    plan = PresentationPlanner(_limits(fenced_block_soft_limit=4000, description_hard_limit=4000)).plan(
        entry, key="k"
    )
    assert plan.strategy is RenderStrategy.FENCED_BLOCK
    assert unfence(plan.body) == serialize(entry)


def test_planning_is_idempotent():
    entry = entry_from_json({"coins": 5, "inventory": ["sword", "shield"] * 40})
    planner = PresentationPlanner(_limits())
    assert planner.plan(entry, key="p") == planner.plan(entry, key="p")


def test_long_label_is_truncated_to_max_len():
    key = "k" * 30
    plan = PresentationPlanner(_limits()).plan(entry_from_json({key: 1}), key="x")
    label = plan.summary_fields[0].label
    assert len(label) == 20
    assert label.endswith("...")
    assert plan.truncated is True


def test_file_attachment_carries_full_document():
    entry = _string_with_body_len(1000)
    plan = PresentationPlanner(_limits()).plan(entry, key="big key")

    assert plan.strategy is RenderStrategy.FILE_ATTACHMENT
    assert plan.body is None
    assert plan.truncated is True
    assert plan.attachment.filename == "big_key_data.json"
    assert plan.attachment.content == serialize(entry).encode("utf-8")
    assert plan.summary_fields[-1].label == "Note"
    assert "big_key_data.json" in plan.summary_fields[-1].value


def test_triple_backticks_go_to_attachment():
    entry = entry_from_json({"note": "```oops```"})
    plan = PresentationPlanner(_limits()).plan(entry, key="k")
    assert plan.strategy is RenderStrategy.FILE_ATTACHMENT
    assert plan.attachment.content == serialize(entry).encode("utf-8")


def test_attachment_over_host_limit_raises():
    entry = EntryString("x" * 20_000)
    with pytest.raises(SizeOverflowError) as exc:
        PresentationPlanner(_limits()).plan(entry, key="k")
    assert exc.value.limit_bytes == 10_000


def test_many_keys_collapse_into_overview_field():
    raw = {f"k{i}": i for i in range(11)}
    plan = PresentationPlanner(_limits()).plan(entry_from_json(raw), key="k")
    assert len(plan.summary_fields) == 1
    assert plan.summary_fields[0].label == "Fields"
    assert plan.summary_fields[0].value.startswith("11 top-level keys: k0, k1")


def test_long_values_are_clipped_in_fields_but_kept_in_body():
    raw = {"bio": "b" * 300}
    plan = PresentationPlanner(
        _limits(inline_field_limit=50, fenced_block_soft_limit=1000, description_hard_limit=1000)
    ).plan(entry_from_json(raw), key="k")
    assert plan.summary_fields[0].value == "b" * 47 + "..."
    assert "b" * 300 in plan.body
    assert plan.truncated is False


def test_empty_string_value_has_visible_text():
    plan = PresentationPlanner(_limits()).plan(entry_from_json({"motto": ""}), key="k")
    assert plan.summary_fields[0] == SummaryField("Motto", "(empty string)")


def test_inline_layout_uses_fields_only():
    planner = PresentationPlanner(_limits(), layout=RenderLayout.INLINE)
    plan = planner.plan(entry_from_json({"coins": 5, "name": "bob"}), key="k")
    assert plan.strategy is RenderStrategy.INLINE_FIELDS
    assert plan.body is None
    assert plan.summary_fields == (SummaryField("Coins", "5"), SummaryField("Name", "bob"))


def test_inline_layout_falls_back_to_attachment_when_clipped():
    planner = PresentationPlanner(_limits(inline_field_limit=10), layout=RenderLayout.INLINE)
    plan = planner.plan(entry_from_json({"name": "a very long player name"}), key="k")
    assert plan.strategy is RenderStrategy.FILE_ATTACHMENT


def test_code_block_layout_never_splits():
    planner = PresentationPlanner(_limits(), layout=RenderLayout.CODE_BLOCK)
    plan = planner.plan(_string_with_body_len(300), key="k")
    assert plan.strategy is RenderStrategy.FILE_ATTACHMENT


def test_split_layout_uses_secondary_block_for_small_entries():
    planner = PresentationPlanner(_limits(), layout=RenderLayout.SPLIT)
    plan = planner.plan(_string_with_body_len(50), key="k")
    assert plan.strategy is RenderStrategy.SPLIT_BLOCK


def test_fence_and_unfence_are_inverse():
    assert unfence(fence('{\n  "a": 1\n}')) == '{\n  "a": 1\n}'
    with pytest.raises(ValueError):
        unfence("not fenced")


def test_limits_validation_and_overrides():
    with pytest.raises(ValueError):
        _limits(fenced_block_soft_limit=500, description_hard_limit=400)
    assert limits_for("discord", message_limit=1500).message_limit == 1500
    assert limits_for("slack") is PROFILES["slack"]
    with pytest.raises(ValueError):
        limits_for("teams")


def test_long_key_note_stays_within_message_limit():
    limits = PROFILES["slack"]
    plan = PresentationPlanner(limits).plan(EntryString("x" * 5000), key="k" * 2500)

    assert plan.strategy is RenderStrategy.FILE_ATTACHMENT
    assert sum(len(f.label) + len(f.value) for f in plan.summary_fields) <= limits.message_limit
    assert plan.summary_fields[-1].label == "Note"
    assert plan.summary_fields[-1].value.endswith("...")
