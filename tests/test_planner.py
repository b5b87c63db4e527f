"""
Tests for planner.py - create/update/unchanged decisions.
"""
from datetime import datetime, timedelta, timezone
from pathlib import Path

from parser import validate_export
from planner import build_plan, plan_item
from schemas import FolderEntry, FolderIndex, PlanAction

SYNCED = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def entry_for(item, obsidized_at=SYNCED, entry_type=None) -> FolderEntry:
    if entry_type is None:
        entry_type = "conversation" if item.kind == "conversation" else "project-overview"
    return FolderEntry(
        uuid=item.uuid,
        path=Path(f"{item.uuid}.md"),
        type=entry_type,
        obsidized_at=obsidized_at,
    )


def conversation(record: dict):
    return validate_export([record], None).conversations[0]


def test_plan_item_create(sample_claude_conversation):
    """Test that unknown items are created."""
    item = conversation(sample_claude_conversation)
    result = plan_item(item, None)
    assert result.action == PlanAction.CREATE
    assert result.reason == "not in vault"
    assert result.title == "Planning a vegetable garden"


def test_plan_item_unchanged(sample_claude_conversation):
    """Test that items synced after their last update are unchanged."""
    item = conversation(sample_claude_conversation)
    assert plan_item(item, entry_for(item)).action == PlanAction.UNCHANGED


def test_plan_item_tie_is_unchanged(sample_claude_conversation):
    """Test that equal timestamps do not trigger a write."""
    item = conversation(sample_claude_conversation)
    assert plan_item(item, entry_for(item, obsidized_at=item.updated_at)).action == PlanAction.UNCHANGED


def test_plan_item_update(sample_claude_conversation):
    """Test that items updated after the last sync are updated."""
    item = conversation(sample_claude_conversation)
    before = item.updated_at - timedelta(seconds=1)
    result = plan_item(item, entry_for(item, obsidized_at=before))
    assert result.action == PlanAction.UPDATE


def test_plan_item_compares_instants_not_strings(sample_claude_conversation):
    """Test offsets: 09:30+02:00 is before 08:00Z even though the string sorts later."""
    sample_claude_conversation["updated_at"] = "2024-06-01T09:30:00+02:00"
    item = conversation(sample_claude_conversation)
    synced = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)
    assert plan_item(item, entry_for(item, obsidized_at=synced)).action == PlanAction.UNCHANGED


def test_plan_item_unparseable_obsidized_at(sample_claude_conversation):
    """Test that an entry without a sync time forces a create."""
    item = conversation(sample_claude_conversation)
    result = plan_item(item, entry_for(item, obsidized_at=None))
    assert result.action == PlanAction.CREATE
    assert result.reason == "unparseable obsidized_at"


def test_plan_item_type_mismatch(sample_claude_conversation):
    """Test that a uuid claimed by a different note type is not trusted."""
    item = conversation(sample_claude_conversation)
    result = plan_item(item, entry_for(item, entry_type="project-overview"))
    assert result.action == PlanAction.CREATE


def test_build_plan_one_entry_per_item(sample_claude_conversation, second_claude_conversation,
                                       sample_claude_project):
    """Test that every validated item gets exactly one plan entry."""
    validated = validate_export(
        [sample_claude_conversation, second_claude_conversation], [sample_claude_project]
    )
    first = validated.conversations[0]
    index = FolderIndex(entries={first.uuid: entry_for(first)})

    plan = build_plan(validated, index)

    assert [e.uuid for e in plan.entries] == [item.uuid for item in validated.items]
    actions = {e.uuid: e.action for e in plan.entries}
    assert actions[first.uuid] == PlanAction.UNCHANGED
    assert actions[second_claude_conversation["uuid"]] == PlanAction.CREATE
    assert actions[sample_claude_project["uuid"]] == PlanAction.CREATE


def test_build_plan_is_deterministic(sample_claude_conversation, sample_claude_project):
    """Test that planning twice on the same inputs gives the same plan."""
    validated = validate_export([sample_claude_conversation], [sample_claude_project])
    index = FolderIndex()
    assert build_plan(validated, index) == build_plan(validated, index)
