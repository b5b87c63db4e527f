"""
Tests for schemas.py - Pydantic data models.
"""
from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import TypeAdapter, ValidationError

from schemas import (
    CategoryReport,
    Conversation,
    DocumentEntry,
    ExportItem,
    FolderEntry,
    ItemOutcome,
    Message,
    Plan,
    PlanAction,
    PlanEntry,
    Project,
    RenderOptions,
    RunReport,
    ValidationReport,
)

T0 = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def make_message(**overrides) -> Message:
    data = {"uuid": "m1", "sender": "human", "text": "Hi", "created_at": T0}
    data.update(overrides)
    return Message(**data)


def test_conversation_requires_messages():
    """Test that a conversation without messages is rejected."""
    with pytest.raises(ValidationError):
        Conversation(uuid="c1", title="Empty", created_at=T0, updated_at=T0, messages=[])


def test_project_allows_no_documents():
    """Test that projects may be empty."""
    project = Project(uuid="p1", name="Empty", created_at=T0, updated_at=T0)
    assert project.documents == []
    assert project.display_name == "Empty"


def test_export_item_discriminator():
    """Test that the kind tag selects the right model."""
    adapter = TypeAdapter(ExportItem)
    item = adapter.validate_python({
        "kind": "project", "uuid": "p1", "name": "Lab",
        "created_at": T0, "updated_at": T0,
    })
    assert isinstance(item, Project)

    item = adapter.validate_python({
        "kind": "conversation", "uuid": "c1", "title": "Chat",
        "created_at": T0, "updated_at": T0,
        "messages": [make_message().model_dump()],
    })
    assert isinstance(item, Conversation)
    assert item.display_name == "Chat"


def test_category_report_success_rate():
    """Test success rate calculation, including the empty case."""
    assert CategoryReport().success_rate == 100.0
    assert CategoryReport(total=4, valid=3, invalid=1).success_rate == 75.0


def test_plan_entry_is_frozen():
    """Test that plan entries cannot be modified."""
    entry = PlanEntry(uuid="c1", kind="conversation", action=PlanAction.CREATE, reason="not in vault")
    with pytest.raises(ValidationError):
        entry.action = PlanAction.UNCHANGED


def test_plan_counts():
    """Test per-kind action counts."""
    plan = Plan(entries=(
        PlanEntry(uuid="a", kind="conversation", action=PlanAction.CREATE, reason=""),
        PlanEntry(uuid="b", kind="conversation", action=PlanAction.UNCHANGED, reason=""),
        PlanEntry(uuid="p", kind="project", action=PlanAction.UPDATE, reason=""),
    ))
    counts = plan.counts()
    assert counts["conversation"] == {"create": 1, "update": 0, "unchanged": 1}
    assert counts["project"] == {"create": 0, "update": 1, "unchanged": 0}
    assert not plan.is_noop
    assert [e.uuid for e in plan.by_action(PlanAction.CREATE)] == ["a"]


def test_empty_plan_is_noop():
    """Test that an empty plan counts as a no-op."""
    assert Plan().is_noop


def test_folder_entry_highest_ordinal():
    """Test ordinal bookkeeping on project overview entries."""
    entry = FolderEntry(
        uuid="p1", path=Path("lab/lab.md"), type="project-overview",
        documents=[
            DocumentEntry(uuid="d1", path=Path("lab/001_a.md"), ordinal=1),
            DocumentEntry(uuid="d2", path=Path("lab/007_b.md"), ordinal=7),
            DocumentEntry(uuid="d3", path=Path("lab/notes.md"), ordinal=None),
        ],
    )
    assert entry.highest_ordinal == 7
    assert entry.kind == "project"


def test_folder_entry_rejects_unknown_type():
    """Test that only the three note types are accepted."""
    with pytest.raises(ValidationError):
        FolderEntry(uuid="x", path=Path("x.md"), type="daily-note")


def test_run_report_aggregates():
    """Test derived counts on the run report."""
    report = RunReport(
        validation=ValidationReport(),
        plan=Plan(),
        outcomes=[
            ItemOutcome(uuid="a", kind="conversation", action=PlanAction.CREATE,
                        status="created", files_written=[Path("a.md")]),
            ItemOutcome(uuid="b", kind="project", action=PlanAction.CREATE,
                        status="failed", error="Permission denied"),
        ],
    )
    assert report.files_written == 1
    assert [o.uuid for o in report.failures] == ["b"]
    assert not report.succeeded


def test_render_options_defaults():
    """Test default speaker labels."""
    options = RenderOptions()
    assert options.speaker_labels == {"human": "Me", "assistant": "Claude"}
    assert options.tags == []
