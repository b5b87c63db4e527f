"""
Pydantic models shared by the Obsidize pipeline.

Export items are a tagged variant: Conversation and Project share the
reconciliation identity (kind, uuid, created_at, updated_at) but nothing
else. The planner and the folder index only rely on that identity.
"""
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# EXPORT ITEMS (produced by parser.py)
# =============================================================================

class Message(BaseModel):
    """A single chat message."""
    uuid: Optional[str] = None
    sender: str
    text: str
    created_at: datetime
    attachments: list[str] = Field(default_factory=list)


class Conversation(BaseModel):
    """A validated Claude conversation."""
    kind: Literal["conversation"] = "conversation"
    uuid: str
    title: str
    created_at: datetime
    updated_at: datetime
    messages: list[Message] = Field(min_length=1)

    @property
    def display_name(self) -> str:
        return self.title


class ProjectDocument(BaseModel):
    """A knowledge document attached to a project."""
    uuid: str
    filename: str
    content: str = ""
    created_at: datetime


class Project(BaseModel):
    """A validated Claude project. Projects may have no documents."""
    kind: Literal["project"] = "project"
    uuid: str
    name: str
    description: str = ""
    prompt_template: str = ""
    created_at: datetime
    updated_at: datetime
    documents: list[ProjectDocument] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name


ExportItem = Annotated[Union[Conversation, Project], Field(discriminator="kind")]


# =============================================================================
# VALIDATION REPORT
# =============================================================================

class ItemIssue(BaseModel):
    """Why a raw record was dropped."""
    index: int = Field(description="Position of the record in the raw collection")
    uuid: Optional[str] = None
    reason: str


class RepairNote(BaseModel):
    """A recoverable defect that was fixed with a fallback value."""
    uuid: str
    note: str


class CategoryReport(BaseModel):
    total: int = 0
    valid: int = 0
    invalid: int = 0
    invalid_items: list[ItemIssue] = Field(default_factory=list)
    repairs: list[RepairNote] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 100.0
        return self.valid / self.total * 100


class ValidationReport(BaseModel):
    conversations: CategoryReport = Field(default_factory=CategoryReport)
    projects: CategoryReport = Field(default_factory=CategoryReport)
    load_errors: list[str] = Field(default_factory=list)

    @property
    def total_invalid(self) -> int:
        return self.conversations.invalid + self.projects.invalid


class ValidatedExport(BaseModel):
    """Output of the Data Validator."""
    conversations: list[Conversation] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    report: ValidationReport = Field(default_factory=ValidationReport)

    @property
    def items(self) -> list[Union[Conversation, Project]]:
        return [*self.conversations, *self.projects]


# =============================================================================
# FOLDER INDEX (produced by vault_scanner.py)
# =============================================================================

EntryType = Literal["conversation", "project-overview", "project-document"]


class DocumentEntry(BaseModel):
    """A project document file found inside a project folder."""
    uuid: str
    path: Path
    ordinal: Optional[int] = None
    created_at: Optional[datetime] = None
    obsidized_at: Optional[datetime] = None


class FolderEntry(BaseModel):
    """Parsed frontmatter of a conversation or project overview file."""
    uuid: str
    path: Path
    type: EntryType
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    obsidized_at: Optional[datetime] = Field(
        default=None, description="None when the stored value could not be parsed"
    )
    source: Optional[str] = None
    obsidize_version: Optional[str] = None
    documents: list[DocumentEntry] = Field(default_factory=list)

    @property
    def kind(self) -> str:
        return "conversation" if self.type == "conversation" else "project"

    @property
    def highest_ordinal(self) -> int:
        ordinals = [doc.ordinal for doc in self.documents if doc.ordinal is not None]
        return max(ordinals, default=0)


class IgnoredFile(BaseModel):
    path: Path
    reason: str


class FolderIndex(BaseModel):
    entries: dict[str, FolderEntry] = Field(default_factory=dict)
    ignored: list[IgnoredFile] = Field(default_factory=list)
    scanned: int = 0

    def get(self, uuid: str) -> Optional[FolderEntry]:
        return self.entries.get(uuid)


# =============================================================================
# RECONCILIATION PLAN (produced by planner.py)
# =============================================================================

class PlanAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    UNCHANGED = "unchanged"


class PlanEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    uuid: str
    kind: Literal["conversation", "project"]
    action: PlanAction
    reason: str
    title: str = ""


class Plan(BaseModel):
    """Immutable list of per-item actions, one entry per validated item."""
    model_config = ConfigDict(frozen=True)

    entries: tuple[PlanEntry, ...] = ()

    def by_action(self, action: PlanAction) -> list[PlanEntry]:
        return [entry for entry in self.entries if entry.action == action]

    def counts(self) -> dict[str, dict[str, int]]:
        """Counts per kind and action, e.g. {"conversation": {"create": 2, ...}}"""
        summary = {
            kind: {action.value: 0 for action in PlanAction}
            for kind in ("conversation", "project")
        }
        for entry in self.entries:
            summary[entry.kind][entry.action.value] += 1
        return summary

    @property
    def is_noop(self) -> bool:
        return all(entry.action == PlanAction.UNCHANGED for entry in self.entries)


# =============================================================================
# EXECUTION RESULTS
# =============================================================================

class ItemOutcome(BaseModel):
    uuid: str
    kind: Literal["conversation", "project"]
    action: PlanAction
    status: Literal["created", "updated", "refreshed", "failed"]
    files_written: list[Path] = Field(default_factory=list)
    messages_appended: int = 0
    documents_added: int = 0
    error: Optional[str] = None


class RunReport(BaseModel):
    """Everything a run produced, returned to the caller and the reporter."""
    validation: ValidationReport
    plan: Plan
    outcomes: list[ItemOutcome] = Field(default_factory=list)
    ignored_files: list[IgnoredFile] = Field(default_factory=list)
    dry_run: bool = False
    run_at: Optional[datetime] = None

    @property
    def files_written(self) -> int:
        return sum(len(outcome.files_written) for outcome in self.outcomes)

    @property
    def failures(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == "failed"]

    @property
    def succeeded(self) -> bool:
        return not self.failures


class RenderOptions(BaseModel):
    """User-facing rendering choices from the CLI and config.json."""
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    speaker_labels: dict[str, str] = Field(
        default_factory=lambda: {"human": "Me", "assistant": "Claude"}
    )
    title_max_length: int = Field(default=100, ge=10)
