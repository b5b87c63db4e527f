"""
Reconciliation planner.

Pure functions: compare validated export items with the folder index and
assign each item exactly one action. Nothing here touches the filesystem
or prints.
"""
from schemas import FolderEntry, FolderIndex, Plan, PlanAction, PlanEntry, ValidatedExport
from timestamps import format_instant

ENTRY_KINDS = {
    "conversation": "conversation",
    "project-overview": "project",
}


def plan_item(item, entry: FolderEntry | None) -> PlanEntry:
    """
    Decide the action for one export item.

    Ties between updated_at and obsidized_at count as unchanged. An entry
    whose obsidized_at could not be parsed is treated as absent.
    """
    def make(action: PlanAction, reason: str) -> PlanEntry:
        return PlanEntry(
            uuid=item.uuid,
            kind=item.kind,
            action=action,
            reason=reason,
            title=item.display_name,
        )

    if entry is None:
        return make(PlanAction.CREATE, "not in vault")
    if ENTRY_KINDS.get(entry.type) != item.kind:
        return make(PlanAction.CREATE, f"vault entry is a {entry.type} note")
    if entry.obsidized_at is None:
        return make(PlanAction.CREATE, "unparseable obsidized_at")

    if item.updated_at > entry.obsidized_at:
        return make(
            PlanAction.UPDATE,
            f"updated {format_instant(item.updated_at)} after last sync {format_instant(entry.obsidized_at)}",
        )
    return make(PlanAction.UNCHANGED, "no changes since last sync")


def build_plan(validated: ValidatedExport, index: FolderIndex) -> Plan:
    """One plan entry per validated item, conversations first."""
    return Plan(entries=tuple(
        plan_item(item, index.get(item.uuid)) for item in validated.items
    ))
