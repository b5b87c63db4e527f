#!/usr/bin/env python3
"""
Incremental merge of export changes into existing notes.

Conversation notes are treated as frontmatter + an append-only message log
that ends at the boundary marker line. New messages go directly above the
marker; nothing already in the note is rewritten except the updated_at and
obsidized_at frontmatter lines. Whatever the user adds below the marker (or
anywhere outside the log) survives every update.

Project overviews are system-owned and re-rendered when their content
changes. Existing project document notes are never modified; new documents
get new numbered notes.
"""
import re
from datetime import datetime
from pathlib import Path

from obsidian_exporter import assign_document_files, listed_document_files, write_note
from schemas import Conversation, FolderEntry, Message, Project, RenderOptions
from templates import (
    BOUNDARY_MARKER,
    MESSAGE_MARKER_RE,
    format_value,
    overview_body,
    render_messages,
    render_project_document,
    render_project_overview,
    split_frontmatter,
)


# =============================================================================
# CONTENT OPERATIONS
# =============================================================================

def recorded_message_ids(content: str) -> set[str]:
    """Message uuids already present in a note, read from the message markers."""
    return {m.group("uuid") for m in MESSAGE_MARKER_RE.finditer(content) if m.group("uuid")}


def select_new_messages(conversation: Conversation, recorded_ids: set[str],
                        since: datetime | None) -> list[Message]:
    """
    Messages missing from the note.

    Identity wins when both sides have it: a message with a uuid is new iff
    the note does not record that uuid. Otherwise a message is new iff it
    was created strictly after `since` (the note's obsidized_at).
    """
    new_messages = []
    for message in conversation.messages:
        if message.uuid and recorded_ids:
            if message.uuid not in recorded_ids:
                new_messages.append(message)
        elif since is not None and message.created_at > since:
            new_messages.append(message)
    return sorted(new_messages, key=lambda m: m.created_at)


def refresh_header(content: str, updates: dict) -> str:
    """
    Rewrite selected frontmatter keys in place.

    Every other line of the note, user-added frontmatter keys included, is
    left as it is. Keys missing from the block are appended to it.
    """
    header, body = split_frontmatter(content)
    if header is None:
        raise ValueError("note has no frontmatter block")

    lines = header.split("\n")
    for key, value in updates.items():
        rendered = f"{key}: {format_value(value)}"
        pattern = re.compile(rf"^{re.escape(key)}\s*:")
        for i, line in enumerate(lines):
            if pattern.match(line):
                lines[i] = rendered
                break
        else:
            lines.append(rendered)

    return "---\n" + "\n".join(lines) + "\n---\n" + body


def insert_before_boundary(content: str, block: str) -> str:
    """
    Append `block` to the message log.

    The block lands right above the last boundary marker line. Without a
    marker it is appended at the end of the note followed by a new marker.
    """
    lines = content.split("\n")
    boundary = None
    for i in range(len(lines) - 1, -1, -1):
        if lines[i].strip() == BOUNDARY_MARKER:
            boundary = i
            break

    if boundary is None:
        return content.rstrip("\n") + "\n\n" + block + "\n\n" + BOUNDARY_MARKER + "\n"

    before = "\n".join(lines[:boundary]).rstrip("\n")
    after = "\n".join(lines[boundary:])
    return before + "\n\n" + block + "\n\n" + after


def merge_conversation_content(content: str, conversation: Conversation,
                               since: datetime | None, obsidized_at: datetime,
                               options: RenderOptions) -> tuple[str, int]:
    """
    Returns (new_content, messages_appended). With nothing to append only
    the frontmatter timestamps change.
    """
    new_messages = select_new_messages(conversation, recorded_message_ids(content), since)
    if new_messages:
        content = insert_before_boundary(content, render_messages(new_messages, options))
    content = refresh_header(content, {
        "updated_at": conversation.updated_at,
        "obsidized_at": obsidized_at,
    })
    return content, len(new_messages)


# =============================================================================
# NOTE UPDATES
# =============================================================================

def merge_conversation(conversation: Conversation, entry: FolderEntry, obsidized_at: datetime,
                       options: RenderOptions) -> tuple[list[Path], int]:
    """
    Append new messages to an existing conversation note.
    Returns (paths_written, messages_appended).
    """
    content = entry.path.read_text(encoding="utf-8")
    updated, appended = merge_conversation_content(
        content, conversation, entry.obsidized_at, obsidized_at, options
    )
    written = write_note(entry.path, updated, conversation.uuid)
    return ([entry.path] if written else []), appended


def merge_project(project: Project, entry: FolderEntry, obsidized_at: datetime,
                  options: RenderOptions) -> tuple[list[Path], int, bool]:
    """
    Add notes for new project documents and bring the overview up to date.
    Returns (paths_written, documents_added, overview_rewritten).
    """
    folder = entry.path.parent
    assignments = assign_document_files(project, folder, entry.documents)

    written = []
    added = 0
    for document, path, is_new in assignments:
        if not is_new:
            continue
        if write_note(path, render_project_document(document, obsidized_at, options), document.uuid):
            written.append(path)
        added += 1

    content = entry.path.read_text(encoding="utf-8")
    _, current_body = split_frontmatter(content)
    document_files = listed_document_files(assignments, entry.documents)

    rewrite = current_body != overview_body(project, document_files, options)
    if rewrite:
        updated = render_project_overview(project, document_files, obsidized_at, options)
    else:
        updated = refresh_header(content, {
            "updated_at": project.updated_at,
            "obsidized_at": obsidized_at,
        })
    if write_note(entry.path, updated, project.uuid):
        written.append(entry.path)
    return written, added, rewrite
