#!/usr/bin/env python3
"""
Obsidian vault writer for Obsidize.

Renders new conversation and project notes and writes them atomically.
Projects get their own folder holding an overview note and one numbered
note per project document. A file is only ever overwritten when its
frontmatter says it belongs to the same item.
"""
import os
import platform
import tempfile
import time
from datetime import datetime
from pathlib import Path

from errors import OutputRootError
from schemas import Conversation, DocumentEntry, FolderEntry, Project, ProjectDocument, RenderOptions
from templates import (
    conversation_filename,
    project_document_filename,
    project_folder_base,
    project_overview_filename,
    render_conversation,
    render_project_document,
    render_project_overview,
)
from vault_scanner import read_note_metadata


# =============================================================================
# FILE OPERATIONS
# =============================================================================

def safe_replace(src, dst, retries=3, delay=0.1):
    """Cross-platform atomic file replace with Windows retry logic."""
    for attempt in range(retries):
        try:
            os.replace(src, dst)
            return
        except PermissionError:
            if platform.system() == 'Windows' and attempt < retries - 1:
                time.sleep(delay)
            else:
                raise


def ensure_output_root(vault_dir) -> Path:
    """Create the vault folder. Raises OutputRootError if that is impossible."""
    root = Path(vault_dir)
    if root.exists() and not root.is_dir():
        raise OutputRootError(root, "path exists and is not a directory")
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputRootError(root, str(e)) from e
    return root


def vault_path(vault_dir, *parts) -> Path:
    """
    Join `parts` under the vault folder.
    Raises ValueError if the result would land outside it.
    """
    root = Path(vault_dir).resolve()
    path = Path(vault_dir).joinpath(*parts)
    resolved = path.resolve()
    if resolved == root or not resolved.is_relative_to(root):
        raise ValueError(f"Refusing to write outside the vault: {path}")
    return path


def check_ownership(path: Path, uuid: str) -> None:
    """
    Refuse to overwrite a file that is not our note for `uuid`.
    Raises FileExistsError.
    """
    if not path.exists():
        return
    metadata, _ = read_note_metadata(path)
    if metadata is None or str(metadata.get("uuid")).strip() != uuid:
        raise FileExistsError(f"Refusing to overwrite {path}: not an Obsidize note for {uuid}")


def write_note(path: Path, content: str, uuid: str) -> bool:
    """
    Atomically write a note.

    Returns False when the file already holds exactly `content`.
    """
    path = Path(path)
    check_ownership(path, uuid)
    if path.exists() and path.read_text(encoding="utf-8") == content:
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".obsidize-", suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as f:
            f.write(content)
        safe_replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return True


# =============================================================================
# CONVERSATIONS
# =============================================================================

def write_conversation(conversation: Conversation, vault_dir: Path, obsidized_at: datetime,
                       options: RenderOptions, existing: FolderEntry | None = None) -> list[Path]:
    """
    Write a complete conversation note.

    An existing conversation entry (e.g. one with a broken obsidized_at)
    is rewritten in place so the vault never holds two notes per uuid.
    """
    if existing is not None and existing.type == "conversation":
        path = existing.path
    else:
        path = vault_path(vault_dir, conversation_filename(conversation, options.title_max_length))

    content = render_conversation(conversation, obsidized_at, options)
    return [path] if write_note(path, content, conversation.uuid) else []


# =============================================================================
# PROJECTS
# =============================================================================

def project_folder_name(project: Project, vault_dir: Path, claimed: dict[str, str],
                        max_length: int = 100) -> str:
    """
    Folder for a new project. Falls back to "<name>-<uuid prefix>" when
    another project owns the plain name or a folder of that name exists.
    """
    base = project_folder_base(project, max_length)
    owner = claimed.get(base)
    if owner == project.uuid:
        return base
    if owner is None and not (Path(vault_dir) / base).exists():
        return base
    return f"{base}-{project.uuid[:8]}"


def assign_document_files(project: Project, folder: Path,
                          existing_docs: list[DocumentEntry]) -> list[tuple[ProjectDocument, Path, bool]]:
    """
    Map each export document to its file as (document, path, is_new).

    Known documents keep their file; new ones get ordinals after the
    highest one already used, in chronological order.
    """
    known = {doc.uuid: doc for doc in existing_docs}
    next_ordinal = max((doc.ordinal or 0 for doc in existing_docs), default=0) + 1

    assignments = []
    for document in sorted(project.documents, key=lambda d: d.created_at):
        entry = known.get(document.uuid)
        if entry is not None:
            assignments.append((document, entry.path, False))
            continue
        path = folder / project_document_filename(next_ordinal, document)
        next_ordinal += 1
        assignments.append((document, path, True))
    return assignments


def listed_document_files(assignments: list[tuple[ProjectDocument, Path, bool]],
                          existing_docs: list[DocumentEntry]) -> list[str]:
    """File names linked from the overview, in ordinal order."""
    names = {path.name for _, path, _ in assignments}
    names.update(doc.path.name for doc in existing_docs)
    return sorted(names)


def write_project(project: Project, vault_dir: Path, obsidized_at: datetime,
                  options: RenderOptions, claimed: dict[str, str],
                  existing: FolderEntry | None = None) -> list[Path]:
    """
    Write a project folder: every document note plus the overview.
    Returns the paths actually written.
    """
    if existing is not None and existing.type == "project-overview":
        folder = existing.path.parent
        overview_path = existing.path
        existing_docs = existing.documents
    else:
        folder = vault_path(vault_dir, project_folder_name(
            project, vault_dir, claimed, options.title_max_length
        ))
        overview_path = folder / project_overview_filename(project, options.title_max_length)
        existing_docs = []

    folder.mkdir(parents=True, exist_ok=True)
    claimed[folder.name] = project.uuid

    written = []
    assignments = assign_document_files(project, folder, existing_docs)
    for document, path, _ in assignments:
        content = render_project_document(document, obsidized_at, options)
        if write_note(path, content, document.uuid):
            written.append(path)

    overview = render_project_overview(
        project, listed_document_files(assignments, existing_docs), obsidized_at, options
    )
    if write_note(overview_path, overview, project.uuid):
        written.append(overview_path)
    return written
