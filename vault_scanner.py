#!/usr/bin/env python3
"""
Vault scanner - rebuilds the sync state from note frontmatter.

There is no database: every run re-reads the frontmatter of the notes this
tool produced and indexes them by uuid. Only the layout Obsidize writes is
scanned (conversation notes at the vault root, project notes one folder
deep). Anything that does not look like one of our notes is skipped and
recorded as ignored, never fatal.
"""
import re
from pathlib import Path

import yaml

from errors import OutputRootError
from schemas import DocumentEntry, FolderEntry, FolderIndex, IgnoredFile
from templates import split_frontmatter
from timestamps import parse_instant

ROOT_TYPES = {"conversation"}
FOLDER_TYPES = {"project-overview", "project-document"}
ORDINAL_RE = re.compile(r"^(\d+)_")


# =============================================================================
# FRONTMATTER PARSING
# =============================================================================

def extract_frontmatter(content: str) -> str | None:
    """Return the raw YAML between the opening and closing '---' lines."""
    header, _ = split_frontmatter(content)
    return header


def parse_frontmatter(content: str) -> dict | None:
    """
    Parse the frontmatter of a note into a dict.
    Returns None when there is no block or it is not a YAML mapping.
    """
    header = extract_frontmatter(content)
    if header is None:
        return None
    try:
        data = yaml.safe_load(header)
    except yaml.YAMLError:
        return None
    return data if isinstance(data, dict) else None


def read_note_metadata(path: Path) -> tuple[dict | None, str | None]:
    """
    Read a note and parse its frontmatter.
    Returns (metadata, reason_ignored).
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return None, f"unreadable: {e}"

    if extract_frontmatter(content) is None:
        return None, "no frontmatter"
    metadata = parse_frontmatter(content)
    if metadata is None:
        return None, "unparseable frontmatter"

    uuid = metadata.get("uuid")
    if uuid is None or not str(uuid).strip():
        return None, "frontmatter has no uuid"
    return metadata, None


def parse_ordinal(file_name: str) -> int | None:
    match = ORDINAL_RE.match(file_name)
    return int(match.group(1)) if match else None


# =============================================================================
# VAULT SCANNING
# =============================================================================

def candidate_notes(root: Path, ignored: list) -> list[tuple[Path, str]]:
    """
    List the notes to inspect as (path, location) pairs, location being
    "root" or "folder". Hidden folders such as .obsidian are skipped and
    unreadable subfolders are added to `ignored`.

    Raises OutputRootError if the vault folder itself cannot be listed.
    """
    try:
        entries = sorted(root.iterdir())
    except OSError as e:
        raise OutputRootError(root, f"cannot list folder: {e}") from e

    candidates = [(path, "root") for path in entries if path.suffix == ".md" and path.is_file()]
    folders = [p for p in entries if p.is_dir() and not p.name.startswith(".")]
    for folder in folders:
        try:
            notes = sorted(p for p in folder.iterdir() if p.suffix == ".md" and p.is_file())
        except OSError as e:
            ignored.append(IgnoredFile(path=folder, reason=f"unreadable: {e}"))
            continue
        candidates.extend((path, "folder") for path in notes)
    return candidates


def build_entry(path: Path, metadata: dict) -> FolderEntry:
    return FolderEntry(
        uuid=str(metadata["uuid"]).strip(),
        path=path,
        type=metadata["type"],
        created_at=parse_instant(metadata.get("created_at")),
        updated_at=parse_instant(metadata.get("updated_at")),
        obsidized_at=parse_instant(metadata.get("obsidized_at")),
        source=metadata.get("source"),
        obsidize_version=str(metadata["obsidize_version"]) if metadata.get("obsidize_version") is not None else None,
    )


def build_document_entry(path: Path, metadata: dict) -> DocumentEntry:
    return DocumentEntry(
        uuid=str(metadata["uuid"]).strip(),
        path=path,
        ordinal=parse_ordinal(path.name),
        created_at=parse_instant(metadata.get("created_at")),
        obsidized_at=parse_instant(metadata.get("obsidized_at")),
    )


def scan_vault(vault_dir) -> FolderIndex:
    """
    Build the uuid -> FolderEntry index for a vault folder.

    A missing folder yields an empty index. Project documents are attached
    to the overview living in the same folder and sorted by ordinal.
    Raises OutputRootError when the folder exists but cannot be listed.
    """
    index = FolderIndex()
    root = Path(vault_dir)
    if not root.is_dir():
        return index

    overviews: dict[Path, FolderEntry] = {}
    folder_docs: dict[Path, list[DocumentEntry]] = {}

    def ignore(path: Path, reason: str):
        index.ignored.append(IgnoredFile(path=path, reason=reason))

    for path, location in candidate_notes(root, index.ignored):
        index.scanned += 1
        metadata, reason = read_note_metadata(path)
        if reason:
            ignore(path, reason)
            continue

        note_type = metadata.get("type")
        allowed = ROOT_TYPES if location == "root" else FOLDER_TYPES
        if note_type not in ROOT_TYPES | FOLDER_TYPES:
            ignore(path, f"unknown type: {note_type}")
            continue
        if note_type not in allowed:
            ignore(path, f"{note_type} note in unexpected location")
            continue

        if note_type == "project-document":
            folder_docs.setdefault(path.parent, []).append(build_document_entry(path, metadata))
            continue

        entry = build_entry(path, metadata)
        if entry.uuid in index.entries:
            ignore(path, f"duplicate uuid {entry.uuid} (kept {index.entries[entry.uuid].path.name})")
            continue
        if note_type == "project-overview":
            if path.parent in overviews:
                ignore(path, "second project overview in folder")
                continue
            overviews[path.parent] = entry
        index.entries[entry.uuid] = entry

    for folder, documents in folder_docs.items():
        overview = overviews.get(folder)
        if overview is None:
            for doc in documents:
                ignore(doc.path, "project document without overview")
            continue
        seen = set()
        for doc in documents:
            if doc.uuid in seen:
                ignore(doc.path, f"duplicate document uuid {doc.uuid}")
                continue
            seen.add(doc.uuid)
            overview.documents.append(doc)
        overview.documents.sort(key=lambda d: (d.ordinal is None, d.ordinal or 0, d.path.name))

    return index


def project_folders(index: FolderIndex) -> dict[str, str]:
    """Folder name -> owning project uuid, for folder-name collision checks."""
    return {
        entry.path.parent.name: uuid
        for uuid, entry in index.entries.items()
        if entry.type == "project-overview"
    }
