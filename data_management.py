#!/usr/bin/env python3
"""
Vault status reporting for Obsidize.

Summarizes what a previous sync left in a vault folder, using the same
frontmatter index the sync itself relies on.
"""
from pathlib import Path

from timestamps import format_instant
from vault_scanner import scan_vault


def get_vault_status(vault_dir) -> dict:
    """
    Return counts describing a vault folder.

    Returns dict with:
        - exists: Whether the folder exists
        - conversations: Number of conversation notes
        - projects: Number of project overview notes
        - project_documents: Number of project document notes
        - ignored: Number of markdown files that are not Obsidize notes
        - missing_sync_time: Notes whose obsidized_at could not be parsed
        - last_synced: Latest obsidized_at, or "Never"
    """
    vault_dir = Path(vault_dir)
    index = scan_vault(vault_dir)
    entries = list(index.entries.values())

    synced = [entry.obsidized_at for entry in entries if entry.obsidized_at is not None]
    return {
        "exists": vault_dir.is_dir(),
        "conversations": sum(1 for e in entries if e.type == "conversation"),
        "projects": sum(1 for e in entries if e.type == "project-overview"),
        "project_documents": sum(len(e.documents) for e in entries),
        "ignored": len(index.ignored),
        "missing_sync_time": len(entries) - len(synced),
        "last_synced": format_instant(max(synced)) if synced else "Never",
    }


def format_status(status: dict, vault_dir) -> str:
    """Format status dict as plain text for the console."""
    if not status["exists"]:
        return f"Vault folder {vault_dir} does not exist yet."
    lines = [
        f"Vault: {vault_dir}",
        "-" * 30,
        f"Conversations:       {status['conversations']:,}",
        f"Projects:            {status['projects']:,}",
        f"Project documents:   {status['project_documents']:,}",
        f"Ignored files:       {status['ignored']:,}",
        f"Last synced:         {status['last_synced']}",
    ]
    if status["missing_sync_time"]:
        lines.append(f"Unparseable sync times: {status['missing_sync_time']} (will be re-created)")
    return "\n".join(lines)


if __name__ == "__main__":
    from config import get_output_dir

    vault = get_output_dir()
    print(format_status(get_vault_status(vault), vault))
