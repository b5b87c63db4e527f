#!/usr/bin/env python3
"""
Claude data pack loader.

A data pack is either the unpacked export folder or the downloaded archive
(.zip, or .dms as some browsers save it). Archives are extracted to a
temporary folder that is removed again by cleanup().
"""
import json
import shutil
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from errors import ExportStructureError

CONVERSATIONS_FILE = "conversations.json"
PROJECTS_FILE = "projects.json"


@dataclass
class ExportData:
    """Raw collections loaded from a data pack (None when absent)"""
    source: Path
    conversations: list | None = None
    projects: list | None = None
    errors: list = field(default_factory=list)
    temp_dir: Path | None = None

    def cleanup(self):
        if self.temp_dir and self.temp_dir.exists():
            shutil.rmtree(self.temp_dir, ignore_errors=True)
            self.temp_dir = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cleanup()
        return False


def detect_input_type(path: Path) -> str:
    """Returns "folder", "archive" or "unknown"."""
    if path.is_dir():
        return "folder"
    if path.is_file() and zipfile.is_zipfile(path):
        return "archive"
    return "unknown"


def extract_archive(archive_path: Path) -> Path:
    """Extract a .zip/.dms archive into a fresh temporary folder."""
    temp_dir = Path(tempfile.mkdtemp(prefix="obsidize-"))
    try:
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(temp_dir)
    except (zipfile.BadZipFile, OSError):
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise
    return temp_dir


def find_export_file(directory: Path, name: str) -> Path | None:
    """Look for `name` at the top of the pack first, then anywhere below it."""
    direct = directory / name
    if direct.is_file():
        return direct
    matches = sorted(directory.rglob(name), key=lambda p: (len(p.parts), str(p)))
    return matches[0] if matches else None


def load_json_collection(path: Path | None, name: str) -> tuple[list | None, str | None]:
    """
    Load one export collection.
    Returns (records, error_message); records is None when missing or corrupt.
    """
    if path is None:
        return None, f"{name} not found"
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        return None, f"Failed to parse {path.name}: {e}"

    if isinstance(data, dict):
        # A single record instead of an array
        data = [data]
    if not isinstance(data, list):
        return None, f"{path.name} does not contain a list"
    return data, None


def load_data_pack(input_path) -> ExportData:
    """
    Load conversations.json and projects.json from a folder or archive.

    Raises ExportStructureError when the input is neither, or when the
    archive cannot be extracted. Missing or corrupt files are reported in
    `errors` and leave the matching collection as None.
    """
    path = Path(input_path)
    input_type = detect_input_type(path)

    if input_type == "unknown":
        raise ExportStructureError(f"Input is not a folder or a .zip/.dms archive: {path}")

    export = ExportData(source=path)
    if input_type == "archive":
        try:
            export.temp_dir = extract_archive(path)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExportStructureError(f"Failed to extract archive {path}: {e}") from e
        directory = export.temp_dir
    else:
        directory = path

    for name, attr in ((CONVERSATIONS_FILE, "conversations"), (PROJECTS_FILE, "projects")):
        records, error = load_json_collection(find_export_file(directory, name), name)
        setattr(export, attr, records)
        if error:
            export.errors.append(error)

    return export
