"""
Exceptions that abort an Obsidize run.

Record-level problems never raise; they are collected into the
validation report or the per-item outcomes instead.
"""


class ObsidizeError(Exception):
    """Base class for fatal run errors."""


class ExportStructureError(ObsidizeError):
    """The export has no recognizable conversation or project collection."""


class OutputRootError(ObsidizeError):
    """The output folder cannot be created or is not a directory."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot use output folder {path}: {reason}")
