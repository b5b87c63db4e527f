"""
Shared pytest fixtures for Obsidize tests.
"""
import io
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest

from reporting import ConsoleReporter

RUN_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
LATER_RUN_TIME = datetime(2024, 7, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def vault_dir(temp_dir) -> Path:
    """Vault folder path inside the temp dir (not created yet)."""
    return temp_dir / "vault"


@pytest.fixture
def fixed_clock():
    """Clock frozen at 2024-06-01 12:00 UTC."""
    return lambda: RUN_TIME


@pytest.fixture
def later_clock():
    """Clock frozen a month after fixed_clock."""
    return lambda: LATER_RUN_TIME


@pytest.fixture
def quiet_reporter() -> ConsoleReporter:
    """Reporter writing into a buffer instead of stdout."""
    return ConsoleReporter(verbose=True, debug=True, stream=io.StringIO())


@pytest.fixture
def sample_config() -> dict:
    """Sample configuration for testing."""
    return {
        "output_dir": "",
        "tags": ["claude", "imported"],
        "links": ["AI Conversations"],
        "verbose": False,
        "debug": False,
        "title_max_length": 100,
        "speaker_labels": {"human": "Me", "assistant": "Claude"}
    }


@pytest.fixture
def sample_claude_conversation() -> dict:
    """Sample Claude conversation export record."""
    return {
        "uuid": "1b6f1d2e-0c1a-4b7e-9a51-3f0d7e2a9c01",
        "name": "Planning a vegetable garden",
        "created_at": "2024-01-15T10:30:00.000000Z",
        "updated_at": "2024-01-15T10:35:00.000000Z",
        "chat_messages": [
            {
                "uuid": "msg-garden-0001",
                "sender": "human",
                "text": "How should I lay out raised beds for tomatoes?",
                "created_at": "2024-01-15T10:30:00.000000Z",
                "attachments": [],
                "files": []
            },
            {
                "uuid": "msg-garden-0002",
                "sender": "assistant",
                "text": "Start with 4x8 foot beds running north to south.",
                "created_at": "2024-01-15T10:31:00.000000Z",
                "attachments": [],
                "files": []
            }
        ]
    }


@pytest.fixture
def second_claude_conversation() -> dict:
    """A second conversation using a non-UTC offset and content blocks."""
    return {
        "uuid": "8c2e4a90-5f1b-4c3d-8e2a-7b6d5c4e3f02",
        "name": "Python packaging questions",
        "created_at": "2024-02-01T09:00:00+02:00",
        "updated_at": "2024-02-01T09:20:00+02:00",
        "chat_messages": [
            {
                "uuid": "msg-pack-0001",
                "sender": "human",
                "text": "",
                "content": [{"type": "text", "text": "What goes in pyproject.toml?"}],
                "created_at": "2024-02-01T09:00:00+02:00"
            },
            {
                "uuid": "msg-pack-0002",
                "sender": "assistant",
                "text": "The build system table and the project metadata.",
                "created_at": "2024-02-01T09:01:00+02:00",
                "attachments": [{"file_name": "pyproject.toml"}]
            }
        ]
    }


@pytest.fixture
def sample_claude_project() -> dict:
    """Sample Claude project export record with two documents out of order."""
    return {
        "uuid": "5d3c2b1a-9e8f-4d7c-b6a5-4f3e2d1c0b03",
        "name": "Home Lab",
        "description": "Notes on the home server build.",
        "prompt_template": "Answer briefly and cite part numbers.",
        "created_at": "2024-03-01T08:00:00.000000Z",
        "updated_at": "2024-03-05T08:00:00.000000Z",
        "docs": [
            {
                "uuid": "doc-lab-network",
                "filename": "Network Plan.md",
                "content": "# Network\n\nVLAN 10 for servers.",
                "created_at": "2024-03-03T08:00:00.000000Z"
            },
            {
                "uuid": "doc-lab-hardware",
                "filename": "hardware list.txt",
                "content": "Mini PC, 64GB RAM",
                "created_at": "2024-03-02T08:00:00.000000Z"
            }
        ]
    }
