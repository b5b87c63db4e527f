#!/usr/bin/env python3
"""
Configuration management for Obsidize.

Holds the default vault location and rendering preferences. Command line
flags override anything set here.
"""
import json
import os
from pathlib import Path

from schemas import RenderOptions
from templates import normalize_list_option

CONFIG_FILE = Path(__file__).parent / "config.json"
OUTPUT_DIR_ENV = "OBSIDIZE_OUTPUT_DIR"

DEFAULT_CONFIG = {
    "output_dir": "",                 # empty: use env var, then "obsidian_vault"
    "tags": [],                       # added as #tags to new notes
    "links": [],                      # added under "## Linked to"
    "verbose": False,
    "debug": False,
    "title_max_length": 100,          # max chars of the title part of file names
    "speaker_labels": {
        "human": "Me",
        "assistant": "Claude"
    }
}

FALLBACK_OUTPUT_DIR = "obsidian_vault"


def load_config() -> dict:
    """
    Read config.json, filling in any keys it lacks from DEFAULT_CONFIG.
    A missing file is written out with the defaults on first use.
    """
    if not CONFIG_FILE.exists():
        save_config(DEFAULT_CONFIG)
        return json.loads(json.dumps(DEFAULT_CONFIG))

    stored = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
    # Older files predate some keys
    return {**DEFAULT_CONFIG, **stored}


def save_config(config: dict) -> None:
    CONFIG_FILE.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")


def get_output_dir(config: dict = None) -> str:
    """
    Get the vault folder from config or environment variable.

    Priority:
    1. config["output_dir"] if non-empty
    2. OBSIDIZE_OUTPUT_DIR env var
    3. "obsidian_vault" in the current directory
    """
    if config is None:
        config = load_config()

    if config.get("output_dir"):
        return config["output_dir"]

    return os.environ.get(OUTPUT_DIR_ENV) or FALLBACK_OUTPUT_DIR


def render_options(config: dict, tags=None, links=None) -> RenderOptions:
    """Build RenderOptions, letting explicit tags/links replace configured ones."""
    return RenderOptions(
        tags=normalize_list_option(tags if tags is not None else config.get("tags")),
        links=normalize_list_option(links if links is not None else config.get("links")),
        speaker_labels={**DEFAULT_CONFIG["speaker_labels"], **(config.get("speaker_labels") or {})},
        title_max_length=config.get("title_max_length", DEFAULT_CONFIG["title_max_length"]),
    )


def validate_config(config: dict = None) -> tuple[bool, str]:
    """
    Validate configuration is complete and usable.
    Returns (is_valid, error_message).
    """
    if config is None:
        config = load_config()

    max_length = config.get("title_max_length")
    if not isinstance(max_length, int) or isinstance(max_length, bool) or max_length < 10:
        return False, f"Invalid title_max_length: {max_length}. Must be an integer >= 10"

    for key in ("tags", "links"):
        value = config.get(key)
        if value is not None and not isinstance(value, (list, str)):
            return False, f"Invalid {key}: must be a list or a comma-separated string"

    labels = config.get("speaker_labels")
    if not isinstance(labels, dict) or not all(isinstance(v, str) for v in labels.values()):
        return False, "speaker_labels must map sender roles to display names"

    output_dir = get_output_dir(config)
    path = Path(output_dir)
    if path.exists() and not path.is_dir():
        return False, f"Output path {output_dir} exists and is not a directory"

    return True, ""


if __name__ == "__main__":
    # Show current config when run directly
    config = load_config()
    print("Current configuration:")
    print(json.dumps(config, indent=2))

    is_valid, error = validate_config(config)
    if is_valid:
        print("\nConfiguration is valid.")
        print(f"Vault folder: {get_output_dir(config)}")
    else:
        print(f"\nConfiguration error: {error}")
