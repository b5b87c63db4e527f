#!/usr/bin/env python3
"""
Markdown rendering and file naming for Obsidize notes.

Every note starts with a YAML frontmatter block holding exactly the
reconciliation keys (uuid, timestamps, type, source, version). Conversation
notes keep their message log above a reserved boundary line; anything the
user writes outside the log is left alone by later updates.
"""
import re
from datetime import datetime

import yaml

from schemas import Conversation, Message, Project, ProjectDocument, RenderOptions
from timestamps import display_timestamp, format_instant

# =============================================================================
# CONSTANTS
# =============================================================================

SOURCE = "claude-export"
OBSIDIZE_VERSION = "1.0.0"

FRONTMATTER_KEYS = (
    "uuid", "created_at", "updated_at", "obsidized_at",
    "type", "source", "obsidize_version",
)

# The last occurrence of this exact line ends the system-owned message log.
BOUNDARY_MARKER = "<!-- obsidize:end-of-messages -->"
MESSAGE_MARKER_PREFIX = "<!-- obsidize:message"
MESSAGE_MARKER_RE = re.compile(r"^<!-- obsidize:message(?: (?P<uuid>[^\s>]+))? -->$", re.MULTILINE)

DEFAULT_DOCUMENT_FILENAME = "document.md"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def sanitize_filename(text: str, max_length: int = 100, keep_extension: bool = False) -> str:
    """
    Turn free text into a safe path component.

    Lowercases, replaces anything outside [a-z0-9._-] with '-', collapses
    repeated dashes and trims them from the ends. With keep_extension a
    short trailing extension (".md", ".py", ...) is preserved as-is.
    Never returns an empty string.
    """
    extension = ""
    if keep_extension:
        match = re.search(r"\.([A-Za-z0-9]{1,8})$", text or "")
        if match:
            extension = "." + match.group(1).lower()
            text = text[:match.start()]

    slug = (text or "").lower().strip()
    slug = re.sub(r"[^a-z0-9._-]", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-.")
    slug = slug[:max_length].rstrip("-.")
    return (slug or "untitled") + extension


def reads_back_as(value: str) -> bool:
    """True if YAML loads the bare scalar `value` as that same string."""
    try:
        return yaml.safe_load(value) == value
    except yaml.YAMLError:
        return False


def sanitize_yaml_string(value: str) -> str:
    """
    Escape YAML special characters in string values.

    Values YAML would read as another type ("0123", "true", "1e5") or
    that start with an indicator ("*x", "&a") are quoted too.
    """
    if not isinstance(value, str):
        return str(value)
    if any(c in value for c in [':', '#', '[', ']', '{', '}', '"', "'", '\n', '|', '>']) \
            or not reads_back_as(value):
        escaped = value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
        return f'"{escaped}"'
    return value


def format_value(value) -> str:
    """Render a single frontmatter value; instants are always quoted."""
    if isinstance(value, datetime):
        return f'"{format_instant(value)}"'
    return sanitize_yaml_string(str(value))


def format_frontmatter(metadata: dict) -> str:
    """Generate YAML frontmatter block."""
    lines = ["---"]
    for key, value in metadata.items():
        if value is None:
            continue
        lines.append(f"{key}: {format_value(value)}")
    lines.append("---")
    return "\n".join(lines)


def build_metadata(uuid: str, created_at: datetime, updated_at: datetime,
                   obsidized_at: datetime, note_type: str) -> dict:
    """Frontmatter fields in their canonical order."""
    return {
        "uuid": uuid,
        "created_at": created_at,
        "updated_at": updated_at,
        "obsidized_at": obsidized_at,
        "type": note_type,
        "source": SOURCE,
        "obsidize_version": OBSIDIZE_VERSION,
    }


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """
    Split a note into (frontmatter_text, body).

    The frontmatter must open on the first line. Returns (None, content)
    when there is no complete block.
    """
    if not content.startswith("---"):
        return None, content
    lines = content.split("\n")
    if lines[0].strip() != "---":
        return None, content
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            header = "\n".join(lines[1:i])
            body = "\n".join(lines[i + 1:])
            return header, body
    return None, content


def normalize_list_option(value) -> list[str]:
    """Accept a list or a comma-separated string; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [str(value)]
    return [str(item).strip() for item in items if str(item).strip()]


def tags_line(tags: list[str]) -> str:
    cleaned = [re.sub(r"\s+", "-", tag.lstrip("#")) for tag in tags]
    return " ".join(f"#{tag}" for tag in cleaned if tag)


def links_section(links: list[str]) -> str:
    if not links:
        return ""
    return "## Linked to\n\n" + "\n".join(f"- [[{link}]]" for link in links)


def extras_section(options: RenderOptions) -> str:
    """User links and tags appended after the system-owned content."""
    parts = []
    if options.links:
        parts.append(links_section(options.links))
    if options.tags:
        parts.append(tags_line(options.tags))
    return "\n\n".join(parts)


# =============================================================================
# FILE NAMES
# =============================================================================

def conversation_filename(conversation: Conversation, max_length: int = 100) -> str:
    """<title>__<uuid>.md - the uuid half is the identity anchor."""
    return f"{sanitize_filename(conversation.title, max_length)}__{conversation.uuid}.md"


def project_folder_base(project: Project, max_length: int = 100) -> str:
    return sanitize_filename(project.name, max_length)


def project_overview_filename(project: Project, max_length: int = 100) -> str:
    return f"{project_folder_base(project, max_length)}.md"


def project_document_filename(ordinal: int, document: ProjectDocument) -> str:
    """001_notes.md - ordinal prefix plus the sanitized original filename."""
    name = sanitize_filename(document.filename or DEFAULT_DOCUMENT_FILENAME, keep_extension=True)
    if not name.endswith(".md"):
        name += ".md"
    return f"{ordinal:03d}_{name}"


def wikilink_target(filename: str) -> str:
    return filename[:-3] if filename.endswith(".md") else filename


# =============================================================================
# CONVERSATIONS
# =============================================================================

def message_marker(message: Message) -> str:
    if message.uuid:
        return f"{MESSAGE_MARKER_PREFIX} {message.uuid} -->"
    return f"{MESSAGE_MARKER_PREFIX} -->"


def render_message(message: Message, options: RenderOptions) -> str:
    """
    Render one message block:

        <!-- obsidize:message <uuid> -->
        **2024-01-15 10:30:00 Me:** text
    """
    label = options.speaker_labels.get(message.sender, message.sender.capitalize())
    lines = [
        message_marker(message),
        f"**{display_timestamp(message.created_at)} {label}:** {message.text}".rstrip(),
    ]
    if message.attachments:
        lines.append("")
        lines.append("_Attachments: " + ", ".join(message.attachments) + "_")
    return "\n".join(lines)


def render_messages(messages: list[Message], options: RenderOptions) -> str:
    ordered = sorted(messages, key=lambda m: m.created_at)
    return "\n\n".join(render_message(m, options) for m in ordered)


def render_conversation(conversation: Conversation, obsidized_at: datetime,
                        options: RenderOptions) -> str:
    """Full conversation note for a create action."""
    metadata = build_metadata(
        conversation.uuid, conversation.created_at, conversation.updated_at,
        obsidized_at, "conversation",
    )
    parts = [
        f"# {conversation.title}",
        render_messages(conversation.messages, options),
        BOUNDARY_MARKER,
    ]
    extras = extras_section(options)
    if extras:
        parts.append(extras)
    return format_frontmatter(metadata) + "\n" + "\n\n".join(parts) + "\n"


# =============================================================================
# PROJECTS
# =============================================================================

def overview_body(project: Project, document_filenames: list[str],
                  options: RenderOptions) -> str:
    """Everything below the frontmatter of a project overview note."""
    parts = [f"# {project.name}"]
    if project.description.strip():
        parts.append(project.description.strip())
    if project.prompt_template.strip():
        parts.append("## Instructions\n\n" + project.prompt_template.strip())
    if document_filenames:
        links = "\n".join(f"- [[{wikilink_target(name)}]]" for name in document_filenames)
        parts.append("## Project Documents\n\n" + links)
    extras = extras_section(options)
    if extras:
        parts.append(extras)
    return "\n\n".join(parts) + "\n"


def render_project_overview(project: Project, document_filenames: list[str],
                            obsidized_at: datetime, options: RenderOptions) -> str:
    metadata = build_metadata(
        project.uuid, project.created_at, project.updated_at,
        obsidized_at, "project-overview",
    )
    return format_frontmatter(metadata) + "\n" + overview_body(project, document_filenames, options)


def render_project_document(document: ProjectDocument, obsidized_at: datetime,
                            options: RenderOptions) -> str:
    # Documents carry no modification time of their own.
    metadata = build_metadata(
        document.uuid, document.created_at, document.created_at,
        obsidized_at, "project-document",
    )
    body = document.content.rstrip()
    if options.tags:
        body += "\n\n" + tags_line(options.tags)
    return format_frontmatter(metadata) + "\n" + body + "\n"
