#!/usr/bin/env python3
"""
Claude export validator - turns raw export records into trusted items

Reads the two collections of a Claude data export (conversations.json and
projects.json) and produces validated Conversation / Project models plus a
report of what was dropped or repaired. A single malformed record never
stops the run; only a missing export structure does.
"""
import re

from pydantic import ValidationError

from errors import ExportStructureError
from schemas import (
    CategoryReport,
    Conversation,
    ItemIssue,
    Message,
    Project,
    ProjectDocument,
    RepairNote,
    ValidatedExport,
    ValidationReport,
)
from templates import DEFAULT_DOCUMENT_FILENAME
from timestamps import parse_instant

DEFAULT_CONVERSATION_TITLE = "Untitled Conversation"
DEFAULT_PROJECT_NAME = "Untitled Project"
UNKNOWN_SENDER = "unknown"
TITLE_WORDS = 6

# Item uuids become part of file and folder names
SAFE_UUID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def clean_string(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def extract_text_from_content(content: list) -> str:
    """Join the text blocks of a Claude message content array."""
    text_pieces = []
    for part in content or []:
        if isinstance(part, dict) and part.get('type', 'text') == 'text':
            text = part.get('text')
            if isinstance(text, str) and text.strip():
                text_pieces.append(text)
        elif isinstance(part, str) and part.strip():
            text_pieces.append(part)
    return '\n\n'.join(text_pieces).strip()


def extract_attachment_names(msg: dict) -> list[str]:
    names = []
    for key in ('attachments', 'files'):
        entries = msg.get(key) or []
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if isinstance(entry, dict):
                name = entry.get('file_name') or entry.get('name')
                if name:
                    names.append(str(name))
    return names


def resolve_timestamps(record: dict, label: str, repairs: list,
                       uuid: str) -> tuple[tuple | None, str | None]:
    """
    Returns ((created_at, updated_at), error).

    updated_at falls back to created_at; created_at falls back to
    updated_at. Both unparseable is an error.
    """
    created_at = parse_instant(record.get('created_at'))
    updated_at = parse_instant(record.get('updated_at'))

    if created_at is None and updated_at is None:
        return None, f"{label} {uuid} has no parseable created_at or updated_at"
    if created_at is None:
        created_at = updated_at
        repairs.append(RepairNote(uuid=uuid, note="created_at missing, using updated_at"))
    if updated_at is None:
        updated_at = created_at
        if record.get('updated_at') not in (None, ""):
            repairs.append(RepairNote(uuid=uuid, note="unparseable updated_at, using created_at"))
    return (created_at, updated_at), None


def generate_title(messages: list[Message], created_at) -> str:
    """Placeholder title: "<date> <first words of the first human message>"."""
    first_question = next((m.text for m in messages if m.sender == 'human'), "")
    words = first_question.split()[:TITLE_WORDS]
    if not words:
        return DEFAULT_CONVERSATION_TITLE
    return f"{created_at.strftime('%Y-%m-%d')} {' '.join(words)}"


def process_message(msg: dict, conv_uuid: str, conv_created, repairs: list) -> Message | None:
    """
    Validate a single chat message.
    Returns None if the message carries nothing to render.
    """
    text = clean_string(msg.get('text')) if isinstance(msg.get('text'), str) else ""
    if not text:
        text = extract_text_from_content(msg.get('content'))
    attachments = extract_attachment_names(msg)

    if not text and not attachments:
        repairs.append(RepairNote(uuid=conv_uuid, note="dropped message without text"))
        return None

    sender = clean_string(msg.get('sender'))
    if not sender:
        sender = UNKNOWN_SENDER
        repairs.append(RepairNote(uuid=conv_uuid, note="message missing sender"))

    created_at = parse_instant(msg.get('created_at'))
    if created_at is None:
        created_at = conv_created
        repairs.append(RepairNote(uuid=conv_uuid, note="message missing created_at, using conversation created_at"))

    msg_uuid = clean_string(msg.get('uuid')) or None
    if msg_uuid is None:
        repairs.append(RepairNote(uuid=conv_uuid, note="message missing uuid"))

    return Message(
        uuid=msg_uuid,
        sender=sender,
        text=text,
        created_at=created_at,
        attachments=attachments,
    )


def process_claude_conversation(conv: dict, repairs: list) -> tuple[Conversation | None, str | None]:
    """
    Validate a Claude.ai conversation record.
    Returns (conversation, error_message); repairs are appended to `repairs`.
    """
    if not isinstance(conv, dict):
        return None, f"Conversation record is not an object ({type(conv).__name__})"

    conv_id = clean_string(conv.get('uuid'))
    if not conv_id:
        return None, "Conversation missing uuid"
    if not SAFE_UUID_RE.fullmatch(conv_id):
        return None, f"Conversation uuid {conv_id!r} is not a safe file name part"

    timestamps, error = resolve_timestamps(conv, "Conversation", repairs, conv_id)
    if error:
        return None, error
    created_at, updated_at = timestamps

    chat_messages = conv.get('chat_messages')
    if not isinstance(chat_messages, list) or not chat_messages:
        return None, f"No messages in {conv_id}"

    messages = []
    for msg in chat_messages:
        if not isinstance(msg, dict):
            repairs.append(RepairNote(uuid=conv_id, note="dropped non-object message"))
            continue
        message = process_message(msg, conv_id, created_at, repairs)
        if message:
            messages.append(message)

    if not messages:
        return None, f"No usable messages in {conv_id}"

    # Stable sort keeps export order for equal timestamps
    messages.sort(key=lambda m: m.created_at)

    title = clean_string(conv.get('name'))
    if not title:
        title = generate_title(messages, created_at)
        repairs.append(RepairNote(uuid=conv_id, note=f"missing title, using \"{title}\""))

    try:
        return Conversation(
            uuid=conv_id,
            title=title,
            created_at=created_at,
            updated_at=updated_at,
            messages=messages,
        ), None
    except ValidationError as e:
        return None, f"Invalid conversation {conv_id}: {e.error_count()} validation errors"


def process_project_document(doc: dict, project_uuid: str, project_created,
                             repairs: list) -> ProjectDocument | None:
    if not isinstance(doc, dict):
        repairs.append(RepairNote(uuid=project_uuid, note="dropped non-object document"))
        return None

    doc_uuid = clean_string(doc.get('uuid'))
    if not doc_uuid:
        repairs.append(RepairNote(uuid=project_uuid, note="dropped document without uuid"))
        return None

    filename = clean_string(doc.get('filename'))
    if not filename:
        filename = DEFAULT_DOCUMENT_FILENAME
        repairs.append(RepairNote(uuid=project_uuid, note=f"document {doc_uuid} missing filename"))

    content = doc.get('content')
    if not isinstance(content, str):
        content = ""

    created_at = parse_instant(doc.get('created_at'))
    if created_at is None:
        created_at = project_created
        repairs.append(RepairNote(uuid=project_uuid, note=f"document {doc_uuid} missing created_at"))

    return ProjectDocument(uuid=doc_uuid, filename=filename, content=content, created_at=created_at)


def process_project(project: dict, repairs: list) -> tuple[Project | None, str | None]:
    """
    Validate a Claude project record. Projects without documents are valid.
    Returns (project, error_message).
    """
    if not isinstance(project, dict):
        return None, f"Project record is not an object ({type(project).__name__})"

    project_id = clean_string(project.get('uuid'))
    if not project_id:
        return None, "Project missing uuid"
    if not SAFE_UUID_RE.fullmatch(project_id):
        return None, f"Project uuid {project_id!r} is not a safe file name part"

    timestamps, error = resolve_timestamps(project, "Project", repairs, project_id)
    if error:
        return None, error
    created_at, updated_at = timestamps

    name = clean_string(project.get('name'))
    if not name:
        name = DEFAULT_PROJECT_NAME
        repairs.append(RepairNote(uuid=project_id, note="missing name"))

    raw_docs = project.get('docs') or []
    if not isinstance(raw_docs, list):
        repairs.append(RepairNote(uuid=project_id, note="docs is not a list, ignoring"))
        raw_docs = []

    documents = []
    seen_docs = set()
    for doc in raw_docs:
        document = process_project_document(doc, project_id, created_at, repairs)
        if document is None:
            continue
        if document.uuid in seen_docs:
            repairs.append(RepairNote(uuid=project_id, note=f"dropped duplicate document {document.uuid}"))
            continue
        seen_docs.add(document.uuid)
        documents.append(document)

    documents.sort(key=lambda d: d.created_at)

    return Project(
        uuid=project_id,
        name=name,
        description=clean_string(project.get('description')),
        prompt_template=clean_string(project.get('prompt_template')),
        created_at=created_at,
        updated_at=updated_at,
        documents=documents,
    ), None


def validate_collection(records: list, processor) -> tuple[list, CategoryReport]:
    """Run `processor` over every record, collecting valid items and the report."""
    report = CategoryReport(total=len(records))
    valid = []
    seen = set()

    for i, record in enumerate(records):
        record_id = record.get('uuid') if isinstance(record, dict) else None
        record_id = clean_string(record_id) or None
        repairs = []
        try:
            item, error = processor(record, repairs)
        except Exception as e:
            item, error = None, f"Unexpected error: {e}"

        if item is None:
            report.invalid_items.append(ItemIssue(index=i, uuid=record_id, reason=error))
            continue
        if item.uuid in seen:
            report.invalid_items.append(ItemIssue(index=i, uuid=item.uuid, reason="duplicate uuid"))
            continue

        seen.add(item.uuid)
        valid.append(item)
        report.repairs.extend(repairs)

    report.valid = len(valid)
    report.invalid = len(report.invalid_items)
    return valid, report


def validate_conversations(conversations: list) -> tuple[list[Conversation], CategoryReport]:
    return validate_collection(conversations, process_claude_conversation)


def validate_projects(projects: list) -> tuple[list[Project], CategoryReport]:
    return validate_collection(projects, process_project)


def validate_export(conversations, projects, load_errors: list[str] = None) -> ValidatedExport:
    """
    Validate both export collections.

    Either collection may be None (absent from the export). Raises
    ExportStructureError when both are absent or one is not a list.
    """
    if conversations is None and projects is None:
        raise ExportStructureError("No conversations or projects found in export")
    for label, collection in (("conversations", conversations), ("projects", projects)):
        if collection is not None and not isinstance(collection, list):
            raise ExportStructureError(
                f"Expected {label} to be a list, got {type(collection).__name__}"
            )

    valid_convs, conv_report = validate_conversations(conversations or [])
    valid_projects, project_report = validate_projects(projects or [])

    return ValidatedExport(
        conversations=valid_convs,
        projects=valid_projects,
        report=ValidationReport(
            conversations=conv_report,
            projects=project_report,
            load_errors=list(load_errors or []),
        ),
    )
