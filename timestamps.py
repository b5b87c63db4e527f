"""
Timestamp parsing and formatting.

Every instant handled by Obsidize is a timezone-aware datetime in UTC.
Export values arrive as ISO 8601 strings with arbitrary offsets (or the
occasional epoch number); comparison is always done on the parsed
instants, never on the strings.
"""
from datetime import date, datetime, timezone

from dateutil import parser as date_parser

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(tz=timezone.utc)


def parse_instant(value) -> datetime | None:
    """
    Parse an export or frontmatter timestamp into a UTC datetime.

    Accepts ISO 8601 strings, datetime/date objects (PyYAML turns unquoted
    timestamps into these) and Unix epoch numbers. Naive values are taken
    as UTC. Returns None for anything that cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OSError, OverflowError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = date_parser.isoparse(text)
        except (ValueError, OverflowError):
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Format an instant for frontmatter: 2024-01-15T10:30:00.000000Z"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(ISO_FORMAT)


def display_timestamp(value: datetime) -> str:
    """Human-readable timestamp used in message headings."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def later(a: datetime | None, b: datetime | None) -> datetime | None:
    """Return the later of two optional instants."""
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)
