"""Markdown export of sent messages."""

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path

SUBJECT_SLUG_LENGTH = 50


def _date_to_millis(date: str) -> int:
    """Convert a Date header (RFC 2822 or ISO 8601) to epoch milliseconds."""
    parsed: datetime | None
    try:
        parsed = parsedate_to_datetime(date)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(date.replace("Z", "+00:00"))
        except ValueError:
            parsed = datetime.now(timezone.utc)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def slugify_subject(subject: str) -> str:
    """Replace non-alphanumeric runs with a single dash and truncate."""
    slug = re.sub(r"[^a-zA-Z0-9]", "-", subject)
    slug = re.sub(r"-+", "-", slug)
    return slug[:SUBJECT_SLUG_LENGTH]


def sent_email_filename(subject: str, date: str) -> str:
    """Build the export filename, e.g. 1700000000000-Weekly-report.md."""
    return f"{_date_to_millis(date)}-{slugify_subject(subject)}.md"


def render_sent_email(subject: str, to: str, date: str, body: str) -> str:
    """Render a sent message as markdown with a front matter block."""
    return f"---\nSubject: {subject}\nTo: {to}\nDate: {date}\n---\n\n{body}"


def write_sent_email(directory: Path, filename: str, content: str) -> Path:
    """Write one exported message and return its path."""
    path = directory / filename
    path.write_text(content, encoding="utf-8")
    return path
