"""Encoding and decoding of Gmail message payloads.

Gmail returns message bodies as base64url data, either directly on the
payload or inside a tree of MIME parts, and accepts outgoing mail as a
base64url encoded RFC 2822 message in the "raw" field.
"""

import base64
import re
from email.header import Header
from typing import Any

from gmail_autoauth_mcp.auth.models import UserProfile

CRLF = "\r\n"

# Model-generated bodies sometimes end with a placeholder sign-off
_SIGNATURE_PLACEHOLDER = re.compile(r"Best regards,\s*\[Your name\]\s*\Z")


def encode_base64url(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_body_data(data: str) -> str:
    """Decode a Gmail body.data value.

    Accepts base64url or standard base64, with or without padding.
    """
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def get_header(headers: list[dict[str, Any]], name: str, default: str = "") -> str:
    """Look up a header value by case-insensitive name.

    Args:
        headers: Gmail payload headers, a list of {"name", "value"} dicts.
        name: Header name to find.
        default: Value returned when the header is absent or empty.

    Returns:
        The first matching header value, or default.
    """
    wanted = name.lower()
    for header in headers:
        if str(header.get("name", "")).lower() == wanted:
            return header.get("value") or default
    return default


def extract_plain_text_body(payload: dict[str, Any]) -> str:
    """Extract the plain-text body from a Gmail message payload.

    A payload without parts carries its body directly. Otherwise every
    text/plain leaf is collected depth-first, left to right, and the pieces
    are joined with newlines. An explicit stack replaces recursion so the
    nesting depth of the MIME tree is unbounded.

    Args:
        payload: The "payload" object of a Gmail message.

    Returns:
        Decoded body text, or an empty string if there is none.
    """
    if not payload:
        return ""

    if not payload.get("parts"):
        data = (payload.get("body") or {}).get("data")
        return decode_body_data(data) if data else ""

    texts: list[str] = []
    stack = [payload]
    while stack:
        part = stack.pop()
        children = part.get("parts")
        if children:
            # Reversed so the leftmost child is visited first
            stack.extend(reversed(children))
            continue

        if part.get("mimeType") != "text/plain":
            continue
        data = (part.get("body") or {}).get("data")
        if data:
            texts.append(decode_body_data(data))

    return "\n".join(texts)


def strip_signature_placeholder(body: str) -> str:
    """Remove a trailing "Best regards, [Your name]" and surrounding whitespace."""
    return _SIGNATURE_PLACEHOLDER.sub("", body).strip()


def render_signature(template: str, profile: UserProfile | None) -> str:
    """Fill the signature template from the user profile.

    Returns an empty string when the template is empty or no profile is known.
    """
    if not template or profile is None:
        return ""
    return template.replace("{name}", profile.name).replace("{email}", profile.email)


def _check_header_value(name: str, value: str) -> str:
    if "\r" in value or "\n" in value:
        raise ValueError(f"{name} must not contain line breaks")
    return value


def _encode_subject(subject: str) -> str:
    _check_header_value("Subject", subject)
    if subject.isascii():
        return subject
    # Continuation lines are folded with CRLF
    return Header(subject, "utf-8").encode(linesep=CRLF)


def _join_addresses(name: str, addresses: list[str] | None) -> str:
    return ", ".join(_check_header_value(name, address) for address in addresses or [])


def build_raw_message(
    to: list[str],
    subject: str,
    body: str,
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
    signature: str = "",
) -> str:
    """Build an RFC 2822 message and encode it for the Gmail "raw" field.

    Headers are written in a fixed order (From, To, Cc, Bcc, Subject); a
    header whose value is empty is left out.

    Args:
        to: Recipient addresses.
        subject: Subject line.
        body: Body text; a trailing signature placeholder is removed.
        cc: Optional CC recipients.
        bcc: Optional BCC recipients.
        signature: Rendered signature appended to the body.

    Returns:
        Unpadded base64url encoding of the message.

    Raises:
        ValueError: If the subject or an address contains a line break.
    """
    headers = [
        ("From", "me"),
        ("To", _join_addresses("To", to)),
        ("Cc", _join_addresses("Cc", cc)),
        ("Bcc", _join_addresses("Bcc", bcc)),
        ("Subject", _encode_subject(subject)),
    ]
    lines = [f"{name}: {value}" for name, value in headers if value]
    lines.append("")
    lines.append(strip_signature_placeholder(body) + signature)

    return encode_base64url(CRLF.join(lines).encode("utf-8"))
