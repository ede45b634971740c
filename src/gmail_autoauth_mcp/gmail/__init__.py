"""Gmail API access and message encoding."""

from gmail_autoauth_mcp.gmail.client import GmailClient
from gmail_autoauth_mcp.gmail.codec import build_raw_message, extract_plain_text_body

__all__ = ["GmailClient", "build_raw_message", "extract_plain_text_body"]
