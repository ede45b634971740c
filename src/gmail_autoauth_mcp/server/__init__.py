"""MCP server implementation for Gmail.

Provides 6 tools:
- send_email: Send a message, appending the user's signature
- read_email: Headers and plain-text body of a message
- search_emails: Gmail query search with per-message summaries
- modify_email: Add labels to a message
- delete_email: Permanently delete a message
- save_sent_emails: Export sent mail as markdown files

Transport: Stdio (for Claude Desktop)
Authentication: OAuth 2.0 with automatic token refresh
"""

from gmail_autoauth_mcp.server.gmail_server import GmailServer, serve

__all__ = ["GmailServer", "serve"]
