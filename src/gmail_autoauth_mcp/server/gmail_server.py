"""Gmail MCP server for Claude Desktop integration.

This MCP server exposes a Gmail account as six tools (send, read, search,
label, delete, export sent mail). Authentication uses the OAuth token set
managed by OAuthManager, refreshed automatically when it expires.

Every tool call returns a single text content item. Failures of any kind
(unknown tool, invalid arguments, Gmail API errors) are reported as text
starting with "Error: " rather than as protocol errors, so one bad call
never ends the session.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from gmail_autoauth_mcp.__version__ import __version__
from gmail_autoauth_mcp.auth import OAuthManager
from gmail_autoauth_mcp.config import Settings
from gmail_autoauth_mcp.gmail.client import GmailClient
from gmail_autoauth_mcp.gmail.codec import (
    build_raw_message,
    extract_plain_text_body,
    get_header,
    render_signature,
)
from gmail_autoauth_mcp.gmail.export import (
    render_sent_email,
    sent_email_filename,
    write_sent_email,
)
from gmail_autoauth_mcp.server.schemas import (
    TOOL_SPECS_BY_NAME,
    DeleteEmailArguments,
    ModifyEmailArguments,
    ReadEmailArguments,
    SaveSentEmailsArguments,
    SearchEmailsArguments,
    SendEmailArguments,
    build_tools,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVER_NAME = "gmail"

# Upper bound on concurrent per-message fetches within one tool call
MAX_CONCURRENT_FETCHES = 10

SEARCH_METADATA_HEADERS = ["Subject", "From", "Date"]

T = TypeVar("T")
R = TypeVar("R")


def format_validation_error(tool_name: str, error: ValidationError) -> str:
    """Summarize a pydantic ValidationError as one line per field."""
    problems = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "arguments"
        problems.append(f"{location}: {err['msg']}")
    return f"Invalid arguments for {tool_name}: " + "; ".join(problems)


class GmailServer:
    """MCP server for the Gmail API.

    Attributes:
        server: MCP Server instance.
        manager: OAuthManager holding the token set and cached profile.
        client: GmailClient used for every API call.
        settings: Paths and signature template.
        tools: Immutable tool catalog.
    """

    def __init__(
        self,
        manager: OAuthManager,
        client: GmailClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the Gmail MCP server.

        Args:
            manager: Authenticated OAuthManager.
            client: Gmail client. Created from the manager if not provided.
            settings: Settings. Read from the environment if not provided.
        """
        self.server = Server(SERVER_NAME, version=__version__)
        self.manager = manager
        self.client = client or GmailClient(manager)
        self.settings = settings or Settings.from_env()
        self.tools = build_tools()
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return self.list_tools()

        # Arguments are validated by the dispatcher so failures keep the
        # "Error: ..." text format instead of becoming protocol errors.
        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await self.call_tool(name, arguments)

    def list_tools(self) -> list[Tool]:
        """Return the tool catalog."""
        return list(self.tools)

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None
    ) -> list[TextContent]:
        """Run a tool and wrap the outcome in a text result.

        Never raises: every failure becomes an "Error: ..." text result.

        Args:
            name: Tool name.
            arguments: Untrusted tool arguments.

        Returns:
            A single TextContent with the result or error message.
        """
        try:
            text = await self._dispatch_tool(name, arguments or {})
        except ValidationError as e:
            message = format_validation_error(name, e)
            logger.warning(message)
            text = f"Error: {message}"
        except Exception as e:
            logger.exception(f"Error calling tool {name}")
            text = f"Error: {e}"

        return [TextContent(type="text", text=text)]

    async def _dispatch_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Validate arguments and dispatch to the matching handler.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            Tool result text.

        Raises:
            ValueError: If tool name is not recognized.
            ValidationError: If the arguments do not match the tool's schema.
        """
        handlers: dict[str, Callable[[Any], Awaitable[str]]] = {
            "send_email": self._send_email,
            "read_email": self._read_email,
            "search_emails": self._search_emails,
            "modify_email": self._modify_email,
            "delete_email": self._delete_email,
            "save_sent_emails": self._save_sent_emails,
        }

        spec = TOOL_SPECS_BY_NAME.get(name)
        handler = handlers.get(name)
        if spec is None or handler is None:
            raise ValueError(f"Unknown tool: {name}")

        validated = spec.arguments.model_validate(arguments)
        return await handler(validated)

    async def _gather_in_order(
        self, items: Sequence[T], fetch: Callable[[T], Awaitable[R]]
    ) -> list[R]:
        """Run fetch for every item concurrently, returning results in item order."""
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_FETCHES)

        async def bounded(item: T) -> R:
            async with semaphore:
                return await fetch(item)

        return list(await asyncio.gather(*(bounded(item) for item in items)))

    async def _send_email(self, args: SendEmailArguments) -> str:
        """Send an email, appending the user's signature."""
        signature = render_signature(self.settings.signature_template, self.manager.profile)
        raw = build_raw_message(
            args.to, args.subject, args.body, cc=args.cc, bcc=args.bcc, signature=signature
        )

        response = await self.client.send_raw(raw)
        return f"Email sent successfully with ID: {response.get('id')}"

    async def _read_email(self, args: ReadEmailArguments) -> str:
        """Get headers and plain-text body of a message."""
        message = await self.client.get_message(args.message_id, format="full")

        payload = message.get("payload") or {}
        headers = payload.get("headers") or []
        body = extract_plain_text_body(payload)

        return (
            f"Subject: {get_header(headers, 'Subject')}\n"
            f"From: {get_header(headers, 'From')}\n"
            f"To: {get_header(headers, 'To')}\n"
            f"Date: {get_header(headers, 'Date')}\n\n"
            f"{body}"
        )

    async def _search_emails(self, args: SearchEmailsArguments) -> str:
        """Search messages and summarize each match.

        Metadata for the matches is fetched concurrently; records keep the
        order of the search results.
        """
        messages = await self.client.list_messages(
            query=args.query, max_results=args.max_results
        )
        if not messages:
            return "No messages found"

        async def fetch_summary(stub: dict[str, Any]) -> str:
            detail = await self.client.get_message(
                stub["id"], format="metadata", metadata_headers=SEARCH_METADATA_HEADERS
            )
            headers = (detail.get("payload") or {}).get("headers") or []
            return (
                f"ID: {stub['id']}\n"
                f"Subject: {get_header(headers, 'Subject')}\n"
                f"From: {get_header(headers, 'From')}\n"
                f"Date: {get_header(headers, 'Date')}\n"
            )

        summaries = await self._gather_in_order(messages, fetch_summary)
        return "\n".join(summaries)

    async def _modify_email(self, args: ModifyEmailArguments) -> str:
        """Add labels to a message."""
        await self.client.modify_labels(args.message_id, args.label_ids)
        return f"Email {args.message_id} labels updated successfully"

    async def _delete_email(self, args: DeleteEmailArguments) -> str:
        """Permanently delete a message (not moved to trash)."""
        await self.client.delete_message(args.message_id)
        return f"Email {args.message_id} deleted successfully"

    async def _save_sent_emails(self, args: SaveSentEmailsArguments) -> str:
        """Export sent messages as markdown files with a front matter block."""
        target_dir = Path(args.output_dir) if args.output_dir else self.settings.sent_emails_dir
        target_dir = target_dir.expanduser()
        target_dir.mkdir(parents=True, exist_ok=True)

        messages = await self.client.list_messages(
            max_results=args.max_results, label_ids=["SENT"]
        )
        if not messages:
            return "No sent messages found"

        async def fetch_message(stub: dict[str, Any]) -> dict[str, Any]:
            return await self.client.get_message(stub["id"], format="full")

        details = await self._gather_in_order(messages, fetch_message)

        saved: list[str] = []
        for detail in details:
            payload = detail.get("payload") or {}
            headers = payload.get("headers") or []
            subject = get_header(headers, "Subject", "No Subject")
            to = get_header(headers, "To", "No Recipient")
            date = get_header(headers, "Date") or datetime.now(timezone.utc).isoformat()

            filename = sent_email_filename(subject, date)
            content = render_sent_email(subject, to, date, extract_plain_text_body(payload))
            write_sent_email(target_dir, filename, content)
            saved.append(filename)

        logger.info("Saved %d sent emails to %s", len(saved), target_dir)
        return f"Successfully saved {len(saved)} emails to {target_dir}:\n" + "\n".join(saved)

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.client.close()


async def serve(settings: Settings | None = None) -> None:
    """Authenticate if needed, then serve tools over stdio.

    Raises:
        ConfigurationError: If the OAuth keys file is missing or malformed.
        AuthenticationError: If interactive authentication fails.
    """
    settings = settings or Settings.from_env()
    manager = OAuthManager.from_settings(settings)
    await manager.ensure_credentials()

    server = GmailServer(manager, settings=settings)
    await manager.load_profile(server.client)
    await server.run()

