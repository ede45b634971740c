"""Argument schemas and the tool catalog for the Gmail MCP server.

Each tool's arguments are a strict pydantic model. The same model
validates incoming calls and produces the JSON schema advertised in
list_tools, so the two cannot drift apart.
"""

from dataclasses import dataclass

from mcp.types import Tool
from pydantic import BaseModel, ConfigDict, Field


class ToolArguments(BaseModel):
    """Base for tool argument models."""

    model_config = ConfigDict(strict=True, populate_by_name=True)


class SendEmailArguments(ToolArguments):
    to: list[str] = Field(..., description="List of recipient email addresses")
    subject: str = Field(..., description="Email subject")
    body: str = Field(
        ...,
        description=(
            "Email body content - Do not include a signature as it will be "
            "automatically appended using the authenticated user's name"
        ),
    )
    cc: list[str] | None = Field(default=None, description="List of CC recipients")
    bcc: list[str] | None = Field(default=None, description="List of BCC recipients")


class ReadEmailArguments(ToolArguments):
    message_id: str = Field(
        ..., alias="messageId", description="ID of the email message to retrieve"
    )


class SearchEmailsArguments(ToolArguments):
    query: str = Field(
        ..., description="Gmail search query (e.g., 'from:example@gmail.com')"
    )
    max_results: int = Field(
        default=10,
        alias="maxResults",
        ge=1,
        le=500,
        description="Maximum number of results to return",
    )


class ModifyEmailArguments(ToolArguments):
    message_id: str = Field(
        ..., alias="messageId", description="ID of the email message to modify"
    )
    label_ids: list[str] = Field(
        ..., alias="labelIds", description="List of label IDs to apply"
    )


class DeleteEmailArguments(ToolArguments):
    message_id: str = Field(
        ..., alias="messageId", description="ID of the email message to delete"
    )


class SaveSentEmailsArguments(ToolArguments):
    max_results: int = Field(
        default=50,
        alias="maxResults",
        ge=1,
        le=500,
        description="Maximum number of sent emails to save (default: 50)",
    )
    output_dir: str | None = Field(
        default=None,
        alias="outputDir",
        description="Directory to save emails to (default: './sent-emails')",
    )


@dataclass(frozen=True)
class ToolSpec:
    """A tool's public name, description and argument model."""

    name: str
    description: str
    arguments: type[ToolArguments]

    def to_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.arguments.model_json_schema(),
        )


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec("send_email", "Sends a new email", SendEmailArguments),
    ToolSpec("read_email", "Retrieves the content of a specific email", ReadEmailArguments),
    ToolSpec(
        "search_emails", "Searches for emails using Gmail search syntax", SearchEmailsArguments
    ),
    ToolSpec(
        "modify_email", "Modifies email labels (move to different folders)", ModifyEmailArguments
    ),
    ToolSpec("delete_email", "Permanently deletes an email", DeleteEmailArguments),
    ToolSpec("save_sent_emails", "Saves sent emails as markdown files", SaveSentEmailsArguments),
)

TOOL_SPECS_BY_NAME: dict[str, ToolSpec] = {spec.name: spec for spec in TOOL_SPECS}


def build_tools() -> tuple[Tool, ...]:
    """Build the immutable tool catalog advertised by list_tools."""
    return tuple(spec.to_tool() for spec in TOOL_SPECS)
