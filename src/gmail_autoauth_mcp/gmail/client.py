"""Gmail REST client used by the MCP tools.

Wraps the handful of Gmail and People API calls the server needs. Every
request is authorized with the access token held by the OAuthManager,
which refreshes it when it expires.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from gmail_autoauth_mcp.auth.models import UserProfile
from gmail_autoauth_mcp.auth.oauth_manager import OAuthManager
from gmail_autoauth_mcp.exceptions import GmailAPIError

logger = logging.getLogger(__name__)

# Google API base URLs
GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1"
PEOPLE_API_BASE = "https://people.googleapis.com/v1"


def _message_url(message_id: str, action: str | None = None) -> str:
    """Build a message URL with the id escaped as one path segment.

    Dots are escaped too, so an id of "." or ".." is never collapsed as a
    dot segment.
    """
    segment = quote(message_id, safe="").replace(".", "%2E")
    url = f"{GMAIL_API_BASE}/users/me/messages/{segment}"
    return f"{url}/{action}" if action else url


def _error_message(response: httpx.Response) -> str:
    """Pull the message out of a Google JSON error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return payload.get("error_description") or error
    return response.text or response.reason_phrase


class GmailClient:
    """Authenticated Gmail API client.

    Attributes:
        manager: OAuthManager supplying access tokens.
    """

    def __init__(
        self, manager: OAuthManager, http_client: httpx.AsyncClient | None = None
    ) -> None:
        """Initialize the client.

        Args:
            manager: OAuthManager supplying access tokens.
            http_client: Preconfigured HTTP client. Created lazily if not provided.
        """
        self.manager = manager
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated HTTP request to Google APIs.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters. List values repeat the key.
            json_data: Optional JSON body data.

        Returns:
            JSON response as a dictionary, empty for bodiless responses.

        Raises:
            GmailAPIError: If Google returns an error status.
        """
        access_token = await self.manager.get_access_token()
        client = await self._get_http_client()

        response = await client.request(
            method=method,
            url=url,
            params=params,
            json=json_data,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GmailAPIError(response.status_code, _error_message(response)) from e

        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    async def list_messages(
        self,
        query: str | None = None,
        max_results: int = 10,
        label_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """List message ids matching a search query and/or labels.

        Returns:
            Message stubs ({"id", "threadId"}) in Gmail's order.
        """
        params: dict[str, Any] = {"maxResults": max_results}
        if query:
            params["q"] = query
        if label_ids:
            params["labelIds"] = label_ids

        response = await self._make_request(
            "GET", f"{GMAIL_API_BASE}/users/me/messages", params=params
        )
        messages: list[dict[str, Any]] = response.get("messages", [])
        return messages

    async def get_message(
        self,
        message_id: str,
        format: str = "full",
        metadata_headers: list[str] | None = None,
    ) -> dict[str, Any]:
        """Fetch one message.

        Args:
            message_id: Gmail message ID.
            format: "full", "metadata", "minimal" or "raw".
            metadata_headers: Headers to include when format is "metadata".
        """
        params: dict[str, Any] = {"format": format}
        if metadata_headers:
            params["metadataHeaders"] = metadata_headers

        return await self._make_request(
            "GET", _message_url(message_id), params=params
        )

    async def send_raw(self, raw: str) -> dict[str, Any]:
        """Send a base64url encoded RFC 2822 message."""
        return await self._make_request(
            "POST", f"{GMAIL_API_BASE}/users/me/messages/send", json_data={"raw": raw}
        )

    async def modify_labels(self, message_id: str, add_label_ids: list[str]) -> dict[str, Any]:
        """Add labels to a message."""
        return await self._make_request(
            "POST",
            _message_url(message_id, "modify"),
            json_data={"addLabelIds": add_label_ids},
        )

    async def delete_message(self, message_id: str) -> None:
        """Permanently delete a message. This bypasses the trash."""
        await self._make_request("DELETE", _message_url(message_id))

    async def get_profile(self) -> UserProfile:
        """Fetch the account's display name and address.

        The address comes from the Gmail profile, the display name from the
        People API. An account without a display name is called "User".
        """
        gmail_profile = await self._make_request("GET", f"{GMAIL_API_BASE}/users/me/profile")
        person = await self._make_request(
            "GET",
            f"{PEOPLE_API_BASE}/people/me",
            params={"personFields": "names,emailAddresses"},
        )

        names = person.get("names") or [{}]
        name = names[0].get("displayName") or "User"
        return UserProfile(name=name, email=gmail_profile.get("emailAddress", ""))
