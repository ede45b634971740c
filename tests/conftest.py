"""Shared pytest fixtures for gmail-autoauth-mcp tests.

This module provides reusable fixtures for OAuth keys, token storage,
the OAuth manager, and a mocked Gmail client behind the MCP server.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gmail_autoauth_mcp.auth.models import AuthorizationKeys, TokenSet, UserProfile
from gmail_autoauth_mcp.config import Settings


# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def valid_token_set() -> TokenSet:
    """Create a valid, non-expired token set."""
    return TokenSet(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        scope="https://www.googleapis.com/auth/gmail.modify "
        "https://www.googleapis.com/auth/userinfo.profile",
        expires_at=(datetime.now(timezone.utc) + timedelta(hours=1)).timestamp(),
    )


@pytest.fixture
def expired_token_set() -> TokenSet:
    """Create an expired token set that can be refreshed."""
    return TokenSet(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        scope="https://www.googleapis.com/auth/gmail.modify",
        expires_at=(datetime.now(timezone.utc) - timedelta(hours=1)).timestamp(),
    )


@pytest.fixture
def authorization_keys() -> AuthorizationKeys:
    """Create installed-app OAuth client keys."""
    return AuthorizationKeys(
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test-client-secret",  # pragma: allowlist secret
        kind="installed",
    )


# =============================================================================
# Token Storage Fixtures
# =============================================================================


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / ".gmail-mcp"
    config_dir.mkdir(parents=True, mode=0o700)
    return config_dir


@pytest.fixture
def temp_token_path(temp_config_dir: Path) -> Path:
    """Get the path for a temporary credentials.json file."""
    return temp_config_dir / "credentials.json"


@pytest.fixture
def token_storage(temp_token_path: Path):
    """Create a TokenStorage instance with temporary storage."""
    from gmail_autoauth_mcp.auth.token_storage import TokenStorage

    return TokenStorage(token_path=temp_token_path)


@pytest.fixture
def settings(tmp_path: Path, temp_config_dir: Path, temp_token_path: Path) -> Settings:
    """Create settings pointing at temporary paths."""
    return Settings(
        config_dir=temp_config_dir,
        oauth_path=temp_config_dir / "gcp-oauth.keys.json",
        credentials_path=temp_token_path,
        sent_emails_dir=tmp_path / "sent-emails",
    )


# =============================================================================
# OAuth Manager Fixtures
# =============================================================================


@pytest.fixture
def oauth_manager(authorization_keys: AuthorizationKeys, token_storage):
    """Create an OAuthManager with temporary storage."""
    from gmail_autoauth_mcp.auth.oauth_manager import OAuthManager

    return OAuthManager(authorization_keys, storage=token_storage)


@pytest.fixture
def authenticated_manager(oauth_manager, valid_token_set: TokenSet):
    """OAuthManager with a stored, valid token set and a cached profile."""
    oauth_manager.storage.save(valid_token_set)
    oauth_manager.profile = UserProfile(name="Ada Lovelace", email="ada@example.com")
    return oauth_manager


# =============================================================================
# Gmail Client / Server Fixtures
# =============================================================================


@pytest.fixture
def mock_gmail_client() -> MagicMock:
    """Create a mock GmailClient; its coroutine methods are AsyncMocks."""
    from gmail_autoauth_mcp.gmail.client import GmailClient

    client = MagicMock(spec=GmailClient)
    client.send_raw.return_value = {"id": "sent_msg_001", "threadId": "thread_001"}
    client.list_messages.return_value = []
    client.modify_labels.return_value = {"id": "msg_001", "labelIds": ["INBOX"]}
    client.delete_message.return_value = None
    return client


@pytest.fixture
def gmail_server(authenticated_manager, mock_gmail_client: MagicMock, settings: Settings):
    """Create a GmailServer wired to the mock client."""
    from gmail_autoauth_mcp.server.gmail_server import GmailServer

    return GmailServer(authenticated_manager, client=mock_gmail_client, settings=settings)
