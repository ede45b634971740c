"""OAuth authentication for the Gmail MCP server.

Quick Start:
    ```python
    from gmail_autoauth_mcp.auth import OAuthManager
    from gmail_autoauth_mcp.config import Settings

    manager = OAuthManager.from_settings(Settings.from_env())

    # Reuse stored tokens or open the browser for consent
    await manager.ensure_credentials()

    # Get credentials for API use
    credentials = manager.get_credentials()
    ```
"""

from gmail_autoauth_mcp.auth.models import (
    AuthorizationKeys,
    TokenSet,
    TokenStatus,
    UserProfile,
)
from gmail_autoauth_mcp.auth.oauth_manager import (
    GMAIL_SCOPES,
    OAuthManager,
    load_authorization_keys,
)
from gmail_autoauth_mcp.auth.token_storage import TokenStorage

__all__ = [
    "OAuthManager",
    "TokenStorage",
    "AuthorizationKeys",
    "TokenSet",
    "TokenStatus",
    "UserProfile",
    "GMAIL_SCOPES",
    "load_authorization_keys",
]
