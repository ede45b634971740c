"""OAuth manager for Gmail authentication.

This module runs the OAuth2 authorization-code flow for the Gmail MCP
server using google-auth-oauthlib, persists the resulting token set, and
refreshes it with google-auth when it expires.

The consent redirect is captured by a single-use local HTTP listener on
http://localhost:3000/oauth2callback. The listener answers exactly one
callback and is always closed before authentication returns or raises.
"""

import asyncio
import json
import logging
import os
import shutil
import sys
import webbrowser
from concurrent.futures import Future
from datetime import timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import TYPE_CHECKING, Callable
from urllib.parse import parse_qs, urlparse

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from gmail_autoauth_mcp.auth.models import (
    GOOGLE_AUTH_URI,
    GOOGLE_TOKEN_URI,
    AuthorizationKeys,
    TokenSet,
    TokenStatus,
    UserProfile,
)
from gmail_autoauth_mcp.auth.token_storage import TokenStorage
from gmail_autoauth_mcp.config import DEFAULT_REDIRECT_URI, OAUTH_KEYS_FILENAME, Settings
from gmail_autoauth_mcp.exceptions import AuthenticationError, ConfigurationError

if TYPE_CHECKING:
    from gmail_autoauth_mcp.gmail.client import GmailClient

logger = logging.getLogger(__name__)

# Gmail OAuth scopes
GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.metadata",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.compose",
    "https://www.googleapis.com/auth/gmail.labels",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# OAuth configuration defaults
DEFAULT_OAUTH_HOST = "localhost"
DEFAULT_OAUTH_PORT = 3000
CALLBACK_PATH = "/oauth2callback"

SUCCESS_PAGE = "Authentication successful! You can close this window."
FAILURE_PAGE = "Authentication failed"


def load_authorization_keys(settings: Settings, cwd: Path | None = None) -> AuthorizationKeys:
    """Load OAuth client keys, importing a keys file from the working directory.

    A gcp-oauth.keys.json in the working directory is copied to the
    configured keys path first, so later runs work from anywhere.

    Args:
        settings: Resolved settings.
        cwd: Working directory to check. Defaults to Path.cwd().

    Returns:
        AuthorizationKeys from the "installed" or "web" bundle.

    Raises:
        ConfigurationError: If the file is missing, unreadable, or has neither bundle.
    """
    settings.config_dir.mkdir(parents=True, exist_ok=True)

    local_keys = (cwd or Path.cwd()) / OAUTH_KEYS_FILENAME
    if local_keys.exists() and local_keys.resolve() != settings.oauth_path.resolve():
        settings.oauth_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(local_keys, settings.oauth_path)
        logger.info("OAuth keys found in current directory, copied to %s", settings.oauth_path)

    if not settings.oauth_path.exists():
        raise ConfigurationError(
            f"OAuth keys file not found. Please place {OAUTH_KEYS_FILENAME} in the "
            f"current directory or at {settings.oauth_path}"
        )

    try:
        with open(settings.oauth_path) as f:
            content = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Could not read OAuth keys file {settings.oauth_path}: {e}"
        ) from e

    if not isinstance(content, dict):
        content = {}

    for kind in ("installed", "web"):
        bundle = content.get(kind)
        if not bundle:
            continue
        try:
            return AuthorizationKeys(
                client_id=bundle["client_id"],
                client_secret=bundle["client_secret"],
                kind=kind,
                auth_uri=bundle.get("auth_uri", GOOGLE_AUTH_URI),
                token_uri=bundle.get("token_uri", GOOGLE_TOKEN_URI),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid '{kind}' credentials in {settings.oauth_path}: {e}"
            ) from e

    raise ConfigurationError(
        'Invalid OAuth keys file format. File should contain either "installed" '
        'or "web" credentials.'
    )


class _OAuthCallbackHandler(BaseHTTPRequestHandler):
    """HTTP handler for the OAuth redirect."""

    server: "_CallbackServer"

    def log_message(self, format: str, *args) -> None:
        """Route access logs to the module logger instead of stderr."""
        logger.debug("OAuth callback: " + format, *args)

    def _respond(self, status: int, text: str) -> None:
        body = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:
        """Handle GET request from OAuth redirect."""
        request_parsed = urlparse(self.path)
        result = self.server.result

        # Only the first callback counts
        if request_parsed.path != self.server.callback_path or result.done():
            self._respond(404, "Not Found")
            return

        query_params = parse_qs(request_parsed.query)
        code = query_params.get("code", [""])[0]

        if not code:
            message = "No code provided"
            if "error" in query_params:
                message = f"{message} ({query_params['error'][0]})"
            self._respond(400, message)
            result.set_exception(AuthenticationError(message))
            return

        try:
            token_set = self.server.exchange(code)
        except Exception as e:
            self._respond(500, FAILURE_PAGE)
            result.set_exception(e)
            return

        self._respond(200, SUCCESS_PAGE)
        result.set_result(token_set)


class _CallbackServer(HTTPServer):
    """Single-use listener that settles one Future from the OAuth redirect."""

    def __init__(
        self,
        server_address: tuple[str, int],
        callback_path: str,
        exchange: Callable[[str], TokenSet],
    ) -> None:
        super().__init__(server_address, _OAuthCallbackHandler)
        self.callback_path = callback_path
        self.exchange = exchange
        self.result: Future[TokenSet] = Future()

    def wait_for_callback(self) -> TokenSet:
        """Serve requests until the callback settles, then return or raise its outcome."""
        while not self.result.done():
            self.handle_request()
        return self.result.result()


class OAuthManager:
    """OAuth authentication manager and session state for Gmail.

    Owns the OAuth client keys, the persisted token set and the cached user
    profile, so the tool dispatcher needs no process-wide globals.

    Attributes:
        keys: OAuth client keys.
        storage: Token storage instance for persisting the token set.
        redirect_uri: Redirect URI served by the local callback listener.
        scopes: OAuth scopes requested during consent.
        profile: Cached user profile, or None if unavailable.

    Example:
        ```python
        settings = Settings.from_env()
        manager = OAuthManager.from_settings(settings)

        # Reuse a stored token set or run the browser consent flow
        await manager.ensure_credentials()

        access_token = await manager.get_access_token()
        ```
    """

    def __init__(
        self,
        keys: AuthorizationKeys,
        storage: TokenStorage | None = None,
        redirect_uri: str = DEFAULT_REDIRECT_URI,
        scopes: list[str] | None = None,
    ) -> None:
        """Initialize OAuth manager.

        Args:
            keys: OAuth client keys.
            storage: Token storage instance. Creates default if not provided.
            redirect_uri: Redirect URI for the local callback listener.
            scopes: OAuth scopes. Uses GMAIL_SCOPES if not specified.
        """
        self.keys = keys
        self.storage = storage or TokenStorage()
        self.redirect_uri = redirect_uri
        self.scopes = scopes or list(GMAIL_SCOPES)
        self.profile: UserProfile | None = None
        self._token_set: TokenSet | None = None
        self._refresh_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, cwd: Path | None = None) -> "OAuthManager":
        """Create a manager from settings, loading the OAuth keys file.

        Raises:
            ConfigurationError: If the keys file is missing or malformed.
        """
        keys = load_authorization_keys(settings, cwd=cwd)
        return cls(
            keys,
            storage=TokenStorage(settings.credentials_path),
            redirect_uri=settings.redirect_uri,
        )

    @property
    def token_path(self) -> Path:
        """Get the token storage path."""
        return self.storage.token_path

    @property
    def token_set(self) -> TokenSet | None:
        """Current token set, loaded from storage on first access."""
        if self._token_set is None:
            self._token_set = self.storage.load()
        return self._token_set

    def has_valid_tokens(self) -> bool:
        """Check if a non-expired token set exists."""
        return self.storage.get_status() == TokenStatus.VALID

    def get_status(self) -> tuple[TokenStatus, TokenSet | None]:
        """Get the status of the persisted token set.

        Returns:
            Tuple of (TokenStatus, TokenSet or None).
        """
        status = self.storage.get_status()
        token_set = self.storage.load() if status != TokenStatus.MISSING else None
        return (status, token_set)

    def _token_to_credentials(self, token_set: TokenSet) -> Credentials:
        """Convert a token set to google-auth Credentials."""
        return Credentials(
            token=token_set.access_token,
            refresh_token=token_set.refresh_token,
            token_uri=self.keys.token_uri,
            client_id=self.keys.client_id,
            client_secret=self.keys.client_secret,
            scopes=token_set.scopes or None,
            expiry=token_set.expiry,
        )

    def get_credentials(self) -> Credentials | None:
        """Get Google credentials for API use.

        Returns:
            Google OAuth2 credentials, or None if not authenticated.
        """
        token_set = self.token_set
        if token_set is None:
            return None
        return self._token_to_credentials(token_set)

    async def ensure_credentials(self) -> TokenSet:
        """Return a usable token set, authenticating interactively if none is stored.

        A stored token set is reused without contacting Google; an expired
        or revoked token surfaces on the first API call.

        Returns:
            The persisted or newly obtained token set.
        """
        status = self.storage.get_status()
        if status == TokenStatus.INVALID:
            logger.warning(
                "Credentials file %s is corrupted, re-authenticating", self.token_path
            )

        if status not in (TokenStatus.MISSING, TokenStatus.INVALID):
            token_set = self.storage.load()
            if token_set is not None:
                self._token_set = token_set
                return token_set

        return await self.authenticate()

    async def authenticate(self) -> TokenSet:
        """Perform the complete OAuth2 authorization-code flow.

        Returns:
            The token set obtained from Google, already persisted.

        Raises:
            AuthenticationError: If the callback carried no authorization code.
            Exception: If the token exchange fails.
        """
        # The flow blocks on the local listener, so run it in an executor
        loop = asyncio.get_event_loop()
        token_set = await loop.run_in_executor(None, self._run_oauth_flow)

        self._token_set = token_set
        logger.info("Stored OAuth token set at %s", self.token_path)
        return token_set

    def _exchange_code(self, flow: Flow, code: str) -> TokenSet:
        """Exchange an authorization code and persist the token set."""
        token = flow.fetch_token(code=code)
        token_set = TokenSet.model_validate(dict(token))
        self.storage.save(token_set)
        return token_set

    def _run_oauth_flow(self) -> TokenSet:
        """Run the OAuth flow (blocking operation).

        Binds the callback listener, presents the consent URL, and waits for
        the redirect. The listener is closed on every exit path.

        Returns:
            The persisted token set.
        """
        # Google may echo granted scopes in a different order than requested
        os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

        flow = Flow.from_client_config(
            self.keys.client_config(self.redirect_uri),
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
        )

        auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")

        parsed = urlparse(self.redirect_uri)
        host = parsed.hostname or DEFAULT_OAUTH_HOST
        port = parsed.port or DEFAULT_OAUTH_PORT
        callback_path = parsed.path or CALLBACK_PATH

        server = _CallbackServer(
            (host, port), callback_path, lambda code: self._exchange_code(flow, code)
        )
        try:
            # stdout is reserved for the MCP stdio transport
            print(f"Please visit this URL to authenticate: {auth_url}", file=sys.stderr)
            webbrowser.open(auth_url)
            return server.wait_for_callback()
        finally:
            server.server_close()

    async def refresh_if_needed(self) -> TokenSet | None:
        """Refresh the token set if expired or about to expire.

        Returns:
            New TokenSet if refreshed, existing token set if still valid,
            None if no token set exists or it carries no refresh token.
        """
        async with self._refresh_lock:
            token_set = self.token_set
            if token_set is None:
                return None

            if not token_set.is_expired():
                return token_set

            if token_set.refresh_token is None:
                return None

            credentials = self._token_to_credentials(token_set)

            # Run refresh in executor (blocking)
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, credentials.refresh, Request())

            new_token_set = self._merge_refreshed(token_set, credentials)
            self.storage.save(new_token_set)
            self._token_set = new_token_set
            logger.info("Refreshed OAuth access token")
            return new_token_set

    def _merge_refreshed(self, token_set: TokenSet, credentials: Credentials) -> TokenSet:
        """Fold refreshed credentials back into the raw token set."""
        data = token_set.to_json_dict()
        data["access_token"] = credentials.token
        if credentials.refresh_token:
            data["refresh_token"] = credentials.refresh_token

        expiry = credentials.expiry
        if expiry is not None:
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
            data["expires_at"] = expiry.timestamp()
        data.pop("expiry_date", None)

        return TokenSet.model_validate(data)

    async def get_access_token(self) -> str:
        """Get a valid access token, refreshing if necessary.

        Returns:
            Valid access token string.

        Raises:
            AuthenticationError: If no token set exists or it cannot be refreshed.
        """
        token_set = self.token_set
        if token_set is None:
            raise AuthenticationError(
                "No OAuth token found. Please authenticate first using: gmail-mcp auth"
            )

        if not token_set.is_expired():
            return token_set.access_token

        refreshed = await self.refresh_if_needed()
        if refreshed is None:
            raise AuthenticationError(
                "Token expired and cannot be refreshed. "
                "Please re-authenticate using: gmail-mcp auth"
            )
        return refreshed.access_token

    async def load_profile(self, client: "GmailClient") -> UserProfile | None:
        """Fetch and cache the user's name and address for signatures.

        A failed fetch leaves the profile empty, which disables the signature.

        Args:
            client: Gmail client to query.

        Returns:
            The cached profile, or None if it could not be fetched.
        """
        try:
            self.profile = await client.get_profile()
        except Exception as e:
            logger.warning("Could not fetch user profile, signature disabled: %s", e)
            self.profile = None
        return self.profile
