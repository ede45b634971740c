"""JSON token storage for the Gmail MCP server.

The credentials file holds the raw token set returned by Google's token
endpoint, without encryption. Access is restricted through filesystem
permissions: the directory is created 0700 and the file written 0600.

Storage Location: ~/.gmail-mcp/credentials.json (override with
GMAIL_CREDENTIALS_PATH).
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from gmail_autoauth_mcp.auth.models import TokenSet, TokenStatus
from gmail_autoauth_mcp.config import CREDENTIALS_FILENAME, default_config_dir

logger = logging.getLogger(__name__)


def get_token_path() -> Path:
    """Get the default token storage path.

    Returns:
        Path to credentials.json in ~/.gmail-mcp/
    """
    return default_config_dir() / CREDENTIALS_FILENAME


class TokenStorage:
    """Reads and writes the persisted token set.

    Attributes:
        token_path: Path to the credentials.json file.

    Example:
        ```python
        storage = TokenStorage(Path("/tmp/credentials.json"))
        storage.save(TokenSet(access_token="abc123", refresh_token="def456"))

        token_set = storage.load()
        if token_set and not token_set.is_expired():
            print(token_set.access_token)
        ```
    """

    def __init__(self, token_path: Path | None = None) -> None:
        """Initialize token storage.

        Args:
            token_path: Custom path for credentials.json. Defaults to
                ~/.gmail-mcp/credentials.json.
        """
        self.token_path = token_path or get_token_path()

    def _ensure_credentials_dir(self) -> None:
        """Create credentials directory with secure permissions if needed."""
        creds_dir = self.token_path.parent
        if not creds_dir.exists():
            creds_dir.mkdir(parents=True, mode=0o700)

    def exists(self) -> bool:
        """Check whether a credentials file is present."""
        return self.token_path.exists()

    def _read_raw(self) -> dict | None:
        if not self.token_path.exists():
            return None

        try:
            with open(self.token_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read credentials file %s: %s", self.token_path, e)
            return None

        return data if isinstance(data, dict) else None

    def load(self) -> TokenSet | None:
        """Load the persisted token set.

        Returns:
            TokenSet if present and parseable, None otherwise.
        """
        data = self._read_raw()
        if data is None:
            return None

        try:
            return TokenSet.model_validate(data)
        except ValidationError:
            logger.warning("Credentials file %s does not contain a token set", self.token_path)
            return None

    def save(self, token_set: TokenSet) -> None:
        """Persist a token set as raw JSON.

        Args:
            token_set: Token set to write.
        """
        self._ensure_credentials_dir()

        with open(self.token_path, "w") as f:
            json.dump(token_set.to_json_dict(), f, indent=2)

        # Owner read/write only
        self.token_path.chmod(0o600)

    def delete(self) -> bool:
        """Delete the credentials file.

        Returns:
            True if a file was deleted, False if none existed.
        """
        if not self.token_path.exists():
            return False

        self.token_path.unlink()
        return True

    def get_status(self) -> TokenStatus:
        """Get the status of the persisted token set.

        Returns:
            TokenStatus indicating the token set's current state.
        """
        if not self.token_path.exists():
            return TokenStatus.MISSING

        token_set = self.load()
        if token_set is None:
            # File exists but couldn't be parsed
            return TokenStatus.INVALID

        if token_set.is_expired():
            return TokenStatus.EXPIRED

        return TokenStatus.VALID
