"""Configuration for gmail-autoauth-mcp.

Environment Variables:
    GMAIL_OAUTH_PATH: OAuth keys file (default: ~/.gmail-mcp/gcp-oauth.keys.json)
    GMAIL_CREDENTIALS_PATH: Persisted token set (default: ~/.gmail-mcp/credentials.json)
    GMAIL_SENT_EMAILS_DIR: Export directory for save_sent_emails (default: ./sent-emails)
    GMAIL_SIGNATURE_TEMPLATE: Signature appended to sent mail, supports {name}
        and {email}. Set to an empty string to disable.
    GMAIL_OAUTH_REDIRECT_URI: Redirect URI (default: http://localhost:3000/oauth2callback)
"""

import os
from pathlib import Path

from pydantic import BaseModel

OAUTH_KEYS_FILENAME = "gcp-oauth.keys.json"
CREDENTIALS_FILENAME = "credentials.json"
DEFAULT_SIGNATURE_TEMPLATE = "\n\nBest regards,\n{name}"
DEFAULT_REDIRECT_URI = "http://localhost:3000/oauth2callback"


def default_config_dir() -> Path:
    """Get the global config directory (~/.gmail-mcp)."""
    return Path.home() / ".gmail-mcp"


class Settings(BaseModel):
    """Resolved paths and options for one process."""

    config_dir: Path
    oauth_path: Path
    credentials_path: Path
    sent_emails_dir: Path
    signature_template: str = DEFAULT_SIGNATURE_TEMPLATE
    redirect_uri: str = DEFAULT_REDIRECT_URI

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ.

        Returns:
            Settings with every override applied.
        """
        env = os.environ if environ is None else environ
        config_dir = default_config_dir()

        return cls(
            config_dir=config_dir,
            oauth_path=Path(env.get("GMAIL_OAUTH_PATH") or config_dir / OAUTH_KEYS_FILENAME),
            credentials_path=Path(
                env.get("GMAIL_CREDENTIALS_PATH") or config_dir / CREDENTIALS_FILENAME
            ),
            sent_emails_dir=Path(
                env.get("GMAIL_SENT_EMAILS_DIR") or Path.cwd() / "sent-emails"
            ),
            # An empty template is meaningful (disables the signature)
            signature_template=env.get("GMAIL_SIGNATURE_TEMPLATE", DEFAULT_SIGNATURE_TEMPLATE),
            redirect_uri=env.get("GMAIL_OAUTH_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
        )
