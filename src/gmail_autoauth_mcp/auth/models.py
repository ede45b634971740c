"""Pydantic models for OAuth keys, token sets, and the cached user profile."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint


class TokenStatus(str, Enum):
    """State of the persisted token set."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class AuthorizationKeys(BaseModel):
    """OAuth client keys loaded from gcp-oauth.keys.json.

    Attributes:
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        kind: Which bundle the keys came from ("installed" or "web").
        auth_uri: Authorization endpoint.
        token_uri: Token endpoint.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str
    kind: Literal["installed", "web"] = "installed"
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI

    def client_config(self, redirect_uri: str) -> dict[str, Any]:
        """Build a google-auth-oauthlib client config for these keys.

        Args:
            redirect_uri: Redirect URI registered for the local callback.

        Returns:
            Client config dict keyed by the bundle kind.
        """
        return {
            self.kind: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
                "redirect_uris": [redirect_uri],
            }
        }


class TokenSet(BaseModel):
    """Provider-issued token set, persisted verbatim as JSON.

    Fields the provider returns beyond the ones declared here (id_token,
    expires_in, ...) are kept so the file round-trips unchanged.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    scope: str | list[str] | None = None
    expires_at: float | None = Field(default=None, description="Expiry as epoch seconds")

    @model_validator(mode="before")
    @classmethod
    def _accept_expiry_date(cls, data: Any) -> Any:
        # Older credentials files store expiry_date in milliseconds
        if (
            isinstance(data, dict)
            and data.get("expires_at") is None
            and data.get("expiry_date") is not None
        ):
            data = dict(data)
            data["expires_at"] = float(data["expiry_date"]) / 1000
        return data

    @property
    def scopes(self) -> list[str]:
        """Granted scopes as a list."""
        if self.scope is None:
            return []
        if isinstance(self.scope, str):
            return self.scope.split()
        return list(self.scope)

    @property
    def expiry(self) -> datetime | None:
        """Expiry as a naive UTC datetime, the form google-auth expects."""
        if self.expires_at is None:
            return None
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc).replace(tzinfo=None)

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """Check whether the access token is expired or about to expire.

        A token set without an expiry is treated as usable; a stale token
        surfaces as an API error on first use.

        Args:
            buffer_seconds: Seconds before expiry to already report expired.

        Returns:
            True if the token expires within buffer_seconds.
        """
        if self.expires_at is None:
            return False
        now = datetime.now(timezone.utc).timestamp()
        return now + buffer_seconds >= self.expires_at

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the raw JSON shape written to credentials.json."""
        return self.model_dump(mode="json", exclude_none=True)


class UserProfile(BaseModel):
    """Display name and address of the authenticated account."""

    name: str
    email: str
