"""Unit tests for the OAuth key and token set models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from gmail_autoauth_mcp.auth.models import (
    GOOGLE_TOKEN_URI,
    AuthorizationKeys,
    TokenSet,
    TokenStatus,
)


@pytest.mark.unit
class TestTokenSet:
    """Tests for the TokenSet model."""

    def test_should_require_access_token(self) -> None:
        """Verify a token set without an access token is rejected."""
        with pytest.raises(ValidationError):
            TokenSet.model_validate({"refresh_token": "abc"})

    def test_should_default_token_type_to_bearer(self) -> None:
        """Verify token_type defaults to Bearer."""
        token_set = TokenSet(access_token="abc")
        assert token_set.token_type == "Bearer"

    def test_should_split_space_separated_scope(self) -> None:
        """Verify a scope string is exposed as a list."""
        token_set = TokenSet(access_token="abc", scope="a b  c")
        assert token_set.scopes == ["a", "b", "c"]

    def test_should_accept_scope_list(self) -> None:
        """Verify a scope list is exposed unchanged."""
        token_set = TokenSet(access_token="abc", scope=["a", "b"])
        assert token_set.scopes == ["a", "b"]

    def test_should_return_empty_scopes_when_absent(self) -> None:
        """Verify missing scope yields no scopes."""
        assert TokenSet(access_token="abc").scopes == []

    def test_should_map_expiry_date_milliseconds(self) -> None:
        """Verify expiry_date in milliseconds becomes expires_at in seconds."""
        token_set = TokenSet.model_validate(
            {"access_token": "abc", "expiry_date": 1700000000000}
        )
        assert token_set.expires_at == 1700000000.0

    def test_should_prefer_expires_at_over_expiry_date(self) -> None:
        """Verify an explicit expires_at wins over expiry_date."""
        token_set = TokenSet.model_validate(
            {"access_token": "abc", "expires_at": 42.0, "expiry_date": 1700000000000}
        )
        assert token_set.expires_at == 42.0

    def test_should_keep_unknown_provider_fields(self) -> None:
        """Verify extra fields survive a serialization round trip."""
        raw = {"access_token": "abc", "id_token": "jwt", "expires_in": 3599}

        data = TokenSet.model_validate(raw).to_json_dict()

        assert data["id_token"] == "jwt"
        assert data["expires_in"] == 3599

    def test_should_omit_none_fields_when_serialized(self) -> None:
        """Verify unset optional fields are not written."""
        data = TokenSet(access_token="abc").to_json_dict()
        assert "refresh_token" not in data
        assert "expires_at" not in data

    def test_should_expose_naive_utc_expiry(self) -> None:
        """Verify expiry is naive UTC for google-auth."""
        token_set = TokenSet(access_token="abc", expires_at=0.0)
        assert token_set.expiry == datetime(1970, 1, 1)
        assert token_set.expiry.tzinfo is None

    def test_should_return_none_expiry_when_absent(self) -> None:
        """Verify expiry is None without expires_at."""
        assert TokenSet(access_token="abc").expiry is None


@pytest.mark.unit
class TestTokenSetExpiry:
    """Tests for TokenSet.is_expired()."""

    def test_should_not_be_expired_without_expiry(self) -> None:
        """Verify a token set without expiry counts as usable."""
        assert TokenSet(access_token="abc").is_expired() is False

    def test_should_be_expired_in_the_past(self, expired_token_set: TokenSet) -> None:
        """Verify a past expiry is expired."""
        assert expired_token_set.is_expired() is True

    def test_should_not_be_expired_in_the_future(self, valid_token_set: TokenSet) -> None:
        """Verify a future expiry is not expired."""
        assert valid_token_set.is_expired() is False

    def test_should_apply_buffer(self) -> None:
        """Verify a token expiring within the buffer is reported expired."""
        soon = (datetime.now(timezone.utc) + timedelta(seconds=30)).timestamp()
        token_set = TokenSet(access_token="abc", expires_at=soon)

        assert token_set.is_expired(buffer_seconds=60) is True
        assert token_set.is_expired(buffer_seconds=0) is False


@pytest.mark.unit
class TestAuthorizationKeys:
    """Tests for the AuthorizationKeys model."""

    def test_should_build_client_config_under_kind(self) -> None:
        """Verify the client config is keyed by the bundle kind."""
        keys = AuthorizationKeys(client_id="id", client_secret="secret", kind="web")

        config = keys.client_config("http://localhost:3000/oauth2callback")

        assert list(config) == ["web"]
        assert config["web"]["client_id"] == "id"
        assert config["web"]["token_uri"] == GOOGLE_TOKEN_URI
        assert config["web"]["redirect_uris"] == ["http://localhost:3000/oauth2callback"]

    def test_should_reject_unknown_kind(self) -> None:
        """Verify only installed and web bundles are accepted."""
        with pytest.raises(ValidationError):
            AuthorizationKeys(client_id="id", client_secret="secret", kind="service")

    def test_should_be_immutable(self, authorization_keys: AuthorizationKeys) -> None:
        """Verify keys cannot be modified after loading."""
        with pytest.raises(ValidationError):
            authorization_keys.client_id = "other"


@pytest.mark.unit
class TestTokenStatus:
    """Tests for the TokenStatus enum."""

    def test_should_compare_as_strings(self) -> None:
        """Verify statuses compare equal to their string values."""
        assert TokenStatus.VALID == "valid"
        assert TokenStatus.INVALID.value == "invalid"
