"""Unit tests for TokenStorage."""

import json
import stat
from pathlib import Path

import pytest

from gmail_autoauth_mcp.auth.models import TokenSet, TokenStatus
from gmail_autoauth_mcp.auth.token_storage import TokenStorage, get_token_path


@pytest.mark.unit
class TestTokenStorageSave:
    """Tests for TokenStorage.save()."""

    def test_should_write_raw_json(
        self, token_storage: TokenStorage, valid_token_set: TokenSet
    ) -> None:
        """Verify the token set is written as plain JSON."""
        token_storage.save(valid_token_set)

        data = json.loads(token_storage.token_path.read_text())
        assert data["access_token"] == "test_access_token_abc123"
        assert data["refresh_token"] == "test_refresh_token_xyz789"

    def test_should_restrict_file_permissions(
        self, token_storage: TokenStorage, valid_token_set: TokenSet
    ) -> None:
        """Verify the file is readable by the owner only."""
        token_storage.save(valid_token_set)

        mode = stat.S_IMODE(token_storage.token_path.stat().st_mode)
        assert mode == 0o600

    def test_should_create_missing_directory(
        self, tmp_path: Path, valid_token_set: TokenSet
    ) -> None:
        """Verify the parent directory is created with owner-only access."""
        storage = TokenStorage(token_path=tmp_path / "nested" / "credentials.json")

        storage.save(valid_token_set)

        assert storage.exists()
        mode = stat.S_IMODE(storage.token_path.parent.stat().st_mode)
        assert mode & 0o077 == 0

    def test_should_overwrite_previous_token_set(
        self, token_storage: TokenStorage, valid_token_set: TokenSet
    ) -> None:
        """Verify saving twice keeps only the latest token set."""
        token_storage.save(valid_token_set)
        token_storage.save(TokenSet(access_token="newer"))

        loaded = token_storage.load()
        assert loaded is not None
        assert loaded.access_token == "newer"


@pytest.mark.unit
class TestTokenStorageLoad:
    """Tests for TokenStorage.load()."""

    def test_should_return_none_when_missing(self, token_storage: TokenStorage) -> None:
        """Verify None is returned without a credentials file."""
        assert token_storage.load() is None

    def test_should_load_saved_token_set(
        self, token_storage: TokenStorage, valid_token_set: TokenSet
    ) -> None:
        """Verify a saved token set loads back."""
        token_storage.save(valid_token_set)

        loaded = token_storage.load()

        assert loaded is not None
        assert loaded.access_token == valid_token_set.access_token
        assert loaded.expires_at == valid_token_set.expires_at

    def test_should_return_none_for_corrupted_file(self, token_storage: TokenStorage) -> None:
        """Verify unparseable JSON yields None."""
        token_storage.token_path.write_text("{not json")
        assert token_storage.load() is None

    def test_should_return_none_for_non_token_json(self, token_storage: TokenStorage) -> None:
        """Verify JSON without an access token yields None."""
        token_storage.token_path.write_text(json.dumps({"hello": "world"}))
        assert token_storage.load() is None

    def test_should_load_file_with_expiry_date(self, token_storage: TokenStorage) -> None:
        """Verify files using expiry_date in milliseconds are accepted."""
        token_storage.token_path.write_text(
            json.dumps(
                {
                    "access_token": "abc",
                    "refresh_token": "def",
                    "scope": "https://www.googleapis.com/auth/gmail.modify",
                    "token_type": "Bearer",
                    "expiry_date": 1700000000000,
                }
            )
        )

        loaded = token_storage.load()

        assert loaded is not None
        assert loaded.expires_at == 1700000000.0


@pytest.mark.unit
class TestTokenStorageStatus:
    """Tests for TokenStorage.get_status() and delete()."""

    def test_should_report_missing(self, token_storage: TokenStorage) -> None:
        assert token_storage.get_status() == TokenStatus.MISSING

    def test_should_report_invalid(self, token_storage: TokenStorage) -> None:
        token_storage.token_path.write_text("garbage")
        assert token_storage.get_status() == TokenStatus.INVALID

    def test_should_report_expired(
        self, token_storage: TokenStorage, expired_token_set: TokenSet
    ) -> None:
        token_storage.save(expired_token_set)
        assert token_storage.get_status() == TokenStatus.EXPIRED

    def test_should_report_valid(
        self, token_storage: TokenStorage, valid_token_set: TokenSet
    ) -> None:
        token_storage.save(valid_token_set)
        assert token_storage.get_status() == TokenStatus.VALID

    def test_should_delete_file(
        self, token_storage: TokenStorage, valid_token_set: TokenSet
    ) -> None:
        """Verify delete removes the file and reports whether it existed."""
        token_storage.save(valid_token_set)

        assert token_storage.delete() is True
        assert token_storage.delete() is False
        assert token_storage.get_status() == TokenStatus.MISSING


@pytest.mark.unit
def test_should_default_to_home_config_dir() -> None:
    """Verify the default path is ~/.gmail-mcp/credentials.json."""
    path = get_token_path()
    assert path == Path.home() / ".gmail-mcp" / "credentials.json"
