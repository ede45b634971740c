"""Unit tests for Settings."""

from pathlib import Path

import pytest

from gmail_autoauth_mcp.config import (
    DEFAULT_REDIRECT_URI,
    DEFAULT_SIGNATURE_TEMPLATE,
    Settings,
)


@pytest.mark.unit
class TestSettingsFromEnv:
    """Tests for Settings.from_env()."""

    def test_should_use_defaults_for_empty_environment(self) -> None:
        """Verify defaults are used when no variables are set."""
        settings = Settings.from_env({})

        assert settings.config_dir == Path.home() / ".gmail-mcp"
        assert settings.oauth_path == Path.home() / ".gmail-mcp" / "gcp-oauth.keys.json"
        assert settings.credentials_path == Path.home() / ".gmail-mcp" / "credentials.json"
        assert settings.sent_emails_dir == Path.cwd() / "sent-emails"
        assert settings.signature_template == DEFAULT_SIGNATURE_TEMPLATE
        assert settings.redirect_uri == DEFAULT_REDIRECT_URI

    def test_should_apply_path_overrides(self, tmp_path: Path) -> None:
        """Verify each path variable overrides its default."""
        settings = Settings.from_env(
            {
                "GMAIL_OAUTH_PATH": str(tmp_path / "keys.json"),
                "GMAIL_CREDENTIALS_PATH": str(tmp_path / "creds.json"),
                "GMAIL_SENT_EMAILS_DIR": str(tmp_path / "out"),
            }
        )

        assert settings.oauth_path == tmp_path / "keys.json"
        assert settings.credentials_path == tmp_path / "creds.json"
        assert settings.sent_emails_dir == tmp_path / "out"

    def test_should_respect_empty_signature_template(self) -> None:
        """Verify an empty template disables the signature instead of using the default."""
        settings = Settings.from_env({"GMAIL_SIGNATURE_TEMPLATE": ""})
        assert settings.signature_template == ""

    def test_should_apply_redirect_uri_override(self) -> None:
        """Verify the redirect URI can be changed."""
        settings = Settings.from_env(
            {"GMAIL_OAUTH_REDIRECT_URI": "http://127.0.0.1:8765/oauth2callback"}
        )
        assert settings.redirect_uri == "http://127.0.0.1:8765/oauth2callback"

    def test_should_read_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Verify os.environ is read when no mapping is given."""
        monkeypatch.setenv("GMAIL_SIGNATURE_TEMPLATE", "-- {name}")
        assert Settings.from_env().signature_template == "-- {name}"
