"""Command-line interface for gmail-autoauth-mcp."""

import asyncio
import sys

import click

from gmail_autoauth_mcp.__version__ import __version__
from gmail_autoauth_mcp.config import Settings
from gmail_autoauth_mcp.exceptions import ConfigurationError


def _load_manager(settings: Settings):
    """Create the OAuthManager, exiting on a configuration error."""
    from gmail_autoauth_mcp.auth import OAuthManager

    try:
        return OAuthManager.from_settings(settings)
    except ConfigurationError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context) -> None:
    """Gmail MCP Server - Connect Claude to Gmail.

    Run without a command to start the stdio MCP server. Authentication runs
    automatically in the browser if no stored credentials are found.
    """
    if ctx.invoked_subcommand is None:
        _serve()


def _serve() -> None:
    """Start the stdio MCP server, authenticating first if needed."""
    from gmail_autoauth_mcp.exceptions import AuthenticationError
    from gmail_autoauth_mcp.server import serve

    try:
        asyncio.run(serve(Settings.from_env()))
    except ConfigurationError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
    except AuthenticationError as e:
        click.echo(f"❌ Authentication failed: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)


@main.command()
def auth() -> None:
    """Authenticate with Google and store the token set.

    This will:
    1. Open browser for OAuth2 consent flow
    2. Capture the redirect on http://localhost:3000/oauth2callback
    3. Store tokens at ~/.gmail-mcp/credentials.json
    """
    settings = Settings.from_env()
    manager = _load_manager(settings)

    click.echo("Starting OAuth authentication flow...")
    click.echo("Browser will open for Google consent...")
    click.echo("")

    try:
        asyncio.run(manager.authenticate())
    except Exception as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)

    click.echo("Authentication completed successfully")
    click.echo(f"Token stored at: {manager.token_path}")


@main.command()
def doctor() -> None:
    """Check configuration and authentication status.

    Verifies:
    1. OAuth keys file present and well-formed
    2. Stored token set present and parseable
    """
    from gmail_autoauth_mcp.auth import TokenStatus

    settings = Settings.from_env()

    click.echo("Gmail MCP Status:")
    click.echo("")
    click.echo("Configuration:")
    click.echo(f"  Keys file: {settings.oauth_path}")

    manager = _load_manager(settings)
    click.echo(f"  ✓ OAuth keys loaded ({manager.keys.kind} client)")
    click.echo("")

    status, token_set = manager.get_status()

    click.echo("Authentication:")
    click.echo(f"  Token file: {manager.token_path}")

    if status == TokenStatus.MISSING:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'gmail-mcp auth' to authenticate.")
        sys.exit(1)
    elif status == TokenStatus.INVALID:
        click.echo("  ❌ Token file corrupted")
        click.echo("")
        click.echo("Run 'gmail-mcp auth' to re-authenticate.")
        sys.exit(1)
    elif status == TokenStatus.EXPIRED:
        if token_set and token_set.refresh_token:
            click.echo("  ⚠️  Token expired (will refresh automatically on use)")
        else:
            click.echo("  ❌ Token expired and has no refresh token")
            click.echo("")
            click.echo("Run 'gmail-mcp auth' to re-authenticate.")
            sys.exit(1)
    else:
        click.echo("  ✓ Authenticated")
        if token_set and token_set.expiry:
            click.echo(f"  Token expires: {token_set.expiry.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        if token_set:
            click.echo(f"  Scopes: {len(token_set.scopes)} granted")

    click.echo("")
    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
