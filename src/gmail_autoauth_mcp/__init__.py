"""Gmail MCP server with automatic OAuth2 authentication."""

from gmail_autoauth_mcp.__version__ import __version__

__all__ = ["__version__"]
