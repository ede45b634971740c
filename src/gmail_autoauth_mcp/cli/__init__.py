"""Command-line interface for gmail-autoauth-mcp."""
