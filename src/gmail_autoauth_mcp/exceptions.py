"""Exception types shared across gmail-autoauth-mcp."""


class GmailMCPError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(GmailMCPError):
    """OAuth keys file missing or malformed. Fatal at startup."""


class AuthenticationError(GmailMCPError):
    """The authorization flow failed or no usable token is available."""


class GmailAPIError(GmailMCPError):
    """A Gmail or People API call returned an error response.

    Attributes:
        status_code: HTTP status returned by Google.
        message: Error message extracted from the response body.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Gmail API error ({status_code}): {message}")
