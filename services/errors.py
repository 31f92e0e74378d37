"""
Error types raised by the visibility platforms.
All of them are caught by the visibility hub and recorded inline in the result.
"""


class VisibilityError(Exception):
    """Base class for visibility probe failures."""
    pass


class ConfigurationError(VisibilityError):
    """Raised when a platform's API key is not configured."""
    pass


class TransportError(VisibilityError):
    """Raised on a non-success status or a network failure talking to a platform."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(VisibilityError):
    """Raised when a platform answers with an envelope we cannot read text from."""
    pass
