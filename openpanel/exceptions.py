"""
OpenPanel SDK Exceptions
========================

Errors raised on the delivery path. None of them reach callers of the
fire-and-forget client methods: the delivery worker logs them and moves on.
"""


class OpenPanelError(Exception):
    """Base exception for all OpenPanel SDK errors."""

    def __init__(self, message: str, status_code: int = None, response: bytes = None):
        self.message = message
        self.status_code = status_code
        self.response = response or b""
        super().__init__(self.message)


class ConfigurationError(OpenPanelError):
    """Raised when the API URL cannot be turned into a request URL."""
    pass


class EncodingError(OpenPanelError):
    """Raised when an event cannot be encoded to or decoded from JSON."""
    pass


class TransportError(OpenPanelError):
    """Raised when the request never got a response, after all retries."""

    def __init__(self, message: str, attempts: int = 1, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


class HTTPStatusError(OpenPanelError):
    """Raised when the API answers outside the 2xx range. Never retried."""
    pass
