"""
Exception hierarchy for the Withings API client.

Errors fall into four groups that callers can branch on:

- ConfigurationError: bad endpoints or credentials, raised before any request
- ContextError: the caller's Context was cancelled or hit its deadline
- DecodeError: the response body could not be decoded
- WithingsAPIError: the API answered with a non-zero envelope status

Network failures are not wrapped; requests exceptions reach the caller
as raised by the HTTP session.
"""

from typing import Any, Optional


class WithingsError(Exception):
    """Base exception for all Withings client errors."""

    pass


class ConfigurationError(WithingsError):
    """Invalid or missing configuration (endpoint, credentials, environment)."""

    pass


class ContextError(WithingsError):
    """The operation's Context is done."""

    pass


class Canceled(ContextError):
    """The operation's Context was cancelled."""

    def __init__(self, message: str = "context canceled", reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class DeadlineExceeded(ContextError):
    """The operation's Context passed its deadline."""

    pass


class DecodeError(WithingsError):
    """
    Response body could not be decoded.

    Attributes:
        stage: Which decoding step failed ("json", "envelope", "payload" or "token")
    """

    def __init__(self, message: str, stage: str):
        super().__init__(f"{stage} decode failed: {message}")
        self.stage = stage


class WithingsAPIError(WithingsError):
    """
    Non-zero status in the response envelope.

    The status is the Withings API status code, which is independent of
    the HTTP status code.

    Attributes:
        status: Envelope status code
        error: Error message from the envelope (may be empty)
        response: The decoded Response, when available
    """

    def __init__(self, status: int, error: str = "", response: Any = None):
        message = f"Withings API error (status {status})"
        if error:
            message = f"{message}: {error}"
        super().__init__(message)
        self.status = status
        self.error = error
        self.response = response
