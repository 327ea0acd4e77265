"""
OAuth exception classes for Withings API integration.

The token endpoint answers with the same status envelope as the data API,
so token errors are also WithingsAPIError instances and carry the
provider status code.
"""

from typing import Optional

from ..exceptions import ConfigurationError, WithingsAPIError, WithingsError

__all__ = [
    "WithingsOAuthError",
    "ConfigurationError",
    "AuthorizationError",
    "TokenRetrieveError",
    "TokenExchangeError",
    "TokenRefreshError",
    "ReauthorizationRequiredError",
]


class WithingsOAuthError(WithingsError):
    """Base exception for all Withings OAuth errors."""

    pass


class AuthorizationError(WithingsOAuthError):
    """OAuth consent flow failed (denied, state mismatch, missing code, timeout)."""

    pass


class TokenRetrieveError(WithingsOAuthError, WithingsAPIError):
    """
    Token endpoint rejected the grant request.

    Attributes:
        status: Envelope status code (0 when the HTTP request itself failed)
        error: Provider error description
        http_status: HTTP status code of the token response
        body: Raw response body text
    """

    def __init__(
        self,
        status: int,
        error: str = "",
        http_status: Optional[int] = None,
        body: str = "",
    ):
        WithingsAPIError.__init__(self, status, error)
        self.http_status = http_status
        self.body = body

    @property
    def description(self) -> str:
        return self.error


class TokenExchangeError(TokenRetrieveError):
    """Failed to exchange an authorization code for a credential."""

    pass


class TokenRefreshError(TokenRetrieveError):
    """Failed to refresh a credential with its refresh token."""

    pass


class ReauthorizationRequiredError(WithingsOAuthError):
    """Credential expired and cannot be refreshed (run the authorization flow again)."""

    pass
