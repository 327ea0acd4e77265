"""
OAuth 2.0 module for Withings API integration.

Withings uses the authorization code flow with a few deviations from the
standard (comma separated scopes, an "action" parameter on the token
endpoint, enveloped token responses). This module handles them.

Public API:
    WithingsOAuthConfig: OAuth configuration management
    Credential: Issued token data
    TokenManager: Code exchange and refresh
    ReuseTokenSource: Auto-refreshing, single-flight token source
    TokenAuth: requests auth handler backed by a token source
    OAuthCoordinator: High-level OAuth interface

Exceptions:
    WithingsOAuthError: Base exception
    ConfigurationError: Configuration error
    AuthorizationError: Authorization flow error
    TokenRetrieveError: Token endpoint rejected a grant
    TokenExchangeError: Token exchange failed
    TokenRefreshError: Token refresh failed
    ReauthorizationRequiredError: No way to refresh
"""

from .auth_server import AuthorizationResult, OAuthCallbackServer, run_authorization_flow
from .config import (
    DEFAULT_SCOPES,
    ENDPOINT,
    ENDPOINT_HIPAA,
    MODE_DEMO,
    AuthCodeOption,
    Endpoint,
    WithingsOAuthConfig,
    set_auth_url_param,
)
from .coordinator import OAuthCoordinator
from .credential import EXPIRY_DELTA, Credential
from .exceptions import (
    AuthorizationError,
    ConfigurationError,
    ReauthorizationRequiredError,
    TokenExchangeError,
    TokenRefreshError,
    TokenRetrieveError,
    WithingsOAuthError,
)
from .token_manager import TokenManager
from .token_source import ReuseTokenSource, StaticTokenSource, TokenAuth

__all__ = [
    # Configuration
    "WithingsOAuthConfig",
    "Endpoint",
    "ENDPOINT",
    "ENDPOINT_HIPAA",
    "AuthCodeOption",
    "set_auth_url_param",
    "MODE_DEMO",
    "DEFAULT_SCOPES",
    # Credentials
    "Credential",
    "EXPIRY_DELTA",
    # Token Manager
    "TokenManager",
    "ReuseTokenSource",
    "StaticTokenSource",
    "TokenAuth",
    # Authorization Server
    "OAuthCallbackServer",
    "AuthorizationResult",
    "run_authorization_flow",
    # Coordinator
    "OAuthCoordinator",
    # Exceptions
    "WithingsOAuthError",
    "ConfigurationError",
    "AuthorizationError",
    "TokenRetrieveError",
    "TokenExchangeError",
    "TokenRefreshError",
    "ReauthorizationRequiredError",
]
