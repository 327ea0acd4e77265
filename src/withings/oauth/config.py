"""
OAuth configuration for Withings API integration.

This module provides configuration management for Withings' OAuth 2.0
flavour and builds the consent page URL. Configuration can be loaded from
environment variables or provided programmatically.

Withings deviates from standard OAuth2 in a few ways:

- The "scope" parameter is comma separated, not space separated
- The token endpoint needs an extra "action" parameter to tell code
  exchange and refresh apart
- Token responses are wrapped in the same status envelope as every other
  API response

Withings API docs: https://developer.withings.com/api-reference#tag/oauth2
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Tuple
from urllib.parse import urlencode, urlparse

from .. import endpoints
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Extra query parameter for the authorization URL
AuthCodeOption = Tuple[str, str]


@dataclass(frozen=True)
class Endpoint:
    """OAuth endpoint pair of a Withings cloud."""

    auth_url: str
    token_url: str


# Public cloud
ENDPOINT = Endpoint(auth_url=endpoints.AUTH_URL, token_url=endpoints.TOKEN_URL)

# HIPAA cloud
ENDPOINT_HIPAA = Endpoint(auth_url=endpoints.AUTH_URL_HIPAA, token_url=endpoints.TOKEN_URL_HIPAA)


def set_auth_url_param(key: str, value: str) -> AuthCodeOption:
    """Build an extra authorization URL parameter."""
    return (key, value)


# Logs the user in as a demo user
MODE_DEMO = set_auth_url_param("mode", "demo")

DEFAULT_SCOPES = "user.info,user.metrics,user.activity"


def _validate_url(name: str, url: str) -> None:
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} is not a valid URL: {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"{name} must be an absolute http(s) URL, got {url!r}")


@dataclass
class WithingsOAuthConfig:
    """
    Configuration for Withings OAuth 2.0.

    Attributes:
        client_id: Withings application client ID from the partner dashboard
        client_secret: Withings application client secret
        redirect_url: Callback URL registered for the application
        scopes: Requested scopes, in the order they are sent
        endpoint: OAuth endpoints (ENDPOINT or ENDPOINT_HIPAA)
        callback_host: Interface the local callback server binds to
        callback_port: Port the local callback server listens on
        timeout: Token request timeout in seconds
    """

    # Required - from the Withings partner dashboard
    client_id: str
    client_secret: str

    redirect_url: str = ""
    scopes: List[str] = field(default_factory=list)
    endpoint: Endpoint = ENDPOINT

    # Local callback server (behind a tunnel; Withings rejects localhost redirects)
    callback_host: str = "127.0.0.1"
    callback_port: int = 8080

    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.client_id:
            raise ConfigurationError("client_id cannot be empty")

        if not self.client_secret:
            raise ConfigurationError("client_secret cannot be empty")

        if not isinstance(self.callback_port, int) or not (
            1 <= self.callback_port <= 65535
        ):
            raise ConfigurationError(
                f"callback_port must be between 1 and 65535, got {self.callback_port}"
            )

        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")

        _validate_url("authorization URL", self.endpoint.auth_url)
        _validate_url("token URL", self.endpoint.token_url)
        if self.redirect_url:
            _validate_url("redirect_url", self.redirect_url)

    @property
    def callback_path(self) -> str:
        """
        URL path the callback server answers on.

        Returns:
            Path of redirect_url, or /oauth2/callback when unset
        """
        path = urlparse(self.redirect_url).path if self.redirect_url else ""
        return path or "/oauth2/callback"

    def auth_code_url(self, state: str, *options: AuthCodeOption) -> str:
        """
        Build the URL of the consent page.

        Scopes are joined with commas, which stay unescaped in the query.
        Options add extra parameters; they cannot replace the standard ones.

        Args:
            state: Opaque value returned unchanged to the redirect URL
            options: Extra (key, value) parameters such as MODE_DEMO

        Returns:
            Authorization URL

        Raises:
            ConfigurationError: If the authorization endpoint is malformed

        Withings API docs: https://developer.withings.com/api-reference#operation/oauth2-authorize
        """
        _validate_url("authorization URL", self.endpoint.auth_url)

        params = {"client_id": self.client_id}
        if self.redirect_url:
            params["redirect_uri"] = self.redirect_url
        params["response_type"] = "code"
        if self.scopes:
            params["scope"] = ",".join(self.scopes)
        if state:
            params["state"] = state

        for key, value in options:
            if key in params:
                logger.warning(f"Ignoring authorization option {key!r}: parameter already set")
                continue
            params[key] = value

        separator = "&" if "?" in self.endpoint.auth_url else "?"
        url = f"{self.endpoint.auth_url}{separator}{urlencode(params, safe=',')}"
        logger.debug(f"Generated authorization URL: {url}")
        return url

    @classmethod
    def from_env(cls) -> "WithingsOAuthConfig":
        """
        Load configuration from environment variables.

        Required environment variables:
            WITHINGS_CLIENT_ID: Withings application client ID
            WITHINGS_CLIENT_SECRET: Withings application client secret

        Optional environment variables:
            WITHINGS_REDIRECT_URL: Registered callback URL
            WITHINGS_SCOPES: Comma separated scopes (default: user.info,user.metrics,user.activity)
            WITHINGS_HIPAA: Use the HIPAA cloud when set to 1/true/yes
            WITHINGS_CALLBACK_HOST: Callback server interface (default: 127.0.0.1)
            WITHINGS_CALLBACK_PORT: Callback server port (default: 8080)

        Returns:
            WithingsOAuthConfig instance

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        client_id = os.environ.get("WITHINGS_CLIENT_ID")
        client_secret = os.environ.get("WITHINGS_CLIENT_SECRET")

        if not client_id or not client_secret:
            raise ConfigurationError(
                "Missing Withings OAuth credentials. Set environment variables:\n"
                "  WITHINGS_CLIENT_ID=your_client_id\n"
                "  WITHINGS_CLIENT_SECRET=your_client_secret\n"
                "\n"
                "Register an application at: https://developer.withings.com"
            )

        scopes = [
            scope.strip()
            for scope in os.environ.get("WITHINGS_SCOPES", DEFAULT_SCOPES).split(",")
            if scope.strip()
        ]
        hipaa = os.environ.get("WITHINGS_HIPAA", "").lower() in ("1", "true", "yes")

        port = os.environ.get("WITHINGS_CALLBACK_PORT", "8080")
        try:
            callback_port = int(port)
        except ValueError as e:
            raise ConfigurationError(f"WITHINGS_CALLBACK_PORT must be an integer, got {port!r}") from e

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_url=os.environ.get("WITHINGS_REDIRECT_URL", ""),
            scopes=scopes,
            endpoint=ENDPOINT_HIPAA if hipaa else ENDPOINT,
            callback_host=os.environ.get("WITHINGS_CALLBACK_HOST", "127.0.0.1"),
            callback_port=callback_port,
        )
