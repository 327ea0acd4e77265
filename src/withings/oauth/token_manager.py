"""
Token manager for Withings OAuth integration.

This module manages the Withings token lifecycle:
- Token exchange (authorization code → Credential)
- Token refresh (refresh token → new Credential)
- Auto-refreshing token sources and authenticated sessions

Both grants go to the same token endpoint with action=requesttoken and are
told apart by grant_type. The response uses the standard Withings envelope,
so it is decoded with the same envelope decoder as data calls.

Withings API docs: https://developer.withings.com/api-reference#operation/oauth2-getaccesstoken
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Type

import requests
from pydantic import BaseModel, ConfigDict, Field

from ..client import USER_AGENT
from ..context import Context
from ..envelope import decode_metadata, decode_payload, parse_document
from ..exceptions import DecodeError
from .config import WithingsOAuthConfig
from .credential import Credential
from .exceptions import (
    ReauthorizationRequiredError,
    TokenExchangeError,
    TokenRefreshError,
    TokenRetrieveError,
)
from .token_source import ReuseTokenSource, TokenAuth

logger = logging.getLogger(__name__)


class _TokenBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: str = ""
    refresh_token: str = ""
    token_type: str = ""
    expires_in: int = 0


class _TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    body: _TokenBody = Field(default_factory=_TokenBody)


class TokenManager:
    """
    Exchanges and refreshes Withings credentials.

    The manager holds no token state; credentials are returned to the
    caller, who owns their storage. Use token_source() or session() for
    automatic refresh.

    Example:
        manager = TokenManager(WithingsOAuthConfig.from_env())
        credential = manager.exchange(code)
        client = WithingsClient(manager.session(credential, on_refresh=save))
    """

    def __init__(self, config: WithingsOAuthConfig, session: Optional[requests.Session] = None):
        """
        Initialize token manager.

        Args:
            config: OAuth configuration
            session: HTTP session for token requests (creates one if not provided)
        """
        self.config = config
        self.session = session or requests.Session()

    def exchange(self, code: str, ctx: Optional[Context] = None) -> Credential:
        """
        Exchange an authorization code for a credential.

        Called once after the user authorizes the application; the code
        comes from the redirect to the callback URL.

        Args:
            code: Authorization code from the callback
            ctx: Cancellation context

        Returns:
            Credential with provider extras (userid, scope) preserved

        Raises:
            TokenExchangeError: If the token endpoint rejects the code
            DecodeError: If the response cannot be decoded
            requests.RequestException: On network failure
        """
        logger.info("Exchanging authorization code for tokens")

        grant = {
            "grant_type": "authorization_code",
            "code": code,
        }
        if self.config.redirect_url:
            grant["redirect_uri"] = self.config.redirect_url

        credential = self._retrieve_token(grant, TokenExchangeError, ctx)
        logger.info(f"Obtained tokens for user {credential.user_id}")
        return credential

    def refresh(self, credential: Credential, ctx: Optional[Context] = None) -> Credential:
        """
        Obtain a new credential with a refresh token.

        Withings may rotate the refresh token; always keep the credential
        returned here rather than the one passed in.

        Args:
            credential: Current credential
            ctx: Cancellation context

        Returns:
            New credential (carries the old refresh token if none was returned)

        Raises:
            ReauthorizationRequiredError: If credential has no refresh token
            TokenRefreshError: If the token endpoint rejects the refresh token
            DecodeError: If the response cannot be decoded
            requests.RequestException: On network failure
        """
        if not credential.refresh_token:
            raise ReauthorizationRequiredError(
                "No refresh token available. Run the authorization flow again."
            )

        logger.info("Refreshing access token")

        grant = {
            "grant_type": "refresh_token",
            "refresh_token": credential.refresh_token,
        }

        refreshed = self._retrieve_token(
            grant, TokenRefreshError, ctx, fallback_refresh_token=credential.refresh_token
        )
        logger.info("Successfully refreshed tokens")
        return refreshed

    def token_source(
        self,
        credential: Credential,
        ctx: Optional[Context] = None,
        on_refresh: Optional[Callable[[Credential], None]] = None,
    ) -> ReuseTokenSource:
        """
        Create a token source that refreshes the credential when it expires.

        Args:
            credential: Initial credential
            ctx: Context used for refresh requests
            on_refresh: Called with every refreshed credential (for persistence)

        Returns:
            Auto-refreshing token source
        """
        return ReuseTokenSource(credential, self, ctx=ctx, on_refresh=on_refresh)

    def session(
        self,
        credential: Credential,
        ctx: Optional[Context] = None,
        on_refresh: Optional[Callable[[Credential], None]] = None,
    ) -> requests.Session:
        """
        Create an HTTP session that authenticates every request.

        The token is refreshed automatically as needed. Pass the session
        to WithingsClient.

        Args:
            credential: Initial credential
            ctx: Context used for refresh requests
            on_refresh: Called with every refreshed credential

        Returns:
            requests.Session with token authentication
        """
        session = requests.Session()
        session.auth = TokenAuth(self.token_source(credential, ctx=ctx, on_refresh=on_refresh))
        return session

    def _retrieve_token(
        self,
        grant: Dict[str, str],
        error_cls: Type[TokenRetrieveError],
        ctx: Optional[Context],
        fallback_refresh_token: str = "",
    ) -> Credential:
        """
        Send a grant request to the token endpoint.

        Args:
            grant: grant_type and grant specific parameters
            error_cls: Error raised when the endpoint rejects the grant
            ctx: Cancellation context
            fallback_refresh_token: Refresh token to keep if none is returned

        Returns:
            Issued credential
        """
        ctx = ctx or Context.background()
        ctx.raise_if_done()

        # Client credentials go in the form body
        form = {
            "action": "requesttoken",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            **grant,
        }

        try:
            response = self.session.post(
                self.config.endpoint.token_url,
                data=form,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                    "User-Agent": USER_AGENT,
                },
                timeout=ctx.timeout(self.config.timeout),
            )
        except requests.RequestException as e:
            error = ctx.err()
            if error is not None:
                logger.warning(f"Token request aborted: {error}")
                raise error from e
            logger.error(f"Network error during token request: {e}")
            raise

        if not 200 <= response.status_code < 300:
            logger.error(f"Token request failed: HTTP {response.status_code}")
            raise error_cls(
                0,
                f"token endpoint returned HTTP {response.status_code}",
                http_status=response.status_code,
                body=response.text,
            )

        document = parse_document(response.content)
        envelope = decode_metadata(document)

        if not envelope.ok:
            logger.error(
                f"Token request rejected: status {envelope.status} {envelope.error_message}".rstrip()
            )
            raise error_cls(
                envelope.status,
                envelope.error_message,
                http_status=response.status_code,
                body=response.text,
            )

        token = decode_payload(document, _TokenResponse).body
        if not token.access_token:
            raise DecodeError("server response missing access_token", stage="token")

        return self._credential_from(document, token, fallback_refresh_token)

    @staticmethod
    def _credential_from(
        document: Dict[str, Any], token: _TokenBody, fallback_refresh_token: str
    ) -> Credential:
        """Map a decoded token body into a Credential."""
        expiry = None
        if token.expires_in > 0:
            expiry = datetime.now(timezone.utc) + timedelta(seconds=token.expires_in)

        return Credential(
            access_token=token.access_token,
            refresh_token=token.refresh_token or fallback_refresh_token,
            token_type=token.token_type or "Bearer",
            expiry=expiry,
            raw=dict(document.get("body") or {}),
        )
