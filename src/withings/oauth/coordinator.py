"""
OAuth coordinator for high-level OAuth operations.

This module ties the authorization flow and the token manager together:
it obtains a credential through the browser consent flow and hands out
clients that keep it fresh.
"""

import logging
from typing import Callable, Optional, Sequence

from ..client import WithingsClient
from ..context import Context
from .auth_server import AuthorizationResult, run_authorization_flow
from .config import ENDPOINT_HIPAA, AuthCodeOption, WithingsOAuthConfig
from .credential import Credential
from .exceptions import AuthorizationError
from .token_manager import TokenManager

logger = logging.getLogger(__name__)


class OAuthCoordinator:
    """
    High-level coordinator for OAuth operations.

    The coordinator does not persist credentials. Save the credential
    returned by authorize() and pass a callback as on_refresh to client()
    to save every refreshed one.

    Example:
        coordinator = OAuthCoordinator()
        credential = coordinator.authorize()
        client = coordinator.client(credential, on_refresh=save)
        measures = client.measure.getmeas([MeasureType.WEIGHT])
    """

    def __init__(
        self,
        config: Optional[WithingsOAuthConfig] = None,
        token_manager: Optional[TokenManager] = None,
    ):
        """
        Initialize OAuth coordinator.

        Args:
            config: OAuth configuration (loads from environment if not provided)
            token_manager: Token manager (built from config if not provided)
        """
        self.config = config or WithingsOAuthConfig.from_env()
        self.token_manager = token_manager or TokenManager(self.config)

    def get_authorization_url(self, state: str, options: Sequence[AuthCodeOption] = ()) -> str:
        """Authorization URL for callers that handle the redirect themselves."""
        return self.config.auth_code_url(state, *options)

    def authorize(
        self,
        open_browser: bool = True,
        options: Sequence[AuthCodeOption] = (),
        timeout: int = 300,
        ctx: Optional[Context] = None,
    ) -> Credential:
        """
        Run the complete OAuth authorization flow.

        This orchestrates the full authorization process:
        1. Starts the callback server
        2. Opens browser for user authorization
        3. Receives authorization code from callback
        4. Exchanges code for a credential

        Args:
            open_browser: Whether to automatically open browser
            options: Extra authorization parameters (e.g., MODE_DEMO)
            timeout: Seconds to wait for the callback
            ctx: Context bounding the code exchange

        Returns:
            Newly issued credential

        Raises:
            AuthorizationError: If the user denied access or no callback arrived
            TokenExchangeError: If the code exchange was rejected
        """
        result: AuthorizationResult = run_authorization_flow(
            self.config, open_browser=open_browser, timeout=timeout, options=options
        )

        if not result.success:
            raise AuthorizationError(
                f"Authorization failed: {result.error} - {result.error_description}"
            )

        credential = self.token_manager.exchange(result.authorization_code, ctx)
        logger.info("Authorization complete")
        return credential

    def client(
        self,
        credential: Credential,
        ctx: Optional[Context] = None,
        on_refresh: Optional[Callable[[Credential], None]] = None,
        **kwargs,
    ) -> WithingsClient:
        """
        Build a data API client that refreshes the credential as needed.

        The client targets the cloud matching the OAuth endpoint.

        Args:
            credential: Credential from authorize() or storage
            ctx: Context used for refresh requests
            on_refresh: Called with every refreshed credential
            **kwargs: Passed on to WithingsClient

        Returns:
            Authenticated client
        """
        session = self.token_manager.session(credential, ctx=ctx, on_refresh=on_refresh)
        if self.config.endpoint == ENDPOINT_HIPAA:
            return WithingsClient.hipaa(session, **kwargs)
        return WithingsClient(session, **kwargs)
