"""
OAuth callback server for Withings API integration.

This module provides a local HTTP server that receives the redirect from
the Withings consent page during the authorization flow.

Withings does not accept localhost or IP redirect URLs, so the registered
redirect URL must point at a public tunnel (ngrok, tunnelto, ...) that
forwards to callback_host:callback_port. The tunnel terminates TLS.

IMPORTANT: This server is designed for single-user, personal use. It runs
temporarily during the authorization flow and shuts down after receiving
the callback.
"""

import logging
import secrets
import threading
import webbrowser
from dataclasses import dataclass
from typing import Optional, Sequence

from flask import Flask, Response, request
from markupsafe import escape
from werkzeug.serving import make_server

from .config import AuthCodeOption, WithingsOAuthConfig

logger = logging.getLogger(__name__)

_PAGE = """<html>
<head><title>{title}</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;">
    <h1 style="color: {color};">{title}</h1>
    <p>{message}</p>
    <p style="margin-top: 30px; color: #666;">You can close this window.</p>
</body>
</html>"""


@dataclass
class AuthorizationResult:
    """
    Result of OAuth authorization flow.

    Attributes:
        success: Whether authorization succeeded
        authorization_code: Authorization code from callback (if successful)
        state: State value returned by Withings
        error: Error code (if failed)
        error_description: Human-readable error description (if failed)
    """

    success: bool
    authorization_code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


class OAuthCallbackServer:
    """
    Local HTTP server to handle the OAuth callback.

    The server:
    1. Starts an HTTP listener on the configured host and port
    2. Generates the authorization URL with a random state
    3. Waits for the redirect carrying the authorization code
    4. Checks the state and shuts down after one callback
    """

    def __init__(self, config: WithingsOAuthConfig, state: Optional[str] = None):
        """
        Initialize callback server.

        Args:
            config: OAuth configuration
            state: State value to send and expect back (random if not provided)
        """
        self.config = config
        self.state = state or secrets.token_urlsafe(16)
        self.app = Flask(__name__)
        self.app.logger.setLevel(logging.WARNING)  # Suppress Flask logs
        self.server = None
        self.result: Optional[AuthorizationResult] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown_event = threading.Event()

        self.app.add_url_rule(
            self.config.callback_path,
            "oauth_callback",
            self._handle_callback,
            methods=["GET"],
        )

    def _finish(self, result: AuthorizationResult) -> None:
        self.result = result
        self._shutdown_event.set()

    def _handle_callback(self) -> Response:
        """Handle the redirect from the Withings consent page."""
        logger.info("Received OAuth callback")

        error = request.args.get("error")
        if error:
            error_desc = request.args.get("error_description", "Unknown error")
            logger.error(f"OAuth error: {error} - {error_desc}")
            self._finish(
                AuthorizationResult(success=False, error=error, error_description=error_desc)
            )
            return self._page("Authorization Failed", f"{error}: {error_desc}", 400)

        state = request.args.get("state")
        if state != self.state:
            logger.error("OAuth callback state does not match")
            self._finish(
                AuthorizationResult(
                    success=False,
                    state=state,
                    error="state_mismatch",
                    error_description="Returned state does not match the authorization request",
                )
            )
            return self._page("Authorization Failed", "Invalid state parameter.", 400)

        code = request.args.get("code")
        if not code:
            logger.error("No authorization code in callback")
            self._finish(
                AuthorizationResult(
                    success=False,
                    state=state,
                    error="missing_code",
                    error_description="No authorization code received",
                )
            )
            return self._page("Authorization Failed", "No authorization code received from Withings.", 400)

        logger.info("Authorization code received successfully")
        self._finish(AuthorizationResult(success=True, authorization_code=code, state=state))
        return self._page(
            "Authorization Successful",
            "Your application has been authorized to access your Withings data.",
            200,
        )

    @staticmethod
    def _page(title: str, message: str, status: int) -> Response:
        color = "#4caf50" if status == 200 else "#d32f2f"
        return Response(
            _PAGE.format(title=escape(title), message=escape(message), color=color),
            status=status,
            content_type="text/html",
        )

    def generate_authorization_url(self, options: Sequence[AuthCodeOption] = ()) -> str:
        """
        Generate the Withings authorization URL for this server's state.

        Args:
            options: Extra authorization parameters (e.g., MODE_DEMO)

        Returns:
            Complete authorization URL
        """
        return self.config.auth_code_url(self.state, *options)

    def start(self) -> None:
        """
        Start the callback server in a background thread.

        Raises:
            OSError: If the port cannot be bound
        """
        self.server = make_server(
            self.config.callback_host, self.config.callback_port, self.app, threaded=True
        )
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

        logger.info(
            f"OAuth callback server listening on "
            f"{self.config.callback_host}:{self.config.callback_port}{self.config.callback_path}"
        )

    def wait_for_callback(self, timeout: int = 300) -> AuthorizationResult:
        """
        Wait for OAuth callback.

        Args:
            timeout: Maximum seconds to wait (default: 300 = 5 minutes)

        Returns:
            AuthorizationResult with code or error
        """
        logger.info(f"Waiting for OAuth callback (timeout: {timeout}s)")

        if self._shutdown_event.wait(timeout=timeout):
            return self.result or AuthorizationResult(
                success=False,
                error="unknown",
                error_description="Server shutdown without result",
            )

        logger.warning(f"Timeout waiting for callback after {timeout}s")
        return AuthorizationResult(
            success=False,
            error="timeout",
            error_description=f"No callback received within {timeout} seconds. "
            f"Please ensure you completed the authorization in your browser.",
        )

    def stop(self) -> None:
        """Stop the callback server."""
        if self.server is not None:
            logger.info("OAuth callback server shutting down")
            self.server.shutdown()
            self.server = None
        self._shutdown_event.set()


def run_authorization_flow(
    config: WithingsOAuthConfig,
    open_browser: bool = True,
    timeout: int = 300,
    options: Sequence[AuthCodeOption] = (),
) -> AuthorizationResult:
    """
    Run the browser part of the OAuth authorization flow.

    This function:
    1. Starts the callback server
    2. Generates the authorization URL
    3. Opens the browser (or displays the URL)
    4. Waits for the user to authorize
    5. Returns the authorization code or error

    Args:
        config: OAuth configuration (redirect_url must reach the callback server)
        open_browser: Whether to automatically open browser (default: True)
        timeout: Seconds to wait for callback (default: 300)
        options: Extra authorization parameters (e.g., MODE_DEMO)

    Returns:
        AuthorizationResult with authorization code or error

    Raises:
        OSError: If the callback server cannot bind its port
    """
    server = OAuthCallbackServer(config)

    try:
        server.start()

        auth_url = server.generate_authorization_url(options)

        print("\n" + "=" * 70)
        print("WITHINGS OAUTH AUTHORIZATION")
        print("=" * 70)
        print("Please authorize the application by visiting:")
        print(f"\n  {auth_url}\n")

        if open_browser:
            try:
                webbrowser.open(auth_url)
            except webbrowser.Error as e:
                logger.warning(f"Could not open browser automatically: {e}")
                print("Please copy the URL above and paste it in your browser.")
        else:
            print("Copy the URL above and paste it in your browser.")

        print("Waiting for authorization...")
        print("=" * 70 + "\n")

        result = server.wait_for_callback(timeout)

        if result.success:
            logger.info("Authorization flow completed successfully")
        else:
            logger.error(
                f"Authorization flow failed: {result.error} - {result.error_description}"
            )

        return result

    finally:
        server.stop()
