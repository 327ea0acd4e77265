"""Tests for OAuth coordinator module."""

from unittest import mock

import pytest

from withings.client import WithingsClient
from withings.endpoints import ENDPOINT, ENDPOINT_HIPAA
from withings.oauth import config as oauth_config
from withings.oauth.auth_server import AuthorizationResult
from withings.oauth.config import MODE_DEMO, WithingsOAuthConfig
from withings.oauth.coordinator import OAuthCoordinator
from withings.oauth.credential import Credential
from withings.oauth.exceptions import AuthorizationError, TokenExchangeError
from withings.oauth.token_manager import TokenManager
from withings.oauth.token_source import TokenAuth


class TestOAuthCoordinator:
    """Tests for OAuthCoordinator class."""

    @pytest.fixture
    def config(self):
        return WithingsOAuthConfig(
            client_id="test_client_id",
            client_secret="test_client_secret",
            redirect_url="https://example.ngrok.io/oauth2/callback",
            scopes=["user.metrics"],
        )

    @pytest.fixture
    def token_manager(self):
        return mock.Mock(spec=TokenManager)

    def test_coordinator_initialization(self, config):
        coordinator = OAuthCoordinator(config)

        assert coordinator.config == config
        assert isinstance(coordinator.token_manager, TokenManager)
        assert coordinator.token_manager.config == config

    @mock.patch.dict(
        "os.environ",
        {"WITHINGS_CLIENT_ID": "env_id", "WITHINGS_CLIENT_SECRET": "env_secret"},
        clear=True,
    )
    def test_coordinator_loads_config_from_env(self):
        coordinator = OAuthCoordinator()

        assert coordinator.config.client_id == "env_id"
        assert coordinator.config.client_secret == "env_secret"

    def test_get_authorization_url(self, config):
        coordinator = OAuthCoordinator(config)

        url = coordinator.get_authorization_url("xyz", [MODE_DEMO])

        assert url == config.auth_code_url("xyz", MODE_DEMO)

    @mock.patch("withings.oauth.coordinator.run_authorization_flow")
    def test_authorize_exchanges_code(self, mock_run_flow, config, token_manager):
        """authorize runs the flow and exchanges the returned code."""
        credential = Credential(access_token="a", refresh_token="r")
        mock_run_flow.return_value = AuthorizationResult(success=True, authorization_code="code_123")
        token_manager.exchange.return_value = credential
        coordinator = OAuthCoordinator(config, token_manager)

        result = coordinator.authorize(open_browser=False, options=[MODE_DEMO])

        assert result is credential
        mock_run_flow.assert_called_once_with(config, open_browser=False, timeout=300, options=[MODE_DEMO])
        token_manager.exchange.assert_called_once_with("code_123", None)

    @mock.patch("withings.oauth.coordinator.run_authorization_flow")
    def test_authorize_failure_raises(self, mock_run_flow, config, token_manager):
        mock_run_flow.return_value = AuthorizationResult(
            success=False, error="access_denied", error_description="User denied"
        )
        coordinator = OAuthCoordinator(config, token_manager)

        with pytest.raises(AuthorizationError, match="access_denied"):
            coordinator.authorize()

        token_manager.exchange.assert_not_called()

    @mock.patch("withings.oauth.coordinator.run_authorization_flow")
    def test_authorize_exchange_error_propagates(self, mock_run_flow, config, token_manager):
        mock_run_flow.return_value = AuthorizationResult(success=True, authorization_code="code")
        token_manager.exchange.side_effect = TokenExchangeError(503, "invalid code")
        coordinator = OAuthCoordinator(config, token_manager)

        with pytest.raises(TokenExchangeError):
            coordinator.authorize()

    def test_client_uses_refreshing_session(self, config):
        """client() returns a WithingsClient whose session carries the token."""
        coordinator = OAuthCoordinator(config)
        on_refresh = mock.Mock()

        client = coordinator.client(Credential(access_token="a"), on_refresh=on_refresh, timeout=10)

        assert isinstance(client, WithingsClient)
        assert isinstance(client.session.auth, TokenAuth)
        assert client.base_url == ENDPOINT
        assert client.timeout == 10

    def test_client_follows_hipaa_endpoint(self):
        config = WithingsOAuthConfig(
            client_id="id", client_secret="secret", endpoint=oauth_config.ENDPOINT_HIPAA
        )
        coordinator = OAuthCoordinator(config)

        client = coordinator.client(Credential(access_token="a"))

        assert client.base_url == ENDPOINT_HIPAA
