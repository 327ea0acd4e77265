"""Tests for OAuth token manager module."""

from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest
import requests

from withings.context import Context
from withings.exceptions import Canceled, DecodeError, WithingsAPIError
from withings.oauth.config import ENDPOINT, ENDPOINT_HIPAA, WithingsOAuthConfig
from withings.oauth.credential import Credential
from withings.oauth.exceptions import (
    ReauthorizationRequiredError,
    TokenExchangeError,
    TokenRefreshError,
    TokenRetrieveError,
)
from withings.oauth.token_manager import TokenManager
from withings.oauth.token_source import ReuseTokenSource, TokenAuth


def _token_body(**overrides):
    body = {
        "userid": 363,
        "access_token": "new_access_token",
        "refresh_token": "new_refresh_token",
        "scope": "user.info,user.metrics",
        "expires_in": 10800,
        "token_type": "Bearer",
    }
    body.update(overrides)
    return {"status": 0, "body": body}


class TestTokenManager:
    """Tests for TokenManager class."""

    @pytest.fixture
    def config(self):
        """Create test OAuth config."""
        return WithingsOAuthConfig(
            client_id="test_client_id",
            client_secret="test_client_secret",
            redirect_url="https://example.ngrok.io/oauth2/callback",
        )

    @pytest.fixture
    def session(self):
        return mock.Mock(spec=requests.Session)

    @pytest.fixture
    def manager(self, config, session):
        return TokenManager(config, session=session)

    @pytest.fixture
    def credential(self):
        return Credential(
            access_token="old_access_token",
            refresh_token="old_refresh_token",
            expiry=datetime.now(timezone.utc) - timedelta(minutes=1),
        )

    def test_manager_initialization(self, config):
        """TokenManager creates its own session when none is given."""
        manager = TokenManager(config)

        assert manager.config == config
        assert isinstance(manager.session, requests.Session)

    def test_exchange_success(self, manager, session, make_response):
        """exchange sends an authorization_code grant and maps the body."""
        session.post.return_value = make_response(_token_body())

        before = datetime.now(timezone.utc)
        credential = manager.exchange("auth_code_123")

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == ENDPOINT.token_url
        assert kwargs["data"] == {
            "action": "requesttoken",
            "client_id": "test_client_id",
            "client_secret": "test_client_secret",
            "grant_type": "authorization_code",
            "code": "auth_code_123",
            "redirect_uri": "https://example.ngrok.io/oauth2/callback",
        }
        assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
        assert kwargs["timeout"] == 30.0

        assert credential.access_token == "new_access_token"
        assert credential.refresh_token == "new_refresh_token"
        assert credential.token_type == "Bearer"
        assert before + timedelta(seconds=10800) <= credential.expiry
        assert credential.expiry <= datetime.now(timezone.utc) + timedelta(seconds=10800)
        assert credential.user_id == "363"
        assert credential.scope == "user.info,user.metrics"

    def test_exchange_without_redirect_url(self, session, make_response):
        """redirect_uri is only sent when configured."""
        session.post.return_value = make_response(_token_body())
        manager = TokenManager(WithingsOAuthConfig(client_id="id", client_secret="secret"), session)

        manager.exchange("code")

        assert "redirect_uri" not in session.post.call_args[1]["data"]

    def test_exchange_zero_expires_in_means_no_expiry(self, manager, session, make_response):
        session.post.return_value = make_response(_token_body(expires_in=0))

        assert manager.exchange("code").expiry is None

    def test_exchange_default_token_type(self, manager, session, make_response):
        session.post.return_value = make_response(_token_body(token_type=""))

        assert manager.exchange("code").token_type == "Bearer"

    def test_exchange_envelope_error(self, manager, session, make_response):
        """A non-zero envelope status raises TokenExchangeError."""
        session.post.return_value = make_response(
            {"status": 503, "body": {}, "error": "Invalid Params: invalid code"}
        )

        with pytest.raises(TokenExchangeError) as exc_info:
            manager.exchange("bad_code")

        assert exc_info.value.status == 503
        assert exc_info.value.description == "Invalid Params: invalid code"
        assert exc_info.value.http_status == 200
        assert isinstance(exc_info.value, WithingsAPIError)

    def test_exchange_http_error(self, manager, session, make_response):
        """A non-2xx HTTP response raises a retrieve error with the body."""
        session.post.return_value = make_response(status_code=500, text="Internal Server Error")

        with pytest.raises(TokenRetrieveError) as exc_info:
            manager.exchange("code")

        assert exc_info.value.status == 0
        assert exc_info.value.http_status == 500
        assert exc_info.value.body == "Internal Server Error"

    def test_exchange_missing_access_token(self, manager, session, make_response):
        session.post.return_value = make_response({"status": 0, "body": {"userid": 1}})

        with pytest.raises(DecodeError) as exc_info:
            manager.exchange("code")

        assert exc_info.value.stage == "token"

    def test_exchange_malformed_json(self, manager, session, make_response):
        session.post.return_value = make_response(text="{oops")

        with pytest.raises(DecodeError):
            manager.exchange("code")

    def test_exchange_network_error_propagates(self, manager, session):
        session.post.side_effect = requests.ConnectionError("no route")

        with pytest.raises(requests.ConnectionError):
            manager.exchange("code")

    def test_exchange_cancelled_context(self, manager, session):
        """A done context fails before the request is sent."""
        ctx = Context.background()
        ctx.cancel()

        with pytest.raises(Canceled):
            manager.exchange("code", ctx)

        session.post.assert_not_called()

    def test_exchange_context_error_substituted(self, manager, session):
        ctx = Context.background()

        def cancel_and_fail(*args, **kwargs):
            ctx.cancel()
            raise requests.ConnectionError("reset")

        session.post.side_effect = cancel_and_fail

        with pytest.raises(Canceled):
            manager.exchange("code", ctx)

    def test_exchange_timeout_bounded_by_context(self, manager, session, make_response):
        session.post.return_value = make_response(_token_body())

        manager.exchange("code", Context.with_timeout(2))

        assert 0 < session.post.call_args[1]["timeout"] <= 2

    def test_hipaa_token_endpoint(self, session, make_response):
        session.post.return_value = make_response(_token_body())
        config = WithingsOAuthConfig(client_id="id", client_secret="secret", endpoint=ENDPOINT_HIPAA)

        TokenManager(config, session).exchange("code")

        assert session.post.call_args[0][0] == ENDPOINT_HIPAA.token_url

    def test_refresh_success(self, manager, session, credential, make_response):
        """refresh sends a refresh_token grant only."""
        session.post.return_value = make_response(_token_body())

        refreshed = manager.refresh(credential)

        data = session.post.call_args[1]["data"]
        assert data["grant_type"] == "refresh_token"
        assert data["refresh_token"] == "old_refresh_token"
        assert data["action"] == "requesttoken"
        assert "code" not in data
        assert "redirect_uri" not in data
        assert refreshed.access_token == "new_access_token"
        assert refreshed.refresh_token == "new_refresh_token"
        assert refreshed.valid is True

    def test_refresh_keeps_old_refresh_token_when_omitted(self, manager, session, credential, make_response):
        session.post.return_value = make_response(_token_body(refresh_token=""))

        refreshed = manager.refresh(credential)

        assert refreshed.refresh_token == "old_refresh_token"

    def test_refresh_envelope_error(self, manager, session, credential, make_response):
        session.post.return_value = make_response({"status": 401, "body": [], "error": "invalid refresh_token"})

        with pytest.raises(TokenRefreshError) as exc_info:
            manager.refresh(credential)

        assert exc_info.value.status == 401

    def test_refresh_http_error_has_no_envelope_status(self, manager, session, credential, make_response):
        """The HTTP code is kept apart from the envelope status."""
        session.post.return_value = make_response(status_code=401, text="Unauthorized")

        with pytest.raises(TokenRefreshError) as exc_info:
            manager.refresh(credential)

        assert exc_info.value.status == 0
        assert exc_info.value.http_status == 401

    def test_refresh_without_refresh_token(self, manager, session):
        """No refresh token means no request and a reauthorization error."""
        with pytest.raises(ReauthorizationRequiredError):
            manager.refresh(Credential(access_token="a"))

        session.post.assert_not_called()

    def test_token_source(self, manager, credential):
        callback = mock.Mock()

        source = manager.token_source(credential, on_refresh=callback)

        assert isinstance(source, ReuseTokenSource)
        assert source.credential is credential

    def test_session_attaches_token(self, manager):
        valid = Credential(access_token="live_token")

        session = manager.session(valid)
        prepared = session.prepare_request(requests.Request("POST", ENDPOINT.token_url))

        assert isinstance(session.auth, TokenAuth)
        assert prepared.headers["Authorization"] == "Bearer live_token"
