"""
Withings API client.

This module provides the HTTP transport shared by every Withings resource
service. It handles:

- Resolving relative resource paths against the base endpoint
- Identification headers
- Context-bound request execution
- Envelope decoding and API status errors

Authentication is not handled here. Pass a requests.Session that attaches
credentials, such as the one returned by TokenManager.session(), so that
authenticated and plain calls share one execution path.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin, urlparse

import requests

from .context import Context
from .endpoints import ENDPOINT, ENDPOINT_HIPAA
from .envelope import decode_metadata, decode_payload, parse_document
from .exceptions import ConfigurationError, DecodeError, WithingsAPIError
from .measure import MeasureService

logger = logging.getLogger(__name__)

USER_AGENT = "python-withings"


@dataclass
class Response:
    """
    A Withings API response.

    Wraps the HTTP response and exposes the envelope metadata.

    Attributes:
        http_response: Underlying requests response
        status: Withings API status code (0 = success)
        more: Whether another page of results is available
        offset: Offset to request the next page with
        data: Decoded payload (None when no result type was given)
    """

    http_response: requests.Response
    status: int = 0
    more: bool = False
    offset: int = 0
    data: Any = None


def validate_base_url(base_url: str) -> None:
    """
    Check that a base endpoint can resolve relative paths.

    Raises:
        ConfigurationError: If the URL is not absolute http(s) or lacks
                            a trailing slash
    """
    try:
        parsed = urlparse(base_url)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid base URL {base_url!r}: {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Base URL must be an absolute http(s) URL, got {base_url!r}")

    if not parsed.path.endswith("/"):
        raise ConfigurationError(
            f"Base URL must have a trailing slash, but {base_url!r} does not"
        )


class WithingsClient:
    """
    Client for the Withings API.

    The client holds no per-call state and can be shared between threads.
    Resource services are created once and reuse the client.

    Example:
        from withings import WithingsClient
        from withings.oauth import TokenManager, WithingsOAuthConfig

        manager = TokenManager(WithingsOAuthConfig.from_env())
        client = WithingsClient(manager.session(credential))

        measures = client.measure.getmeas([MeasureType.WEIGHT], Category.REAL)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = ENDPOINT,
        user_agent: str = USER_AGENT,
        timeout: float = 30.0,
    ):
        """
        Initialize Withings client.

        Args:
            session: HTTP session used to execute requests
                     (plain requests.Session if not provided)
            base_url: Base endpoint, must end with a slash
            user_agent: User-Agent header sent with every request
            timeout: Request timeout in seconds

        Raises:
            ConfigurationError: If base_url is malformed
        """
        validate_base_url(base_url)

        self.session = session or requests.Session()
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout

        self.measure = MeasureService(self)

        logger.info(f"WithingsClient initialized for {base_url}")

    @classmethod
    def hipaa(cls, session: Optional[requests.Session] = None, **kwargs: Any) -> "WithingsClient":
        """Create a client for the HIPAA endpoint."""
        return cls(session, base_url=ENDPOINT_HIPAA, **kwargs)

    def _get_full_url(self, url: str) -> str:
        """
        Resolve a resource path against the base URL.

        Args:
            url: Relative path without a leading slash (e.g., "v2/measure"),
                 or an absolute URL

        Returns:
            Absolute request URL
        """
        # base_url is assignable, so check it again before each request
        validate_base_url(self.base_url)
        return urljoin(self.base_url, url)

    def new_request(
        self,
        method: str,
        url: str,
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.PreparedRequest:
        """
        Create an API request.

        The request is prepared through the session, so session-level
        authentication is applied here.

        Args:
            method: HTTP method
            url: Relative resource path or absolute URL
            data: Form fields for the request body
            headers: Additional request headers

        Returns:
            Prepared request

        Raises:
            ConfigurationError: If the base URL is malformed
        """
        request_headers = dict(headers or {})
        if self.user_agent:
            request_headers["User-Agent"] = self.user_agent

        request = requests.Request(
            method, self._get_full_url(url), data=data, headers=request_headers
        )
        return self.session.prepare_request(request)

    def bare_do(
        self, request: requests.PreparedRequest, ctx: Optional[Context] = None
    ) -> requests.Response:
        """
        Send a request without decoding the response.

        If the request fails and the context is done, the context error
        is raised instead of the network error.

        Args:
            request: Prepared request
            ctx: Cancellation context

        Returns:
            HTTP response

        Raises:
            Canceled: If the context was cancelled
            DeadlineExceeded: If the context deadline passed
            requests.RequestException: For other network failures
        """
        ctx = ctx or Context.background()
        ctx.raise_if_done()

        logger.debug(f"{request.method} {request.url}")

        try:
            response = self.session.send(request, timeout=ctx.timeout(self.timeout))
        except requests.RequestException as e:
            error = ctx.err()
            if error is not None:
                logger.warning(f"Request to {request.url} aborted: {error}")
                raise error from e
            logger.error(f"Network error for {request.url}: {e}")
            raise

        logger.debug(f"Response: {response.status_code}")
        return response

    def do(
        self,
        request: requests.PreparedRequest,
        result_type: Any = None,
        ctx: Optional[Context] = None,
    ) -> Response:
        """
        Send a request and decode the response envelope.

        Args:
            request: Prepared request
            result_type: Type to decode the response document into
                         (None to skip payload decoding)
            ctx: Cancellation context

        Returns:
            Response with envelope metadata and decoded data

        Raises:
            WithingsAPIError: If the envelope status is non-zero
            DecodeError: If the body cannot be decoded
            requests.HTTPError: If a non-2xx response has no envelope
        """
        http_response = self.bare_do(request, ctx)

        try:
            document = parse_document(http_response.content)
        except DecodeError:
            if not http_response.ok:
                http_response.raise_for_status()
            raise
        finally:
            http_response.close()

        envelope = decode_metadata(document)
        response = Response(
            http_response=http_response,
            status=envelope.status,
            more=envelope.more,
            offset=envelope.offset,
        )

        if not envelope.ok:
            logger.error(
                f"API error for {request.url}: status {envelope.status} "
                f"{envelope.error_message}".rstrip()
            )
            raise WithingsAPIError(envelope.status, envelope.error_message, response)

        response.data = decode_payload(document, result_type)
        return response

    def post_form(
        self,
        url: str,
        form: Mapping[str, Any],
        result_type: Any = None,
        ctx: Optional[Context] = None,
    ) -> Response:
        """
        Send a form-encoded POST request and decode the response.

        Args:
            url: Relative resource path or absolute URL
            form: Form fields
            result_type: Type to decode the response document into
            ctx: Cancellation context

        Returns:
            Decoded Response
        """
        request = self.new_request(
            "POST",
            url,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return self.do(request, result_type, ctx=ctx)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
        logger.info("WithingsClient closed")

    def __enter__(self) -> "WithingsClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - ensures cleanup."""
        self.close()
