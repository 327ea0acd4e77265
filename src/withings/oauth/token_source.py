"""
Token sources for Withings OAuth integration.

A token source hands out a valid Credential on demand. ReuseTokenSource
keeps the last issued credential and refreshes it once it expires; refreshes
are single-flight per source, so concurrent callers share one refresh
request instead of racing on a rotating refresh token.

TokenAuth plugs any token source into requests as an auth handler.
"""

import logging
import threading
from typing import TYPE_CHECKING, Callable, List, Optional

import requests
from requests.auth import AuthBase

from ..context import Context
from ..exceptions import ContextError
from .credential import Credential
from .exceptions import ReauthorizationRequiredError

if TYPE_CHECKING:
    from .token_manager import TokenManager

logger = logging.getLogger(__name__)


class StaticTokenSource:
    """Token source that always returns the same credential (never refreshes)."""

    def __init__(self, credential: Credential):
        self._credential = credential

    def token(self, ctx: Optional[Context] = None) -> Credential:
        return self._credential


class _RefreshCall:
    """One in-flight refresh and its outcome."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.credential: Optional[Credential] = None
        self.error: Optional[BaseException] = None
        self._lock = threading.Lock()
        self._waiters: List[threading.Event] = []

    def notify(self, event: threading.Event) -> None:
        """Set event when the call finishes (immediately if it already has)."""
        with self._lock:
            if not self.done.is_set():
                self._waiters.append(event)
                return
        event.set()

    def finish(self) -> None:
        with self._lock:
            self.done.set()
            waiters = list(self._waiters)
        for event in waiters:
            event.set()


class ReuseTokenSource:
    """
    Token source that reuses a credential until it expires.

    When the held credential is expired, the first caller refreshes it and
    every concurrent caller waits for that same refresh and receives its
    result (or its error). A caller whose own context is cancelled or times
    out stops waiting; the refresh itself continues for the others. If the
    refresh is ended by the context of the caller running it, callers whose
    own contexts are still live start a new refresh.

    Thread-safe.
    """

    def __init__(
        self,
        credential: Credential,
        refresher: "TokenManager",
        ctx: Optional[Context] = None,
        on_refresh: Optional[Callable[[Credential], None]] = None,
    ):
        """
        Initialize token source.

        Args:
            credential: Initial credential
            refresher: Object performing the refresh grant (TokenManager)
            ctx: Default context for refreshes
            on_refresh: Called once with each refreshed credential
        """
        self._credential = credential
        self._refresher = refresher
        self._ctx = ctx or Context.background()
        self._on_refresh = on_refresh
        self._lock = threading.Lock()
        self._inflight: Optional[_RefreshCall] = None

    @property
    def credential(self) -> Credential:
        """Most recently issued credential (may be expired)."""
        with self._lock:
            return self._credential

    def token(self, ctx: Optional[Context] = None) -> Credential:
        """
        Get a valid credential, refreshing it if it has expired.

        Args:
            ctx: Context bounding the refresh or the wait for it
                 (defaults to the source's context)

        Returns:
            Valid credential

        Raises:
            ReauthorizationRequiredError: If the credential expired and has no refresh token
            TokenRefreshError: If the refresh was rejected
            Canceled, DeadlineExceeded: If ctx is done before a result is available
        """
        ctx = ctx or self._ctx

        while True:
            with self._lock:
                if self._credential.valid:
                    return self._credential

                if self._inflight is None:
                    if not self._credential.refresh_token:
                        raise ReauthorizationRequiredError(
                            "Credential expired and has no refresh token. "
                            "Run the authorization flow again."
                        )
                    call = self._inflight = _RefreshCall()
                    leader = True
                else:
                    call = self._inflight
                    leader = False
                current = self._credential

            if leader:
                return self._refresh(call, current, ctx)

            logger.debug("Waiting for in-flight token refresh")
            credential = self._wait(call, ctx)
            if credential is not None:
                return credential

            logger.debug("In-flight token refresh was aborted by its caller, retrying")

    def _refresh(self, call: _RefreshCall, current: Credential, ctx: Context) -> Credential:
        try:
            refreshed = self._refresher.refresh(current, ctx)
        except BaseException as e:
            call.error = e
            raise
        else:
            call.credential = refreshed
        finally:
            with self._lock:
                if call.credential is not None:
                    self._credential = call.credential
                self._inflight = None
            call.finish()

        if self._on_refresh is not None:
            self._on_refresh(refreshed)

        return refreshed

    def _wait(self, call: _RefreshCall, ctx: Context) -> Optional[Credential]:
        """
        Wait for an in-flight refresh.

        Returns:
            The refreshed credential, or None if the refresh ended because
            of the leader's context while ctx is still live
        """
        wakeup = threading.Event()
        call.notify(wakeup)
        ctx.notify(wakeup)
        try:
            while True:
                wakeup.clear()
                if call.done.is_set():
                    break
                ctx.raise_if_done()
                wakeup.wait(ctx.remaining())
        finally:
            ctx.stop_notify(wakeup)

        if call.error is not None:
            if isinstance(call.error, ContextError) and ctx.err() is None:
                return None
            raise call.error
        return call.credential


class TokenAuth(AuthBase):
    """Attach the credential of a token source to every request."""

    def __init__(self, source):
        """
        Args:
            source: Object with a token() method returning a Credential
        """
        self.source = source

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = self.source.token().authorization_header()
        return request
