"""Browser consent with a loopback callback receiver.

Opens the Google consent page and waits for the single redirect carrying
the authorization code. Unlike a bare ``handle_request()`` call, the wait
is bounded by an explicit timeout and can be cancelled from another thread.
"""

import logging
import threading
import time
import webbrowser
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Protocol
from urllib.parse import parse_qs, urlparse

from workspace_server.auth.errors import AuthorizationFailed
from workspace_server.config import DEFAULT_OAUTH_HOST, DEFAULT_OAUTH_PORT

logger = logging.getLogger(__name__)

_SUCCESS_PAGE = (
    b"<html><body><h1>Authentication Successful!</h1>"
    b"<p>You can close this window and return to your agent.</p>"
    b"</body></html>"
)
_FAILURE_PAGE = (
    b"<html><body><h1>Authentication Failed</h1>"
    b"<p>Please close this window and try again.</p></body></html>"
)


class ConsentReceiver(Protocol):
    """Opens a consent URL and waits for one authorization callback."""

    def wait_for_code(
        self, auth_url: str, redirect_uri: str, state: str, timeout: float
    ) -> str:
        """Block until the authorization code arrives.

        Raises:
            AuthorizationFailed: On denial, mismatch, timeout or cancellation.
        """
        ...

    def cancel(self) -> None:
        """Abort a wait in progress."""
        ...

    def reset(self) -> None:
        """Forget earlier cancellations before a new wait is started."""
        ...


class _CallbackResult:
    """Outcome of the redirect, filled in by the request handler."""

    def __init__(self) -> None:
        self.received = False
        self.code: str | None = None
        self.state: str | None = None
        self.error: str | None = None


def _make_handler(
    callback_path: str, result: _CallbackResult, read_timeout: float
) -> type[BaseHTTPRequestHandler]:
    class OAuthCallbackHandler(BaseHTTPRequestHandler):
        """HTTP handler for the OAuth redirect."""

        # Idle connections (browser preconnects) must not stall the wait loop
        timeout = read_timeout

        def log_request(self, code="-", size="-") -> None:
            # The query string carries the authorization code
            logger.debug(f"consent callback: {self.command} {urlparse(self.path).path} {code}")

        def log_message(self, format: str, *args) -> None:
            logger.debug("consent callback: " + format, *args)

        def _respond(self, status: int, body: bytes) -> None:
            self.send_response(status)
            self.send_header("Content-type", "text/html")
            self.end_headers()
            self.wfile.write(body)

        def do_GET(self) -> None:
            request_parsed = urlparse(self.path)

            # Browsers also ask for /favicon.ico and the like
            if request_parsed.path != callback_path:
                self.send_response(404)
                self.end_headers()
                self.wfile.write(b"Not Found")
                return

            query_params = parse_qs(request_parsed.query)
            result.received = True
            result.state = query_params.get("state", [None])[0]

            if "error" in query_params:
                result.error = query_params["error"][0]
                self._respond(400, _FAILURE_PAGE)
                return

            if "code" in query_params:
                result.code = query_params["code"][0]
                self._respond(200, _SUCCESS_PAGE)
            else:
                self._respond(400, _FAILURE_PAGE)

    return OAuthCallbackHandler


class LocalServerConsent:
    """Consent receiver backed by a one-shot loopback HTTP server.

    Attributes:
        opener: Callable that opens a URL in the user's browser.
        poll_interval: How often the wait loop checks for timeout/cancel, and
            how long a connection may sit idle before it is dropped.
    """

    def __init__(
        self,
        opener: Callable[[str], bool] = webbrowser.open,
        poll_interval: float = 1.0,
    ) -> None:
        self.opener = opener
        self.poll_interval = poll_interval
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop waiting for the callback; the pending wait raises AuthorizationFailed."""
        self._cancelled.set()

    def reset(self) -> None:
        """Clear a previous cancel() so the next wait can run."""
        self._cancelled.clear()

    def wait_for_code(
        self, auth_url: str, redirect_uri: str, state: str, timeout: float
    ) -> str:
        """Open the consent page and wait for the redirect.

        Args:
            auth_url: Google consent URL.
            redirect_uri: Loopback URI registered for the OAuth client.
            state: Anti-CSRF value the callback must echo back.
            timeout: Maximum seconds to wait for the user.

        Returns:
            The authorization code.

        Raises:
            AuthorizationFailed: If consent is denied, the state does not match,
                no code is returned, the timeout elapses, or the wait is cancelled.
        """
        if self._cancelled.is_set():
            raise AuthorizationFailed("Authorization was cancelled")

        parsed = urlparse(redirect_uri)
        host = parsed.hostname or DEFAULT_OAUTH_HOST
        port = parsed.port or DEFAULT_OAUTH_PORT
        callback_path = parsed.path or "/callback"

        result = _CallbackResult()
        try:
            server = HTTPServer(
                (host, port), _make_handler(callback_path, result, self.poll_interval)
            )
        except OSError as e:
            raise AuthorizationFailed(
                f"Cannot listen for the OAuth callback on {host}:{port}: {e}"
            ) from e

        try:
            server.timeout = self.poll_interval
            logger.info("Opening browser for Google authorization...")
            logger.info(f"If the browser doesn't open, visit: {auth_url}")
            if not self.opener(auth_url):
                logger.warning("Could not open a browser; open the URL above manually")

            deadline = time.monotonic() + timeout
            while not result.received:
                if self._cancelled.is_set():
                    raise AuthorizationFailed("Authorization was cancelled")
                if time.monotonic() >= deadline:
                    raise AuthorizationFailed(
                        f"Timed out after {timeout:.0f}s waiting for Google consent"
                    )
                server.handle_request()
        finally:
            server.server_close()

        if result.error:
            raise AuthorizationFailed(f"Consent was not granted: {result.error}")
        if result.state != state:
            raise AuthorizationFailed("OAuth state mismatch in callback; possible CSRF attempt")
        if not result.code:
            raise AuthorizationFailed("No authorization code received from Google")
        return result.code
