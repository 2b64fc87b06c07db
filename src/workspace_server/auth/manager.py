"""Credential lifecycle manager for a single Google account.

This module owns obtaining, persisting, validating, and refreshing the
OAuth2 credentials every Workspace tool depends on. Callers ask for an
authenticated client; the manager decides whether that needs nothing,
a refresh-token exchange, or a full interactive sign-in.

States:
    unauthenticated: nothing stored (or the stored file is unreadable)
    valid: stored, access token outside the refresh margin
    expired: stored, access token inside the refresh margin or past expiry

A rejected refresh clears the stored credentials, so the manager drops
back to ``unauthenticated`` and the next request starts a new sign-in.
"""

import asyncio
import logging
import os
import random
import secrets
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from pathlib import Path

import httpx
import requests
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from workspace_server.auth.client import AuthenticatedClient
from workspace_server.auth.consent import ConsentReceiver, LocalServerConsent
from workspace_server.auth.credential_store import CredentialStore, FileCredentialStore
from workspace_server.auth.errors import (
    AuthorizationFailed,
    RefreshFailed,
    StorageError,
    TransientNetworkError,
)
from workspace_server.auth.models import (
    AuthState,
    CredentialMetadata,
    CredentialSet,
    CredentialStatus,
    StoredCredentials,
    ensure_utc,
    utc_now,
)
from workspace_server.config import AUTH_URI, TOKEN_URI, AuthConfig

logger = logging.getLogger(__name__)

# Backoff for token endpoint network failures
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 8.0

MISSING_CLIENT_HINT = (
    "Set GOOGLE_OAUTH_CLIENT_ID and GOOGLE_OAUTH_CLIENT_SECRET, then try again. "
    "Stored credentials were kept."
)


def _granted_scopes(credentials: Credentials, fallback: list[str]) -> list[str]:
    """Scopes the token endpoint reported, or the fallback when it reported none."""
    granted = getattr(credentials, "granted_scopes", None)
    if isinstance(granted, str):
        granted = granted.split()
    if isinstance(granted, (list, tuple)) and granted:
        return list(granted)
    return list(fallback)


class CredentialLifecycleManager:
    """Hands out authenticated clients for one Google account.

    Store, consent receiver and clock are injected so the lifecycle can be
    driven without a browser, a disk, or real time.

    Attributes:
        config: OAuth and refresh settings.
        store: Persistence for the credential set.
        consent: Receiver that runs browser consent and returns a code.

    Example:
        ```python
        manager = CredentialLifecycleManager()

        client = await manager.get_authenticated_client()
        profile = await client.get_json(
            "https://people.googleapis.com/v1/people/me",
            params={"personFields": "names"},
        )
        ```
    """

    def __init__(
        self,
        config: AuthConfig | None = None,
        store: CredentialStore | None = None,
        consent: ConsentReceiver | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the manager.

        Args:
            config: Settings. Read from the environment if not provided.
            store: Credential store. A file store at config.credentials_path by default.
            consent: Consent receiver. A loopback HTTP receiver by default.
            clock: Returns the current UTC time. Defaults to the system clock.
            sleep: Awaitable sleep used between network retries.
        """
        self.config = config or AuthConfig.from_env()
        self.store = store or FileCredentialStore(self.config.credentials_path)
        self.consent = consent or LocalServerConsent()
        self._clock = clock or utc_now
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._http_client: httpx.AsyncClient | None = None

    @property
    def credentials_path(self) -> Path | None:
        """Where the credential set is persisted, if file-backed."""
        return self.store.path

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _client_for(self, credential_set: CredentialSet) -> AuthenticatedClient:
        return AuthenticatedClient(
            credential_set,
            self._get_http_client(),
            self,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
        )

    def _load(self) -> StoredCredentials | None:
        """Load stored credentials, treating unreadable storage as absent."""
        try:
            return self.store.load()
        except StorageError as e:
            logger.warning(f"Ignoring unreadable credentials; sign-in required: {e}")
            return None

    # ------------------------------------------------------------------
    # Public lifecycle operations
    # ------------------------------------------------------------------

    async def get_authenticated_client(self) -> AuthenticatedClient:
        """Return a client bound to a currently valid access token.

        Signs in interactively when nothing is stored, refreshes when the
        access token is inside the refresh margin, and otherwise returns
        immediately without any network call.

        Returns:
            AuthenticatedClient for Workspace API calls.

        Raises:
            AuthorizationFailed: If interactive sign-in does not complete.
            RefreshFailed: If the refresh token is rejected.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        async with self._lock:
            stored = self._load()
            if stored is None:
                logger.info("No stored credentials, starting interactive authorization")
                stored = await self._authorize(self.config.scopes)
            elif stored.credentials.is_expired(self._clock(), self.config.refresh_margin):
                logger.info("Access token expired or expiring soon, refreshing")
                stored = await self._refresh(stored)
            return self._client_for(stored.credentials)

    async def refresh_token(self) -> AuthenticatedClient:
        """Force a refresh-token exchange regardless of expiry.

        Used to recover when an API call reports an authorization error
        despite an unexpired token (clock skew, server-side revocation).

        Returns:
            AuthenticatedClient bound to the new access token.

        Raises:
            RefreshFailed: If nothing is stored or the refresh token is rejected.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        async with self._lock:
            stored = self._load()
            if stored is None:
                raise RefreshFailed("No stored credentials to refresh")
            stored = await self._refresh(stored)
            return self._client_for(stored.credentials)

    async def authorize(self, scopes: list[str] | None = None) -> CredentialSet:
        """Run the interactive sign-in unconditionally and persist the result.

        Args:
            scopes: Scopes to request. Uses the configured scopes if not specified.

        Returns:
            The newly stored CredentialSet.

        Raises:
            AuthorizationFailed: If sign-in does not complete.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        async with self._lock:
            stored = await self._authorize(scopes or self.config.scopes)
            return stored.credentials

    def clear_auth(self) -> bool:
        """Delete persisted credentials so the next request signs in again.

        Returns:
            True if credentials were deleted, False if none were stored.
        """
        removed = self.store.clear()
        if removed:
            logger.info("Authentication credentials cleared")
        else:
            logger.debug("clear_auth: no stored credentials")
        return removed

    def expire_access_token(self) -> bool:
        """Mark the stored access token as expired one second ago.

        The next request will take the refresh path. Useful for checking
        refresh end to end without waiting an hour.

        Returns:
            False if no credentials are stored.
        """
        stored = self._load()
        if stored is None:
            return False
        expired = stored.credentials.model_copy(
            update={"expiry_date": self._clock() - timedelta(seconds=1)}
        )
        self.store.save(stored.model_copy(update={"credentials": expired}))
        logger.info("Access token marked as expired")
        return True

    def get_status(self) -> CredentialStatus:
        """Snapshot of the stored credentials. Makes no network calls."""
        try:
            stored = self.store.load()
        except StorageError as e:
            return CredentialStatus(state=AuthState.UNAUTHENTICATED, storage_error=str(e))

        if stored is None:
            return CredentialStatus(state=AuthState.UNAUTHENTICATED)

        credential_set = stored.credentials
        now = self._clock()
        expired = credential_set.is_expired(now, self.config.refresh_margin)
        remaining = int((credential_set.expiry_date - now).total_seconds())
        return CredentialStatus(
            state=AuthState.EXPIRED if expired else AuthState.VALID,
            has_access_token=bool(credential_set.access_token),
            has_refresh_token=bool(credential_set.refresh_token),
            expiry_date=credential_set.expiry_date,
            seconds_remaining=max(remaining, 0),
            scopes=list(credential_set.scopes),
        )

    def get_state(self) -> AuthState:
        """Current lifecycle state."""
        return self.get_status().state

    # ------------------------------------------------------------------
    # Interactive authorization
    # ------------------------------------------------------------------

    async def _authorize(self, scopes: list[str]) -> StoredCredentials:
        if not self.config.has_client_credentials:
            raise AuthorizationFailed(
                "Client ID and secret required. "
                "Set GOOGLE_OAUTH_CLIENT_ID and GOOGLE_OAUTH_CLIENT_SECRET "
                "environment variables."
            )

        redirect_uri = self.config.redirect_uri
        client_config = {
            "web": {
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [redirect_uri],
            }
        }
        flow = Flow.from_client_config(client_config, scopes=scopes, redirect_uri=redirect_uri)

        # Generate state for CSRF protection
        state = secrets.token_urlsafe(32)
        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )

        # Consent and code exchange both block, so run them in the executor
        loop = asyncio.get_event_loop()
        self.consent.reset()
        try:
            code = await loop.run_in_executor(
                None,
                self.consent.wait_for_code,
                auth_url,
                redirect_uri,
                state,
                self.config.consent_timeout,
            )
        except asyncio.CancelledError:
            self.consent.cancel()
            raise

        credentials = await loop.run_in_executor(None, self._exchange_code, flow, code)

        if not credentials.refresh_token:
            raise AuthorizationFailed(
                "Google did not return a refresh token. Remove this app at "
                "https://myaccount.google.com/permissions and sign in again."
            )

        stored = StoredCredentials(
            metadata=CredentialMetadata(created_at=self._clock()),
            credentials=self._credentials_to_set(credentials, scopes),
        )
        self.store.save(stored)
        logger.info("Authorization complete, credentials stored")
        return stored

    def _exchange_code(self, flow: Flow, code: str) -> Credentials:
        """Exchange the authorization code for tokens (blocking)."""
        # Granular consent may grant a subset of the requested scopes
        os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
        try:
            flow.fetch_token(code=code)
        except OAuth2Error as e:
            raise AuthorizationFailed(
                f"Authorization code exchange was rejected: {e.description or e.error}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransientNetworkError(f"Could not reach the Google token endpoint: {e}") from e
        return flow.credentials

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _credentials_to_set(
        self,
        credentials: Credentials,
        fallback_scopes: list[str],
        previous_refresh_token: str | None = None,
    ) -> CredentialSet:
        """Convert google-auth Credentials to a CredentialSet.

        Args:
            credentials: Google OAuth2 credentials after a token exchange.
            fallback_scopes: Scopes to record when the response lists none.
            previous_refresh_token: Kept when the server did not rotate it.
        """
        if credentials.expiry:
            expiry_date = ensure_utc(credentials.expiry)
        else:
            # Default to 1 hour expiration
            expiry_date = self._clock() + timedelta(hours=1)

        return CredentialSet(  # nosec B106 - "Bearer" is OAuth token type, not a password
            access_token=credentials.token,
            refresh_token=credentials.refresh_token or previous_refresh_token,
            expiry_date=expiry_date,
            scopes=_granted_scopes(credentials, fallback_scopes),
            token_type="Bearer",
        )

    def _build_google_credentials(self, credential_set: CredentialSet) -> Credentials:
        """Convert a CredentialSet to google-auth Credentials able to refresh."""
        return Credentials(  # nosec B106 - token_uri is public Google OAuth endpoint
            token=credential_set.access_token,
            refresh_token=credential_set.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            scopes=credential_set.scopes,
        )

    async def _refresh(self, stored: StoredCredentials) -> StoredCredentials:
        if not self.config.has_client_credentials:
            # Configuration problem, not a rejected token: keep what is stored
            raise RefreshFailed(
                "Client ID and secret required to refresh the access token.",
                hint=MISSING_CLIENT_HINT,
                reauthorization_required=False,
            )

        credentials = self._build_google_credentials(stored.credentials)
        try:
            await self._with_retries(lambda: self._exchange_refresh_token(credentials))
        except RefreshFailed:
            self.store.clear()
            logger.warning("Refresh token rejected; stored credentials cleared")
            raise

        refreshed = StoredCredentials(
            version=stored.version,
            metadata=stored.metadata.model_copy(update={"last_refreshed": self._clock()}),
            credentials=self._credentials_to_set(
                credentials,
                stored.credentials.scopes,
                previous_refresh_token=stored.credentials.refresh_token,
            ),
        )
        self.store.save(refreshed)
        logger.info(
            f"Access token refreshed, valid until {refreshed.credentials.expiry_date.isoformat()}"
        )
        return refreshed

    async def _exchange_refresh_token(self, credentials: Credentials) -> None:
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, credentials.refresh, Request())
        except RefreshError as e:
            if getattr(e, "retryable", False):
                raise TransientNetworkError(f"Token endpoint temporarily unavailable: {e}") from e
            raise RefreshFailed(f"Refresh token was rejected by Google: {e}") from e
        except TransportError as e:
            raise TransientNetworkError(f"Could not reach the Google token endpoint: {e}") from e

    async def _with_retries(self, operation: Callable[[], Awaitable[None]]) -> None:
        """Run a token endpoint call, retrying only TransientNetworkError."""
        attempts = self.config.network_retries + 1
        for attempt in range(attempts):
            try:
                await operation()
                return
            except TransientNetworkError as e:
                if attempt == attempts - 1:
                    raise
                delay = min(RETRY_BASE_DELAY * (2**attempt), RETRY_MAX_DELAY)
                delay += random.uniform(0, delay * 0.1)  # nosec B311 - jitter, not crypto
                logger.warning(
                    f"Token endpoint unreachable (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                await self._sleep(delay)
