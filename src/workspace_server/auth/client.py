"""Authenticated client handle returned by the credential manager."""

import logging
from typing import TYPE_CHECKING, Any

import httpx
from google.oauth2.credentials import Credentials

from workspace_server.auth.models import CredentialSet
from workspace_server.config import TOKEN_URI

if TYPE_CHECKING:
    from workspace_server.auth.manager import CredentialLifecycleManager

logger = logging.getLogger(__name__)


class AuthenticatedClient:
    """Client bound to an access token that was valid when it was handed out.

    Use ``request()`` for direct REST calls, or pass ``credentials`` to
    ``googleapiclient.discovery.build``.

    Attributes:
        credential_set: The credentials this handle is bound to.
    """

    def __init__(
        self,
        credential_set: CredentialSet,
        http_client: httpx.AsyncClient,
        manager: "CredentialLifecycleManager",
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> None:
        self.credential_set = credential_set
        self._http = http_client
        self._manager = manager
        self._client_id = client_id
        self._client_secret = client_secret

    @property
    def access_token(self) -> str:
        return self.credential_set.access_token

    @property
    def headers(self) -> dict[str, str]:
        """Authorization headers for Google REST APIs."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    @property
    def credentials(self) -> Credentials:
        """google-auth credentials carrying the same tokens."""
        expiry = self.credential_set.expiry_date.replace(tzinfo=None)
        return Credentials(  # nosec B106 - token_uri is public Google OAuth endpoint
            token=self.credential_set.access_token,
            refresh_token=self.credential_set.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self._client_id,
            client_secret=self._client_secret,
            scopes=self.credential_set.scopes,
            expiry=expiry,
        )

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make an authenticated HTTP request to a Google API.

        A 401 response means the token was revoked or the clock is skewed;
        the token is force-refreshed once and the request retried once.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            **kwargs: Passed through to httpx (params, json, content, ...).

        Returns:
            The successful httpx.Response.

        Raises:
            httpx.HTTPStatusError: If the request fails.
            RefreshFailed: If the forced refresh is rejected.
        """
        extra_headers = kwargs.pop("headers", None) or {}

        response = await self._http.request(
            method, url, headers={**self.headers, **extra_headers}, **kwargs
        )
        if response.status_code == 401:
            logger.info("Google API returned 401, forcing token refresh")
            refreshed = await self._manager.refresh_token()
            self.credential_set = refreshed.credential_set
            response = await self._http.request(
                method, url, headers={**self.headers, **extra_headers}, **kwargs
            )

        response.raise_for_status()
        return response

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET a URL and decode the JSON body."""
        response = await self.request("GET", url, params=params)
        result: dict[str, Any] = response.json()
        return result
