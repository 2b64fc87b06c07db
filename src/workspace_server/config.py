"""Configuration for the credential lifecycle.

Environment Variables:
    GOOGLE_OAUTH_CLIENT_ID: Google OAuth client ID (required for sign-in)
    GOOGLE_OAUTH_CLIENT_SECRET: Google OAuth client secret (required for sign-in)
    GOOGLE_OAUTH_REDIRECT_URI: Redirect URI (default: http://127.0.0.1:8789/callback)
    WORKSPACE_SERVER_CREDENTIALS_PATH: Credential file
        (default: ~/.google-workspace-server/credentials.json)
    WORKSPACE_SERVER_CONSENT_TIMEOUT: Seconds to wait for browser consent (default: 300)
    WORKSPACE_SERVER_REFRESH_MARGIN: Refresh tokens this many seconds before expiry (default: 60)
    WORKSPACE_SERVER_NETWORK_RETRIES: Extra attempts on token endpoint network errors
        (default: 0, max: 3)
"""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

# OAuth configuration defaults
DEFAULT_OAUTH_HOST = "127.0.0.1"
DEFAULT_OAUTH_PORT = 8789
DEFAULT_REDIRECT_URI = f"http://{DEFAULT_OAUTH_HOST}:{DEFAULT_OAUTH_PORT}/callback"
DEFAULT_CREDENTIALS_PATH = Path.home() / ".google-workspace-server" / "credentials.json"
DEFAULT_CONSENT_TIMEOUT = 300.0
DEFAULT_REFRESH_MARGIN = 60.0
MAX_NETWORK_RETRIES = 3

TOKEN_URI = "https://oauth2.googleapis.com/token"
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"

# Google Workspace OAuth scopes
GOOGLE_WORKSPACE_SCOPES = [
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/chat.spaces",
    "https://www.googleapis.com/auth/chat.messages",
    "https://www.googleapis.com/auth/chat.memberships",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/directory.readonly",
    "https://www.googleapis.com/auth/presentations.readonly",
    "https://www.googleapis.com/auth/spreadsheets.readonly",
]


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


class AuthConfig(BaseModel):
    """Settings for OAuth sign-in, storage and refresh.

    Attributes:
        client_id: Google OAuth client ID.
        client_secret: Google OAuth client secret.
        redirect_uri: Loopback redirect URI for the consent callback.
        credentials_path: Where the credential set is persisted.
        scopes: Scopes requested during sign-in.
        consent_timeout: Seconds to wait for the user to finish consent.
        refresh_margin: Refresh access tokens this many seconds early.
        network_retries: Extra attempts for token endpoint network failures.
    """

    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str = DEFAULT_REDIRECT_URI
    credentials_path: Path = DEFAULT_CREDENTIALS_PATH
    scopes: list[str] = Field(default_factory=lambda: list(GOOGLE_WORKSPACE_SCOPES))
    consent_timeout: float = Field(default=DEFAULT_CONSENT_TIMEOUT, gt=0)
    refresh_margin: float = Field(default=DEFAULT_REFRESH_MARGIN, ge=0)
    network_retries: int = Field(default=0, ge=0, le=MAX_NETWORK_RETRIES)

    @property
    def has_client_credentials(self) -> bool:
        """Whether both client ID and secret are configured."""
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AuthConfig":
        """Build configuration from environment variables.

        Args:
            env: Mapping to read from. Defaults to os.environ.

        Returns:
            AuthConfig populated from the environment.

        Raises:
            ValueError: If a numeric variable is malformed or out of range.
        """
        if env is None:
            env = os.environ

        credentials_path = env.get("WORKSPACE_SERVER_CREDENTIALS_PATH")
        retries = _read_int(env, "WORKSPACE_SERVER_NETWORK_RETRIES", 0)
        if retries > MAX_NETWORK_RETRIES:
            raise ValueError(
                f"WORKSPACE_SERVER_NETWORK_RETRIES must be at most {MAX_NETWORK_RETRIES}, "
                f"got {retries}"
            )

        return cls(
            client_id=env.get("GOOGLE_OAUTH_CLIENT_ID") or None,
            client_secret=env.get("GOOGLE_OAUTH_CLIENT_SECRET") or None,
            redirect_uri=env.get("GOOGLE_OAUTH_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            credentials_path=(
                Path(credentials_path).expanduser()
                if credentials_path
                else DEFAULT_CREDENTIALS_PATH
            ),
            consent_timeout=_read_float(
                env, "WORKSPACE_SERVER_CONSENT_TIMEOUT", DEFAULT_CONSENT_TIMEOUT
            ),
            refresh_margin=_read_float(
                env, "WORKSPACE_SERVER_REFRESH_MARGIN", DEFAULT_REFRESH_MARGIN
            ),
            network_retries=retries,
        )
