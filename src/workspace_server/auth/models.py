"""Data models for persisted OAuth credentials.

This module defines Pydantic models for the single credential set the
server holds, the on-disk envelope around it, and the status snapshot
used for reporting.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

DEFAULT_REFRESH_MARGIN_SECONDS = 60


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AuthState(str, Enum):
    """Lifecycle state of the persisted credentials."""

    UNAUTHENTICATED = "unauthenticated"
    VALID = "valid"
    EXPIRED = "expired"


class CredentialSet(BaseModel):
    """OAuth credentials for the authorized Google account.

    Attributes:
        access_token: Short-lived bearer token.
        refresh_token: Long-lived token used to mint new access tokens.
        expiry_date: When the access token stops being valid (UTC).
        scopes: Granted authorization scopes.
        token_type: Token type, always "Bearer" for Google.
    """

    access_token: str = Field(..., description="Short-lived bearer token")
    refresh_token: str = Field(..., min_length=1, description="Long-lived refresh token")
    expiry_date: datetime = Field(..., description="Access token expiry (UTC)")
    scopes: list[str] = Field(default_factory=list, description="Granted scopes")
    token_type: str = Field(default="Bearer", description="OAuth token type")

    @field_validator("expiry_date")
    @classmethod
    def _expiry_is_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def is_expired(
        self,
        now: datetime | None = None,
        buffer_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
    ) -> bool:
        """Check whether the access token is expired or about to expire.

        Args:
            now: Reference time. Defaults to the current UTC time.
            buffer_seconds: Safety margin; tokens expiring within this many
                seconds count as expired so they are refreshed proactively.

        Returns:
            True if the token should be refreshed before use.
        """
        reference = ensure_utc(now) if now is not None else utc_now()
        return reference >= self.expiry_date - timedelta(seconds=buffer_seconds)


class CredentialMetadata(BaseModel):
    """Bookkeeping stored alongside the credentials."""

    provider: str = Field(default="google", description="OAuth provider")
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the credentials were first authorized",
    )
    last_refreshed: datetime | None = Field(
        default=None, description="When the access token was last refreshed"
    )


class StoredCredentials(BaseModel):
    """Versioned on-disk envelope for the credential set.

    Stored in ~/.google-workspace-server/credentials.json by default.
    """

    version: int = Field(default=1, description="Storage format version")
    metadata: CredentialMetadata = Field(default_factory=CredentialMetadata)
    credentials: CredentialSet


class CredentialStatus(BaseModel):
    """Read-only snapshot of the credential state for status reporting."""

    state: AuthState
    has_access_token: bool = False
    has_refresh_token: bool = False
    expiry_date: datetime | None = None
    seconds_remaining: int | None = None
    scopes: list[str] = Field(default_factory=list)
    storage_error: str | None = None
