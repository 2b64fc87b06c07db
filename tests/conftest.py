"""Shared pytest fixtures for google-workspace-server tests.

This module provides reusable fixtures for driving the credential
lifecycle without a browser, a disk, or real time.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from workspace_server.auth.errors import AuthorizationFailed, StorageError
from workspace_server.auth.models import CredentialMetadata, CredentialSet, StoredCredentials
from workspace_server.config import AuthConfig

TEST_SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/documents",
]

# Fixed "now" used by the controllable clock
NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Test Doubles
# =============================================================================


class MemoryCredentialStore:
    """In-memory credential store that records every call."""

    def __init__(self, stored: StoredCredentials | None = None) -> None:
        self.path: Path | None = None
        self.stored = stored
        self.saves: list[StoredCredentials] = []
        self.clears = 0
        self.load_error: str | None = None

    def load(self) -> StoredCredentials | None:
        if self.load_error:
            raise StorageError(self.load_error)
        return self.stored

    def save(self, stored: StoredCredentials) -> None:
        self.load_error = None
        self.stored = stored
        self.saves.append(stored)

    def clear(self) -> bool:
        self.clears += 1
        had_credentials = self.stored is not None or self.load_error is not None
        self.stored = None
        self.load_error = None
        return had_credentials


class FakeConsent:
    """Consent receiver that returns a canned code (or raises) without a browser."""

    def __init__(self, code: str = "auth_code_123", error: Exception | None = None) -> None:
        self.code = code
        self.error = error
        self.calls: list[dict] = []
        self.cancelled = False
        self.resets = 0

    def wait_for_code(self, auth_url: str, redirect_uri: str, state: str, timeout: float) -> str:
        self.calls.append(
            {
                "auth_url": auth_url,
                "redirect_uri": redirect_uri,
                "state": state,
                "timeout": timeout,
            }
        )
        if self.cancelled:
            raise AuthorizationFailed("Authorization was cancelled")
        if self.error is not None:
            raise self.error
        return self.code

    def cancel(self) -> None:
        self.cancelled = True

    def reset(self) -> None:
        self.resets += 1
        self.cancelled = False


class FakeClock:
    """Controllable clock returning timezone-aware UTC datetimes."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# =============================================================================
# Credential Fixtures
# =============================================================================


def make_credential_set(
    expiry_date: datetime,
    access_token: str = "test_access_token_abc123",
    refresh_token: str = "test_refresh_token_xyz789",
) -> CredentialSet:
    return CredentialSet(
        access_token=access_token,
        refresh_token=refresh_token,
        expiry_date=expiry_date,
        scopes=list(TEST_SCOPES),
        token_type="Bearer",
    )


@pytest.fixture
def now() -> datetime:
    """The instant the test clock starts at."""
    return NOW


@pytest.fixture
def make_credentials():
    """Factory for CredentialSets with a chosen expiry."""
    return make_credential_set


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at NOW that tests can advance."""
    return FakeClock()


@pytest.fixture
def valid_credentials() -> CredentialSet:
    """Credentials whose access token expires an hour after NOW."""
    return make_credential_set(NOW + timedelta(hours=1))


@pytest.fixture
def expired_credentials() -> CredentialSet:
    """Credentials whose access token expired an hour before NOW."""
    return make_credential_set(NOW - timedelta(hours=1), access_token="expired_access_token")


@pytest.fixture
def valid_stored(valid_credentials: CredentialSet) -> StoredCredentials:
    return StoredCredentials(
        metadata=CredentialMetadata(created_at=NOW - timedelta(days=1)),
        credentials=valid_credentials,
    )


@pytest.fixture
def expired_stored(expired_credentials: CredentialSet) -> StoredCredentials:
    return StoredCredentials(
        metadata=CredentialMetadata(created_at=NOW - timedelta(days=1)),
        credentials=expired_credentials,
    )


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def temp_credentials_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for credential storage tests."""
    creds_dir = tmp_path / ".google-workspace-server"
    creds_dir.mkdir(parents=True, mode=0o700)
    return creds_dir


@pytest.fixture
def temp_credentials_path(temp_credentials_dir: Path) -> Path:
    """Get the path for a temporary credentials.json file."""
    return temp_credentials_dir / "credentials.json"


@pytest.fixture
def file_store(temp_credentials_path: Path):
    """Create a FileCredentialStore backed by a temporary file."""
    from workspace_server.auth.credential_store import FileCredentialStore

    return FileCredentialStore(temp_credentials_path)


@pytest.fixture
def memory_store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def fake_consent() -> FakeConsent:
    return FakeConsent()


@pytest.fixture
def consent_factory():
    """Build FakeConsent receivers with a custom code or error."""
    return FakeConsent


# =============================================================================
# Credential Manager Fixtures
# =============================================================================


@pytest.fixture
def auth_config(temp_credentials_path: Path) -> AuthConfig:
    """Configuration with client credentials and a temporary credentials path."""
    return AuthConfig(
        client_id="test_client_id",
        client_secret="test_client_secret",  # pragma: allowlist secret
        credentials_path=temp_credentials_path,
        scopes=list(TEST_SCOPES),
    )


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the manager's retry backoff."""
    return []


@pytest.fixture
def manager(
    auth_config: AuthConfig,
    memory_store: MemoryCredentialStore,
    fake_consent: FakeConsent,
    clock: FakeClock,
    sleeps: list[float],
):
    """Create a CredentialLifecycleManager wired to test doubles."""
    from workspace_server.auth.manager import CredentialLifecycleManager

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    return CredentialLifecycleManager(
        config=auth_config,
        store=memory_store,
        consent=fake_consent,
        clock=clock,
        sleep=record_sleep,
    )


# =============================================================================
# Mock Google Credentials
# =============================================================================


@pytest.fixture
def mock_google_credentials() -> MagicMock:
    """Create a mock Google OAuth2 Credentials object as returned by an exchange."""
    mock_creds = MagicMock()
    mock_creds.token = "mock_access_token"
    mock_creds.refresh_token = "mock_refresh_token"
    # google-auth reports naive UTC expiry
    mock_creds.expiry = (NOW + timedelta(hours=1)).replace(tzinfo=None)
    mock_creds.granted_scopes = None
    mock_creds.scopes = list(TEST_SCOPES)
    return mock_creds


@pytest.fixture
def consent_denied() -> FakeConsent:
    return FakeConsent(error=AuthorizationFailed("Consent was not granted: access_denied"))


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
