"""Persistence for the single OAuth credential set.

Storage Location: ~/.google-workspace-server/credentials.json
(override with WORKSPACE_SERVER_CREDENTIALS_PATH)

The file is written atomically (temporary file + rename) so a process
killed mid-write never leaves a truncated credential file behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from workspace_server.auth.errors import StorageError
from workspace_server.auth.models import StoredCredentials
from workspace_server.config import DEFAULT_CREDENTIALS_PATH

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Load/save/clear interface the credential manager depends on."""

    path: Path | None

    def load(self) -> StoredCredentials | None:
        """Return the stored credentials, or None when nothing is persisted.

        Raises:
            StorageError: If persisted data exists but cannot be read.
        """
        ...

    def save(self, stored: StoredCredentials) -> None:
        """Persist the credentials, replacing any previous set."""
        ...

    def clear(self) -> bool:
        """Delete persisted credentials. Returns False if there were none."""
        ...


class FileCredentialStore:
    """JSON file storage for the credential set.

    Attributes:
        path: Path to the credentials file.

    Example:
        ```python
        store = FileCredentialStore()

        stored = store.load()
        if stored is None:
            print("Not authenticated")
        else:
            print(f"Token expires at: {stored.credentials.expiry_date}")
        ```
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize credential storage.

        Args:
            path: Custom path for the credentials file.
                Defaults to ~/.google-workspace-server/credentials.json
        """
        self.path = path or DEFAULT_CREDENTIALS_PATH
        self._ensure_credentials_dir()

    def _ensure_credentials_dir(self) -> None:
        """Create credentials directory with secure permissions if needed.

        An existing directory is only tightened when it is the dedicated
        default one; a user-chosen location such as $HOME keeps its mode
        and the credentials file itself stays 0600.
        """
        creds_dir = self.path.parent
        if not creds_dir.exists():
            creds_dir.mkdir(parents=True, mode=0o700)
        elif creds_dir == DEFAULT_CREDENTIALS_PATH.parent:
            # Ensure directory has correct permissions
            creds_dir.chmod(0o700)

    def load(self) -> StoredCredentials | None:
        """Load the credential set from disk.

        Returns:
            StoredCredentials, or None if the file does not exist.

        Raises:
            StorageError: If the file is unreadable, not JSON, or fails validation.
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read credentials file {self.path}: {e}") from e

        try:
            return StoredCredentials.model_validate(data)
        except ValidationError as e:
            raise StorageError(
                f"Credentials file {self.path} is corrupt "
                f"({e.error_count()} validation error(s))"
            ) from e

    def save(self, stored: StoredCredentials) -> None:
        """Write the credential set atomically with owner-only permissions.

        Args:
            stored: Credentials envelope to persist.
        """
        self._ensure_credentials_dir()

        payload = stored.model_dump_json(indent=2)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            # Set file permissions to owner read/write only (600)
            tmp_path.chmod(0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Saved credentials to {self.path}")

    def clear(self) -> bool:
        """Delete the credentials file.

        Returns:
            True if a file was deleted, False if none existed.
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Deleted credentials file {self.path}")
        return True
