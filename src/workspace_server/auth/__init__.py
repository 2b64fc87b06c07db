"""OAuth credential lifecycle for Google Workspace.

This package owns the single Google account's credentials: interactive
sign-in, persistence, proactive refresh, and clearing.

Quick Start:
    ```python
    from workspace_server.auth import CredentialLifecycleManager

    manager = CredentialLifecycleManager()

    # Signs in on first use, refreshes when needed
    client = await manager.get_authenticated_client()
    response = await client.request("GET", "https://www.googleapis.com/drive/v3/files")
    ```
"""

from workspace_server.auth.client import AuthenticatedClient
from workspace_server.auth.consent import ConsentReceiver, LocalServerConsent
from workspace_server.auth.credential_store import CredentialStore, FileCredentialStore
from workspace_server.auth.errors import (
    AuthError,
    AuthorizationFailed,
    RefreshFailed,
    StorageError,
    TransientNetworkError,
)
from workspace_server.auth.manager import CredentialLifecycleManager
from workspace_server.auth.models import (
    AuthState,
    CredentialMetadata,
    CredentialSet,
    CredentialStatus,
    StoredCredentials,
)

__all__ = [
    "AuthenticatedClient",
    "AuthError",
    "AuthorizationFailed",
    "AuthState",
    "ConsentReceiver",
    "CredentialLifecycleManager",
    "CredentialMetadata",
    "CredentialSet",
    "CredentialStatus",
    "CredentialStore",
    "FileCredentialStore",
    "LocalServerConsent",
    "RefreshFailed",
    "StorageError",
    "StoredCredentials",
    "TransientNetworkError",
]
