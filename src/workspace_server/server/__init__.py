"""MCP server implementation for Google Workspace.

Tools:
- auth.clear: forget stored credentials
- auth.refreshToken: force an access token refresh
- auth.status: report sign-in state and token expiry
- docs.extractIdFromUrl: pull a file ID out of a Workspace URL

Transport: Stdio
Authentication: OAuth 2.0 with automatic token refresh
"""

from workspace_server.server.workspace_server import WorkspaceServer, main


def create_server() -> WorkspaceServer:
    """Create and configure a Google Workspace MCP server.

    Returns:
        WorkspaceServer: Configured server instance ready to run.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return WorkspaceServer()


__all__ = ["create_server", "WorkspaceServer", "main"]
