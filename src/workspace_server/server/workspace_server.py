"""Google Workspace MCP server.

Exposes the credential control operations (clear, force refresh, status)
and ID helpers as MCP tools over stdio. Workspace-calling tools obtain
their clients from the same CredentialLifecycleManager.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from workspace_server.auth import AuthError, CredentialLifecycleManager
from workspace_server.utils import extract_doc_id

logger = logging.getLogger(__name__)

SERVER_NAME = "google-workspace-server"

CLEARED_MESSAGE = (
    "Authentication credentials cleared. "
    "You will be prompted to log in again on the next request."
)
REFRESHED_MESSAGE = "Token refresh process triggered successfully."

ToolResult = str | dict[str, Any]


class WorkspaceServer:
    """MCP server for Google Workspace.

    Attributes:
        server: MCP Server instance.
        manager: Credential lifecycle manager shared by all tools.
    """

    def __init__(self, manager: CredentialLifecycleManager | None = None) -> None:
        """Initialize the Google Workspace MCP server.

        Args:
            manager: Credential manager. Built from the environment if not provided.
        """
        self.server = Server(SERVER_NAME)
        self.manager = manager or CredentialLifecycleManager()
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[ToolResult]]] = {
            "auth.clear": self._clear_auth,
            "auth.refreshToken": self._refresh_token,
            "auth.status": self._auth_status,
            "docs.extractIdFromUrl": self._extract_id_from_url,
        }
        self._setup_handlers()

    def list_tools(self) -> list[Tool]:
        """Return the tool definitions this server exposes."""
        return [
            Tool(
                name="auth.clear",
                description=(
                    "Clears the authentication credentials, "
                    "forcing a re-login on the next request."
                ),
                inputSchema={"type": "object", "properties": {}, "required": []},
            ),
            Tool(
                name="auth.refreshToken",
                description="Manually triggers the token refresh process.",
                inputSchema={"type": "object", "properties": {}, "required": []},
            ),
            Tool(
                name="auth.status",
                description=(
                    "Reports whether the server is signed in, when the access "
                    "token expires, and which scopes were granted."
                ),
                inputSchema={"type": "object", "properties": {}, "required": []},
            ),
            Tool(
                name="docs.extractIdFromUrl",
                description="Extracts the document ID from a Google Workspace URL.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "url": {
                            "type": "string",
                            "description": "The URL of the Google Workspace document.",
                        },
                    },
                    "required": ["url"],
                },
            ),
        ]

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return self.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
            """Handle tool calls."""
            text = await self.handle_tool(name, arguments or {})
            return [TextContent(type="text", text=text)]

    async def handle_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Run a tool and render its result as text.

        Failures are reported in the text rather than raised, so the agent
        learns which failure happened and whether to sign in again.
        """
        try:
            result = await self._dispatch_tool(name, arguments)
        except AuthError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return e.user_message
        except Exception as e:
            logger.exception(f"Error calling tool {name}")
            return f"Error: {e}"

        if isinstance(result, str):
            return result
        return json.dumps(result, indent=2)

    async def _dispatch_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Dispatch tool call to appropriate handler.

        Raises:
            ValueError: If tool name is not recognized.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")
        return await handler(arguments)

    async def _clear_auth(self, arguments: dict[str, Any]) -> ToolResult:
        self.manager.clear_auth()
        return CLEARED_MESSAGE

    async def _refresh_token(self, arguments: dict[str, Any]) -> ToolResult:
        await self.manager.refresh_token()
        return REFRESHED_MESSAGE

    async def _auth_status(self, arguments: dict[str, Any]) -> ToolResult:
        return self.manager.get_status().model_dump(mode="json")

    async def _extract_id_from_url(self, arguments: dict[str, Any]) -> ToolResult:
        if "url" not in arguments:
            raise ValueError("Missing required argument: url")
        return extract_doc_id(arguments["url"]) or ""

    async def run(self) -> None:
        """Sign in (if needed) and run the MCP server using stdio transport."""
        try:
            await self.manager.get_authenticated_client()
            async with stdio_server() as (read_stream, write_stream):
                logger.info("Google Workspace MCP server is running on stdio")
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.manager.close()


def main() -> None:
    """Entry point for the Google Workspace MCP server."""
    server = WorkspaceServer()
    asyncio.run(server.run())
