"""Google Workspace MCP Server.

Exposes Google Workspace to language-model agents over the Model Context
Protocol, backed by a single-account OAuth credential lifecycle manager.
"""

from workspace_server.__version__ import __version__

__all__ = ["__version__"]
