"""MCP server over the document index."""

from docindex.server.mcp_server import create_mcp_server

__all__ = ["create_mcp_server"]
