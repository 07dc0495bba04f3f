"""
Read-only Merkl MCP server package.

This package exposes the Merkl opportunity and campaign catalog as MCP tools
over stdio and a small HTTP JSON-RPC gateway. See DESIGN.md for full details.
"""

__all__ = ["config"]
