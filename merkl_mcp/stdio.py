"""
stdio entrypoint for the Merkl MCP server.

Run with: merkl-mcp  (or: python -m merkl_mcp.stdio)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Tuple

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from merkl_mcp import mcp as registry
from merkl_mcp.config import SERVER_NAME, SERVER_VERSION, default_config
from merkl_mcp.logging_config import configure_logging
from merkl_mcp.merkl_api import MerklApiClient, default_client

logger = logging.getLogger(__name__)


def build_server(client: MerklApiClient | None = None) -> Server:
    """Create an MCP server whose tools are backed by ``client``."""
    app = Server(SERVER_NAME, version=SERVER_VERSION)

    @app.list_tools()
    async def list_tools() -> List[Tool]:
        return [
            Tool(
                name=tool["name"],
                title=tool["title"],
                description=tool["description"],
                inputSchema=tool["inputSchema"],
                outputSchema=tool["outputSchema"],
            )
            for tool in registry.list_tools()
        ]

    # Arguments are validated by the registry so both transports report the same messages.
    @app.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any] | None) -> Tuple[List[TextContent], Any]:
        # Raised errors are reported by the SDK as an isError result.
        result = await registry.invoke_tool(name, arguments or {}, client=client)
        return [TextContent(type="text", text=registry.render_text(result))], result

    return app


async def serve(client: MerklApiClient | None = None) -> None:
    active_client = client or default_client
    app = build_server(active_client)
    logger.info("Starting %s %s on stdio", SERVER_NAME, SERVER_VERSION)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await active_client.aclose()


def main() -> None:
    configure_logging(default_config)
    asyncio.run(serve())


if __name__ == "__main__":
    main()
