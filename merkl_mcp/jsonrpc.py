"""JSON-RPC 2.0 message handling for the tool registry."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from merkl_mcp import mcp
from merkl_mcp.config import SERVER_NAME, SERVER_VERSION

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

NOTIFICATIONS = frozenset({"notifications/initialized", "initialized"})


class InvalidParams(ValueError):
    pass


def success_response(rpc_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def error_response(rpc_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}


async def _initialize(params: Dict[str, Any], client) -> Dict[str, Any]:
    version = params.get("protocolVersion")
    if not isinstance(version, str) or not version:
        raise InvalidParams("protocolVersion is required")
    return {
        "protocolVersion": version,
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        "capabilities": {"tools": {"listChanged": False}},
    }


async def _list_tools(params: Dict[str, Any], client) -> Dict[str, Any]:
    return {"tools": mcp.list_tools()}


async def _call_tool(params: Dict[str, Any], client) -> Dict[str, Any]:
    name = params.get("name") or params.get("tool")
    if not isinstance(name, str) or not name.strip():
        raise InvalidParams("name is required")
    arguments = params.get("arguments")
    if arguments is None:
        arguments = params.get("params") or {}
    if not isinstance(arguments, dict):
        raise InvalidParams("arguments must be an object")
    return await mcp.call_tool(name, arguments, client=client)


Handler = Callable[[Dict[str, Any], Any], Awaitable[Dict[str, Any]]]

METHODS: Dict[str, Handler] = {
    "initialize": _initialize,
    "tools/list": _list_tools,
    "list_tools": _list_tools,
    "tools/call": _call_tool,
    "call_tool": _call_tool,
}


async def handle_message(message: Any, *, client=None) -> Optional[Dict[str, Any]]:
    """
    Answer one decoded JSON-RPC message.

    Returns ``None`` for notifications, which get no response. Tool failures
    stay in-band as ``isError`` results; only protocol problems produce a
    JSON-RPC error object.
    """
    if not isinstance(message, dict):
        return error_response(None, INVALID_REQUEST, "Invalid request")
    rpc_id = message.get("id")
    method = message.get("method")
    if not isinstance(method, str) or not method:
        return error_response(rpc_id, INVALID_REQUEST, "Invalid request")
    if method in NOTIFICATIONS:
        logger.debug("mcp notification method=%s", method)
        return None

    params = message.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        return error_response(rpc_id, INVALID_PARAMS, "Invalid params")

    handler = METHODS.get(method)
    if handler is None:
        return error_response(rpc_id, METHOD_NOT_FOUND, "Method not found")
    try:
        result = await handler(params, client)
    except InvalidParams as exc:
        return error_response(rpc_id, INVALID_PARAMS, f"Invalid params: {exc}")
    return success_response(rpc_id, result)
