"""HTTP surface: health, metrics, and the JSON-RPC tool gateway."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from merkl_mcp import jsonrpc
from merkl_mcp.config import SERVER_VERSION, default_config
from merkl_mcp.logging_config import configure_logging
from merkl_mcp.merkl_api import default_client
from merkl_mcp.metrics import default_metrics

logger = logging.getLogger(__name__)
configure_logging(default_config)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    await default_client.aclose()


app = FastAPI(
    title="Merkl MCP Server",
    description="Read-only Merkl opportunity and campaign tools for LLM agents.",
    version=SERVER_VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def time_request(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    default_metrics.record_request((time.perf_counter() - started) * 1000)
    response.headers["X-Request-ID"] = uuid.uuid4().hex
    return response


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> dict:
    """In-process counters since startup."""
    return default_metrics.snapshot()


@app.post("/mcp")
async def mcp_gateway(request: Request) -> Response:
    try:
        message = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content=jsonrpc.error_response(None, jsonrpc.PARSE_ERROR, "Parse error"),
        )
    reply = await jsonrpc.handle_message(message)
    if reply is None:
        return Response(status_code=204)
    if "error" in reply:
        logger.debug("mcp rpc error code=%s id=%s", reply["error"]["code"], reply.get("id"))
    return JSONResponse(content=reply)


# Run with: uvicorn merkl_mcp.server:app
