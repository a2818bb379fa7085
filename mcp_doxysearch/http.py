"""Shared HTTP client and lifespan helpers for MCP tools."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from mcp.server.fastmcp import Context

from .config import DEFAULT_USER_AGENT, SHARD_FETCH_TIMEOUT

if TYPE_CHECKING:
    from .engine import QueryEngine
    from .session import QuerySession

logger = logging.getLogger("mcp_doxysearch.http")

DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "application/javascript, text/javascript, application/json;q=0.9, */*;q=0.5",
}


def create_http_client(timeout: float = SHARD_FETCH_TIMEOUT) -> httpx.AsyncClient:
    """Create an HTTP client configured for fetching index files."""
    return httpx.AsyncClient(
        timeout=timeout,
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
    )


def get_lifespan_context(ctx: Context) -> Any:
    """Extract the lifespan context from MCP context.

    Args:
        ctx: The MCP context object

    Returns:
        The lifespan context dictionary or None if not available
    """
    direct = getattr(ctx, "lifespan_context", None)
    if isinstance(direct, dict):
        return direct

    try:
        request_context = ctx.request_context
    except (AttributeError, ValueError):
        return None

    return getattr(request_context, "lifespan_context", None)


def _require(ctx: Context, name: str) -> Any:
    lifespan_ctx = get_lifespan_context(ctx)
    if not isinstance(lifespan_ctx, dict) or lifespan_ctx.get(name) is None:
        logger.error("No %s in lifespan context", name)
        raise RuntimeError(f"Search server is not initialized ({name} missing)")
    return lifespan_ctx[name]


def get_engine(ctx: Context) -> QueryEngine:
    """Return the query engine provisioned by the server lifespan."""
    return _require(ctx, "engine")


def get_session(ctx: Context) -> QuerySession:
    """Return the shared incremental query session."""
    return _require(ctx, "session")
