"""
Server setup and lifespan management for the Doxygen symbol search server.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from mcp.server.fastmcp import FastMCP

from .config import IndexSettings
from .engine import QueryEngine
from .http import create_http_client
from .monitoring import query_monitor
from .session import QuerySession
from .sources import MappingShardSource, ShardSource, make_source
from .store import ShardStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("mcp_doxysearch.server")

# Global variables
http_client: httpx.AsyncClient | None = None


def build_engine(
    source: ShardSource, settings: IndexSettings
) -> tuple[ShardStore, QueryEngine]:
    """Wire a store and an engine for one index."""
    store = ShardStore(source)
    engine = QueryEngine(
        store,
        max_results=settings.max_results,
        match_mode=settings.match_mode,
        default_section=settings.default_section,
    )
    return store, engine


@asynccontextmanager
async def app_lifespan(_server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Provision the index store, engine and transport for the session."""
    global http_client
    settings = IndexSettings.from_env()
    try:
        source: ShardSource
        if settings.location is None:
            logger.warning("No search index configured; every query reports no_index")
            source = MappingShardSource({})
        elif settings.location.startswith(("http://", "https://")):
            http_client = create_http_client(timeout=settings.fetch_timeout)
            source = make_source(
                settings.location, client=http_client, timeout=settings.fetch_timeout
            )
        else:
            source = make_source(settings.location)

        store, engine = build_engine(source, settings)
        logger.info(
            "Serving symbol search for %s (mode=%s, max_results=%s)",
            source.describe(),
            settings.match_mode,
            settings.max_results,
        )

        yield {
            "http_client": http_client,
            "settings": settings,
            "store": store,
            "engine": engine,
            "session": QuerySession(engine),
        }
    finally:
        logger.info("Shutting down Doxygen search server")
        await close_http_client()

        stats = query_monitor.snapshot()
        logger.info(f"Total evaluations: {stats['evaluations']}")
        logger.info(f"Average latency: {stats['average_latency_ms']}ms")


# Initialize FastMCP server with lifespan
mcp = FastMCP("Doxygen Symbol Search", lifespan=app_lifespan)

# Export the tool decorator for use in tools modules
tool = mcp.tool


async def close_http_client() -> None:
    """Cleanly close the HTTP client."""
    global http_client
    if http_client:
        logger.info("Closing HTTP client")
        await http_client.aclose()
        http_client = None
