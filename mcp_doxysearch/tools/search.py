"""
Symbol search tools for the Doxygen search server.
"""

import logging
from typing import Any

from mcp.server.fastmcp import Context
from pydantic import Field

from ..config import MAX_QUERY_LENGTH, MAX_RESULTS_LIMIT
from ..exceptions import IndexUnavailable, ShardFetchError
from ..http import get_engine, get_session
from ..models import SearchResponse
from ..normalize import decode_markup
from ..server import mcp

logger = logging.getLogger("mcp_doxysearch.tools.search")


@mcp.tool()
async def search_symbols(  # vulture: ignore
    query: str = Field(
        ...,
        description="Identifier or identifier prefix, e.g. 'Timer' or 'to_str'",
        max_length=MAX_QUERY_LENGTH,
    ),
    section: str | None = Field(
        default=None,
        description="Index section such as 'all', 'classes' or 'functions'",
    ),
    max_results: int | None = Field(
        default=None,
        description=f"Maximum number of rows (1-{MAX_RESULTS_LIMIT})",
        ge=1,
        le=MAX_RESULTS_LIMIT,
    ),
    *,
    ctx: Context,
) -> SearchResponse:
    """
    Search the API reference for symbols whose name starts with the query.

    Exact name matches are listed first, then the remaining matches
    alphabetically. Overloads appear as separate rows with distinct anchors.

    Args:
        query: Identifier or identifier prefix (case-insensitive)
        section: Index section to search; the index default when omitted
        max_results: Row limit; ``partial`` is set when rows were dropped
        ctx: MCP context object (automatically injected)

    Returns:
        A SearchResponse with ranked declaration sites

    Example:
        search_symbols(query="tim", section="functions", max_results=20)
    """
    logger.info("search_symbols called with query: %s, section: %s", query, section)
    engine = get_engine(ctx)
    return await engine.evaluate(query, section=section, max_results=max_results)


@mcp.tool()
async def search_as_you_type(  # vulture: ignore
    text: str = Field(
        ...,
        description="Current content of the search box",
        max_length=MAX_QUERY_LENGTH,
    ),
    *,
    ctx: Context,
) -> SearchResponse:
    """
    Feed one keystroke into the shared incremental search session.

    Calls may overlap; the newest text always wins and every caller receives
    the results for the most recent text. An empty text clears the session.

    Args:
        text: Full current query text, not just the typed character
        ctx: MCP context object (automatically injected)

    Returns:
        The session's current result set
    """
    session = get_session(ctx)
    response = await session.submit(text)
    if response is None:
        return SearchResponse(query=text, status="idle")
    return response


@mcp.tool()
async def lookup_symbol(  # vulture: ignore
    name: str = Field(..., description="Exact symbol name, e.g. 'TIFF'"),
    section: str | None = Field(default=None, description="Index section"),
    *,
    ctx: Context,
) -> dict[str, Any]:
    """
    Return every documented declaration of a symbol with exactly this name.

    Args:
        name: Symbol name (case-insensitive)
        section: Index section to search
        ctx: MCP context object (automatically injected)

    Returns:
        Dictionary with ``found`` and, when found, the declaration sites
    """
    engine = get_engine(ctx)
    entry = await engine.lookup(name, section=section)
    if entry is None:
        return {"name": name, "found": False, "declarations": []}

    return {
        "name": name,
        "found": True,
        "display_label": entry.display_label,
        "key": entry.term,
        "declarations": [
            {
                "qualified_scope": record.qualified_scope,
                "tooltip": decode_markup(record.tooltip),
                "target_url": record.target_url,
                "anchor": record.anchor,
                "href": record.href,
            }
            for record in entry.records
        ],
    }


@mcp.tool()
async def list_index_sections(ctx: Context) -> dict[str, Any]:  # vulture: ignore
    """
    List the sections of the search index and their bucket prefixes.

    Returns:
        Dictionary with ``status`` and the catalogue sections
    """
    engine = get_engine(ctx)
    try:
        manifest = await engine.store.load_manifest()
    except (IndexUnavailable, ShardFetchError) as e:
        logger.error(f"Cannot list index sections: {e}")
        return {"status": "no_index", "sections": [], "message": str(e)}

    return {
        "status": "ok",
        "sections": [
            {
                "name": section.name,
                "label": section.label,
                "buckets": "".join(section.buckets)
                if all(len(bucket) == 1 for bucket in section.buckets)
                else list(section.buckets),
            }
            for section in manifest.sections
        ],
    }
