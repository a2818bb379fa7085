"""
Tools for the Doxygen symbol search server.
"""

from mcp_doxysearch.tools.health import health_check, index_audit
from mcp_doxysearch.tools.search import (
    list_index_sections,
    lookup_symbol,
    search_as_you_type,
    search_symbols,
)

__all__ = [
    "health_check",
    "index_audit",
    "list_index_sections",
    "lookup_symbol",
    "search_as_you_type",
    "search_symbols",
]
