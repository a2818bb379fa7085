"""
Doxygen symbol search for Model Context Protocol.

This package searches the sharded search index Doxygen generates for HTML
API documentation, loading shards lazily as a query narrows.
"""

__version__ = "0.1.0"

from .engine import QueryEngine
from .exceptions import (
    DoxySearchError,
    IndexUnavailable,
    MalformedShard,
    QueryEvaluationCancelled,
    ShardFetchError,
    ShardNotFound,
)
from .models import IndexEntry, ResultRow, SearchResponse, Shard, SymbolRecord
from .normalize import normalize_query
from .session import QuerySession, SessionState
from .sources import DirectoryShardSource, HttpShardSource, MappingShardSource, make_source
from .store import ShardStore, lookup_exact, prefix_range

__all__ = [
    "DirectoryShardSource",
    "DoxySearchError",
    "HttpShardSource",
    "IndexEntry",
    "IndexUnavailable",
    "MalformedShard",
    "MappingShardSource",
    "QueryEngine",
    "QueryEvaluationCancelled",
    "QuerySession",
    "ResultRow",
    "SearchResponse",
    "SessionState",
    "Shard",
    "ShardFetchError",
    "ShardNotFound",
    "ShardStore",
    "SymbolRecord",
    "lookup_exact",
    "make_source",
    "normalize_query",
    "prefix_range",
]


def __main__() -> None:
    from .main import main

    main()
