"""Centralized configuration for the Doxygen symbol search server."""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, Field

MatchMode = Literal["prefix", "substring"]

# Result limits
DEFAULT_MAX_RESULTS = 200
MAX_RESULTS_LIMIT = 1000
MAX_QUERY_LENGTH = 256

# Matching
DEFAULT_MATCH_MODE: MatchMode = "prefix"

# Index layout (Doxygen html/search directory)
MANIFEST_FILE = "searchdata.js"
SHARD_SUFFIX = ".js"
SHARD_VARIABLE = "searchData"

# Transport
SHARD_FETCH_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "mcp-doxysearch/0.1 (+https://www.doxygen.nl)"

# Server configuration
DEFAULT_SERVER_PORT = 3000

# Environment variables read by IndexSettings.from_env
ENV_INDEX_LOCATION = "DOXYSEARCH_INDEX"
ENV_MAX_RESULTS = "DOXYSEARCH_MAX_RESULTS"
ENV_MATCH_MODE = "DOXYSEARCH_MATCH_MODE"
ENV_SECTION = "DOXYSEARCH_SECTION"
ENV_FETCH_TIMEOUT = "DOXYSEARCH_FETCH_TIMEOUT"


class IndexSettings(BaseModel):
    """Runtime settings for one search index."""

    location: str | None = None
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, ge=1, le=MAX_RESULTS_LIMIT)
    match_mode: MatchMode = DEFAULT_MATCH_MODE
    default_section: str | None = None
    fetch_timeout: float = Field(default=SHARD_FETCH_TIMEOUT, gt=0)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> IndexSettings:
        """Build settings from ``DOXYSEARCH_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Validated settings; unset variables keep their defaults
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if env.get(ENV_INDEX_LOCATION):
            values["location"] = env[ENV_INDEX_LOCATION]
        if env.get(ENV_MAX_RESULTS):
            values["max_results"] = env[ENV_MAX_RESULTS]
        if env.get(ENV_MATCH_MODE):
            values["match_mode"] = env[ENV_MATCH_MODE]
        if env.get(ENV_SECTION):
            values["default_section"] = env[ENV_SECTION]
        if env.get(ENV_FETCH_TIMEOUT):
            values["fetch_timeout"] = env[ENV_FETCH_TIMEOUT]
        return cls.model_validate(values)
