"""Session cache of index shards, loaded lazily by shard key."""

from __future__ import annotations

import asyncio
import logging
from bisect import bisect_left
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, TypeVar

from .config import MANIFEST_FILE, SHARD_SUFFIX
from .exceptions import IndexUnavailable, MalformedShard, ShardNotFound
from .models import IndexEntry, IndexManifest, Shard
from .shardfile import LiteralSyntaxError, parse_manifest, parse_shard
from .sources import ShardSource

logger = logging.getLogger("mcp_doxysearch.store")

T = TypeVar("T")

_entry_key = attrgetter("key")


@dataclass
class StoreStats:
    """Counters describing the cache state.

    Attributes:
        hits: Loads answered from the cache (including remembered absences)
        misses: Loads that had to fetch from the source
        cached: Number of shards resident
        missing: Shard keys known to have no shard
        malformed: Shard keys known to be malformed
    """

    hits: int = 0
    misses: int = 0
    cached: int = 0
    missing: int = 0
    malformed: int = 0

    def to_dict(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": self.hits / total if total else 0.0,
            "cached": self.cached,
            "missing": self.missing,
            "malformed": self.malformed,
        }


class ShardStore:
    """Append-only shard cache in front of a ``ShardSource``.

    Shards are immutable and the index is static, so nothing is evicted:
    parsed shards, known-absent keys and known-malformed keys are all kept
    until ``clear``. Concurrent requests for one key share a single fetch.
    """

    def __init__(self, source: ShardSource) -> None:
        self.source = source
        self._shards: dict[str, Shard] = {}
        self._missing: set[str] = set()
        self._malformed: dict[str, MalformedShard] = {}
        self._manifest: IndexManifest | None = None
        self._pending: dict[str, asyncio.Task[Any]] = {}
        self._hits = 0
        self._misses = 0

    async def load_manifest(self) -> IndexManifest:
        """Load the section catalogue of the index.

        Raises:
            IndexUnavailable: No catalogue exists or it cannot be read
        """
        if self._manifest is not None:
            return self._manifest
        manifest = await self._shared(f"@{MANIFEST_FILE}", self._fetch_manifest)
        self._manifest = manifest
        return manifest

    async def load_shard(self, shard_key: str) -> Shard:
        """Load a shard, from the cache when possible.

        Raises:
            ShardNotFound: No shard was generated for this key
            MalformedShard: The shard failed validation
            ShardFetchError: The transport failed; not remembered
        """
        shard = self._shards.get(shard_key)
        if shard is not None:
            self._hits += 1
            return shard
        if shard_key in self._missing:
            self._hits += 1
            raise ShardNotFound(shard_key)
        if shard_key in self._malformed:
            self._hits += 1
            raise self._malformed[shard_key]

        return await self._shared(shard_key, lambda: self._fetch_shard(shard_key))

    def cached_shard(self, shard_key: str) -> Shard | None:
        """Return a resident shard without loading it."""
        return self._shards.get(shard_key)

    def stats(self) -> StoreStats:
        return StoreStats(
            hits=self._hits,
            misses=self._misses,
            cached=len(self._shards),
            missing=len(self._missing),
            malformed=len(self._malformed),
        )

    def clear(self) -> None:
        """Forget everything; the next load of each key fetches again."""
        for task in self._pending.values():
            task.cancel()
        self._pending.clear()
        self._shards.clear()
        self._missing.clear()
        self._malformed.clear()
        self._manifest = None
        self._hits = 0
        self._misses = 0

    async def _shared(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        # A caller cancelled mid-load must not cancel the load for others.
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled():
            # Mark the exception retrieved; every awaiter gets it via shield.
            task.exception()

    async def _fetch_manifest(self) -> IndexManifest:
        try:
            text = await self.source.fetch(MANIFEST_FILE)
        except UnicodeDecodeError as exc:
            logger.warning("Undecodable index catalogue: %s", exc)
            raise IndexUnavailable(
                f"Undecodable {MANIFEST_FILE}: {exc}",
                {"location": self.source.describe()},
            ) from exc
        if text is None:
            raise IndexUnavailable(
                f"No {MANIFEST_FILE} at {self.source.describe()}",
                {"location": self.source.describe()},
            )
        try:
            manifest = parse_manifest(text)
        except LiteralSyntaxError as exc:
            logger.warning("Unreadable index catalogue: %s", exc)
            raise IndexUnavailable(
                f"Unreadable {MANIFEST_FILE}: {exc}",
                {"location": self.source.describe()},
            ) from exc
        logger.info(
            "Loaded index catalogue from %s with sections %s",
            self.source.describe(),
            manifest.section_names(),
        )
        return manifest

    async def _fetch_shard(self, shard_key: str) -> Shard:
        self._misses += 1
        try:
            text = await self.source.fetch(f"{shard_key}{SHARD_SUFFIX}")
        except UnicodeDecodeError as exc:
            malformed = MalformedShard(shard_key, f"undecodable text: {exc}")
            logger.warning("Skipping malformed shard %s: %s", shard_key, malformed.reason)
            self._malformed[shard_key] = malformed
            raise malformed from exc
        if text is None:
            logger.debug("No shard generated for %s", shard_key)
            self._missing.add(shard_key)
            raise ShardNotFound(shard_key)

        try:
            shard = parse_shard(shard_key, text)
        except MalformedShard as exc:
            logger.warning("Skipping malformed shard %s: %s", shard_key, exc.reason)
            self._malformed[shard_key] = exc
            raise

        logger.debug("Cached shard %s (%s entries)", shard_key, len(shard))
        return self._shards.setdefault(shard_key, shard)


def lookup_exact(shard: Shard, key: str) -> IndexEntry | None:
    """Binary search a shard for the entry with exactly ``key``."""
    position = bisect_left(shard.entries, key, key=_entry_key)
    if position < len(shard.entries) and shard.entries[position].key == key:
        return shard.entries[position]
    return None


def prefix_range(shard: Shard, prefix: str) -> list[IndexEntry]:
    """Return the entries whose key starts with ``prefix``, in key order."""
    position = bisect_left(shard.entries, prefix, key=_entry_key)
    matches: list[IndexEntry] = []
    for entry in shard.entries[position:]:
        if not entry.key.startswith(prefix):
            break
        matches.append(entry)
    return matches


__all__ = [
    "ShardStore",
    "StoreStats",
    "lookup_exact",
    "prefix_range",
]
