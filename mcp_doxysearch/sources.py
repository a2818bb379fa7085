"""Transports that fetch raw index files by name."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol
from urllib.parse import urljoin

import httpx

from .config import SHARD_FETCH_TIMEOUT
from .exceptions import ShardFetchError
from .http import create_http_client

logger = logging.getLogger("mcp_doxysearch.sources")


class ShardSource(Protocol):
    """Fetches index files; ``None`` means the file was never generated."""

    async def fetch(self, name: str) -> str | None:
        ...

    def describe(self) -> str:
        ...


class MappingShardSource:
    """In-memory source, mainly for embedding an index in another program."""

    def __init__(self, files: Mapping[str, str]) -> None:
        self._files = dict(files)

    async def fetch(self, name: str) -> str | None:
        return self._files.get(name)

    def describe(self) -> str:
        return f"memory ({len(self._files)} files)"


class DirectoryShardSource:
    """Reads files from a local ``html/search`` directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _read(self, name: str) -> str | None:
        path = self.root / name
        try:
            # Undecodable bytes become U+FFFD, as with httpx ``response.text``;
            # the shard reader then rejects the file if its structure breaks.
            return path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ShardFetchError(
                f"Cannot read {path}: {exc}", {"name": name, "path": str(path)}
            ) from exc

    async def fetch(self, name: str) -> str | None:
        if "/" in name or "\\" in name or name.startswith("."):
            raise ShardFetchError(f"Invalid index file name '{name}'", {"name": name})
        return await asyncio.to_thread(self._read, name)

    def describe(self) -> str:
        return str(self.root)


class HttpShardSource:
    """Fetches files from a published documentation site."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = SHARD_FETCH_TIMEOUT,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_http_client(timeout=self._timeout)
            logger.debug("Created HTTP client for %s", self.base_url)
        return self._client

    async def fetch(self, name: str) -> str | None:
        url = urljoin(self.base_url, name)
        try:
            response = await self._get_client().get(url, timeout=self._timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch %s: %s", url, exc)
            raise ShardFetchError(f"Cannot fetch {url}: {exc}", {"url": url}) from exc
        return response.text

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def describe(self) -> str:
        return self.base_url


def make_source(
    location: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = SHARD_FETCH_TIMEOUT,
) -> DirectoryShardSource | HttpShardSource:
    """Pick a source for a directory path or an ``http(s)`` URL."""
    if location.startswith(("http://", "https://")):
        return HttpShardSource(location, client=client, timeout=timeout)
    return DirectoryShardSource(location)
