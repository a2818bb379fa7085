"""
Query evaluation over a sharded symbol index.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from .config import DEFAULT_MATCH_MODE, DEFAULT_MAX_RESULTS, MatchMode
from .exceptions import (
    DoxySearchError,
    ErrorResult,
    IndexUnavailable,
    MalformedShard,
    ShardFetchError,
    ShardNotFound,
)
from .models import (
    IndexEntry,
    IndexSection,
    MatchKind,
    ResultRow,
    SearchResponse,
    Shard,
    SymbolRecord,
)
from .monitoring import QueryMonitor, query_monitor
from .normalize import bucket_text, decode_markup, normalize_query
from .store import ShardStore, lookup_exact, prefix_range

logger = logging.getLogger("mcp_doxysearch.engine")

_TIER: dict[MatchKind, int] = {"exact": 0, "prefix": 1, "substring": 2}


@dataclass(frozen=True)
class Candidate:
    """A matched record together with everything needed to rank it."""

    entry: IndexEntry
    record: SymbolRecord
    record_position: int
    bucket_position: int
    match: MatchKind

    def sort_key(self) -> tuple[int, str, int, int, int]:
        return (
            _TIER[self.match],
            self.entry.display_label.casefold(),
            self.bucket_position,
            self.entry.serial,
            self.record_position,
        )

    def to_row(self) -> ResultRow:
        return ResultRow(
            display_label=self.entry.display_label,
            qualified_scope=self.record.qualified_scope,
            tooltip=decode_markup(self.record.tooltip),
            target_url=self.record.target_url,
            anchor=self.record.anchor,
            key=self.entry.term,
            match=self.match,
        )


def classify_match(term: str, normalized: str, match_mode: MatchMode) -> MatchKind | None:
    """Decide how (and whether) an entry term matches a normalized query."""
    if term == normalized:
        return "exact"
    if term.startswith(normalized):
        return "prefix"
    if match_mode == "substring" and normalized in term:
        return "substring"
    return None


def collect_candidates(
    shard: Shard,
    normalized: str,
    bucket_position: int,
    match_mode: MatchMode,
) -> list[Candidate]:
    """Collect matching (entry, record) pairs of one shard in entry order."""
    if match_mode == "substring":
        entries = list(shard.entries)
    else:
        entries = prefix_range(shard, normalized)

    candidates: list[Candidate] = []
    for entry in entries:
        match = classify_match(entry.term, normalized, match_mode)
        if match is None:
            continue
        for record_position, record in enumerate(entry.records):
            candidates.append(
                Candidate(
                    entry=entry,
                    record=record,
                    record_position=record_position,
                    bucket_position=bucket_position,
                    match=match,
                )
            )
    return candidates


def rank_candidates(candidates: list[Candidate]) -> list[Candidate]:
    """Order candidates and collapse duplicate declaration sites.

    Exact matches come first, then prefix, then substring matches; within a
    tier by label (case-insensitive), then generation order. Rows are only
    collapsed when scope, page and anchor are all equal.
    """
    ranked: list[Candidate] = []
    seen: set[tuple[str | None, str, str]] = set()
    for candidate in sorted(candidates, key=Candidate.sort_key):
        identity = (
            candidate.record.qualified_scope,
            candidate.record.target_url,
            candidate.record.anchor,
        )
        if identity in seen:
            continue
        seen.add(identity)
        ranked.append(candidate)
    return ranked


class QueryEngine:
    """Turns raw query text into ranked declaration sites.

    Evaluation never raises for index problems: missing shards count as
    zero matches and broken shards are skipped and reported as diagnostics.
    """

    def __init__(
        self,
        store: ShardStore,
        *,
        max_results: int = DEFAULT_MAX_RESULTS,
        match_mode: MatchMode = DEFAULT_MATCH_MODE,
        default_section: str | None = None,
        monitor: QueryMonitor | None = None,
    ) -> None:
        if max_results < 1:
            raise ValueError("max_results must be at least 1")
        self.store = store
        self.max_results = max_results
        self.match_mode: MatchMode = match_mode
        self.default_section = default_section
        self._monitor = monitor or query_monitor

    async def evaluate(
        self,
        text: str,
        *,
        section: str | None = None,
        max_results: int | None = None,
    ) -> SearchResponse:
        """Evaluate one query.

        Args:
            text: The query as typed
            section: Catalogue section to search; defaults to the engine's
                default section, then to the first catalogue section
            max_results: Per-call override of the result limit

        Returns:
            The ranked, possibly truncated, result set
        """
        if max_results is not None and max_results < 1:
            raise ValueError("max_results must be at least 1")
        started = time.perf_counter()
        limit = self.max_results if max_results is None else max_results
        response = await self._evaluate(text, section, limit)
        self._monitor.record(time.perf_counter() - started, response.status)
        return response

    async def _evaluate(
        self, text: str, section_name: str | None, limit: int
    ) -> SearchResponse:
        normalized = normalize_query(text)
        if not normalized:
            return SearchResponse(query=text, status="idle")

        try:
            manifest = await self.store.load_manifest()
        except (IndexUnavailable, ShardFetchError) as exc:
            logger.error("Search index unavailable: %s", exc)
            return SearchResponse(
                query=text,
                normalized_query=normalized,
                status="no_index",
                diagnostics=[ErrorResult(exc, "catalogue").to_dict()],
            )

        requested = section_name or self.default_section
        section = manifest.section(requested)
        if section is None:
            error = DoxySearchError(
                f"Unknown index section '{requested}'",
                {"available": manifest.section_names()},
            )
            return SearchResponse(
                query=text,
                normalized_query=normalized,
                section=requested,
                status="no_results",
                diagnostics=[ErrorResult(error, "section", recoverable=True).to_dict()],
            )

        diagnostics: list[dict] = []
        candidates: list[Candidate] = []
        for bucket_position, shard in await self._load_candidates(
            section, text, diagnostics
        ):
            candidates.extend(
                collect_candidates(shard, normalized, bucket_position, self.match_mode)
            )

        ranked = rank_candidates(candidates)
        rows = [candidate.to_row() for candidate in ranked[:limit]]
        logger.debug(
            "Query '%s' (%s) matched %s rows in section %s",
            text,
            normalized,
            len(ranked),
            section.name,
        )
        return SearchResponse(
            query=text,
            normalized_query=normalized,
            section=section.name,
            status="ok" if rows else "no_results",
            results=rows,
            total_matches=len(ranked),
            partial=len(ranked) > limit,
            diagnostics=diagnostics,
        )

    def candidate_buckets(self, section: IndexSection, text: str) -> list[int]:
        """Return the bucket positions a query has to look at."""
        if self.match_mode == "substring":
            return list(range(len(section.buckets)))
        return section.candidate_buckets(bucket_text(text))

    async def _load_candidates(
        self,
        section: IndexSection,
        text: str,
        diagnostics: list[dict],
    ) -> list[tuple[int, Shard]]:
        positions = self.candidate_buckets(section, text)
        if not positions:
            return []

        outcomes = await asyncio.gather(
            *(self.store.load_shard(section.shard_key(p)) for p in positions),
            return_exceptions=True,
        )

        loaded: list[tuple[int, Shard]] = []
        for position, outcome in zip(positions, outcomes):
            if isinstance(outcome, Shard):
                loaded.append((position, outcome))
            elif isinstance(outcome, ShardNotFound):
                continue
            elif isinstance(outcome, (MalformedShard, ShardFetchError)):
                diagnostics.append(
                    ErrorResult(outcome, section.shard_key(position), recoverable=True).to_dict()
                )
            elif isinstance(outcome, BaseException):
                raise outcome
        return loaded

    async def lookup(self, key: str, *, section: str | None = None) -> IndexEntry | None:
        """Find the entry whose term is exactly ``key`` after normalization.

        Returns:
            The first such entry in generation order, or None
        """
        normalized = normalize_query(key)
        if not normalized:
            return None
        try:
            manifest = await self.store.load_manifest()
        except (IndexUnavailable, ShardFetchError):
            return None
        index_section = manifest.section(section or self.default_section)
        if index_section is None:
            return None

        found: list[IndexEntry] = []
        for _position, shard in await self._load_candidates(
            index_section, key, []
        ):
            entry = lookup_exact(shard, normalized)
            if entry is not None:
                found.append(entry)
            found.extend(
                candidate
                for candidate in prefix_range(shard, f"{normalized}_")
                if candidate.term == normalized
            )
        if not found:
            return None
        return min(found, key=lambda entry: entry.serial)
