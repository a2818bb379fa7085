"""
Data models for the Doxygen symbol search index.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .normalize import split_key

MatchKind = Literal["exact", "prefix", "substring"]
SearchStatus = Literal["idle", "ok", "no_results", "no_index"]


class SymbolRecord(BaseModel):
    """One documented declaration site."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    qualified_scope: str | None = None
    target_url: str
    anchor: str = ""
    tooltip: str = ""
    is_local: bool = True

    @property
    def href(self) -> str:
        """Link to the declaration including its fragment."""
        if not self.anchor:
            return self.target_url
        return f"{self.target_url}#{self.anchor}"


class IndexEntry(BaseModel):
    """One normalized key and the declaration sites indexed under it."""

    model_config = ConfigDict(frozen=True)

    key: str
    display_label: str
    records: tuple[SymbolRecord, ...] = Field(min_length=1)
    serial: int = 0
    # The normalized search string: the key without its tie-break suffix
    term: str = ""

    @field_validator("key")
    @classmethod
    def _key_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("key must not be empty")
        return value

    @model_validator(mode="before")
    @classmethod
    def _derive_term(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("term") and isinstance(data.get("key"), str):
            label = data.get("display_label")
            term = split_key(data["key"], label if isinstance(label, str) else None)[0]
            data = {**data, "term": term}
        return data


@dataclass(frozen=True)
class Shard:
    """An immutable partition of the index, entries ordered by key."""

    shard_key: str
    entries: tuple[IndexEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def record_count(self) -> int:
        return sum(len(entry.records) for entry in self.entries)


@dataclass(frozen=True)
class IndexSection:
    """A search category of the index and its bucket prefixes.

    Attributes:
        position: Position of the section in the catalogue
        name: Identifier used in shard keys (``functions``)
        label: Human readable name (``Functions``)
        buckets: Bucket prefixes; the position of a bucket names its shard
    """

    position: int
    name: str
    label: str
    buckets: tuple[str, ...]

    def shard_key(self, bucket_position: int) -> str:
        return f"{self.name}_{bucket_position:x}"

    def shard_keys(self) -> list[str]:
        return [self.shard_key(position) for position in range(len(self.buckets))]

    def candidate_buckets(self, text: str) -> list[int]:
        """Return positions of buckets whose keys could start with ``text``.

        A bucket matches when the text starts with it or, for text shorter
        than the bucket, when the bucket starts with the text.
        """
        if not text:
            return []
        return [
            position
            for position, bucket in enumerate(self.buckets)
            if text.startswith(bucket) or bucket.startswith(text)
        ]


@dataclass(frozen=True)
class IndexManifest:
    """Catalogue of the sections present in an index."""

    sections: tuple[IndexSection, ...]

    def section(self, name: str | None = None) -> IndexSection | None:
        """Find a section by name; the first section when ``name`` is None."""
        if name is None:
            return self.sections[0] if self.sections else None
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def section_names(self) -> list[str]:
        return [section.name for section in self.sections]


class ResultRow(BaseModel):
    """A display-ready search result."""

    display_label: str
    qualified_scope: str | None = None
    tooltip: str = ""
    target_url: str
    anchor: str = ""
    key: str
    match: MatchKind = "prefix"


class SearchResponse(BaseModel):
    """Result set for one evaluated query."""

    query: str
    normalized_query: str = ""
    section: str | None = None
    status: SearchStatus = "ok"
    results: list[ResultRow] = Field(default_factory=list)
    total_matches: int = 0
    partial: bool = False  # Whether rows were dropped by the result limit
    diagnostics: list[dict[str, Any]] = Field(default_factory=list)
