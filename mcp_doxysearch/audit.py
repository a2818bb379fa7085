"""Whole-index validation for operators."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field

from .exceptions import ErrorCollector, ErrorResult, MalformedShard, ShardFetchError, ShardNotFound
from .store import ShardStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SectionAudit:
    """Shard statistics for one catalogue section."""

    section: str
    buckets: int
    shards_loaded: int = 0
    entries: int = 0
    records: int = 0
    missing: list[str] = field(default_factory=list)


@dataclass(slots=True)
class IndexAuditReport:
    """Structured result of loading every shard of an index."""

    location: str
    sections: list[SectionAudit] = field(default_factory=list)
    errors: list[MalformedShard | ShardFetchError] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def status(self) -> str:
        if self.errors:
            return "error"
        if any(section.missing for section in self.sections):
            return "incomplete"
        return "ok"

    def raise_for_errors(self) -> None:
        """Raise the collected shard errors (an ExceptionGroup for several)."""
        with ErrorCollector() as collector:
            collector.set_context(f"index audit of {self.location}")
            for error in self.errors:
                collector.add_error(error)

    def to_dict(self) -> dict[str, object]:
        return {
            "location": self.location,
            "status": self.status,
            "duration_s": round(self.duration_s, 4),
            "sections": [asdict(section) for section in self.sections],
            "errors": [
                ErrorResult(error, "audit", recoverable=True).to_dict()
                for error in self.errors
            ],
        }


async def audit_index(
    store: ShardStore, sections: list[str] | None = None
) -> IndexAuditReport:
    """Load every shard listed in the catalogue and report what is wrong.

    Args:
        store: Store to load through; loaded shards stay cached
        sections: Section names to audit, all sections when None

    Raises:
        IndexUnavailable: The catalogue itself cannot be loaded
    """
    start = time.perf_counter()
    manifest = await store.load_manifest()
    report = IndexAuditReport(location=store.source.describe())

    for section in manifest.sections:
        if sections is not None and section.name not in sections:
            continue
        section_report = SectionAudit(section=section.name, buckets=len(section.buckets))
        for shard_key in section.shard_keys():
            try:
                shard = await store.load_shard(shard_key)
            except ShardNotFound:
                section_report.missing.append(shard_key)
                continue
            except (MalformedShard, ShardFetchError) as exc:
                report.errors.append(exc)
                continue
            section_report.shards_loaded += 1
            section_report.entries += len(shard)
            section_report.records += shard.record_count
        report.sections.append(section_report)

    report.duration_s = time.perf_counter() - start
    logger.info(
        "Audited %s: %s (%s errors)", report.location, report.status, len(report.errors)
    )
    return report
