"""
Health and index maintenance tools for the Doxygen search server.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import Context

from ..audit import audit_index
from ..exceptions import IndexUnavailable, ShardFetchError
from ..http import get_engine
from ..monitoring import HealthStatus, overall_status, perform_health_check, query_monitor
from ..server import tool

logger = logging.getLogger(__name__)


@tool()
async def health_check(ctx: Context) -> dict:  # vulture: ignore
    """
    Get the current health status of the search server.

    Reports whether the index catalogue can be loaded, the shard cache
    counters and query latency statistics.

    Returns:
        dict: Health status information
    """
    engine = get_engine(ctx)

    async def check_catalogue() -> dict[str, Any]:
        try:
            manifest = await engine.store.load_manifest()
        except (IndexUnavailable, ShardFetchError) as exc:
            return {
                "status": HealthStatus.UNHEALTHY,
                "message": str(exc),
            }
        return {
            "status": HealthStatus.HEALTHY,
            "message": "Index catalogue loaded",
            "details": {"sections": manifest.section_names()},
        }

    def check_cache() -> dict[str, Any]:
        stats = engine.store.stats()
        return {
            "status": HealthStatus.DEGRADED if stats.malformed else HealthStatus.HEALTHY,
            "message": f"{stats.cached} shards cached, {stats.malformed} malformed",
            "details": stats.to_dict(),
        }

    checks = [
        await perform_health_check("catalogue", check_catalogue),
        await perform_health_check("shard_cache", check_cache),
    ]
    return {
        "status": overall_status(checks).value,
        "index": engine.store.source.describe(),
        "checks": [check.to_dict() for check in checks],
        "queries": query_monitor.snapshot(),
    }


@tool()
async def index_audit(  # vulture: ignore
    ctx: Context, sections: list[str] | None = None
) -> dict:
    """
    Load every shard of the index and report missing or malformed shards.

    Args:
        sections: Section names to audit; all sections when omitted

    Returns:
        dict: Audit report with per-section statistics
    """
    engine = get_engine(ctx)
    try:
        report = await audit_index(engine.store, sections)
    except (IndexUnavailable, ShardFetchError) as e:
        logger.error(f"Index audit failed: {e}")
        return {"status": "no_index", "message": str(e)}
    return report.to_dict()
