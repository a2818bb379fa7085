"""
Query latency tracking and health indicators for the search server.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import psutil

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health status levels."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheck:
    """Individual health check result."""

    name: str
    status: HealthStatus
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    check_duration: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "check_duration": self.check_duration,
            "timestamp": self.timestamp,
        }


class QueryMonitor:
    """Keeps a rolling window of evaluation latencies and status counts."""

    def __init__(self, max_history_size: int = 500) -> None:
        self.start_time = time.time()
        self.max_history_size = max_history_size
        self.durations: list[float] = []
        self.statuses: Counter[str] = Counter()

    def record(self, duration: float, status: str) -> None:
        """Record one evaluation."""
        self.durations.append(duration)
        self.statuses[status] += 1

        if len(self.durations) > self.max_history_size:
            self.durations = self.durations[-self.max_history_size :]

    def snapshot(self) -> dict[str, Any]:
        """Summarize recorded evaluations and process resource usage."""
        ordered = sorted(self.durations)
        if ordered:
            average = sum(ordered) / len(ordered)
            p95 = ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))]
        else:
            average = p95 = 0.0

        process = psutil.Process()
        return {
            "evaluations": sum(self.statuses.values()),
            "by_status": dict(self.statuses),
            "average_latency_ms": round(average * 1000, 3),
            "p95_latency_ms": round(p95 * 1000, 3),
            "memory_usage_mb": round(process.memory_info().rss / 1024 / 1024, 2),
            "uptime_seconds": round(time.time() - self.start_time, 2),
        }

    def reset(self) -> None:
        self.durations.clear()
        self.statuses.clear()
        self.start_time = time.time()


async def perform_health_check(name: str, check_func: Callable[[], Any]) -> HealthCheck:
    """Run an individual health check, sync or async."""
    start_time = time.time()

    try:
        if inspect.iscoroutinefunction(check_func):
            result = await check_func()
        else:
            result = check_func()

        duration = time.time() - start_time

        if result is True:
            status = HealthStatus.HEALTHY
            message = "Check passed"
            details: dict[str, Any] = {}
        elif isinstance(result, dict):
            status = result.get("status", HealthStatus.HEALTHY)
            message = result.get("message", "Check completed")
            details = result.get("details", {})
        else:
            status = HealthStatus.DEGRADED
            message = str(result)
            details = {}

        return HealthCheck(
            name=name,
            status=status,
            message=message,
            details=details,
            check_duration=duration,
        )

    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"Health check '{name}' failed: {e}")

        return HealthCheck(
            name=name,
            status=HealthStatus.UNHEALTHY,
            message=f"Check failed: {e!s}",
            details={"exception": str(e)},
            check_duration=duration,
        )


def overall_status(checks: list[HealthCheck]) -> HealthStatus:
    """Worst status among the checks."""
    statuses = {check.status for check in checks}
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


query_monitor = QueryMonitor()


__all__ = [
    "HealthCheck",
    "HealthStatus",
    "QueryMonitor",
    "overall_status",
    "perform_health_check",
    "query_monitor",
]
