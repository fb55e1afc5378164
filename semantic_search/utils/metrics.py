"""
Search Metrics Module

This module provides metrics collection for search requests, enabling
observability and performance tracking through the health endpoint.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SearchStatus(Enum):
    """Enumeration of search request outcomes"""
    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class Stopwatch:
    """Elapsed wall-clock time in milliseconds since construction."""

    def __init__(self):
        self._start = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


@dataclass
class SearchMetrics:
    """Metrics for one search request"""
    query_hash: str
    search_mode: str = "hybrid"
    embedding_time_ms: float = 0.0
    vector_search_time_ms: float = 0.0
    text_search_time_ms: float = 0.0
    total_time_ms: float = 0.0
    results_count: int = 0
    cache_hit: bool = False
    status: SearchStatus = SearchStatus.SUCCESS
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    request_id: Optional[str] = None


class MetricsCollector:
    """
    Collects and aggregates search metrics.

    Features:
    - Bounded history retention
    - Aggregated summary for health reporting
    - Optional callback for real-time reporting
    """

    def __init__(
        self,
        max_history: int = 1000,
        metrics_callback: Optional[Callable[[SearchMetrics], None]] = None
    ):
        """
        Initialize the metrics collector.

        Args:
            max_history: Maximum number of metrics to retain
            metrics_callback: Optional callback for real-time metrics reporting
        """
        self._metrics_history: List[SearchMetrics] = []
        self._max_history = max_history
        self._metrics_callback = metrics_callback
        self._lock = asyncio.Lock()

    async def record_metric(self, metric: SearchMetrics) -> None:
        """
        Record a search metric.

        Args:
            metric: SearchMetrics object to record
        """
        async with self._lock:
            self._metrics_history.append(metric)
            if len(self._metrics_history) > self._max_history:
                self._metrics_history = self._metrics_history[-self._max_history:]

        if self._metrics_callback:
            try:
                self._metrics_callback(metric)
            except Exception as e:
                logger.warning(f"Metrics callback failed: {e}")

    async def get_summary(self) -> Dict[str, Any]:
        """
        Get aggregated metrics summary.

        Returns:
            Dictionary with request counts, rates and average timings
        """
        async with self._lock:
            history = list(self._metrics_history)

        total = len(history)
        if not total:
            return {"totalSearches": 0}

        def count(status: SearchStatus) -> int:
            return sum(1 for m in history if m.status == status)

        served = [m for m in history if m.status in (SearchStatus.SUCCESS, SearchStatus.DEGRADED)]
        computed = [m for m in served if not m.cache_hit]

        def average(values: List[float]) -> float:
            return round(sum(values) / len(values), 2) if values else 0.0

        return {
            "totalSearches": total,
            "successful": count(SearchStatus.SUCCESS),
            "degraded": count(SearchStatus.DEGRADED),
            "failed": count(SearchStatus.FAILURE),
            "timeouts": count(SearchStatus.TIMEOUT),
            "cancelled": count(SearchStatus.CANCELLED),
            "successRate": round(len(served) / total, 4),
            "cacheHitRate": round(sum(1 for m in served if m.cache_hit) / len(served), 4) if served else 0.0,
            "avgEmbeddingTime": average([m.embedding_time_ms for m in computed]),
            "avgVectorSearchTime": average([m.vector_search_time_ms for m in computed]),
            "avgTextSearchTime": average([m.text_search_time_ms for m in computed]),
            "avgTotalTime": average([m.total_time_ms for m in served]),
            "avgResultsCount": average([float(m.results_count) for m in served]),
        }

    async def clear(self) -> None:
        """Clear all metrics history."""
        async with self._lock:
            self._metrics_history.clear()
