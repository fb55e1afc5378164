"""
Search Utilities Module
"""

from .metrics import MetricsCollector, SearchMetrics, SearchStatus, Stopwatch

__all__ = [
    "MetricsCollector",
    "SearchMetrics",
    "SearchStatus",
    "Stopwatch",
]
