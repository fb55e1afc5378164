"""
Fallback Module

This module provides graceful degradation when one retrieval path fails:
the response is served from whichever path succeeded and flagged as
degraded.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..config.base import SearchMode
from ..core.models import CandidateResult
from ..core.search_ops_exceptions import EmbeddingUnavailableError, StoreUnavailableError
from ..utils.metrics import SearchStatus

logger = logging.getLogger(__name__)


@dataclass
class PathOutcome:
    """
    What one retrieval path produced.

    results is None when the path failed or did not run; skipped tells the
    two apart.
    """
    results: Optional[List[CandidateResult]] = None
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.results is not None


def _vector_failure_reason(error: Optional[BaseException]) -> str:
    if isinstance(error, EmbeddingUnavailableError):
        return "embedding_unavailable"
    return "vector_search_unavailable"


def handle_fallback(
    vector: PathOutcome,
    keyword: PathOutcome,
) -> Tuple[SearchMode, SearchStatus, Optional[str]]:
    """
    Decide how to serve a request from the outcomes of both paths.

    Args:
        vector: Outcome of embedding plus vector search
        keyword: Outcome of keyword search

    Returns:
        Tuple of (search mode, status, degraded reason)

    Raises:
        StoreUnavailableError: If no path produced results
    """
    if vector.succeeded and keyword.succeeded:
        logger.debug("Both vector and keyword searches successful")
        return SearchMode.HYBRID, SearchStatus.SUCCESS, None

    if vector.succeeded:
        if keyword.skipped:
            return SearchMode.VECTOR_ONLY, SearchStatus.SUCCESS, None
        logger.warning(
            f"Keyword search failed, serving vector-only results "
            f"(count: {len(vector.results)}): {keyword.error}"
        )
        return SearchMode.VECTOR_ONLY, SearchStatus.DEGRADED, "keyword_search_unavailable"

    if keyword.succeeded:
        reason = _vector_failure_reason(vector.error)
        logger.warning(
            f"Vector path failed ({reason}), serving keyword-only results "
            f"(count: {len(keyword.results)}): {vector.error}"
        )
        return SearchMode.KEYWORD_ONLY, SearchStatus.DEGRADED, reason

    logger.error(
        f"All search paths failed - vector: {vector.error}, "
        f"keyword: {'skipped' if keyword.skipped else keyword.error}"
    )
    cause = vector.error or keyword.error
    raise StoreUnavailableError("All search paths failed - cannot provide results") from cause


class FallbackManager:
    """
    Tracks how often requests are served in degraded mode.
    """

    def __init__(self):
        self.fallback_count = 0
        self.total_operations = 0
        self.last_reason: Optional[str] = None

    def resolve(
        self, vector: PathOutcome, keyword: PathOutcome
    ) -> Tuple[SearchMode, SearchStatus, Optional[str]]:
        """Apply handle_fallback and record the outcome."""
        self.total_operations += 1
        mode, status, reason = handle_fallback(vector, keyword)
        if status == SearchStatus.DEGRADED:
            self.fallback_count += 1
            self.last_reason = reason
            logger.warning(
                f"Operating in degraded mode - fallback rate: {self.get_fallback_rate():.2%}"
            )
        return mode, status, reason

    def get_fallback_rate(self) -> float:
        if self.total_operations == 0:
            return 0.0
        return self.fallback_count / self.total_operations

    def get_stats(self) -> Dict[str, Any]:
        return {
            "fallbackCount": self.fallback_count,
            "totalOperations": self.total_operations,
            "fallbackRate": round(self.get_fallback_rate(), 4),
            "lastDegradedReason": self.last_reason,
        }
