"""
Result Fusion Module

This module merges the candidates of the vector and keyword paths into one
ranked list. Each result's combined score is a weighted sum of its
retrieval scores and three document priors (category match, popularity and
recency), with weights chosen from the query intent.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config.base import DistanceMeasure, SearchMode
from ..config.ranking import RankingStrategy, RankingWeights, weights_for_intent
from ..core.models import CandidateResult, FilterSet, QueryIntent, RankedResult, SearchOptions
from .diversify import diversify_window
from .explanation import build_explanation

logger = logging.getLogger(__name__)

POPULARITY_REVIEW_SATURATION = 100
RECENCY_HORIZON_DAYS = 365.0
THRESHOLD_MEASURES = (DistanceMeasure.COSINE, DistanceMeasure.EUCLIDEAN)


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def category_boost(
    document: Dict[str, Any], filters: Optional[FilterSet], query_text: str
) -> float:
    """1 when the document's category was asked for by filter or by name in the query."""
    category = document.get("category")
    if not category:
        return 0.0
    if filters is not None and filters.categories and category in filters.categories:
        return 1.0
    readable = str(category).replace("_", " ").replace("-", " ").lower()
    return 1.0 if readable and readable in query_text.lower() else 0.0


def popularity_prior(document: Dict[str, Any]) -> float:
    """Blend of review volume (saturating at 100 reviews) and rating out of 5."""
    reviews = max(_number(document.get("reviewCount")), 0.0)
    rating = min(max(_number(document.get("rating")), 0.0), 5.0)
    volume = min(1.0, math.log1p(reviews) / math.log1p(POPULARITY_REVIEW_SATURATION))
    return 0.5 * volume + 0.5 * (rating / 5.0)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds or seconds
        seconds = value / 1000.0 if value > 1e11 else float(value)
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def recency_prior(document: Dict[str, Any], now: datetime) -> float:
    """Linear decay from 1 (updated now) to 0 (a year or more ago)."""
    updated = _parse_timestamp(document.get("updatedAt"))
    if updated is None:
        return 0.0
    age_days = max((now - updated).total_seconds() / 86400.0, 0.0)
    return max(0.0, 1.0 - age_days / RECENCY_HORIZON_DAYS)


def candidate_cutoff(
    candidate: CandidateResult, weights: RankingWeights, threshold: float
) -> float:
    """
    Similarity threshold translated onto the combined scale of one candidate.

    Only the relevance signals the candidate actually carries count, so a
    document the keyword path did not find is held to the vector share alone.
    """
    present = weights.vector
    if candidate.keyword_score is not None:
        present += weights.keyword
    return threshold * present


@dataclass(frozen=True)
class FusionOutcome:
    """Ranked page plus what produced it."""
    results: List[RankedResult]
    total_count: int
    strategy: RankingStrategy
    search_mode: SearchMode
    threshold: Optional[float]


class ResultFusion:
    """
    Weighted fusion of vector and keyword candidates.

    Args:
        now: Clock used by the recency prior; injectable for deterministic tests
    """

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def select_strategy(intent: QueryIntent, mode: SearchMode) -> RankingStrategy:
        """Intent-blended weights, with an absent path's weight moved to the other."""
        strategy = weights_for_intent(intent.category, intent.confidence)
        weights: RankingWeights = strategy.weights
        if mode == SearchMode.KEYWORD_ONLY:
            weights = weights.without_vector()
        elif mode == SearchMode.VECTOR_ONLY:
            weights = weights.without_keyword()
        return RankingStrategy(strategy.name, weights)

    def rank(
        self,
        vector_results: Optional[Sequence[CandidateResult]],
        keyword_results: Optional[Sequence[CandidateResult]],
        intent: QueryIntent,
        options: SearchOptions,
        filters: Optional[FilterSet] = None,
        query_text: str = "",
    ) -> FusionOutcome:
        """
        Fuse, threshold, order, diversify and paginate candidates.

        Args:
            vector_results: Vector candidates, or None when the path did not contribute
            keyword_results: Keyword candidates, or None when the path did not contribute
            intent: Classified query intent
            options: Request options (threshold, measure, pagination, flags)
            filters: Request filters, used by the category prior
            query_text: Processed query text

        Returns:
            FusionOutcome with the requested page and the pre-pagination count
        """
        if vector_results is None and keyword_results is not None:
            mode = SearchMode.KEYWORD_ONLY
        elif keyword_results is None and vector_results is not None:
            mode = SearchMode.VECTOR_ONLY
        else:
            mode = SearchMode.HYBRID
        strategy = self.select_strategy(intent, mode)
        weights = strategy.weights
        now = self._now()

        merged: Dict[str, CandidateResult] = {}
        for candidate in vector_results or ():
            merged[candidate.document_id] = CandidateResult(
                document_id=candidate.document_id,
                document=candidate.document,
                vector_score=candidate.vector_score,
                distance=candidate.distance,
            )
        for candidate in keyword_results or ():
            existing = merged.get(candidate.document_id)
            if existing is None:
                merged[candidate.document_id] = CandidateResult(
                    document_id=candidate.document_id,
                    document=candidate.document,
                    keyword_score=candidate.keyword_score,
                )
            else:
                existing.keyword_score = candidate.keyword_score

        threshold = None
        if vector_results is not None and options.distance_measure in THRESHOLD_MEASURES:
            threshold = options.threshold * weights.relevance

        ranked: List[RankedResult] = []
        for document_id, candidate in merged.items():
            signals = {
                "vector": candidate.vector_score or 0.0,
                "keyword": candidate.keyword_score or 0.0,
                "category": category_boost(candidate.document, filters, query_text),
                "popularity": popularity_prior(candidate.document),
                "recency": recency_prior(candidate.document, now),
            }
            weight_map = weights.as_dict()
            combined = sum(weight_map[name] * value for name, value in signals.items())
            cutoff = None
            if threshold is not None and candidate.vector_score is not None:
                cutoff = candidate_cutoff(candidate, weights, options.threshold)
                if combined < cutoff:
                    continue
            explanation = None
            if options.include_explanation:
                explanation = build_explanation(
                    query_text, candidate.document, signals, weights,
                    candidate.vector_score, candidate.keyword_score, cutoff,
                )
            ranked.append(RankedResult(document_id, combined, candidate.document, explanation))

        ranked.sort(key=lambda r: (-r.combined_score, r.document_id))
        if options.diversify:
            ranked = diversify_window(ranked, options.offset, options.limit)

        page = ranked[options.offset:options.offset + options.limit]
        logger.debug(
            f"Fused {len(merged)} candidates into {len(ranked)} results "
            f"({mode.value}, strategy: {strategy.name}, threshold: {threshold})"
        )
        return FusionOutcome(page, len(ranked), strategy, mode, threshold)

    def fuse(
        self,
        vector_results: Optional[Sequence[CandidateResult]],
        keyword_results: Optional[Sequence[CandidateResult]],
        intent: QueryIntent,
        options: SearchOptions,
    ) -> List[RankedResult]:
        """Fuse candidates and return only the requested page."""
        return self.rank(vector_results, keyword_results, intent, options).results
