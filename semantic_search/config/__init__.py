"""
Search Configuration Module

This module provides the enums and ranking presets used across the
search pipeline.
"""

from .base import (
    DistanceMeasure,
    IntentCategory,
    SearchMode,
    CacheStatus,
)
from .ranking import (
    RankingWeights,
    RankingStrategy,
    INTENT_STRATEGIES,
    HYBRID_BALANCED,
    weights_for_intent,
)

__all__ = [
    # Enums
    "DistanceMeasure",
    "IntentCategory",
    "SearchMode",
    "CacheStatus",

    # Ranking
    "RankingWeights",
    "RankingStrategy",
    "INTENT_STRATEGIES",
    "HYBRID_BALANCED",
    "weights_for_intent",
]
