"""
Ranking Module

Fusion of retrieval paths into one ranked, optionally diversified and
explained result list.
"""

from .diversify import diversify, diversify_window
from .explanation import build_explanation
from .fusion import (
    FusionOutcome,
    ResultFusion,
    category_boost,
    popularity_prior,
    recency_prior,
)

__all__ = [
    "diversify",
    "diversify_window",
    "build_explanation",
    "FusionOutcome",
    "ResultFusion",
    "category_boost",
    "popularity_prior",
    "recency_prior",
]
