"""
Base Search Configuration

This module defines the enums shared across the search pipeline.
"""

from enum import Enum


class DistanceMeasure(str, Enum):
    """Enumeration of supported vector distance measures"""
    COSINE = "cosine"        # 1 - cosine similarity
    EUCLIDEAN = "euclidean"  # L2 distance
    DOT = "dot"              # Inner product (similarity, higher is better)

    @classmethod
    def parse(cls, value: str) -> "DistanceMeasure":
        """Accept both the canonical names and the legacy API spellings."""
        normalized = str(value).strip().lower()
        aliases = {
            "dot_product": cls.DOT,
            "ip": cls.DOT,
            "l2": cls.EUCLIDEAN,
        }
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized)


class IntentCategory(str, Enum):
    """Coarse query intent categories used to bias ranking weights"""
    GENERAL = "general"
    PRODUCT_SEARCH = "product_search"
    PROVIDER_SEARCH = "provider_search"
    COMPARISON = "comparison"
    SPECIFIC_NEED = "specific_need"
    NAVIGATIONAL = "navigational"


class SearchMode(str, Enum):
    """Which retrieval paths contributed to a response"""
    HYBRID = "hybrid"
    VECTOR_ONLY = "vector_only"
    KEYWORD_ONLY = "keyword_only"


class CacheStatus(str, Enum):
    """Response cache outcome reported in performance metadata"""
    HIT = "hit"
    MISS = "miss"
    BYPASS = "bypass"
