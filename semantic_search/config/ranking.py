"""
Ranking Configuration

This module defines the weighted ranking strategies used by result fusion
and how the classified query intent selects and blends them.
"""

from dataclasses import dataclass, replace
from typing import Dict

from .base import IntentCategory


@dataclass(frozen=True)
class RankingWeights:
    """
    Weights of the signals combined into a result's relevance score.

    combined = vector * vector_score + keyword * keyword_score
             + category * category_boost + popularity * popularity_prior
             + recency * recency_prior
    """
    vector: float = 0.6
    keyword: float = 0.2
    category: float = 0.1
    popularity: float = 0.05
    recency: float = 0.05

    def __post_init__(self):
        """Validate weights after initialization"""
        for name, value in self.as_dict().items():
            if value < 0:
                raise ValueError(f"{name} weight must be non-negative, got {value}")
        if self.total() <= 0:
            raise ValueError("At least one ranking weight must be positive")

    def as_dict(self) -> Dict[str, float]:
        return {
            "vector": self.vector,
            "keyword": self.keyword,
            "category": self.category,
            "popularity": self.popularity,
            "recency": self.recency,
        }

    def total(self) -> float:
        return sum(self.as_dict().values())

    @property
    def relevance(self) -> float:
        """Weight mass carried by the two retrieval signals."""
        return self.vector + self.keyword

    def blend(self, other: "RankingWeights", ratio: float) -> "RankingWeights":
        """Linear interpolation from self (ratio 0) to other (ratio 1)."""
        ratio = min(max(ratio, 0.0), 1.0)
        mine, theirs = self.as_dict(), other.as_dict()
        return RankingWeights(**{
            key: mine[key] + (theirs[key] - mine[key]) * ratio for key in mine
        })

    def without_vector(self) -> "RankingWeights":
        """Keyword-only mode: the vector weight moves onto the keyword signal."""
        return replace(self, vector=0.0, keyword=self.keyword + self.vector)

    def without_keyword(self) -> "RankingWeights":
        """Vector-only mode: the keyword weight moves onto the vector signal."""
        return replace(self, keyword=0.0, vector=self.vector + self.keyword)


@dataclass(frozen=True)
class RankingStrategy:
    """A named weight preset."""
    name: str
    weights: RankingWeights


HYBRID_BALANCED = RankingStrategy(
    "hybrid_balanced", RankingWeights(0.6, 0.2, 0.1, 0.05, 0.05)
)
HYBRID_SEMANTIC_HEAVY = RankingStrategy(
    "hybrid_semantic_heavy", RankingWeights(0.8, 0.1, 0.05, 0.03, 0.02)
)
KEYWORD_HEAVY = RankingStrategy(
    "keyword_heavy", RankingWeights(0.3, 0.5, 0.1, 0.05, 0.05)
)
PROVIDER_FOCUSED = RankingStrategy(
    "provider_focused", RankingWeights(0.5, 0.25, 0.05, 0.15, 0.05)
)
COMPARISON_BALANCED = RankingStrategy(
    "comparison_balanced", RankingWeights(0.55, 0.3, 0.1, 0.03, 0.02)
)

INTENT_STRATEGIES: Dict[IntentCategory, RankingStrategy] = {
    IntentCategory.GENERAL: HYBRID_BALANCED,
    IntentCategory.PRODUCT_SEARCH: HYBRID_BALANCED,
    IntentCategory.PROVIDER_SEARCH: PROVIDER_FOCUSED,
    IntentCategory.COMPARISON: COMPARISON_BALANCED,
    IntentCategory.SPECIFIC_NEED: HYBRID_SEMANTIC_HEAVY,
    IntentCategory.NAVIGATIONAL: KEYWORD_HEAVY,
}


def weights_for_intent(category: IntentCategory, confidence: float) -> RankingStrategy:
    """
    Select the ranking strategy for an intent.

    The intent preset is blended with the balanced preset in proportion to
    the classifier's confidence, so a zero-confidence intent ranks exactly
    like a general query.
    """
    preset = INTENT_STRATEGIES.get(category, HYBRID_BALANCED)
    if preset is HYBRID_BALANCED:
        return HYBRID_BALANCED
    blended = HYBRID_BALANCED.weights.blend(preset.weights, confidence)
    return RankingStrategy(preset.name, blended)
