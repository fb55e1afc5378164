"""
Search Data Model

This module defines the immutable request, intermediate and response
structures that flow through the search pipeline, together with their
camelCase wire representations.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..config.base import CacheStatus, DistanceMeasure, IntentCategory, SearchMode

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_THRESHOLD = 0.7

# Wire name -> attribute name for every set-valued filter
SET_FILTER_FIELDS: Dict[str, str] = {
    "categories": "categories",
    "industries": "industries",
    "providerTypes": "provider_types",
    "locations": "locations",
    "technologies": "technologies",
    "features": "features",
    "compliance": "compliance",
}


def _as_frozenset(values: Optional[Any]) -> Optional[FrozenSet[str]]:
    if values is None:
        return None
    return frozenset(str(v) for v in values)


@dataclass(frozen=True)
class PriceRange:
    """Inclusive price bounds; either side may be open."""
    min: Optional[float] = None
    max: Optional[float] = None

    def __post_init__(self):
        """Validate bounds after initialization"""
        if self.min is not None and self.min < 0:
            raise ValueError("priceRange.min must be a non-negative number")
        if self.max is not None and self.max < 0:
            raise ValueError("priceRange.max must be a non-negative number")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("priceRange.min cannot be greater than priceRange.max")

    def contains(self, price: float) -> bool:
        if self.min is not None and price < self.min:
            return False
        if self.max is not None and price > self.max:
            return False
        return True

    def to_dict(self) -> Dict[str, float]:
        data = {}
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        return data


@dataclass(frozen=True)
class FilterSet:
    """
    Structured constraints applied identically by every search path.

    A field left as None places no constraint on results. A present but empty
    set is a constraint no document satisfies.
    """
    categories: Optional[FrozenSet[str]] = None
    industries: Optional[FrozenSet[str]] = None
    provider_types: Optional[FrozenSet[str]] = None
    price_range: Optional[PriceRange] = None
    min_rating: Optional[float] = None
    locations: Optional[FrozenSet[str]] = None
    technologies: Optional[FrozenSet[str]] = None
    features: Optional[FrozenSet[str]] = None
    compliance: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        """Coerce set-valued fields and validate the rating floor"""
        for attr in SET_FILTER_FIELDS.values():
            value = getattr(self, attr)
            if value is not None and not isinstance(value, frozenset):
                object.__setattr__(self, attr, _as_frozenset(value))
        if self.min_rating is not None and not 0 <= self.min_rating <= 5:
            raise ValueError("minRating must be a number between 0 and 5")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FilterSet":
        """
        Build a FilterSet from an already validated wire dictionary.

        Unknown keys are ignored.
        """
        if not data:
            return cls()
        kwargs: Dict[str, Any] = {}
        for wire_name, attr in SET_FILTER_FIELDS.items():
            if data.get(wire_name) is not None:
                kwargs[attr] = _as_frozenset(data[wire_name])
        price_range = data.get("priceRange")
        if price_range is not None:
            kwargs["price_range"] = PriceRange(
                min=price_range.get("min"), max=price_range.get("max")
            )
        if data.get("minRating") is not None:
            kwargs["min_rating"] = float(data["minRating"])
        return cls(**kwargs)

    def is_empty(self) -> bool:
        return not self.to_dict()

    def is_unsatisfiable(self) -> bool:
        """True when some set-valued constraint is the empty set."""
        return any(
            getattr(self, attr) is not None and not getattr(self, attr)
            for attr in SET_FILTER_FIELDS.values()
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation with sets rendered as sorted lists."""
        data: Dict[str, Any] = {}
        for wire_name, attr in SET_FILTER_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[wire_name] = sorted(value)
        if self.price_range is not None:
            data["priceRange"] = self.price_range.to_dict()
        if self.min_rating is not None:
            data["minRating"] = self.min_rating
        return data


@dataclass(frozen=True)
class SearchOptions:
    """
    Per-request search options.

    limit is clamped into [1, MAX_LIMIT] rather than rejected; the HTTP
    boundary rejects out-of-range limits before options are built.
    """
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    threshold: float = DEFAULT_THRESHOLD
    distance_measure: DistanceMeasure = DistanceMeasure.COSINE
    include_text_search: bool = True
    include_explanation: bool = False
    diversify: bool = False

    def __post_init__(self):
        """Clamp the page size and validate the remaining options"""
        object.__setattr__(self, "limit", min(max(int(self.limit), 1), MAX_LIMIT))
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if not 0 <= self.threshold <= 1:
            raise ValueError(f"threshold must be between 0 and 1, got {self.threshold}")
        if not isinstance(self.distance_measure, DistanceMeasure):
            object.__setattr__(
                self, "distance_measure", DistanceMeasure.parse(self.distance_measure)
            )

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]],
        default_limit: int = DEFAULT_LIMIT,
        default_threshold: float = DEFAULT_THRESHOLD,
    ) -> "SearchOptions":
        """Build options from an already validated wire dictionary."""
        data = data or {}

        def pick(key: str, default: Any) -> Any:
            value = data.get(key)
            return default if value is None else value

        return cls(
            limit=pick("limit", default_limit),
            offset=pick("offset", 0),
            threshold=float(pick("threshold", default_threshold)),
            distance_measure=DistanceMeasure.parse(pick("distanceMeasure", "cosine")),
            include_text_search=bool(pick("includeTextSearch", True)),
            include_explanation=bool(pick("includeExplanation", False)),
            diversify=bool(pick("diversify", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "limit": self.limit,
            "offset": self.offset,
            "threshold": self.threshold,
            "distanceMeasure": self.distance_measure.value,
            "includeTextSearch": self.include_text_search,
            "includeExplanation": self.include_explanation,
            "diversify": self.diversify,
        }


@dataclass(frozen=True)
class SearchQuery:
    """A single search request; constructed once and never mutated."""
    text: str
    filters: FilterSet = field(default_factory=FilterSet)
    options: SearchOptions = field(default_factory=SearchOptions)

    def normalized(self) -> Dict[str, Any]:
        """Canonical form used for cache keys."""
        return {
            "text": self.text.strip().lower(),
            "filters": self.filters.to_dict(),
            "options": self.options.to_dict(),
        }


@dataclass(frozen=True)
class QueryIntent:
    """Classified purpose of a query."""
    category: IntentCategory = IntentCategory.GENERAL
    confidence: float = 0.0
    entities: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "confidence": self.confidence,
            "entities": self.entities,
        }


@dataclass
class CandidateResult:
    """A document produced by one search path, before fusion."""
    document_id: str
    document: Dict[str, Any]
    vector_score: Optional[float] = None
    keyword_score: Optional[float] = None
    distance: Optional[float] = None


@dataclass(frozen=True)
class RankedResult:
    """A fused, scored result in its final position."""
    document_id: str
    combined_score: float
    document: Dict[str, Any]
    explanation: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "documentId": self.document_id,
            "combinedScore": round(self.combined_score, 6),
            "document": self.document,
        }
        if self.explanation is not None:
            data["explanation"] = self.explanation
        return data


@dataclass(frozen=True)
class QueryMetadata:
    """How the query was interpreted and which paths served it."""
    original_query: str
    processed_query: str
    intent: QueryIntent
    strategy: str
    weights: Dict[str, float]
    search_mode: SearchMode
    distance_measure: DistanceMeasure
    threshold: Optional[float] = None
    degraded: bool = False
    degraded_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalQuery": self.original_query,
            "processedQuery": self.processed_query,
            "intent": self.intent.to_dict(),
            "strategy": {
                "name": self.strategy,
                "weights": {k: round(v, 4) for k, v in self.weights.items()},
            },
            "searchMode": self.search_mode.value,
            "distanceMeasure": self.distance_measure.value,
            "threshold": self.threshold,
            "degraded": self.degraded,
            "degradedReason": self.degraded_reason,
        }


@dataclass(frozen=True)
class SearchPerformance:
    """Timing breakdown in milliseconds."""
    total_time: float = 0.0
    embedding_time: float = 0.0
    vector_search_time: float = 0.0
    text_search_time: float = 0.0
    filter_time: float = 0.0
    ranking_time: float = 0.0
    documents_scanned: int = 0
    cache_status: CacheStatus = CacheStatus.MISS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTime": round(self.total_time, 2),
            "embeddingTime": round(self.embedding_time, 2),
            "vectorSearchTime": round(self.vector_search_time, 2),
            "textSearchTime": round(self.text_search_time, 2),
            "filterTime": round(self.filter_time, 2),
            "rankingTime": round(self.ranking_time, 2),
            "documentsScanned": self.documents_scanned,
            "cacheStatus": self.cache_status.value,
        }


@dataclass(frozen=True)
class SearchSuggestion:
    """A suggested refinement of the query."""
    query: str
    type: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"query": self.query, "type": self.type, "reason": self.reason}


@dataclass(frozen=True)
class SearchResponse:
    """The result envelope for one search."""
    results: Tuple[RankedResult, ...]
    total_count: int
    query_metadata: QueryMetadata
    performance: SearchPerformance
    suggestions: Tuple[SearchSuggestion, ...] = ()

    def with_cache_status(self, status: CacheStatus) -> "SearchResponse":
        return replace(self, performance=replace(self.performance, cache_status=status))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "totalCount": self.total_count,
            "queryMetadata": self.query_metadata.to_dict(),
            "performance": self.performance.to_dict(),
            "suggestions": [suggestion.to_dict() for suggestion in self.suggestions],
        }


@dataclass(frozen=True)
class FilterValidation:
    """Outcome of validating a raw filter dictionary."""
    valid: bool
    errors: List[str] = field(default_factory=list)
