"""
Core Search Module

This module provides the data model and exceptions shared by the search
pipeline. The orchestrating service lives in semantic_search.core.service.
"""

from .models import (
    FilterSet,
    PriceRange,
    SearchOptions,
    SearchQuery,
    QueryIntent,
    CandidateResult,
    RankedResult,
    SearchResponse,
)
from .search_ops_exceptions import (
    SearchError,
    InvalidSearchParametersError,
    UpstreamUnavailableError,
    EmbeddingUnavailableError,
    StoreUnavailableError,
    SearchTimeoutError,
    InternalSearchError,
)

__all__ = [
    # Data model
    "FilterSet",
    "PriceRange",
    "SearchOptions",
    "SearchQuery",
    "QueryIntent",
    "CandidateResult",
    "RankedResult",
    "SearchResponse",

    # Exceptions
    "SearchError",
    "InvalidSearchParametersError",
    "UpstreamUnavailableError",
    "EmbeddingUnavailableError",
    "StoreUnavailableError",
    "SearchTimeoutError",
    "InternalSearchError",
]
