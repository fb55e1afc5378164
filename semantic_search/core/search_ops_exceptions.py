"""
Search Operations Exceptions

This module defines custom exceptions for the semantic search pipeline,
providing clear error handling and reporting for search-related issues.
"""

from typing import Optional

from catalog_search_exceptions import OperationTimeoutError, QueryError


class SearchError(QueryError):
    """Base exception for all search-related errors"""
    pass


class InvalidSearchParametersError(SearchError):
    """Raised when a search request fails validation"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class UpstreamUnavailableError(SearchError):
    """Raised when an upstream dependency is unreachable or misbehaving"""
    pass


class EmbeddingUnavailableError(UpstreamUnavailableError):
    """Raised when the embedding provider errors, times out or returns a malformed vector"""
    pass


class StoreUnavailableError(UpstreamUnavailableError):
    """Raised when the vector or keyword store fails"""
    pass


class SearchTimeoutError(SearchError, OperationTimeoutError):
    """Raised when a search operation exceeds its deadline"""
    pass


class InternalSearchError(SearchError):
    """Raised when an unexpected error escapes the pipeline"""
    pass
