"""
API Error Mapping

This module maps the exception taxonomy onto HTTP status codes and the
error codes returned in response envelopes.
"""

from dataclasses import dataclass
from typing import Optional

from catalog_search_exceptions import ConfigurationError
from semantic_search.core.search_ops_exceptions import (
    InvalidSearchParametersError,
    SearchError,
)


class ErrorCode:
    """Error codes returned in the response envelope"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_JSON = "INVALID_JSON"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SEARCH_FAILED = "SEARCH_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class ApiError:
    """An error ready to be rendered into an envelope."""
    status_code: int
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[str] = None


def invalid_json(error: Exception) -> ApiError:
    return ApiError(400, ErrorCode.INVALID_JSON, "Request body must be valid JSON", details=str(error))


def to_api_error(error: Exception) -> ApiError:
    """
    Classify an exception.

    Validation messages are returned verbatim. Upstream and internal errors
    get a generic message; their text travels in details, which the caller
    only exposes in debug mode.
    """
    if isinstance(error, InvalidSearchParametersError):
        return ApiError(400, ErrorCode.VALIDATION_ERROR, str(error), field=error.field)
    if isinstance(error, ConfigurationError):
        return ApiError(
            500, ErrorCode.CONFIGURATION_ERROR,
            "Search service is not configured", details=str(error),
        )
    if isinstance(error, SearchError):
        return ApiError(500, ErrorCode.SEARCH_FAILED, "Search failed", details=str(error))
    return ApiError(500, ErrorCode.INTERNAL_ERROR, "Internal server error", details=str(error))
