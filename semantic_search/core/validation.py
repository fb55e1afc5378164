"""
Search Request Validation

This module defines Pydantic models for API-level validation of search
requests and converts a validated body into an immutable SearchQuery.
"""

import math
from numbers import Real
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from config.settings import SearchSettings
from ..config.base import DistanceMeasure
from ..filters.engine import FilterEngine
from .models import FilterSet, SearchOptions, SearchQuery
from .search_ops_exceptions import InvalidSearchParametersError

EMPTY_QUERY_MESSAGE = "Query cannot be empty"
QUERY_TYPE_MESSAGE = "Query must be a non-empty string"


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


class SearchOptionsParams(BaseModel):
    """
    Pydantic model for the "options" member of a search request.

    Fields keep their wire (camelCase) names; unknown keys are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    limit: Optional[int] = None
    offset: Optional[int] = None
    threshold: Optional[float] = None
    distanceMeasure: Optional[str] = None
    includeTextSearch: Optional[bool] = None
    includeExplanation: Optional[bool] = None
    diversify: Optional[bool] = None

    @field_validator("limit", mode="before")
    @classmethod
    def validate_limit(cls, v):
        """Limit must be a whole number within [1, 100]"""
        if v is None:
            return v
        if not _is_number(v) or int(v) != v or not 1 <= v <= 100:
            raise ValueError("Limit must be a number between 1 and 100")
        return int(v)

    @field_validator("offset", mode="before")
    @classmethod
    def validate_offset(cls, v):
        if v is None:
            return v
        if not _is_number(v) or int(v) != v or v < 0:
            raise ValueError("Offset must be a non-negative integer")
        return int(v)

    @field_validator("threshold", mode="before")
    @classmethod
    def validate_threshold(cls, v):
        if v is None:
            return v
        if not _is_number(v) or not 0 <= v <= 1:
            raise ValueError("Threshold must be a number between 0 and 1")
        return float(v)

    @field_validator("distanceMeasure", mode="before")
    @classmethod
    def validate_distance_measure(cls, v):
        if v is None:
            return v
        try:
            return DistanceMeasure.parse(v).value
        except ValueError:
            raise ValueError("distanceMeasure must be one of cosine, euclidean, dot")

    @field_validator("includeTextSearch", "includeExplanation", "diversify", mode="before")
    @classmethod
    def validate_flags(cls, v, info):
        if v is not None and not isinstance(v, bool):
            raise ValueError(f"{info.field_name} must be a boolean")
        return v


def _first_error(error: ValidationError, prefix: str) -> InvalidSearchParametersError:
    detail = error.errors()[0]
    cause = (detail.get("ctx") or {}).get("error")
    message = str(cause) if cause is not None else detail.get("msg", "Invalid value")
    field = ".".join([prefix] + [str(part) for part in detail.get("loc", ())])
    return InvalidSearchParametersError(message, field=field)


class RequestValidator:
    """
    Validates decoded request bodies.

    Args:
        settings: Search settings providing defaults and the query length cap
        filter_engine: Engine validating the filters member
    """

    def __init__(
        self,
        settings: Optional[SearchSettings] = None,
        filter_engine: Optional[FilterEngine] = None,
    ):
        self.settings = settings or SearchSettings()
        self.filter_engine = filter_engine or FilterEngine()

    def validate_query_text(self, query: Any) -> str:
        if query is None or not isinstance(query, str):
            raise InvalidSearchParametersError(QUERY_TYPE_MESSAGE, field="query")
        if not query.strip():
            raise InvalidSearchParametersError(EMPTY_QUERY_MESSAGE, field="query")
        if len(query) > self.settings.max_query_length:
            raise InvalidSearchParametersError(
                f"Query must be at most {self.settings.max_query_length} characters",
                field="query",
            )
        return query

    def validate_filters(self, raw_filters: Any) -> FilterSet:
        result = self.filter_engine.validate(raw_filters)
        if not result.valid:
            raise InvalidSearchParametersError("; ".join(result.errors), field="filters")
        return FilterSet.from_dict(raw_filters)

    def validate_options(self, raw_options: Any) -> SearchOptions:
        if raw_options is None:
            raw_options = {}
        if not isinstance(raw_options, dict):
            raise InvalidSearchParametersError("options must be an object", field="options")
        try:
            params = SearchOptionsParams.model_validate(raw_options)
        except ValidationError as e:
            raise _first_error(e, "options") from e
        return SearchOptions.from_dict(
            params.model_dump(exclude_none=True),
            default_limit=self.settings.default_limit,
            default_threshold=self.settings.default_threshold,
        )

    def validate(self, body: Any) -> SearchQuery:
        """
        Validate a decoded request body.

        Args:
            body: The decoded JSON body

        Returns:
            SearchQuery built from the body

        Raises:
            InvalidSearchParametersError: With the first problem found
        """
        if not isinstance(body, dict):
            raise InvalidSearchParametersError("Request body must be a JSON object")
        text = self.validate_query_text(body.get("query"))
        filters = self.validate_filters(body.get("filters"))
        options = self.validate_options(body.get("options"))
        return SearchQuery(text=text, filters=filters, options=options)

    @staticmethod
    def describe() -> Dict[str, Any]:
        """Accepted request shape, for the API description document."""
        return {
            "query": "string (required, 1-1000 characters)",
            "filters": {
                "categories": "string[]",
                "industries": "string[]",
                "providerTypes": "string[]",
                "priceRange": {"min": "number >= 0", "max": "number >= 0"},
                "minRating": "number 0-5",
                "locations": "string[]",
                "technologies": "string[]",
                "features": "string[]",
                "compliance": "string[]",
            },
            "options": {
                "limit": "integer 1-100 (default 20)",
                "offset": "integer >= 0 (default 0)",
                "threshold": "number 0-1 (default 0.7)",
                "distanceMeasure": "cosine | euclidean | dot (default cosine)",
                "includeTextSearch": "boolean (default true)",
                "includeExplanation": "boolean (default false)",
                "diversify": "boolean (default false)",
            },
        }
