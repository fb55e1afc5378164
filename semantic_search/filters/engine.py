"""
Filter Engine

This module validates raw filter dictionaries, evaluates FilterSets against
catalog documents and renders them as Milvus boolean filter expressions.
The rendered expression never drops a document the in-memory predicate
keeps, so narrowing Milvus results with matches() yields the same population
on every backend.
"""

import json
import logging
import math
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional

from ..core.models import FilterSet, FilterValidation, SET_FILTER_FIELDS

logger = logging.getLogger(__name__)

# Filter attribute -> document field
SCALAR_FIELDS: Dict[str, str] = {
    "categories": "category",
    "provider_types": "providerType",
}
ARRAY_FIELDS: Dict[str, str] = {
    "industries": "industries",
    "locations": "locations",
    "technologies": "technologies",
    "features": "features",
    "compliance": "compliance",
}

PRICE_RANGE_ORDER_ERROR = "priceRange.min cannot be greater than priceRange.max"
MIN_RATING_ERROR = "minRating must be a number between 0 and 5"


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def document_price(document: Dict[str, Any]) -> float:
    """Starting price of a document; a missing price counts as 0."""
    pricing = document.get("pricing") or {}
    price = pricing.get("startingPrice") if isinstance(pricing, dict) else None
    return float(price) if _is_number(price) else 0.0


def _as_values(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value]
    return [str(value)]


class FilterEngine:
    """
    Validation, evaluation and expression rendering for catalog filters.

    Membership semantics:
    - categories and providerTypes match when the document's value is in the set
    - industries, locations, technologies, features and compliance match when
      the document's list shares at least one value with the set
    - priceRange bounds are inclusive on pricing.startingPrice
    - minRating matches documents rated at or above the floor
    """

    def validate(self, raw_filters: Any) -> FilterValidation:
        """
        Validate a raw filter dictionary from a request body.

        Unknown keys are ignored.

        Args:
            raw_filters: The decoded "filters" member of the request

        Returns:
            FilterValidation with every problem found
        """
        if raw_filters is None:
            return FilterValidation(valid=True)
        if not isinstance(raw_filters, dict):
            return FilterValidation(valid=False, errors=["filters must be an object"])

        errors: List[str] = []

        for wire_name in SET_FILTER_FIELDS:
            value = raw_filters.get(wire_name)
            if value is None:
                continue
            if not isinstance(value, list):
                errors.append(f"{wire_name} must be an array")
            elif not all(isinstance(item, str) for item in value):
                errors.append(f"{wire_name} must contain only strings")

        price_range = raw_filters.get("priceRange")
        if price_range is not None:
            if not isinstance(price_range, dict):
                errors.append("priceRange must be an object")
            else:
                low, high = price_range.get("min"), price_range.get("max")
                for bound, value in (("min", low), ("max", high)):
                    if value is not None and (not _is_number(value) or value < 0):
                        errors.append(f"priceRange.{bound} must be a non-negative number")
                if _is_number(low) and _is_number(high) and low > high:
                    errors.append(PRICE_RANGE_ORDER_ERROR)

        min_rating = raw_filters.get("minRating")
        if min_rating is not None:
            if not _is_number(min_rating) or not 0 <= min_rating <= 5:
                errors.append(MIN_RATING_ERROR)

        if errors:
            logger.debug(f"Filter validation failed: {errors}")
        return FilterValidation(valid=not errors, errors=errors)

    def matches(self, filters: FilterSet, document: Dict[str, Any]) -> bool:
        """Evaluate every constraint of the filter set against one document."""
        for attr, doc_field in SCALAR_FIELDS.items():
            allowed = getattr(filters, attr)
            if allowed is not None and document.get(doc_field) not in allowed:
                return False

        for attr, doc_field in ARRAY_FIELDS.items():
            wanted = getattr(filters, attr)
            if wanted is None:
                continue
            if wanted.isdisjoint(_as_values(document.get(doc_field))):
                return False

        if filters.price_range is not None:
            if not filters.price_range.contains(document_price(document)):
                return False

        if filters.min_rating is not None:
            rating = document.get("rating")
            if not _is_number(rating) or rating < filters.min_rating:
                return False

        return True

    def apply(
        self, filters: Optional[FilterSet], documents: Iterable[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """
        Keep the documents satisfying every constraint, preserving order.

        Args:
            filters: Constraints to apply; None or an empty FilterSet keeps everything
            documents: Candidate documents

        Returns:
            The matching documents
        """
        if filters is None or filters.is_empty():
            return list(documents)
        return [doc for doc in documents if self.matches(filters, doc)]

    def to_expression(self, filters: Optional[FilterSet]) -> str:
        """
        Render the filter set as a Milvus boolean expression.

        The expression keeps every document matches() keeps and may keep
        more. Returns an empty string when there is nothing to filter on.
        """
        if filters is None:
            return ""

        clauses: List[str] = []
        for attr, doc_field in SCALAR_FIELDS.items():
            allowed = getattr(filters, attr)
            if allowed is not None:
                clauses.append(f"{doc_field} in {json.dumps(sorted(allowed))}")

        for attr, doc_field in ARRAY_FIELDS.items():
            wanted = getattr(filters, attr)
            if wanted is not None:
                clauses.append(
                    f"array_contains_any({doc_field}, {json.dumps(sorted(wanted))})"
                )

        # A missing price counts as 0 but never satisfies a Milvus comparison,
        # so price bounds are pushed down only when they already exclude 0.
        # Looser cases are narrowed by matches() on the returned documents.
        price_range = filters.price_range
        if price_range is not None and price_range.min is not None and price_range.min > 0:
            price = 'pricing["startingPrice"]'
            clauses.append(f"{price} >= {price_range.min}")
            if price_range.max is not None:
                clauses.append(f"{price} <= {price_range.max}")

        if filters.min_rating is not None:
            clauses.append(f"rating >= {filters.min_rating}")

        return " and ".join(f"({clause})" for clause in clauses)
