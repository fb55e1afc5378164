"""
Document Store Interface

This module defines the abstract interface the search paths use to reach
catalog documents: a pre-filtered nearest-neighbour query for the vector
path and a filtered scan for the keyword path.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from semantic_search.config.base import DistanceMeasure
from semantic_search.core.models import FilterSet


@dataclass(frozen=True)
class StoreHit:
    """
    One nearest-neighbour hit.

    raw is the store's native value for the measure: a distance for cosine
    (1 - similarity) and euclidean, the inner product for dot.
    """
    document_id: str
    document: Dict[str, Any]
    raw: float


class DocumentStore(ABC):
    """Abstract base class for catalog document stores."""

    @abstractmethod
    async def vector_search(
        self,
        embedding: Sequence[float],
        filters: Optional[FilterSet],
        measure: DistanceMeasure,
        top_k: int,
    ) -> List[StoreHit]:
        """
        Return up to top_k documents nearest to the embedding.

        Filters are applied before neighbours are selected. Hits are ordered
        best first with ties broken by document id.
        """

    @abstractmethod
    async def filtered_documents(
        self, filters: Optional[FilterSet], limit: int
    ) -> List[Dict[str, Any]]:
        """Return up to limit documents satisfying the filters."""

    @abstractmethod
    async def count(self) -> int:
        """Number of documents in the store."""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Report store reachability as {healthy, latency, ...}."""

    async def close(self) -> None:
        """Release store resources; the default holds none."""
