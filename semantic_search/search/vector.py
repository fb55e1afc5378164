"""
Vector Similarity Search

This module runs the pre-filtered nearest-neighbour query against the
document store and maps the store's raw values onto similarity scores in
[0, 1] where higher is better.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from catalog_search_exceptions import DocumentStoreError
from document_store.base import DocumentStore
from ..config.base import DistanceMeasure
from ..core.models import CandidateResult, FilterSet
from ..core.search_ops_exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


def similarity_from_raw(raw: float, measure: DistanceMeasure) -> float:
    """
    Map a store value onto a [0, 1] similarity score.

    - cosine: 1 - min(distance, 1)
    - euclidean: 1 / (1 + distance)
    - dot: the inner product clamped into [0, 1]
    """
    if measure == DistanceMeasure.COSINE:
        return max(0.0, 1.0 - min(raw, 1.0))
    if measure == DistanceMeasure.EUCLIDEAN:
        return 1.0 / (1.0 + max(raw, 0.0))
    return min(max(raw, 0.0), 1.0)


class VectorSearch:
    """
    Vector path of the search pipeline.

    Args:
        store: Document store answering nearest-neighbour queries
        timeout: Timeout in seconds for one store query
    """

    def __init__(self, store: DocumentStore, timeout: float = 5.0):
        self.store = store
        self.timeout = timeout

    async def search(
        self,
        embedding: Sequence[float],
        filters: Optional[FilterSet],
        measure: DistanceMeasure,
        top_k: int,
    ) -> List[CandidateResult]:
        """
        Find the documents nearest to a query embedding.

        Args:
            embedding: Query vector
            filters: Constraints applied before neighbours are selected
            measure: Distance measure to rank by
            top_k: Maximum number of candidates

        Returns:
            Candidates ordered by similarity, ties broken by document id;
            empty when nothing matches

        Raises:
            StoreUnavailableError: If the store fails or times out
        """
        try:
            hits = await asyncio.wait_for(
                self.store.vector_search(embedding, filters, measure, top_k),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Vector search timed out after {self.timeout}s")
            raise StoreUnavailableError(f"Vector search timed out after {self.timeout}s") from e
        except DocumentStoreError as e:
            logger.error(f"Vector search failed: {e}", exc_info=True)
            raise StoreUnavailableError(f"Vector search failed: {e}") from e

        candidates = [
            CandidateResult(
                document_id=hit.document_id,
                document=hit.document,
                vector_score=similarity_from_raw(hit.raw, measure),
                distance=hit.raw,
            )
            for hit in hits
        ]
        candidates.sort(key=lambda c: (-c.vector_score, c.document_id))
        logger.debug(f"Vector search returned {len(candidates)} candidates ({measure.value})")
        return candidates[:top_k]
