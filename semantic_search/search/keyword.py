"""
Keyword Search

This module provides the lexical search path: BM25 over the field-weighted
text of the filtered catalog, normalized so the best match scores 1.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from catalog_search_exceptions import DocumentStoreError
from document_store.base import DocumentStore
from ..core.models import CandidateResult, FilterSet
from ..core.search_ops_exceptions import StoreUnavailableError
from .bm25 import BM25Scorer

logger = logging.getLogger(__name__)

# Document field -> repetitions in the searchable text
FIELD_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("name", 3),
    ("tags", 2),
    ("description", 2),
    ("shortDescription", 1),
    ("features", 1),
    ("category", 1),
    ("technologies", 1),
    ("industries", 1),
)


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


def searchable_text(document: Dict[str, Any]) -> str:
    """Field-weighted text of a document; weight is applied by repetition."""
    parts = []
    for field_name, weight in FIELD_WEIGHTS:
        text = _field_text(document.get(field_name))
        if text:
            parts.extend([text] * weight)
    return " ".join(parts)


class KeywordSearch:
    """
    Keyword path of the search pipeline.

    Args:
        store: Document store providing the filtered population
        scorer: BM25 scorer
        timeout: Timeout in seconds for the store scan
        scan_limit: Maximum documents fetched for scoring
        id_field: Name of the document primary key
    """

    def __init__(
        self,
        store: DocumentStore,
        scorer: Optional[BM25Scorer] = None,
        timeout: float = 5.0,
        scan_limit: int = 2000,
        id_field: str = "id",
    ):
        self.store = store
        self.scorer = scorer or BM25Scorer()
        self.timeout = timeout
        self.scan_limit = scan_limit
        self.id_field = id_field

    async def search(
        self, text: str, filters: Optional[FilterSet], top_k: int
    ) -> List[CandidateResult]:
        """Rank the filtered catalog against the query text."""
        candidates, _ = await self.scan(text, filters, top_k)
        return candidates

    async def scan(
        self, text: str, filters: Optional[FilterSet], top_k: int
    ) -> Tuple[List[CandidateResult], int]:
        """
        Rank the filtered catalog and report how many documents were scored.

        Args:
            text: Processed query text
            filters: Constraints defining the scored population
            top_k: Maximum number of candidates

        Returns:
            Tuple of (candidates with keyword scores in (0, 1], documents scanned);
            only documents sharing at least one term with the query are returned

        Raises:
            StoreUnavailableError: If the store fails or times out
        """
        try:
            documents = await asyncio.wait_for(
                self.store.filtered_documents(filters, self.scan_limit),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Keyword scan timed out after {self.timeout}s")
            raise StoreUnavailableError(f"Keyword search timed out after {self.timeout}s") from e
        except DocumentStoreError as e:
            logger.error(f"Keyword scan failed: {e}", exc_info=True)
            raise StoreUnavailableError(f"Keyword search failed: {e}") from e

        scores = self.scorer.score(text, [searchable_text(doc) for doc in documents])
        best = max(scores, default=0.0)
        if best <= 0:
            return [], len(documents)

        candidates = [
            CandidateResult(
                document_id=str(doc[self.id_field]),
                document=doc,
                keyword_score=score / best,
            )
            for doc, score in zip(documents, scores)
            if score > 0
        ]
        candidates.sort(key=lambda c: (-c.keyword_score, c.document_id))
        logger.debug(f"Keyword search matched {len(candidates)} of {len(documents)} documents")
        return candidates[:top_k], len(documents)
