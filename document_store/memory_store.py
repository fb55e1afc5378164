"""
In-Memory Document Store

This module keeps catalog documents and their embeddings in process and
computes distances with numpy. It backs tests and small deployments, and
serves as the reference behaviour for the Milvus store.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from catalog_search_exceptions import DocumentStoreError
from semantic_search.config.base import DistanceMeasure
from semantic_search.core.models import FilterSet
from semantic_search.filters.engine import FilterEngine
from .base import DocumentStore, StoreHit

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """
    Document store over a list of catalog documents.

    Args:
        documents: Catalog documents; each needs a unique id field
        id_field: Name of the primary key field
        vector_field: Name of the field holding the document embedding
        filter_engine: Engine evaluating filters before distances are computed
    """

    def __init__(
        self,
        documents: Iterable[Dict[str, Any]] = (),
        id_field: str = "id",
        vector_field: str = "embedding",
        filter_engine: Optional[FilterEngine] = None,
    ):
        self.id_field = id_field
        self.vector_field = vector_field
        self.filter_engine = filter_engine or FilterEngine()
        self._documents: Dict[str, Dict[str, Any]] = {}
        for document in documents:
            self.add(document)
        logger.info(f"InMemoryDocumentStore initialized with {len(self._documents)} documents")

    @classmethod
    def from_json_file(cls, path: Union[str, Path], **kwargs: Any) -> "InMemoryDocumentStore":
        """Load documents from a JSON array file."""
        try:
            with open(path, 'r') as f:
                documents = json.load(f)
        except (OSError, ValueError) as e:
            raise DocumentStoreError(f"Failed to load documents from {path}: {e}") from e
        if not isinstance(documents, list):
            raise DocumentStoreError(f"{path} must contain a JSON array of documents")
        return cls(documents, **kwargs)

    def add(self, document: Dict[str, Any]) -> None:
        if self.id_field not in document:
            raise DocumentStoreError(f"Document is missing its '{self.id_field}' field")
        self._documents[str(document[self.id_field])] = document

    def _public(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Document as returned to callers, without its embedding."""
        return {k: v for k, v in document.items() if k != self.vector_field}

    def _candidates(self, filters: Optional[FilterSet]) -> List[Dict[str, Any]]:
        ordered = [self._documents[key] for key in sorted(self._documents)]
        return self.filter_engine.apply(filters, ordered)

    async def vector_search(
        self,
        embedding: Sequence[float],
        filters: Optional[FilterSet],
        measure: DistanceMeasure,
        top_k: int,
    ) -> List[StoreHit]:
        """
        Exact nearest-neighbour search over the filtered population.

        Documents without an embedding of the query's dimension are skipped.
        """
        query = np.asarray(embedding, dtype=np.float64)
        population = [
            doc for doc in self._candidates(filters)
            if len(doc.get(self.vector_field) or ()) == query.shape[0]
        ]
        if not population or top_k <= 0:
            return []

        matrix = np.asarray([doc[self.vector_field] for doc in population], dtype=np.float64)
        raw = self._raw_values(matrix, query, measure)

        hits = [
            StoreHit(str(doc[self.id_field]), self._public(doc), float(value))
            for doc, value in zip(population, raw)
        ]
        if measure == DistanceMeasure.DOT:
            hits.sort(key=lambda hit: (-hit.raw, hit.document_id))
        else:
            hits.sort(key=lambda hit: (hit.raw, hit.document_id))
        return hits[:top_k]

    @staticmethod
    def _raw_values(matrix: np.ndarray, query: np.ndarray, measure: DistanceMeasure) -> np.ndarray:
        if measure == DistanceMeasure.DOT:
            return matrix @ query
        if measure == DistanceMeasure.EUCLIDEAN:
            return np.linalg.norm(matrix - query, axis=1)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        similarity = np.divide(
            matrix @ query, norms, out=np.zeros(matrix.shape[0]), where=norms > 0
        )
        return 1.0 - similarity

    async def filtered_documents(
        self, filters: Optional[FilterSet], limit: int
    ) -> List[Dict[str, Any]]:
        return [self._public(doc) for doc in self._candidates(filters)[:limit]]

    async def count(self) -> int:
        return len(self._documents)

    async def health_check(self) -> Dict[str, Any]:
        start_time = time.time()
        count = await self.count()
        return {
            "healthy": True,
            "backend": "memory",
            "documents": count,
            "latency": round((time.time() - start_time) * 1000, 2),
        }
