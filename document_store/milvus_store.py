"""
Milvus Document Store

This module serves catalog documents from a Milvus collection. Filters are
pushed down as boolean expressions and the blocking pymilvus client runs on
a small thread pool so searches never block the event loop.
"""

import asyncio
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence

from pymilvus import MilvusClient

from catalog_search_exceptions import DocumentStoreError
from config.settings import VectorStoreSettings
from semantic_search.config.base import DistanceMeasure
from semantic_search.core.models import FilterSet
from semantic_search.filters.engine import FilterEngine
from .base import DocumentStore, StoreHit

logger = logging.getLogger(__name__)

METRIC_TYPES: Dict[DistanceMeasure, str] = {
    DistanceMeasure.COSINE: "COSINE",
    DistanceMeasure.EUCLIDEAN: "L2",
    DistanceMeasure.DOT: "IP",
}


class MilvusDocumentStore(DocumentStore):
    """
    Document store backed by a Milvus collection.

    Milvus reports cosine as a similarity and L2 as a squared distance; hits
    are converted to the conventions of StoreHit.raw.
    """

    def __init__(
        self,
        settings: VectorStoreSettings,
        client: Optional[Any] = None,
        filter_engine: Optional[FilterEngine] = None,
        max_workers: int = 4,
    ):
        """
        Initialize the store.

        Args:
            settings: Store settings naming the collection and fields
            client: Optional preconfigured client with the MilvusClient API
            filter_engine: Engine rendering filter expressions
            max_workers: Threads available for blocking client calls
        """
        self.settings = settings
        self.filter_engine = filter_engine or FilterEngine()
        self._client = client or MilvusClient(
            uri=settings.uri, token=settings.token.get_secret_value()
        )
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"MilvusStore-{id(self)}"
        )
        logger.info(
            f"MilvusDocumentStore initialized - uri: {settings.uri}, "
            f"collection: {settings.collection_name}"
        )

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, partial(func, *args, **kwargs))
        except Exception as e:
            name = getattr(func, '__name__', 'call')
            raise DocumentStoreError(f"Milvus operation {name} failed: {e}") from e

    def _output_fields(self) -> List[str]:
        return list(self.settings.output_fields)

    def _public(self, entity: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in entity.items() if k != self.settings.vector_field}

    @staticmethod
    def _to_raw(distance: float, measure: DistanceMeasure) -> float:
        if measure == DistanceMeasure.COSINE:
            return 1.0 - distance
        if measure == DistanceMeasure.EUCLIDEAN:
            return math.sqrt(max(distance, 0.0))
        return distance

    async def vector_search(
        self,
        embedding: Sequence[float],
        filters: Optional[FilterSet],
        measure: DistanceMeasure,
        top_k: int,
    ) -> List[StoreHit]:
        expression = self.filter_engine.to_expression(filters)
        results = await self._run(
            self._client.search,
            collection_name=self.settings.collection_name,
            data=[list(embedding)],
            anns_field=self.settings.vector_field,
            filter=expression,
            limit=top_k,
            output_fields=self._output_fields(),
            search_params={"metric_type": METRIC_TYPES[measure]},
        )
        id_field = self.settings.id_field
        hits = []
        for hit in (results[0] if results else []):
            entity = dict(hit.get("entity") or {})
            document_id = str(hit.get("id", entity.get(id_field)))
            entity.setdefault(id_field, hit.get("id"))
            hits.append(StoreHit(
                document_id, self._public(entity), self._to_raw(float(hit["distance"]), measure)
            ))

        if measure == DistanceMeasure.DOT:
            hits.sort(key=lambda h: (-h.raw, h.document_id))
        else:
            hits.sort(key=lambda h: (h.raw, h.document_id))
        logger.debug(f"Milvus vector search returned {len(hits)} hits (filter: {expression!r})")
        return hits

    async def filtered_documents(
        self, filters: Optional[FilterSet], limit: int
    ) -> List[Dict[str, Any]]:
        expression = self.filter_engine.to_expression(filters)
        rows = await self._run(
            self._client.query,
            collection_name=self.settings.collection_name,
            filter=expression,
            limit=limit,
            output_fields=self._output_fields(),
        )
        return [self._public(row) for row in rows]

    async def count(self) -> int:
        stats = await self._run(
            self._client.get_collection_stats, collection_name=self.settings.collection_name
        )
        return int(stats.get("row_count", 0))

    async def health_check(self) -> Dict[str, Any]:
        start_time = time.time()
        try:
            exists = await self._run(
                self._client.has_collection, collection_name=self.settings.collection_name
            )
            if not exists:
                return {
                    "healthy": False,
                    "backend": "milvus",
                    "latency": round((time.time() - start_time) * 1000, 2),
                    "error": f"Collection '{self.settings.collection_name}' does not exist",
                }
            documents = await self.count()
        except DocumentStoreError as e:
            logger.warning(f"Milvus health check failed: {e}")
            return {
                "healthy": False,
                "backend": "milvus",
                "latency": round((time.time() - start_time) * 1000, 2),
                "error": str(e),
            }
        return {
            "healthy": True,
            "backend": "milvus",
            "documents": documents,
            "latency": round((time.time() - start_time) * 1000, 2),
        }

    async def close(self) -> None:
        await self._run(self._client.close)
        self._executor.shutdown(wait=False)
        logger.info("MilvusDocumentStore closed")
