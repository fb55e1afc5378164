"""
Semantic Search Service

This module provides the SemanticSearchService class, which orchestrates one
search request end to end: cache lookup, query processing and intent
classification, the concurrent embedding/vector and keyword paths, the
post-hoc filter pass, fusion and ranking, suggestions and caching of the
response. It also aggregates the health of its dependencies.
"""

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from config.settings import CatalogSearchSettings, StoreBackend, VectorStoreSettings
from document_store.base import DocumentStore
from document_store.memory_store import InMemoryDocumentStore
from ..cache.response_cache import ResponseCache, cache_key
from ..config.base import CacheStatus
from ..filters.engine import FilterEngine
from ..providers.embedding import EmbeddingProvider
from ..query.intent import IntentClassifier
from ..query.processor import ProcessedQuery, QueryProcessor
from ..ranking.fusion import ResultFusion
from ..search.fallback import FallbackManager, PathOutcome
from ..search.keyword import KeywordSearch
from ..search.vector import VectorSearch
from ..utils.metrics import MetricsCollector, SearchMetrics, SearchStatus, Stopwatch
from .models import (
    CandidateResult,
    FilterSet,
    QueryMetadata,
    SearchPerformance,
    SearchQuery,
    SearchResponse,
    SearchSuggestion,
)
from .search_ops_exceptions import (
    EmbeddingUnavailableError,
    InternalSearchError,
    SearchError,
    SearchTimeoutError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3
SUGGESTED_CATEGORY = "Machine Learning"


def build_document_store(settings: VectorStoreSettings) -> DocumentStore:
    """
    Create the document store selected by the settings.

    Args:
        settings: Store settings

    Returns:
        A Milvus-backed store, or an in-memory store seeded from
        documents_path when one is configured
    """
    if settings.backend == StoreBackend.MILVUS:
        # pymilvus is only needed for this backend
        from document_store.milvus_store import MilvusDocumentStore
        return MilvusDocumentStore(settings)
    if settings.documents_path:
        return InMemoryDocumentStore.from_json_file(
            settings.documents_path,
            id_field=settings.id_field,
            vector_field=settings.vector_field,
        )
    return InMemoryDocumentStore(id_field=settings.id_field, vector_field=settings.vector_field)


class SemanticSearchService:
    """
    Hybrid semantic search over the service catalog.

    The service is constructed explicitly with its dependencies and owns
    them until close() is called.

    Usage:
        service = SemanticSearchService.from_settings(load_settings())
        response = await service.execute(SearchQuery(text="computer vision"))
        await service.close()
    """

    def __init__(
        self,
        store: DocumentStore,
        embedding_provider: EmbeddingProvider,
        settings: Optional[CatalogSearchSettings] = None,
        fusion: Optional[ResultFusion] = None,
        classifier: Optional[IntentClassifier] = None,
        processor: Optional[QueryProcessor] = None,
        filter_engine: Optional[FilterEngine] = None,
        cache: Optional[ResponseCache] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Document store shared by both search paths
            embedding_provider: Query embedding provider
            settings: Full settings; defaults apply when omitted
            fusion: Result fusion (injectable clock for tests)
            classifier: Query intent classifier
            processor: Query text processor
            filter_engine: Filter engine used for the post-hoc pass
            cache: Response cache; built from settings when omitted
            metrics: Metrics collector
        """
        self.settings = settings or CatalogSearchSettings()
        search_settings = self.settings.search
        store_settings = self.settings.store

        self.store = store
        self.embedding_provider = embedding_provider
        self.processor = processor or QueryProcessor(
            enable_expansion=search_settings.enable_query_expansion
        )
        self.classifier = classifier or IntentClassifier(self.processor)
        self.filter_engine = filter_engine or FilterEngine()
        self.fusion = fusion or ResultFusion()
        self.vector_search = VectorSearch(store, timeout=store_settings.vector_timeout)
        self.keyword_search = KeywordSearch(
            store,
            timeout=store_settings.keyword_timeout,
            scan_limit=store_settings.keyword_scan_limit,
            id_field=store_settings.id_field,
        )
        self.cache = cache or ResponseCache(
            ttl=search_settings.cache_ttl, max_entries=search_settings.cache_max_entries
        )
        self.cache_enabled = search_settings.cache_enabled
        self.metrics = metrics or MetricsCollector()
        self.fallback = FallbackManager()

        logger.info(
            f"SemanticSearchService initialized - store: {type(store).__name__}, "
            f"embedding model: {embedding_provider.get_model_name()}, "
            f"cache: {'on' if self.cache_enabled else 'off'}"
        )

    @classmethod
    def from_settings(
        cls,
        settings: CatalogSearchSettings,
        store: Optional[DocumentStore] = None,
        embedding_client: Optional[Any] = None,
    ) -> "SemanticSearchService":
        """
        Build a service and its dependencies from settings.

        Raises:
            ConfigurationError: If the embedding provider has no credentials
        """
        from ..providers.gemini_embedding import GeminiEmbeddingProvider

        provider = GeminiEmbeddingProvider.from_settings(settings.embedding, client=embedding_client)
        return cls(store or build_document_store(settings.store), provider, settings)

    def candidate_pool(self, query: SearchQuery) -> int:
        """Candidates fetched per path, scaled by the requested page depth."""
        search = self.settings.search
        depth = (query.options.offset + query.options.limit) * search.candidate_pool_multiplier
        return min(max(depth, search.min_candidate_pool), search.max_candidate_pool)

    async def execute(self, query: SearchQuery, request_id: Optional[str] = None) -> SearchResponse:
        """
        Execute a search request.

        Args:
            query: Validated search query
            request_id: Optional request identifier for logs and metrics

        Returns:
            SearchResponse; cache hits are reported with cacheStatus "hit"

        Raises:
            StoreUnavailableError: If no search path produced results
            SearchTimeoutError: If the request deadline passed
            InternalSearchError: If an unexpected error escaped the pipeline
        """
        watch = Stopwatch()
        key = cache_key(query)
        query_hash = key[:16]

        if self.cache_enabled:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for query {query_hash}")
                response = cached.with_cache_status(CacheStatus.HIT)
                await self._record(query_hash, request_id, watch, response, cache_hit=True)
                return response

        deadline = self.settings.search.request_deadline
        try:
            response = await asyncio.wait_for(self._run_pipeline(query, watch), timeout=deadline)
        except asyncio.TimeoutError as e:
            logger.error(f"Search {query_hash} exceeded deadline of {deadline}s")
            await self._record_failure(query_hash, request_id, watch, SearchStatus.TIMEOUT, str(e))
            raise SearchTimeoutError(f"Search exceeded deadline of {deadline}s") from e
        except asyncio.CancelledError:
            logger.info(f"Search {query_hash} cancelled")
            await self._record_failure(
                query_hash, request_id, watch, SearchStatus.CANCELLED, "Search cancelled"
            )
            raise
        except SearchError as e:
            await self._record_failure(query_hash, request_id, watch, SearchStatus.FAILURE, str(e))
            raise
        except Exception as e:
            logger.error(f"Unexpected error during search {query_hash}: {e}", exc_info=True)
            await self._record_failure(query_hash, request_id, watch, SearchStatus.FAILURE, str(e))
            raise InternalSearchError(f"Search failed unexpectedly: {e}") from e

        if self.cache_enabled:
            await self.cache.set(key, response)
        else:
            response = response.with_cache_status(CacheStatus.BYPASS)

        await self._record(query_hash, request_id, watch, response)
        logger.info(
            f"Search {query_hash} completed - results: {response.total_count}, "
            f"mode: {response.query_metadata.search_mode.value}, "
            f"time: {response.performance.total_time:.2f}ms"
        )
        return response

    async def _run_pipeline(self, query: SearchQuery, watch: Stopwatch) -> SearchResponse:
        processed = self.processor.process(query.text)
        intent = self.classifier.classify(query.text)
        filters = query.filters
        options = query.options
        pool = self.candidate_pool(query)
        timings: Dict[str, float] = {}

        if filters.is_unsatisfiable():
            logger.debug("Filters contain an empty set; nothing can match")
            vector = PathOutcome(results=[])
            keyword = PathOutcome(results=[])
            scanned = 0
        else:
            vector, keyword, scanned = await self._run_paths(processed, filters, options, pool, timings)

        mode, status, reason = self.fallback.resolve(vector, keyword)

        filter_watch = Stopwatch()
        vector_results = self._post_filter(filters, vector.results)
        keyword_results = self._post_filter(filters, keyword.results)
        filter_time = filter_watch.elapsed_ms()

        ranking_watch = Stopwatch()
        outcome = self.fusion.rank(
            vector_results, keyword_results, intent, options, filters, processed.text
        )
        ranking_time = ranking_watch.elapsed_ms()

        metadata = QueryMetadata(
            original_query=query.text,
            processed_query=processed.text,
            intent=intent,
            strategy=outcome.strategy.name,
            weights=outcome.strategy.weights.as_dict(),
            search_mode=mode,
            distance_measure=options.distance_measure,
            threshold=outcome.threshold,
            degraded=status == SearchStatus.DEGRADED,
            degraded_reason=reason,
        )
        performance = SearchPerformance(
            total_time=watch.elapsed_ms(),
            embedding_time=timings.get("embedding", 0.0),
            vector_search_time=timings.get("vector", 0.0),
            text_search_time=timings.get("keyword", 0.0),
            filter_time=filter_time,
            ranking_time=ranking_time,
            documents_scanned=scanned,
            cache_status=CacheStatus.MISS,
        )
        return SearchResponse(
            results=tuple(outcome.results),
            total_count=outcome.total_count,
            query_metadata=metadata,
            performance=performance,
            suggestions=tuple(self._suggestions(processed, filters, outcome.total_count)),
        )

    async def _run_paths(
        self,
        processed: ProcessedQuery,
        filters: FilterSet,
        options: Any,
        pool: int,
        timings: Dict[str, float],
    ) -> Tuple[PathOutcome, PathOutcome, int]:
        """
        Run the vector path (embedding, then vector search) and the keyword
        path concurrently. Pending subtasks are cancelled if this coroutine
        is cancelled or fails.
        """
        vector_task = asyncio.create_task(
            self._vector_path(processed.text, filters, options, pool, timings)
        )
        keyword_task = None
        if options.include_text_search:
            keyword_task = asyncio.create_task(
                self._keyword_path(processed.text, filters, pool, timings)
            )
        tasks = [t for t in (vector_task, keyword_task) if t is not None]

        try:
            vector = await vector_task
            if keyword_task is not None:
                keyword, scanned = await keyword_task
            elif not vector.succeeded:
                logger.warning("Vector path failed with text search disabled; running keyword search")
                keyword, scanned = await self._keyword_path(processed.text, filters, pool, timings)
            else:
                keyword, scanned = PathOutcome(skipped=True), 0
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        scanned += len(vector.results or ())
        return vector, keyword, scanned

    async def _vector_path(
        self, text: str, filters: FilterSet, options: Any, pool: int, timings: Dict[str, float]
    ) -> PathOutcome:
        embed_watch = Stopwatch()
        try:
            embedding = await self.embedding_provider.embed(text)
        except EmbeddingUnavailableError as e:
            logger.warning(f"Embedding unavailable, vector path skipped: {e}")
            return PathOutcome(error=e)
        finally:
            timings["embedding"] = embed_watch.elapsed_ms()

        search_watch = Stopwatch()
        try:
            results = await self.vector_search.search(
                embedding, filters, options.distance_measure, pool
            )
        except StoreUnavailableError as e:
            return PathOutcome(error=e)
        finally:
            timings["vector"] = search_watch.elapsed_ms()
        return PathOutcome(results=results)

    async def _keyword_path(
        self, text: str, filters: FilterSet, pool: int, timings: Dict[str, float]
    ) -> Tuple[PathOutcome, int]:
        keyword_watch = Stopwatch()
        try:
            results, scanned = await self.keyword_search.scan(text, filters, pool)
        except StoreUnavailableError as e:
            return PathOutcome(error=e), 0
        finally:
            timings["keyword"] = keyword_watch.elapsed_ms()
        return PathOutcome(results=results), scanned

    def _post_filter(
        self, filters: FilterSet, results: Optional[List[CandidateResult]]
    ) -> Optional[List[CandidateResult]]:
        """Re-check every candidate against the filters, whatever the store did."""
        if results is None or filters.is_empty():
            return results
        kept = [c for c in results if self.filter_engine.matches(filters, c.document)]
        if len(kept) != len(results):
            logger.debug(f"Post-hoc filter pass removed {len(results) - len(kept)} candidates")
        return kept

    def _suggestions(
        self, processed: ProcessedQuery, filters: FilterSet, total_count: int
    ) -> List[SearchSuggestion]:
        suggestions: List[SearchSuggestion] = []
        if processed.corrections:
            fixed = ", ".join(fix for _, fix in processed.corrections)
            suggestions.append(SearchSuggestion(
                query=processed.corrected, type="spelling", reason=f"Did you mean: {fixed}?"
            ))
        if total_count == 0 and not filters.is_empty():
            suggestions.append(SearchSuggestion(
                query=processed.corrected,
                type="filter",
                reason="Try removing some filters to see more results",
            ))
        if total_count == 0 and filters.categories is None:
            suggestions.append(SearchSuggestion(
                query=processed.corrected,
                type="category",
                reason=f"Try searching in the {SUGGESTED_CATEGORY} category",
            ))
        return suggestions[:MAX_SUGGESTIONS]

    async def _record(
        self,
        query_hash: str,
        request_id: Optional[str],
        watch: Stopwatch,
        response: SearchResponse,
        cache_hit: bool = False,
    ) -> None:
        performance = response.performance
        await self.metrics.record_metric(SearchMetrics(
            query_hash=query_hash,
            search_mode=response.query_metadata.search_mode.value,
            embedding_time_ms=performance.embedding_time,
            vector_search_time_ms=performance.vector_search_time,
            text_search_time_ms=performance.text_search_time,
            total_time_ms=watch.elapsed_ms(),
            results_count=len(response.results),
            cache_hit=cache_hit,
            status=(
                SearchStatus.DEGRADED if response.query_metadata.degraded else SearchStatus.SUCCESS
            ),
            request_id=request_id,
        ))

    async def _record_failure(
        self,
        query_hash: str,
        request_id: Optional[str],
        watch: Stopwatch,
        status: SearchStatus,
        message: str,
    ) -> None:
        await self.metrics.record_metric(SearchMetrics(
            query_hash=query_hash,
            total_time_ms=watch.elapsed_ms(),
            status=status,
            error_message=message,
            request_id=request_id,
        ))

    async def _probe(self, name: str, check: Awaitable[Dict[str, Any]], timeout: float) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(check, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{name} health check timed out after {timeout}s")
            return {"healthy": False, "error": f"Health check timed out after {timeout}s"}
        except Exception as e:
            logger.warning(f"{name} health check failed: {e}")
            return {"healthy": False, "error": str(e)}

    async def _text_store_check(self) -> Dict[str, Any]:
        watch = Stopwatch()
        await self.store.filtered_documents(None, 1)
        return {"healthy": True, "latency": round(watch.elapsed_ms(), 2)}

    async def health_check(self) -> Dict[str, Any]:
        """
        Aggregate the health of the pipeline's dependencies.

        Only vector or text store failures make the service unhealthy; an
        embedding failure alone degrades it, since searches fall back to
        keyword-only results.

        Returns:
            Dictionary with healthy, status, services and performance
        """
        store_settings = self.settings.store
        vector_health, embedding_health, text_health = await asyncio.gather(
            self._probe("Vector store", self.store.health_check(), store_settings.vector_timeout),
            self._probe(
                "Embedding", self.embedding_provider.health_check(),
                self.settings.embedding.timeout * self.settings.embedding.max_attempts,
            ),
            self._probe("Text store", self._text_store_check(), store_settings.keyword_timeout),
        )
        healthy = bool(vector_health.get("healthy")) and bool(text_health.get("healthy"))
        if not healthy:
            status = "unhealthy"
        elif not embedding_health.get("healthy"):
            status = "degraded"
        else:
            status = "healthy"

        return {
            "healthy": healthy,
            "status": status,
            "services": {
                "vectorSearch": vector_health,
                "embedding": embedding_health,
                "textStore": text_health,
            },
            "performance": {
                "searches": await self.metrics.get_summary(),
                "cache": self.cache.get_stats(),
                "fallback": self.fallback.get_stats(),
            },
        }

    async def close(self) -> None:
        """Release the store and the embedding provider."""
        await self.store.close()
        await self.embedding_provider.close()
        await self.cache.clear()
        logger.info("SemanticSearchService closed")

