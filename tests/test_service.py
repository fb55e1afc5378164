"""End-to-end tests of the search service against the in-memory store."""

import asyncio
from datetime import datetime, timezone

import pytest

from catalog_search_exceptions import DocumentStoreError
from config.settings import CatalogSearchSettings, EmbeddingSettings, SearchSettings
from document_store.memory_store import InMemoryDocumentStore
from semantic_search.config.base import CacheStatus, SearchMode
from semantic_search.core.models import FilterSet, PriceRange, SearchOptions, SearchQuery
from semantic_search.core.search_ops_exceptions import (
    SearchTimeoutError,
    StoreUnavailableError,
)
from semantic_search.core.service import SemanticSearchService
from semantic_search.ranking.fusion import ResultFusion

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


class BrokenStore(InMemoryDocumentStore):
    async def vector_search(self, embedding, filters, measure, top_k):
        raise DocumentStoreError("connection refused")

    async def filtered_documents(self, filters, limit):
        raise DocumentStoreError("connection refused")

    async def health_check(self):
        raise DocumentStoreError("connection refused")


def ml_query(**options) -> SearchQuery:
    return SearchQuery(
        text="machine learning AI services",
        filters=FilterSet(
            categories=["machine_learning"], price_range=PriceRange(min=100, max=1000)
        ),
        options=SearchOptions(**options),
    )


async def test_ml_search_honours_filters_and_threshold(service) -> None:
    response = await service.execute(ml_query(include_explanation=True))

    assert response.results
    assert response.total_count == len(response.results)
    metadata = response.query_metadata
    assert metadata.search_mode == SearchMode.HYBRID
    assert not metadata.degraded
    assert metadata.threshold == pytest.approx(0.7 * 0.8)
    for result in response.results:
        document = result.document
        assert document["category"] == "machine_learning"
        assert 100 <= document["pricing"]["startingPrice"] <= 1000
        cutoff = result.explanation["threshold"]
        assert cutoff is not None and cutoff <= metadata.threshold
        assert result.combined_score >= cutoff


async def test_response_wire_form(service) -> None:
    data = (await service.execute(ml_query(include_explanation=True))).to_dict()

    assert set(data) == {"results", "totalCount", "queryMetadata", "performance", "suggestions"}
    assert data["performance"]["cacheStatus"] == "miss"
    assert data["queryMetadata"]["originalQuery"] == "machine learning AI services"
    assert "artificial intelligence" in data["queryMetadata"]["processedQuery"]
    assert data["queryMetadata"]["strategy"]["name"] == "hybrid_balanced"
    assert "explanation" in data["results"][0]
    assert "embedding" not in data["results"][0]["document"]


async def test_repeated_search_is_served_from_cache(service, genai_client) -> None:
    first = await service.execute(ml_query())
    second = await service.execute(ml_query())

    assert first.performance.cache_status == CacheStatus.MISS
    assert second.performance.cache_status == CacheStatus.HIT
    assert second.results == first.results
    assert second.query_metadata == first.query_metadata
    assert len(genai_client.aio.models.calls) == 1


async def test_cache_key_ignores_case_and_whitespace(service, genai_client) -> None:
    await service.execute(SearchQuery(text="Computer Vision"))
    cached = await service.execute(SearchQuery(text="  computer vision "))
    assert cached.performance.cache_status == CacheStatus.HIT


async def test_disabled_cache_reports_bypass(store, provider) -> None:
    settings = CatalogSearchSettings(search=SearchSettings(cache_enabled=False))
    service = SemanticSearchService(store, provider, settings)
    response = await service.execute(SearchQuery(text="chatbot"))
    assert response.performance.cache_status == CacheStatus.BYPASS


async def test_embedding_failure_degrades_to_keyword_only(service, genai_client) -> None:
    genai_client.aio.models.fail_always = ConnectionError("upstream down")
    response = await service.execute(SearchQuery(text="computer vision inspection"))

    metadata = response.query_metadata
    assert metadata.degraded
    assert metadata.search_mode == SearchMode.KEYWORD_ONLY
    assert metadata.degraded_reason == "embedding_unavailable"
    assert metadata.threshold is None
    assert metadata.weights["vector"] == 0.0
    assert response.results[0].document_id == "svc-cv-1"


async def test_embedding_failure_with_text_search_disabled(service, genai_client) -> None:
    genai_client.aio.models.fail_always = ConnectionError("upstream down")
    response = await service.execute(
        SearchQuery(text="chatbot builder", options=SearchOptions(include_text_search=False))
    )
    assert response.query_metadata.search_mode == SearchMode.KEYWORD_ONLY
    assert response.results[0].document_id == "svc-nlp-1"


async def test_text_search_disabled_is_vector_only(service) -> None:
    response = await service.execute(
        SearchQuery(text="chatbot", options=SearchOptions(include_text_search=False))
    )
    assert response.query_metadata.search_mode == SearchMode.VECTOR_ONLY
    assert not response.query_metadata.degraded
    assert response.performance.text_search_time == 0.0


async def test_all_paths_failing_raises(catalog, provider, settings) -> None:
    service = SemanticSearchService(BrokenStore(catalog), provider, settings)
    with pytest.raises(StoreUnavailableError):
        await service.execute(SearchQuery(text="chatbot"))
    assert service.cache.get_stats()["size"] == 0
    summary = await service.metrics.get_summary()
    assert summary["failed"] == 1


async def test_unsatisfiable_filters_return_nothing(service, genai_client) -> None:
    response = await service.execute(
        SearchQuery(text="chatbot", filters=FilterSet(industries=[]))
    )
    assert response.results == ()
    assert response.total_count == 0
    assert genai_client.aio.models.calls == []
    assert {s.type for s in response.suggestions} == {"filter", "category"}


async def test_spelling_suggestion(service) -> None:
    response = await service.execute(SearchQuery(text="machien leraning"))
    spelling = [s for s in response.suggestions if s.type == "spelling"]
    assert spelling and spelling[0].query == "machine learning"


async def test_pagination_across_requests(service) -> None:
    full = await service.execute(
        SearchQuery("machine learning", options=SearchOptions(limit=10, threshold=0.0))
    )
    page = await service.execute(
        SearchQuery("machine learning", options=SearchOptions(limit=2, offset=2, threshold=0.0))
    )
    assert page.total_count == full.total_count
    assert page.results == full.results[2:4]


async def test_deadline_exceeded(store, genai_client) -> None:
    from semantic_search.providers.gemini_embedding import GeminiEmbeddingProvider

    genai_client.aio.models.hang = asyncio.Event()
    provider = GeminiEmbeddingProvider(output_dimensionality=4, timeout=5.0, client=genai_client)
    settings = CatalogSearchSettings(search=SearchSettings(request_deadline=0.05))
    service = SemanticSearchService(store, provider, settings)

    with pytest.raises(SearchTimeoutError):
        await service.execute(SearchQuery(text="chatbot"))
    assert service.cache.get_stats()["size"] == 0
    assert (await service.metrics.get_summary())["timeouts"] == 1


async def test_cancellation_caches_nothing(service, genai_client) -> None:
    genai_client.aio.models.hang = asyncio.Event()
    task = asyncio.create_task(service.execute(SearchQuery(text="chatbot")))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert service.cache.get_stats()["size"] == 0
    assert (await service.metrics.get_summary())["cancelled"] == 1


async def test_candidate_pool_bounds(service) -> None:
    assert service.candidate_pool(SearchQuery("x", options=SearchOptions(limit=5))) == 50
    assert service.candidate_pool(SearchQuery("x", options=SearchOptions(limit=30, offset=10))) == 120
    assert service.candidate_pool(SearchQuery("x", options=SearchOptions(limit=100, offset=900))) == 300


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


async def test_health_check_healthy(service) -> None:
    await service.execute(SearchQuery(text="chatbot"))
    report = await service.health_check()

    assert report["healthy"] is True
    assert report["status"] == "healthy"
    assert set(report["services"]) == {"vectorSearch", "embedding", "textStore"}
    assert report["performance"]["searches"]["totalSearches"] == 1


async def test_health_check_degraded_when_embedding_down(service, genai_client) -> None:
    genai_client.aio.models.fail_always = ConnectionError("upstream down")
    report = await service.health_check()
    assert report["healthy"] is True
    assert report["status"] == "degraded"
    assert report["services"]["embedding"]["healthy"] is False


async def test_health_check_unhealthy_when_store_down(catalog, provider, settings) -> None:
    service = SemanticSearchService(BrokenStore(catalog), provider, settings)
    report = await service.health_check()
    assert report["healthy"] is False
    assert report["status"] == "unhealthy"
    assert "connection refused" in report["services"]["vectorSearch"]["error"]


async def test_from_settings_requires_api_key(monkeypatch) -> None:
    from catalog_search_exceptions import ConfigurationError

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("CATALOG_EMBEDDING_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        SemanticSearchService.from_settings(CatalogSearchSettings(embedding=EmbeddingSettings()))


async def test_from_settings_with_injected_client(genai_client, store) -> None:
    settings = CatalogSearchSettings(embedding=EmbeddingSettings(dimension=4))
    service = SemanticSearchService.from_settings(
        settings, store=store, embedding_client=genai_client
    )
    service.fusion = ResultFusion(now=lambda: NOW)
    response = await service.execute(SearchQuery(text="computer vision"))
    assert response.results[0].document_id == "svc-cv-1"
    await service.close()
