"""Tests for the vector and keyword search paths and path fallback."""

import asyncio

import pytest

from catalog_search_exceptions import DocumentStoreError
from document_store.memory_store import InMemoryDocumentStore
from semantic_search.config.base import DistanceMeasure, SearchMode
from semantic_search.core.models import CandidateResult, FilterSet
from semantic_search.core.search_ops_exceptions import (
    EmbeddingUnavailableError,
    StoreUnavailableError,
)
from semantic_search.search.bm25 import BM25Config, BM25Scorer
from semantic_search.search.fallback import FallbackManager, PathOutcome, handle_fallback
from semantic_search.search.keyword import KeywordSearch, searchable_text
from semantic_search.search.vector import VectorSearch, similarity_from_raw
from semantic_search.utils.metrics import SearchStatus


class BrokenStore(InMemoryDocumentStore):
    async def vector_search(self, embedding, filters, measure, top_k):
        raise DocumentStoreError("connection refused")

    async def filtered_documents(self, filters, limit):
        raise DocumentStoreError("connection refused")


class SlowStore(InMemoryDocumentStore):
    async def vector_search(self, embedding, filters, measure, top_k):
        await asyncio.sleep(1)
        return []


# ---------------------------------------------------------------------------
# Score mapping
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, measure, expected",
    [
        (0.0, DistanceMeasure.COSINE, 1.0),
        (0.25, DistanceMeasure.COSINE, 0.75),
        (1.7, DistanceMeasure.COSINE, 0.0),
        (0.0, DistanceMeasure.EUCLIDEAN, 1.0),
        (1.0, DistanceMeasure.EUCLIDEAN, 0.5),
        (0.4, DistanceMeasure.DOT, 0.4),
        (-2.0, DistanceMeasure.DOT, 0.0),
        (3.0, DistanceMeasure.DOT, 1.0),
    ],
)
def test_similarity_from_raw(raw, measure, expected) -> None:
    assert similarity_from_raw(raw, measure) == pytest.approx(expected)


# ---------------------------------------------------------------------------
# Vector path
# ---------------------------------------------------------------------------


async def test_vector_search_orders_by_similarity_then_id(store) -> None:
    results = await VectorSearch(store).search(
        [1.0, 0.0, 0.0, 0.0], None, DistanceMeasure.COSINE, 10
    )
    ids = [r.document_id for r in results]
    # svc-ml-1 and svc-ml-3 share the same vector
    assert ids[:4] == ["svc-ml-1", "svc-ml-3", "svc-ml-4", "svc-ml-2"]
    assert results[0].vector_score == pytest.approx(1.0)
    assert all(0.0 <= r.vector_score <= 1.0 for r in results)


async def test_vector_search_prefilters_before_top_k(store) -> None:
    filters = FilterSet(categories=["computer_vision"])
    results = await VectorSearch(store).search(
        [1.0, 0.0, 0.0, 0.0], filters, DistanceMeasure.COSINE, 1
    )
    assert [r.document_id for r in results] == ["svc-cv-1"]


async def test_vector_search_returns_fewer_than_top_k(store) -> None:
    results = await VectorSearch(store).search(
        [0.0, 1.0, 0.0, 0.0], FilterSet(categories=["nlp"]), DistanceMeasure.EUCLIDEAN, 50
    )
    assert len(results) == 1
    assert results[0].vector_score == pytest.approx(1.0 / (1.0 + 2 ** 0.5))


async def test_vector_search_strips_embeddings(store) -> None:
    results = await VectorSearch(store).search(
        [1.0, 0.0, 0.0, 0.0], None, DistanceMeasure.DOT, 3
    )
    assert all("embedding" not in r.document for r in results)


async def test_vector_search_store_failure(catalog) -> None:
    with pytest.raises(StoreUnavailableError):
        await VectorSearch(BrokenStore(catalog)).search(
            [1.0, 0.0, 0.0, 0.0], None, DistanceMeasure.COSINE, 5
        )


async def test_vector_search_timeout(catalog) -> None:
    with pytest.raises(StoreUnavailableError, match="timed out"):
        await VectorSearch(SlowStore(catalog), timeout=0.01).search(
            [1.0, 0.0, 0.0, 0.0], None, DistanceMeasure.COSINE, 5
        )


# ---------------------------------------------------------------------------
# Keyword path
# ---------------------------------------------------------------------------


def test_bm25_prefers_rare_and_repeated_terms() -> None:
    scorer = BM25Scorer()
    scores = scorer.score(
        "vision inspection",
        ["computer vision inspection inspection", "vision dashboards", "chatbot builder"],
    )
    assert scores[0] > scores[1] > scores[2] == 0.0


def test_bm25_stopwords_and_short_terms() -> None:
    scorer = BM25Scorer()
    assert scorer.tokenize("Find me a ML tool") == ["ml", "tool"]
    assert BM25Scorer(BM25Config(enable_stopwords=False)).tokenize("find me") == ["find", "me"]


def test_bm25_config_validation() -> None:
    with pytest.raises(ValueError):
        BM25Config(k1=0)
    with pytest.raises(ValueError):
        BM25Config(b=1.5)


def test_searchable_text_weights_name() -> None:
    text = searchable_text({"name": "Vision", "tags": ["cv"], "description": None})
    assert text.split().count("Vision") == 3
    assert text.split().count("cv") == 2


async def test_keyword_search_normalizes_to_best_match(store) -> None:
    results = await KeywordSearch(store).search("computer vision inspection", None, 10)
    assert results[0].document_id == "svc-cv-1"
    assert results[0].keyword_score == pytest.approx(1.0)
    assert all(0.0 < r.keyword_score <= 1.0 for r in results)


async def test_keyword_search_respects_filters(store) -> None:
    results, scanned = await KeywordSearch(store).scan(
        "machine learning", FilterSet(categories=["machine_learning"]), 10
    )
    assert scanned == 4
    assert {r.document["category"] for r in results} == {"machine_learning"}


async def test_keyword_search_no_match(store) -> None:
    assert await KeywordSearch(store).search("quantum blockchain", None, 10) == []


async def test_keyword_search_store_failure(catalog) -> None:
    with pytest.raises(StoreUnavailableError):
        await KeywordSearch(BrokenStore(catalog)).search("vision", None, 10)


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------


def _candidate() -> CandidateResult:
    return CandidateResult(document_id="svc-1", document={"id": "svc-1"}, keyword_score=1.0)


def test_fallback_hybrid_when_both_succeed() -> None:
    mode, status, reason = handle_fallback(PathOutcome([_candidate()]), PathOutcome([]))
    assert (mode, status, reason) == (SearchMode.HYBRID, SearchStatus.SUCCESS, None)


def test_fallback_keyword_only_on_embedding_failure() -> None:
    vector = PathOutcome(error=EmbeddingUnavailableError("quota"))
    mode, status, reason = handle_fallback(vector, PathOutcome([_candidate()]))
    assert mode == SearchMode.KEYWORD_ONLY
    assert status == SearchStatus.DEGRADED
    assert reason == "embedding_unavailable"


def test_fallback_vector_only_when_keyword_skipped() -> None:
    mode, status, _ = handle_fallback(PathOutcome([_candidate()]), PathOutcome(skipped=True))
    assert mode == SearchMode.VECTOR_ONLY
    assert status == SearchStatus.SUCCESS


def test_fallback_raises_when_every_path_fails() -> None:
    vector = PathOutcome(error=StoreUnavailableError("down"))
    keyword = PathOutcome(error=StoreUnavailableError("down"))
    with pytest.raises(StoreUnavailableError):
        handle_fallback(vector, keyword)


def test_fallback_manager_tracks_rate() -> None:
    manager = FallbackManager()
    manager.resolve(PathOutcome([_candidate()]), PathOutcome([]))
    manager.resolve(PathOutcome(error=StoreUnavailableError("down")), PathOutcome([]))
    stats = manager.get_stats()
    assert stats["fallbackCount"] == 1
    assert stats["fallbackRate"] == 0.5
    assert stats["lastDegradedReason"] == "vector_search_unavailable"
