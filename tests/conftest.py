"""Shared fixtures: a small catalog, a fake GenAI client and a wired service."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from config.settings import (
    CatalogSearchSettings,
    EmbeddingSettings,
    SearchSettings,
    VectorStoreSettings,
)
from document_store.memory_store import InMemoryDocumentStore
from semantic_search.core.service import SemanticSearchService
from semantic_search.providers.gemini_embedding import GeminiEmbeddingProvider
from semantic_search.ranking.fusion import ResultFusion
from semantic_search.resilience.retry import RetryConfig

FIXED_NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)
DIMENSION = 4


# ---------------------------------------------------------------------------
# Fake GenAI client
# ---------------------------------------------------------------------------


@dataclass
class FakeEmbedding:
    values: List[float]


@dataclass
class FakeEmbedResult:
    embeddings: List[FakeEmbedding]


def topic_vector(text: str) -> List[float]:
    """Deterministic query vectors: one axis per catalog topic."""
    lowered = text.lower()
    if "vision" in lowered or "image" in lowered:
        return [0.0, 1.0, 0.0, 0.0]
    if "chatbot" in lowered or "conversational" in lowered:
        return [0.0, 0.0, 1.0, 0.0]
    return [1.0, 0.0, 0.0, 0.0]


class FakeModels:
    """Records calls; can fail, hang or return vectors of the wrong size."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.failures: List[BaseException] = []
        self.fail_always: Optional[BaseException] = None
        self.hang: Optional[asyncio.Event] = None
        self.dimension_override: Optional[int] = None

    async def embed_content(self, *, model: str, contents: List[str], config: dict) -> FakeEmbedResult:
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.hang is not None:
            await self.hang.wait()
        if self.fail_always is not None:
            raise self.fail_always
        if self.failures:
            raise self.failures.pop(0)
        dim = self.dimension_override or config.get("output_dimensionality", DIMENSION)
        vector = (topic_vector(contents[0]) + [0.0] * dim)[:dim]
        return FakeEmbedResult(embeddings=[FakeEmbedding(values=vector)])


class FakeAio:
    def __init__(self) -> None:
        self.models = FakeModels()


class FakeGenAIClient:
    def __init__(self) -> None:
        self.aio = FakeAio()


# ---------------------------------------------------------------------------
# Fake Milvus client
# ---------------------------------------------------------------------------


class FakeMilvusClient:
    """MilvusClient stand-in returning canned hits and rows and recording calls."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.hits: List[Dict[str, Any]] = []
        self.rows: List[Dict[str, Any]] = []
        self.exists = True
        self.row_count = 0
        self.error: Optional[Exception] = None
        self.closed = False

    def _record(self, name: str, kwargs: Dict[str, Any]) -> None:
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error

    def search(self, **kwargs: Any) -> List[List[Dict[str, Any]]]:
        self._record("search", kwargs)
        return [list(self.hits)]

    def query(self, **kwargs: Any) -> List[Dict[str, Any]]:
        self._record("query", kwargs)
        return list(self.rows)

    def has_collection(self, **kwargs: Any) -> bool:
        self._record("has_collection", kwargs)
        return self.exists

    def get_collection_stats(self, **kwargs: Any) -> Dict[str, Any]:
        self._record("get_collection_stats", kwargs)
        return {"row_count": self.row_count}

    def close(self) -> None:
        self.calls.append(("close", {}))
        self.closed = True


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def _service(
    doc_id: str,
    name: str,
    category: str,
    provider_id: str,
    embedding: List[float],
    price: Optional[float] = None,
    **extra: Any,
) -> Dict[str, Any]:
    document: Dict[str, Any] = {
        "id": doc_id,
        "name": name,
        "category": category,
        "providerId": provider_id,
        "providerType": extra.pop("providerType", "agency"),
        "description": extra.pop("description", f"{name} for modern teams"),
        "tags": extra.pop("tags", []),
        "industries": extra.pop("industries", []),
        "technologies": extra.pop("technologies", []),
        "locations": extra.pop("locations", ["US"]),
        "features": extra.pop("features", []),
        "compliance": extra.pop("compliance", []),
        "rating": extra.pop("rating", 4.0),
        "reviewCount": extra.pop("reviewCount", 10),
        "updatedAt": extra.pop("updatedAt", "2025-05-01T00:00:00Z"),
        "embedding": embedding,
    }
    if price is not None:
        document["pricing"] = {"startingPrice": price}
    document.update(extra)
    return document


def build_catalog() -> List[Dict[str, Any]]:
    return [
        _service(
            "svc-ml-1", "Predictive Analytics ML Platform", "machine_learning", "prov-a",
            [1.0, 0.0, 0.0, 0.0], price=500, rating=4.8, reviewCount=120,
            description="Machine learning platform for demand prediction and forecasting",
            tags=["machine learning", "prediction"], industries=["healthcare", "finance"],
            technologies=["python", "tensorflow"], compliance=["HIPAA"], features=["api"],
        ),
        _service(
            "svc-ml-2", "Custom Machine Learning Models", "machine_learning", "prov-b",
            [0.9, 0.1, 0.0, 0.0], price=800, rating=4.5, reviewCount=40,
            description="Bespoke machine learning model development and AI services",
            tags=["machine learning", "ai"], industries=["retail"],
            technologies=["pytorch"], providerType="freelancer",
        ),
        _service(
            "svc-ml-3", "Enterprise ML Consulting", "machine_learning", "prov-a",
            [1.0, 0.0, 0.0, 0.0], price=5000, rating=4.9, reviewCount=300,
            description="Machine learning strategy consulting for large enterprises",
            tags=["consulting"], industries=["finance"], locations=["UK"],
        ),
        _service(
            "svc-ml-4", "ML Ops Starter", "machine_learning", "prov-c",
            [0.95, 0.05, 0.0, 0.0], rating=3.5, reviewCount=2,
            description="Machine learning deployment pipelines",
            tags=["mlops"], updatedAt="2023-01-01T00:00:00Z",
        ),
        _service(
            "svc-cv-1", "Computer Vision Inspection", "computer_vision", "prov-c",
            [0.0, 1.0, 0.0, 0.0], price=300, rating=4.2, reviewCount=25,
            description="Computer vision quality inspection for manufacturing lines",
            tags=["computer vision", "image recognition"], industries=["manufacturing"],
        ),
        _service(
            "svc-nlp-1", "Conversational AI Chatbot Builder", "nlp", "prov-d",
            [0.0, 0.0, 1.0, 0.0], price=150, rating=4.0, reviewCount=60,
            description="Build chatbot and virtual assistant experiences",
            tags=["chatbot", "conversational ai"], industries=["retail", "education"],
        ),
        _service(
            "svc-data-1", "Data Analytics Dashboard", "data_analytics", "prov-b",
            [0.5, 0.5, 0.5, 0.5], price=100, rating=3.9, reviewCount=8,
            description="Business intelligence dashboards and analytics",
            tags=["analytics"], industries=["retail"],
        ),
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def catalog() -> List[Dict[str, Any]]:
    return build_catalog()


@pytest.fixture()
def store(catalog) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(catalog)


@pytest.fixture()
def genai_client() -> FakeGenAIClient:
    return FakeGenAIClient()


@pytest.fixture()
def milvus_client() -> FakeMilvusClient:
    return FakeMilvusClient()


@pytest.fixture()
def settings() -> CatalogSearchSettings:
    return CatalogSearchSettings(
        embedding=EmbeddingSettings(
            api_key="test-key", dimension=DIMENSION, timeout=0.5,
            initial_backoff=0.001, max_backoff=0.002,
        ),
        store=VectorStoreSettings(vector_timeout=1.0, keyword_timeout=1.0),
        search=SearchSettings(request_deadline=2.0),
    )


@pytest.fixture()
def provider(genai_client) -> GeminiEmbeddingProvider:
    return GeminiEmbeddingProvider(
        output_dimensionality=DIMENSION,
        timeout=0.5,
        retry_config=RetryConfig(max_attempts=2, initial_delay=0.001, max_delay=0.002),
        client=genai_client,
    )


@pytest.fixture()
def service(store, provider, settings) -> SemanticSearchService:
    return SemanticSearchService(
        store, provider, settings, fusion=ResultFusion(now=lambda: FIXED_NOW)
    )
