"""Tests for the Gemini embedding provider and the retry policy."""

import asyncio

import numpy as np
import pytest
from google.genai import errors as genai_errors

from catalog_search_exceptions import ConfigurationError
from config.settings import EmbeddingSettings
from semantic_search.core.search_ops_exceptions import EmbeddingUnavailableError
from semantic_search.providers.gemini_embedding import (
    GeminiEmbeddingProvider,
    is_transient_error,
)
from semantic_search.resilience.retry import RetryConfig, execute_with_retry

DIMENSION = 4


async def test_generate_embedding_sends_task_and_dimension(provider, genai_client) -> None:
    result = await provider.generate_embedding("computer vision")

    assert result.dimension == DIMENSION
    assert result.attempts == 1
    assert np.linalg.norm(result.embedding) == pytest.approx(1.0)
    call = genai_client.aio.models.calls[0]
    assert call["model"] == "gemini-embedding-001"
    assert call["contents"] == ["computer vision"]
    assert call["config"] == {"task_type": "RETRIEVAL_QUERY", "output_dimensionality": DIMENSION}


async def test_transient_failure_is_retried(provider, genai_client) -> None:
    genai_client.aio.models.failures = [ConnectionError("reset by peer")]
    result = await provider.generate_embedding("chatbot")
    assert result.attempts == 2
    assert len(genai_client.aio.models.calls) == 2


async def test_retries_are_bounded(provider, genai_client) -> None:
    genai_client.aio.models.fail_always = ConnectionError("unreachable")
    with pytest.raises(EmbeddingUnavailableError):
        await provider.generate_embedding("chatbot")
    assert len(genai_client.aio.models.calls) == 2


async def test_permanent_failure_is_not_retried(provider, genai_client) -> None:
    genai_client.aio.models.fail_always = ValueError("bad request")
    with pytest.raises(EmbeddingUnavailableError):
        await provider.generate_embedding("chatbot")
    assert len(genai_client.aio.models.calls) == 1


async def test_dimension_mismatch_is_unavailable(provider, genai_client) -> None:
    genai_client.aio.models.dimension_override = DIMENSION + 1
    with pytest.raises(EmbeddingUnavailableError, match="dimension"):
        await provider.generate_embedding("chatbot")
    assert len(genai_client.aio.models.calls) == 1


async def test_each_attempt_has_a_timeout(genai_client) -> None:
    genai_client.aio.models.hang = asyncio.Event()
    provider = GeminiEmbeddingProvider(
        output_dimensionality=DIMENSION,
        timeout=0.01,
        retry_config=RetryConfig(max_attempts=2, initial_delay=0.001, max_delay=0.001),
        client=genai_client,
    )
    with pytest.raises(EmbeddingUnavailableError):
        await provider.generate_embedding("chatbot")
    assert len(genai_client.aio.models.calls) == 2


async def test_health_check_reports_failure(provider, genai_client) -> None:
    healthy = await provider.health_check()
    assert healthy["healthy"] is True
    assert healthy["dimension"] == DIMENSION

    genai_client.aio.models.fail_always = ConnectionError("down")
    unhealthy = await provider.health_check()
    assert unhealthy["healthy"] is False
    assert "down" in unhealthy["error"]


def test_missing_api_key_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
        GeminiEmbeddingProvider(api_key=None)


def test_from_settings_uses_embedding_settings(genai_client) -> None:
    settings = EmbeddingSettings(api_key="k", dimension=8, max_attempts=3)
    provider = GeminiEmbeddingProvider.from_settings(settings, client=genai_client)
    assert provider.get_dimension() == 8
    assert provider.get_model_name() == "gemini-embedding-001"


@pytest.mark.parametrize(
    "error, transient",
    [
        (asyncio.TimeoutError(), True),
        (ConnectionError("reset"), True),
        (genai_errors.ServerError(503, {"error": {"message": "unavailable"}}), True),
        (genai_errors.ClientError(429, {"error": {"message": "quota"}}), True),
        (genai_errors.ClientError(400, {"error": {"message": "bad"}}), False),
        (ValueError("bad"), False),
    ],
)
def test_is_transient_error(error, transient) -> None:
    assert is_transient_error(error) is transient


async def test_execute_with_retry_returns_first_success() -> None:
    attempts = []

    async def flaky(value):
        attempts.append(value)
        if len(attempts) < 3:
            raise asyncio.TimeoutError()
        return value * 2

    config = RetryConfig(max_attempts=3, initial_delay=0.001, max_delay=0.001)
    assert await execute_with_retry(flaky, config, 21) == 42
    assert len(attempts) == 3


def test_retry_config_validation() -> None:
    with pytest.raises(ValueError):
        RetryConfig(max_attempts=0)
