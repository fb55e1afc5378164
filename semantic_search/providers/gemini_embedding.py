"""
Gemini Embedding Provider

This module provides a concrete implementation of the EmbeddingProvider
interface for Google's Gemini embedding models, using the async client of
the Google GenAI SDK.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, List, Optional, Sequence

import numpy as np
from google.genai import Client as GenAIClient
from google.genai import errors as genai_errors

from catalog_search_exceptions import ConfigurationError
from config.settings import EmbeddingSettings
from .embedding import EmbeddingProvider, EmbeddingResult
from ..core.search_ops_exceptions import EmbeddingUnavailableError
from ..resilience.retry import RetryConfig, build_retrying

logger = logging.getLogger(__name__)

# Vectors at the model's native size come back normalized already
NATIVE_DIMENSION = 3072


class TaskType(str, Enum):
    """Enumeration of supported task types for Gemini embeddings."""
    RETRIEVAL_QUERY = "RETRIEVAL_QUERY"
    RETRIEVAL_DOCUMENT = "RETRIEVAL_DOCUMENT"
    SEMANTIC_SIMILARITY = "SEMANTIC_SIMILARITY"
    CLASSIFICATION = "CLASSIFICATION"
    CLUSTERING = "CLUSTERING"


class DimensionMismatchError(ValueError):
    """Raised when the model returns a vector of unexpected size."""
    pass


def is_transient_error(error: BaseException) -> bool:
    """
    Whether an embedding failure is worth another attempt.

    Timeouts, connection problems, rate limiting and server-side errors are
    transient; request errors and malformed responses are not.
    """
    if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(error, genai_errors.ServerError):
        return True
    if isinstance(error, genai_errors.APIError):
        return getattr(error, "code", None) == 429
    return False


class GeminiEmbeddingProvider(EmbeddingProvider):
    """
    An implementation of EmbeddingProvider that uses the Gemini API.

    Every attempt is bounded by its own timeout and transient failures are
    retried with jittered exponential backoff. Pass ``client`` to inject a
    preconfigured or fake GenAI client.
    """

    def __init__(
        self,
        model_name: str = "gemini-embedding-001",
        task_type: TaskType = TaskType.RETRIEVAL_QUERY,
        output_dimensionality: int = 1536,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        client: Optional[Any] = None,
    ):
        """
        Initialize the Gemini embedding provider.

        Args:
            model_name: The name of the Gemini embedding model to use
            task_type: The intended task for the embeddings
            output_dimensionality: The expected dimension of the output embeddings
            api_key: The Gemini API key; required unless a client is given
            timeout: Timeout in seconds for a single attempt
            retry_config: Retry policy for transient failures
            client: Optional GenAI client exposing ``aio.models.embed_content``

        Raises:
            ConfigurationError: If neither a client nor an API key is available
        """
        self._model_name = model_name
        self._task_type = TaskType(task_type).value
        self._output_dimensionality = output_dimensionality
        self._timeout = timeout
        self._retry_config = retry_config or RetryConfig(is_retriable=is_transient_error)
        if self._retry_config.is_retriable is None:
            self._retry_config.is_retriable = is_transient_error

        if client is not None:
            self._client = client
        else:
            if not api_key:
                raise ConfigurationError("GEMINI_API_KEY is not configured")
            self._client = GenAIClient(api_key=api_key)

        logger.info(
            f"GeminiEmbeddingProvider initialized - model: {model_name}, "
            f"dimension: {output_dimensionality}, timeout: {timeout}s, "
            f"attempts: {self._retry_config.max_attempts}"
        )

    @classmethod
    def from_settings(
        cls, settings: EmbeddingSettings, client: Optional[Any] = None
    ) -> "GeminiEmbeddingProvider":
        """Build a provider from EmbeddingSettings."""
        api_key = settings.api_key.get_secret_value() if settings.api_key else None
        return cls(
            model_name=settings.model,
            task_type=TaskType(settings.task_type),
            output_dimensionality=settings.dimension,
            api_key=api_key,
            timeout=settings.timeout,
            retry_config=RetryConfig(
                max_attempts=settings.max_attempts,
                initial_delay=settings.initial_backoff,
                max_delay=settings.max_backoff,
                is_retriable=is_transient_error,
            ),
            client=client,
        )

    async def _embed_once(self, text: str) -> List[float]:
        result = await asyncio.wait_for(
            self._client.aio.models.embed_content(
                model=self._model_name,
                contents=[text],
                config={
                    "task_type": self._task_type,
                    "output_dimensionality": self._output_dimensionality,
                },
            ),
            timeout=self._timeout,
        )
        embeddings = getattr(result, "embeddings", None)
        if not embeddings:
            raise DimensionMismatchError("Embedding response contained no vectors")
        return list(embeddings[0].values or [])

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate an embedding for a single piece of text.

        Args:
            text: The text to generate an embedding for

        Returns:
            An EmbeddingResult containing the generated embedding

        Raises:
            EmbeddingUnavailableError: If the embedding generation fails
        """
        start_time = time.time()
        retrying = build_retrying(self._retry_config)
        try:
            values = await retrying(self._embed_once, text)
            self._check_dimension(values)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Gemini embedding generation failed: {e}", exc_info=True)
            raise EmbeddingUnavailableError(f"Gemini embedding generation failed: {e}") from e

        if self._output_dimensionality != NATIVE_DIMENSION:
            values = self._normalize_embedding(values)

        processing_time_ms = (time.time() - start_time) * 1000
        attempts = retrying.statistics.get("attempt_number", 1)
        logger.debug(
            f"Generated query embedding - dimension: {len(values)}, "
            f"attempts: {attempts}, time: {processing_time_ms:.2f}ms"
        )
        return EmbeddingResult(
            embedding=tuple(values),
            dimension=len(values),
            model_name=self._model_name,
            processing_time_ms=processing_time_ms,
            attempts=attempts,
        )

    def _check_dimension(self, values: Sequence[float]) -> None:
        if len(values) != self._output_dimensionality:
            raise DimensionMismatchError(
                f"Expected dimension {self._output_dimensionality}, but got {len(values)}"
            )

    def get_dimension(self) -> int:
        return self._output_dimensionality

    def get_model_name(self) -> str:
        return self._model_name

    def _normalize_embedding(self, embedding: Sequence[float]) -> List[float]:
        """Normalize an embedding to unit length."""
        np_emb = np.asarray(embedding, dtype=np.float64)
        norm = np.linalg.norm(np_emb)
        if norm == 0:
            return list(embedding)
        return (np_emb / norm).tolist()
