"""
Embedding Provider Interface

This module defines the abstract interface every query-embedding backend
implements, along with the result type it returns.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)

HEALTH_CHECK_TEXT = "health check"


@dataclass(frozen=True)
class EmbeddingResult:
    """A single query embedding and how it was produced."""
    embedding: Tuple[float, ...]
    dimension: int
    model_name: str
    processing_time_ms: float = 0.0
    attempts: int = 1


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Implementations raise EmbeddingUnavailableError for upstream errors,
    timeouts and vectors of the wrong dimension.
    """

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate an embedding for a single piece of text.

        Args:
            text: The text to embed

        Returns:
            EmbeddingResult holding the vector

        Raises:
            EmbeddingUnavailableError: If no valid vector could be produced
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Dimension of the vectors this provider produces."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Name of the underlying embedding model."""

    async def embed(self, text: str) -> Tuple[float, ...]:
        """Embed text and return only the vector."""
        result = await self.generate_embedding(text)
        return result.embedding

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform one embedding round trip.

        Returns:
            Dictionary with healthy, latency (ms), dimension and model; plus
            error when the round trip failed
        """
        start_time = time.time()
        try:
            result = await self.generate_embedding(HEALTH_CHECK_TEXT)
        except Exception as e:
            logger.warning(f"Embedding health check failed: {e}")
            return {
                "healthy": False,
                "latency": round((time.time() - start_time) * 1000, 2),
                "model": self.get_model_name(),
                "error": str(e),
            }
        return {
            "healthy": True,
            "latency": round((time.time() - start_time) * 1000, 2),
            "dimension": result.dimension,
            "model": result.model_name,
        }

    async def close(self) -> None:
        """Release provider resources; the default holds none."""
