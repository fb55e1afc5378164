"""
Embedding Providers Module

Query-embedding backends used by the vector search path.
"""

from .embedding import EmbeddingProvider, EmbeddingResult
from .gemini_embedding import GeminiEmbeddingProvider, TaskType, is_transient_error

__all__ = [
    "EmbeddingProvider",
    "EmbeddingResult",
    "GeminiEmbeddingProvider",
    "TaskType",
    "is_transient_error",
]
