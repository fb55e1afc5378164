"""
Search Paths Module

The vector and keyword retrieval paths and degraded-mode handling.
"""

from .bm25 import BM25Config, BM25Scorer
from .fallback import FallbackManager, PathOutcome, handle_fallback
from .keyword import KeywordSearch, searchable_text
from .vector import VectorSearch, similarity_from_raw

__all__ = [
    "BM25Config",
    "BM25Scorer",
    "FallbackManager",
    "PathOutcome",
    "handle_fallback",
    "KeywordSearch",
    "searchable_text",
    "VectorSearch",
    "similarity_from_raw",
]
