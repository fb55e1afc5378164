"""
Document Store Module

Backends holding catalog documents and their embeddings:
- InMemoryDocumentStore for tests, demos and small catalogs
- MilvusDocumentStore for a Milvus collection
"""

from .base import DocumentStore, StoreHit
from .memory_store import InMemoryDocumentStore
from .milvus_store import MilvusDocumentStore

__all__ = [
    "DocumentStore",
    "StoreHit",
    "InMemoryDocumentStore",
    "MilvusDocumentStore",
]
