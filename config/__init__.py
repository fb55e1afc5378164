"""
Configuration Module

This module provides centralized configuration management for catalog search:
- Embedding provider credentials and retry behaviour
- Document store backend selection and timeouts
- Search defaults, limits and response caching
- HTTP surface and logging settings

Settings are loaded from environment variables, a .env file or YAML using
Pydantic settings models with sensible defaults.
"""

from .settings import (
    CatalogSearchSettings,
    EmbeddingSettings,
    VectorStoreSettings,
    SearchSettings,
    ApiSettings,
    StoreBackend,
    load_settings,
)

__all__ = [
    'CatalogSearchSettings',
    'EmbeddingSettings',
    'VectorStoreSettings',
    'SearchSettings',
    'ApiSettings',
    'StoreBackend',
    'load_settings',
]
