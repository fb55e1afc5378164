"""
Pydantic Settings for Catalog Search

This module provides strongly-typed configuration settings using Pydantic,
with support for environment variables, .env files and YAML configuration files.
"""

from typing import List, Optional, Union
from enum import Enum
from pathlib import Path
import os

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_yaml import to_yaml_str


class StoreBackend(str, Enum):
    """
    Document store backends the search pipeline can read from.

    - MEMORY keeps the catalog in process and computes distances with numpy;
      suitable for tests, demos and small catalogs
    - MILVUS delegates vector search and filtering to a Milvus collection
    """
    MEMORY = "memory"
    MILVUS = "milvus"


class EmbeddingSettings(BaseSettings):
    """
    Settings for the text-embedding provider.

    These settings control how query text is turned into vectors:
    - Provider credentials and model selection
    - Output dimensionality expected from the model
    - Per-attempt timeout and bounded retry with jittered backoff
    """
    model_config = SettingsConfigDict(
        env_prefix="CATALOG_EMBEDDING_", case_sensitive=False, populate_by_name=True
    )

    api_key: Optional[SecretStr] = Field(
        None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "CATALOG_EMBEDDING_API_KEY", "api_key"),
        description="API key for the Gemini embedding endpoint",
    )
    model: str = Field("gemini-embedding-001", description="Embedding model name")
    dimension: int = Field(1536, gt=0, description="Expected embedding dimensionality")
    task_type: str = Field("RETRIEVAL_QUERY", description="Task type sent with query embeddings")
    timeout: float = Field(10.0, gt=0, description="Timeout in seconds for a single embedding call")
    max_attempts: int = Field(2, ge=1, le=5, description="Total attempts for transient embedding failures")
    initial_backoff: float = Field(0.2, gt=0, description="Initial backoff in seconds between attempts")
    max_backoff: float = Field(2.0, gt=0, description="Upper bound for the backoff between attempts")


class VectorStoreSettings(BaseSettings):
    """
    Settings for the document store holding catalog documents and their vectors.

    The same store serves both the vector path and the keyword path, each with
    its own timeout.
    """
    model_config = SettingsConfigDict(env_prefix="CATALOG_STORE_", case_sensitive=False)

    backend: StoreBackend = Field(StoreBackend.MEMORY, description="Store backend (memory or milvus)")
    uri: str = Field("http://localhost:19530", description="Milvus endpoint URI")
    token: SecretStr = Field(SecretStr(""), description="Milvus token (user:password or API key)")
    collection_name: str = Field("services", description="Collection holding catalog documents")
    vector_field: str = Field("embedding", description="Dense vector field name")
    id_field: str = Field("id", description="Primary key field name")
    output_fields: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Fields returned with each hit",
    )
    documents_path: Optional[str] = Field(
        None, description="JSON file used to seed the in-memory store"
    )
    vector_timeout: float = Field(5.0, gt=0, description="Timeout in seconds for vector queries")
    keyword_timeout: float = Field(5.0, gt=0, description="Timeout in seconds for keyword scans")
    keyword_scan_limit: int = Field(
        2000, gt=0, description="Maximum filtered documents scanned by the keyword path"
    )


class SearchSettings(BaseSettings):
    """
    Settings for query behaviour, result shaping and response caching.
    """
    model_config = SettingsConfigDict(env_prefix="CATALOG_SEARCH_", case_sensitive=False)

    default_limit: int = Field(20, ge=1, le=100, description="Results per page when no limit is given")
    default_threshold: float = Field(0.7, ge=0, le=1, description="Similarity cutoff when none is given")
    max_query_length: int = Field(1000, gt=0, description="Maximum accepted query length in characters")
    cache_enabled: bool = Field(True, description="Whether responses are cached")
    cache_ttl: float = Field(300.0, gt=0, description="Response cache TTL in seconds")
    cache_max_entries: int = Field(1000, gt=0, description="Maximum cached responses")
    request_deadline: float = Field(30.0, gt=0, description="Overall deadline in seconds for one search")
    candidate_pool_multiplier: int = Field(3, ge=1, description="Candidates fetched per requested result")
    min_candidate_pool: int = Field(50, ge=1, description="Minimum candidates fetched per search path")
    max_candidate_pool: int = Field(300, ge=1, description="Maximum candidates fetched per search path")
    enable_query_expansion: bool = Field(True, description="Append synonyms for known abbreviations")


class ApiSettings(BaseSettings):
    """
    Settings for the HTTP surface and process-wide logging.
    """
    model_config = SettingsConfigDict(env_prefix="CATALOG_API_", case_sensitive=False)

    version: str = Field("1.0.0", description="API version reported in response metadata")
    debug: bool = Field(False, description="Development mode: include error details in responses")
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")


class CatalogSearchSettings(BaseSettings):
    """
    Main settings class that consolidates all configuration categories.

    Usage:
        # Load from environment variables and defaults
        settings = CatalogSearchSettings()

        # Load from YAML file
        settings = CatalogSearchSettings.from_yaml('config.yaml')

        # Access nested settings
        ttl = settings.search.cache_ttl
    """
    model_config = SettingsConfigDict(
        env_prefix="CATALOG_", case_sensitive=False, env_nested_delimiter="__"
    )

    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings,
                                         description="Embedding provider settings")
    store: VectorStoreSettings = Field(default_factory=VectorStoreSettings,
                                       description="Document store settings")
    search: SearchSettings = Field(default_factory=SearchSettings,
                                   description="Search behaviour and cache settings")
    api: ApiSettings = Field(default_factory=ApiSettings,
                             description="HTTP surface settings")

    @classmethod
    def from_yaml(cls, yaml_file: Union[str, Path]) -> "CatalogSearchSettings":
        """Load settings from YAML file"""
        import yaml
        with open(yaml_file, 'r') as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self) -> str:
        """Render the settings as YAML; secrets stay masked"""
        return to_yaml_str(self)


def load_settings(config_path: Optional[str] = None) -> CatalogSearchSettings:
    """
    Load settings from file and/or environment variables.

    Variables from a local .env file are loaded first, so they are visible to
    both sources. If config_path is provided and exists, settings come from the
    YAML file; otherwise from environment variables and defaults.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        CatalogSearchSettings object with loaded configuration
    """
    load_dotenv()
    if config_path and os.path.exists(config_path):
        return CatalogSearchSettings.from_yaml(config_path)
    return CatalogSearchSettings()
