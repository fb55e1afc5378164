"""
Catalog Search Exceptions

This module defines the top-level exceptions for the catalog_search package
to provide clear error handling and reporting across its subsystems.
"""


class CatalogSearchError(Exception):
    """Base exception for all catalog_search errors"""
    pass


class ConfigurationError(CatalogSearchError):
    """Raised when required configuration or credentials are missing or invalid"""
    pass


class DocumentStoreError(CatalogSearchError):
    """Raised when a document store operation fails"""
    pass


class QueryError(CatalogSearchError):
    """Raised when a query operation fails"""
    pass


class OperationTimeoutError(CatalogSearchError):
    """Raised when an operation times out"""
    pass
