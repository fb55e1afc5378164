"""
Resilience Module

Retry policies for upstream calls made by the search pipeline.
"""

from .retry import RetryConfig, build_retrying, execute_with_retry

__all__ = [
    "RetryConfig",
    "build_retrying",
    "execute_with_retry",
]
