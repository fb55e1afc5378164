"""
Query Understanding Module

Query text processing and intent classification.
"""

from .intent import IntentClassifier
from .processor import ProcessedQuery, QueryProcessor

__all__ = [
    "IntentClassifier",
    "ProcessedQuery",
    "QueryProcessor",
]
