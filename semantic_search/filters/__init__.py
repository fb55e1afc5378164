"""
Filter Module

Validation and evaluation of structured catalog filters.
"""

from .engine import FilterEngine, document_price

__all__ = [
    "FilterEngine",
    "document_price",
]
