"""
Catalog Semantic Search

Hybrid semantic and keyword search over the AI-services catalog.
"""

__version__ = "1.0.0"
