"""
HTTP API Module
"""

from .app import create_app, configure_logging

__all__ = [
    "create_app",
    "configure_logging",
]
