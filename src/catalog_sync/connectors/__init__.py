"""
Connectors package for remote feeds and assets.
"""

from .http import HttpConnector
from .static_connector import StaticConnector

__all__ = [
    "HttpConnector",
    "StaticConnector",
]
