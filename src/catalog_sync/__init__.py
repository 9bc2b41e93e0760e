"""
Catalog Sync - incremental batch synchronization of a remote XML product
feed into a local catalog store.
"""

__version__ = "1.4.0"
