"""
Sync orchestration.
"""

from .batch_runner import BatchRunner, DEFAULT_BATCH_SIZE

__all__ = ["BatchRunner", "DEFAULT_BATCH_SIZE"]
