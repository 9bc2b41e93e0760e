"""
Maintenance operations.
"""

from .cleanup import AttachmentCleanup

__all__ = ["AttachmentCleanup"]
