"""
Feed record processing.
"""

from .item_processor import ItemProcessor, natural_key

__all__ = ["ItemProcessor", "natural_key"]
