"""
Asset import: binary storage and URL-to-asset resolution.
"""

from .file_store import FileAssetStore
from .resolver import AssetResolver

__all__ = ["FileAssetStore", "AssetResolver"]
