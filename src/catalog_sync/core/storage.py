"""
Storage interface for imported asset binaries.
"""

from abc import ABC, abstractmethod
from typing import Optional


class AssetStore(ABC):
    """
    Abstract base class for asset stores.

    Asset stores keep the binary content of imported images and hand back
    a path relative to their own root, which the asset index records.
    """

    @abstractmethod
    def write(self, filename: str, content: bytes) -> str:
        """
        Store an asset binary.

        Args:
            filename: Suggested file name (typically taken from the source URL)
            content: Raw bytes

        Returns:
            Path of the stored file relative to the store root

        Raises:
            OSError if the write fails
        """
        pass

    @abstractmethod
    def delete(self, relative_path: Optional[str]) -> bool:
        """
        Remove a stored file.

        Returns:
            True if a file was removed
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the asset store name/identifier."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass
