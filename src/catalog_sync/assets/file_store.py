"""
File-based asset store.
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..core.storage import AssetStore


logger = logging.getLogger(__name__)


class FileAssetStore(AssetStore):
    """
    Writes asset binaries under a base directory.

    Files are organized by upload month: {base_dir}/{yyyy}/{mm}/{filename}.
    A name already taken in that folder gets a numeric suffix
    (photo.jpg, photo-1.jpg, ...).
    """

    def __init__(
        self,
        base_dir: Path,
        create_dirs: bool = True,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Initialize the file asset store.

        Args:
            base_dir: Root directory for stored assets
            create_dirs: Whether to create directories automatically
            now: Callable returning the current time (selects the month folder)
        """
        self.base_dir = Path(base_dir)
        self.create_dirs = create_dirs
        self.now = now

        if create_dirs:
            self.base_dir.mkdir(parents=True, exist_ok=True)

    def write(self, filename: str, content: bytes) -> str:
        stamp = self.now()
        relative_dir = Path(f"{stamp:%Y}") / f"{stamp:%m}"
        dir_path = self.base_dir / relative_dir

        if self.create_dirs:
            dir_path.mkdir(parents=True, exist_ok=True)

        safe_name = self._sanitize_filename(filename)
        target = self._unique_path(dir_path, safe_name)

        with open(target, "wb") as f:
            f.write(content)

        relative_path = (relative_dir / target.name).as_posix()
        logger.debug(f"Stored asset: {relative_path} ({len(content)} bytes)")
        return relative_path

    def delete(self, relative_path: Optional[str]) -> bool:
        if not relative_path:
            return False

        path = self.base_dir / relative_path
        try:
            path.unlink()
        except FileNotFoundError:
            return False

        logger.debug(f"Deleted asset file: {relative_path}")
        return True

    def remove_empty_dirs(self, relative_folder: str) -> bool:
        """
        Remove a folder and its subfolders if they hold no files.

        Returns:
            True if the folder itself was removed
        """
        folder = self.base_dir / relative_folder
        if not folder.is_dir():
            return False

        for dirpath, _dirnames, _filenames in os.walk(folder, topdown=False):
            try:
                os.rmdir(dirpath)
            except OSError:
                # Not empty
                continue

        removed = not folder.exists()
        if removed:
            logger.info(f"Removed empty asset folder: {relative_folder}")
        return removed

    def _unique_path(self, dir_path: Path, name: str) -> Path:
        candidate = dir_path / name
        stem, suffix = os.path.splitext(name)
        counter = 1
        while candidate.exists():
            candidate = dir_path / f"{stem}-{counter}{suffix}"
            counter += 1
        return candidate

    def _sanitize_filename(self, name: str) -> str:
        """Sanitize a string for use in filenames."""
        # Replace unsafe characters
        safe = name.replace("/", "_").replace("\\", "_").replace(":", "_").strip(". ")
        # Limit length
        if len(safe) > 100:
            stem, suffix = os.path.splitext(safe)
            safe = stem[:100 - len(suffix)] + suffix
        return safe or "asset"

    def get_name(self) -> str:
        """Return the asset store name."""
        return "file"
