"""
Remote asset resolution.

Turns an image URL into a local asset id, importing the binary at most
once: a URL seen before is reused without fetching, and content already
imported from another URL is recognized by its MD5 hash.
"""

import hashlib
import logging
import posixpath
from typing import Optional
from urllib.parse import unquote, urlparse

from ..core.catalog import AssetIndex
from ..core.connector import Connector, ConnectorRequest
from ..core.exceptions import AssetResolutionError
from ..core.storage import AssetStore


logger = logging.getLogger(__name__)


ALLOWED_SCHEMES = ("http", "https")


class AssetResolver:
    """
    Resolves remote image URLs to asset ids.

    Example:
        >>> resolver = AssetResolver(connector, catalog, FileAssetStore(base))
        >>> resolver.resolve("https://cdn.example.com/a.jpg")
        12
    """

    def __init__(self, connector: Connector, index: AssetIndex, store: AssetStore):
        """
        Initialize the resolver.

        Args:
            connector: Connector used to download binaries
            index: Index of already imported assets
            store: Where new binaries are written
        """
        self.connector = connector
        self.index = index
        self.store = store

    def resolve(self, url: Optional[str]) -> Optional[int]:
        """
        Resolve a URL to an asset id, importing it if needed.

        Returns:
            The asset id, or None if the URL is ineligible or the import failed
        """
        url = (url or "").strip()
        if not url:
            return None

        scheme = urlparse(url).scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            logger.info(f"Skipping non-http image URL: {url}")
            return None

        existing = self.index.find_asset_by_url(url)
        if existing is not None:
            return existing.asset_id

        try:
            content = self._download(url)
        except AssetResolutionError as e:
            logger.warning(str(e))
            return None

        file_hash = hashlib.md5(content).hexdigest()
        existing = self.index.find_asset_by_hash(file_hash)
        if existing is not None:
            logger.debug(f"Reusing asset {existing.asset_id} for {url} (same content)")
            return existing.asset_id

        try:
            file_path = self.store.write(_filename_from_url(url), content)
        except OSError as e:
            logger.error(f"Failed storing asset from {url}: {e}")
            return None

        asset = self.index.add_asset(url, file_hash, file_path)
        logger.info(f"Imported asset {asset.asset_id} from {url}")
        return asset.asset_id

    def get_source_url(self, asset_id: Optional[int]) -> Optional[str]:
        """Return the URL an asset was imported from."""
        if asset_id is None:
            return None
        asset = self.index.get_asset(asset_id)
        return asset.source_url if asset else None

    def _download(self, url: str) -> bytes:
        response = self.connector.fetch(ConnectorRequest(uri=url))
        if not response.ok:
            detail = response.error_message or f"HTTP {response.status_code}"
            raise AssetResolutionError(f"Download failed for {url}: {detail}", url=url)
        if not response.body:
            raise AssetResolutionError(f"Download returned no content for {url}", url=url)
        return response.body


def _filename_from_url(url: str) -> str:
    return posixpath.basename(unquote(urlparse(url).path))
