"""
Feed fetcher.

Retrieves the five catalog feeds (items, series, images, attributes,
features) and turns them into records and lookup tables. The items feed
is primary: any failure there raises. The other feeds are auxiliary and
degrade to empty tables.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Mapping, Optional

from ..core.connector import Connector, ConnectorRequest
from ..core.exceptions import FeedFetchError, FeedParseError
from ..core.models import AuxMaps, FeedRecord
from .parser import extract_records, field_text, parse_document


logger = logging.getLogger(__name__)


FEED_NAMES = ("items", "series", "images", "attributes", "features")

# Element tag of one entry in each feed
FEED_TAGS = {
    "items": "Item",
    "series": "serie",
    "images": "image",
    "attributes": "attribute",
    "features": "feature",
}

FEED_PATHS = {
    "items": "Items",
    "series": "ProductSeries",
    "images": "ItemImages",
    "attributes": "Attributes",
    "features": "Features",
}


def build_feed_urls(
    base_url: Optional[str] = None,
    overrides: Optional[Mapping[str, Optional[str]]] = None,
) -> Dict[str, str]:
    """
    Resolve the URL of every feed.

    Each feed defaults to base_url + its path; a non-empty override wins.
    """
    urls = {}
    base = (base_url or "").rstrip("/")
    for name in FEED_NAMES:
        override = (overrides or {}).get(name)
        if override:
            urls[name] = override
        elif base:
            urls[name] = f"{base}/{FEED_PATHS[name]}"
    return urls


class FeedFetcher:
    """
    Fetches and parses the catalog feeds.

    The full items feed is fetched on every batch; the batch runner pages
    through it locally.
    """

    def __init__(self, connector: Connector, feed_urls: Mapping[str, str]):
        """
        Initialize the fetcher.

        Args:
            connector: Connector used for every request
            feed_urls: Feed name -> URL (see FEED_NAMES)
        """
        self.connector = connector
        self.feed_urls = dict(feed_urls)

    def fetch_xml(self, url: str) -> ET.Element:
        """
        Fetch a URL and parse it as XML.

        Raises:
            FeedFetchError: Transport error, non-200 status or empty body
            FeedParseError: Body is not valid XML
        """
        response = self.connector.fetch(ConnectorRequest(uri=url))

        if response.error_message:
            raise FeedFetchError(
                f"HTTP error fetching {url}: {response.error_message}",
                url=url,
            )
        if response.status_code != 200:
            raise FeedFetchError(
                f"Non-200 response for {url}: {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        if not response.body or not response.body.strip():
            raise FeedFetchError(f"Empty body from {url}", url=url, status_code=200)

        return parse_document(response.body, url)

    def fetch_records(self, feed: str) -> List[FeedRecord]:
        """
        Fetch one feed as a list of records.

        Raises:
            FeedFetchError: If the feed has no URL or cannot be fetched
            FeedParseError: If the feed is not valid XML
        """
        url = self.feed_urls.get(feed)
        if not url:
            raise FeedFetchError(f"No URL configured for feed '{feed}'")

        root = self.fetch_xml(url)
        records = extract_records(root, FEED_TAGS[feed])
        logger.debug(f"Fetched {len(records)} records from {feed} feed")
        return records

    def fetch_items(self) -> List[FeedRecord]:
        """Fetch the primary items feed. Raises on any failure."""
        return self.fetch_records("items")

    def count_items(self) -> int:
        """Number of items in the feed, 0 if it cannot be fetched."""
        try:
            return len(self.fetch_items())
        except (FeedFetchError, FeedParseError) as e:
            logger.error(f"Failed counting items: {e}")
            return 0

    def _fetch_auxiliary(self, feed: str) -> List[FeedRecord]:
        try:
            return self.fetch_records(feed)
        except (FeedFetchError, FeedParseError) as e:
            logger.warning(f"Auxiliary feed '{feed}' unavailable, continuing without it: {e}")
            return []

    def fetch_images_map(self) -> Dict[str, Dict[int, str]]:
        """Build ItemCode -> {order -> image URL}. A repeated order keeps the last URL."""
        images: Dict[str, Dict[int, str]] = {}
        for record in self._fetch_auxiliary("images"):
            code = field_text(record, "ItemCode")
            url = field_text(record, "ImageUrl")
            if not code or not url:
                continue
            images.setdefault(code, {})[_parse_order(field_text(record, "OrderNo"))] = url
        return images

    def fetch_series_map(self) -> Dict[str, str]:
        """Build series code -> series name."""
        series = {}
        for record in self._fetch_auxiliary("series"):
            code = field_text(record, "Code")
            if code:
                series[code] = field_text(record, "Name")
        return series

    def fetch_attributes_map(self) -> Dict[str, Dict[str, str]]:
        """Build attribute code -> {"name", "unit"}."""
        attributes = {}
        for record in self._fetch_auxiliary("attributes"):
            code = field_text(record, "Code")
            if code:
                attributes[code] = {
                    "name": field_text(record, "Name"),
                    "unit": field_text(record, "Unit"),
                }
        return attributes

    def fetch_features_map(self) -> Dict[str, Dict[str, str]]:
        """Build feature id -> {"value", "description", "image"}."""
        features = {}
        for record in self._fetch_auxiliary("features"):
            feature_id = field_text(record, "FeatureID")
            if feature_id:
                features[feature_id] = {
                    "value": field_text(record, "Value"),
                    "description": field_text(record, "LongDescription"),
                    "image": field_text(record, "Image"),
                }
        return features

    def fetch_aux_maps(self) -> AuxMaps:
        """Fetch all auxiliary lookup tables."""
        return AuxMaps(
            images=self.fetch_images_map(),
            series=self.fetch_series_map(),
            attributes=self.fetch_attributes_map(),
            features=self.fetch_features_map(),
        )

    def close(self) -> None:
        self.connector.close()


def _parse_order(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        return 0
