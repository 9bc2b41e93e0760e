"""
Remote catalog feeds: fetching and XML parsing.
"""

from .fetcher import FeedFetcher, FEED_NAMES, build_feed_urls
from .parser import parse_document, element_to_record, extract_records, field_text

__all__ = [
    "FeedFetcher",
    "FEED_NAMES",
    "build_feed_urls",
    "parse_document",
    "element_to_record",
    "extract_records",
    "field_text",
]
