"""
Unit tests for feed parsing and fetching.
"""

import pytest

from catalog_sync.core.exceptions import FeedFetchError, FeedParseError
from catalog_sync.feeds import build_feed_urls, element_to_record, field_text, parse_document
from catalog_sync.feeds.parser import extract_records

from conftest import FEED_BASE, item_xml, items_feed


IMAGES_FEED = """
<ItemImages>
  <image><ItemCode>A1</ItemCode><ImageUrl>https://cdn.example.com/a1-2.jpg</ImageUrl><OrderNo>2</OrderNo></image>
  <image><ItemCode>A1</ItemCode><ImageUrl>https://cdn.example.com/a1-0.jpg</ImageUrl></image>
  <image><ItemCode>A1</ItemCode><ImageUrl>https://cdn.example.com/a1-1.jpg</ImageUrl><OrderNo>1</OrderNo></image>
  <image><ItemCode>B2</ItemCode><ImageUrl>https://cdn.example.com/b2.jpg</ImageUrl><OrderNo>x</OrderNo></image>
  <image><ItemCode></ItemCode><ImageUrl>https://cdn.example.com/orphan.jpg</ImageUrl></image>
</ItemImages>
"""

SERIES_FEED = """
<ProductSeries>
  <serie><Code>S1</Code><Name>Nordic</Name></serie>
  <serie><Code></Code><Name>Nameless</Name></serie>
</ProductSeries>
"""

ATTRIBUTES_FEED = """
<Attributes>
  <attribute><Code>W</Code><Name>Width</Name><Unit>cm</Unit></attribute>
</Attributes>
"""

FEATURES_FEED = """
<Features>
  <feature><FeatureID>F1</FeatureID><Value>Waterproof</Value>
    <LongDescription>Resists rain</LongDescription><Image>f1.png</Image></feature>
</Features>
"""


@pytest.mark.unit
class TestParser:
    """Tests for XML-to-record parsing."""

    def test_leaf_children_become_text(self):
        root = parse_document(b"<Item><Code> A1 </Code><Name>Chair</Name><Empty/></Item>")
        assert element_to_record(root) == {"Code": "A1", "Name": "Chair", "Empty": ""}

    def test_nested_and_repeated_children(self):
        root = parse_document(
            b"<Item><Attributes><Attribute><Code>W</Code></Attribute>"
            b"<Attribute><Code>H</Code></Attribute></Attributes></Item>"
        )
        record = element_to_record(root)
        assert record["Attributes"]["Attribute"] == [{"Code": "W"}, {"Code": "H"}]

    def test_xml_attributes_kept(self):
        root = parse_document(b'<Item id="7"><Price currency="EUR">10</Price></Item>')
        record = element_to_record(root)
        assert record["@id"] == "7"
        assert record["Price"] == {"@currency": "EUR", "#text": "10"}

    def test_invalid_xml_raises(self):
        with pytest.raises(FeedParseError):
            parse_document(b"<Items><Item>", url="https://x")

    def test_extract_records_by_tag(self):
        root = parse_document(items_feed([item_xml("A"), item_xml("B")]).encode("utf-8"))
        assert [r["Code"] for r in extract_records(root, "Item")] == ["A", "B"]

    def test_field_text(self):
        record = {"a": " x ", "b": {"nested": "1"}, "c": None}
        assert field_text(record, "a") == "x"
        assert field_text(record, "b") == ""
        assert field_text(record, "c") == ""
        assert field_text(record, "missing") == ""


@pytest.mark.unit
class TestFeedUrls:
    """Tests for build_feed_urls()."""

    def test_defaults_from_base(self):
        urls = build_feed_urls("https://host/feed/")
        assert urls["items"] == "https://host/feed/Items"
        assert urls["series"] == "https://host/feed/ProductSeries"
        assert urls["images"] == "https://host/feed/ItemImages"
        assert urls["attributes"] == "https://host/feed/Attributes"
        assert urls["features"] == "https://host/feed/Features"

    def test_override_wins(self):
        urls = build_feed_urls("https://host/feed", {"items": "https://other/items.xml", "series": ""})
        assert urls["items"] == "https://other/items.xml"
        assert urls["series"] == "https://host/feed/ProductSeries"

    def test_no_base(self):
        assert build_feed_urls(None, {"items": "https://x/items"}) == {"items": "https://x/items"}


@pytest.mark.unit
class TestFeedFetcher:
    """Tests for FeedFetcher."""

    def test_fetch_items(self, make_fetcher):
        fetcher = make_fetcher(items=items_feed([item_xml("A1", Name="Chair"), item_xml("B2")]))
        records = fetcher.fetch_items()

        assert [r["Code"] for r in records] == ["A1", "B2"]
        assert records[0]["Name"] == "Chair"
        assert fetcher.count_items() == 2

    def test_transport_error_raises(self, make_fetcher):
        fetcher = make_fetcher(items=items_feed([]), error_feeds=["items"])
        with pytest.raises(FeedFetchError):
            fetcher.fetch_items()
        assert fetcher.count_items() == 0

    def test_non_200_raises(self, make_fetcher):
        fetcher = make_fetcher(items=None)
        with pytest.raises(FeedFetchError) as exc_info:
            fetcher.fetch_items()
        assert exc_info.value.status_code == 404

    def test_empty_body_raises(self, make_fetcher):
        fetcher = make_fetcher(items="   ")
        with pytest.raises(FeedFetchError):
            fetcher.fetch_items()

    def test_invalid_xml_raises_parse_error(self, make_fetcher):
        fetcher = make_fetcher(items="<Items><Item>")
        with pytest.raises(FeedParseError):
            fetcher.fetch_items()

    def test_missing_url_raises(self, make_fetcher):
        fetcher = make_fetcher(items=items_feed([]))
        fetcher.feed_urls.pop("items")
        with pytest.raises(FeedFetchError):
            fetcher.fetch_items()

    def test_aux_maps(self, make_fetcher):
        fetcher = make_fetcher(
            items=items_feed([]),
            aux={
                "images": IMAGES_FEED,
                "series": SERIES_FEED,
                "attributes": ATTRIBUTES_FEED,
                "features": FEATURES_FEED,
            },
        )
        maps = fetcher.fetch_aux_maps()

        assert maps.images["A1"] == {
            0: "https://cdn.example.com/a1-0.jpg",
            1: "https://cdn.example.com/a1-1.jpg",
            2: "https://cdn.example.com/a1-2.jpg",
        }
        assert maps.images["B2"] == {0: "https://cdn.example.com/b2.jpg"}
        assert "" not in maps.images
        assert maps.series == {"S1": "Nordic"}
        assert maps.attributes == {"W": {"name": "Width", "unit": "cm"}}
        assert maps.features == {
            "F1": {"value": "Waterproof", "description": "Resists rain", "image": "f1.png"},
        }

    def test_aux_failures_degrade_to_empty(self, make_fetcher):
        fetcher = make_fetcher(
            items=items_feed([item_xml("A1")]),
            aux={"series": "<broken"},
            error_feeds=["images"],
        )
        maps = fetcher.fetch_aux_maps()

        assert maps.images == {}
        assert maps.series == {}
        assert maps.attributes == {}
        assert maps.features == {}
        assert len(fetcher.fetch_items()) == 1

    def test_fetches_configured_urls(self, make_fetcher):
        fetcher = make_fetcher(items=items_feed([]))
        fetcher.fetch_aux_maps()
        fetcher.fetch_items()

        requested = [r.uri for r in fetcher.connector.request_history]
        assert requested[-1] == f"{FEED_BASE}/Items"
        assert f"{FEED_BASE}/ItemImages" in requested
