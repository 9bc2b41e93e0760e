"""
Unit tests for ItemProcessor and its field helpers.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from catalog_sync.assets import AssetResolver, FileAssetStore
from catalog_sync.catalog import InMemoryCatalogStore
from catalog_sync.connectors import StaticConnector
from catalog_sync.core.exceptions import MissingNaturalKeyError
from catalog_sync.core.models import AuxMaps, EntryAttribute, OutcomeStatus
from catalog_sync.feeds import element_to_record, parse_document
from catalog_sync.processing import ItemProcessor, natural_key
from catalog_sync.processing.item_processor import (
    parse_price, slugify, split_category_path, strip_markup, trim_words,
)


def parse_item(xml: str):
    return element_to_record(parse_document(xml.encode("utf-8")))


@pytest.fixture
def catalog():
    return InMemoryCatalogStore()


@pytest.fixture
def processor(catalog):
    return ItemProcessor(catalog)


@pytest.mark.unit
class TestHelpers:
    """Tests for the module-level field helpers."""

    def test_natural_key(self):
        assert natural_key({"Code": " A1 "}) == "A1"
        with pytest.raises(MissingNaturalKeyError):
            natural_key({"Code": "  "})
        with pytest.raises(MissingNaturalKeyError):
            natural_key({})

    def test_split_category_path(self):
        assert split_category_path("Home/ Garden /Chairs/") == ["Home", "Garden", "Chairs"]
        assert split_category_path("") == []
        assert split_category_path(None) == []

    def test_parse_price(self):
        assert parse_price("19,90") == pytest.approx(19.9)
        assert parse_price("7") == 7.0
        assert parse_price("") is None
        assert parse_price("call us") is None

    def test_strip_markup(self):
        assert strip_markup("<p>Fish &amp; chips</p>").split() == ["Fish", "&", "chips"]

    def test_trim_words(self):
        assert trim_words("one two three", 5) == "one two three"
        assert trim_words("one two three", 2) == "one two…"

    def test_slugify(self):
        assert slugify("Garden Chair, Deluxe!") == "garden-chair-deluxe"
        assert slugify("  multiple   spaces__here ") == "multiple-spaces-here"


@pytest.mark.unit
class TestProcess:
    """Tests for process()."""

    def test_creates_entry(self, processor, catalog):
        record = parse_item(
            "<Item><Code>A1</Code><Name>Garden Chair</Name>"
            "<DetailedDescription>&lt;p&gt;Sturdy chair&lt;/p&gt;</DetailedDescription>"
            "<PriceWithVat>49,90</PriceWithVat></Item>"
        )
        outcome = processor.process(record)

        assert outcome.status == OutcomeStatus.CREATED
        assert outcome.key == "A1"

        entry = catalog.get_entry_by_sku("A1")
        assert entry.entry_id == outcome.entry_id
        assert entry.name == "Garden Chair"
        assert entry.slug == "garden-chair"
        assert entry.description == "<p>Sturdy chair</p>"
        assert entry.short_description == "Sturdy chair"
        assert entry.regular_price == pytest.approx(49.9)

    def test_reprocessing_updates_same_entry(self, processor, catalog):
        first = processor.process({"Code": "A1", "Name": "Old"})
        second = processor.process({"Code": "A1", "Name": "New"})

        assert second.status == OutcomeStatus.UPDATED
        assert second.entry_id == first.entry_id
        assert catalog.count_entries() == 1
        assert catalog.get_entry_by_sku("A1").name == "New"

    def test_english_fallbacks(self, processor, catalog):
        processor.process({
            "Code": "A1",
            "NameEn": "Chair",
            "DetailedDescriptionEn": "English text",
            "NetPrice": "10",
        })
        entry = catalog.get_entry_by_sku("A1")

        assert entry.name == "Chair"
        assert entry.description == "English text"
        assert entry.regular_price == 10.0

    def test_non_numeric_price_keeps_previous(self, processor, catalog):
        processor.process({"Code": "A1", "PriceWithVat": "10"})
        processor.process({"Code": "A1", "PriceWithVat": "n/a"})
        assert catalog.get_entry_by_sku("A1").regular_price == 10.0

    def test_long_description_trimmed(self, processor, catalog):
        words = " ".join(f"w{i}" for i in range(40))
        processor.process({"Code": "A1", "DetailedDescription": words})

        short = catalog.get_entry_by_sku("A1").short_description
        assert short.endswith("…")
        assert len(short.rstrip("…").split()) == 30

    def test_missing_code_skipped(self, processor, catalog):
        outcome = processor.process({"Name": "No code"})

        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.key is None
        assert catalog.count_entries() == 0

    def test_store_error_becomes_failed_outcome(self):
        catalog = MagicMock()
        catalog.get_entry_by_sku.return_value = None
        catalog.save_entry.side_effect = RuntimeError("database is locked")

        outcome = ItemProcessor(catalog).process({"Code": "A1"})

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.key == "A1"
        assert "database is locked" in outcome.reason


@pytest.mark.unit
class TestCategories:
    """Category path handling."""

    def test_path_becomes_chain(self, processor, catalog):
        outcome = processor.process({"Code": "A1", "CategoryFullPath": "Home/Garden/Chairs"})

        home = catalog.resolve_category("Home")
        garden = catalog.resolve_category("Garden", home)
        chairs = catalog.resolve_category("Chairs", garden)
        assert catalog.get_entry_categories(outcome.entry_id) == [home, garden, chairs]
        assert catalog.count_categories() == 3

    def test_shared_prefix_not_duplicated(self, processor, catalog):
        processor.process({"Code": "A1", "CategoryFullPath": "Home/Garden"})
        processor.process({"Code": "B2", "CategoryFullPath": "Home/Kitchen"})
        assert catalog.count_categories() == 3

    def test_update_replaces_categories(self, processor, catalog):
        processor.process({"Code": "A1", "CategoryFullPath": "Home/Garden"})
        outcome = processor.process({"Code": "A1", "CategoryFullPath": "Office"})

        office = catalog.resolve_category("Office")
        assert catalog.get_entry_categories(outcome.entry_id) == [office]

    def test_categories_written_with_entry(self, processor, catalog):
        processor.process({"Code": "A1", "CategoryFullPath": "Home"})

        with patch.object(catalog, "set_entry_categories") as set_categories:
            outcome = processor.process({"Code": "A1", "CategoryFullPath": "Office"})

        set_categories.assert_not_called()
        assert catalog.get_entry_categories(outcome.entry_id) == [catalog.resolve_category("Office")]

    def test_failed_save_leaves_categories_unchanged(self, processor, catalog):
        first = processor.process({"Code": "A1", "CategoryFullPath": "Home"})
        home = catalog.resolve_category("Home")

        with patch.object(catalog, "save_entry", side_effect=RuntimeError("disk I/O error")):
            outcome = processor.process({"Code": "A1", "CategoryFullPath": "Office"})

        assert outcome.status == OutcomeStatus.FAILED
        assert catalog.get_entry_categories(first.entry_id) == [home]

    def test_empty_path_keeps_categories(self, processor, catalog):
        first = processor.process({"Code": "A1", "CategoryFullPath": "Home"})
        processor.process({"Code": "A1", "CategoryFullPath": ""})
        assert len(catalog.get_entry_categories(first.entry_id)) == 1


@pytest.mark.unit
class TestAttributes:
    """Series, attribute and feature mapping."""

    AUX = AuxMaps(
        series={"S1": "Nordic"},
        attributes={"W": {"name": "Width", "unit": "cm"}, "C": {"name": "Color", "unit": ""}},
        features={
            "F1": {"value": "Waterproof", "description": "", "image": ""},
            "F2": {"value": "Foldable", "description": "", "image": ""},
        },
    )

    def test_all_attribute_sources(self, processor, catalog):
        record = parse_item(
            "<Item><Code>A1</Code><ProductSeriesCode>S1</ProductSeriesCode>"
            "<Attributes>"
            "<Attribute><Code>W</Code><Value>40</Value></Attribute>"
            "<Attribute><Code>C</Code><Value>Red</Value></Attribute>"
            "<Attribute><Code>UNKNOWN</Code><Value>x</Value></Attribute>"
            "</Attributes>"
            "<Features><FeatureID>F1</FeatureID><FeatureID>F2</FeatureID><FeatureID>F9</FeatureID></Features>"
            "</Item>"
        )
        processor.process(record, self.AUX)

        assert catalog.get_entry_by_sku("A1").attributes == [
            EntryAttribute(name="Series", options=["Nordic"]),
            EntryAttribute(name="Width", options=["40 cm"]),
            EntryAttribute(name="Color", options=["Red"]),
            EntryAttribute(name="Features", options=["Waterproof", "Foldable"]),
        ]

    def test_feature_blocks(self, processor, catalog):
        record = parse_item(
            "<Item><Code>A1</Code><Features>"
            "<Feature><FeatureID>F2</FeatureID></Feature>"
            "</Features></Item>"
        )
        processor.process(record, self.AUX)

        assert catalog.get_entry_by_sku("A1").attributes == [
            EntryAttribute(name="Features", options=["Foldable"]),
        ]

    def test_unknown_series_ignored(self, processor, catalog):
        processor.process({"Code": "A1", "ProductSeriesCode": "S9"}, self.AUX)
        assert catalog.get_entry_by_sku("A1").attributes == []

    def test_no_attributes_keeps_previous(self, processor, catalog):
        processor.process({"Code": "A1", "ProductSeriesCode": "S1"}, self.AUX)
        processor.process({"Code": "A1"}, self.AUX)

        assert catalog.get_entry_by_sku("A1").attributes == [
            EntryAttribute(name="Series", options=["Nordic"]),
        ]


@pytest.mark.unit
class TestImages:
    """Primary image and gallery assignment."""

    @pytest.fixture
    def connector(self):
        return StaticConnector(documents={
            "https://cdn/a.jpg": b"a",
            "https://cdn/b.jpg": b"b",
            "https://cdn/c.jpg": b"c",
            "https://cdn/a-copy.jpg": b"a",
        })

    @pytest.fixture
    def image_processor(self, catalog, connector, tmp_path):
        store = FileAssetStore(
            tmp_path / "uploads",
            now=lambda: datetime(2024, 5, 1, tzinfo=timezone.utc),
        )
        return ItemProcessor(catalog, AssetResolver(connector, catalog, store))

    def test_primary_and_gallery_in_order(self, image_processor, catalog):
        aux = AuxMaps(images={"A1": {2: "https://cdn/c.jpg", 0: "https://cdn/a.jpg", 1: "https://cdn/b.jpg"}})
        image_processor.process({"Code": "A1"}, aux)

        entry = catalog.get_entry_by_sku("A1")
        urls = [catalog.get_asset(i).source_url for i in [entry.image_id] + entry.gallery_ids]
        assert urls == ["https://cdn/a.jpg", "https://cdn/b.jpg", "https://cdn/c.jpg"]

    def test_duplicate_content_collapsed(self, image_processor, catalog):
        aux = AuxMaps(images={"A1": {0: "https://cdn/a.jpg", 1: "https://cdn/a-copy.jpg"}})
        image_processor.process({"Code": "A1"}, aux)

        entry = catalog.get_entry_by_sku("A1")
        assert entry.image_id is not None
        assert entry.gallery_ids == []

    def test_failed_images_dropped(self, image_processor, catalog):
        aux = AuxMaps(images={"A1": {0: "https://cdn/missing.jpg", 1: "ftp://cdn/b.jpg", 2: "https://cdn/b.jpg"}})
        image_processor.process({"Code": "A1"}, aux)

        entry = catalog.get_entry_by_sku("A1")
        assert catalog.get_asset(entry.image_id).source_url == "https://cdn/b.jpg"
        assert entry.gallery_ids == []

    def test_no_images_keeps_existing(self, image_processor, catalog):
        aux = AuxMaps(images={"A1": {0: "https://cdn/a.jpg"}})
        image_processor.process({"Code": "A1"}, aux)
        image_id = catalog.get_entry_by_sku("A1").image_id

        image_processor.process({"Code": "A1"}, AuxMaps())
        assert catalog.get_entry_by_sku("A1").image_id == image_id

    def test_gallery_starting_with_primary_trimmed(self, image_processor, catalog):
        aux = AuxMaps(images={"A1": {0: "https://cdn/a.jpg", 1: "https://cdn/b.jpg"}})
        image_processor.process({"Code": "A1"}, aux)

        entry = catalog.get_entry_by_sku("A1")
        entry.gallery_ids = [entry.image_id] + entry.gallery_ids
        catalog.save_entry(entry)

        image_processor.process({"Code": "A1"}, AuxMaps())
        entry = catalog.get_entry_by_sku("A1")
        assert entry.image_id not in entry.gallery_ids
        assert len(entry.gallery_ids) == 1
