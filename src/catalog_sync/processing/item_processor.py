"""
Item processor: maps one feed item onto a catalog entry.

The feed item code is the natural key and becomes the entry SKU. Every
call is an idempotent upsert by that key, so reprocessing a record after
an interrupted batch is safe.
"""

import html
import logging
import re
from typing import Any, List, Optional

from ..assets.resolver import AssetResolver
from ..core.catalog import CatalogStore
from ..core.exceptions import MissingNaturalKeyError
from ..core.models import (
    AuxMaps, CatalogEntry, EntryAttribute, FeedRecord, OutcomeStatus, ProcessOutcome,
)
from ..feeds.parser import field_text


logger = logging.getLogger(__name__)


SHORT_DESCRIPTION_WORDS = 30
SERIES_ATTRIBUTE = "Series"
FEATURES_ATTRIBUTE = "Features"

_TAG_RE = re.compile(r"<[^>]+>")
_SLUG_STRIP_RE = re.compile(r"[^\w\s-]", re.UNICODE)
_SLUG_DASH_RE = re.compile(r"[-\s_]+", re.UNICODE)


class ItemProcessor:
    """
    Maps feed records onto catalog entries.

    Each call to process() is isolated: a missing item code gives a
    SKIPPED outcome and any other error gives a FAILED outcome, so one bad
    record never stops the rest of a batch.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        asset_resolver: Optional[AssetResolver] = None,
    ):
        """
        Initialize the processor.

        Args:
            catalog: Store the entries are written to
            asset_resolver: Resolves image URLs to asset ids; images are
                left untouched when None
        """
        self.catalog = catalog
        self.asset_resolver = asset_resolver

    def process(self, record: FeedRecord, aux_maps: Optional[AuxMaps] = None) -> ProcessOutcome:
        """
        Create or update the catalog entry for one feed item.

        Args:
            record: Parsed Item element
            aux_maps: Images, series, attributes and features lookups

        Returns:
            ProcessOutcome describing what happened
        """
        aux_maps = aux_maps or AuxMaps()
        key = None

        try:
            key = natural_key(record)
            return self._upsert(key, record, aux_maps)

        except MissingNaturalKeyError as e:
            logger.warning(f"Item skipped: {e}")
            return ProcessOutcome(key=None, status=OutcomeStatus.SKIPPED, reason=str(e))

        except Exception as e:
            logger.exception(f"Failed processing item {key}: {e}")
            return ProcessOutcome(key=key, status=OutcomeStatus.FAILED, reason=str(e))

    def _upsert(self, sku: str, record: FeedRecord, aux_maps: AuxMaps) -> ProcessOutcome:
        entry = self.catalog.get_entry_by_sku(sku)
        is_new = entry is None
        if is_new:
            entry = CatalogEntry(sku=sku)
            logger.info(f"Creating entry SKU={sku}")
        else:
            logger.info(f"Updating entry SKU={sku} (ID={entry.entry_id})")

        name = field_text(record, "Name") or field_text(record, "NameEn")
        description = (
            field_text(record, "DetailedDescription")
            or field_text(record, "DetailedDescriptionEn")
        )

        entry.name = name
        entry.slug = slugify(field_text(record, "Slug") or name)
        entry.description = description
        entry.short_description = trim_words(strip_markup(description), SHORT_DESCRIPTION_WORDS)

        price = parse_price(field_text(record, "PriceWithVat") or field_text(record, "NetPrice"))
        if price is not None:
            entry.regular_price = price

        category_ids = self._resolve_categories(field_text(record, "CategoryFullPath"))
        if category_ids:
            entry.category_ids = category_ids

        attributes = self._build_attributes(record, aux_maps)
        if attributes:
            entry.attributes = attributes

        if self.asset_resolver is not None:
            self._assign_images(entry, aux_maps.images.get(sku))

        entry_id = self.catalog.save_entry(entry)
        logger.info(f"Saved entry SKU={sku} ID={entry_id}")

        return ProcessOutcome(
            key=sku,
            status=OutcomeStatus.CREATED if is_new else OutcomeStatus.UPDATED,
            entry_id=entry_id,
        )

    def _resolve_categories(self, path: str) -> List[int]:
        """Resolve "parent/child/grandchild" into a chain of category ids."""
        ids: List[int] = []
        parent_id = None
        for segment in split_category_path(path):
            parent_id = self.catalog.resolve_category(segment, parent_id)
            ids.append(parent_id)
        return ids

    def _build_attributes(self, record: FeedRecord, aux_maps: AuxMaps) -> List[EntryAttribute]:
        attributes: List[EntryAttribute] = []

        series_code = field_text(record, "ProductSeriesCode")
        if series_code and series_code in aux_maps.series:
            attributes.append(EntryAttribute(
                name=SERIES_ATTRIBUTE,
                options=[aux_maps.series[series_code]],
                visible=True,
                variation=False,
            ))

        for child in _children(record.get("Attributes"), "Attribute"):
            code = field_text(child, "Code")
            known = aux_maps.attributes.get(code)
            if not known:
                continue
            value = " ".join(p for p in (field_text(child, "Value"), known.get("unit", "")) if p)
            attributes.append(EntryAttribute(name=known.get("name") or code, options=[value]))

        feature_values = []
        for feature_id in _feature_ids(record.get("Features")):
            known = aux_maps.features.get(feature_id)
            if known and known.get("value"):
                feature_values.append(known["value"])
        if feature_values:
            attributes.append(EntryAttribute(name=FEATURES_ATTRIBUTE, options=feature_values))

        return attributes

    def _assign_images(self, entry: CatalogEntry, images: Optional[dict]) -> None:
        if images:
            asset_ids: List[int] = []
            for order in sorted(images):
                asset_id = self.asset_resolver.resolve(images[order])
                if asset_id is not None and asset_id not in asset_ids:
                    asset_ids.append(asset_id)

            if asset_ids:
                entry.image_id = asset_ids[0]
                entry.gallery_ids = asset_ids[1:]

        if entry.image_id is not None and entry.gallery_ids:
            primary_url = self.asset_resolver.get_source_url(entry.image_id)
            first_url = self.asset_resolver.get_source_url(entry.gallery_ids[0])
            if primary_url is not None and primary_url == first_url:
                entry.gallery_ids = entry.gallery_ids[1:]


def natural_key(record: FeedRecord) -> str:
    """
    Return the stripped item code.

    Raises:
        MissingNaturalKeyError: If the record has no code
    """
    code = field_text(record, "Code")
    if not code:
        raise MissingNaturalKeyError("Item with empty Code")
    return code


def split_category_path(path: str) -> List[str]:
    """Split "parent/ child /grandchild/" into ["parent", "child", "grandchild"]."""
    return [segment.strip() for segment in (path or "").split("/") if segment.strip()]


def parse_price(raw: str) -> Optional[float]:
    """Parse a price string, accepting a comma decimal separator. None if not numeric."""
    raw = (raw or "").strip().replace(",", ".")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.debug(f"Ignoring non-numeric price '{raw}'")
        return None


def strip_markup(text: str) -> str:
    return html.unescape(_TAG_RE.sub(" ", text or ""))


def trim_words(text: str, num_words: int, more: str = "…") -> str:
    words = text.split()
    if len(words) <= num_words:
        return " ".join(words)
    return " ".join(words[:num_words]) + more


def slugify(value: str) -> str:
    value = _SLUG_STRIP_RE.sub("", (value or "").lower())
    return _SLUG_DASH_RE.sub("-", value).strip("-")


def _children(container: Any, tag: str) -> List[FeedRecord]:
    if not isinstance(container, dict):
        return []
    children = container.get(tag)
    if isinstance(children, dict):
        return [children]
    if isinstance(children, list):
        return [c for c in children if isinstance(c, dict)]
    return []


def _feature_ids(container: Any) -> List[str]:
    """Feature ids listed as <FeatureID> leaves or <Feature><FeatureID/></Feature> blocks."""
    if not isinstance(container, dict):
        return []
    ids = []
    leaves = container.get("FeatureID")
    for leaf in leaves if isinstance(leaves, list) else [leaves]:
        if isinstance(leaf, str) and leaf.strip():
            ids.append(leaf.strip())
    for child in _children(container, "Feature"):
        feature_id = field_text(child, "FeatureID")
        if feature_id:
            ids.append(feature_id)
    return ids
