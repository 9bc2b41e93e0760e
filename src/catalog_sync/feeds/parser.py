"""
XML feed parsing.

Feed documents are flat lists of elements (Item, image, serie, ...) whose
children hold the field values. Each element becomes a plain dict record
so the rest of the pipeline never touches XML objects.
"""

import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from ..core.exceptions import FeedParseError
from ..core.models import FeedRecord


def parse_document(body: bytes, url: Optional[str] = None) -> ET.Element:
    """
    Parse a feed body into its root element.

    Raises:
        FeedParseError: If the body is not well-formed XML
    """
    try:
        return ET.fromstring(body)
    except ET.ParseError as e:
        raise FeedParseError(f"Failed parsing XML from {url}: {e}", url=url) from e


def element_to_record(element: ET.Element) -> FeedRecord:
    """
    Convert an element into a dict record.

    - Leaf children map tag -> text ("" when empty)
    - Children with their own children become nested records
    - Repeated tags collect into a list in document order
    - XML attributes are kept under "@name" keys, with the text of an
      attributed leaf under "#text"
    """
    record: Dict[str, Any] = {f"@{k}": v for k, v in element.attrib.items()}

    for child in element:
        value = _element_value(child)
        if child.tag in record:
            existing = record[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                record[child.tag] = [existing, value]
        else:
            record[child.tag] = value

    text = (element.text or "").strip()
    if text and len(element) == 0:
        record["#text"] = text

    return record


def _element_value(element: ET.Element) -> Any:
    if len(element) or element.attrib:
        return element_to_record(element)
    return (element.text or "").strip()


def extract_records(root: ET.Element, tag: str) -> List[FeedRecord]:
    """Return every direct child of root with the given tag, as records."""
    return [element_to_record(el) for el in root.findall(tag)]


def field_text(record: FeedRecord, name: str) -> str:
    """
    Read a field as stripped text.

    Missing fields, None and nested values read as "".
    """
    value = record.get(name)
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()
