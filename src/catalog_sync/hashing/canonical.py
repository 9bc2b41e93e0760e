"""
Canonical JSON serialization and content hashing.

Provides stable serialization of feed records so that the same record
hashes identically across fetches, whatever order the feed emits fields in.
The canonicalization ensures:
- Mapping keys are sorted recursively
- Sequences keep positional order
- Record-like objects (dataclasses, to_dict(), plain objects) hash the
  same as the equivalent dict
- No insignificant whitespace
- Floats keep their fractional part (1.0 stays 1.0)
"""

import base64
import dataclasses
import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


DEFAULT_ALGORITHM = "sha256"


def normalize(record: Any) -> Any:
    """
    Recursively convert a record into plain dict / list / scalar form.

    - Mappings become dicts with string keys, sorted by key
    - Lists and tuples keep their order
    - Sets become lists ordered by their canonical serialization
    - Dataclasses, objects with to_dict() and plain objects are read as
      mappings of their fields
    - Scalars (str, int, float, bool, None) are returned unchanged
    - UTF-8 bytes become text; other bytes become {"$bytes": <base64>}

    normalize(normalize(x)) == normalize(x) for any x.

    Args:
        record: The value to normalize

    Returns:
        The canonical form
    """
    if record is None or isinstance(record, (str, bool, int, float)):
        return record

    if isinstance(record, Enum):
        return normalize(record.value)

    if isinstance(record, Mapping):
        items = {str(k): normalize(v) for k, v in record.items()}
        return {k: items[k] for k in sorted(items)}

    if isinstance(record, (list, tuple)):
        return [normalize(item) for item in record]

    if isinstance(record, (set, frozenset)):
        return sorted((normalize(item) for item in record), key=serialize)

    if isinstance(record, (datetime, date)):
        return record.isoformat()

    if isinstance(record, Decimal):
        return str(record)

    if isinstance(record, bytes):
        try:
            return record.decode("utf-8")
        except UnicodeDecodeError:
            return {"$bytes": base64.b64encode(record).decode("ascii")}

    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return normalize({
            f.name: getattr(record, f.name) for f in dataclasses.fields(record)
        })

    if hasattr(record, "to_dict"):
        return normalize(record.to_dict())

    if hasattr(record, "__dict__"):
        return normalize({
            k: v for k, v in vars(record).items() if not k.startswith("_")
        })

    # Last resort: string conversion
    return str(record)


def _canonical_default(obj: Any) -> Any:
    """
    Default handler for JSON serialization of values normalize() left alone.
    """
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)


def serialize(canonical: Any) -> str:
    """
    Serialize a canonical form to a deterministic JSON string.

    Structurally equal inputs always produce the same string. Unicode
    and slashes are left unescaped.
    """
    return json.dumps(
        canonical,
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_canonical_default,
    )


def canonicalize(record: Any) -> str:
    """
    Canonicalize a record to a stable JSON string.

    Shorthand for serialize(normalize(record)).
    """
    return serialize(normalize(record))


def content_hash(record: Any, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Compute the hex digest of a record's canonical serialization.

    Args:
        record: The record to hash
        algorithm: Any hashlib algorithm name (default sha256)

    Returns:
        Hex-encoded digest string

    Raises:
        ValueError: If the algorithm is not supported by hashlib
    """
    digest = hashlib.new(algorithm)
    digest.update(canonicalize(record).encode("utf-8"))
    return digest.hexdigest()
