"""
Core data models for the catalog sync framework.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid


FeedRecord = Dict[str, Any]


class OutcomeStatus(str, Enum):
    """Result of processing a single feed record."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class BatchStatus(str, Enum):
    """Overall status of one batch run."""
    COMPLETED = "completed"
    LOCKED = "locked"
    FETCH_FAILED = "fetch_failed"
    WRAPPED = "wrapped"


class AdvancePolicy(str, Enum):
    """
    How far the cursor moves after a batch.

    - RETRY_IN_PLACE: advance by handled records only; a failing record is
      retried at the same position on the next run
    - SKIP_FAILED: advance past the whole window, failures included
    """
    RETRY_IN_PLACE = "retry_in_place"
    SKIP_FAILED = "skip_failed"


@dataclass
class ProcessOutcome:
    """
    Outcome of mapping one feed record onto the catalog.

    Attributes:
        key: Natural key (item code) of the record, if it had one
        status: What happened to the record
        entry_id: Catalog entry identifier after persistence
        reason: Human-readable reason for skipped/failed records
    """
    key: Optional[str]
    status: OutcomeStatus
    entry_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (OutcomeStatus.CREATED, OutcomeStatus.UPDATED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "status": self.status.value,
            "entry_id": self.entry_id,
            "reason": self.reason,
        }


@dataclass
class AuxMaps:
    """
    Auxiliary lookup tables fetched once per batch.

    Attributes:
        images: ItemCode -> {order number -> image URL}
        series: Series code -> series name
        attributes: Attribute code -> {"name": ..., "unit": ...}
        features: Feature id -> {"value": ..., "description": ..., "image": ...}
    """
    images: Dict[str, Dict[int, str]] = field(default_factory=dict)
    series: Dict[str, str] = field(default_factory=dict)
    attributes: Dict[str, Dict[str, str]] = field(default_factory=dict)
    features: Dict[str, Dict[str, str]] = field(default_factory=dict)


@dataclass
class EntryAttribute:
    """A descriptive attribute attached to a catalog entry."""
    name: str
    options: List[str]
    visible: bool = True
    variation: bool = False


@dataclass
class CatalogEntry:
    """
    A product in the local catalog.

    The SKU is the natural key shared with the feed (item code).
    entry_id stays None until the entry is first saved.
    """
    sku: str
    entry_id: Optional[int] = None
    name: str = ""
    slug: str = ""
    description: str = ""
    short_description: str = ""
    regular_price: Optional[float] = None
    category_ids: List[int] = field(default_factory=list)
    image_id: Optional[int] = None
    gallery_ids: List[int] = field(default_factory=list)
    attributes: List[EntryAttribute] = field(default_factory=list)


@dataclass
class Asset:
    """
    A binary asset (image) imported from a remote URL.

    Attributes:
        asset_id: Local identifier
        source_url: Remote URL the asset was first fetched from
        file_hash: MD5 of the binary content
        file_path: Path relative to the asset store base directory
    """
    asset_id: int
    source_url: str
    file_hash: Optional[str] = None
    file_path: Optional[str] = None


@dataclass
class BatchResult:
    """
    Outcome of one orchestrator batch.

    Returned to the caller and logged; to_dict() gives the structured
    status used by the trigger interface.
    """
    status: BatchStatus
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    total_records: int = 0
    offset_before: int = 0
    offset_after: int = 0
    outcomes: List[ProcessOutcome] = field(default_factory=list)
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.status in (BatchStatus.COMPLETED, BatchStatus.WRAPPED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ok": self.ok,
            "status": self.status.value,
            "run_id": self.run_id,
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "total_records": self.total_records,
            "offset_before": self.offset_before,
            "offset_after": self.offset_after,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "failures": [o.to_dict() for o in self.outcomes if o.status == OutcomeStatus.FAILED],
        }

    def summary(self) -> str:
        """Get a one-line human-readable summary."""
        return (
            f"Batch {self.status.value}: processed={self.processed} "
            f"failed={self.failed} skipped={self.skipped} "
            f"offset {self.offset_before} -> {self.offset_after} "
            f"(of {self.total_records})"
        )
