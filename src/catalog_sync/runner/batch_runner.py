"""
Batch runner: the sync orchestrator.

Each call to run_batch() processes one window of the items feed and
moves the persisted cursor forward, so repeated short invocations (cron,
HTTP trigger, CLI) eventually cover the whole catalog and then start
over from the top.
"""

import logging
from datetime import datetime, timezone

from ..core.exceptions import FeedFetchError, FeedParseError
from ..core.models import AdvancePolicy, BatchResult, BatchStatus, OutcomeStatus
from ..core.state_store import (
    DEFAULT_LOCK_NAME, DEFAULT_LOCK_TTL_SECONDS, DEFAULT_OFFSET_NAME, StateStore,
)
from ..feeds.fetcher import FeedFetcher
from ..processing.item_processor import ItemProcessor


logger = logging.getLogger(__name__)


DEFAULT_BATCH_SIZE = 10


class BatchRunner:
    """
    Orchestrates one batch of the sync.

    Manages the workflow:
    1. Take the run lock (give up if another run holds it)
    2. Fetch the auxiliary lookup feeds
    3. Fetch the items feed
    4. Process the window starting at the persisted offset
    5. Advance (or wrap) the offset
    6. Release the lock
    """

    def __init__(
        self,
        state_store: StateStore,
        fetcher: FeedFetcher,
        processor: ItemProcessor,
        lock_ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS,
        advance_policy: AdvancePolicy = AdvancePolicy.RETRY_IN_PLACE,
        lock_name: str = DEFAULT_LOCK_NAME,
        offset_name: str = DEFAULT_OFFSET_NAME,
    ):
        """
        Initialize the batch runner.

        Args:
            state_store: Holds the cursor and the run lock
            fetcher: Feed fetcher
            processor: Maps each item onto the catalog
            lock_ttl_seconds: Lock expiry; a crashed run blocks others at most this long
            advance_policy: Whether failed records are retried in place or skipped
            lock_name: Name of the run lock
            offset_name: Option key of the cursor
        """
        self.state_store = state_store
        self.fetcher = fetcher
        self.processor = processor
        self.lock_ttl_seconds = lock_ttl_seconds
        self.advance_policy = AdvancePolicy(advance_policy)
        self.lock_name = lock_name
        self.offset_name = offset_name

    def run_batch(self, batch_size: int = DEFAULT_BATCH_SIZE) -> BatchResult:
        """
        Run one batch.

        Args:
            batch_size: Maximum number of records in the window

        Returns:
            BatchResult with counts, offsets and per-record failures
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        if not self.state_store.try_acquire_lock(self.lock_name, self.lock_ttl_seconds):
            logger.info("Import skipped: lock present")
            result = BatchResult(status=BatchStatus.LOCKED)
            offset = self.state_store.get_offset(self.offset_name)
            result.offset_before = result.offset_after = offset
            result.completed_at = datetime.now(timezone.utc)
            return result

        try:
            return self._run_locked(batch_size)
        finally:
            self.state_store.release_lock(self.lock_name)

    def _run_locked(self, batch_size: int) -> BatchResult:
        offset = self.state_store.get_offset(self.offset_name)
        result = BatchResult(status=BatchStatus.COMPLETED, offset_before=offset, offset_after=offset)
        logger.info(f"Starting batch {result.run_id}: offset={offset}, batch_size={batch_size}")

        aux_maps = self.fetcher.fetch_aux_maps()

        try:
            records = self.fetcher.fetch_items()
        except (FeedFetchError, FeedParseError) as e:
            logger.error(f"Failed fetching Items feed: {e}")
            result.status = BatchStatus.FETCH_FAILED
            result.error = str(e)
            result.completed_at = datetime.now(timezone.utc)
            return result

        total = len(records)
        result.total_records = total

        if offset >= total:
            self.state_store.reset(self.offset_name)
            logger.info(f"Pointer was at/after end ({offset}). Reset to 0.")
            result.status = BatchStatus.WRAPPED
            result.offset_after = 0
            result.completed_at = datetime.now(timezone.utc)
            return result

        window = records[offset:offset + batch_size]
        for position, record in enumerate(window, start=offset):
            outcome = self.processor.process(record, aux_maps)
            result.outcomes.append(outcome)

            if outcome.succeeded:
                result.processed += 1
            elif outcome.status == OutcomeStatus.SKIPPED:
                result.skipped += 1
            else:
                result.failed += 1
                logger.warning(f"Item at offset {position} failed: {outcome.reason}")

        if self.advance_policy == AdvancePolicy.SKIP_FAILED:
            new_offset = offset + len(window)
        else:
            new_offset = offset + result.processed + result.skipped

        if new_offset >= total:
            new_offset = 0
            logger.info(f"Processed {result.processed} items and reached feed end -> pointer reset to 0.")
        else:
            logger.info(f"Batch finished: processed={result.processed}, pointer set to {new_offset}")

        self.state_store.set_offset(new_offset, self.offset_name)
        result.offset_after = new_offset
        result.completed_at = datetime.now(timezone.utc)
        logger.info(result.summary())
        return result

    def count_items(self) -> int:
        """Number of items in the feed (0 if it cannot be fetched)."""
        return self.fetcher.count_items()

    def reset_pointer(self) -> None:
        """Set the cursor back to 0."""
        self.state_store.reset(self.offset_name)
        logger.info("Pointer reset to 0")

    def get_offset(self) -> int:
        return self.state_store.get_offset(self.offset_name)

    def is_locked(self) -> bool:
        return self.state_store.is_locked(self.lock_name)

