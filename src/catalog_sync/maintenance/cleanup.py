"""
Paged cleanup of imported assets.

Removes the assets stored under one folder of the asset store (for
example a month that was imported twice) a batch at a time, keeping
its own offset in the state store so an interrupted cleanup resumes
where it stopped.
"""

import logging
from typing import Any, Dict, List

from ..assets.file_store import FileAssetStore
from ..core.catalog import AssetIndex
from ..core.models import Asset
from ..core.state_store import StateStore


logger = logging.getLogger(__name__)


CLEANUP_OFFSET_OPTION = "cleanup_offset"
DEFAULT_CLEANUP_BATCH = 200
PREVIEW_LIMIT = 50

ACTIONS = ("preview", "delete", "reset")


class AttachmentCleanup:
    """
    Preview or delete the assets matching a target folder.

    Assets match when their stored path starts with the folder or their
    source URL contains it.
    """

    def __init__(
        self,
        index: AssetIndex,
        store: FileAssetStore,
        state_store: StateStore,
        target_prefix: str,
        offset_name: str = CLEANUP_OFFSET_OPTION,
    ):
        """
        Args:
            index: Asset index to search and delete from
            store: Asset store holding the files
            state_store: Persists the cleanup offset
            target_prefix: Folder relative to the store root, e.g. "2025/09"
            offset_name: Option key of the cleanup offset
        """
        if not target_prefix or not target_prefix.strip("/"):
            raise ValueError("Cleanup target prefix must not be empty")

        self.index = index
        self.store = store
        self.state_store = state_store
        self.target_prefix = target_prefix.strip("/")
        self.offset_name = offset_name

    def run(self, action: str, batch: int = DEFAULT_CLEANUP_BATCH) -> Dict[str, Any]:
        """Dispatch one of "preview", "delete" or "reset"."""
        if action == "preview":
            return self.preview(batch)
        if action == "delete":
            return self.delete(batch)
        if action == "reset":
            return self.reset()
        raise ValueError(f"Unknown action: {action}")

    def _targets(self) -> List[Asset]:
        return self.index.list_assets(path_prefix=self.target_prefix)

    def _current_offset(self, total: int) -> int:
        offset = self.state_store.get_offset(self.offset_name)
        return 0 if offset >= total else offset

    def preview(self, batch: int = DEFAULT_CLEANUP_BATCH) -> Dict[str, Any]:
        """Describe the next slice without changing anything."""
        batch = max(1, int(batch))
        assets = self._targets()
        total = len(assets)
        offset = self._current_offset(total)
        to_process = assets[offset:offset + batch]

        return {
            "found_attachment_count": total,
            "offset": offset,
            "batch": batch,
            "next_count": len(to_process),
            "next_ids_preview": [a.asset_id for a in to_process[:PREVIEW_LIMIT]],
            "target_filesystem_path": str(self.store.base_dir / self.target_prefix),
            "folder_exists": (self.store.base_dir / self.target_prefix).is_dir(),
        }

    def delete(self, batch: int = DEFAULT_CLEANUP_BATCH) -> Dict[str, Any]:
        """
        Delete the next slice of matching assets.

        Deleted assets drop out of the target list, so the offset only
        moves past assets that failed to delete. Once the end of the list
        is reached the offset goes back to 0 and empty folders are removed.
        """
        batch = max(1, int(batch))
        assets = self._targets()
        total = len(assets)

        if total == 0:
            return {
                "status": "ok",
                "message": "No attachments found for target folder.",
                "total": 0,
            }

        offset = self._current_offset(total)
        to_process = assets[offset:offset + batch]

        deleted: List[int] = []
        failed: List[int] = []
        for asset in to_process:
            try:
                self.store.delete(asset.file_path)
                removed = self.index.delete_asset(asset.asset_id)
            except OSError as e:
                logger.error(f"Failed deleting asset {asset.asset_id} ({asset.file_path}): {e}")
                removed = False

            if removed:
                deleted.append(asset.asset_id)
            else:
                failed.append(asset.asset_id)

        finished = offset + len(to_process) >= total
        folder_removed = False
        if finished:
            offset_after = 0
            folder_removed = self.store.remove_empty_dirs(self.target_prefix)
        else:
            offset_after = offset + len(failed)
        self.state_store.set_offset(offset_after, self.offset_name)

        logger.info(
            f"Cleanup of {self.target_prefix}: deleted={len(deleted)} failed={len(failed)} "
            f"offset {offset} -> {offset_after}"
        )

        return {
            "status": "ok",
            "total_found": total,
            "offset_before": offset,
            "processed_requested": len(to_process),
            "deleted_count": len(deleted),
            "deleted_ids": deleted,
            "failed_ids": failed,
            "offset_after": offset_after,
            "finished": finished,
            "folder_removed": folder_removed,
        }

    def reset(self) -> Dict[str, Any]:
        """Set the cleanup offset back to 0."""
        self.state_store.reset(self.offset_name)
        return {"status": "ok", "message": "Offset reset to 0."}
