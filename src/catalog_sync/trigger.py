"""
Trigger interface for scheduled or remote batch runs.

run_triggered_batch() is the guarded entry point behind an HTTP endpoint
or a cron job: it checks a shared secret, optionally resets the cursor,
runs one batch and reports the outcome as a JSON-ready dict.
"""

import hmac
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .core.models import BatchStatus
from .runner.batch_runner import BatchRunner


logger = logging.getLogger(__name__)


TRIGGER_SECRET_OPTION = "cron_key_secret"
ALLOWED_METHODS = ("GET", "HEAD")
MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 500
DEFAULT_CRON_BATCH_SIZE = 50


@dataclass
class TriggerResponse:
    """HTTP-style response of a triggered run."""
    ok: bool
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.body, ensure_ascii=False)


def secrets_match(expected: str, provided: Optional[str]) -> bool:
    """Constant-time comparison of the configured and provided secrets."""
    return hmac.compare_digest(expected.encode("utf-8"), (provided or "").encode("utf-8"))


def clamp_batch_size(batch_size: Any, default: int = DEFAULT_CRON_BATCH_SIZE) -> int:
    """Coerce a requested batch size into [MIN_BATCH_SIZE, MAX_BATCH_SIZE]."""
    if batch_size is None or batch_size == "":
        batch_size = default
    try:
        value = int(batch_size)
    except (TypeError, ValueError):
        value = default
    return max(MIN_BATCH_SIZE, min(MAX_BATCH_SIZE, value))


def _error(status_code: int, message: str) -> TriggerResponse:
    return TriggerResponse(ok=False, status_code=status_code, body={"ok": False, "error": message})


def run_triggered_batch(
    runner: Optional[BatchRunner],
    secret_token: Optional[str],
    batch_size: Any = None,
    reset: bool = False,
    expected_secret: Optional[str] = None,
    default_batch_size: int = DEFAULT_CRON_BATCH_SIZE,
    method: str = "GET",
) -> TriggerResponse:
    """
    Authenticate and run one batch.

    Args:
        runner: Batch runner to drive; None means the importer is unavailable
        secret_token: Secret supplied by the caller
        batch_size: Requested batch size (clamped to 1..500)
        reset: Reset the cursor to 0 before running
        expected_secret: Configured secret; falls back to the
            "cron_key_secret" option of the runner's state store
        default_batch_size: Used when batch_size is not given
        method: Request method; only GET and HEAD are accepted

    Returns:
        TriggerResponse. Fails closed: no configured secret gives 403, a
        wrong secret 401.
    """
    if (method or "GET").upper() not in ALLOWED_METHODS:
        return _error(405, "Method not allowed")

    if not expected_secret and runner is not None:
        expected_secret = runner.state_store.get_option(TRIGGER_SECRET_OPTION, "")

    if not expected_secret:
        logger.warning("Trigger rejected: no secret configured")
        return _error(403, "No secret configured")

    if not secrets_match(expected_secret, (secret_token or "").strip()):
        logger.warning("Trigger rejected: bad secret")
        return _error(401, "Unauthorized")

    if runner is None:
        return _error(500, "Importer not available")

    try:
        if reset:
            runner.reset_pointer()

        batch = clamp_batch_size(batch_size, default_batch_size)

        if runner.is_locked():
            logger.info("Trigger skipped: import locked")
            return TriggerResponse(
                ok=False,
                status_code=200,
                body={
                    "ok": False,
                    "error": "Import locked (another job running)",
                    "status": BatchStatus.LOCKED.value,
                },
            )

        result = runner.run_batch(batch)

    except Exception as e:
        logger.exception(f"Triggered batch failed: {e}")
        return _error(500, str(e))

    body = {
        "ok": result.ok,
        "status": result.status.value,
        "processed": result.processed,
        "failed": result.failed,
        "skipped": result.skipped,
        "batch_requested": batch,
        "offset": result.offset_after,
        "time": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    }
    if result.error:
        body["error"] = result.error

    return TriggerResponse(ok=result.ok, status_code=200, body=body)
