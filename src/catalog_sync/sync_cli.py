#!/usr/bin/env python3
"""
CLI entry point for the catalog sync.

Runs sync batches, inspects and resets the cursor, and drives the
maintenance tasks, all from configuration.

Usage:
    catalog-sync run --batch-size 10
    catalog-sync --config config/sync.yaml status
    catalog-sync trigger --key SECRET --batch 50
    catalog-sync detect-changes --key-field Code
    catalog-sync cleanup preview --prefix 2025/09
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .assets import AssetResolver, FileAssetStore
from .catalog import SqliteCatalogStore
from .config import SyncConfig
from .connectors import HttpConnector
from .core.exceptions import CatalogSyncError, ConfigError
from .core.logging import configure_logging, get_log_tail
from .core.models import AdvancePolicy, BatchStatus
from .core.state_store import StateStore
from .feeds import FeedFetcher, build_feed_urls
from .hashing import SnapshotStore, filter_changed
from .maintenance import AttachmentCleanup
from .maintenance.cleanup import ACTIONS as CLEANUP_ACTIONS
from .processing import ItemProcessor
from .runner import BatchRunner
from .state import create_state_store
from .trigger import run_triggered_batch


logger = logging.getLogger(__name__)


def setup_logging(config: SyncConfig, verbose: bool = False) -> None:
    """Configure logging."""
    log_config = config.get_logging_config()
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO)

    configure_logging(
        level=level,
        log_file=log_config.get("file"),
        structured=bool(log_config.get("structured", False)),
        max_bytes=int(log_config.get("max_bytes", 5 * 1024 * 1024)),
        backup_count=int(log_config.get("backup_count", 5)),
    )


def build_connector(config: SyncConfig) -> HttpConnector:
    """Build the HTTP connector from configuration."""
    http_config = config.get_http_config()
    return HttpConnector(
        timeout=http_config.get("timeout", 30),
        max_retries=http_config.get("max_retries", 3),
        user_agent=http_config.get("user_agent"),
        backoff_base=http_config.get("backoff_base", 1.0),
    )


def build_fetcher(config: SyncConfig, connector: HttpConnector) -> FeedFetcher:
    """Build the feed fetcher from configuration."""
    feed_config = config.get_feed_config()
    urls = build_feed_urls(feed_config.get("base_url"), feed_config.get("urls"))
    if "items" not in urls:
        raise ConfigError("No URL configured for the items feed (feeds.base_url or feeds.urls.items)")
    return FeedFetcher(connector, urls)


def build_state_store(config: SyncConfig) -> StateStore:
    """Build state store from configuration."""
    state_config = config.get_state_config()
    sql_config = state_config.get("sqlserver", {}) or {}

    return create_state_store(
        backend=state_config.get("backend"),
        db_path=state_config.get("db_path"),
        host=sql_config.get("host", "localhost"),
        port=int(sql_config.get("port", 1433)),
        database=sql_config.get("database", "CatalogSync"),
        username=sql_config.get("user", "sa"),
        password=sql_config.get("password"),
        driver=sql_config.get("driver", "ODBC Driver 18 for SQL Server"),
        schema=sql_config.get("schema", "sync"),
    )


def build_catalog(config: SyncConfig) -> SqliteCatalogStore:
    """Build the local catalog store from configuration."""
    return SqliteCatalogStore(db_path=Path(config.get("catalog.db_path", "local/catalog.db")))


def build_asset_store(config: SyncConfig) -> FileAssetStore:
    """Build the asset store from configuration."""
    return FileAssetStore(base_dir=Path(config.get("assets.base_dir", "local/uploads")))


def build_runner(
    config: SyncConfig,
    state_store: StateStore,
    connector: HttpConnector,
    catalog: SqliteCatalogStore,
) -> BatchRunner:
    """Wire the fetcher, processor and state store into a batch runner."""
    resolver = AssetResolver(connector, catalog, build_asset_store(config))
    runner_config = config.get_runner_config()

    try:
        policy = AdvancePolicy(runner_config.get("advance_policy", AdvancePolicy.RETRY_IN_PLACE.value))
    except ValueError as e:
        raise ConfigError(f"Invalid runner.advance_policy: {e}") from e

    return BatchRunner(
        state_store=state_store,
        fetcher=build_fetcher(config, connector),
        processor=ItemProcessor(catalog, resolver),
        lock_ttl_seconds=config.get_int("runner.lock_ttl_seconds", 1800),
        advance_policy=policy,
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Incremental catalog sync from XML feeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration YAML file",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run one sync batch")
    run_parser.add_argument("--batch-size", type=int, help="Records per batch")
    run_parser.add_argument("--reset", action="store_true", help="Reset the pointer before running")

    subparsers.add_parser("reset", help="Reset the sync pointer to 0")
    subparsers.add_parser("status", help="Show pointer, lock and log tail")
    subparsers.add_parser("count", help="Count items in the feed")

    trigger_parser = subparsers.add_parser("trigger", help="Run one batch behind the shared secret")
    trigger_parser.add_argument("--key", required=True, help="Shared secret")
    trigger_parser.add_argument("--batch", type=int, help="Batch size (1-500)")
    trigger_parser.add_argument("--reset", action="store_true", help="Reset the pointer before running")

    detect_parser = subparsers.add_parser("detect-changes", help="Diff the items feed against the last snapshot")
    detect_parser.add_argument("--key-field", help="Record field used as key")
    detect_parser.add_argument("--snapshot", type=Path, help="Snapshot file path")
    detect_parser.add_argument("--no-save", action="store_true", help="Do not persist the new snapshot")

    cleanup_parser = subparsers.add_parser("cleanup", help="Preview or delete imported assets under a folder")
    cleanup_parser.add_argument("action", choices=CLEANUP_ACTIONS)
    cleanup_parser.add_argument("--batch", type=int, help="Assets per run")
    cleanup_parser.add_argument("--prefix", help="Folder relative to the asset store, e.g. 2025/09")

    return parser.parse_args(argv)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def cmd_run(args, config: SyncConfig, state_store: StateStore) -> int:
    connector = build_connector(config)
    catalog = build_catalog(config)
    try:
        runner = build_runner(config, state_store, connector, catalog)
        if args.reset:
            runner.reset_pointer()
        batch_size = args.batch_size or config.get_int("runner.batch_size", 10)
        result = runner.run_batch(batch_size)
        _print_json(result.to_dict())
        return 0 if result.ok or result.status == BatchStatus.LOCKED else 1
    finally:
        catalog.close()
        connector.close()


def cmd_trigger(args, config: SyncConfig, state_store: StateStore) -> int:
    connector = build_connector(config)
    catalog = build_catalog(config)
    try:
        runner = build_runner(config, state_store, connector, catalog)
        response = run_triggered_batch(
            runner,
            secret_token=args.key,
            batch_size=args.batch,
            reset=args.reset,
            expected_secret=config.get("trigger.secret"),
            default_batch_size=config.get_int("runner.cron_batch_size", 50),
        )
        print(response.to_json())
        return 0 if response.ok else 1
    finally:
        catalog.close()
        connector.close()


def cmd_status(config: SyncConfig, state_store: StateStore) -> int:
    print(f"Offset: {state_store.get_offset()}")
    print(f"Locked: {state_store.is_locked()}")
    log_file = config.get("logging.file")
    if log_file:
        print("Log tail:")
        print(get_log_tail(log_file))
    return 0


def cmd_count(config: SyncConfig) -> int:
    connector = build_connector(config)
    try:
        print(build_fetcher(config, connector).count_items())
        return 0
    finally:
        connector.close()


def cmd_detect_changes(args, config: SyncConfig) -> int:
    connector = build_connector(config)
    try:
        records = build_fetcher(config, connector).fetch_items()
    finally:
        connector.close()

    key_field = args.key_field or config.get("snapshot.key_field")
    store = SnapshotStore(args.snapshot or Path(config.get("snapshot.path")))
    changes = filter_changed(records, store.load(), key_field)

    _print_json({
        "total": len(records),
        "added": len(changes.added),
        "changed": changes.changed_keys,
        "removed": changes.removed_keys,
    })

    if not args.no_save and not store.save(changes.snapshot):
        logger.error(f"Failed saving snapshot to {store.path}")
        return 1
    return 0


def cmd_cleanup(args, config: SyncConfig, state_store: StateStore) -> int:
    prefix = args.prefix or config.get("cleanup.prefix")
    if not prefix:
        raise ConfigError("No cleanup target (use --prefix or cleanup.prefix)")

    catalog = build_catalog(config)
    try:
        cleanup = AttachmentCleanup(catalog, build_asset_store(config), state_store, prefix)
        batch = args.batch or config.get_int("cleanup.batch", 200)
        _print_json(cleanup.run(args.action, batch))
        return 0
    finally:
        catalog.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = parse_args(argv)

    try:
        config = SyncConfig(config_path=args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config, verbose=args.verbose)

    state_store = None
    try:
        if args.command == "count":
            return cmd_count(config)
        if args.command == "detect-changes":
            return cmd_detect_changes(args, config)

        state_store = build_state_store(config)
        if args.command == "run":
            return cmd_run(args, config, state_store)
        if args.command == "trigger":
            return cmd_trigger(args, config, state_store)
        if args.command == "reset":
            state_store.reset()
            logger.info("Pointer reset to 0")
            return 0
        if args.command == "status":
            return cmd_status(config, state_store)
        if args.command == "cleanup":
            return cmd_cleanup(args, config, state_store)
        return 2

    except CatalogSyncError as e:
        logger.error(str(e))
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    finally:
        if state_store is not None:
            state_store.close()


if __name__ == "__main__":
    sys.exit(main())
