"""
Shared test fixtures and configuration for pytest.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from catalog_sync.connectors import StaticConnector
from catalog_sync.feeds import FeedFetcher, build_feed_urls


logger = logging.getLogger(__name__)


FEED_BASE = "https://feeds.example.com/eshop"


# ============================================================================
# Environment detection
# ============================================================================

def is_sqlserver_available() -> bool:
    """Check if SQL Server is available for testing."""
    password = os.environ.get("SYNC_SQLSERVER_PASSWORD") or os.environ.get("MSSQL_SA_PASSWORD")
    if not password:
        return False

    try:
        import pyodbc

        conn = pyodbc.connect(_sqlserver_conn_str(password), timeout=5)
        conn.close()
        return True

    except Exception as e:
        logger.debug(f"SQL Server not available: {e}")
        return False


def _sqlserver_conn_str(password: str) -> str:
    host = os.environ.get("SYNC_SQLSERVER_HOST", "localhost")
    port = int(os.environ.get("SYNC_SQLSERVER_PORT", "1433"))
    database = os.environ.get("SYNC_SQLSERVER_DATABASE", os.environ.get("MSSQL_DATABASE", "master"))
    username = os.environ.get("SYNC_SQLSERVER_USER", "sa")
    driver = os.environ.get("SYNC_SQLSERVER_DRIVER", "ODBC Driver 18 for SQL Server")
    return (
        f"Driver={{{driver}}};"
        f"Server={host},{port};"
        f"Database={database};"
        f"UID={username};"
        f"PWD={password};"
        f"TrustServerCertificate=yes"
    )


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (requires SQL Server)")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests if SQL Server is not available."""
    if not any("integration" in item.keywords for item in items):
        return
    if is_sqlserver_available():
        return

    skip_sqlserver = pytest.mark.skip(
        reason="SQL Server not available (set MSSQL_SA_PASSWORD and ensure SQL Server is running)"
    )

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_sqlserver)


# ============================================================================
# Feed builders
# ============================================================================

def item_xml(code: str, **fields: str) -> str:
    """Render one <Item> element."""
    children = "".join(f"<{tag}>{value}</{tag}>" for tag, value in fields.items())
    return f"<Item><Code>{code}</Code>{children}</Item>"


def items_feed(items: List[str]) -> str:
    return f"<?xml version=\"1.0\" encoding=\"utf-8\"?><Items>{''.join(items)}</Items>"


def numbered_items_feed(count: int) -> str:
    """Items feed with codes SKU-000 .. SKU-{count-1}."""
    return items_feed([item_xml(f"SKU-{i:03d}", Name=f"Product {i}") for i in range(count)])


def empty_aux_feeds() -> Dict[str, str]:
    return {
        "series": "<ProductSeries></ProductSeries>",
        "images": "<ItemImages></ItemImages>",
        "attributes": "<Attributes></Attributes>",
        "features": "<Features></Features>",
    }


class FakeClock:
    """Manually advanced clock for lock expiry tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def feed_urls() -> Dict[str, str]:
    return build_feed_urls(FEED_BASE)


@pytest.fixture
def make_fetcher(feed_urls):
    """
    Factory fixture: build a FeedFetcher over a StaticConnector.

    Args (of the returned callable):
        items: Items feed body, or None to leave it unserved
        aux: Feed name -> body for auxiliary feeds (defaults to empty feeds)
        error_feeds: Feed names whose URL fails in transport
    """
    def _make(
        items: Optional[str] = None,
        aux: Optional[Dict[str, str]] = None,
        error_feeds: Optional[List[str]] = None,
    ) -> FeedFetcher:
        documents = {}
        if items is not None:
            documents[feed_urls["items"]] = items
        for name, body in (aux if aux is not None else empty_aux_feeds()).items():
            documents[feed_urls[name]] = body
        connector = StaticConnector(
            documents=documents,
            error_urls=[feed_urls[name] for name in (error_feeds or [])],
        )
        return FeedFetcher(connector, feed_urls)

    return _make


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
