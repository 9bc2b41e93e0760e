"""
SQLite-backed catalog store and asset index.

The local stand-in for the external shop database: products, the
category hierarchy, entry/category links and the index of imported
assets live in one SQLite file.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..core.catalog import AssetIndex, CatalogStore
from ..core.models import Asset, CatalogEntry, EntryAttribute


logger = logging.getLogger(__name__)

# parent_id of a top-level category; SQLite treats NULLs as distinct in UNIQUE
ROOT_PARENT = 0


class SqliteCatalogStore(CatalogStore, AssetIndex):
    """
    SQLite-based implementation of the catalog store and asset index.
    """

    def __init__(self, db_path: Path, auto_init: bool = True):
        """
        Initialize the SQLite catalog store.

        Args:
            db_path: Path to the SQLite database file
            auto_init: Whether to create tables automatically
        """
        self.db_path = Path(db_path)
        self.conn = None
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to SQLite catalog store: {self.db_path}")

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
                sku TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL DEFAULT '',
                slug TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT '',
                short_description TEXT NOT NULL DEFAULT '',
                regular_price REAL,
                image_id INTEGER,
                gallery_ids TEXT NOT NULL DEFAULT '[]',
                attributes TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS categories (
                category_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                parent_id INTEGER NOT NULL DEFAULT 0,
                UNIQUE (name, parent_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS entry_categories (
                entry_id INTEGER NOT NULL,
                category_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                PRIMARY KEY (entry_id, category_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS assets (
                asset_id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_url TEXT NOT NULL,
                file_hash TEXT,
                file_path TEXT,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS ix_assets_source_url
            ON assets (source_url)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS ix_assets_file_hash
            ON assets (file_hash)
        """)

        self.conn.commit()
        logger.debug("Initialized catalog store schema")

    # Catalog entries

    def get_entry_by_sku(self, sku: str) -> Optional[CatalogEntry]:
        row = self.conn.execute(
            "SELECT * FROM entries WHERE sku = ?", (sku,)
        ).fetchone()
        if row is None:
            return None

        entry = self._row_to_entry(row)
        entry.category_ids = self.get_entry_categories(entry.entry_id)
        return entry

    def save_entry(self, entry: CatalogEntry) -> int:
        now = datetime.now(timezone.utc).isoformat()
        attributes = json.dumps([
            {
                "name": a.name,
                "options": a.options,
                "visible": a.visible,
                "variation": a.variation,
            }
            for a in entry.attributes
        ], ensure_ascii=False)
        values = (
            entry.name,
            entry.slug,
            entry.description,
            entry.short_description,
            entry.regular_price,
            entry.image_id,
            json.dumps(entry.gallery_ids),
            attributes,
        )

        try:
            cursor = self.conn.cursor()
            if entry.entry_id is None:
                existing = self.conn.execute(
                    "SELECT entry_id FROM entries WHERE sku = ?", (entry.sku,)
                ).fetchone()
                if existing is not None:
                    entry.entry_id = existing["entry_id"]

            if entry.entry_id is None:
                cursor.execute("""
                    INSERT INTO entries (
                        name, slug, description, short_description, regular_price,
                        image_id, gallery_ids, attributes, sku, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, values + (entry.sku, now, now))
                entry.entry_id = cursor.lastrowid
            else:
                cursor.execute("""
                    UPDATE entries SET
                        name = ?, slug = ?, description = ?, short_description = ?,
                        regular_price = ?, image_id = ?, gallery_ids = ?, attributes = ?,
                        sku = ?, updated_at = ?
                    WHERE entry_id = ?
                """, values + (entry.sku, now, entry.entry_id))

            if entry.category_ids:
                self._write_entry_categories(cursor, entry.entry_id, entry.category_ids)

            self.conn.commit()
            return entry.entry_id

        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to save entry {entry.sku}: {e}")
            raise

    def resolve_category(self, name: str, parent_id: Optional[int] = None) -> int:
        parent = parent_id if parent_id is not None else ROOT_PARENT
        row = self.conn.execute(
            "SELECT category_id FROM categories WHERE name = ? AND parent_id = ?",
            (name, parent),
        ).fetchone()
        if row is not None:
            return row["category_id"]

        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO categories (name, parent_id) VALUES (?, ?)",
            (name, parent),
        )
        self.conn.commit()
        logger.debug(f"Created category '{name}' (parent={parent})")
        return cursor.lastrowid

    def set_entry_categories(self, entry_id: int, category_ids: List[int]) -> None:
        cursor = self.conn.cursor()
        self._write_entry_categories(cursor, entry_id, category_ids)
        self.conn.commit()

    def _write_entry_categories(self, cursor, entry_id: int, category_ids: List[int]) -> None:
        cursor.execute("DELETE FROM entry_categories WHERE entry_id = ?", (entry_id,))
        cursor.executemany(
            "INSERT OR IGNORE INTO entry_categories (entry_id, category_id, position) VALUES (?, ?, ?)",
            [(entry_id, cid, pos) for pos, cid in enumerate(category_ids)],
        )

    def get_entry_categories(self, entry_id: int) -> List[int]:
        rows = self.conn.execute(
            "SELECT category_id FROM entry_categories WHERE entry_id = ? ORDER BY position",
            (entry_id,),
        ).fetchall()
        return [row["category_id"] for row in rows]

    def count_entries(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) AS n FROM entries").fetchone()
        return row["n"]

    def _row_to_entry(self, row: sqlite3.Row) -> CatalogEntry:
        """Convert a database row to a CatalogEntry."""
        return CatalogEntry(
            sku=row["sku"],
            entry_id=row["entry_id"],
            name=row["name"],
            slug=row["slug"],
            description=row["description"],
            short_description=row["short_description"],
            regular_price=row["regular_price"],
            image_id=row["image_id"],
            gallery_ids=json.loads(row["gallery_ids"] or "[]"),
            attributes=[
                EntryAttribute(**attr) for attr in json.loads(row["attributes"] or "[]")
            ],
        )

    # Assets

    def find_asset_by_url(self, source_url: str) -> Optional[Asset]:
        row = self.conn.execute(
            "SELECT * FROM assets WHERE source_url = ? ORDER BY asset_id LIMIT 1",
            (source_url,),
        ).fetchone()
        return self._row_to_asset(row) if row else None

    def find_asset_by_hash(self, file_hash: str) -> Optional[Asset]:
        if not file_hash:
            return None
        row = self.conn.execute(
            "SELECT * FROM assets WHERE file_hash = ? ORDER BY asset_id LIMIT 1",
            (file_hash,),
        ).fetchone()
        return self._row_to_asset(row) if row else None

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        row = self.conn.execute(
            "SELECT * FROM assets WHERE asset_id = ?", (asset_id,)
        ).fetchone()
        return self._row_to_asset(row) if row else None

    def add_asset(
        self,
        source_url: str,
        file_hash: Optional[str],
        file_path: Optional[str],
    ) -> Asset:
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO assets (source_url, file_hash, file_path, created_at)
            VALUES (?, ?, ?, ?)
        """, (source_url, file_hash, file_path, datetime.now(timezone.utc).isoformat()))
        self.conn.commit()
        return Asset(
            asset_id=cursor.lastrowid,
            source_url=source_url,
            file_hash=file_hash,
            file_path=file_path,
        )

    def delete_asset(self, asset_id: int) -> bool:
        try:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM assets WHERE asset_id = ?", (asset_id,))
            if cursor.rowcount == 0:
                self.conn.rollback()
                return False

            cursor.execute(
                "UPDATE entries SET image_id = NULL WHERE image_id = ?", (asset_id,)
            )
            rows = cursor.execute(
                "SELECT entry_id, gallery_ids FROM entries WHERE gallery_ids != '[]'"
            ).fetchall()
            for row in rows:
                gallery = json.loads(row["gallery_ids"])
                if asset_id in gallery:
                    cursor.execute(
                        "UPDATE entries SET gallery_ids = ? WHERE entry_id = ?",
                        (json.dumps([g for g in gallery if g != asset_id]), row["entry_id"]),
                    )

            self.conn.commit()
            return True

        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to delete asset {asset_id}: {e}")
            raise

    def list_assets(self, path_prefix: Optional[str] = None) -> List[Asset]:
        if path_prefix:
            escaped = (
                path_prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            )
            rows = self.conn.execute("""
                SELECT DISTINCT * FROM assets
                WHERE file_path LIKE ? ESCAPE '\\'
                   OR source_url LIKE ? ESCAPE '\\'
                ORDER BY asset_id
            """, (f"{escaped}%", f"%{escaped}%")).fetchall()
        else:
            rows = self.conn.execute("SELECT * FROM assets ORDER BY asset_id").fetchall()
        return [self._row_to_asset(row) for row in rows]

    def _row_to_asset(self, row: sqlite3.Row) -> Asset:
        return Asset(
            asset_id=row["asset_id"],
            source_url=row["source_url"],
            file_hash=row["file_hash"],
            file_path=row["file_path"],
        )

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQLite catalog store connection")
