"""SQLite-based data persistence for Grocery Resolver.

This module provides SQLite database storage as an alternative to JSON files.
It implements the same interface as DataStore for seamless switching.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from .models import ItemVariant, LearnedMapping, PersonalPriceEntry, PriceRecord


def adapt_datetime(dt: datetime) -> str:
    """Adapt datetime to ISO string for SQLite."""
    return dt.isoformat()


def convert_datetime(value: bytes) -> datetime:
    """Convert ISO string back to datetime from SQLite."""
    return datetime.fromisoformat(value.decode())


# Register adapters and converters
sqlite3.register_adapter(datetime, adapt_datetime)
sqlite3.register_converter("DATETIME", convert_datetime)


class SQLiteStore:
    """Manages SQLite database persistence for mappings, prices and variants."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | None = None):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/resolver.db
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "resolver.db"
        self.db_path = db_path
        self._ensure_directories()
        self._init_database()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(
            self.db_path,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize database schema if not exists."""
        with self._get_connection() as conn:
            conn.executescript("""
                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                -- Store-specific learned receipt mappings
                CREATE TABLE IF NOT EXISTS learned_mappings (
                    store_id TEXT NOT NULL,
                    raw_pattern TEXT NOT NULL,
                    pattern_tokens TEXT NOT NULL DEFAULT '[]',
                    canonical_name TEXT NOT NULL,
                    canonical_category TEXT,
                    confirmation_count INTEGER NOT NULL DEFAULT 1,
                    typical_price_min REAL,
                    typical_price_max REAL,
                    last_confirmed_by TEXT,
                    last_confirmed_at DATETIME NOT NULL,
                    created_at DATETIME NOT NULL,
                    updated_at DATETIME NOT NULL,
                    PRIMARY KEY (store_id, raw_pattern)
                );

                -- Crowdsourced price aggregates
                CREATE TABLE IF NOT EXISTS price_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    normalized_name TEXT NOT NULL,
                    store_id TEXT,
                    store_name TEXT,
                    region TEXT,
                    variant_name TEXT,
                    size TEXT,
                    unit_price REAL NOT NULL,
                    average_price REAL,
                    min_price REAL,
                    max_price REAL,
                    report_count INTEGER NOT NULL DEFAULT 1,
                    last_seen_at DATETIME NOT NULL
                );

                -- Per-user purchase history
                CREATE TABLE IF NOT EXISTS personal_prices (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    normalized_name TEXT NOT NULL,
                    store_name TEXT NOT NULL,
                    size TEXT NOT NULL,
                    unit TEXT NOT NULL,
                    unit_price REAL NOT NULL,
                    purchase_date DATETIME NOT NULL
                );

                -- Size variants of base items
                CREATE TABLE IF NOT EXISTS item_variants (
                    base_item TEXT NOT NULL,
                    variant_name TEXT NOT NULL,
                    size TEXT NOT NULL,
                    unit TEXT NOT NULL,
                    category TEXT,
                    commonality REAL,
                    estimated_price REAL,
                    PRIMARY KEY (base_item, variant_name)
                );

                CREATE INDEX IF NOT EXISTS idx_price_records_name ON price_records(normalized_name);
                CREATE INDEX IF NOT EXISTS idx_personal_prices_user_item
                    ON personal_prices(user_id, normalized_name);

                INSERT OR IGNORE INTO schema_version (version) VALUES (1);
            """)

    # --- Learned Mapping Operations ---

    def _row_to_mapping(self, row: sqlite3.Row) -> LearnedMapping:
        """Convert a database row to a LearnedMapping."""
        return LearnedMapping(
            store_id=row["store_id"],
            raw_pattern=row["raw_pattern"],
            pattern_tokens=json.loads(row["pattern_tokens"]),
            canonical_name=row["canonical_name"],
            canonical_category=row["canonical_category"],
            confirmation_count=row["confirmation_count"],
            typical_price_min=row["typical_price_min"],
            typical_price_max=row["typical_price_max"],
            last_confirmed_by=row["last_confirmed_by"],
            last_confirmed_at=row["last_confirmed_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_mapping(self, store_id: str, raw_pattern: str) -> LearnedMapping | None:
        """Get the mapping for a store and normalized pattern.

        Args:
            store_id: Normalized store identifier
            raw_pattern: Normalized receipt pattern

        Returns:
            LearnedMapping if found, None otherwise
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM learned_mappings WHERE store_id = ? AND raw_pattern = ?",
                (store_id, raw_pattern),
            ).fetchone()

        return self._row_to_mapping(row) if row else None

    def list_mappings(self, store_id: str, limit: int = 100) -> list[LearnedMapping]:
        """List up to ``limit`` mappings for a store, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM learned_mappings
                WHERE store_id = ?
                ORDER BY created_at
                LIMIT ?
                """,
                (store_id, limit),
            ).fetchall()

        return [self._row_to_mapping(row) for row in rows]

    def save_mapping(self, mapping: LearnedMapping) -> None:
        """Insert or replace a mapping keyed by (store_id, raw_pattern)."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO learned_mappings
                (store_id, raw_pattern, pattern_tokens, canonical_name, canonical_category,
                 confirmation_count, typical_price_min, typical_price_max, last_confirmed_by,
                 last_confirmed_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    mapping.store_id,
                    mapping.raw_pattern,
                    json.dumps(mapping.pattern_tokens),
                    mapping.canonical_name,
                    mapping.canonical_category,
                    mapping.confirmation_count,
                    mapping.typical_price_min,
                    mapping.typical_price_max,
                    mapping.last_confirmed_by,
                    mapping.last_confirmed_at,
                    mapping.created_at,
                    mapping.updated_at,
                ),
            )

    # --- Personal Price Operations ---

    def personal_prices(self, user_id: str, normalized_name: str) -> list[PersonalPriceEntry]:
        """Get a user's purchase history for an item."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM personal_prices
                WHERE user_id = ? AND normalized_name = ?
                ORDER BY id
                """,
                (user_id, normalized_name),
            ).fetchall()

        return [
            PersonalPriceEntry(
                user_id=row["user_id"],
                normalized_name=row["normalized_name"],
                store_name=row["store_name"],
                size=row["size"],
                unit=row["unit"],
                unit_price=row["unit_price"],
                purchase_date=row["purchase_date"],
            )
            for row in rows
        ]

    def add_personal_price(self, entry: PersonalPriceEntry) -> None:
        """Append a purchase to the user's history."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO personal_prices
                (user_id, normalized_name, store_name, size, unit, unit_price, purchase_date)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.user_id,
                    entry.normalized_name,
                    entry.store_name,
                    entry.size,
                    entry.unit,
                    entry.unit_price,
                    entry.purchase_date,
                ),
            )

    # --- Crowdsourced Price Operations ---

    def price_records(self, normalized_name: str) -> list[PriceRecord]:
        """Get crowdsourced price records for an item."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM price_records WHERE normalized_name = ? ORDER BY id",
                (normalized_name,),
            ).fetchall()

        return [
            PriceRecord(
                normalized_name=row["normalized_name"],
                store_id=row["store_id"],
                store_name=row["store_name"],
                region=row["region"],
                variant_name=row["variant_name"],
                size=row["size"],
                unit_price=row["unit_price"],
                average_price=row["average_price"],
                min_price=row["min_price"],
                max_price=row["max_price"],
                report_count=row["report_count"],
                last_seen_at=row["last_seen_at"],
            )
            for row in rows
        ]

    def add_price_record(self, record: PriceRecord) -> None:
        """Append a crowdsourced price record."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO price_records
                (normalized_name, store_id, store_name, region, variant_name, size,
                 unit_price, average_price, min_price, max_price, report_count, last_seen_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.normalized_name,
                    record.store_id,
                    record.store_name,
                    record.region,
                    record.variant_name,
                    record.size,
                    record.unit_price,
                    record.average_price,
                    record.min_price,
                    record.max_price,
                    record.report_count,
                    record.last_seen_at,
                ),
            )

    # --- Variant Operations ---

    def variants(self, base_item: str) -> list[ItemVariant]:
        """Get all known variants of a base item."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM item_variants WHERE base_item = ? ORDER BY rowid",
                (base_item,),
            ).fetchall()

        return [
            ItemVariant(
                base_item=row["base_item"],
                variant_name=row["variant_name"],
                size=row["size"],
                unit=row["unit"],
                category=row["category"],
                commonality=row["commonality"],
                estimated_price=row["estimated_price"],
            )
            for row in rows
        ]

    def add_variant(self, variant: ItemVariant) -> None:
        """Add or replace a variant keyed by (base_item, variant_name)."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO item_variants
                (base_item, variant_name, size, unit, category, commonality, estimated_price)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    variant.base_item,
                    variant.variant_name,
                    variant.size,
                    variant.unit,
                    variant.category,
                    variant.commonality,
                    variant.estimated_price,
                ),
            )
