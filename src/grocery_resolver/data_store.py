"""Data persistence for Grocery Resolver.

The matching and pricing engine never touches storage itself. This module
provides the backends callers hand to it: JSON files (default) or SQLite.
Use create_data_store() to get the appropriate backend based on configuration.
"""

import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from .models import ItemVariant, LearnedMapping, PersonalPriceEntry, PriceRecord

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendType(str, Enum):
    """Data storage backend types."""

    JSON = "json"
    SQLITE = "sqlite"


class DataStoreProtocol(Protocol):
    """Protocol defining the data store interface."""

    def get_mapping(self, store_id: str, raw_pattern: str) -> LearnedMapping | None: ...
    def list_mappings(self, store_id: str, limit: int = 100) -> list[LearnedMapping]: ...
    def save_mapping(self, mapping: LearnedMapping) -> None: ...
    def personal_prices(self, user_id: str, normalized_name: str) -> list[PersonalPriceEntry]: ...
    def add_personal_price(self, entry: PersonalPriceEntry) -> None: ...
    def price_records(self, normalized_name: str) -> list[PriceRecord]: ...
    def add_price_record(self, record: PriceRecord) -> None: ...
    def variants(self, base_item: str) -> list[ItemVariant]: ...
    def add_variant(self, variant: ItemVariant) -> None: ...


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for our data types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class DataStore:
    """Manages JSON file persistence for mappings, prices and variants."""

    def __init__(self, data_dir: Path | None = None):
        """Initialize data store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _mappings_path(self) -> Path:
        """Path to learned mappings file."""
        return self.data_dir / "learned_mappings.json"

    def _price_records_path(self) -> Path:
        """Path to crowdsourced price records file."""
        return self.data_dir / "price_records.json"

    def _personal_prices_path(self) -> Path:
        """Path to personal purchase history file."""
        return self.data_dir / "personal_prices.json"

    def _variants_path(self) -> Path:
        """Path to item variants file."""
        return self.data_dir / "item_variants.json"

    def _load(self, path: Path, model: type[ModelT]) -> list[ModelT]:
        """Load a list of records, empty if the file doesn't exist."""
        if not path.exists():
            return []

        with open(path) as f:
            data = json.load(f)

        return [model(**record) for record in data]

    def _save(self, path: Path, records: list[BaseModel]) -> None:
        """Write a list of records."""
        with open(path, "w") as f:
            json.dump([r.model_dump() for r in records], f, cls=JSONEncoder, indent=2)

    # --- Learned Mapping Operations ---

    def load_mappings(self) -> list[LearnedMapping]:
        """Load all learned mappings."""
        return self._load(self._mappings_path(), LearnedMapping)

    def get_mapping(self, store_id: str, raw_pattern: str) -> LearnedMapping | None:
        """Get the mapping for a store and normalized pattern.

        Args:
            store_id: Normalized store identifier
            raw_pattern: Normalized receipt pattern

        Returns:
            LearnedMapping if found, None otherwise
        """
        for mapping in self.load_mappings():
            if mapping.store_id == store_id and mapping.raw_pattern == raw_pattern:
                return mapping
        return None

    def list_mappings(self, store_id: str, limit: int = 100) -> list[LearnedMapping]:
        """List up to ``limit`` mappings for a store, oldest first."""
        mappings = [m for m in self.load_mappings() if m.store_id == store_id]
        return mappings[:limit]

    def save_mapping(self, mapping: LearnedMapping) -> None:
        """Insert or replace a mapping keyed by (store_id, raw_pattern)."""
        mappings = self.load_mappings()
        for i, existing in enumerate(mappings):
            if existing.store_id == mapping.store_id and existing.raw_pattern == mapping.raw_pattern:
                mappings[i] = mapping
                break
        else:
            mappings.append(mapping)
        self._save(self._mappings_path(), mappings)

    # --- Personal Price Operations ---

    def personal_prices(self, user_id: str, normalized_name: str) -> list[PersonalPriceEntry]:
        """Get a user's purchase history for an item."""
        return [
            e
            for e in self._load(self._personal_prices_path(), PersonalPriceEntry)
            if e.user_id == user_id and e.normalized_name == normalized_name
        ]

    def add_personal_price(self, entry: PersonalPriceEntry) -> None:
        """Append a purchase to the user's history."""
        entries = self._load(self._personal_prices_path(), PersonalPriceEntry)
        entries.append(entry)
        self._save(self._personal_prices_path(), entries)

    # --- Crowdsourced Price Operations ---

    def price_records(self, normalized_name: str) -> list[PriceRecord]:
        """Get crowdsourced price records for an item."""
        return [
            r
            for r in self._load(self._price_records_path(), PriceRecord)
            if r.normalized_name == normalized_name
        ]

    def add_price_record(self, record: PriceRecord) -> None:
        """Append a crowdsourced price record."""
        records = self._load(self._price_records_path(), PriceRecord)
        records.append(record)
        self._save(self._price_records_path(), records)

    # --- Variant Operations ---

    def variants(self, base_item: str) -> list[ItemVariant]:
        """Get all known variants of a base item."""
        return [v for v in self._load(self._variants_path(), ItemVariant) if v.base_item == base_item]

    def add_variant(self, variant: ItemVariant) -> None:
        """Add or replace a variant keyed by (base_item, variant_name)."""
        variants = self._load(self._variants_path(), ItemVariant)
        variants = [
            v
            for v in variants
            if not (v.base_item == variant.base_item and v.variant_name == variant.variant_name)
        ]
        variants.append(variant)
        self._save(self._variants_path(), variants)


def create_data_store(
    backend: BackendType = BackendType.JSON,
    data_dir: Path | None = None,
    db_path: Path | None = None,
) -> DataStoreProtocol:
    """Create a data store with the specified backend.

    Args:
        backend: Which backend to use (json or sqlite)
        data_dir: Directory for data files (used by JSON backend, also used
                  as base path for SQLite if db_path not specified)
        db_path: Path to SQLite database file (only used by SQLite backend)

    Returns:
        A DataStore or SQLiteStore instance
    """
    if backend == BackendType.SQLITE:
        from .sqlite_store import SQLiteStore

        if db_path is None:
            base = data_dir or Path.cwd() / "data"
            db_path = base / "resolver.db"
        return SQLiteStore(db_path=db_path)

    return DataStore(data_dir=data_dir)
