"""Tests for the data store backends."""

import json
from datetime import date, datetime

import pytest

from grocery_resolver.data_store import BackendType, DataStore, JSONEncoder, create_data_store
from grocery_resolver.models import (
    ItemVariant,
    LearnedMapping,
    PersonalPriceEntry,
    PriceRecord,
    PriceSource,
)
from grocery_resolver.sqlite_store import SQLiteStore


@pytest.fixture(params=[BackendType.JSON, BackendType.SQLITE])
def store(request, temp_data_dir):
    """A data store for each backend, sharing one directory."""
    return create_data_store(backend=request.param, data_dir=temp_data_dir)


def mapping(store_id="tesco", pattern="tsc whl mlk", canonical="Whole Milk", **kwargs):
    return LearnedMapping(
        store_id=store_id,
        raw_pattern=pattern,
        pattern_tokens=pattern.split(),
        canonical_name=canonical,
        **kwargs,
    )


class TestCreateDataStore:
    """Tests for create_data_store."""

    def test_json_backend(self, temp_data_dir):
        assert isinstance(create_data_store(BackendType.JSON, temp_data_dir), DataStore)

    def test_sqlite_backend_uses_data_dir(self, temp_data_dir):
        store = create_data_store(BackendType.SQLITE, temp_data_dir)

        assert isinstance(store, SQLiteStore)
        assert store.db_path == temp_data_dir / "resolver.db"
        assert store.db_path.exists()

    def test_sqlite_explicit_path(self, tmp_path):
        db_path = tmp_path / "custom.db"
        store = create_data_store(BackendType.SQLITE, db_path=db_path)

        assert store.db_path == db_path

    def test_backend_from_string(self):
        assert BackendType("sqlite") == BackendType.SQLITE


class TestMappings:
    """Tests for learned mapping persistence."""

    def test_get_missing(self, store):
        assert store.get_mapping("tesco", "nothing") is None

    def test_save_and_get(self, store):
        store.save_mapping(
            mapping(canonical_category="Dairy", typical_price_min=1.2, typical_price_max=1.5)
        )
        loaded = store.get_mapping("tesco", "tsc whl mlk")

        assert loaded.canonical_name == "Whole Milk"
        assert loaded.pattern_tokens == ["tsc", "whl", "mlk"]
        assert loaded.canonical_category == "Dairy"
        assert loaded.price_range_seen == (1.2, 1.5)
        assert isinstance(loaded.created_at, datetime)

    def test_save_replaces(self, store):
        store.save_mapping(mapping())
        store.save_mapping(mapping(canonical="Semi Skimmed Milk", confirmation_count=2))

        loaded = store.get_mapping("tesco", "tsc whl mlk")
        assert loaded.canonical_name == "Semi Skimmed Milk"
        assert loaded.confirmation_count == 2
        assert len(store.list_mappings("tesco")) == 1

    def test_list_by_store_with_limit(self, store):
        for i in range(5):
            store.save_mapping(mapping(pattern=f"item {i}"))
        store.save_mapping(mapping(store_id="asda", pattern="item x"))

        assert len(store.list_mappings("tesco")) == 5
        assert len(store.list_mappings("tesco", limit=3)) == 3
        assert [m.raw_pattern for m in store.list_mappings("asda")] == ["item x"]


class TestPrices:
    """Tests for personal and crowdsourced price persistence."""

    def test_personal_prices_filtered(self, store):
        for user, name in [("alice", "milk"), ("alice", "bread"), ("bob", "milk")]:
            store.add_personal_price(
                PersonalPriceEntry(
                    user_id=user,
                    normalized_name=name,
                    store_name="Tesco",
                    size="2 pints",
                    unit="pint",
                    unit_price=1.2,
                    purchase_date=date(2026, 2, 27),
                )
            )

        entries = store.personal_prices("alice", "milk")
        assert len(entries) == 1
        assert entries[0].purchase_date == datetime(2026, 2, 27)

    def test_price_records(self, store):
        store.add_price_record(
            PriceRecord(
                normalized_name="milk",
                store_id="tesco",
                store_name="Tesco",
                region="UK",
                size="2 pints",
                unit_price=1.30,
                average_price=1.25,
                report_count=10,
                last_seen_at=datetime(2026, 3, 1, 9, 30),
            )
        )
        store.add_price_record(PriceRecord(normalized_name="bread", unit_price=1.00))

        records = store.price_records("milk")
        assert len(records) == 1
        assert records[0].effective_price == 1.25
        assert records[0].report_count == 10
        assert records[0].last_seen_at == datetime(2026, 3, 1, 9, 30)

    def test_empty(self, store):
        assert store.personal_prices("alice", "milk") == []
        assert store.price_records("milk") == []


class TestVariants:
    """Tests for item variant persistence."""

    def test_add_and_list(self, store):
        store.add_variant(ItemVariant(base_item="milk", variant_name="2 pints", size="2 pints", unit="pint"))
        store.add_variant(ItemVariant(base_item="milk", variant_name="4 pints", size="4 pints", unit="pint"))
        store.add_variant(ItemVariant(base_item="bread", variant_name="800g", size="800g", unit="g"))

        assert [v.variant_name for v in store.variants("milk")] == ["2 pints", "4 pints"]

    def test_add_replaces_same_variant(self, store):
        store.add_variant(
            ItemVariant(base_item="milk", variant_name="2 pints", size="2 pints", unit="pint", estimated_price=1.1)
        )
        store.add_variant(
            ItemVariant(base_item="milk", variant_name="2 pints", size="2 pints", unit="pint", estimated_price=1.3)
        )

        variants = store.variants("milk")
        assert len(variants) == 1
        assert variants[0].estimated_price == 1.3


class TestPersistence:
    """Tests that data survives a new store instance."""

    def test_reopen(self, store, temp_data_dir):
        store.save_mapping(mapping())
        backend = BackendType.SQLITE if isinstance(store, SQLiteStore) else BackendType.JSON

        reopened = create_data_store(backend=backend, data_dir=temp_data_dir)
        assert reopened.get_mapping("tesco", "tsc whl mlk").canonical_name == "Whole Milk"

    def test_json_file_layout(self, data_store, temp_data_dir):
        data_store.save_mapping(mapping())

        with open(temp_data_dir / "learned_mappings.json") as f:
            data = json.load(f)
        assert data[0]["raw_pattern"] == "tsc whl mlk"


class TestJSONEncoder:
    """Tests for JSONEncoder."""

    def test_encode_dates_and_enums(self):
        result = json.dumps(
            {"when": datetime(2026, 1, 15, 10, 30), "day": date(2026, 1, 15), "source": PriceSource.AI},
            cls=JSONEncoder,
        )
        assert "2026-01-15T10:30:00" in result
        assert '"day": "2026-01-15"' in result
        assert '"source": "ai"' in result

    def test_encode_fallback(self):
        with pytest.raises(TypeError):
            json.dumps({"bad": object()}, cls=JSONEncoder)
