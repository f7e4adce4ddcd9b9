"""Shared test fixtures for Grocery Resolver."""

import json

import pytest

from grocery_resolver.data_store import DataStore
from grocery_resolver.mapping_store import LearnedMappingStore
from grocery_resolver.models import CandidateItem, SourceKind
from grocery_resolver.price_resolver import PriceResolver
from grocery_resolver.sqlite_store import SQLiteStore


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def data_store(temp_data_dir):
    """Create a DataStore with temporary directory."""
    return DataStore(data_dir=temp_data_dir)


@pytest.fixture
def sqlite_store(tmp_path):
    """Create a SQLite store with a temporary database."""
    return SQLiteStore(db_path=tmp_path / "test.db")


@pytest.fixture
def mapping_store(data_store):
    """Create a LearnedMappingStore over temporary storage."""
    return LearnedMappingStore(data_store)


@pytest.fixture
def resolver(data_store):
    """Create a PriceResolver over temporary storage."""
    return PriceResolver(data_store)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Run with no config file in reach of ConfigManager's search path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def sample_candidates():
    """Candidate items from a list, a pantry and the catalog."""
    return [
        CandidateItem(
            id="list-1",
            source_kind=SourceKind.LIST_ITEM,
            name="Whole Milk",
            category="Dairy",
            estimated_price=1.45,
        ),
        CandidateItem(
            id="pantry-1",
            source_kind=SourceKind.PANTRY_ITEM,
            name="Cheddar Cheese",
            category="Dairy",
            estimated_price=2.50,
        ),
        CandidateItem(
            id="catalog-1",
            source_kind=SourceKind.CATALOG_PRODUCT,
            name="Sourdough Bread",
            category="Bakery",
            estimated_price=2.20,
        ),
    ]


@pytest.fixture
def sample_match_request(sample_candidates):
    """Match request as it is sent to the CLI."""
    return json.dumps(
        {
            "mention": {"name": "whole milk", "unit_price": 1.45, "category": "dairy"},
            "candidates": [c.model_dump(mode="json") for c in sample_candidates],
        }
    )
