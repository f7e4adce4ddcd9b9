"""Tests for price-bracket variant inference."""

import pytest

from grocery_resolver.models import BracketMatchType, ItemVariant
from grocery_resolver.price_bracket import (
    extract_base_item,
    find_closest_variant,
    match_price_bracket,
    price_difference,
)


def variant(name, price):
    return ItemVariant(base_item="milk", variant_name=name, size=name, unit="pint", estimated_price=price)


@pytest.fixture
def milk_variants():
    return [variant("1 pint", 0.80), variant("2 pints", 1.15), variant("4 pints", 1.65)]


class TestMatchPriceBracket:
    """Tests for match_price_bracket."""

    def test_exact(self, milk_variants):
        result = match_price_bracket(1.15, milk_variants)

        assert result.matched is True
        assert result.match_type == BracketMatchType.EXACT
        assert result.variant.variant_name == "2 pints"

    def test_single_bracket(self, milk_variants):
        """One variant within tolerance is a bracket match."""
        result = match_price_bracket(1.20, milk_variants)

        assert result.matched is True
        assert result.match_type == BracketMatchType.BRACKET
        assert result.variant.variant_name == "2 pints"

    def test_ambiguous(self):
        variants = [variant("2 pints", 1.15), variant("2 pints organic", 1.25)]
        result = match_price_bracket(1.20, variants)

        assert result.matched is False
        assert result.match_type == BracketMatchType.AMBIGUOUS
        assert len(result.candidates) == 2

    def test_no_match(self, milk_variants):
        result = match_price_bracket(5.00, milk_variants)

        assert result.matched is False
        assert result.match_type == BracketMatchType.NO_MATCH
        assert result.variant is None

    def test_unpriced_variants_ignored(self):
        result = match_price_bracket(1.00, [variant("2 pints", None)])
        assert result.match_type == BracketMatchType.NO_MATCH

    def test_custom_tolerance(self, milk_variants):
        result = match_price_bracket(1.20, milk_variants, tolerance=0.01)

        assert result.match_type == BracketMatchType.NO_MATCH
        assert result.tolerance == 0.01


class TestHelpers:
    """Tests for bracket helpers."""

    def test_extract_base_item(self):
        assert extract_base_item("Butter 250g") == "butter"
        assert extract_base_item("Milk 2 pints") == "milk"
        assert extract_base_item("  Eggs  ") == "eggs"

    def test_price_difference(self):
        assert price_difference(1.2, 1.0) == pytest.approx(0.2)

    def test_find_closest_variant(self, milk_variants):
        assert find_closest_variant(1.00, milk_variants).variant_name == "2 pints"
        assert find_closest_variant(1.00, []) is None
