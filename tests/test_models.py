"""Tests for data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from grocery_resolver.models import (
    CandidateItem,
    ConfidenceTier,
    LearnedMapping,
    MatchResult,
    PriceRecord,
    PriceSource,
    RawItemMention,
    ResolvedPrice,
    ScoredCandidate,
    SourceKind,
)


class TestRawItemMention:
    """Tests for RawItemMention model."""

    def test_create_minimal(self):
        """Create mention with only a name."""
        mention = RawItemMention(name="TSC WHL MLK")
        assert mention.quantity == 1.0
        assert mention.unit_price is None
        assert mention.category is None


class TestCandidateItem:
    """Tests for CandidateItem model."""

    def test_source_kind_from_string(self):
        candidate = CandidateItem.model_validate(
            {"id": "c1", "source_kind": "pantry_item", "name": "Rice"}
        )
        assert candidate.source_kind == SourceKind.PANTRY_ITEM

    def test_unknown_source_kind_rejected(self):
        with pytest.raises(ValidationError):
            CandidateItem(id="c1", source_kind="fridge", name="Rice")


class TestMatchResult:
    """Tests for MatchResult model."""

    def test_defaults(self):
        """An empty result has no match and tier none."""
        result = MatchResult(mention=RawItemMention(name="milk"))
        assert result.best_match is None
        assert result.score == 0
        assert result.confidence_tier == ConfidenceTier.NONE
        assert result.requires_confirmation is True

    def test_high_tier_needs_no_confirmation(self):
        result = MatchResult(
            mention=RawItemMention(name="milk"),
            score=90,
            confidence_tier=ConfidenceTier.HIGH,
        )
        assert result.requires_confirmation is False

    def test_score_bounds(self):
        candidate = CandidateItem(id="c1", source_kind=SourceKind.CATALOG_PRODUCT, name="Milk")
        with pytest.raises(ValidationError):
            ScoredCandidate(candidate=candidate, score=101)


class TestLearnedMapping:
    """Tests for LearnedMapping model."""

    def test_defaults(self):
        mapping = LearnedMapping(store_id="tesco", raw_pattern="tsc mlk", canonical_name="Milk")
        assert mapping.confirmation_count == 1
        assert mapping.pattern_tokens == []
        assert isinstance(mapping.created_at, datetime)
        assert mapping.price_range_seen is None

    def test_price_range_seen(self):
        mapping = LearnedMapping(
            store_id="tesco",
            raw_pattern="tsc mlk",
            canonical_name="Milk",
            typical_price_min=1.10,
            typical_price_max=1.45,
        )
        assert mapping.price_range_seen == (1.10, 1.45)


class TestPriceModels:
    """Tests for price models."""

    def test_effective_price_prefers_average(self):
        record = PriceRecord(normalized_name="milk", unit_price=1.30, average_price=1.22)
        assert record.effective_price == 1.22

    def test_effective_price_falls_back_to_unit_price(self):
        record = PriceRecord(normalized_name="milk", unit_price=1.30)
        assert record.effective_price == 1.30

    def test_resolved_price_defaults(self):
        resolved = ResolvedPrice()
        assert resolved.price is None
        assert resolved.source == PriceSource.NONE
        assert resolved.confidence == 0.0

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ResolvedPrice(price=1.0, source=PriceSource.AI, confidence=1.5)
