"""Store-specific learned mappings from receipt text to canonical items.

When a user confirms that "TSC WHL MLK 4PT" at Tesco is "Whole Milk", the
association is recorded here. Each further confirmation raises the
mapping's confidence.
"""

import logging
from datetime import datetime
from typing import Protocol

from .models import LearnedMapping, MappingLookup
from .similarity import tokenize

logger = logging.getLogger(__name__)

# Minimum share of the smaller token set that must overlap for a partial hit.
MIN_PARTIAL_OVERLAP = 0.6


class MappingBackend(Protocol):
    """Persistence operations needed by the learned mapping store."""

    def get_mapping(self, store_id: str, raw_pattern: str) -> LearnedMapping | None: ...
    def list_mappings(self, store_id: str, limit: int = 100) -> list[LearnedMapping]: ...
    def save_mapping(self, mapping: LearnedMapping) -> None: ...


def normalize_pattern(raw_name: str) -> str:
    """Key under which a raw receipt name is stored."""
    return " ".join(raw_name.lower().split())


def exact_confidence(confirmation_count: int) -> int:
    """Confidence for an exact pattern hit, maxing out at five confirmations."""
    return min(50 + confirmation_count * 10, 100)


def partial_confidence(confirmation_count: int, overlap_ratio: float) -> int:
    """Confidence for a token-overlap hit, capped below exact hits."""
    return round(min(30 + confirmation_count * 8, 70) * overlap_ratio)


class LearnedMappingStore:
    """Reads and writes learned mappings through a persistence backend."""

    def __init__(self, backend: MappingBackend, scan_limit: int = 100):
        """Initialize the mapping store.

        Args:
            backend: Persistence backend (DataStore or SQLiteStore)
            scan_limit: Maximum mappings scanned for a partial match
        """
        self.backend = backend
        self.scan_limit = scan_limit

    def lookup(self, store_id: str, raw_name: str) -> MappingLookup | None:
        """Find the canonical name a store's receipt text most likely means.

        Args:
            store_id: Normalized store identifier
            raw_name: Item text as printed on the receipt

        Returns:
            MappingLookup, or None when nothing was learned for this text
        """
        pattern = normalize_pattern(raw_name)

        exact = self.backend.get_mapping(store_id, pattern)
        if exact and exact.confirmation_count >= 1:
            return MappingLookup(
                canonical_name=exact.canonical_name,
                confidence=exact_confidence(exact.confirmation_count),
                exact=True,
            )

        raw_tokens = tokenize(raw_name)
        if not raw_tokens:
            return None

        best: LearnedMapping | None = None
        best_overlap = 0.0

        for mapping in self.backend.list_mappings(store_id, limit=self.scan_limit):
            mapping_tokens = set(mapping.pattern_tokens)
            if not mapping_tokens:
                continue

            overlap = sum(1 for token in raw_tokens if token in mapping_tokens)
            ratio = overlap / min(len(raw_tokens), len(mapping_tokens))
            if ratio > best_overlap and ratio >= MIN_PARTIAL_OVERLAP:
                best_overlap = ratio
                best = mapping

        if best is None:
            return None

        logger.debug(
            "Partial mapping hit for %r at %s: %s (overlap %.2f)",
            raw_name,
            store_id,
            best.canonical_name,
            best_overlap,
        )
        return MappingLookup(
            canonical_name=best.canonical_name,
            confidence=partial_confidence(best.confirmation_count, best_overlap),
            exact=False,
        )

    def learn(
        self,
        store_id: str,
        raw_name: str,
        canonical_name: str,
        category: str | None = None,
        price: float | None = None,
        confirmed_by: str | None = None,
    ) -> LearnedMapping:
        """Record a confirmed mapping, creating or reinforcing it.

        The most recent confirmation decides the canonical name and category.

        Args:
            store_id: Normalized store identifier
            raw_name: Item text as printed on the receipt
            canonical_name: Item the user confirmed it to be
            category: Optional category of the canonical item
            price: Price paid, widens the observed price range
            confirmed_by: User who confirmed the mapping

        Returns:
            The saved mapping
        """
        pattern = normalize_pattern(raw_name)
        now = datetime.now()
        existing = self.backend.get_mapping(store_id, pattern)

        if existing:
            mapping = existing.model_copy(
                update={
                    "canonical_name": canonical_name,
                    "canonical_category": category,
                    "confirmation_count": existing.confirmation_count + 1,
                    "last_confirmed_by": confirmed_by,
                    "last_confirmed_at": now,
                    "updated_at": now,
                }
            )
            if price is not None:
                mapping.typical_price_min = (
                    price if existing.typical_price_min is None
                    else min(existing.typical_price_min, price)
                )
                mapping.typical_price_max = (
                    price if existing.typical_price_max is None
                    else max(existing.typical_price_max, price)
                )
        else:
            mapping = LearnedMapping(
                store_id=store_id,
                raw_pattern=pattern,
                pattern_tokens=tokenize(raw_name),
                canonical_name=canonical_name,
                canonical_category=category,
                confirmation_count=1,
                typical_price_min=price,
                typical_price_max=price,
                last_confirmed_by=confirmed_by,
                last_confirmed_at=now,
                created_at=now,
                updated_at=now,
            )

        self.backend.save_mapping(mapping)
        logger.info(
            "Learned %r -> %r at %s (confirmations: %d)",
            pattern,
            canonical_name,
            store_id,
            mapping.confirmation_count,
        )
        return mapping
