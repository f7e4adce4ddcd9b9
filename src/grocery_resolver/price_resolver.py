"""Price cascade resolution.

Prices are looked up in three layers, first hit wins:

1. Personal purchase history (the user's own receipts), highest trust
2. Crowdsourced price records (everyone's receipts)
3. AI-estimated variant price, the baseline fallback
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from .config import PricingConfig
from .models import (
    ItemVariant,
    PersonalPriceEntry,
    PriceRecord,
    PriceSource,
    ResolvedPrice,
    ResolvedVariantPrice,
)
from .store_normalizer import normalize_store_name

logger = logging.getLogger(__name__)

REPORT_BONUS = 0.05


class PriceLedger(Protocol):
    """Read access to price data needed by the resolver."""

    def personal_prices(self, user_id: str, normalized_name: str) -> list[PersonalPriceEntry]: ...
    def price_records(self, normalized_name: str) -> list[PriceRecord]: ...
    def variants(self, base_item: str) -> list[ItemVariant]: ...


@dataclass(frozen=True)
class CrowdTier:
    """Trust parameters for one crowdsourced priority tier."""

    name: str
    base: float
    ceiling: float
    recency_floor: float


STORE_AND_REGION = CrowdTier("store_and_region", base=0.7, ceiling=0.95, recency_floor=0.7)
STORE_ANY_REGION = CrowdTier("store", base=0.6, ceiling=0.90, recency_floor=0.6)
REGION_ANY_STORE = CrowdTier("region", base=0.5, ceiling=0.85, recency_floor=0.5)
CHEAPEST_ANYWHERE = CrowdTier("cheapest", base=0.4, ceiling=0.80, recency_floor=0.4)


def as_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def recency_multiplier(
    last_seen_at: datetime,
    now: datetime,
    floor: float,
    window_days: float = 90,
) -> float:
    """Linear decay from 1.0 toward ``floor`` over ``window_days``.

    Naive and timezone-aware timestamps may be mixed.
    """
    age = as_local_naive(now) - as_local_naive(last_seen_at)
    age_days = max(age.total_seconds(), 0) / 86400
    return max(floor, 1 - age_days / window_days)


def crowd_confidence(
    record: PriceRecord,
    tier: CrowdTier,
    now: datetime,
    window_days: float = 90,
) -> float:
    """Confidence of a crowdsourced record within its priority tier."""
    recency = recency_multiplier(record.last_seen_at, now, tier.recency_floor, window_days)
    confidence = (tier.base + record.report_count * REPORT_BONUS) * recency
    return max(0.0, min(tier.ceiling, confidence))


def _store_matches(store_name: str | None, store_id: str | None, wanted: str) -> bool:
    wanted_id = normalize_store_name(wanted)
    if store_name and store_name.lower().strip() == wanted:
        return True
    if store_id and (store_id == wanted or store_id == wanted_id):
        return True
    return bool(wanted_id and store_name and normalize_store_name(store_name) == wanted_id)


class PriceResolver:
    """Resolves the best available price for an item variant."""

    def __init__(self, ledger: PriceLedger, config: PricingConfig | None = None):
        """Initialize the resolver.

        Args:
            ledger: Source of personal, crowdsourced and variant data
            config: Pricing configuration
        """
        self.ledger = ledger
        self.config = config or PricingConfig()

    def resolve_price(
        self,
        normalized_name: str,
        size: str,
        unit: str,
        variant_name: str | None = None,
        store_name: str | None = None,
        user_id: str | None = None,
        ai_estimate: float | None = None,
        region: str | None = None,
        now: datetime | None = None,
    ) -> ResolvedPrice:
        """Resolve the price of an item+size, walking the cascade.

        Args:
            normalized_name: Lowercase item base name, e.g. "milk"
            size: Variant size to match, e.g. "2 pints"
            unit: Variant unit to match, e.g. "pint"
            variant_name: Variant display name for crowdsourced matching
            store_name: Store to price at
            user_id: User whose purchase history is consulted
            ai_estimate: AI-seeded price of the variant
            region: User's region. Defaults to the configured region.
            now: Reference time for recency decay

        Returns:
            ResolvedPrice. When no layer has a price, price is None, source
            is PriceSource.NONE and confidence is 0.
        """
        store = store_name.lower().strip() if store_name and store_name.strip() else None

        if user_id:
            personal = self._resolve_personal(normalized_name, size, unit, store, user_id)
            if personal:
                return personal

        crowd = self._resolve_crowdsourced(
            normalized_name,
            size,
            variant_name,
            store,
            region or self.config.default_region,
            now or datetime.now(),
        )
        if crowd:
            return crowd

        if ai_estimate is not None:
            logger.debug("Using AI estimate for %r: %.2f", normalized_name, ai_estimate)
            return ResolvedPrice(
                price=ai_estimate,
                source=PriceSource.AI,
                confidence=self.config.ai_confidence,
            )

        logger.debug("No price found for %r (%s)", normalized_name, size)
        return ResolvedPrice(price=None, source=PriceSource.NONE, confidence=0.0)

    def resolve_variant_with_price(
        self,
        item_name: str,
        store_name: str | None = None,
        user_id: str | None = None,
        region: str | None = None,
        now: datetime | None = None,
    ) -> ResolvedVariantPrice | None:
        """Pick the variant of an item to display, together with its price.

        Variants are ranked: priced before unpriced, then higher commonality,
        then cheapest.

        Returns:
            The best ResolvedVariantPrice, or None if the item has no variants
        """
        base_item = item_name.lower().strip()
        variants = self.ledger.variants(base_item)
        if not variants:
            return None

        now = now or datetime.now()
        resolved = []
        for variant in variants:
            price = self.resolve_price(
                base_item,
                variant.size,
                variant.unit,
                variant_name=variant.variant_name,
                store_name=store_name,
                user_id=user_id,
                ai_estimate=variant.estimated_price,
                region=region,
                now=now,
            )
            resolved.append(
                ResolvedVariantPrice(
                    variant=variant,
                    price=price.price,
                    source=price.source,
                    confidence=price.confidence,
                )
            )

        resolved.sort(
            key=lambda r: (
                r.price is None,
                -(r.variant.commonality or 0),
                r.price if r.price is not None else 0,
            )
        )
        return resolved[0]

    def _resolve_personal(
        self,
        normalized_name: str,
        size: str,
        unit: str,
        store: str | None,
        user_id: str,
    ) -> ResolvedPrice | None:
        history = self.ledger.personal_prices(user_id, normalized_name)
        candidates = [h for h in history if h.size == size or h.unit == unit]

        if store:
            at_store = [h for h in candidates if h.store_name.lower().strip() == store]
            if at_store:
                candidates = at_store

        if not candidates:
            return None

        # Same-timestamp purchases resolve to the one recorded last.
        _, latest = max(
            enumerate(candidates),
            key=lambda pair: (as_local_naive(pair[1].purchase_date), pair[0]),
        )
        logger.debug(
            "Personal price for %r: %.2f at %s", normalized_name, latest.unit_price, latest.store_name
        )
        return ResolvedPrice(
            price=latest.unit_price,
            source=PriceSource.PERSONAL,
            confidence=1.0,
            store_name=latest.store_name,
            report_count=len(candidates),
        )

    def _resolve_crowdsourced(
        self,
        normalized_name: str,
        size: str,
        variant_name: str | None,
        store: str | None,
        region: str,
        now: datetime,
    ) -> ResolvedPrice | None:
        records = [
            r
            for r in self.ledger.price_records(normalized_name)
            if (variant_name is not None and r.variant_name == variant_name) or r.size == size
        ]
        if not records:
            return None

        def at_store(r: PriceRecord) -> bool:
            return store is not None and _store_matches(r.store_name, r.store_id, store)

        def in_region(r: PriceRecord) -> bool:
            return r.region is not None and r.region.lower() == region.lower()

        for tier, predicate in (
            (STORE_AND_REGION, lambda r: at_store(r) and in_region(r)),
            (STORE_ANY_REGION, at_store),
            (REGION_ANY_STORE, in_region),
        ):
            hit = next((r for r in records if predicate(r)), None)
            if hit:
                return self._crowd_price(hit, tier, now)

        cheapest = min(records, key=lambda r: r.effective_price)
        return self._crowd_price(cheapest, CHEAPEST_ANYWHERE, now)

    def _crowd_price(self, record: PriceRecord, tier: CrowdTier, now: datetime) -> ResolvedPrice:
        confidence = crowd_confidence(record, tier, now, self.config.recency_window_days)
        logger.debug(
            "Crowdsourced price for %r (%s): %.2f, confidence %.2f",
            record.normalized_name,
            tier.name,
            record.effective_price,
            confidence,
        )
        return ResolvedPrice(
            price=record.effective_price,
            source=PriceSource.CROWDSOURCED,
            confidence=confidence,
            store_name=record.store_name,
            report_count=record.report_count,
        )
