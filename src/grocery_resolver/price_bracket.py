"""Infer an item variant from its price when the receipt omits the size.

A receipt line "MILK £1.15" has no size, but if the 2 pint variant costs
about £1.15 and no other variant is close, the size is almost certainly
2 pints.
"""

import re

from .models import BracketMatchType, ItemVariant, PriceBracketMatch

DEFAULT_TOLERANCE = 0.20
EXACT_TOLERANCE = 0.01

_SIZE_SUFFIX = re.compile(
    r"\d+\s*(ml|l|g|kg|pt|pint|pints|pack|oz|lb|litre|litres|liter|liters)\b",
    re.IGNORECASE,
)


def extract_base_item(item_name: str) -> str:
    """Strip size information from an item name ("Butter 250g" -> "butter")."""
    return re.sub(r"\s+", " ", _SIZE_SUFFIX.sub("", item_name.lower())).strip()


def price_difference(price: float, variant_price: float) -> float:
    """Relative difference of ``price`` from ``variant_price``."""
    return abs(price - variant_price) / variant_price


def match_price_bracket(
    price: float,
    variants: list[ItemVariant],
    tolerance: float = DEFAULT_TOLERANCE,
) -> PriceBracketMatch:
    """Match a receipt price to a variant.

    A variant within 1% is an exact match. Otherwise a match is only made
    when exactly one variant lies within ``tolerance``.
    """
    candidates = [
        v
        for v in variants
        if v.estimated_price and price_difference(price, v.estimated_price) <= tolerance
    ]

    exact = next(
        (
            v
            for v in candidates
            if price_difference(price, v.estimated_price or 0) <= EXACT_TOLERANCE
        ),
        None,
    )
    if exact:
        return PriceBracketMatch(
            matched=True,
            variant=exact,
            match_type=BracketMatchType.EXACT,
            candidates=candidates,
            tolerance=tolerance,
        )

    if len(candidates) == 1:
        return PriceBracketMatch(
            matched=True,
            variant=candidates[0],
            match_type=BracketMatchType.BRACKET,
            candidates=candidates,
            tolerance=tolerance,
        )

    if candidates:
        return PriceBracketMatch(
            matched=False,
            match_type=BracketMatchType.AMBIGUOUS,
            candidates=candidates,
            tolerance=tolerance,
        )

    return PriceBracketMatch(matched=False, match_type=BracketMatchType.NO_MATCH, tolerance=tolerance)


def find_closest_variant(price: float, variants: list[ItemVariant]) -> ItemVariant | None:
    """The priced variant nearest to ``price``, for suggestions."""
    priced = [v for v in variants if v.estimated_price is not None]
    if not priced:
        return None
    return min(priced, key=lambda v: abs(price - (v.estimated_price or 0)))
