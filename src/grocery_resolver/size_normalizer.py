"""Size and quantity string parsing.

Sizes arrive in many spellings ("2 pints", "2pt", "1 litre", "1000ml",
"6 x 500ml"). Volumes are converted to millilitres and weights to grams so
that equivalent packagings compare equal.
"""

import re
from dataclasses import dataclass
from enum import Enum

from .models import SizeMatch, SizeMatchResult


class UnitCategory(str, Enum):
    """Physical dimension of a size."""

    VOLUME = "volume"
    WEIGHT = "weight"
    COUNT = "count"


@dataclass(frozen=True)
class UnitConversion:
    """Conversion of a unit spelling to its base unit."""

    factor: float
    base_unit: str
    category: UnitCategory


def _units(names: tuple[str, ...], factor: float, base: str, category: UnitCategory):
    return {name: UnitConversion(factor, base, category) for name in names}


UNIT_CONVERSIONS: dict[str, UnitConversion] = {
    **_units(("pt", "pint", "pints"), 568, "ml", UnitCategory.VOLUME),
    **_units(("l", "litre", "liter", "litres", "liters"), 1000, "ml", UnitCategory.VOLUME),
    **_units(
        ("ml", "millilitre", "milliliter", "millilitres", "milliliters"),
        1,
        "ml",
        UnitCategory.VOLUME,
    ),
    **_units(("cl", "centilitre", "centiliter"), 10, "ml", UnitCategory.VOLUME),
    **_units(("kg", "kilogram", "kilograms", "kilo", "kilos"), 1000, "g", UnitCategory.WEIGHT),
    **_units(("g", "gram", "grams"), 1, "g", UnitCategory.WEIGHT),
    **_units(("oz", "ounce", "ounces"), 28.35, "g", UnitCategory.WEIGHT),
    **_units(("lb", "lbs", "pound", "pounds"), 453.6, "g", UnitCategory.WEIGHT),
    **_units(("pk", "pack", "packs", "x"), 1, "pk", UnitCategory.COUNT),
    **_units(("each", "ea", "pcs", "pieces"), 1, "each", UnitCategory.COUNT),
}

PRICE_PER_UNIT_LABELS = {
    UnitCategory.VOLUME: "/100ml",
    UnitCategory.WEIGHT: "/100g",
    UnitCategory.COUNT: "/each",
}

# Relative difference still auto-matched when switching stores (250g -> 227g).
DEFAULT_SIZE_TOLERANCE = 0.2
# Relative difference treated as the same size, allowing for rounding.
EXACT_SIZE_TOLERANCE = 0.01

# Common UK pack sizes, in millilitres, grams and item counts.
COMMON_SIZES: dict[UnitCategory, tuple[float, ...]] = {
    UnitCategory.VOLUME: (568, 1136, 1000, 2000, 2272),
    UnitCategory.WEIGHT: (250, 500, 1000, 400, 800),
    UnitCategory.COUNT: (6, 12, 4, 8, 10),
}

_PINT_ML = 568
_SIMPLE_SIZE = re.compile(r"^(\d+(?:\.\d+)?)[-x]?([a-z]+)$")
_MULTIPACK_SIZE = re.compile(r"^(\d+)x(\d+(?:\.\d+)?)([a-z]+)$")


@dataclass(frozen=True)
class ParsedSize:
    """A size string broken into value, unit and base-unit amount."""

    value: float
    unit: str
    category: UnitCategory
    normalized_value: float
    display: str
    original: str


def _format_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.1f}".removesuffix(".0")


def _display(normalized: float, conversion: UnitConversion) -> str:
    if conversion.category == UnitCategory.VOLUME:
        if normalized % _PINT_ML == 0 and _PINT_ML <= normalized <= _PINT_ML * 6:
            return f"{_format_number(normalized / _PINT_ML)}pt"
        if normalized >= 1000:
            return f"{_format_number(normalized / 1000)}L"
        return f"{_format_number(normalized)}ml"
    if conversion.category == UnitCategory.WEIGHT:
        if normalized >= 1000:
            return f"{_format_number(normalized / 1000)}kg"
        return f"{_format_number(normalized)}g"
    return f"{_format_number(normalized)}{conversion.base_unit}"


def parse_size(size: str | None) -> ParsedSize | None:
    """Parse a size string such as "2 pints", "1.5kg" or "6 x 500ml".

    Returns None when the string has no recognised number and unit.
    """
    if not size or not size.strip():
        return None

    original = size.strip()
    cleaned = re.sub(r"\s+", "", original.lower())

    multipack = _MULTIPACK_SIZE.match(cleaned)
    if multipack and multipack.group(3) in UNIT_CONVERSIONS:
        count = float(multipack.group(1))
        value = count * float(multipack.group(2))
        conversion = UNIT_CONVERSIONS[multipack.group(3)]
        return ParsedSize(
            value=value,
            unit=conversion.base_unit,
            category=conversion.category,
            normalized_value=value * conversion.factor,
            display=f"{_format_number(count)}x{multipack.group(2)}{conversion.base_unit}",
            original=original,
        )

    match = _SIMPLE_SIZE.match(cleaned)
    if not match or match.group(2) not in UNIT_CONVERSIONS:
        return None

    value = float(match.group(1))
    conversion = UNIT_CONVERSIONS[match.group(2)]
    normalized = value * conversion.factor
    return ParsedSize(
        value=value,
        unit=conversion.base_unit,
        category=conversion.category,
        normalized_value=normalized,
        display=_display(normalized, conversion),
        original=original,
    )


def normalize_size(size: str | None) -> str:
    """Normalize a size into an equality key.

    Volume and weight sizes become "<amount>:<category>" in millilitres or
    grams ("2 pints" -> "1136:volume"). Missing sizes become "", and
    anything else falls back to the lowercased text without whitespace.
    """
    if size is None or not size.strip():
        return ""

    parsed = parse_size(size)
    if parsed and parsed.category in (UnitCategory.VOLUME, UnitCategory.WEIGHT):
        return f"{round(parsed.normalized_value)}:{parsed.category.value}"

    return re.sub(r"\s+", "", size.lower())


def sizes_equivalent(size1: str | None, size2: str | None) -> bool:
    """Whether two sizes describe the same packaging."""
    return normalize_size(size1) == normalize_size(size2)


def size_display(size: str) -> str:
    """Consistent display form ("2 pints" -> "2pt"), or the input if unparseable."""
    parsed = parse_size(size)
    return parsed.display if parsed else size


def price_per_unit(price: float, size: str) -> float | None:
    """Price per 100ml/100g, or per item for count sizes."""
    parsed = parse_size(size)
    if parsed is None or parsed.normalized_value <= 0:
        return None
    if parsed.category == UnitCategory.COUNT:
        return price / parsed.value
    return price / parsed.normalized_value * 100


def unit_label(size: str) -> str:
    """Label to show next to a price-per-unit figure."""
    parsed = parse_size(size)
    if parsed is None:
        return "/each"
    return PRICE_PER_UNIT_LABELS[parsed.category]


def size_percent_diff(size1: str, size2: str) -> float | None:
    """Difference between two sizes relative to the larger one (0-1).

    Returns None when either size is unparseable or they measure different
    things.
    """
    parsed1 = parse_size(size1)
    parsed2 = parse_size(size2)
    if parsed1 is None or parsed2 is None or parsed1.category != parsed2.category:
        return None

    larger = max(parsed1.normalized_value, parsed2.normalized_value)
    if larger <= 0:
        return 0.0
    return abs(parsed1.normalized_value - parsed2.normalized_value) / larger


def sizes_nearly_equal(size1: str, size2: str) -> bool:
    """Whether two sizes are within rounding of each other ("1L" vs "1000ml")."""
    diff = size_percent_diff(size1, size2)
    return diff is not None and diff <= EXACT_SIZE_TOLERANCE


def _match_score(percent_diff: float, tolerance: float) -> float:
    if tolerance <= 0:
        return 0.0 if percent_diff == 0 else 1.0
    return min(percent_diff / tolerance, 1.0)


def find_closest_size(
    target: str,
    available: list[str],
    tolerance: float = DEFAULT_SIZE_TOLERANCE,
) -> SizeMatchResult:
    """Rank the sizes a store offers by closeness to a target size.

    Used when switching stores to find the equivalent packaging. The
    difference is measured relative to the target, so 500g against a 400g
    target is 25% off. Unparseable sizes and sizes of another category are
    skipped.

    Args:
        target: The size to match, e.g. "250g"
        available: Sizes on offer, e.g. ["227g", "500g", "1kg"]
        tolerance: Largest relative difference that may be auto-matched

    Returns:
        SizeMatchResult with matches sorted closest first. match_score runs
        from 0 for an exact match to 1 at or beyond the tolerance.
    """
    target_parsed = parse_size(target)
    if target_parsed is None or target_parsed.normalized_value <= 0:
        return SizeMatchResult()

    matches = []
    for size in available:
        parsed = parse_size(size)
        if parsed is None or parsed.category != target_parsed.category:
            continue

        diff = abs(parsed.normalized_value - target_parsed.normalized_value)
        percent_diff = diff / target_parsed.normalized_value
        matches.append(
            SizeMatch(
                size=size,
                category=parsed.category.value,
                normalized_value=parsed.normalized_value,
                display=parsed.display,
                match_score=_match_score(percent_diff, tolerance),
                is_exact=percent_diff <= EXACT_SIZE_TOLERANCE,
                is_auto_matchable=percent_diff <= tolerance,
                percent_diff=percent_diff,
            )
        )

    matches.sort(key=lambda m: m.percent_diff)
    return SizeMatchResult(
        best_match=matches[0] if matches else None,
        all_matches=matches,
        has_exact_match=any(m.is_exact for m in matches),
        has_auto_match=any(m.is_auto_matchable for m in matches),
    )


def rank_sizes_by_value(sizes: list[str]) -> list[str]:
    """Parseable sizes ordered smallest to largest; others are dropped."""
    parsed = [(size, parse_size(size)) for size in sizes]
    ranked = sorted(
        ((size, p) for size, p in parsed if p is not None),
        key=lambda pair: pair[1].normalized_value,
    )
    return [size for size, _ in ranked]


def group_sizes_by_category(sizes: list[str]) -> dict[UnitCategory, list[str]]:
    """Split parseable sizes into volume, weight and count groups."""
    groups: dict[UnitCategory, list[str]] = {category: [] for category in UnitCategory}
    for size in sizes:
        parsed = parse_size(size)
        if parsed:
            groups[parsed.category].append(size)
    return groups


def _standard_score(parsed: ParsedSize) -> int:
    score = 0
    value = parsed.normalized_value

    if value % 1000 == 0:
        score += 3
    elif value % 500 == 0:
        score += 2
    elif value % 100 == 0:
        score += 1

    # Count packs are judged by item count rather than base amount.
    common = parsed.value if parsed.category == UnitCategory.COUNT else value
    if common in COMMON_SIZES[parsed.category]:
        score += 2

    return score


def suggest_standard_size(
    sizes: list[str],
    category: UnitCategory | None = None,
) -> str | None:
    """Pick the most standard-looking size: round amounts and common UK packs.

    Ties go to the size listed first. Returns None when nothing parses or
    matches ``category``.
    """
    candidates = []
    for size in sizes:
        parsed = parse_size(size)
        if parsed is None or (category is not None and parsed.category != category):
            continue
        candidates.append((size, _standard_score(parsed)))

    if not candidates:
        return None
    return max(candidates, key=lambda pair: pair[1])[0]
