"""String, category and price similarity scoring.

Every scorer returns a value on a 0-100 scale so the matcher can weight
them uniformly.
"""

import re

from rapidfuzz.distance import Levenshtein

# Words that carry no product identity.
STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "of", "in", "on", "at", "to", "for", "with",
        "pack", "pk", "x", "box", "bag", "each", "per", "kg", "g", "ml", "l", "oz",
    }
)

# Retailer own-brand and range prefixes, stripped in this order.
BRAND_PREFIXES = (
    "tesco", "asda", "sainsbury", "sainsburys", "morrisons", "waitrose", "aldi",
    "lidl", "coop", "co-op", "iceland", "marks", "spencer", "m&s", "ocado",
    "amazon", "fresh", "finest", "everyday", "essential", "basics", "smart price",
    "by sainsbury", "hubbards", "stamford", "hearty food", "grower's harvest",
)

CATEGORY_ALIASES: dict[str, tuple[str, ...]] = {
    "clothing": ("clothes", "apparel", "fashion", "wear"),
    "food": ("groceries", "grocery", "edible"),
    "dairy": ("milk", "cheese", "yogurt", "butter"),
    "meat": ("poultry", "beef", "pork", "chicken", "fish", "seafood"),
    "produce": ("fruit", "vegetable", "vegetables", "fruits", "fresh"),
    "bakery": ("bread", "baked", "pastry", "pastries"),
    "drinks": ("beverages", "beverage", "drink"),
    "household": ("home", "cleaning", "laundry"),
    "toiletries": ("personal care", "hygiene", "beauty"),
}

_SIZE_RANGE = re.compile(r"\d+\s*-\s*\d+")
_SIZE_TOKEN = re.compile(r"\d+\s*(g|kg|ml|l|oz|lb|pt|pint|pints|pack|pk|x)\b", re.IGNORECASE)
_PRODUCT_CODE = re.compile(r"\d{6,}")
_PUNCTUATION = re.compile(r"[^\w\s]")


def levenshtein_distance(str1: str, str2: str) -> int:
    """Classic edit distance between two strings."""
    return Levenshtein.distance(str1, str2)


def calculate_similarity(str1: str, str2: str) -> float:
    """Similarity percentage (0-100) derived from edit distance.

    Identical strings, including two empty strings, score 100.
    """
    normalized1 = str1.lower().strip()
    normalized2 = str2.lower().strip()

    if normalized1 == normalized2:
        return 100.0

    max_len = max(len(normalized1), len(normalized2))
    if max_len == 0:
        return 100.0

    distance = levenshtein_distance(normalized1, normalized2)
    return (max_len - distance) / max_len * 100


def tokenize(name: str) -> list[str]:
    """Split an item name into identity keywords.

    Brand prefixes, sizes, product codes, punctuation and stop words are
    removed. Tokens are unique and keep their first-seen order.
    """
    normalized = name.lower().strip()

    for brand in BRAND_PREFIXES:
        if normalized.startswith(brand + " ") or normalized.startswith(brand + "'s "):
            normalized = re.sub(rf"^{re.escape(brand)}('s)?\s+", "", normalized)

    normalized = _SIZE_RANGE.sub("", normalized)
    normalized = _SIZE_TOKEN.sub("", normalized)
    normalized = _PRODUCT_CODE.sub("", normalized)
    normalized = _PUNCTUATION.sub(" ", normalized)

    tokens = [t for t in normalized.split() if len(t) > 1 and t not in STOP_WORDS]
    return list(dict.fromkeys(tokens))


def calculate_token_overlap(name1: str, name2: str) -> int:
    """Token overlap score (0-100).

    Blends overlap/min (70%), which rewards one name containing the other,
    with overlap/max (30%), which penalises very different lengths.
    """
    tokens1 = set(tokenize(name1))
    tokens2 = set(tokenize(name2))

    if not tokens1 or not tokens2:
        return 0

    overlap = len(tokens1 & tokens2)
    subset_score = overlap / min(len(tokens1), len(tokens2))
    jaccard_score = overlap / max(len(tokens1), len(tokens2))

    return round((subset_score * 0.7 + jaccard_score * 0.3) * 100)


def normalize_category(category: str | None) -> str:
    """Map a category onto its canonical alias group."""
    if not category:
        return ""
    lower = category.lower().strip()

    for canonical, aliases in CATEGORY_ALIASES.items():
        if lower == canonical or lower in aliases:
            return canonical

    return lower


def calculate_category_match(category1: str | None, category2: str | None) -> int:
    """100 when both categories normalize to the same group, else 0."""
    norm1 = normalize_category(category1)
    norm2 = normalize_category(category2)

    if not norm1 or not norm2:
        return 0
    return 100 if norm1 == norm2 else 0


def calculate_price_proximity(
    price1: float | None,
    price2: float | None,
    threshold_percent: float = 25,
) -> int:
    """Price closeness score (0-100).

    Decays linearly from 100 at equal prices to 0 once the difference,
    relative to the mean of both prices, reaches ``threshold_percent``.
    """
    if price1 is None or price2 is None:
        return 0
    if price1 <= 0 or price2 <= 0:
        return 0

    diff = abs(price1 - price2)
    avg = (price1 + price2) / 2
    percent_diff = diff / avg * 100

    if percent_diff == 0:
        return 100
    if percent_diff >= threshold_percent:
        return 0

    return round(100 * (1 - percent_diff / threshold_percent))
