"""Duplicate detection for item names and sized variants."""

from .item_normalizer import normalize_item_name
from .models import FuzzyMatch
from .similarity import calculate_similarity
from .size_normalizer import normalize_size

# Edit-distance similarity needed to call two names a typo of each other.
DUPLICATE_SIMILARITY_THRESHOLD = 85
# Below this normalized length only exact and substring rules apply.
MIN_FUZZY_LENGTH = 5
# A contained name must cover more than this share of the longer name.
MIN_CONTAINMENT_RATIO = 0.8


def is_duplicate_item_name(name1: str, name2: str) -> bool:
    """Check whether two item names refer to the same product.

    Handles case, plurals, filler prefixes and small typos. Short names are
    only compared exactly or by near-total containment, so "rice" does not
    match "rice pudding".
    """
    norm1 = normalize_item_name(name1)
    norm2 = normalize_item_name(name2)

    if not norm1 or not norm2:
        return False

    if norm1 == norm2:
        return True

    shorter, longer = (norm1, norm2) if len(norm1) <= len(norm2) else (norm2, norm1)
    if len(shorter) > 3 and shorter in longer:
        if len(shorter) / len(longer) > MIN_CONTAINMENT_RATIO:
            return True

    if min(len(norm1), len(norm2)) >= MIN_FUZZY_LENGTH:
        if calculate_similarity(norm1, norm2) >= DUPLICATE_SIMILARITY_THRESHOLD:
            return True

    return False


def is_duplicate_item(
    name1: str,
    size1: str | None,
    name2: str,
    size2: str | None,
) -> bool:
    """Variant-aware duplicate check: same product name AND same size.

    A missing size only matches another missing size.
    """
    if not is_duplicate_item_name(name1, name2):
        return False
    return normalize_size(size1) == normalize_size(size2)


def find_duplicate_name(new_name: str, existing_names: list[str]) -> str | None:
    """Return the first existing name that duplicates ``new_name``."""
    for existing in existing_names:
        if is_duplicate_item_name(new_name, existing):
            return existing
    return None


def find_fuzzy_matches(
    query: str,
    candidates: list[str],
    min_similarity: float = 70,
    max_results: int = 10,
) -> list[FuzzyMatch]:
    """Rank candidate names by similarity to ``query``.

    Args:
        query: Name typed or spoken by the user
        candidates: Known item names
        min_similarity: Minimum similarity to report (lowered by 10 for
                        queries shorter than 4 characters)
        max_results: Maximum number of matches returned

    Returns:
        Matches sorted by similarity, best first
    """
    normalized_query = normalize_item_name(query)
    if not normalized_query:
        return []

    threshold = min_similarity - 10 if len(normalized_query) < 4 else min_similarity

    matches: list[FuzzyMatch] = []
    seen: set[str] = set()

    for candidate in candidates:
        normalized = normalize_item_name(candidate)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)

        if normalized == normalized_query:
            matches.append(FuzzyMatch(name=candidate, similarity=100, is_exact=True))
            continue

        similarity = calculate_similarity(normalized_query, normalized)
        if normalized_query in normalized or normalized in normalized_query:
            matches.append(FuzzyMatch(name=candidate, similarity=max(similarity, 85)))
        elif similarity >= threshold:
            matches.append(FuzzyMatch(name=candidate, similarity=similarity))

    matches.sort(key=lambda m: m.similarity, reverse=True)
    return matches[:max_results]
