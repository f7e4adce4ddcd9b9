"""Shared item name normalization utilities."""

import re

_LEADING_FILLER = ("a ", "an ", "the ", "some ", "fresh ", "organic ")

# (suffix, replacement, minimum length) checked in order; first hit wins.
_PLURAL_RULES = (
    ("ies", "y", 4),
    ("ves", "f", 4),
    ("es", "", 3),
    ("s", "", 2),
)


def _singularize(name: str) -> str:
    for suffix, replacement, min_length in _PLURAL_RULES:
        if not name.endswith(suffix) or len(name) <= min_length:
            continue
        if suffix == "s" and name.endswith("ss"):
            return name
        return name[: -len(suffix)] + replacement
    return name


def normalize_item_name(item_name: str) -> str:
    """Normalize item names into a comparable identity key.

    Lowercases, drops a leading filler word ("the", "fresh", "organic", ...)
    and reverses common English plurals with a fixed rule table. The rules
    are heuristics: "apples" becomes "appl" while "apple" stays "apple".
    """
    name = item_name.lower().strip()

    for prefix in _LEADING_FILLER:
        if name.startswith(prefix):
            name = name[len(prefix) :]

    return _singularize(name).strip()


def canonical_item_display_name(item_name: str) -> str:
    """Build a readable item name from canonical identity."""
    canonical = re.sub(r"\s+", " ", normalize_item_name(item_name))
    if not canonical:
        return item_name.strip()
    return " ".join(token.capitalize() for token in canonical.split())
