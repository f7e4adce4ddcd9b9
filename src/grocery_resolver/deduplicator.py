"""Duplicate collapsing across shopping lists and pantries."""

import logging
from collections.abc import Mapping

from .duplicates import is_duplicate_item_name
from .models import DeduplicationResult, DuplicateGroup, ItemSource, ShoppingItem

logger = logging.getLogger(__name__)


def _format_price(price: float | None) -> str:
    return f"£{price or 0:.2f}"


def _choose_base(
    group: list[tuple[ShoppingItem, str]],
) -> tuple[ShoppingItem, str, str]:
    """Pick the record whose values seed the merged item.

    A strictly higher quantity wins; otherwise a lower positive price wins.
    """
    best, best_label = group[0]
    reason = "first occurrence"

    for item, label in group[1:]:
        if item.quantity > best.quantity:
            reason = f"higher quantity ({item.quantity:g} vs {best.quantity:g})"
            best, best_label = item, label
        elif (
            item.estimated_price
            and item.estimated_price > 0
            and (not best.estimated_price or item.estimated_price < best.estimated_price)
        ):
            reason = (
                f"better price ({_format_price(item.estimated_price)} "
                f"vs {_format_price(best.estimated_price)})"
            )
            best, best_label = item, label

    return best, best_label, reason


def merge_items(group: list[tuple[ShoppingItem, str]]) -> tuple[ShoppingItem, DuplicateGroup]:
    """Merge a group of duplicate items into one.

    Quantities of every member are summed into the merged item so that
    nothing is under-bought, whichever record was chosen as the base.

    Args:
        group: (item, source label) pairs, in encounter order

    Returns:
        Tuple of (merged item, duplicate report)
    """
    base, kept_from, reason = _choose_base(group)

    total_quantity = sum(item.quantity for item, _ in group)
    if total_quantity > base.quantity:
        reason = f"{reason}; quantities combined ({total_quantity:g})"
    merged = base.model_copy(update={"quantity": total_quantity})

    sources = list(dict.fromkeys(label for _, label in group))
    return merged, DuplicateGroup(
        name=merged.name,
        sources=sources,
        kept_from=kept_from,
        reason=reason,
    )


def deduplicate_items(items_by_source: Mapping[str, ItemSource]) -> DeduplicationResult:
    """Collapse duplicate items across several sources.

    Items are compared by name only; size differences are ignored when
    merging lists.

    Args:
        items_by_source: Sources keyed by id, each with a label and items

    Returns:
        DeduplicationResult with unique items and one report per merged group
    """
    all_items: list[tuple[ShoppingItem, str]] = [
        (item, source.label)
        for source in items_by_source.values()
        for item in source.items
    ]

    result = DeduplicationResult()
    processed: set[int] = set()

    for i, (item, label) in enumerate(all_items):
        if i in processed:
            continue

        matched = [
            j
            for j, (other, _) in enumerate(all_items)
            if j != i and j not in processed and is_duplicate_item_name(item.name, other.name)
        ]
        matches = [all_items[j] for j in matched]

        processed.add(i)
        if not matches:
            result.items.append(item.model_copy())
            continue

        merged, report = merge_items([(item, label), *matches])
        result.items.append(merged)
        result.duplicates.append(report)
        processed.update(matched)
        logger.info("Merged %d entries of %r: %s", len(matches) + 1, merged.name, report.reason)

    return result


def deduplicate_pantry(items: list[ShoppingItem], label: str = "pantry") -> DeduplicationResult:
    """Collapse duplicates within a single collection such as a pantry."""
    return deduplicate_items({label: ItemSource(label=label, items=items)})
