"""CLI entry point for Grocery Resolver."""

import json
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from pydantic import ValidationError

from .config import ConfigManager
from .data_store import BackendType, DataStoreProtocol, create_data_store
from .deduplicator import deduplicate_items, deduplicate_pantry
from .item_normalizer import canonical_item_display_name, normalize_item_name
from .mapping_store import LearnedMappingStore
from .matcher import ItemMatcher
from .models import (
    CandidateItem,
    ItemSource,
    ItemVariant,
    PersonalPriceEntry,
    PriceRecord,
    RawItemMention,
    ShoppingItem,
)
from .output_formatter import OutputFormatter
from .price_bracket import DEFAULT_TOLERANCE, extract_base_item, match_price_bracket
from .price_resolver import PriceResolver
from .size_normalizer import (
    DEFAULT_SIZE_TOLERANCE,
    find_closest_size,
    normalize_size,
    parse_size,
    size_display,
    unit_label,
)
from .store_normalizer import get_store_info, normalize_store_name, store_key

app = typer.Typer(
    name="grocery-resolve",
    help="Resolve noisy grocery item mentions, duplicates and prices",
    no_args_is_help=True,
)

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
data_store: DataStoreProtocol | None = None


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_data_store() -> DataStoreProtocol:
    """Get or create the data store using config values."""
    global data_store
    if data_store is None:
        cfg = get_config()
        backend = BackendType(cfg.data.backend)
        data_store = create_data_store(backend=backend, data_dir=cfg.data.storage_dir)
    return data_store


def get_mapping_store() -> LearnedMappingStore:
    """Create a LearnedMappingStore over the configured data store."""
    return LearnedMappingStore(get_data_store(), scan_limit=get_config().mappings.scan_limit)


def get_price_resolver() -> PriceResolver:
    """Create a PriceResolver over the configured data store."""
    return PriceResolver(get_data_store(), get_config().pricing)


def _load_payload(data: str | None, file: Path | None) -> Any:
    """Read a JSON payload from --data or --file."""
    if data:
        return json.loads(data)
    with open(file) as f:  # type: ignore[arg-type]
        return json.load(f)


def _fail(message: str, error_code: str | None = None) -> NoReturn:
    formatter.error(message, error_code=error_code)
    raise typer.Exit(code=1)


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
) -> None:
    """Grocery Resolver CLI - Match, deduplicate and price grocery items."""
    global formatter, config, data_store

    formatter = OutputFormatter(json_mode=json_output)

    try:
        config = ConfigManager()
    except (ValidationError, ValueError) as e:
        _fail(f"Invalid configuration: {e}", error_code="INVALID_CONFIG")

    # CLI --data-dir overrides config, which overrides default
    effective_data_dir = data_dir if data_dir else config.data.storage_dir
    backend = BackendType(config.data.backend)

    data_store = create_data_store(backend=backend, data_dir=effective_data_dir)


# --- Normalization ---

normalize_app = typer.Typer(help="Normalization commands")
app.add_typer(normalize_app, name="normalize")


@normalize_app.command("name")
def normalize_name(
    name: Annotated[str, typer.Argument(help="Item name to normalize")],
) -> None:
    """Show the identity key and display name of an item name."""
    formatter.output(
        {
            "success": True,
            "data": {
                "normalized": {
                    "input": name,
                    "key": normalize_item_name(name),
                    "display": canonical_item_display_name(name),
                }
            },
        }
    )


@normalize_app.command("size")
def normalize_size_command(
    size: Annotated[str, typer.Argument(help="Size string such as '2 pints'")],
) -> None:
    """Show the equality key and display form of a size."""
    parsed = parse_size(size)
    formatter.output(
        {
            "success": True,
            "data": {
                "normalized": {
                    "input": size,
                    "key": normalize_size(size),
                    "display": size_display(size),
                    "category": parsed.category.value if parsed else None,
                    "price_unit": unit_label(size),
                }
            },
        }
    )


@normalize_app.command("store")
def normalize_store(
    name: Annotated[str, typer.Argument(help="Store name as printed on a receipt")],
) -> None:
    """Resolve a raw store name to a known retailer."""
    store_id = normalize_store_name(name)
    info = get_store_info(store_id) if store_id else None
    formatter.output(
        {
            "success": True,
            "data": {
                "normalized": {
                    "input": name,
                    "store_id": store_id,
                    "display_name": info.display_name if info else None,
                    "type": info.type.value if info else None,
                }
            },
        }
    )


# --- Matching ---


@app.command()
def match(
    data: Annotated[str | None, typer.Option("--data", "-d", help="JSON match request")] = None,
    file: Annotated[Path | None, typer.Option("--file", "-f", help="Path to JSON file")] = None,
    store: Annotated[
        str | None, typer.Option("--store", "-s", help="Store the mentions came from")
    ] = None,
) -> None:
    """Match item mentions against candidate items.

    The request holds "candidates" and either one "mention" or a list of
    "mentions".
    """
    if not data and not file:
        _fail("Must provide either --data or --file")

    try:
        payload = _load_payload(data, file)
        candidates = [CandidateItem.model_validate(c) for c in payload.get("candidates", [])]
        matcher = ItemMatcher(get_config().matching, get_mapping_store())
        store_id = store_key(store)

        if "mentions" in payload:
            mentions = [RawItemMention.model_validate(m) for m in payload["mentions"]]
            batch = matcher.match_all(mentions, candidates, store_id)
            formatter.output(
                {"success": True, "data": {"batch": batch.model_dump(mode="json")}},
                f"Matched {len(mentions)} mentions",
            )
        else:
            mention = RawItemMention.model_validate(payload["mention"])
            result = matcher.match(mention, candidates, store_id)
            formatter.output({"success": True, "data": {"match": result.model_dump(mode="json")}})
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")
    except ValidationError as e:
        _fail(str(e), error_code="INVALID_INPUT")
    except KeyError as e:
        _fail(f"Missing field: {e}", error_code="INVALID_INPUT")
    except Exception as e:
        _fail(str(e))


# --- Deduplication ---


@app.command()
def dedup(
    data: Annotated[str | None, typer.Option("--data", "-d", help="JSON item sources")] = None,
    file: Annotated[Path | None, typer.Option("--file", "-f", help="Path to JSON file")] = None,
) -> None:
    """Collapse duplicate items across lists, or within one pantry.

    The request holds either "sources" (keyed by id, each with "label" and
    "items") or a flat "items" list.
    """
    if not data and not file:
        _fail("Must provide either --data or --file")

    try:
        payload = _load_payload(data, file)
        if "sources" in payload:
            sources = {
                key: ItemSource.model_validate(source) for key, source in payload["sources"].items()
            }
            result = deduplicate_items(sources)
        else:
            items = [ShoppingItem.model_validate(i) for i in payload.get("items", [])]
            result = deduplicate_pantry(items)

        formatter.output(
            {"success": True, "data": {"dedup": result.model_dump(mode="json")}},
            f"{len(result.items)} unique items, {len(result.duplicates)} merged",
        )
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")
    except ValidationError as e:
        _fail(str(e), error_code="INVALID_INPUT")
    except Exception as e:
        _fail(str(e))


# --- Learned mappings ---

mapping_app = typer.Typer(help="Learned receipt mapping commands")
app.add_typer(mapping_app, name="mapping")


@mapping_app.command("learn")
def mapping_learn(
    store: Annotated[str, typer.Argument(help="Store the receipt came from")],
    raw_name: Annotated[str, typer.Argument(help="Item text as printed on the receipt")],
    canonical_name: Annotated[str, typer.Argument(help="Item it actually is")],
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Item category")
    ] = None,
    price: Annotated[float | None, typer.Option("--price", "-p", help="Price paid")] = None,
    confirmed_by: Annotated[
        str | None, typer.Option("--by", help="User confirming the mapping")
    ] = None,
) -> None:
    """Confirm what a receipt line means at a store."""
    try:
        mapping = get_mapping_store().learn(
            store_key(store) or store,
            raw_name,
            canonical_name,
            category=category,
            price=price,
            confirmed_by=confirmed_by,
        )
        formatter.output(
            {"success": True, "data": {"mapping": mapping.model_dump(mode="json")}},
            f"Learned {raw_name} -> {canonical_name}",
        )
    except Exception as e:
        _fail(str(e))


@mapping_app.command("lookup")
def mapping_lookup(
    store: Annotated[str, typer.Argument(help="Store the receipt came from")],
    raw_name: Annotated[str, typer.Argument(help="Item text as printed on the receipt")],
) -> None:
    """Look up what a receipt line has been learned to mean."""
    try:
        lookup = get_mapping_store().lookup(store_key(store) or store, raw_name)
        formatter.output(
            {
                "success": True,
                "data": {"lookup": lookup.model_dump(mode="json") if lookup else None},
            }
        )
    except Exception as e:
        _fail(str(e))


# --- Prices ---

price_app = typer.Typer(help="Price resolution commands")
app.add_typer(price_app, name="price")


@price_app.command("resolve")
def price_resolve(
    item: Annotated[str, typer.Argument(help="Item name, e.g. 'milk'")],
    size: Annotated[str, typer.Option("--size", help="Variant size, e.g. '2 pints'")],
    unit: Annotated[str, typer.Option("--unit", help="Variant unit, e.g. 'pint'")],
    variant: Annotated[
        str | None, typer.Option("--variant", help="Variant name for crowd matching")
    ] = None,
    store: Annotated[str | None, typer.Option("--store", "-s", help="Store to price at")] = None,
    user: Annotated[
        str | None, typer.Option("--user", "-u", help="User whose history to use")
    ] = None,
    ai_estimate: Annotated[
        float | None, typer.Option("--ai-estimate", help="Fallback estimated price")
    ] = None,
    region: Annotated[str | None, typer.Option("--region", help="Region to price in")] = None,
) -> None:
    """Resolve the best known price of an item and size."""
    try:
        resolved = get_price_resolver().resolve_price(
            item.lower().strip(),
            size,
            unit,
            variant_name=variant,
            store_name=store,
            user_id=user,
            ai_estimate=ai_estimate,
            region=region,
        )
        formatter.output(
            {
                "success": True,
                "data": {"item": item, "resolved_price": resolved.model_dump(mode="json")},
            }
        )
    except Exception as e:
        _fail(str(e))


@price_app.command("best-variant")
def price_best_variant(
    item: Annotated[str, typer.Argument(help="Base item name, e.g. 'milk'")],
    store: Annotated[str | None, typer.Option("--store", "-s", help="Store to price at")] = None,
    user: Annotated[
        str | None, typer.Option("--user", "-u", help="User whose history to use")
    ] = None,
    region: Annotated[str | None, typer.Option("--region", help="Region to price in")] = None,
) -> None:
    """Pick the variant of an item to show, with its price."""
    try:
        resolved = get_price_resolver().resolve_variant_with_price(
            item, store_name=store, user_id=user, region=region
        )
    except Exception as e:
        _fail(str(e))

    if resolved is None:
        _fail(f"No variants known for {item}", error_code="NO_VARIANTS")

    formatter.output({"success": True, "data": {"variant_price": resolved.model_dump(mode="json")}})


@price_app.command("record")
def price_record(
    item: Annotated[str, typer.Argument(help="Item name")],
    price: Annotated[float, typer.Argument(help="Price seen")],
    store: Annotated[str | None, typer.Option("--store", "-s", help="Store name")] = None,
    region: Annotated[str | None, typer.Option("--region", help="Region")] = None,
    variant: Annotated[str | None, typer.Option("--variant", help="Variant name")] = None,
    size: Annotated[str | None, typer.Option("--size", help="Variant size")] = None,
    reports: Annotated[int, typer.Option("--reports", help="Number of reports")] = 1,
) -> None:
    """Record a crowdsourced price observation."""
    try:
        record = PriceRecord(
            normalized_name=item.lower().strip(),
            store_id=normalize_store_name(store),
            store_name=store,
            region=region or get_config().pricing.default_region,
            variant_name=variant,
            size=size,
            unit_price=price,
            report_count=reports,
            last_seen_at=datetime.now(),
        )
        get_data_store().add_price_record(record)
        formatter.success(f"Recorded {item} at £{price:.2f}", record.model_dump(mode="json"))
    except ValidationError as e:
        _fail(str(e), error_code="INVALID_INPUT")
    except Exception as e:
        _fail(str(e))


@price_app.command("purchase")
def price_purchase(
    user: Annotated[str, typer.Argument(help="User who bought the item")],
    item: Annotated[str, typer.Argument(help="Item name")],
    price: Annotated[float, typer.Argument(help="Unit price paid")],
    store: Annotated[str, typer.Option("--store", "-s", help="Store name")],
    size: Annotated[str, typer.Option("--size", help="Variant size")],
    unit: Annotated[str, typer.Option("--unit", help="Variant unit")],
    purchase_date: Annotated[
        str | None, typer.Option("--date", help="Purchase date (YYYY-MM-DD or ISO timestamp)")
    ] = None,
) -> None:
    """Record a personal purchase."""
    try:
        entry = PersonalPriceEntry(
            user_id=user,
            normalized_name=item.lower().strip(),
            store_name=store,
            size=size,
            unit=unit,
            unit_price=price,
            purchase_date=(
                datetime.fromisoformat(purchase_date) if purchase_date else datetime.now()
            ),
        )
        get_data_store().add_personal_price(entry)
        formatter.success(f"Recorded purchase of {item} by {user}", entry.model_dump(mode="json"))
    except ValidationError as e:
        _fail(str(e), error_code="INVALID_INPUT")
    except Exception as e:
        _fail(str(e))


# --- Variants ---

variant_app = typer.Typer(help="Item variant commands")
app.add_typer(variant_app, name="variant")


@variant_app.command("add")
def variant_add(
    base_item: Annotated[str, typer.Argument(help="Base item, e.g. 'milk'")],
    variant_name: Annotated[str, typer.Argument(help="Variant name, e.g. 'Milk 2 pints'")],
    size: Annotated[str, typer.Option("--size", help="Variant size")],
    unit: Annotated[str, typer.Option("--unit", help="Variant unit")],
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Product category")
    ] = None,
    commonality: Annotated[
        float | None, typer.Option("--commonality", help="How common this variant is")
    ] = None,
    price: Annotated[float | None, typer.Option("--price", "-p", help="Estimated price")] = None,
) -> None:
    """Add or replace a size variant of an item."""
    try:
        variant = ItemVariant(
            base_item=base_item.lower().strip(),
            variant_name=variant_name,
            size=size,
            unit=unit,
            category=category,
            commonality=commonality,
            estimated_price=price,
        )
        get_data_store().add_variant(variant)
        formatter.success(f"Added variant {variant_name}", variant.model_dump(mode="json"))
    except ValidationError as e:
        _fail(str(e), error_code="INVALID_INPUT")
    except Exception as e:
        _fail(str(e))


@app.command()
def bracket(
    item: Annotated[str, typer.Argument(help="Item name from the receipt")],
    price: Annotated[float, typer.Argument(help="Price paid")],
    tolerance: Annotated[
        float, typer.Option("--tolerance", "-t", help="Relative price tolerance")
    ] = DEFAULT_TOLERANCE,
) -> None:
    """Infer which variant was bought from the price paid."""
    try:
        variants = get_data_store().variants(extract_base_item(item))
        result = match_price_bracket(price, variants, tolerance)
        formatter.output({"success": True, "data": {"bracket": result.model_dump(mode="json")}})
    except Exception as e:
        _fail(str(e))


@app.command("closest-size")
def closest_size(
    target: Annotated[str, typer.Argument(help="Size to match, e.g. '250g'")],
    available: Annotated[list[str], typer.Argument(help="Sizes the store offers")],
    tolerance: Annotated[
        float, typer.Option("--tolerance", "-t", help="Relative size tolerance for auto-matching")
    ] = DEFAULT_SIZE_TOLERANCE,
) -> None:
    """Find the closest equivalent size when switching stores."""
    if parse_size(target) is None:
        _fail(f"Unrecognised size: {target}", "INVALID_INPUT")

    result = find_closest_size(target, available, tolerance)
    formatter.output(
        {"success": True, "data": {"size_match": {"target": target, **result.model_dump(mode="json")}}}
    )


if __name__ == "__main__":
    app()
