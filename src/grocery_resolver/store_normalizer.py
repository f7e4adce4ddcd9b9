"""Store name normalization.

Receipts print store names in many forms ("TESCO EXPRESS", "J Sainsbury
PLC", "M&S Simply Food"). Learned mappings and price records are keyed by a
canonical store id, so raw names are resolved here first.
"""

import re
from enum import Enum

from pydantic import BaseModel


class StoreType(str, Enum):
    """Store format."""

    SUPERMARKET = "supermarket"
    DISCOUNTER = "discounter"
    CONVENIENCE = "convenience"
    PREMIUM = "premium"
    FROZEN = "frozen"
    WHOLESALE = "wholesale"


class StoreInfo(BaseModel):
    """A known retailer and the names it appears under."""

    id: str
    display_name: str
    type: StoreType
    market_share: float
    aliases: list[str]


# Sorted by market share, largest first.
UK_STORES: tuple[StoreInfo, ...] = (
    StoreInfo(
        id="tesco",
        display_name="Tesco",
        type=StoreType.SUPERMARKET,
        market_share=27,
        aliases=[
            "tesco", "tesco express", "tesco extra", "tesco metro", "tesco superstore",
            "tesco stores", "tesco stores ltd", "tesco plc",
        ],
    ),
    StoreInfo(
        id="sainsburys",
        display_name="Sainsbury's",
        type=StoreType.SUPERMARKET,
        market_share=15,
        aliases=[
            "sainsbury's", "sainsburys", "sainsbury", "sainsbury's local", "sainsburys local",
            "j sainsbury", "j sainsbury plc",
        ],
    ),
    StoreInfo(
        id="asda",
        display_name="Asda",
        type=StoreType.SUPERMARKET,
        market_share=14,
        aliases=["asda", "asda stores", "asda superstore", "asda express", "asda stores ltd"],
    ),
    StoreInfo(
        id="aldi",
        display_name="Aldi",
        type=StoreType.DISCOUNTER,
        market_share=10,
        aliases=["aldi", "aldi stores", "aldi uk", "aldi stores ltd"],
    ),
    StoreInfo(
        id="morrisons",
        display_name="Morrisons",
        type=StoreType.SUPERMARKET,
        market_share=9,
        aliases=["morrisons", "morrison's", "wm morrisons", "wm morrison", "morrisons daily"],
    ),
    StoreInfo(
        id="lidl",
        display_name="Lidl",
        type=StoreType.DISCOUNTER,
        market_share=8,
        aliases=["lidl", "lidl uk", "lidl gb", "lidl great britain"],
    ),
    StoreInfo(
        id="coop",
        display_name="Co-op",
        type=StoreType.CONVENIENCE,
        market_share=6,
        aliases=["co-op", "coop", "co op", "the co-operative", "cooperative", "co-operative food"],
    ),
    StoreInfo(
        id="waitrose",
        display_name="Waitrose",
        type=StoreType.PREMIUM,
        market_share=5,
        aliases=["waitrose", "waitrose & partners", "waitrose and partners", "little waitrose"],
    ),
    StoreInfo(
        id="marks",
        display_name="M&S",
        type=StoreType.PREMIUM,
        market_share=3,
        aliases=[
            "m&s", "m & s", "marks & spencer", "marks and spencer", "m&s simply food",
            "m&s food", "marks",
        ],
    ),
    StoreInfo(
        id="iceland",
        display_name="Iceland",
        type=StoreType.FROZEN,
        market_share=2,
        aliases=["iceland", "iceland foods", "the food warehouse"],
    ),
    StoreInfo(
        id="costco",
        display_name="Costco",
        type=StoreType.WHOLESALE,
        market_share=1,
        aliases=["costco", "costco wholesale"],
    ),
)

# Format suffixes removed before retrying alias lookup.
STRIP_SUFFIXES = (
    "express", "extra", "metro", "local", "superstore", "supermarket",
    "stores", "store", "ltd", "plc", "uk", "gb", "wholesale",
)

_NOISE = re.compile(r"[.,;:!?'\"]")
_ALIAS_TO_ID = {
    _NOISE.sub("", alias): store.id for store in UK_STORES for alias in store.aliases
}
_ID_TO_INFO = {store.id: store for store in UK_STORES}


def normalize_store_name(raw: str | None) -> str | None:
    """Resolve a raw store name to a canonical store id.

    Tries, in order: exact alias, alias after stripping format suffixes,
    store id contained in the name, alias at the start of the name.

    Returns:
        Store id such as "tesco", or None if the store is not recognised
    """
    if not raw:
        return None

    cleaned = re.sub(r"\s+", " ", _NOISE.sub("", raw.lower())).strip()
    if not cleaned:
        return None

    if cleaned in _ALIAS_TO_ID:
        return _ALIAS_TO_ID[cleaned]

    stripped = cleaned
    for suffix in STRIP_SUFFIXES:
        stripped = re.sub(rf"\s+{re.escape(suffix)}$", "", stripped).strip()

    if stripped != cleaned and stripped in _ALIAS_TO_ID:
        return _ALIAS_TO_ID[stripped]

    for store in UK_STORES:
        if store.id in cleaned or store.id in stripped:
            return store.id

    for store in UK_STORES:
        for alias in store.aliases:
            alias_key = _NOISE.sub("", alias)
            if cleaned.startswith(alias_key) or stripped.startswith(alias_key):
                return store.id

    return None


def store_key(raw: str | None) -> str | None:
    """Canonical store id if known, otherwise the lowercased trimmed name."""
    if not raw or not raw.strip():
        return None
    return normalize_store_name(raw) or raw.lower().strip()


def get_store_info(store_id: str) -> StoreInfo | None:
    """Store metadata for a canonical id."""
    return _ID_TO_INFO.get(store_id)


def is_valid_store_id(store_id: str) -> bool:
    """Whether ``store_id`` is a known canonical id."""
    return store_id in _ID_TO_INFO


def all_stores() -> list[StoreInfo]:
    """All known stores, largest market share first."""
    return list(UK_STORES)
