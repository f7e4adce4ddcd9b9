"""Grocery Resolver - Matching, deduplication and price resolution for grocery items."""

from .config import ConfigManager, MatchConfig, MatchWeights, PricingConfig
from .data_store import BackendType, DataStore, create_data_store
from .deduplicator import deduplicate_items, deduplicate_pantry, merge_items
from .duplicates import (
    find_duplicate_name,
    find_fuzzy_matches,
    is_duplicate_item,
    is_duplicate_item_name,
)
from .item_normalizer import canonical_item_display_name, normalize_item_name
from .mapping_store import LearnedMappingStore
from .matcher import ItemMatcher, calculate_match_score, classify_confidence
from .models import (
    BatchMatchResult,
    BracketMatchType,
    CandidateItem,
    ConfidenceTier,
    DeduplicationResult,
    DuplicateGroup,
    FuzzyMatch,
    ItemSource,
    ItemVariant,
    LearnedMapping,
    MappingLookup,
    MatchResult,
    PersonalPriceEntry,
    PriceBracketMatch,
    PriceRecord,
    PriceSource,
    RawItemMention,
    ResolvedPrice,
    ResolvedVariantPrice,
    ScoredCandidate,
    ShoppingItem,
    SizeMatch,
    SizeMatchResult,
    SourceKind,
)
from .output_formatter import OutputFormatter
from .price_bracket import match_price_bracket
from .price_resolver import PriceResolver
from .size_normalizer import find_closest_size, normalize_size, parse_size
from .sqlite_store import SQLiteStore
from .store_normalizer import normalize_store_name

__version__ = "0.1.0"

__all__ = [
    # Config
    "ConfigManager",
    "MatchConfig",
    "MatchWeights",
    "PricingConfig",
    # Persistence
    "BackendType",
    "DataStore",
    "SQLiteStore",
    "create_data_store",
    # Engine
    "ItemMatcher",
    "LearnedMappingStore",
    "PriceResolver",
    "calculate_match_score",
    "classify_confidence",
    "deduplicate_items",
    "deduplicate_pantry",
    "merge_items",
    "find_duplicate_name",
    "find_fuzzy_matches",
    "is_duplicate_item",
    "is_duplicate_item_name",
    "match_price_bracket",
    "canonical_item_display_name",
    "normalize_item_name",
    "find_closest_size",
    "normalize_size",
    "normalize_store_name",
    "parse_size",
    # Output
    "OutputFormatter",
    # Models
    "BatchMatchResult",
    "BracketMatchType",
    "CandidateItem",
    "ConfidenceTier",
    "DeduplicationResult",
    "DuplicateGroup",
    "FuzzyMatch",
    "ItemSource",
    "ItemVariant",
    "LearnedMapping",
    "MappingLookup",
    "MatchResult",
    "PersonalPriceEntry",
    "PriceBracketMatch",
    "PriceRecord",
    "PriceSource",
    "RawItemMention",
    "ResolvedPrice",
    "ResolvedVariantPrice",
    "ScoredCandidate",
    "ShoppingItem",
    "SizeMatch",
    "SizeMatchResult",
    "SourceKind",
]
