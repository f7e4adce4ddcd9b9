"""Core data models for Grocery Resolver."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class SourceKind(str, Enum):
    """Where a candidate item record lives."""

    LIST_ITEM = "list_item"
    PANTRY_ITEM = "pantry_item"
    CATALOG_PRODUCT = "catalog_product"


class ConfidenceTier(str, Enum):
    """Coarse match confidence buckets."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class PriceSource(str, Enum):
    """Provenance of a resolved price."""

    PERSONAL = "personal"
    CROWDSOURCED = "crowdsourced"
    AI = "ai"
    NONE = "none"


class RawItemMention(BaseModel):
    """A noisy item reference from a receipt, voice note or scan."""

    name: str
    quantity: float = 1.0
    unit_price: float | None = None
    category: str | None = None
    size: str | None = None
    unit: str | None = None


class CandidateItem(BaseModel):
    """A known item a mention may be matched against."""

    id: str
    source_kind: SourceKind
    name: str
    category: str | None = None
    estimated_price: float | None = None


class ScoredCandidate(BaseModel):
    """A candidate with its match score."""

    candidate: CandidateItem
    score: int = Field(ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)


class MatchResult(BaseModel):
    """Outcome of matching one mention against a candidate pool."""

    mention: RawItemMention
    best_match: CandidateItem | None = None
    score: int = Field(default=0, ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    all_candidates: list[ScoredCandidate] = Field(default_factory=list)
    confidence_tier: ConfidenceTier = ConfidenceTier.NONE

    @property
    def requires_confirmation(self) -> bool:
        """Only high confidence results may be applied without asking the user."""
        return self.confidence_tier != ConfidenceTier.HIGH


class BatchMatchResult(BaseModel):
    """Mentions split into auto-matchable and needs-confirmation groups."""

    matched: list[MatchResult] = Field(default_factory=list)
    unmatched: list[MatchResult] = Field(default_factory=list)
    auto_match_threshold: int


class LearnedMapping(BaseModel):
    """A crowd-confirmed raw receipt pattern for a store."""

    store_id: str
    raw_pattern: str
    pattern_tokens: list[str] = Field(default_factory=list)
    canonical_name: str
    canonical_category: str | None = None
    confirmation_count: int = Field(default=1, ge=0)
    typical_price_min: float | None = None
    typical_price_max: float | None = None
    last_confirmed_by: str | None = None
    last_confirmed_at: datetime = Field(default_factory=datetime.now)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def price_range_seen(self) -> tuple[float, float] | None:
        """Observed (min, max) price, if any price was ever recorded."""
        if self.typical_price_min is None or self.typical_price_max is None:
            return None
        return (self.typical_price_min, self.typical_price_max)


class MappingLookup(BaseModel):
    """Result of a learned mapping lookup."""

    canonical_name: str
    confidence: int
    exact: bool = True


class PriceRecord(BaseModel):
    """Crowdsourced price aggregate for an item at a store."""

    normalized_name: str
    store_id: str | None = None
    store_name: str | None = None
    region: str | None = None
    variant_name: str | None = None
    size: str | None = None
    unit_price: float
    average_price: float | None = None
    min_price: float | None = None
    max_price: float | None = None
    report_count: int = 1
    last_seen_at: datetime = Field(default_factory=datetime.now)

    @property
    def effective_price(self) -> float:
        """Average price when aggregated, otherwise the last unit price."""
        return self.average_price if self.average_price is not None else self.unit_price


class PersonalPriceEntry(BaseModel):
    """One historical purchase by a user."""

    user_id: str
    normalized_name: str
    store_name: str
    size: str
    unit: str
    unit_price: float
    purchase_date: datetime

    @field_validator("purchase_date", mode="before")
    @classmethod
    def date_to_datetime(cls, v):
        """A plain date counts as midnight of that day."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, datetime.min.time())
        return v


class ResolvedPrice(BaseModel):
    """Best available price estimate with provenance."""

    price: float | None = None
    source: PriceSource = PriceSource.NONE
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    store_name: str | None = None
    report_count: int = 0


class ItemVariant(BaseModel):
    """A size/packaging variant of a base item."""

    base_item: str
    variant_name: str
    size: str
    unit: str
    category: str | None = None
    commonality: float | None = None
    estimated_price: float | None = None


class ResolvedVariantPrice(BaseModel):
    """A variant paired with its resolved price."""

    variant: ItemVariant
    price: float | None = None
    source: PriceSource = PriceSource.NONE
    confidence: float = 0.0


class ShoppingItem(BaseModel):
    """An item on a shopping list or in a pantry."""

    name: str
    quantity: float = 1.0
    category: str | None = None
    size: str | None = None
    unit: str | None = None
    estimated_price: float | None = None


class ItemSource(BaseModel):
    """A labelled collection of items, e.g. one shopping list."""

    label: str
    items: list[ShoppingItem] = Field(default_factory=list)


class DuplicateGroup(BaseModel):
    """Report for one group of merged duplicates."""

    name: str
    sources: list[str]
    kept_from: str
    reason: str


class DeduplicationResult(BaseModel):
    """Result of collapsing duplicates across sources."""

    items: list[ShoppingItem] = Field(default_factory=list)
    duplicates: list[DuplicateGroup] = Field(default_factory=list)


class FuzzyMatch(BaseModel):
    """A fuzzy name hit."""

    name: str
    similarity: float
    is_exact: bool = False


class BracketMatchType(str, Enum):
    """How a price-bracket lookup concluded."""

    EXACT = "exact"
    BRACKET = "bracket"
    AMBIGUOUS = "ambiguous"
    NO_MATCH = "no_match"


class PriceBracketMatch(BaseModel):
    """Variant inferred from a price when the size is unknown."""

    matched: bool
    variant: ItemVariant | None = None
    match_type: BracketMatchType
    candidates: list[ItemVariant] = Field(default_factory=list)
    tolerance: float


class SizeMatch(BaseModel):
    """One available size compared against a target size."""

    size: str
    category: str
    normalized_value: float
    display: str
    match_score: float = Field(ge=0, le=1)
    is_exact: bool
    is_auto_matchable: bool
    percent_diff: float


class SizeMatchResult(BaseModel):
    """Available sizes ranked by closeness to a target size."""

    best_match: SizeMatch | None = None
    all_matches: list[SizeMatch] = Field(default_factory=list)
    has_exact_match: bool = False
    has_auto_match: bool = False
