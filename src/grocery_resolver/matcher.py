"""Multi-signal matching of noisy item mentions against known items.

Each candidate is scored from five weighted signals:

1. Token overlap of the cleaned names
2. Category agreement (with aliases)
3. Price proximity
4. Store-specific learned mappings
5. Edit-distance similarity of the normalized names

A bonus is added when the deterministic duplicate-name rule also agrees.
"""

import logging

from .config import MatchConfig
from .duplicates import is_duplicate_item_name
from .item_normalizer import normalize_item_name
from .mapping_store import LearnedMappingStore
from .models import (
    BatchMatchResult,
    CandidateItem,
    ConfidenceTier,
    LearnedMapping,
    MappingLookup,
    MatchResult,
    RawItemMention,
    ScoredCandidate,
)
from .similarity import (
    calculate_category_match,
    calculate_price_proximity,
    calculate_similarity,
    calculate_token_overlap,
)

logger = logging.getLogger(__name__)

# Minimum signal score for the signal to be listed as a reason.
TOKEN_REASON_THRESHOLD = 50
PRICE_REASON_THRESHOLD = 50
FUZZY_REASON_THRESHOLD = 70
# Fuzzy similarity at or below this is noise and adds nothing.
FUZZY_SCORE_FLOOR = 50


def calculate_match_score(
    mention: RawItemMention,
    candidate: CandidateItem,
    learned_confidence: float = 0,
    config: MatchConfig | None = None,
) -> tuple[int, list[str]]:
    """Score how well a candidate matches a mention.

    Args:
        mention: The noisy item mention
        candidate: Item to compare against
        learned_confidence: Learned mapping confidence for this candidate (0-100)
        config: Matcher configuration

    Returns:
        Tuple of (score 0-100, reasons)
    """
    config = config or MatchConfig()
    weights = config.weights
    reasons: list[str] = []
    weighted_score = 0.0

    token_score = calculate_token_overlap(mention.name, candidate.name)
    if token_score > 0:
        weighted_score += token_score / 100 * weights.token_overlap
        if token_score >= TOKEN_REASON_THRESHOLD:
            reasons.append(f"token_overlap:{token_score}")

    category_score = calculate_category_match(mention.category, candidate.category)
    if category_score > 0:
        weighted_score += category_score / 100 * weights.category_match
        reasons.append("category_match")

    price_score = calculate_price_proximity(
        mention.unit_price,
        candidate.estimated_price,
        config.price_proximity_percent,
    )
    if price_score > 0:
        weighted_score += price_score / 100 * weights.price_proximity
        if price_score >= PRICE_REASON_THRESHOLD:
            reasons.append(f"price_match:{price_score}")

    if learned_confidence > 0:
        weighted_score += learned_confidence / 100 * weights.learned_mapping
        reasons.append(f"learned:{round(learned_confidence)}")

    fuzzy = calculate_similarity(
        normalize_item_name(mention.name),
        normalize_item_name(candidate.name),
    )
    if fuzzy > FUZZY_SCORE_FLOOR:
        weighted_score += fuzzy / 100 * weights.fuzzy_similarity
        if fuzzy >= FUZZY_REASON_THRESHOLD:
            reasons.append(f"fuzzy:{round(fuzzy)}")

    if is_duplicate_item_name(mention.name, candidate.name):
        weighted_score = min(weighted_score + config.duplicate_name_bonus, 100)
        reasons.append("fuzzy_duplicate")

    return min(round(weighted_score), 100), reasons


def classify_confidence(score: float, config: MatchConfig) -> ConfidenceTier:
    """Translate a score into a confidence tier."""
    if score >= config.high_confidence_threshold:
        return ConfidenceTier.HIGH
    if score >= config.medium_confidence_threshold:
        return ConfidenceTier.MEDIUM
    if score > 0:
        return ConfidenceTier.LOW
    return ConfidenceTier.NONE


class ItemMatcher:
    """Matches item mentions against candidate items."""

    def __init__(
        self,
        config: MatchConfig | None = None,
        mapping_store: LearnedMappingStore | None = None,
    ):
        """Initialize the matcher.

        Args:
            config: Thresholds and signal weights. Defaults to MatchConfig().
            mapping_store: Learned mappings to consult. Without one the
                           learned-mapping signal never fires.
        """
        self.config = config or MatchConfig()
        self.mapping_store = mapping_store

    def match(
        self,
        mention: RawItemMention,
        candidates: list[CandidateItem],
        store_id: str | None = None,
    ) -> MatchResult:
        """Find the best candidate for a mention.

        Only a HIGH confidence result should be applied automatically;
        MEDIUM and LOW results need the user to confirm.

        Args:
            mention: Item mention to match
            candidates: Items it may refer to
            store_id: Store the mention came from, for learned mappings

        Returns:
            MatchResult with every candidate ranked by score
        """
        learned = self._lookup_mapping(store_id, mention.name)

        scored: list[ScoredCandidate] = []
        for candidate in candidates:
            learned_confidence = 0
            if learned and is_duplicate_item_name(learned.canonical_name, candidate.name):
                learned_confidence = learned.confidence

            score, reasons = calculate_match_score(
                mention, candidate, learned_confidence, self.config
            )
            scored.append(ScoredCandidate(candidate=candidate, score=score, reasons=reasons))

        scored.sort(key=lambda s: s.score, reverse=True)

        if not scored:
            return MatchResult(mention=mention)

        best = scored[0]
        tier = classify_confidence(best.score, self.config)
        logger.debug(
            "Matched %r -> %r (score %d, %s)",
            mention.name,
            best.candidate.name,
            best.score,
            tier.value,
        )
        return MatchResult(
            mention=mention,
            best_match=best.candidate,
            score=best.score,
            reasons=best.reasons,
            all_candidates=scored,
            confidence_tier=tier,
        )

    def match_all(
        self,
        mentions: list[RawItemMention],
        candidates: list[CandidateItem],
        store_id: str | None = None,
    ) -> BatchMatchResult:
        """Match every mention and split by whether it can be auto-applied."""
        result = BatchMatchResult(auto_match_threshold=round(self.config.high_confidence_threshold))

        for mention in mentions:
            match = self.match(mention, candidates, store_id)
            if match.confidence_tier == ConfidenceTier.HIGH:
                result.matched.append(match)
            else:
                result.unmatched.append(match)

        return result

    def confirm(
        self,
        mention: RawItemMention,
        candidate: CandidateItem,
        store_id: str,
        confirmed_by: str | None = None,
    ) -> LearnedMapping | None:
        """Feed a user-confirmed match back into the learned mappings.

        Returns:
            The updated mapping, or None if the matcher has no mapping store
        """
        if self.mapping_store is None:
            return None
        return self.mapping_store.learn(
            store_id,
            mention.name,
            candidate.name,
            category=candidate.category or mention.category,
            price=mention.unit_price,
            confirmed_by=confirmed_by,
        )

    def _lookup_mapping(self, store_id: str | None, raw_name: str) -> MappingLookup | None:
        if self.mapping_store is None or not store_id:
            return None
        return self.mapping_store.lookup(store_id, raw_name)
