"""Fuzzy matching on family code and capacity.

Catalog strings and rule targets often differ only in formatting noise
(suffix letters, separators, spacing). Family code and capacity must both
agree well enough before a near-miss is accepted, so genuinely different
products are not bound to each other.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from gearmatch.config import MatchingConfig, get_config
from gearmatch.matching.model_parser import ModelTokens, compact_model, tokenize_model
from gearmatch.models import CatalogItem


@dataclass(frozen=True)
class FuzzyMatch:
    """Catalog item with its similarity (0-100) to the target model."""

    item: CatalogItem
    similarity: float


class FuzzyMatcher:
    """Family-code + capacity similarity scorer."""

    def __init__(self, config: MatchingConfig | None = None):
        """Initialize matcher with configuration."""
        self.config = config or get_config().matching

    def similarity(self, target: ModelTokens, other: ModelTokens) -> float:
        """Score two tokenized models.

        Scoring:
        - Family: exact → family_exact_score, containment → family_partial_score
        - Capacity: equal → capacity_exact_score, else ratio tiers on min/max,
          minus the mismatch penalty when families differ at all
        - Clamped at 0

        Args:
            target: Tokens of the candidate model
            other: Tokens of the catalog model

        Returns:
            Similarity in [0, 100]
        """
        cfg = self.config
        score = 0.0

        same_family = target.family == other.family
        if same_family:
            score += cfg.family_exact_score
        elif target.family in other.family or other.family in target.family:
            score += cfg.family_partial_score

        if target.capacity is not None and other.capacity is not None:
            if target.capacity == other.capacity:
                score += cfg.capacity_exact_score
            else:
                score += self._capacity_tier(target.capacity, other.capacity)
                if not same_family:
                    score -= cfg.family_mismatch_penalty

        return max(0.0, min(100.0, score))

    def _capacity_tier(self, a: float, b: float) -> float:
        high = max(a, b)
        if high <= 0:
            return float(self.config.capacity_floor_score)
        ratio = min(a, b) / high
        for lower_bound, points in self.config.capacity_ratio_tiers:
            if ratio > lower_bound:
                return float(points)
        return float(self.config.capacity_floor_score)

    def match(self, target_model: str, catalog: Sequence[CatalogItem]) -> list[FuzzyMatch]:
        """Find catalog items similar to ``target_model``.

        Exact (normalized) equals are skipped; they belong to the exact matcher.

        Args:
            target_model: Candidate model string
            catalog: Catalog snapshot

        Returns:
            Accepted matches (similarity >= fuzzy_min_score), sorted descending
        """
        target = tokenize_model(target_model)
        if target is None or target.capacity is None:
            return []

        compact_target = compact_model(target_model)
        matches = []
        for item in catalog:
            if compact_model(item.model) == compact_target:
                continue
            tokens = tokenize_model(item.model)
            if tokens is None:
                continue
            similarity = self.similarity(target, tokens)
            if similarity >= self.config.fuzzy_min_score:
                matches.append(FuzzyMatch(item=item, similarity=similarity))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches


def fuzzy_matches(target_model: str, catalog: Sequence[CatalogItem]) -> list[FuzzyMatch]:
    """Convenience function: fuzzy matches with the configured thresholds."""
    return FuzzyMatcher().match(target_model, catalog)
