"""Selector/Ranker: merges matcher hits into a SelectionOutcome.

Ranking logic:
1. Score each hit (exact = candidate score, fuzzy/alternative scaled by similarity)
2. Sort descending; ties prefer exact, then alternative, then fuzzy, then candidate order
3. Deduplicate by catalog model (best entry wins)
4. Top hit is chosen, the next ``max_alternatives`` are alternatives
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from rapidfuzz import fuzz, process, utils

from gearmatch.config import AppConfig, get_config
from gearmatch.matching.model_parser import compact_model
from gearmatch.models import (
    Candidate,
    CatalogItem,
    MatchResult,
    MatchType,
    OutcomeStatus,
    SelectionOutcome,
)

logger = logging.getLogger(__name__)

# Lower sorts first on equal score
MATCH_TYPE_PRIORITY = {
    MatchType.EXACT: 0,
    MatchType.ALTERNATIVE: 1,
    MatchType.FUZZY: 2,
    MatchType.RATED: 3,
}


@dataclass(frozen=True)
class MatchHit:
    """Unscored binding of one candidate to one catalog item."""

    candidate: Candidate
    candidate_index: int
    item: CatalogItem
    match_type: MatchType
    similarity: float = 100.0
    info: str = ""


class Ranker:
    """Scores, deduplicates and ranks matcher hits."""

    def __init__(self, config: AppConfig | None = None):
        """Initialize ranker with configuration."""
        self.config = config or get_config()

    def score(self, hit: MatchHit) -> float:
        """Final score of a hit.

        Exact hits keep the candidate score; fuzzy and alternative-format
        hits are scaled by their similarity, so an exact hit always scores
        at least as high as any other hit for the same candidate.
        """
        if hit.match_type == MatchType.EXACT:
            return hit.candidate.score
        return round(hit.candidate.score * hit.similarity / 100.0, 2)

    def rank(self, hits: Sequence[MatchHit]) -> list[MatchResult]:
        """Rank hits into score-descending, catalog-unique MatchResults."""
        scored = [(self.score(hit), hit) for hit in hits]
        scored.sort(
            key=lambda pair: (
                -pair[0],
                MATCH_TYPE_PRIORITY[pair[1].match_type],
                pair[1].candidate_index,
            )
        )

        results = []
        seen = set()
        for score, hit in scored:
            key = compact_model(hit.item.model)
            if key in seen:
                continue
            seen.add(key)
            results.append(
                MatchResult(
                    catalog_item=hit.item,
                    score=score,
                    match_type=hit.match_type,
                    match_info=hit.info,
                    candidate_model=hit.candidate.model,
                )
            )
        return results

    def resolve(
        self,
        accessory: str,
        hits: Sequence[MatchHit],
        candidates: Sequence[Candidate],
        catalog: Sequence[CatalogItem],
    ) -> SelectionOutcome:
        """Build the terminal outcome for an applicable accessory.

        Args:
            accessory: Accessory class name (for messages)
            hits: All matcher hits of this call
            candidates: Candidates that produced the hits (score-descending)
            catalog: Effective catalog (for closest-model hints)

        Returns:
            RESOLVED outcome, or UNRESOLVED with a suggested model
        """
        ranked = self.rank(hits)
        if not ranked:
            return self.unresolved(accessory, candidates, catalog)

        chosen, rest = ranked[0], ranked[1 : 1 + self.config.selection.max_alternatives]
        low_confidence = chosen.score < self.config.matching.low_confidence_score

        message = (
            f"Selected {chosen.catalog_item.model} for {accessory} "
            f"({chosen.match_type.value} match on {chosen.candidate_model}, score {chosen.score:g})"
        )
        if low_confidence:
            message += "; low confidence, please confirm the selection"

        logger.info(message)
        return SelectionOutcome(
            status=OutcomeStatus.RESOLVED,
            success=True,
            requires_accessory=True,
            chosen=chosen,
            alternatives=list(rest),
            candidates=list(candidates),
            message=message,
            low_confidence=low_confidence,
        )

    def unresolved(
        self,
        accessory: str,
        candidates: Sequence[Candidate],
        catalog: Sequence[CatalogItem],
    ) -> SelectionOutcome:
        """Outcome for candidates that none of the matchers could bind."""
        suggestion = candidates[0].model if candidates else None

        message = f"No catalog entry found for {accessory}"
        if suggestion:
            message += f"; suggested model {suggestion}"
            closest = self.closest_models(suggestion, catalog)
            if closest:
                message += f". Closest catalog models: {', '.join(closest)}"
            message += ". Add the suggested model to the catalog or choose one manually"

        logger.info(message)
        return SelectionOutcome(
            status=OutcomeStatus.UNRESOLVED,
            success=False,
            requires_accessory=True,
            alternatives=list(candidates),
            candidates=list(candidates),
            suggested_model=suggestion,
            message=message,
        )

    def closest_models(self, model: str, catalog: Sequence[CatalogItem]) -> list[str]:
        """Closest catalog model strings by RapidFuzz WRatio (hint only)."""
        limit = self.config.selection.closest_models_in_hint
        if limit <= 0 or not catalog:
            return []
        choices = [item.model for item in catalog]
        extracted = process.extract(
            model, choices, scorer=fuzz.WRatio, processor=utils.default_process, limit=limit
        )
        return [choice for choice, _score, _index in extracted]
