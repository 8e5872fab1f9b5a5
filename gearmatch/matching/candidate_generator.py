"""Rule-driven candidate generation.

Turns a primary model plus the matched series rule into an ordered list of
target model strings with base scores. Unknown series fall back to a single
low-confidence default candidate so the caller always gets a suggestion.
"""

from __future__ import annotations

import logging

from gearmatch.config import SelectionConfig, get_config
from gearmatch.matching.model_parser import compact_model, normalize_model, parse_primary_model
from gearmatch.models import Candidate, CandidateType, SelectionContext
from gearmatch.rules.models import MatchingRule, RuleSet

logger = logging.getLogger(__name__)


class CandidateGenerator:
    """First-match-wins candidate generator over a RuleSet."""

    def __init__(self, rule_set: RuleSet, config: SelectionConfig | None = None):
        """Initialize generator.

        Args:
            rule_set: Rule set for one accessory class
            config: Selection config (default from get_config())
        """
        self.rule_set = rule_set
        self.config = config or get_config().selection

    def generate(
        self,
        model: str,
        applicable: bool = True,
        context: SelectionContext | None = None,
    ) -> list[Candidate]:
        """Generate score-descending candidates for a primary model.

        Args:
            model: Primary unit model string
            applicable: Classifier verdict; nothing is generated when False
            context: Optional context (boolean flags select rule variants)

        Returns:
            Candidates sorted by score descending (empty when not applicable)
        """
        if not applicable:
            logger.debug(f"{self.rule_set.accessory}: not applicable for {model}, no candidates")
            return []

        normalized = normalize_model(model)
        rule = self.find_rule(normalized)

        if rule is None:
            logger.info(
                f"{self.rule_set.accessory}: no rule for {normalized or '<empty>'}, "
                f"using default {self.rule_set.default_target}"
            )
            return [
                Candidate(
                    model=self.rule_set.default_target,
                    score=self.config.default_candidate_score,
                    match_type=CandidateType.DEFAULT,
                    match_info="No matching rule; generic default model",
                )
            ]

        candidates = self._expand_rule(rule)
        candidates = self._apply_variants(candidates, context)
        return _dedupe(candidates)

    def find_rule(self, normalized: str) -> MatchingRule | None:
        """Return the first rule covering ``normalized`` in documented order."""
        prefix = parse_primary_model(normalized).prefix
        if prefix is None:
            return None
        series = self.rule_set.rules_for(prefix)
        if series is None:
            return None

        parsed = parse_primary_model(normalized, series.coding)
        if parsed.number is None:
            return None

        for rule in series.rules:
            if rule.matches(parsed.number, parsed.suffix):
                logger.debug(f"{self.rule_set.accessory}: {normalized} matched {rule.describe()}")
                return rule
        return None

    def _expand_rule(self, rule: MatchingRule) -> list[Candidate]:
        coverage = rule.label or f"within {rule.describe()}"
        candidates = [
            Candidate(
                model=rule.target,
                score=rule.score,
                match_type=CandidateType.PRIMARY,
                match_info=f"Rule target: {coverage}",
            )
        ]
        for alt in rule.alternates:
            candidates.append(
                Candidate(
                    model=alt.model,
                    score=max(0.0, rule.score - alt.offset),
                    match_type=CandidateType.ALTERNATE,
                    match_info=f"Alternate of rule target {rule.target}",
                )
            )
        return candidates

    def _apply_variants(
        self, candidates: list[Candidate], context: SelectionContext | None
    ) -> list[Candidate]:
        if context is None or not self.rule_set.variants:
            return candidates

        result = []
        for candidate in candidates:
            substituted = None
            for flag, mapping in self.rule_set.variants.items():
                if context.flag(flag) and normalize_model(candidate.model) in mapping:
                    substituted = mapping[normalize_model(candidate.model)]
                    reason = flag
                    break
            if substituted is None:
                result.append(candidate)
                continue
            # Variant takes the candidate's place; the plain model drops to an alternate
            result.append(
                candidate.model_copy(
                    update={
                        "model": substituted,
                        "match_info": f"{candidate.match_info} ({reason} variant of {candidate.model})",
                    }
                )
            )
            result.append(
                Candidate(
                    model=candidate.model,
                    score=max(0.0, candidate.score - 5),
                    match_type=CandidateType.ALTERNATE,
                    match_info=f"Standard model without {reason}",
                )
            )
        return result


def _dedupe(candidates: list[Candidate]) -> list[Candidate]:
    """Keep the best-scored candidate per model, sorted by score (stable)."""
    best: dict[str, Candidate] = {}
    for candidate in candidates:
        key = compact_model(candidate.model)
        if key not in best or candidate.score > best[key].score:
            best[key] = candidate
    return sorted(best.values(), key=lambda c: c.score, reverse=True)
