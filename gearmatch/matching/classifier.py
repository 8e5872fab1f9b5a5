"""Requirement Classifier: does an accessory class apply to a primary unit?

Never raises. Unrecognized or malformed models always resolve to a
boolean through the power-threshold fallback and the table default.
"""

from __future__ import annotations

import logging

from gearmatch.matching.model_parser import normalize_model, parse_primary_model
from gearmatch.models import SelectionContext
from gearmatch.rules.models import NumberCoding, RuleSet

logger = logging.getLogger(__name__)


class RequirementClassifier:
    """Series-range classifier with a rated-power fallback."""

    def __init__(self, rule_set: RuleSet):
        """Initialize classifier.

        Args:
            rule_set: Rule set whose applicability table and series codings are used
        """
        self.rule_set = rule_set
        self.table = rule_set.applicability

    def is_applicable(self, model: str | None, context: SelectionContext | None = None) -> bool:
        """Decide whether the accessory class is required for ``model``.

        Decision order:
        1. Empty model → False
        2. Known series prefix → its ``always`` flag or numeric ranges
        3. Unknown series → rated power ≥ threshold (when configured)
        4. Table default

        Args:
            model: Primary unit model string (may be empty or malformed)
            context: Optional context attributes (rated power)

        Returns:
            True if the accessory is required
        """
        normalized = normalize_model(model) if isinstance(model, str) else ""
        if not normalized:
            return False

        parsed = parse_primary_model(normalized, self._coding_for(normalized))

        if parsed.prefix is not None:
            entry = self.table.for_prefix(parsed.prefix)
            if entry is not None:
                verdict = entry.applies(parsed.number)
                logger.debug(
                    f"{self.rule_set.accessory}: series {parsed.prefix} number {parsed.number} "
                    f"-> applicable={verdict}"
                )
                return verdict

        power = context.power if context is not None else None
        threshold = self.table.power_threshold_kw
        if threshold is not None and power is not None and power >= threshold:
            logger.debug(
                f"{self.rule_set.accessory}: unrecognized series in {normalized}, "
                f"power {power:g}kW >= {threshold:g}kW -> applicable"
            )
            return True

        return self.table.default

    def _coding_for(self, normalized: str) -> NumberCoding:
        prefix = parse_primary_model(normalized).prefix
        series = self.rule_set.rules_for(prefix) if prefix else None
        return series.coding if series else NumberCoding.INTEGER
