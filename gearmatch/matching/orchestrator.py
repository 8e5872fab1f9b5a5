"""End-to-end accessory selection orchestrator.

Coordinates classify → generate candidates → match (exact → fuzzy →
alternative format, per candidate) → rank. Expected domain conditions
never raise; every terminal state is encoded in the SelectionOutcome.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from gearmatch.config import AppConfig, get_config
from gearmatch.matching.alternative_formats import AlternativeFormatResolver
from gearmatch.matching.candidate_generator import CandidateGenerator
from gearmatch.matching.classifier import RequirementClassifier
from gearmatch.matching.exact_matcher import ExactMatcher
from gearmatch.matching.fuzzy_matcher import FuzzyMatcher
from gearmatch.matching.model_parser import normalize_model
from gearmatch.matching.ranker import MatchHit, Ranker
from gearmatch.models import (
    AccessoryKind,
    Candidate,
    CatalogItem,
    MatchType,
    OutcomeStatus,
    SelectionContext,
    SelectionOutcome,
)
from gearmatch.rules.models import RuleSet
from gearmatch.rules.repository import RuleRepository, get_repository

logger = logging.getLogger(__name__)


def coerce_catalog(catalog: Any) -> list[CatalogItem] | None:
    """Validate a caller-supplied catalog.

    Entries may be CatalogItem instances or mappings. Entries without a
    usable model (or failing validation) are skipped with a warning.

    Returns:
        Effective catalog, or None if ``catalog`` is not a sequence
    """
    if isinstance(catalog, (str, bytes)) or not isinstance(catalog, Sequence):
        return None

    items = []
    for idx, entry in enumerate(catalog):
        if isinstance(entry, CatalogItem):
            items.append(entry)
            continue
        if not isinstance(entry, Mapping):
            logger.warning(f"Skipping catalog entry {idx}: expected a mapping, got {type(entry).__name__}")
            continue
        try:
            items.append(CatalogItem.model_validate(dict(entry)))
        except ValidationError as e:
            logger.warning(f"Skipping catalog entry {idx}: {e.errors()[0]['msg']}")
    return items


def coerce_context(context: Any) -> SelectionContext | None:
    """Validate caller-supplied context attributes.

    Accepts None, a SelectionContext, or a mapping of its fields.

    Raises:
        ValidationError: If a mapping holds invalid values
        TypeError: If ``context`` is any other type
    """
    if context is None or isinstance(context, SelectionContext):
        return context
    if isinstance(context, Mapping):
        return SelectionContext.model_validate(dict(context))
    raise TypeError(f"expected a mapping, got {type(context).__name__}")


class AccessorySelector:
    """Runs one accessory class through the selection state machine.

    INIT → CLASSIFY → (NOT_APPLICABLE | GENERATE_CANDIDATES) → MATCH → RANK
    → (RESOLVED | UNRESOLVED)
    """

    def __init__(self, rule_set: RuleSet, config: AppConfig | None = None):
        """Initialize selector.

        Args:
            rule_set: Rule set for one accessory class
            config: Application config (default from get_config())
        """
        self.rule_set = rule_set
        self.config = config or get_config()

        # Initialize components
        self.classifier = RequirementClassifier(rule_set)
        self.candidate_generator = CandidateGenerator(rule_set, self.config.selection)
        self.exact_matcher = ExactMatcher()
        self.fuzzy_matcher = FuzzyMatcher(self.config.matching)
        self.alternative_resolver = AlternativeFormatResolver(
            rule_set.alternative_formats, self.config.matching, self.exact_matcher
        )
        self.ranker = Ranker(self.config)

    @property
    def accessory(self) -> str:
        return self.rule_set.accessory

    def select(
        self,
        model: Any,
        catalog: Any,
        context: SelectionContext | None = None,
    ) -> SelectionOutcome:
        """Select an accessory for a primary unit.

        Pipeline:
        1. Validate input (model string, catalog sequence, context)
        2. Classify: short-circuit when the accessory does not apply
        3. Generate candidates from rules (default candidate on rule gap)
        4. Match each candidate: exact, else fuzzy, else alternative formats
        5. Rank and build the outcome

        Args:
            model: Primary unit model string
            catalog: Sequence of CatalogItem (or mappings)
            context: Optional context attributes (rated power, flags), as a
                SelectionContext or a mapping of its fields

        Returns:
            SelectionOutcome (never raises for domain conditions)
        """
        # Step 1: Input validation
        if not isinstance(model, str) or not normalize_model(model):
            return self._invalid(f"Primary model is required to select {self.accessory}")

        items = coerce_catalog(catalog)
        if items is None:
            return self._invalid(
                f"Catalog for {self.accessory} must be a list of items, got {type(catalog).__name__}"
            )

        try:
            context = coerce_context(context)
        except ValidationError as e:
            error = e.errors()[0]
            field_name = ".".join(str(part) for part in error["loc"])
            return self._invalid(f"Invalid context for {self.accessory}: {field_name}: {error['msg']}")
        except TypeError as e:
            return self._invalid(f"Invalid context for {self.accessory}: {e}")

        # Step 2: Classification
        if not self.classifier.is_applicable(model, context):
            message = f"{self.accessory} not required for {normalize_model(model)}"
            logger.info(message)
            return SelectionOutcome(
                status=OutcomeStatus.NOT_APPLICABLE,
                success=True,
                requires_accessory=False,
                message=message,
            )

        # Step 3: Candidate generation
        candidates = self.candidate_generator.generate(model, applicable=True, context=context)

        # Step 4: Matching
        hits = self.match_candidates(candidates, items)

        # Step 5: Ranking
        return self.ranker.resolve(self.accessory, hits, candidates, items)

    def match_candidates(
        self, candidates: Sequence[Candidate], catalog: Sequence[CatalogItem]
    ) -> list[MatchHit]:
        """Bind every candidate against the catalog in matcher priority order."""
        hits: list[MatchHit] = []
        for index, candidate in enumerate(candidates):
            item = self.exact_matcher.find(candidate.model, catalog)
            if item is not None:
                hits.append(
                    MatchHit(
                        candidate=candidate,
                        candidate_index=index,
                        item=item,
                        match_type=MatchType.EXACT,
                        info=f"Exact match for {candidate.model}; {candidate.match_info}",
                    )
                )
                continue

            fuzzy = self.fuzzy_matcher.match(candidate.model, catalog)
            if fuzzy:
                hits.extend(
                    MatchHit(
                        candidate=candidate,
                        candidate_index=index,
                        item=m.item,
                        match_type=MatchType.FUZZY,
                        similarity=m.similarity,
                        info=f"Fuzzy match for {candidate.model} (similarity {m.similarity:g})",
                    )
                    for m in fuzzy
                )
                continue

            for alt in self.alternative_resolver.resolve(candidate.model, catalog):
                hits.append(
                    MatchHit(
                        candidate=candidate,
                        candidate_index=index,
                        item=alt.item,
                        match_type=MatchType.ALTERNATIVE,
                        similarity=alt.similarity,
                        info=f"Alternative format {alt.format_name} of {candidate.model}: {alt.rendering}",
                    )
                )

        logger.debug(f"{self.accessory}: {len(hits)} hits for {len(candidates)} candidates")
        return hits

    def _invalid(self, message: str) -> SelectionOutcome:
        logger.warning(message)
        return SelectionOutcome(
            status=OutcomeStatus.INVALID_INPUT,
            success=False,
            requires_accessory=False,
            message=message,
        )


def get_selector(
    kind: AccessoryKind,
    repository: RuleRepository | None = None,
    config: AppConfig | None = None,
) -> AccessorySelector:
    """Build a selector for an accessory class from the rule repository."""
    repository = repository or get_repository()
    return AccessorySelector(repository.get(kind), config)


def select_standby_pump(
    gearbox_model: Any,
    catalog: Any,
    context: SelectionContext | None = None,
    repository: RuleRepository | None = None,
) -> SelectionOutcome:
    """Convenience function: standby pump for a gearbox model.

    Args:
        gearbox_model: Gearbox model string (e.g. ``GW39.41``)
        catalog: Pump catalog
        context: Optional context (rated power for unknown series)
        repository: Rule repository (default: packaged tables)

    Returns:
        SelectionOutcome
    """
    return get_selector(AccessoryKind.STANDBY_PUMP, repository).select(gearbox_model, catalog, context)


def select_flexible_coupling(
    gearbox_model: Any,
    catalog: Any,
    context: SelectionContext | None = None,
    repository: RuleRepository | None = None,
) -> SelectionOutcome:
    """Convenience function: highly flexible coupling for a gearbox model."""
    return get_selector(AccessoryKind.FLEXIBLE_COUPLING, repository).select(
        gearbox_model, catalog, context
    )
