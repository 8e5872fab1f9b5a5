"""Alternative-Format Resolver.

Catalogs are maintained by people with inconsistent spelling conventions
(``2CY-7.5/2.5D`` vs ``2CY7.5/2.5`` vs ``2CY 7.5-2.5``). Each known
convention is an ``AlternativeFormat`` in the rule set; renderings are
retried through the exact matcher.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from gearmatch.config import MatchingConfig, get_config
from gearmatch.matching.exact_matcher import ExactMatcher
from gearmatch.matching.model_parser import compact_model, normalize_model
from gearmatch.models import CatalogItem
from gearmatch.rules.models import AlternativeFormat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlternativeHit:
    """Catalog item reached through an alternate spelling."""

    item: CatalogItem
    rendering: str
    format_name: str
    similarity: float


class AlternativeFormatResolver:
    """Regenerates alternate spellings of a candidate and retries exact lookup."""

    def __init__(
        self,
        formats: Sequence[AlternativeFormat],
        config: MatchingConfig | None = None,
        exact_matcher: ExactMatcher | None = None,
    ):
        """Initialize resolver.

        Args:
            formats: Ordered alternative formats from the rule set
            config: Matching config (alternative_format_score)
            exact_matcher: Matcher used for each rendering
        """
        self.formats = tuple(formats)
        self.config = config or get_config().matching
        self.exact_matcher = exact_matcher or ExactMatcher()

    def renderings(self, model: str) -> list[tuple[str, str]]:
        """Alternate spellings of ``model`` as (format name, rendering) pairs.

        The model itself and duplicates (after compaction) are dropped;
        order follows format order, then template order.
        """
        normalized = normalize_model(model)
        seen = {compact_model(normalized)}
        results = []
        for fmt in self.formats:
            for rendering in fmt.render(normalized):
                key = compact_model(rendering)
                if not key or key in seen:
                    continue
                seen.add(key)
                results.append((fmt.name, rendering))
        return results

    def resolve(self, model: str, catalog: Sequence[CatalogItem]) -> list[AlternativeHit]:
        """Resolve ``model`` through its alternate spellings.

        Args:
            model: Candidate model string
            catalog: Catalog snapshot

        Returns:
            One hit per distinct catalog item reached, in rendering order
        """
        hits = []
        found = set()
        for format_name, rendering in self.renderings(model):
            item = self.exact_matcher.find(rendering, catalog)
            if item is None:
                continue
            key = compact_model(item.model)
            if key in found:
                continue
            found.add(key)
            logger.debug(f"Alternative format {format_name}: {model} -> {rendering} found {item.model}")
            hits.append(
                AlternativeHit(
                    item=item,
                    rendering=rendering,
                    format_name=format_name,
                    similarity=float(self.config.alternative_format_score),
                )
            )
        return hits
