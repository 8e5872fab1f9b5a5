"""Exact matching: normalized full-string equality against the catalog."""

from __future__ import annotations

from collections.abc import Sequence

from gearmatch.matching.model_parser import compact_model
from gearmatch.models import CatalogItem


class ExactMatcher:
    """Case- and whitespace-insensitive full-model equality (no partial matches)."""

    def find(self, target_model: str, catalog: Sequence[CatalogItem]) -> CatalogItem | None:
        """Find the first catalog item whose model equals ``target_model``.

        Args:
            target_model: Candidate model string
            catalog: Catalog snapshot (read-only)

        Returns:
            Matching CatalogItem, or None
        """
        target = compact_model(target_model)
        if not target:
            return None
        for item in catalog:
            if compact_model(item.model) == target:
                return item
        return None


def find_exact(target_model: str, catalog: Sequence[CatalogItem]) -> CatalogItem | None:
    """Convenience function: exact lookup.

    Args:
        target_model: Candidate model string
        catalog: Catalog snapshot

    Returns:
        Matching CatalogItem, or None
    """
    return ExactMatcher().find(target_model, catalog)
