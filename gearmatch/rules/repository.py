"""Rule Repository: registry of rule sets per accessory class.

Loaded once at process start and never mutated afterwards. Callers that
want synthetic rules (tests, what-if tooling) build their own repository
and inject it into the selectors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType

from gearmatch.config import get_config
from gearmatch.models import AccessoryKind
from gearmatch.rules.loader import RuleTableError, load_rule_set
from gearmatch.rules.models import RuleSet

logger = logging.getLogger(__name__)

RULE_FILES = {
    AccessoryKind.STANDBY_PUMP: "standby_pump_rules.yaml",
    AccessoryKind.FLEXIBLE_COUPLING: "flexible_coupling_rules.yaml",
}


class RuleRepository:
    """Immutable mapping of accessory kind to RuleSet."""

    def __init__(self, rule_sets: Mapping[AccessoryKind, RuleSet] | Iterable[RuleSet]):
        """Initialize repository.

        Args:
            rule_sets: Mapping of kind to RuleSet, or RuleSets keyed by their
                ``accessory`` name

        Raises:
            RuleTableError: If a rule set names an unknown accessory class
        """
        if isinstance(rule_sets, Mapping):
            items = dict(rule_sets)
        else:
            items = {}
            for rule_set in rule_sets:
                try:
                    kind = AccessoryKind(rule_set.accessory)
                except ValueError as e:
                    raise RuleTableError(f"Unknown accessory class {rule_set.accessory!r}") from e
                items[kind] = rule_set
        self._rule_sets = MappingProxyType(items)

    def get(self, kind: AccessoryKind) -> RuleSet:
        """Rule set for an accessory class.

        Raises:
            KeyError: If no rule set is registered for ``kind``
        """
        try:
            return self._rule_sets[kind]
        except KeyError:
            raise KeyError(f"No rule set registered for {kind.value}") from None

    def __contains__(self, kind: object) -> bool:
        return kind in self._rule_sets

    @property
    def kinds(self) -> list[AccessoryKind]:
        return list(self._rule_sets)


def load_repository(rules_dir: Path | None = None) -> RuleRepository:
    """Load every known rule table.

    Args:
        rules_dir: Directory holding the YAML tables; defaults to the tables
            packaged with gearmatch

    Raises:
        RuleTableError: If any table is missing or corrupt
    """
    rule_sets = {}
    for kind, filename in RULE_FILES.items():
        if rules_dir is not None:
            rule_sets[kind] = load_rule_set(Path(rules_dir) / filename)
        else:
            with resources.as_file(resources.files("gearmatch.data") / filename) as path:
                rule_sets[kind] = load_rule_set(path)
    return RuleRepository(rule_sets)


# Singleton instance (lazy-loaded)
_repository: RuleRepository | None = None


def get_repository() -> RuleRepository:
    """Get or create the process-wide RuleRepository from configuration."""
    global _repository
    if _repository is None:
        _repository = load_repository(get_config().rules_dir)
    return _repository
