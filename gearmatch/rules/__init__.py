"""Rule Repository: immutable per-series matching rules loaded from YAML."""

from gearmatch.rules.loader import RuleTableError, load_rule_set, load_rule_set_from_mapping
from gearmatch.rules.models import MatchingRule, NumberCoding, NumericRange, RuleSet
from gearmatch.rules.repository import RuleRepository, get_repository, load_repository

__all__ = [
    "MatchingRule",
    "NumberCoding",
    "NumericRange",
    "RuleRepository",
    "RuleSet",
    "RuleTableError",
    "get_repository",
    "load_repository",
    "load_rule_set",
    "load_rule_set_from_mapping",
]
