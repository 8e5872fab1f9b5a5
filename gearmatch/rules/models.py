"""Immutable rule objects for the Rule Repository.

Rules are frozen dataclasses built once by the loader. Iteration order of
every tuple here is the documented matching order: series in document
order, rules in document order, first match wins.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from string import Formatter


class NumberCoding(str, Enum):
    """How the series number of a primary model is encoded."""

    DECIMAL = "decimal"  # GW39.41 -> 39.41
    INTEGER = "integer"  # HC1200 -> 1200


@dataclass(frozen=True)
class NumericRange:
    """Inclusive numeric interval; ``high`` may be open (infinity)."""

    low: float
    high: float = math.inf

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError(f"range low {self.low} exceeds high {self.high}")

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    def describe(self) -> str:
        if math.isinf(self.high):
            return f">= {self.low:g}"
        if self.low == self.high:
            return f"{self.low:g}"
        return f"{self.low:g}-{self.high:g}"


@dataclass(frozen=True)
class AlternateTarget:
    """Alternate target model scored ``offset`` points below the rule."""

    model: str
    offset: float


@dataclass(frozen=True)
class MatchingRule:
    """One row of a series rule table.

    Exactly one of ``range`` (continuous) or ``bucket`` (discrete values or
    intervals) selects the primary models this rule covers.
    """

    series: str
    target: str
    range: NumericRange | None = None
    bucket: tuple[NumericRange, ...] = ()
    suffix: str | None = None
    score: float = 100.0
    alternates: tuple[AlternateTarget, ...] = ()
    label: str = ""

    def matches(self, number: float, suffix: str = "") -> bool:
        """Check whether a parsed series number (and suffix) falls under this rule."""
        if self.suffix is not None and not suffix.startswith(self.suffix):
            return False
        if self.range is not None:
            return self.range.contains(number)
        return any(interval.contains(number) for interval in self.bucket)

    def describe(self) -> str:
        """Human-readable coverage, used in candidate match info."""
        if self.range is not None:
            coverage = f"range {self.series}{self.range.low:g} - {self.series}{self.range.high:g}"
        else:
            coverage = "series " + ", ".join(i.describe() for i in self.bucket)
        if self.suffix:
            coverage += f" ({self.suffix})"
        return coverage


@dataclass(frozen=True)
class SeriesRules:
    """Ordered rules for one series prefix."""

    prefix: str
    coding: NumberCoding
    rules: tuple[MatchingRule, ...]


@dataclass(frozen=True)
class SeriesApplicability:
    """Applicability of an accessory class to one series prefix."""

    prefix: str
    always: bool = False
    ranges: tuple[NumericRange, ...] = ()

    def applies(self, number: float | None) -> bool:
        if self.always:
            return True
        if number is None:
            return False
        return any(r.contains(number) for r in self.ranges)


@dataclass(frozen=True)
class ApplicabilityTable:
    """Requirement Classifier table."""

    series: tuple[SeriesApplicability, ...] = ()
    power_threshold_kw: float | None = None
    default: bool = False

    def for_prefix(self, prefix: str) -> SeriesApplicability | None:
        for entry in self.series:
            if entry.prefix == prefix:
                return entry
        return None


_FORMATTER = Formatter()


@dataclass(frozen=True)
class AlternativeFormat:
    """Pattern plus string templates over its named groups.

    Templates only reference groups the pattern defines, as plain
    ``{group}`` fields without conversions or format specs (checked at
    construction), and unmatched optional groups render as an empty string,
    so rendering never fails.
    """

    name: str
    pattern: re.Pattern[str]
    templates: tuple[str, ...]

    def __post_init__(self) -> None:
        groups = set(self.pattern.groupindex)
        for template in self.templates:
            for _, field_name, format_spec, conversion in _FORMATTER.parse(template):
                if field_name is None:
                    continue
                if format_spec or conversion:
                    raise ValueError(
                        f"template {template!r} may not use a conversion or format spec "
                        f"on group {field_name!r}"
                    )
                if field_name not in groups:
                    raise ValueError(
                        f"template {template!r} references unknown group {field_name!r} "
                        f"in pattern {self.pattern.pattern!r}"
                    )

    def render(self, model: str) -> list[str]:
        """Generate alternate spellings of ``model`` (empty if pattern misses)."""
        match = self.pattern.search(model)
        if not match:
            return []
        groups = {name: value or "" for name, value in match.groupdict().items()}
        return [template.format(**groups) for template in self.templates]


@dataclass(frozen=True)
class RuleSet:
    """Complete, immutable rule configuration for one accessory class."""

    accessory: str
    default_target: str
    applicability: ApplicabilityTable
    series: tuple[SeriesRules, ...] = ()
    variants: dict[str, dict[str, str]] = field(default_factory=dict)
    alternative_formats: tuple[AlternativeFormat, ...] = ()
    description: str = ""

    def rules_for(self, prefix: str) -> SeriesRules | None:
        """Rules for a series prefix, or None when the series is unknown."""
        for entry in self.series:
            if entry.prefix == prefix:
                return entry
        return None

    def iter_rules(self):
        """Yield every rule in documented matching order."""
        for entry in self.series:
            yield from entry.rules

    @property
    def prefixes(self) -> list[str]:
        return [entry.prefix for entry in self.series]
