"""Rule table loading for the Rule Repository.

Loads YAML rule tables that map gearbox series to accessory target models
and turns them into frozen rule objects. Any structural problem aborts the
load with RuleTableError; a half-loaded table is never returned.
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Any

import yaml

from gearmatch.rules.models import (
    AlternateTarget,
    AlternativeFormat,
    ApplicabilityTable,
    MatchingRule,
    NumberCoding,
    NumericRange,
    RuleSet,
    SeriesApplicability,
    SeriesRules,
)

logger = logging.getLogger(__name__)

_SERIES_PREFIX = re.compile(r"^[A-Z]+$")
_BUCKET_SPAN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*$")

# Alternate i is scored base - (5 + 3*i): base-5, base-8, base-11, ...
ALTERNATE_FIRST_OFFSET = 5.0
ALTERNATE_STEP_OFFSET = 3.0


class RuleTableError(ValueError):
    """Raised when a rule table is missing, malformed or inconsistent."""


def load_rule_set(path: Path) -> RuleSet:
    """Load and validate one rule table from a YAML file.

    Args:
        path: Path to a ``*_rules.yaml`` file

    Returns:
        Immutable RuleSet

    Raises:
        RuleTableError: If the file is missing, not valid YAML, or inconsistent
    """
    if not path.exists():
        raise RuleTableError(f"Rule table not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise RuleTableError(f"Invalid YAML in {path}: {e}") from e

    rule_set = load_rule_set_from_mapping(data, source=str(path))
    logger.info(
        f"Loaded {sum(1 for _ in rule_set.iter_rules())} {rule_set.accessory} rules "
        f"across {len(rule_set.series)} series from {path}"
    )
    return rule_set


def load_rule_set_from_mapping(data: Any, source: str = "<mapping>") -> RuleSet:
    """Build a RuleSet from an already-parsed mapping.

    Useful for synthetic rule sets in tests and for tables kept outside files.

    Raises:
        RuleTableError: If the mapping is structurally invalid
    """
    if not isinstance(data, dict):
        raise RuleTableError(f"{source}: expected a mapping at top level, got {type(data).__name__}")

    accessory = _required_str(data, "accessory", source)
    default_target = _required_str(data, "default_target", source)

    applicability = _parse_applicability(data.get("applicability") or {}, source)

    series_data = data.get("series") or {}
    if not isinstance(series_data, dict):
        raise RuleTableError(f"{source}: 'series' must be a mapping of prefix to rules")
    series = tuple(
        _parse_series(str(prefix), body, f"{source}:series.{prefix}")
        for prefix, body in series_data.items()
    )

    variants = _parse_variants(data.get("variants") or {}, source)
    formats = tuple(
        _parse_alternative_format(item, f"{source}:alternative_formats[{idx}]")
        for idx, item in enumerate(data.get("alternative_formats") or [])
    )

    return RuleSet(
        accessory=accessory,
        default_target=default_target,
        applicability=applicability,
        series=series,
        variants=variants,
        alternative_formats=formats,
        description=str(data.get("description", "")).strip(),
    )


def _required_str(data: dict, key: str, source: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise RuleTableError(f"{source}: '{key}' is required and must be a non-empty string")
    return value.strip()


def _check_prefix(prefix: str, source: str) -> str:
    normalized = prefix.strip().upper()
    if not _SERIES_PREFIX.match(normalized):
        raise RuleTableError(f"{source}: series prefix {prefix!r} must be alphabetic")
    return normalized


def _to_number(value: Any, source: str) -> float:
    if value is None:
        return math.inf
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise RuleTableError(f"{source}: {value!r} is not a number") from e


def _parse_range(value: Any, source: str) -> NumericRange:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise RuleTableError(f"{source}: range must be a [low, high] pair, got {value!r}")
    low = _to_number(value[0], source)
    high = _to_number(value[1], source)
    if math.isinf(low):
        raise RuleTableError(f"{source}: range low bound is required")
    try:
        return NumericRange(low, high)
    except ValueError as e:
        raise RuleTableError(f"{source}: {e}") from e


def _parse_bucket(value: Any, source: str) -> tuple[NumericRange, ...]:
    items = value if isinstance(value, list) else [value]
    intervals = []
    for item in items:
        if isinstance(item, str):
            span = _BUCKET_SPAN.match(item)
            if span:
                intervals.append(_parse_range([span.group(1), span.group(2)], source))
                continue
        number = _to_number(item, source)
        if math.isinf(number):
            raise RuleTableError(f"{source}: bucket values must be numbers or 'low-high' spans")
        intervals.append(NumericRange(number, number))
    if not intervals:
        raise RuleTableError(f"{source}: bucket is empty")
    return tuple(intervals)


def _parse_score(value: Any, source: str, default: float = 100.0) -> float:
    if value is None:
        return default
    score = _to_number(value, source)
    if not 0 <= score <= 100:
        raise RuleTableError(f"{source}: score {score:g} outside [0, 100]")
    return score


def _parse_series(prefix: str, body: Any, source: str) -> SeriesRules:
    prefix = _check_prefix(prefix, source)
    if not isinstance(body, dict):
        raise RuleTableError(f"{source}: series body must be a mapping with 'coding' and 'rules'")

    try:
        coding = NumberCoding(str(body.get("coding", "integer")).lower())
    except ValueError as e:
        raise RuleTableError(f"{source}: unknown coding {body.get('coding')!r}") from e

    raw_rules = body.get("rules")
    if not isinstance(raw_rules, list) or not raw_rules:
        raise RuleTableError(f"{source}: 'rules' must be a non-empty list")

    rules = tuple(
        _parse_rule(prefix, item, f"{source}.rules[{idx}]") for idx, item in enumerate(raw_rules)
    )
    return SeriesRules(prefix=prefix, coding=coding, rules=rules)


def _parse_rule(prefix: str, item: Any, source: str) -> MatchingRule:
    if not isinstance(item, dict):
        raise RuleTableError(f"{source}: rule must be a mapping")

    has_range = "range" in item
    has_bucket = "bucket" in item
    if has_range == has_bucket:
        raise RuleTableError(f"{source}: rule needs exactly one of 'range' or 'bucket'")

    target = _required_str(item, "target", source)
    score = _parse_score(item.get("score"), source)

    alternates = []
    for idx, alt in enumerate(item.get("alternates") or []):
        if isinstance(alt, str):
            alt = {"model": alt}
        if not isinstance(alt, dict):
            raise RuleTableError(f"{source}.alternates[{idx}]: expected model string or mapping")
        model = _required_str(alt, "model", f"{source}.alternates[{idx}]")
        offset = alt.get("offset")
        offset = (
            ALTERNATE_FIRST_OFFSET + ALTERNATE_STEP_OFFSET * idx
            if offset is None
            else _to_number(offset, source)
        )
        if offset < 0 or offset > score:
            raise RuleTableError(f"{source}.alternates[{idx}]: offset {offset:g} out of range")
        alternates.append(AlternateTarget(model=model, offset=offset))

    suffix = item.get("suffix")
    return MatchingRule(
        series=prefix,
        target=target,
        range=_parse_range(item["range"], source) if has_range else None,
        bucket=_parse_bucket(item["bucket"], source) if has_bucket else (),
        suffix=str(suffix).upper() if suffix else None,
        score=score,
        alternates=tuple(alternates),
        label=str(item.get("label", "")),
    )


def _parse_applicability(data: Any, source: str) -> ApplicabilityTable:
    if not isinstance(data, dict):
        raise RuleTableError(f"{source}: 'applicability' must be a mapping")

    entries = []
    for prefix, body in (data.get("series") or {}).items():
        where = f"{source}:applicability.{prefix}"
        prefix = _check_prefix(str(prefix), where)
        if body is True or (isinstance(body, dict) and body.get("always") is True):
            entries.append(SeriesApplicability(prefix=prefix, always=True))
            continue
        if not isinstance(body, dict) or not isinstance(body.get("ranges"), list):
            raise RuleTableError(f"{where}: expected 'always: true' or a 'ranges' list")
        ranges = tuple(_parse_range(r, where) for r in body["ranges"])
        entries.append(SeriesApplicability(prefix=prefix, ranges=ranges))

    threshold = data.get("power_threshold_kw")
    return ApplicabilityTable(
        series=tuple(entries),
        power_threshold_kw=None if threshold is None else _to_number(threshold, source),
        default=bool(data.get("default", False)),
    )


def _parse_variants(data: Any, source: str) -> dict[str, dict[str, str]]:
    if not isinstance(data, dict):
        raise RuleTableError(f"{source}: 'variants' must be a mapping of flag to substitutions")
    variants: dict[str, dict[str, str]] = {}
    for flag, mapping in data.items():
        if not isinstance(mapping, dict):
            raise RuleTableError(f"{source}:variants.{flag}: expected a model-to-model mapping")
        variants[str(flag)] = {str(k).upper(): str(v) for k, v in mapping.items()}
    return variants


def _parse_alternative_format(item: Any, source: str) -> AlternativeFormat:
    if not isinstance(item, dict):
        raise RuleTableError(f"{source}: expected a mapping with 'pattern' and 'templates'")

    raw_pattern = _required_str(item, "pattern", source)
    try:
        pattern = re.compile(raw_pattern, re.IGNORECASE)
    except re.error as e:
        raise RuleTableError(f"{source}: invalid pattern {raw_pattern!r}: {e}") from e

    templates = item.get("templates")
    if not isinstance(templates, list) or not templates:
        raise RuleTableError(f"{source}: 'templates' must be a non-empty list")

    try:
        return AlternativeFormat(
            name=str(item.get("name", raw_pattern)),
            pattern=pattern,
            templates=tuple(str(t) for t in templates),
        )
    except ValueError as e:
        raise RuleTableError(f"{source}: {e}") from e
