"""Helper utilities for model-string normalization and parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass

from gearmatch.rules.models import NumberCoding

_WHITESPACE = re.compile(r"\s+")
_SERIES = re.compile(r"^(?P<prefix>[A-Z]+)")
_NUMBER = re.compile(r"(?P<number>\d+(?:\.\d+)?)")
_SEPARATORS = re.compile(r"[-/\s]+")
_FAMILY = re.compile(r"^(?P<family>\d*[A-Z]+)")


def normalize_model(model: str | None) -> str:
    """Uppercase and trim a model string; None becomes ''."""
    if not model:
        return ""
    return str(model).strip().upper()


def compact_model(model: str | None) -> str:
    """Normalization used for equality: uppercase, all whitespace removed."""
    return _WHITESPACE.sub("", normalize_model(model))


@dataclass(frozen=True)
class ParsedModel:
    """Series prefix, series number and trailing text of a primary model."""

    raw: str
    prefix: str | None
    number: float | None
    suffix: str = ""


def parse_primary_model(model: str | None, coding: NumberCoding = NumberCoding.INTEGER) -> ParsedModel:
    """Split a primary model like ``GW39.41`` or ``HC1200/1`` into its parts.

    ``coding`` decides whether a fractional part belongs to the series number
    (decimal-coded series) or is dropped (integer-coded series).
    """
    normalized = normalize_model(model)
    series = _SERIES.match(normalized)
    if not series:
        return ParsedModel(raw=normalized, prefix=None, number=None)

    prefix = series.group("prefix")
    rest = normalized[series.end():]
    number_match = _NUMBER.match(rest.lstrip())
    if not number_match:
        return ParsedModel(raw=normalized, prefix=prefix, number=None, suffix=rest)

    text = number_match.group("number")
    suffix = rest.lstrip()[number_match.end():]
    if coding == NumberCoding.DECIMAL:
        number = float(text)
    else:
        integer, _, fraction = text.partition(".")
        number = float(int(integer))
        if fraction:
            suffix = "." + fraction + suffix
    return ParsedModel(raw=normalized, prefix=prefix, number=number, suffix=suffix.strip())


@dataclass(frozen=True)
class ModelTokens:
    """Family code and capacity token used by fuzzy matching."""

    family: str
    capacity: float | None


def tokenize_model(model: str | None) -> ModelTokens | None:
    """Extract the family code and leading capacity from a catalog-style model.

    ``2CY-7.5/2.5D`` -> (2CY, 7.5); ``T 7.5/2.5`` -> (T, 7.5);
    ``HGTHB6.3A`` -> (HGTHB, 6.3). Returns None when no family code exists.
    """
    tokens = [t for t in _SEPARATORS.split(normalize_model(model)) if t]
    if not tokens:
        return None

    family_match = _FAMILY.match(tokens[0])
    if not family_match:
        return None
    family = family_match.group("family")

    remainder = [tokens[0][family_match.end():]] + tokens[1:]
    capacity = None
    for token in remainder:
        number = _NUMBER.match(token)
        if number:
            capacity = float(number.group("number"))
            break
        if token:
            # Non-numeric token before any number: no leading capacity
            break
    return ModelTokens(family=family, capacity=capacity)
