"""gearmatch configuration management.

Loads configuration from environment variables with sensible defaults.
The fuzzy-matching constants are empirical; they are kept here as named,
tunable values rather than literals inside the matchers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass(frozen=True)
class MatchingConfig:
    """Matching thresholds and scoring bands."""

    fuzzy_min_score: int = 60
    family_exact_score: int = 50
    family_partial_score: int = 30
    capacity_exact_score: int = 50
    # (ratio lower bound, points) evaluated top-down, ratio = min/max
    capacity_ratio_tiers: tuple[tuple[float, int], ...] = (
        (0.9, 40),
        (0.7, 30),
        (0.5, 20),
    )
    capacity_floor_score: int = 10
    family_mismatch_penalty: int = 10
    alternative_format_score: int = 90
    low_confidence_score: int = 70


@dataclass(frozen=True)
class SelectionConfig:
    """Candidate generation and outcome shaping."""

    default_candidate_score: int = 60
    max_alternatives: int = 4
    closest_models_in_hint: int = 3


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""

    log_level: str = "INFO"
    log_format: str = "text"  # json or text
    rules_dir: Path | None = None  # None = packaged rule tables

    matching: MatchingConfig = field(default_factory=MatchingConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Optional (with defaults):
        - LOG_LEVEL, LOG_FORMAT
        - GEARMATCH_RULES_DIR: directory holding *_rules.yaml overrides
        - FUZZY_* / ALTERNATIVE_FORMAT_SCORE / LOW_CONFIDENCE_SCORE
        - DEFAULT_CANDIDATE_SCORE / MAX_ALTERNATIVES

        Raises:
            ValueError: If a numeric variable cannot be parsed or is out of range
        """
        rules_dir = os.getenv("GEARMATCH_RULES_DIR")

        matching = MatchingConfig(
            fuzzy_min_score=_int_env("FUZZY_MIN_SCORE", 60),
            family_exact_score=_int_env("FUZZY_FAMILY_EXACT_SCORE", 50),
            family_partial_score=_int_env("FUZZY_FAMILY_PARTIAL_SCORE", 30),
            capacity_exact_score=_int_env("FUZZY_CAPACITY_EXACT_SCORE", 50),
            family_mismatch_penalty=_int_env("FUZZY_FAMILY_MISMATCH_PENALTY", 10),
            alternative_format_score=_int_env("ALTERNATIVE_FORMAT_SCORE", 90),
            low_confidence_score=_int_env("LOW_CONFIDENCE_SCORE", 70),
        )
        selection = SelectionConfig(
            default_candidate_score=_int_env("DEFAULT_CANDIDATE_SCORE", 60),
            max_alternatives=_int_env("MAX_ALTERNATIVES", 4),
        )

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            rules_dir=Path(rules_dir) if rules_dir else None,
            matching=matching,
            selection=selection,
        )


def _int_env(name: str, default: int, low: int = 0, high: int = 100) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Returns:
        AppConfig: Application configuration
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config
