"""Unit tests for gearmatch configuration management.

Tests AppConfig loading from environment variables, validation, and defaults.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gearmatch.config import AppConfig, MatchingConfig, SelectionConfig


class TestAppConfig:
    """Test AppConfig creation and validation."""

    def test_from_env_defaults(self, monkeypatch):
        """Test defaults when no variables are set."""
        for name in ("LOG_LEVEL", "LOG_FORMAT", "GEARMATCH_RULES_DIR", "FUZZY_MIN_SCORE"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.rules_dir is None
        assert config.matching.fuzzy_min_score == 60

    def test_from_env_with_custom_log_level(self, monkeypatch):
        """Test custom log level."""
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = AppConfig.from_env()

        assert config.log_level == "DEBUG"

    def test_from_env_rules_dir(self, monkeypatch, tmp_path: Path):
        """Test rule table override directory."""
        monkeypatch.setenv("GEARMATCH_RULES_DIR", str(tmp_path))

        config = AppConfig.from_env()

        assert config.rules_dir == tmp_path

    def test_from_env_matching_overrides(self, monkeypatch):
        """Test fuzzy constants are tunable."""
        monkeypatch.setenv("FUZZY_MIN_SCORE", "70")
        monkeypatch.setenv("FUZZY_FAMILY_PARTIAL_SCORE", "25")
        monkeypatch.setenv("ALTERNATIVE_FORMAT_SCORE", "85")

        config = AppConfig.from_env()

        assert config.matching.fuzzy_min_score == 70
        assert config.matching.family_partial_score == 25
        assert config.matching.alternative_format_score == 85

    def test_from_env_selection_overrides(self, monkeypatch):
        """Test selection settings."""
        monkeypatch.setenv("DEFAULT_CANDIDATE_SCORE", "55")
        monkeypatch.setenv("MAX_ALTERNATIVES", "2")

        config = AppConfig.from_env()

        assert config.selection.default_candidate_score == 55
        assert config.selection.max_alternatives == 2

    def test_from_env_rejects_non_integer(self, monkeypatch):
        """Test invalid numeric values fail at load."""
        monkeypatch.setenv("FUZZY_MIN_SCORE", "sixty")

        with pytest.raises(ValueError) as exc_info:
            AppConfig.from_env()

        assert "FUZZY_MIN_SCORE" in str(exc_info.value)

    def test_from_env_rejects_out_of_range(self, monkeypatch):
        """Test scores outside 0-100 fail at load."""
        monkeypatch.setenv("LOW_CONFIDENCE_SCORE", "150")

        with pytest.raises(ValueError):
            AppConfig.from_env()


class TestMatchingConfig:
    """Test MatchingConfig defaults."""

    def test_default_bands(self):
        """Test empirical fuzzy bands."""
        config = MatchingConfig()

        assert config.fuzzy_min_score == 60
        assert config.family_exact_score == 50
        assert config.family_partial_score == 30
        assert config.capacity_exact_score == 50
        assert config.capacity_ratio_tiers == ((0.9, 40), (0.7, 30), (0.5, 20))
        assert config.capacity_floor_score == 10
        assert config.family_mismatch_penalty == 10

    def test_frozen(self):
        """Test config is immutable."""
        config = MatchingConfig()

        with pytest.raises(AttributeError):
            config.fuzzy_min_score = 10


class TestSelectionConfig:
    """Test SelectionConfig defaults."""

    def test_defaults(self):
        config = SelectionConfig()

        assert config.default_candidate_score == 60
        assert config.max_alternatives == 4
        assert config.closest_models_in_hint == 3
