"""Tests for the Requirement Classifier."""

from __future__ import annotations

import pytest

from gearmatch.matching.classifier import RequirementClassifier
from gearmatch.models import AccessoryKind, SelectionContext


@pytest.fixture
def pump_classifier(repository) -> RequirementClassifier:
    return RequirementClassifier(repository.get(AccessoryKind.STANDBY_PUMP))


@pytest.fixture
def coupling_classifier(repository) -> RequirementClassifier:
    return RequirementClassifier(repository.get(AccessoryKind.FLEXIBLE_COUPLING))


class TestStandbyPumpApplicability:
    """Test series-range rules of the standby pump table."""

    @pytest.mark.parametrize("model", ["GW39.41", "GWC28.30", "GC300", "gw63.71"])
    def test_always_series(self, pump_classifier, model):
        assert pump_classifier.is_applicable(model) is True

    @pytest.mark.parametrize(
        "model, expected",
        [
            ("HC1000", True),
            ("HC1200/1", True),
            ("HC1300", False),
            ("HC2000", True),
            ("HC2700", True),
            ("HC400", False),
        ],
    )
    def test_hc_ranges(self, pump_classifier, model, expected):
        assert pump_classifier.is_applicable(model) is expected

    @pytest.mark.parametrize(
        "model, expected",
        [("DT180", True), ("DT800", False), ("DT2400", True), ("DT100", False)],
    )
    def test_dt_ranges(self, pump_classifier, model, expected):
        assert pump_classifier.is_applicable(model) is expected

    def test_hcm_from_300(self, pump_classifier):
        assert pump_classifier.is_applicable("HCM300") is True
        assert pump_classifier.is_applicable("HCM1600") is True
        assert pump_classifier.is_applicable("HCM250") is False

    def test_hcq_from_300(self, pump_classifier):
        assert pump_classifier.is_applicable("HCQ400") is True

    @pytest.mark.parametrize("model", ["HCD1000", "HCD800", "HCT1100"])
    def test_hcd_hct_never_even_at_high_power(self, pump_classifier, model):
        """Test HCD/HCT do not fall through to the power threshold."""
        assert pump_classifier.is_applicable(model, SelectionContext(power=700)) is False


class TestFallbacks:
    """Test unknown series and malformed input."""

    def test_unknown_series_high_power(self, pump_classifier):
        """Test power >= 600 kW makes unknown series applicable."""
        context = SelectionContext(power=650)

        assert pump_classifier.is_applicable("ZZ9999", context) is True

    def test_unknown_series_threshold_inclusive(self, pump_classifier):
        assert pump_classifier.is_applicable("ZZ1", SelectionContext(power=600)) is True

    def test_unknown_series_low_power(self, pump_classifier):
        assert pump_classifier.is_applicable("ZZ9999", SelectionContext(power=300)) is False

    def test_unknown_series_no_context(self, pump_classifier):
        assert pump_classifier.is_applicable("ZZ9999") is False

    @pytest.mark.parametrize("model", ["", "   ", None, 42, "12345", "???"])
    def test_malformed_never_raises(self, pump_classifier, model):
        """Test malformed models resolve to a boolean."""
        assert pump_classifier.is_applicable(model) is False

    def test_empty_model_with_high_power(self, pump_classifier):
        assert pump_classifier.is_applicable("", SelectionContext(power=5000)) is False


class TestCouplingApplicability:
    """Test couplings are always applicable."""

    @pytest.mark.parametrize("model", ["HC1200", "GWC45.49", "ZZ1", "12345"])
    def test_default_true(self, coupling_classifier, model):
        assert coupling_classifier.is_applicable(model) is True

    def test_empty_still_false(self, coupling_classifier):
        assert coupling_classifier.is_applicable("") is False
