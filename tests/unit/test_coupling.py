"""Tests for coupling torque requirement and adequacy checks."""

from __future__ import annotations

import pytest

from gearmatch.models import CatalogItem, MatchType, OutcomeStatus, SelectionContext
from gearmatch.selection.coupling import (
    CouplingScorer,
    check_coupling,
    coupling_torque_knm,
    engine_torque_for,
    has_cover_marking,
    normalized_scores,
    rated_couplings,
    recommendation_score,
    required_coupling_torque,
    select_coupling,
    speed_margin_score,
    temperature_factor,
    torque_margin_score,
    work_condition_factor,
)


class TestFactors:
    """Test work-condition and temperature factors."""

    @pytest.mark.parametrize(
        "work_condition, expected",
        [
            ("I", 1.2),
            ("II", 1.5),
            ("III", 1.8),
            ("IV", 2.2),
            ("V", 2.5),
            ("iv", 2.2),
            ("II: slight torque variation", 1.5),
            ("IV类", 2.2),
        ],
    )
    def test_work_condition_factor(self, work_condition, expected):
        assert work_condition_factor(work_condition) == expected

    @pytest.mark.parametrize("work_condition", [None, "", "X", "VI"])
    def test_unknown_work_condition_defaults_to_class_iii(self, work_condition):
        assert work_condition_factor(work_condition) == 1.8

    @pytest.mark.parametrize(
        "temperature, expected",
        [(None, 1.0), (-10, 1.0), (60, 1.0), (61, 1.2), (80, 1.2), (100, 1.4), (101, 1.6)],
    )
    def test_temperature_factor(self, temperature, expected):
        assert temperature_factor(temperature) == expected


class TestRequiredTorque:
    """Test required coupling torque in kN·m."""

    def test_defaults(self):
        """Test class III at 30 °C."""
        assert required_coupling_torque(1000) == pytest.approx(1.8)

    def test_heavy_duty_hot(self):
        assert required_coupling_torque(3000, "V", 90) == pytest.approx(3000 * 2.5 * 1.4 / 1000)

    @pytest.mark.parametrize("torque", [0, -5, None])
    def test_rejects_non_positive(self, torque):
        with pytest.raises(ValueError):
            required_coupling_torque(torque)


class TestRatedTorque:
    """Test unit handling of catalog torque."""

    @pytest.mark.parametrize(
        "fields, expected",
        [
            ({"torque": 5.0}, 5.0),
            ({"torque": 5000.0}, 5.0),
            ({"torque": 800.0, "torque_unit": "kN·m"}, 800.0),
            ({"torque": 800.0, "torque_unit": "N·m"}, 0.8),
            ({"torque": 400.0, "torque_unit": "N m"}, 0.4),
            ({"max_torque": 6.0}, 6.0),
            ({}, None),
            ({"torque": 0.0}, None),
        ],
    )
    def test_coupling_torque_knm(self, fields, expected):
        item = CatalogItem(model="HGTHB5", **fields)

        assert coupling_torque_knm(item) == (pytest.approx(expected) if expected else None)

    def test_rated_couplings_smallest_first(self, coupling_catalog):
        adequate = rated_couplings(coupling_catalog, 5.4)

        assert [c.model for c in adequate] == ["HGTHB6.3A", "HGTHJB6.3A", "HGTHB8", "HGHQT1210IW"]


class TestCheckCoupling:
    """Test adequacy warnings."""

    @pytest.fixture
    def by_model(self, coupling_catalog) -> dict[str, CatalogItem]:
        return {item.model: item for item in coupling_catalog}

    def test_adequate_without_warnings(self, by_model):
        check = check_coupling(by_model["HGTHB6.3A"], 3000)

        assert check.required_torque == pytest.approx(5.4)
        assert check.torque_margin == pytest.approx((6.3 / 5.4 - 1) * 100)
        assert check.adequate is True
        assert check.warnings == []

    def test_insufficient_torque(self, by_model):
        check = check_coupling(by_model["HGTHB5"], 3000)

        assert check.torque_ok is False
        assert check.adequate is False
        assert "below required 5.40 kN·m" in check.warnings[0]

    def test_low_margin(self, by_model):
        # 5.0 / (2700 * 1.8 / 1000) -> 2.9 %
        check = check_coupling(by_model["HGTHB5"], 2700)

        assert check.torque_ok is True
        assert "very low" in check.warnings[0]

    def test_oversized(self, by_model):
        check = check_coupling(by_model["HGHQT1210IW"], 3000)

        assert "possibly oversized" in check.warnings[0]

    def test_max_speed_below_engine_speed(self, by_model):
        check = check_coupling(by_model["HGTHB6.3A"], 3000, engine_speed=3000)

        assert check.speed_ok is False
        assert check.adequate is False
        assert "max speed 2800 rpm" in check.warnings[0]

    def test_unknown_rating(self):
        check = check_coupling(CatalogItem(model="HGTHB5"), 3000)

        assert check.rated_torque is None
        assert check.torque_ok is False
        assert "no rated torque" in check.warnings[0]


class TestEngineTorque:
    """Test engine torque derivation from context."""

    def test_explicit_torque(self):
        assert engine_torque_for(SelectionContext(engine_torque=3000, power=1, speed=1)) == 3000

    def test_from_power_and_speed(self):
        context = SelectionContext(power=500, speed=1800)

        assert engine_torque_for(context) == pytest.approx(500 * 9550 / 1800)

    def test_missing(self):
        assert engine_torque_for(None) is None
        assert engine_torque_for(SelectionContext(power=500)) is None


class TestCouplingScorer:
    """Test filtering and scoring of catalog couplings."""

    @pytest.mark.parametrize(
        "margin, expected", [(20, 25), (10, 25), (40, 20), (60, 15), (7, 18), (2, 10), (-1, 0)]
    )
    def test_torque_margin_score(self, margin, expected):
        assert torque_margin_score(margin) == expected

    @pytest.mark.parametrize(
        "model, recommended, expected",
        [
            ("HGTHB5", "HGTHB5", 30),
            ("hgthb 5", "HGTHB5", 30),
            ("HGTHB6.3A", "HGTHB5", 20),
            ("HGTHJB5", "HGTHB5", 5),
            ("HGTHB5", None, 5),
        ],
    )
    def test_recommendation_score(self, model, recommended, expected):
        assert recommendation_score(model, recommended) == expected

    @pytest.mark.parametrize("margin, expected", [(None, 15), (10, 15), (30, 12), (80, 8)])
    def test_speed_margin_score(self, margin, expected):
        assert speed_margin_score(margin) == expected

    def test_normalized_scores(self):
        assert normalized_scores([100.0, 200.0, 150.0, None], 20) == [20.0, 0.0, 10.0, 0.0]
        assert normalized_scores([150.0], 20) == [20.0]
        assert normalized_scores([150.0, 150.0], 10) == [10.0, 10.0]

    @pytest.mark.parametrize(
        "fields, expected",
        [
            ({"model": "HGTHJB5"}, True),
            ({"model": "HGT5-ZB"}, True),
            ({"model": "HGTHB5", "has_cover": True}, True),
            ({"model": "HGTHB5"}, False),
        ],
    )
    def test_has_cover_marking(self, fields, expected):
        assert has_cover_marking(CatalogItem(**fields)) is expected

    def test_ranking_and_breakdown(self, coupling_catalog):
        ranked = CouplingScorer().score_couplings(coupling_catalog, 5.4, recommended="HGTHB5")

        assert [c.model for c in ranked] == ["HGTHB6.3A", "HGTHB8", "HGTHJB6.3A", "HGHQT1210IW"]
        assert ranked[0].score == 80
        assert ranked[0].breakdown == {
            "torque_margin": 25,
            "recommendation": 20,
            "speed_margin": 15,
            "price": 20.0,
            "weight": 0.0,
        }

    def test_engine_speed_filter(self, coupling_catalog):
        ranked = CouplingScorer().score_couplings(coupling_catalog, 5.4, engine_speed=2600)

        assert {c.model for c in ranked} == {"HGTHB6.3A", "HGTHJB6.3A"}
        assert ranked[0].speed_margin == pytest.approx((2800 / 2600 - 1) * 100)

    def test_missing_max_speed_assumes_3000_rpm(self):
        item = CatalogItem(model="HGTHB8", torque=8.0)
        scorer = CouplingScorer()

        assert scorer.evaluate(item, 5.4, engine_speed=2900).max_speed == 3000
        assert scorer.evaluate(item, 5.4, engine_speed=3100) is None

    def test_cover_filter(self, coupling_catalog):
        ranked = CouplingScorer().score_couplings(coupling_catalog, 5.4, has_cover=True)

        assert [c.model for c in ranked] == ["HGTHJB6.3A"]

    def test_unrated_couplings_dropped(self):
        catalog = [CatalogItem(model="HGTHB5"), CatalogItem(model="HGTHB8", torque=8.0)]

        assert [c.model for c in CouplingScorer().score_couplings(catalog, 5.4)] == ["HGTHB8"]

    def test_lighter_coupling_scores_higher(self):
        catalog = [
            CatalogItem(model="HGTHB8", torque=8.0, weight=200),
            CatalogItem(model="HGTHB8A", torque=8.0, weight=100),
        ]

        ranked = CouplingScorer().score_couplings(catalog, 5.4)

        assert [c.model for c in ranked] == ["HGTHB8A", "HGTHB8"]
        assert ranked[0].breakdown["weight"] == 10
        assert ranked[1].breakdown["weight"] == 0

    def test_equal_scores_prefer_margin_near_15_percent(self):
        catalog = [
            CatalogItem(model="HGTHB7", torque=7.0),
            CatalogItem(model="HGTHB6.3A", torque=6.3),
        ]

        ranked = CouplingScorer().score_couplings(catalog, 5.4, recommended="HGTHB5")

        assert ranked[0].score == ranked[1].score
        assert [c.model for c in ranked] == ["HGTHB6.3A", "HGTHB7"]


class TestSelectCoupling:
    """Test rule-driven selection with the torque check attached."""

    def test_inadequate_rule_pick_replaced(self, repository, coupling_catalog):
        """Test HGTHB5 cannot carry 5.4 kN·m and the best rated coupling takes over."""
        outcome = select_coupling(
            "HC1000", coupling_catalog, SelectionContext(engine_torque=3000), repository
        )

        assert outcome.status == OutcomeStatus.RESOLVED
        assert outcome.chosen.catalog_item.model == "HGTHB6.3A"
        assert outcome.chosen.match_type == MatchType.RATED
        assert outcome.chosen.candidate_model == "HGTHB5"
        assert outcome.chosen.score == 80
        assert [a.catalog_item.model for a in outcome.alternatives] == [
            "HGTHB8",
            "HGTHJB6.3A",
            "HGHQT1210IW",
        ]
        assert outcome.warnings == [
            "Coupling HGTHB5 rated torque 5.00 kN·m is below required 5.40 kN·m",
            "Coupling HGTHB5 replaced by HGTHB6.3A (rated score 80)",
        ]
        assert outcome.low_confidence is False
        assert outcome.needs_review is True

    def test_adequate_coupling_no_warnings(self, repository, coupling_catalog):
        outcome = select_coupling(
            "HC1200/1", coupling_catalog, SelectionContext(engine_torque=3000), repository
        )

        assert outcome.chosen.catalog_item.model == "HGTHB6.3A"
        assert outcome.chosen.match_type == MatchType.EXACT
        assert outcome.warnings == []

    def test_mapping_context(self, repository, coupling_catalog):
        outcome = select_coupling("HC1000", coupling_catalog, {"engine_torque": 3000}, repository)

        assert outcome.chosen.catalog_item.model == "HGTHB6.3A"

    @pytest.mark.parametrize(
        "context", [{"engine_torque": -100}, {"power": -5, "speed": 1800}, {"speed": 0}, 42]
    )
    def test_invalid_context(self, repository, coupling_catalog, context):
        outcome = select_coupling("HC1000", coupling_catalog, context, repository)

        assert outcome.status == OutcomeStatus.INVALID_INPUT
        assert outcome.chosen is None

    def test_no_eligible_coupling_keeps_rule_pick(self, repository, coupling_catalog):
        """Test no covered coupling carries 10.8 kN·m, so the rule pick stays with warnings."""
        outcome = select_coupling(
            "HC1000",
            coupling_catalog,
            SelectionContext(engine_torque=6000, has_cover=True),
            repository,
        )

        assert outcome.chosen.catalog_item.model == "HGTHJB5"
        assert outcome.chosen.match_type == MatchType.EXACT
        assert outcome.warnings[-1] == "Smallest adequate coupling in catalog: HGHQT1210IW"
        assert outcome.needs_review is True

    def test_without_engine_data(self, repository, coupling_catalog):
        outcome = select_coupling("HC1000", coupling_catalog, repository=repository)

        assert outcome.chosen.catalog_item.model == "HGTHB5"
        assert outcome.warnings == []

    def test_recommendation_missing_resolved_by_rating(self, repository):
        outcome = select_coupling(
            "HC1000", [{"model": "XYZ-8", "torque": 8.0}], SelectionContext(engine_torque=3000), repository
        )

        assert outcome.status == OutcomeStatus.RESOLVED
        assert outcome.success is True
        assert outcome.chosen.catalog_item.model == "XYZ-8"
        assert outcome.chosen.match_type == MatchType.RATED
        assert outcome.suggested_model is None
        assert outcome.warnings[0] == (
            "Recommended coupling HGTHB5 not in catalog; XYZ-8 selected by torque rating"
        )
        assert "Coupling XYZ-8 overall score 40 is low (<60)" in outcome.warnings
        assert outcome.low_confidence is True

    def test_unresolved_passthrough(self, repository):
        outcome = select_coupling(
            "HC1000", [{"model": "XYZ-1"}], SelectionContext(engine_torque=3000), repository
        )

        assert outcome.status == OutcomeStatus.UNRESOLVED
        assert outcome.suggested_model == "HGTHB5"
        assert outcome.warnings == []
