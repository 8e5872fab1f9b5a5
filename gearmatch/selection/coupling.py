"""Coupling torque requirement and adequacy checks.

Required coupling torque (kN·m) = engine torque (N·m) × K × St / 1000, where
K is the work-condition factor and St the ambient temperature factor.
The rule-driven coupling selection picks *which* coupling fits the gearbox;
this module checks whether the chosen coupling can carry the load, and
scores the catalog for a replacement when it cannot.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from gearmatch.config import get_config
from gearmatch.matching.model_parser import compact_model, tokenize_model
from gearmatch.matching.orchestrator import coerce_catalog, coerce_context, select_flexible_coupling
from gearmatch.models import (
    AccessoryKind,
    CatalogItem,
    MatchResult,
    MatchType,
    OutcomeStatus,
    SelectionContext,
    SelectionOutcome,
)
from gearmatch.rules.repository import RuleRepository

logger = logging.getLogger(__name__)

# Work condition class -> service factor K
WORK_CONDITION_FACTORS = {
    "I": 1.2,  # Uniform torque
    "II": 1.5,  # Slight torque variation
    "III": 1.8,  # Moderate torque variation
    "IV": 2.2,  # Heavy torque variation
    "V": 2.5,  # Very heavy shock loads
}
DEFAULT_WORK_CONDITION = "III"

# (upper bound °C, factor St), evaluated top-down
TEMPERATURE_FACTORS = ((60.0, 1.0), (80.0, 1.2), (100.0, 1.4))
HIGH_TEMPERATURE_FACTOR = 1.6
DEFAULT_TEMPERATURE = 30.0

# Unitless torque above this is assumed to be N·m
UNITLESS_NM_THRESHOLD = 500.0

# Catalog couplings without a max speed are assumed to run up to this
DEFAULT_COUPLING_MAX_SPEED = 3000.0
TARGET_TORQUE_MARGIN = 15.0  # percent, tie-break among equal scores
LOW_RATED_SCORE = 60

_WORK_CLASS = re.compile(r"^\s*(IV|V|I{1,3})(?![IV])", re.IGNORECASE)
_KNM_UNITS = {"knm", "kn·m", "kn.m", "kn*m", "kn-m"}
_NM_UNITS = {"nm", "n·m", "n.m", "n*m", "n-m"}


def work_condition_factor(work_condition: str | None) -> float:
    """Service factor K for a work condition class.

    Accepts ``"III"`` as well as labelled forms like ``"III: moderate torque
    variation"``. Unknown or missing classes use class III.
    """
    if work_condition:
        match = _WORK_CLASS.match(str(work_condition))
        if match:
            return WORK_CONDITION_FACTORS[match.group(1).upper()]
        logger.debug(f"Unknown work condition {work_condition!r}, using class {DEFAULT_WORK_CONDITION}")
    return WORK_CONDITION_FACTORS[DEFAULT_WORK_CONDITION]


def temperature_factor(temperature: float | None) -> float:
    """Temperature factor St for the ambient temperature in °C."""
    temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
    for upper, factor in TEMPERATURE_FACTORS:
        if temperature <= upper:
            return factor
    return HIGH_TEMPERATURE_FACTOR


def required_coupling_torque(
    engine_torque: float,
    work_condition: str | None = None,
    temperature: float | None = None,
) -> float:
    """Required coupling torque in kN·m.

    Args:
        engine_torque: Engine torque in N·m
        work_condition: Work condition class (I-V)
        temperature: Ambient temperature in °C

    Returns:
        Required torque in kN·m

    Raises:
        ValueError: If engine_torque is not positive
    """
    if engine_torque is None or engine_torque <= 0:
        raise ValueError(f"engine torque must be positive, got {engine_torque!r}")
    k = work_condition_factor(work_condition)
    st = temperature_factor(temperature)
    return engine_torque * k * st / 1000.0


def coupling_torque_knm(item: CatalogItem) -> float | None:
    """Rated torque of a coupling in kN·m, or None when unknown."""
    torque = item.torque if item.torque is not None else item.max_torque
    if torque is None or torque <= 0:
        return None

    unit = (item.torque_unit or "").strip().lower().replace(" ", "")
    if unit in _KNM_UNITS:
        return torque
    if unit in _NM_UNITS:
        return torque / 1000.0
    return torque / 1000.0 if torque > UNITLESS_NM_THRESHOLD else torque


@dataclass(frozen=True)
class CouplingCheck:
    """Torque and speed adequacy of one coupling."""

    model: str
    required_torque: float  # kN·m
    rated_torque: float | None  # kN·m
    torque_margin: float | None  # percent
    torque_ok: bool
    speed_ok: bool
    warnings: list[str] = field(default_factory=list)

    @property
    def adequate(self) -> bool:
        return self.torque_ok and self.speed_ok


def check_coupling(
    item: CatalogItem,
    engine_torque: float,
    work_condition: str | None = None,
    temperature: float | None = None,
    engine_speed: float | None = None,
) -> CouplingCheck:
    """Check a coupling against the engine torque and speed.

    Warnings:
    - rated torque unknown or below requirement
    - torque margin < 5 % (very low) or < 10 % (low)
    - torque margin > 50 % (oversized)
    - max speed below engine speed

    Raises:
        ValueError: If engine_torque is not positive
    """
    required = required_coupling_torque(engine_torque, work_condition, temperature)
    rated = coupling_torque_knm(item)
    warnings = []

    margin = None
    torque_ok = False
    if rated is None:
        warnings.append(f"Coupling {item.model} has no rated torque; cannot verify {required:.2f} kN·m")
    else:
        margin = (rated / required - 1.0) * 100.0
        torque_ok = rated >= required
        if not torque_ok:
            warnings.append(
                f"Coupling {item.model} rated torque {rated:.2f} kN·m is below "
                f"required {required:.2f} kN·m"
            )
        elif margin < 5:
            warnings.append(f"Coupling {item.model} torque margin {margin:.1f}% is very low (<5%)")
        elif margin < 10:
            warnings.append(f"Coupling {item.model} torque margin {margin:.1f}% is low (<10%)")
        elif margin > 50:
            warnings.append(
                f"Coupling {item.model} torque margin {margin:.1f}% is high (>50%), possibly oversized"
            )

    speed_ok = True
    if engine_speed and item.max_speed and item.max_speed < engine_speed:
        speed_ok = False
        warnings.append(
            f"Coupling {item.model} max speed {item.max_speed:g} rpm is below engine speed {engine_speed:g} rpm"
        )

    return CouplingCheck(
        model=item.model,
        required_torque=required,
        rated_torque=rated,
        torque_margin=margin,
        torque_ok=torque_ok,
        speed_ok=speed_ok,
        warnings=warnings,
    )


def engine_torque_for(context: SelectionContext | None) -> float | None:
    """Engine torque (N·m) from context, derived from power and speed if needed."""
    if context is None:
        return None
    if context.engine_torque:
        return context.engine_torque
    if context.power and context.speed:
        return context.power * 9550.0 / context.speed
    return None


def has_cover_marking(item: CatalogItem) -> bool:
    """Whether a coupling ships with a protective cover (J/JB models, -ZB suffix)."""
    extra = item.model_extra or {}
    if extra.get("has_cover"):
        return True
    model = compact_model(item.model)
    return "J" in model or model.endswith("-ZB")


class CouplingCandidate(BaseModel):
    """A coupling that passed filtering, with its score breakdown."""

    model_config = ConfigDict(frozen=True)

    item: CatalogItem
    rated_torque: float  # kN·m
    max_speed: float  # rpm
    torque_margin: float  # percent
    speed_margin: float | None = None  # percent, None when engine speed is unknown
    score: float = 0.0
    breakdown: dict[str, float] = Field(default_factory=dict)

    @property
    def model(self) -> str:
        return self.item.model


def torque_margin_score(margin: float) -> float:
    """Score the torque margin (percent) out of 25."""
    if 10 <= margin <= 30:
        return 25
    if 30 < margin <= 50:
        return 20
    if margin > 50:
        return 15
    if 5 <= margin < 10:
        return 18
    if 0 <= margin < 5:
        return 10
    return 0


def recommendation_score(model: str, recommended: str | None) -> float:
    """Score agreement with the rule-recommended model out of 30.

    Exact model 30, same family prefix 20, anything else 5.
    """
    if not recommended:
        return 5
    compact = compact_model(model)
    if compact == compact_model(recommended):
        return 30
    tokens = tokenize_model(recommended)
    if tokens is not None and compact.startswith(tokens.family):
        return 20
    return 5


def speed_margin_score(margin: float | None) -> float:
    """Score the max-speed headroom (percent) out of 15."""
    if margin is None or margin <= 20:
        return 15
    if margin <= 50:
        return 12
    return 8


def normalized_scores(values: Sequence[float | None], points: float) -> list[float]:
    """Lower-is-better scores out of ``points``, normalized across values.

    The lowest value scores full points and the highest 0. With a single
    known value (zero range) it scores full points; unknown values score 0.
    """
    known = [v for v in values if v is not None]
    low, high = (min(known), max(known)) if known else (0.0, 0.0)
    spread = high - low

    scores = []
    for value in values:
        if value is None:
            scores.append(0.0)
        elif spread > 0:
            scores.append(points * (1.0 - (value - low) / spread))
        else:
            scores.append(float(points))
    return scores


def _positive(value: float | None) -> float | None:
    return value if value is not None and value > 0 else None


class CouplingScorer:
    """Torque/recommendation/speed/price/weight coupling scorer."""

    def evaluate(
        self,
        item: CatalogItem,
        required_torque: float,
        engine_speed: float | None = None,
        has_cover: bool = False,
    ) -> CouplingCandidate | None:
        """Filter one coupling against the load.

        Returns:
            Unscored candidate, or None if the coupling cannot carry the engine
        """
        rated = coupling_torque_knm(item)
        if rated is None or rated < required_torque:
            return None

        max_speed = item.max_speed or DEFAULT_COUPLING_MAX_SPEED
        if engine_speed and max_speed < engine_speed:
            return None

        if has_cover and not has_cover_marking(item):
            return None

        return CouplingCandidate(
            item=item,
            rated_torque=rated,
            max_speed=max_speed,
            torque_margin=(rated / required_torque - 1.0) * 100.0,
            speed_margin=(max_speed / engine_speed - 1.0) * 100.0 if engine_speed else None,
        )

    def score_couplings(
        self,
        catalog: Sequence[CatalogItem],
        required_torque: float,
        recommended: str | None = None,
        engine_speed: float | None = None,
        has_cover: bool = False,
    ) -> list[CouplingCandidate]:
        """Filter, score and rank couplings.

        Args:
            catalog: Coupling items
            required_torque: Required coupling torque, kN·m
            recommended: Rule-recommended model (family prefix counts too)
            engine_speed: Engine speed, rpm
            has_cover: Only keep couplings with a protective cover

        Returns:
            Candidates by score, ties broken by closeness to a 15 % torque margin
        """
        survivors = [
            c
            for c in (self.evaluate(item, required_torque, engine_speed, has_cover) for item in catalog)
            if c is not None
        ]
        prices = normalized_scores([_positive(c.item.price or c.item.base_price) for c in survivors], 20)
        weights = normalized_scores([_positive(c.item.weight) for c in survivors], 10)

        scored = []
        for candidate, price, weight in zip(survivors, prices, weights):
            breakdown = {
                "torque_margin": torque_margin_score(candidate.torque_margin),
                "recommendation": recommendation_score(candidate.model, recommended),
                "speed_margin": speed_margin_score(candidate.speed_margin),
                "price": price,
                "weight": weight,
            }
            total = max(0.0, min(100.0, float(round(sum(breakdown.values())))))
            scored.append(candidate.model_copy(update={"score": total, "breakdown": breakdown}))

        scored.sort(key=lambda c: (-c.score, abs(c.torque_margin - TARGET_TORQUE_MARGIN)))
        return scored


def select_coupling(
    gearbox_model: Any,
    catalog: Any,
    context: SelectionContext | None = None,
    repository: RuleRepository | None = None,
) -> SelectionOutcome:
    """Select a flexible coupling and check it against the engine load.

    Runs rule-driven selection. When the context carries an engine torque
    (or power and speed), an adequate rule pick is kept with its margin
    warnings. A rule pick that cannot carry the load, or a rule
    recommendation missing from the catalog, is replaced by the best
    scored catalog coupling. If no coupling qualifies, the rule outcome is
    returned with the torque warnings attached.

    Args:
        gearbox_model: Gearbox model string
        catalog: Coupling catalog
        context: Engine torque/power/speed, work condition, temperature, cover
        repository: Rule repository (default: packaged tables)

    Returns:
        SelectionOutcome with torque warnings merged in
    """
    outcome = select_flexible_coupling(gearbox_model, catalog, context, repository)
    if outcome.status in (OutcomeStatus.INVALID_INPUT, OutcomeStatus.NOT_APPLICABLE):
        return outcome

    # Already validated by the selector
    context = coerce_context(context)
    torque = engine_torque_for(context)
    if torque is None:
        return outcome

    required = required_coupling_torque(torque, context.work_condition, context.temperature)
    warnings = []
    check = None
    if outcome.chosen is not None:
        check = check_coupling(
            outcome.chosen.catalog_item,
            torque,
            context.work_condition,
            context.temperature,
            context.speed,
        )
        if check.adequate:
            return _with_warnings(outcome, check.warnings)
        warnings.extend(check.warnings)

    items = coerce_catalog(catalog) or []
    recommended = outcome.chosen.candidate_model if outcome.chosen else outcome.suggested_model
    ranked = CouplingScorer().score_couplings(
        items, required, recommended, context.speed, context.has_cover
    )
    if not ranked:
        if check is not None and not check.torque_ok:
            stronger = rated_couplings(items, required)
            if stronger:
                warnings.append(f"Smallest adequate coupling in catalog: {stronger[0].model}")
        return _with_warnings(outcome, warnings)

    top = ranked[0]
    if outcome.chosen is not None:
        rule_pick = outcome.chosen.catalog_item.model
        warnings.append(f"Coupling {rule_pick} replaced by {top.model} (rated score {top.score:g})")
    elif recommended:
        warnings.append(
            f"Recommended coupling {recommended} not in catalog; {top.model} selected by torque rating"
        )
    warnings.extend(
        check_coupling(top.item, torque, context.work_condition, context.temperature, context.speed).warnings
    )
    if top.score < LOW_RATED_SCORE:
        warnings.append(f"Coupling {top.model} overall score {top.score:g} is low (<{LOW_RATED_SCORE})")

    config = get_config()
    low_confidence = top.score < config.matching.low_confidence_score
    message = (
        f"Selected {top.model} for {AccessoryKind.FLEXIBLE_COUPLING.value} "
        f"(rated match, torque margin {top.torque_margin:.1f}%, score {top.score:g})"
    )
    if low_confidence:
        message += "; low confidence, please confirm the selection"
    logger.info(message)

    rest = ranked[1 : 1 + config.selection.max_alternatives]
    return _with_warnings(
        outcome.model_copy(
            update={
                "status": OutcomeStatus.RESOLVED,
                "success": True,
                "chosen": _rated_match(top, recommended),
                "alternatives": [_rated_match(c, recommended) for c in rest],
                "suggested_model": None,
                "message": message,
                "low_confidence": low_confidence,
            }
        ),
        warnings,
    )


def _rated_match(candidate: CouplingCandidate, recommended: str | None) -> MatchResult:
    return MatchResult(
        catalog_item=candidate.item,
        score=candidate.score,
        match_type=MatchType.RATED,
        match_info=(
            f"Rated {candidate.rated_torque:.2f} kN·m, torque margin {candidate.torque_margin:.1f}%"
        ),
        candidate_model=recommended or candidate.model,
    )


def _with_warnings(outcome: SelectionOutcome, warnings: Sequence[str]) -> SelectionOutcome:
    if not warnings:
        return outcome
    for warning in warnings:
        logger.warning(warning)
    return outcome.model_copy(update={"warnings": [*outcome.warnings, *warnings]})


def rated_couplings(catalog: Sequence[CatalogItem], required_torque: float) -> list[CatalogItem]:
    """Couplings whose rated torque meets ``required_torque`` (kN·m), smallest first."""
    rated = [(coupling_torque_knm(item), item) for item in catalog]
    adequate = [(t, item) for t, item in rated if t is not None and t >= required_torque]
    adequate.sort(key=lambda pair: pair[0])
    return [item for _, item in adequate]
