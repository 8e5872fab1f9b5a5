"""Primary-unit (gearbox) selection.

Filters a gearbox catalog by engine speed and transfer capacity, scores the
survivors, and ranks them. Scoring (100 points):
- Capacity margin: 40
- Ratio closeness: 20
- Price per unit of capacity (normalized across survivors): 30
- Thrust: 10
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import cmp_to_key
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gearmatch.matching.model_parser import parse_primary_model
from gearmatch.models import CatalogItem, GearboxItem

logger = logging.getLogger(__name__)

IDEAL_MARGIN = (10.0, 20.0)  # percent
TARGET_MARGIN = 15.0
SIGNIFICANT_SCORE_GAP = 5.0
LOW_MARGIN_WARNING = 5.0
HIGH_MARGIN_WARNING = 70.0

# Series-suitability bonuses applied during auto-selection
SERIES_BONUSES = (
    ("GW", lambda req: req.power > 800, 5),
    ("HCM", lambda req: req.speed > 2000, 3),
)


class GearboxRequirement(BaseModel):
    """Engine-side requirement for a gearbox."""

    model_config = ConfigDict(frozen=True)

    power: float = Field(gt=0)  # kW
    speed: float = Field(gt=0)  # rpm
    target_ratio: float = Field(gt=0)
    thrust: float = Field(default=0.0, ge=0)  # kN

    @property
    def required_capacity(self) -> float:
        """Required transfer capacity, kW/rpm."""
        return self.power / self.speed

    @property
    def engine_torque(self) -> float:
        """Engine torque, N·m."""
        return self.power * 9550.0 / self.speed


class GearboxCandidate(BaseModel):
    """A gearbox that passed filtering, with its score breakdown."""

    model_config = ConfigDict(frozen=True)

    item: GearboxItem
    series: str
    selected_ratio: float
    selected_capacity: float
    capacity_margin: float  # percent
    ratio_diff: float
    thrust_met: bool
    score: float = 0.0
    breakdown: dict[str, float] = Field(default_factory=dict)

    @property
    def model(self) -> str:
        return self.item.model

    @property
    def safety_factor(self) -> float:
        """Actual / required capacity."""
        return 1.0 + self.capacity_margin / 100.0

    @property
    def ideal_margin(self) -> bool:
        return IDEAL_MARGIN[0] <= self.capacity_margin <= IDEAL_MARGIN[1]


class GearboxSelectionOutcome(BaseModel):
    """Result of a gearbox selection call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    requirement: GearboxRequirement | None = None
    series_used: str | None = None  # None = all series (auto)
    recommendations: list[GearboxCandidate] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def chosen(self) -> GearboxCandidate | None:
        return self.recommendations[0] if self.recommendations else None


def capacity_margin_score(margin: float) -> float:
    """Score the capacity margin (percent) out of 40."""
    if 5 <= margin <= 20:
        return 40
    if 20 < margin <= 35:
        return 35
    if 35 < margin <= 70:
        return 25
    if margin > 70:
        return 15
    if 0 <= margin < 5:
        return 30
    return 0


def ratio_score(ratio_diff: float) -> float:
    """Score the distance to the target ratio out of 20."""
    if ratio_diff <= 0.1:
        return 20
    if ratio_diff <= 0.3:
        return 15
    if ratio_diff <= 0.5:
        return 10
    return 5


def thrust_score(required: float, met: bool) -> float:
    """Score thrust out of 10 (5 when no thrust is required)."""
    if required <= 0:
        return 5
    return 10 if met else 0


def _price(item: GearboxItem) -> float:
    return item.base_price or item.price or 0.0


def price_scores(candidates: Sequence[GearboxCandidate]) -> list[float]:
    """Price-per-capacity scores out of 30, normalized across candidates.

    Cheapest per unit of capacity scores 30, the most expensive 0. A single
    priced candidate (zero range) scores 15; unpriced candidates score 15.
    """
    per_capacity = [
        _price(c.item) / c.selected_capacity if _price(c.item) > 0 and c.selected_capacity > 0 else None
        for c in candidates
    ]
    known = [p for p in per_capacity if p is not None]
    low, high = (min(known), max(known)) if known else (0.0, 0.0)
    spread = high - low

    scores = []
    for ppc in per_capacity:
        if ppc is None:
            scores.append(15.0)
            continue
        normalized = 1.0 - (ppc - low) / spread if spread > 0 else 0.5
        scores.append(float(round(normalized * 30)))
    return scores


def _compare(a: GearboxCandidate, b: GearboxCandidate) -> float:
    # Score decides only when the gap is significant
    if abs(b.score - a.score) > SIGNIFICANT_SCORE_GAP:
        return b.score - a.score
    if a.ideal_margin != b.ideal_margin:
        return -1 if a.ideal_margin else 1
    return abs(a.capacity_margin - TARGET_MARGIN) - abs(b.capacity_margin - TARGET_MARGIN)


def sort_candidates(candidates: Sequence[GearboxCandidate]) -> list[GearboxCandidate]:
    """Rank candidates: significant score gap, then ideal margin, then closeness to 15 %."""
    return sorted(candidates, key=cmp_to_key(_compare))


def series_of(item: GearboxItem) -> str:
    """Series code of a gearbox (explicit field, else the model prefix)."""
    if item.series:
        return item.series.strip().upper()
    return parse_primary_model(item.model).prefix or "UNKNOWN"


def coerce_gearboxes(catalog: Any) -> list[GearboxItem]:
    """Validate a gearbox catalog; invalid entries are skipped with a warning."""
    if isinstance(catalog, (str, bytes)) or not isinstance(catalog, Sequence):
        return []

    items = []
    for idx, entry in enumerate(catalog):
        try:
            if isinstance(entry, GearboxItem):
                items.append(entry)
            elif isinstance(entry, CatalogItem):
                items.append(GearboxItem.model_validate(entry.model_dump()))
            elif isinstance(entry, Mapping):
                items.append(GearboxItem.model_validate(dict(entry)))
            else:
                logger.warning(f"Skipping gearbox entry {idx}: expected a mapping")
        except ValidationError as e:
            logger.warning(f"Skipping gearbox entry {idx}: {e.errors()[0]['msg']}")
    return items


class GearboxSelector:
    """Capacity/ratio/price/thrust gearbox scorer."""

    def evaluate(self, item: GearboxItem, requirement: GearboxRequirement) -> GearboxCandidate | None:
        """Filter one gearbox against the requirement.

        Returns:
            Unscored candidate, or None if the gearbox cannot serve the engine
        """
        if item.input_speed_range is not None:
            low, high = item.input_speed_range
            if not low <= requirement.speed <= high:
                return None

        ratios = [r for r in item.ratios if r is not None]
        if not ratios:
            return None
        best_index = min(range(len(ratios)), key=lambda i: abs(ratios[i] - requirement.target_ratio))

        if best_index < len(item.transfer_capacity):
            capacity = item.transfer_capacity[best_index]
        elif item.transfer_capacity:
            capacity = item.transfer_capacity[0]
            logger.debug(f"Gearbox {item.model}: no capacity for ratio index {best_index}, using first")
        else:
            return None

        required = requirement.required_capacity
        if capacity <= 0 or capacity < required:
            return None

        thrust_met = True
        if requirement.thrust > 0:
            thrust_met = item.thrust is not None and item.thrust >= requirement.thrust

        return GearboxCandidate(
            item=item,
            series=series_of(item),
            selected_ratio=ratios[best_index],
            selected_capacity=capacity,
            capacity_margin=(capacity - required) / required * 100.0,
            ratio_diff=abs(ratios[best_index] - requirement.target_ratio),
            thrust_met=thrust_met,
        )

    def score_gearboxes(
        self, requirement: GearboxRequirement, gearboxes: Sequence[GearboxItem]
    ) -> list[GearboxCandidate]:
        """Filter, score and rank gearboxes.

        Args:
            requirement: Validated requirement
            gearboxes: Gearbox items

        Returns:
            Ranked candidates (possibly empty)

        Raises:
            ValueError: If requirement is not a GearboxRequirement
        """
        if not isinstance(requirement, GearboxRequirement):
            raise ValueError("requirement must be a GearboxRequirement")

        survivors = [c for c in (self.evaluate(g, requirement) for g in gearboxes) if c is not None]
        prices = price_scores(survivors)

        scored = []
        for candidate, price in zip(survivors, prices):
            breakdown = {
                "capacity_margin": capacity_margin_score(candidate.capacity_margin),
                "ratio": ratio_score(candidate.ratio_diff),
                "price": price,
                "thrust": thrust_score(requirement.thrust, candidate.thrust_met),
            }
            total = max(0.0, min(100.0, float(round(sum(breakdown.values())))))
            scored.append(candidate.model_copy(update={"score": total, "breakdown": breakdown}))
        return sort_candidates(scored)

    def select(
        self,
        requirement: GearboxRequirement,
        gearboxes: Sequence[GearboxItem],
        series: str | None = None,
    ) -> GearboxSelectionOutcome:
        """Select within one series (or all gearboxes when series is None)."""
        if series is not None:
            series = series.strip().upper()
            gearboxes = [g for g in gearboxes if series_of(g) == series]
            if not gearboxes:
                return GearboxSelectionOutcome(
                    success=False,
                    message=f"No {series} series gearbox data",
                    requirement=requirement,
                    series_used=series,
                )

        ranked = self.score_gearboxes(requirement, gearboxes)
        label = f"{series} series " if series else ""
        if not ranked:
            return GearboxSelectionOutcome(
                success=False,
                message=f"No {label}gearbox meets {requirement.power:g} kW at {requirement.speed:g} rpm",
                requirement=requirement,
                series_used=series,
            )

        logger.info(f"{len(ranked)} {label}gearboxes match; best {ranked[0].model} score {ranked[0].score:g}")
        return GearboxSelectionOutcome(
            success=True,
            message=f"Found {len(ranked)} matching {label}gearboxes",
            requirement=requirement,
            series_used=series,
            recommendations=ranked,
            warnings=gearbox_warnings(ranked[0], requirement),
        )

    def auto_select(
        self, requirement: GearboxRequirement, gearboxes: Sequence[GearboxItem]
    ) -> GearboxSelectionOutcome:
        """Select across every series present in the catalog.

        Each series is scored on its own (price normalization is per series),
        series-suitability bonuses are applied, then results are ranked
        globally.
        """
        present = []
        for item in gearboxes:
            if series_of(item) not in present:
                present.append(series_of(item))
        if not present:
            return GearboxSelectionOutcome(
                success=False, message="No gearbox data available", requirement=requirement
            )

        combined = []
        for series in present:
            outcome = self.select(requirement, gearboxes, series)
            if not outcome.success:
                logger.debug(f"Auto-select: {outcome.message}")
                continue
            combined.extend(_apply_series_bonus(c, requirement) for c in outcome.recommendations)

        if not combined:
            return GearboxSelectionOutcome(
                success=False,
                message="No gearbox in any series meets the requirement",
                requirement=requirement,
            )

        ranked = sort_candidates(combined)
        best = ranked[0]
        warnings = gearbox_warnings(best, requirement)
        if requirement.power < 150 and best.series == "GW":
            warnings.append(
                f"Engine power {requirement.power:g} kW is low for heavy-duty GW series ({best.model}); please confirm"
            )
        if requirement.speed < 1000 and best.series == "HCM":
            warnings.append(
                f"Engine speed {requirement.speed:g} rpm is low for high-speed HCM series ({best.model}); please confirm"
            )

        logger.info(f"Auto-select: best {best.model} from {best.series} series, score {best.score:g}")
        return GearboxSelectionOutcome(
            success=True,
            message=f"Auto-selection complete, best match from {best.series} series",
            requirement=requirement,
            recommendations=ranked,
            warnings=warnings,
        )


def _apply_series_bonus(candidate: GearboxCandidate, requirement: GearboxRequirement) -> GearboxCandidate:
    bonus = sum(
        points
        for series, applies, points in SERIES_BONUSES
        if candidate.series == series and applies(requirement)
    )
    if not bonus:
        return candidate
    return candidate.model_copy(update={"score": min(100.0, candidate.score + bonus)})


def gearbox_warnings(candidate: GearboxCandidate, requirement: GearboxRequirement) -> list[str]:
    """Margin and thrust warnings for the chosen gearbox."""
    warnings = []
    if candidate.capacity_margin < LOW_MARGIN_WARNING:
        warnings.append(
            f"Gearbox {candidate.model} capacity margin {candidate.capacity_margin:.1f}% is too low"
        )
    elif candidate.capacity_margin > HIGH_MARGIN_WARNING:
        warnings.append(
            f"Gearbox {candidate.model} capacity margin {candidate.capacity_margin:.1f}% is very high"
        )
    if requirement.thrust > 0 and not candidate.thrust_met:
        warnings.append(f"Gearbox {candidate.model} does not meet thrust requirement {requirement.thrust:g} kN")
    return warnings


def select_gearbox(
    power: float,
    speed: float,
    target_ratio: float,
    catalog: Any,
    thrust: float = 0.0,
    series: str | None = None,
) -> GearboxSelectionOutcome:
    """Convenience function: select a gearbox, never raising for bad input.

    Args:
        power: Engine power, kW
        speed: Engine speed, rpm
        target_ratio: Target reduction ratio
        catalog: Gearbox catalog (GearboxItem or mappings)
        thrust: Required propeller thrust, kN (0 = none)
        series: Restrict to one series; None auto-selects across all

    Returns:
        GearboxSelectionOutcome (success=False with a message on invalid input)
    """
    try:
        requirement = GearboxRequirement(
            power=power, speed=speed, target_ratio=target_ratio, thrust=thrust or 0.0
        )
    except ValidationError as e:
        error = e.errors()[0]
        message = f"Invalid gearbox requirement {error['loc'][0]}: {error['msg']}"
        logger.warning(message)
        return GearboxSelectionOutcome(success=False, message=message, series_used=series)

    gearboxes = coerce_gearboxes(catalog)
    selector = GearboxSelector()
    if series:
        return selector.select(requirement, gearboxes, series)
    return selector.auto_select(requirement, gearboxes)
