"""gearmatch Pydantic models for type-safe selection data.

Catalog items are read-only snapshots supplied by the caller; candidates,
match results and outcomes are created fresh for every selection call.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccessoryKind(str, Enum):
    """Accessory classes selected against a primary unit."""

    STANDBY_PUMP = "standby_pump"
    FLEXIBLE_COUPLING = "flexible_coupling"


class CandidateType(str, Enum):
    """How a candidate target model was produced."""

    PRIMARY = "primary"  # Primary target of a matching rule
    ALTERNATE = "alternate"  # Alternate target of a matching rule
    DEFAULT = "default"  # Generic fallback for unknown series


class MatchType(str, Enum):
    """Which matcher bound a candidate to a catalog item."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    ALTERNATIVE = "alternative"
    RATED = "rated"  # Catalog coupling ranked on torque, speed, price and weight


class OutcomeStatus(str, Enum):
    """Terminal state of a selection call."""

    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"  # Accessory needed, no catalog entry found
    NOT_APPLICABLE = "not_applicable"  # Accessory class does not apply
    INVALID_INPUT = "invalid_input"


class CatalogItem(BaseModel):
    """Purchasable equipment record from the caller's catalog.

    Price fields are carried through untouched; their semantics belong to
    the pricing collaborator.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    model: str

    # Numeric specs (units follow the catalog: kN·m, L/min, MPa, kW, kg)
    capacity: float | None = None
    ratio: float | None = None
    torque: float | None = None
    torque_unit: str | None = None
    max_torque: float | None = None
    max_speed: float | None = None
    flow: float | None = None
    pressure: float | None = None
    power: float | None = None
    motor_power: float | None = None
    weight: float | None = None

    # Owned by the pricing collaborator
    price: float | None = None
    base_price: float | None = None
    discount_rate: float | None = None
    factory_price: float | None = None
    market_price: float | None = None

    notes: str | None = None

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("model must be a non-empty string")
        return v


class GearboxItem(CatalogItem):
    """Gearbox catalog record with ratio-indexed transfer capacities."""

    series: str | None = None
    ratios: list[float] = Field(default_factory=list)
    transfer_capacity: list[float] = Field(default_factory=list)  # kW/rpm per ratio
    input_speed_range: tuple[float, float] | None = None  # rpm
    thrust: float | None = None  # kN

    @field_validator("transfer_capacity", mode="before")
    @classmethod
    def coerce_capacity(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            return [float(v)]
        return v


class SelectionContext(BaseModel):
    """Context attributes collected upstream for one selection call."""

    model_config = ConfigDict(frozen=True)

    power: float | None = Field(default=None, gt=0)  # Rated engine power, kW
    speed: float | None = Field(default=None, gt=0)  # Engine speed, rpm
    engine_torque: float | None = Field(default=None, gt=0)  # N·m
    work_condition: str | None = None
    temperature: float | None = None  # °C
    has_cover: bool = False

    def flag(self, name: str) -> bool:
        """Return a boolean context flag by name (unknown names are False)."""
        return bool(getattr(self, name, False))


class Candidate(BaseModel):
    """Provisional target model not yet bound to a catalog entry."""

    model_config = ConfigDict(frozen=True)

    model: str
    score: float
    match_type: CandidateType
    match_info: str = ""

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("score must be between 0 and 100")
        return v


class MatchResult(BaseModel):
    """A candidate bound to a real catalog item."""

    model_config = ConfigDict(frozen=True)

    catalog_item: CatalogItem
    score: float
    match_type: MatchType
    match_info: str = ""
    candidate_model: str

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("score must be between 0 and 100")
        return v


class SelectionOutcome(BaseModel):
    """Result of one accessory selection call.

    When unresolved, ``alternatives`` holds the raw candidate list and
    ``suggested_model`` names the best ungrounded candidate.
    """

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    success: bool
    requires_accessory: bool
    chosen: MatchResult | None = None
    alternatives: list[Union[MatchResult, Candidate]] = Field(default_factory=list)
    candidates: list[Candidate] = Field(default_factory=list)
    suggested_model: str | None = None
    message: str
    low_confidence: bool = False
    warnings: list[str] = Field(default_factory=list)

    @property
    def confidence_level(self) -> str:
        """Human-readable confidence level of the chosen match."""
        if self.chosen is None:
            return "NONE"
        if self.chosen.score >= 90:
            return "HIGH"
        elif self.chosen.score >= 70:
            return "MEDIUM"
        elif self.chosen.score >= 50:
            return "LOW"
        else:
            return "VERY LOW"

    @property
    def needs_review(self) -> bool:
        """Flag outcomes a human should confirm before quoting."""
        if self.status == OutcomeStatus.NOT_APPLICABLE:
            return False
        return not self.success or self.low_confidence or len(self.warnings) > 0
