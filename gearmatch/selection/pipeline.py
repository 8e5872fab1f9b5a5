"""Package selection: gearbox, then its coupling and standby pump."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from gearmatch.matching.orchestrator import select_standby_pump
from gearmatch.models import SelectionContext, SelectionOutcome
from gearmatch.rules.repository import RuleRepository
from gearmatch.selection.coupling import select_coupling
from gearmatch.selection.gearbox import GearboxSelectionOutcome, select_gearbox

logger = logging.getLogger(__name__)


class PackageSelection(BaseModel):
    """Gearbox plus the accessories selected for the top-ranked gearbox."""

    model_config = ConfigDict(frozen=True)

    gearbox: GearboxSelectionOutcome
    coupling: SelectionOutcome | None = None
    standby_pump: SelectionOutcome | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.gearbox.success

    @property
    def needs_review(self) -> bool:
        accessories = [o for o in (self.coupling, self.standby_pump) if o is not None]
        return not self.success or bool(self.warnings) or any(o.needs_review for o in accessories)


def select_package(
    power: float,
    speed: float,
    target_ratio: float,
    gearbox_catalog: Any,
    coupling_catalog: Any = (),
    pump_catalog: Any = (),
    thrust: float = 0.0,
    series: str | None = None,
    work_condition: str | None = None,
    temperature: float | None = None,
    has_cover: bool = False,
    repository: RuleRepository | None = None,
) -> PackageSelection:
    """Select a gearbox and the accessories it needs.

    Pipeline:
    1. Gearbox selection (one series, or auto across all series)
    2. Coupling for the top gearbox, checked against engine torque
    3. Standby pump for the top gearbox (rated power as context)
    4. Warnings consolidated across all three

    Args:
        power: Engine power, kW
        speed: Engine speed, rpm
        target_ratio: Target reduction ratio
        gearbox_catalog: Gearbox catalog
        coupling_catalog: Coupling catalog
        pump_catalog: Standby pump catalog
        thrust: Required thrust, kN
        series: Restrict gearbox selection to one series
        work_condition: Coupling work condition class (I-V)
        temperature: Ambient temperature, °C
        has_cover: Prefer covered couplings
        repository: Rule repository (default: packaged tables)

    Returns:
        PackageSelection (accessories are None when no gearbox was found)
    """
    gearbox = select_gearbox(power, speed, target_ratio, gearbox_catalog, thrust=thrust, series=series)
    if not gearbox.success or gearbox.chosen is None:
        return PackageSelection(gearbox=gearbox, warnings=list(gearbox.warnings))

    chosen = gearbox.chosen
    context = SelectionContext(
        power=power,
        speed=speed,
        engine_torque=gearbox.requirement.engine_torque,
        work_condition=work_condition,
        temperature=temperature,
        has_cover=has_cover,
    )

    coupling = select_coupling(chosen.model, coupling_catalog, context, repository)
    pump = select_standby_pump(chosen.model, pump_catalog, context, repository)

    warnings = list(gearbox.warnings)
    for label, outcome in (("coupling", coupling), ("standby pump", pump)):
        warnings.extend(outcome.warnings)
        if not outcome.success and outcome.requires_accessory:
            warnings.append(f"{chosen.model}: {label} unresolved; {outcome.message}")

    logger.info(
        f"Package: {chosen.model}, coupling {_chosen_model(coupling)}, pump {_chosen_model(pump)}"
    )
    return PackageSelection(gearbox=gearbox, coupling=coupling, standby_pump=pump, warnings=warnings)


def _chosen_model(outcome: SelectionOutcome) -> str:
    if outcome.chosen is not None:
        return outcome.chosen.catalog_item.model
    if not outcome.requires_accessory:
        return "not required"
    return f"unresolved (suggested {outcome.suggested_model})"
