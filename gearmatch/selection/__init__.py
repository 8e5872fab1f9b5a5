"""Gearbox, coupling and package selection built on the matching engine."""

from gearmatch.selection.coupling import (
    CouplingScorer,
    check_coupling,
    required_coupling_torque,
    select_coupling,
)
from gearmatch.selection.gearbox import GearboxRequirement, GearboxSelector, select_gearbox
from gearmatch.selection.pipeline import PackageSelection, select_package

__all__ = [
    "CouplingScorer",
    "GearboxRequirement",
    "GearboxSelector",
    "PackageSelection",
    "check_coupling",
    "required_coupling_torque",
    "select_coupling",
    "select_gearbox",
    "select_package",
]
