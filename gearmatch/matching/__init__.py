"""Accessory matching engine.

Classifier → candidate generator → exact / fuzzy / alternative-format
matchers → ranker, coordinated by AccessorySelector.
"""

from gearmatch.matching.orchestrator import (
    AccessorySelector,
    select_flexible_coupling,
    select_standby_pump,
)

__all__ = ["AccessorySelector", "select_flexible_coupling", "select_standby_pump"]
