"""Pytest configuration and fixtures for gearmatch tests.

Provides catalogs, synthetic rule sets and the packaged rule repository.
"""

from __future__ import annotations

import pytest

from gearmatch.config import AppConfig
from gearmatch.models import CatalogItem, GearboxItem
from gearmatch.rules.loader import load_rule_set_from_mapping
from gearmatch.rules.models import RuleSet
from gearmatch.rules.repository import RuleRepository, load_repository


@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration, independent of the environment."""
    return AppConfig()


@pytest.fixture
def synthetic_rules_data() -> dict:
    """Minimal rule table with one decimal-coded series."""
    return {
        "accessory": "standby_pump",
        "default_target": "GEN-1.5/1D",
        "applicability": {
            "power_threshold_kw": 600,
            "default": False,
            "series": {"AA": {"always": True}},
        },
        "series": {
            "AA": {
                "coding": "decimal",
                "rules": [
                    {"range": [28.30, 45.49], "target": "T-7.5/2.5D", "alternates": ["T-7.5/2.5"]},
                    {"range": [50.0, 60.0], "target": "T-14.2/2.5D"},
                ],
            }
        },
    }


@pytest.fixture
def synthetic_rule_set(synthetic_rules_data: dict) -> RuleSet:
    """RuleSet built from the synthetic table."""
    return load_rule_set_from_mapping(synthetic_rules_data, source="synthetic")


@pytest.fixture(scope="session")
def repository() -> RuleRepository:
    """Rule repository loaded from the packaged YAML tables."""
    return load_repository()


@pytest.fixture
def pump_catalog() -> list[CatalogItem]:
    """Standby pump catalog."""
    return [
        CatalogItem(model="2CY-5/2.5", flow=5, pressure=2.5, motor_power=1.5, price=2100),
        CatalogItem(model="2CY-7.5/2.5D", flow=7.5, pressure=2.5, motor_power=2.2, price=2800),
        CatalogItem(model="2CY-14.2/2.5D", flow=14.2, pressure=2.5, motor_power=3.0, price=3900),
        CatalogItem(model="2CY-24.8/2.5D", flow=24.8, pressure=2.5, motor_power=5.5, price=5600),
        CatalogItem(model="2CYA-1.1/0.8D", flow=1.1, pressure=0.8, motor_power=0.55, price=1500),
    ]


@pytest.fixture
def coupling_catalog() -> list[CatalogItem]:
    """Highly flexible coupling catalog (torque in kN·m)."""
    return [
        CatalogItem(model="HGTHT4", torque=4.0, torque_unit="kN·m", max_speed=4000, price=9000),
        CatalogItem(model="HGTHB5", torque=5.0, torque_unit="kN·m", max_speed=3000, price=12000),
        CatalogItem(model="HGTHJB5", torque=5.0, torque_unit="kN·m", max_speed=3000, price=14500),
        CatalogItem(model="HGTHB6.3A", torque=6.3, torque_unit="kN·m", max_speed=2800, price=15800),
        CatalogItem(model="HGTHJB6.3A", torque=6.3, torque_unit="kN·m", max_speed=2800, price=18000),
        CatalogItem(model="HGHQT1210IW", torque=12.0, torque_unit="kN·m", max_speed=2500, price=26000),
        CatalogItem(model="HGTHB8", torque=8.0, torque_unit="kN·m", max_speed=2500, price=21000),
    ]


@pytest.fixture
def gearbox_catalog() -> list[GearboxItem]:
    """Gearbox catalog across HC and GW series."""
    return [
        GearboxItem(
            model="HC400",
            series="HC",
            ratios=[1.5, 2.0, 2.5, 3.0],
            transfer_capacity=[0.30, 0.30, 0.28, 0.25],
            input_speed_range=(1000, 2500),
            thrust=50,
            price=30000,
        ),
        GearboxItem(
            model="HC600",
            series="HC",
            ratios=[1.5, 2.0, 2.5, 3.0],
            transfer_capacity=[0.45, 0.45, 0.42, 0.40],
            input_speed_range=(1000, 2500),
            thrust=60,
            price=42000,
        ),
        GearboxItem(
            model="HC1000",
            series="HC",
            ratios=[2.0, 2.5, 3.0, 3.5],
            transfer_capacity=[0.75, 0.75, 0.70, 0.66],
            input_speed_range=(1000, 2100),
            thrust=80,
            price=65000,
        ),
        GearboxItem(
            model="GW39.41",
            series="GW",
            ratios=[2.5, 3.0, 3.5],
            transfer_capacity=[1.20, 1.10, 1.00],
            input_speed_range=(600, 1800),
            thrust=150,
            price=180000,
        ),
    ]
