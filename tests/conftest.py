"""Pytest configuration and shared fixtures for septic estimator tests."""

import os
import sys
from typing import Any, Dict

import pytest


# ============================================================================
# Ensure local imports work without an editable install
# ============================================================================
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from septic_estimator.models.cost_tables import (  # noqa: E402
    CostTables,
    RegionalCostTable,
    SepticCostTable,
)
from septic_estimator.services.cost_data_service import load_cost_tables_sync  # noqa: E402


# ============================================================================
# Cost Table Fixtures
# ============================================================================

@pytest.fixture
def systems_document() -> Dict[str, Any]:
    """A small installation/repair/maintenance document with round numbers."""
    return {
        "version": "test",
        "soil_types": {"good": "Good", "sandy": "Sandy", "clay": "Clay"},
        "systems": {
            "conventional-gravity": {
                "name": "Conventional Gravity System",
                "soil_factors": {"good": 1.0, "sandy": 1.1, "clay": None},
                "components": {
                    "permit": {"range": [500, 1000]},
                    "tank": {"range": [1000, 2000]},
                    "drainfield": {"range": [1000, 1500], "per_bedroom": True},
                    "labor": {"range": [2000, 3000]},
                },
            },
            "mound": {
                "name": "Mound System",
                "soil_factors": {"good": 1.0, "sandy": 1.0, "clay": 1.2},
                "components": {
                    "permit": {"range": [1000, 2000]},
                    "tank": {"range": [1500, 2500]},
                    "mound": {"range": [3000, 4000], "per_bedroom": True},
                    "labor": {"range": [4000, 6000]},
                },
            },
            "aerobic": {
                "name": "Aerobic Treatment Unit",
                "soil_factors": {"good": 1.0, "sandy": 1.0, "clay": 1.3},
                "components": {
                    "unit": {"range": [8000, 12000], "label": "Aerobic Unit"},
                    "labor": {"range": [3000, 5000]},
                },
            },
        },
        "tank_sizes": [1000, 1250, 1500],
        "base_tank_size": 1000,
        "tank_materials": {
            "concrete": {"name": "Concrete", "multiplier": 1.0},
            "plastic": {"name": "Plastic", "multiplier": 0.9},
        },
        "water_usage": {"low": 0.9, "average": 1.0, "high": 1.2},
        "area_types": {
            "rural": {"name": "Rural", "multiplier": 1.1},
            "suburban": {"name": "Suburban", "multiplier": 1.0},
            "urban": {"name": "Urban", "multiplier": 1.2},
        },
        "repair": {
            "baffle-repair": {"name": "Baffle Repair", "range": [300, 900]},
            "pump-replacement": {"name": "Pump Replacement", "range": [800, 1500]},
        },
        "maintenance": {
            "pumping": {
                "name": "Tank Pumping",
                "by_tank_size": {"1000": [300, 450], "1500": [400, 600]},
            },
            "inspection": {"name": "Inspection", "range": [150, 400]},
        },
    }


@pytest.fixture
def regional_document() -> Dict[str, Any]:
    """A small regional document with one state above, one at and one below average."""
    return {
        "version": "test",
        "regions": {
            "default": {"name": "National Average", "multiplier": 1.0},
            "MO": {"name": "Missouri", "multiplier": 1.0},
            "CA": {
                "name": "California",
                "multiplier": 1.4,
                "sub_regions": [
                    {"name": "Bay Area", "zip_start": "94000", "zip_end": "95199", "multiplier": 1.25},
                ],
            },
            "TX": {"name": "Texas", "multiplier": 0.8},
        },
    }


@pytest.fixture
def tables(systems_document, regional_document) -> CostTables:
    """Validated tables built from the small documents."""
    return CostTables(
        systems=SepticCostTable.model_validate(systems_document),
        regional=RegionalCostTable.model_validate(regional_document),
    )


@pytest.fixture(scope="session")
def bundled_tables() -> CostTables:
    """The cost tables shipped with the package."""
    return load_cost_tables_sync()


# ============================================================================
# Form Fixtures
# ============================================================================

@pytest.fixture
def installation_form() -> Dict[str, Any]:
    """A complete installation submission at national-average pricing."""
    return {
        "work-type": "installation",
        "region": "MO",
        "area-type": "suburban",
        "bedrooms": "3",
        "people": "3-4",
        "water-usage": "average",
        "soil-type": "good",
        "system-type": "conventional-gravity",
        "tank-size": "1000",
        "tank-material": "concrete",
    }


@pytest.fixture
def repair_form() -> Dict[str, Any]:
    return {
        "work-type": "repair",
        "region": "MO",
        "repair-item": ["baffle-repair", "pump-replacement"],
    }


@pytest.fixture
def maintenance_form() -> Dict[str, Any]:
    return {
        "work-type": "maintenance",
        "region": "MO",
        "maint-tank-size": "1500",
        "maintenance-item": "pumping,inspection",
    }
