"""
Unit Tests for the Pricing Engine.

Tests cover:
- Installation, repair and maintenance totals
- Multiplier chain (soil, tank size, material, water usage, area, region)
- Soil/system incompatibility
- Rounding to the configured increment
- Regional scaling of the breakdown

Usage:
    python3 -m pytest tests/unit/test_pricing_engine.py -v
"""

import pytest

from septic_estimator.config.errors import ErrorCode, ValidationError
from septic_estimator.models.estimate import EstimateResult, IncompatibleSelection
from septic_estimator.models.selection import UserSelection, WaterUsage, WorkType
from septic_estimator.services.pricing_engine import (
    calculate_estimate,
    calculate_maintenance,
    calculate_repair,
    humanize_key,
    round_to_increment,
    suggest_systems,
)


def _installation(**overrides) -> UserSelection:
    data = {
        "work_type": WorkType.INSTALLATION,
        "region": "MO",
        "bedrooms": 3,
        "soil_type": "good",
        "system_type": "conventional-gravity",
        "tank_size": 1000,
        "tank_material": "concrete",
    }
    data.update(overrides)
    return UserSelection(**data)


# =============================================================================
# Helpers
# =============================================================================


class TestRounding:
    """Tests for round_to_increment."""

    def test_rounds_half_up(self):
        assert round_to_increment(125, 50) == 150
        assert round_to_increment(124, 50) == 100

    def test_exact_multiple_unchanged(self):
        assert round_to_increment(6500, 50) == 6500

    def test_other_increment(self):
        assert round_to_increment(7150, 100) == 7200

    def test_humanize_key(self):
        assert humanize_key("pump_chamber") == "Pump Chamber"
        assert humanize_key("drip-tubing") == "Drip Tubing"


# =============================================================================
# Installation
# =============================================================================


class TestInstallation:
    """Tests for new system installation estimates."""

    def test_base_case_sums_components(self, tables):
        """Good soil, 3 bedrooms, multiplier 1.0 = permit + tank + drainfield x3 + labor."""
        result = calculate_estimate(_installation(), tables)

        assert isinstance(result, EstimateResult)
        assert result.low == 500 + 1000 + 1000 * 3 + 2000
        assert result.high == 1000 + 2000 + 1500 * 3 + 3000
        assert result.combined_multiplier == pytest.approx(1.0)

    def test_breakdown_lists_every_component(self, tables):
        result = calculate_estimate(_installation(), tables)

        keys = [line.key for line in result.breakdown]
        assert keys == ["permit", "tank", "drainfield", "labor"]
        drainfield = result.breakdown[2]
        assert drainfield.label == "Drainfield (3 bedrooms)"
        assert (drainfield.low, drainfield.high) == (3000, 4500)

    def test_component_label_override(self, tables):
        result = calculate_estimate(_installation(system_type="aerobic"), tables)
        assert result.breakdown[0].label == "Aerobic Unit"

    def test_breakdown_sums_to_total(self, tables):
        result = calculate_estimate(_installation(region="CA", soil_type="sandy"), tables)
        assert sum(line.low for line in result.breakdown) == pytest.approx(result.low, abs=25)
        assert sum(line.high for line in result.breakdown) == pytest.approx(result.high, abs=25)

    def test_low_not_above_high(self, tables):
        for soil in ("good", "sandy", "clay"):
            for system in ("conventional-gravity", "mound", "aerobic"):
                for bedrooms in (1, 4, 6):
                    result = calculate_estimate(
                        _installation(soil_type=soil, system_type=system, bedrooms=bedrooms),
                        tables,
                    )
                    if isinstance(result, EstimateResult):
                        assert result.low <= result.high

    def test_soil_factor_applied(self, tables):
        result = calculate_estimate(_installation(soil_type="sandy"), tables)
        assert result.multipliers["soil"] == 1.1
        assert result.low == 7150
        assert result.high == 11550

    def test_tank_size_ratio_applied(self, tables):
        result = calculate_estimate(_installation(tank_size=1500), tables)
        assert result.multipliers["tank_size"] == 1.5
        assert result.low == 9750
        assert result.high == 15750
        assert any("1,500 gallon" in note for note in result.notes)

    def test_missing_tank_size_uses_base(self, tables):
        result = calculate_estimate(_installation(tank_size=None), tables)
        assert result.multipliers["tank_size"] == 1.0

    def test_tank_material_applied(self, tables):
        result = calculate_estimate(_installation(tank_material="plastic"), tables)
        assert result.multipliers["tank_material"] == 0.9
        assert result.low == 5850
        assert result.high == 9450

    def test_water_usage_applied(self, tables):
        result = calculate_estimate(_installation(water_usage=WaterUsage.HIGH), tables)
        assert result.multipliers["water_usage"] == 1.2
        assert result.low == 7800
        assert result.high == 12600
        assert any("high water usage" in note for note in result.notes)

    def test_area_type_applied(self, tables):
        result = calculate_estimate(_installation(area_type="urban"), tables)
        assert result.multipliers["area_type"] == 1.2
        assert result.low == 7800

    def test_multipliers_compound(self, tables):
        result = calculate_estimate(
            _installation(soil_type="sandy", tank_size=1500, region="TX"),
            tables,
        )
        expected = 1.1 * 1.5 * 0.8
        assert result.combined_multiplier == pytest.approx(expected)
        assert result.low == round_to_increment(6500 * expected, 50)
        assert result.high == round_to_increment(10500 * expected, 50)

    def test_rounding_increment_override(self, tables):
        result = calculate_estimate(_installation(soil_type="sandy"), tables, rounding_increment=100)
        assert result.low == 7200
        assert result.high == 11600

    def test_totals_are_multiples_of_increment(self, tables):
        result = calculate_estimate(_installation(region="CA", zip_code="94110"), tables)
        assert result.low % 50 == 0
        assert result.high % 50 == 0

    def test_missing_system_rejected(self, tables):
        with pytest.raises(ValidationError) as exc:
            calculate_estimate(_installation(system_type=None), tables)
        assert exc.value.field == "system-type"
        assert exc.value.code == ErrorCode.MISSING_FIELD

    def test_details_and_notes(self, tables):
        result = calculate_estimate(_installation(), tables)
        labels = [d.label for d in result.details]
        assert "Location" in labels
        assert "System Type" in labels
        assert result.notes[-1].startswith("Disclaimer:")
        assert "+0%" in result.notes[0]


# =============================================================================
# Incompatibility
# =============================================================================


class TestIncompatibleSelection:
    """Tests for soil/system combinations that cannot be built."""

    def test_incompatible_pair_returns_error_result(self, tables):
        result = calculate_estimate(_installation(soil_type="clay"), tables)

        assert isinstance(result, IncompatibleSelection)
        assert result.is_error is True
        assert result.soil_type == "clay"
        assert result.system_type == "conventional-gravity"

    def test_incompatible_suggests_alternatives(self, tables):
        result = calculate_estimate(_installation(soil_type="clay"), tables)

        assert result.suggested_systems == ["mound", "aerobic"]
        assert 'not suitable for properties with "Clay" soil' in result.message
        assert "Mound System or Aerobic Treatment Unit" in result.message

    def test_incompatible_in_every_region(self, tables):
        for region in ("MO", "CA", "TX"):
            result = calculate_estimate(_installation(soil_type="clay", region=region), tables)
            assert result.is_error

    def test_suggest_systems_excludes_current(self, tables):
        assert suggest_systems(tables.systems, "good", exclude="mound") == [
            "aerobic",
            "conventional-gravity",
        ]


# =============================================================================
# Regional Adjustment
# =============================================================================


class TestRegionalScaling:
    """Changing only the region scales every line by the same factor."""

    @pytest.mark.parametrize("region,factor", [("CA", 1.4), ("TX", 0.8)])
    def test_breakdown_scales_uniformly(self, tables, region, factor):
        base = calculate_estimate(_installation(), tables)
        moved = calculate_estimate(_installation(region=region), tables)

        for before, after in zip(base.breakdown, moved.breakdown):
            assert after.low == pytest.approx(before.low * factor, abs=0.01)
            assert after.high == pytest.approx(before.high * factor, abs=0.01)

    def test_neutral_region_leaves_costs_unchanged(self, tables):
        result = calculate_estimate(_installation(region="MO"), tables)
        assert result.multipliers["regional"] == 1.0
        assert [(l.low, l.high) for l in result.breakdown] == [
            (500, 1000),
            (1000, 2000),
            (3000, 4500),
            (2000, 3000),
        ]

    def test_sub_region_compounds_with_state(self, tables):
        result = calculate_estimate(_installation(region="CA", zip_code="94110"), tables)
        assert result.multipliers["regional"] == pytest.approx(1.4 * 1.25)
        assert "Bay Area" in result.region_name

    def test_repair_scales_with_region(self, tables):
        base = calculate_repair(
            UserSelection(work_type=WorkType.REPAIR, region="MO", repair_items=["baffle-repair"]),
            tables,
        )
        moved = calculate_repair(
            UserSelection(work_type=WorkType.REPAIR, region="TX", repair_items=["baffle-repair"]),
            tables,
        )
        assert moved.breakdown[0].low == pytest.approx(base.breakdown[0].low * 0.8)


# =============================================================================
# Repair / Maintenance
# =============================================================================


class TestRepair:
    """Tests for repair estimates."""

    def test_sums_selected_items(self, tables):
        selection = UserSelection(
            work_type=WorkType.REPAIR,
            region="MO",
            repair_items=["baffle-repair", "pump-replacement"],
        )
        result = calculate_estimate(selection, tables)

        assert result.work_type == WorkType.REPAIR
        assert (result.low, result.high) == (1100, 2400)
        assert [line.label for line in result.breakdown] == ["Baffle Repair", "Pump Replacement"]
        assert "excavation" in result.notes[0]

    def test_area_type_applies_and_rounds(self, tables):
        selection = UserSelection(
            work_type=WorkType.REPAIR,
            region="MO",
            area_type="rural",
            repair_items=["baffle-repair", "pump-replacement"],
        )
        result = calculate_estimate(selection, tables)
        assert (result.low, result.high) == (1200, 2650)

    def test_zero_items_rejected(self, tables):
        selection = UserSelection(work_type=WorkType.REPAIR, region="MO")
        with pytest.raises(ValidationError) as exc:
            calculate_repair(selection, tables)
        assert exc.value.code == ErrorCode.MISSING_FIELD
        assert exc.value.field == "repair-item"

    def test_unknown_item_rejected(self, tables):
        selection = UserSelection(work_type=WorkType.REPAIR, region="MO", repair_items=["gold-plating"])
        with pytest.raises(ValidationError):
            calculate_repair(selection, tables)


class TestMaintenance:
    """Tests for maintenance estimates."""

    def test_tank_size_priced_item(self, tables):
        selection = UserSelection(
            work_type=WorkType.MAINTENANCE,
            region="MO",
            maintenance_items=["pumping", "inspection"],
            maintenance_tank_size=1500,
        )
        result = calculate_estimate(selection, tables)

        assert (result.low, result.high) == (550, 1000)
        assert result.breakdown[0].label == "Tank Pumping (1,500 gal)"
        assert any("3 to 5 years" in note for note in result.notes)

    def test_between_sizes_uses_next_larger(self, tables):
        selection = UserSelection(
            work_type=WorkType.MAINTENANCE,
            region="MO",
            maintenance_items=["pumping"],
            maintenance_tank_size=1250,
        )
        result = calculate_maintenance(selection, tables)
        assert (result.low, result.high) == (400, 600)

    def test_missing_tank_size_uses_base(self, tables):
        selection = UserSelection(
            work_type=WorkType.MAINTENANCE,
            region="MO",
            maintenance_items=["pumping", "inspection"],
        )
        result = calculate_maintenance(selection, tables)
        assert (result.low, result.high) == (450, 850)

    def test_zero_items_rejected(self, tables):
        selection = UserSelection(work_type=WorkType.MAINTENANCE, region="MO")
        with pytest.raises(ValidationError) as exc:
            calculate_maintenance(selection, tables)
        assert exc.value.field == "maintenance-item"


# =============================================================================
# Bundled Data
# =============================================================================


class TestBundledTables:
    """Checks against the cost data shipped with the package."""

    def test_reference_installation(self, bundled_tables):
        result = calculate_estimate(_installation(), bundled_tables)
        system = bundled_tables.systems.systems["conventional-gravity"]
        c = system.components
        assert result.low == c["permit"].range.low + c["tank"].range.low + 3 * c["drainfield"].range.low + c["labor"].range.low
        assert result.high == c["permit"].range.high + c["tank"].range.high + 3 * c["drainfield"].range.high + c["labor"].range.high

    def test_every_compatible_pair_is_priced(self, bundled_tables):
        table = bundled_tables.systems
        for system_key, system in table.systems.items():
            for soil in table.soil_types:
                result = calculate_estimate(
                    _installation(soil_type=soil, system_type=system_key, region="CA"),
                    bundled_tables,
                )
                assert result.is_error == (system.soil_factor(soil) is None)
                if not result.is_error:
                    assert 0 <= result.low <= result.high
