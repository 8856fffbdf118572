"""Unit tests for form boundary parsing."""

import pytest
from werkzeug.datastructures import MultiDict

from septic_estimator.config.errors import ErrorCode, ValidationError
from septic_estimator.models.selection import OccupantBand, WaterUsage, WorkType
from septic_estimator.validators.selection_validator import (
    LOCATION_PROMPT,
    REPAIR_PROMPT,
    SITE_PROMPT,
    parse_selection,
    validate_selection,
)


class TestInstallationParsing:
    """Tests for installation submissions."""

    def test_complete_form(self, installation_form, tables):
        selection = parse_selection(installation_form, tables)

        assert selection.work_type == WorkType.INSTALLATION
        assert selection.region == "MO"
        assert selection.bedrooms == 3
        assert selection.occupants == OccupantBand.THREE_FOUR
        assert selection.water_usage == WaterUsage.AVERAGE
        assert selection.tank_size == 1000

    def test_six_plus_bedrooms(self, installation_form, tables):
        installation_form["bedrooms"] = "6+"
        assert parse_selection(installation_form, tables).bedrooms == 6

    def test_region_is_uppercased(self, installation_form, tables):
        installation_form["region"] = "ca"
        assert parse_selection(installation_form, tables).region == "CA"

    def test_missing_region_prompts_for_location(self, installation_form, tables):
        del installation_form["region"]
        with pytest.raises(ValidationError) as exc:
            parse_selection(installation_form, tables)

        assert exc.value.message == LOCATION_PROMPT
        assert exc.value.field == "region"
        assert exc.value.code == ErrorCode.MISSING_FIELD

    @pytest.mark.parametrize("field", ["bedrooms", "soil-type", "system-type"])
    def test_missing_site_field_prompts(self, installation_form, tables, field):
        installation_form[field] = ""
        with pytest.raises(ValidationError) as exc:
            parse_selection(installation_form, tables)

        assert exc.value.message == SITE_PROMPT
        assert exc.value.field == field

    def test_missing_tank_size_uses_recommendation(self, installation_form, tables):
        del installation_form["tank-size"]
        installation_form["bedrooms"] = "5"
        assert parse_selection(installation_form, tables).tank_size == 1500

    def test_unsupported_tank_size_rejected(self, installation_form, tables):
        installation_form["tank-size"] = "900"
        with pytest.raises(ValidationError) as exc:
            parse_selection(installation_form, tables)
        assert exc.value.field == "tank-size"
        assert exc.value.code == ErrorCode.INVALID_FIELD

    def test_unknown_system_rejected(self, installation_form, tables):
        installation_form["system-type"] = "outhouse"
        with pytest.raises(ValidationError) as exc:
            parse_selection(installation_form, tables)
        assert exc.value.field == "system-type"
        assert "conventional-gravity" in exc.value.details["allowed"]

    def test_bad_zip_rejected(self, installation_form, tables):
        installation_form["zip-code"] = "9021"
        with pytest.raises(ValidationError) as exc:
            parse_selection(installation_form, tables)
        assert exc.value.field == "zip-code"

    def test_default_area_type(self, installation_form, tables):
        del installation_form["area-type"]
        assert parse_selection(installation_form, tables, default_area_type="rural").area_type == "rural"

    def test_hidden_fields_ignored(self, installation_form, tables):
        installation_form["repair-item"] = "not-a-real-item"
        installation_form["maint-tank-size"] = "abc"
        selection = parse_selection(installation_form, tables)
        assert selection.repair_items == []
        assert selection.maintenance_tank_size is None


class TestRepairAndMaintenanceParsing:
    """Tests for multi-select item submissions."""

    def test_list_values(self, repair_form, tables):
        selection = parse_selection(repair_form, tables)
        assert selection.repair_items == ["baffle-repair", "pump-replacement"]

    def test_comma_separated_values(self, maintenance_form, tables):
        selection = parse_selection(maintenance_form, tables)
        assert selection.maintenance_items == ["pumping", "inspection"]
        assert selection.maintenance_tank_size == 1500

    def test_multidict_values(self, tables):
        form = MultiDict([
            ("work-type", "repair"),
            ("region", "TX"),
            ("repair-item", "baffle-repair"),
            ("repair-item", "pump-replacement"),
        ])
        selection = parse_selection(form, tables)
        assert selection.repair_items == ["baffle-repair", "pump-replacement"]

    def test_duplicates_collapsed(self, repair_form, tables):
        repair_form["repair-item"] = "baffle-repair, baffle-repair"
        assert parse_selection(repair_form, tables).repair_items == ["baffle-repair"]

    def test_zero_repair_items_prompts(self, repair_form, tables):
        repair_form["repair-item"] = []
        with pytest.raises(ValidationError) as exc:
            parse_selection(repair_form, tables)
        assert exc.value.message == REPAIR_PROMPT
        assert exc.value.code == ErrorCode.MISSING_FIELD

    def test_installation_fields_ignored_for_repair(self, repair_form, tables):
        repair_form["system-type"] = "outhouse"
        repair_form["bedrooms"] = "99"
        selection = parse_selection(repair_form, tables)
        assert selection.system_type is None
        assert selection.bedrooms is None

    def test_unknown_maintenance_item(self, maintenance_form, tables):
        maintenance_form["maintenance-item"] = "pumping,polishing"
        with pytest.raises(ValidationError) as exc:
            parse_selection(maintenance_form, tables)
        assert exc.value.field == "maintenance-item"

    def test_non_string_item_is_invalid_not_a_crash(self, repair_form, tables):
        repair_form["repair-item"] = 5
        with pytest.raises(ValidationError) as exc:
            parse_selection(repair_form, tables)
        assert exc.value.field == "repair-item"
        assert exc.value.code == ErrorCode.INVALID_FIELD


class TestLocation:
    """Tests for resolving the location from a state or a ZIP code."""

    def test_zip_code_alone_sets_state(self, tables):
        form = {"work-type": "repair", "zip-code": "94110", "repair-item": "baffle-repair"}
        selection = parse_selection(form, tables)
        assert selection.region == "CA"
        assert selection.zip_code == "94110"

    def test_explicit_region_wins_over_zip(self, repair_form, tables):
        repair_form["zip-code"] = "94110"
        assert parse_selection(repair_form, tables).region == "MO"

    @pytest.mark.parametrize("zip_code", ["00001", "10001"])
    def test_unresolvable_zip_prompts_for_location(self, tables, zip_code):
        form = {"work-type": "repair", "zip-code": zip_code, "repair-item": "baffle-repair"}
        with pytest.raises(ValidationError) as exc:
            parse_selection(form, tables)
        assert exc.value.message == LOCATION_PROMPT
        assert exc.value.field == "region"

    def test_bundled_tables_resolve_any_state(self, bundled_tables):
        form = {"work-type": "maintenance", "zip-code": "10001", "maintenance-item": "inspection"}
        assert parse_selection(form, bundled_tables).region == "NY"


class TestWorkTypeAndResult:
    """Tests for work type handling and the non-raising wrapper."""

    def test_missing_work_type(self, tables):
        with pytest.raises(ValidationError) as exc:
            parse_selection({"region": "MO"}, tables)
        assert exc.value.field == "work-type"

    def test_unknown_work_type(self, tables):
        with pytest.raises(ValidationError) as exc:
            parse_selection({"work-type": "demolition", "region": "MO"}, tables)
        assert exc.value.code == ErrorCode.INVALID_FIELD

    def test_validate_selection_valid(self, repair_form, tables):
        result = validate_selection(repair_form, tables)
        assert result.is_valid
        assert result.parsed.work_type == WorkType.REPAIR

    def test_validate_selection_invalid(self, tables):
        result = validate_selection({"work-type": "repair"}, tables)
        assert not result.is_valid
        assert result.parsed is None
        assert result.errors[0]["details"]["field"] == "region"
