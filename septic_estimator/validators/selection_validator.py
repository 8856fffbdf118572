"""Form boundary parsing and validation.

Turns the flat field-name -> value map submitted by the wizard (or posted
as JSON to the API) into a typed ``UserSelection``. Keys are checked against
the loaded cost tables so the pricing engine only ever sees known entries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
import structlog

from septic_estimator.config.errors import ErrorCode, ValidationError
from septic_estimator.models.cost_tables import CostTables
from septic_estimator.models.selection import OccupantBand, UserSelection, WaterUsage, WorkType
from septic_estimator.services.cost_data_service import estimate_state_from_zip
from septic_estimator.services.wizard import FIELDS_BY_WORK_TYPE, recommend_tank_size

logger = structlog.get_logger(__name__)

LOCATION_PROMPT = "Please select a location."
SITE_PROMPT = "Please fill out all site and system fields."
REPAIR_PROMPT = "Please select at least one repair item."
MAINTENANCE_PROMPT = "Please select at least one maintenance item."

MULTI_FIELDS = ("repair-item", "maintenance-item")

# Form field -> UserSelection attribute
FIELD_ATTRIBUTES = {
    "region": "region",
    "zip-code": "zip_code",
    "area-type": "area_type",
    "bedrooms": "bedrooms",
    "people": "occupants",
    "water-usage": "water_usage",
    "soil-type": "soil_type",
    "system-type": "system_type",
    "tank-size": "tank_size",
    "tank-material": "tank_material",
    "repair-item": "repair_items",
    "maintenance-item": "maintenance_items",
    "maint-tank-size": "maintenance_tank_size",
}


@dataclass
class ValidationResult:
    """Result of selection validation."""
    is_valid: bool = True
    errors: List[Dict[str, Any]] = field(default_factory=list)
    parsed: Optional[UserSelection] = None


# =============================================================================
# Field helpers
# =============================================================================


def _get_value(form: Mapping[str, Any], key: str) -> Optional[str]:
    value = form.get(key)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
        if value is None:
            return None
    value = str(value).strip()
    return value or None


def _get_multi(form: Mapping[str, Any], key: str) -> List[str]:
    """Multi-select values from a list, a MultiDict or a comma-separated string."""
    if hasattr(form, "getlist"):
        raw = form.getlist(key)
    else:
        raw = form.get(key)
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raw = [raw]

    items: List[str] = []
    for entry in raw:
        for part in str(entry).split(","):
            part = part.strip()
            if part and part not in items:
                items.append(part)
    return items


def _parse_int(value: Optional[str], field_name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValidationError(
            f"'{value}' is not a valid number.",
            field=field_name,
            code=ErrorCode.INVALID_FIELD,
        ) from e


def _parse_bedrooms(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    if value.endswith("+"):
        value = value[:-1]
    bedrooms = _parse_int(value, "bedrooms")
    if bedrooms is not None and not 1 <= bedrooms <= 6:
        raise ValidationError(
            "Number of bedrooms must be between 1 and 6+.",
            field="bedrooms",
            code=ErrorCode.INVALID_FIELD,
        )
    return bedrooms


def _require_key(value: str, allowed, field_name: str, label: str) -> str:
    if value not in allowed:
        raise ValidationError(
            f"Unknown {label} '{value}'.",
            field=field_name,
            code=ErrorCode.INVALID_FIELD,
            details={"allowed": sorted(allowed)},
        )
    return value


# =============================================================================
# Parsing
# =============================================================================


def parse_selection(
    form: Mapping[str, Any],
    tables: CostTables,
    default_area_type: str = "suburban",
) -> UserSelection:
    """Parse a submitted form into a UserSelection.

    Only fields visible for the chosen work type are read, so hidden
    answers never reach the calculation.

    Args:
        form: Flat field-name -> value map (dict or MultiDict).
        tables: Loaded cost tables used to check keys.
        default_area_type: Area type used when none was submitted.

    Returns:
        Validated UserSelection.

    Raises:
        ValidationError: With ``field`` naming the input to complete or fix.
    """
    table = tables.systems

    raw_work_type = _get_value(form, "work-type")
    if raw_work_type is None:
        raise ValidationError(
            "Please choose the type of work.", field="work-type", code=ErrorCode.MISSING_FIELD
        )
    try:
        work_type = WorkType(raw_work_type)
    except ValueError as e:
        raise ValidationError(
            f"Unknown work type '{raw_work_type}'.", field="work-type", code=ErrorCode.INVALID_FIELD
        ) from e
    visible = FIELDS_BY_WORK_TYPE[work_type]

    def value(key: str) -> Optional[str]:
        return _get_value(form, key) if key in visible else None

    # Location: a state, or a ZIP code whose prefix maps to a known state
    zip_code = value("zip-code")
    if zip_code is not None and not (len(zip_code) == 5 and zip_code.isdigit()):
        raise ValidationError(
            "ZIP code must be 5 digits.", field="zip-code", code=ErrorCode.INVALID_FIELD
        )

    region = value("region")
    if region is not None:
        region = region.upper()
        _require_key(region, tables.regional.states(), "region", "region")
    else:
        region = estimate_state_from_zip(zip_code)
        if region not in tables.regional.states():
            raise ValidationError(LOCATION_PROMPT, field="region", code=ErrorCode.MISSING_FIELD)

    area_type = value("area-type") or default_area_type
    _require_key(area_type, table.area_types, "area-type", "area type")

    data: Dict[str, Any] = {
        "work_type": work_type,
        "region": region,
        "zip_code": zip_code,
        "area_type": area_type,
    }

    if work_type == WorkType.INSTALLATION:
        bedrooms = _parse_bedrooms(value("bedrooms"))
        soil_type = value("soil-type")
        system_type = value("system-type")
        for field_name, present in (
            ("bedrooms", bedrooms),
            ("soil-type", soil_type),
            ("system-type", system_type),
        ):
            if present is None:
                raise ValidationError(SITE_PROMPT, field=field_name, code=ErrorCode.MISSING_FIELD)

        _require_key(soil_type, table.soil_types, "soil-type", "soil type")
        _require_key(system_type, table.systems, "system-type", "system type")

        people = value("people")
        if people is not None:
            _require_key(people, {band.value for band in OccupantBand}, "people", "occupant count")

        water_usage = value("water-usage") or WaterUsage.AVERAGE.value
        _require_key(water_usage, {level.value for level in WaterUsage}, "water-usage", "water usage")

        tank_material = value("tank-material") or "concrete"
        _require_key(tank_material, table.tank_materials, "tank-material", "tank material")

        tank_size = _parse_int(value("tank-size"), "tank-size")
        if tank_size is None:
            tank_size = recommend_tank_size(value("bedrooms"), people)
        elif tank_size not in table.tank_sizes:
            raise ValidationError(
                f"Unsupported tank size {tank_size}.",
                field="tank-size",
                code=ErrorCode.INVALID_FIELD,
                details={"allowed": table.tank_sizes},
            )

        data.update(
            bedrooms=bedrooms,
            occupants=people,
            water_usage=water_usage,
            soil_type=soil_type,
            system_type=system_type,
            tank_size=tank_size,
            tank_material=tank_material,
        )

    elif work_type == WorkType.REPAIR:
        items = _get_multi(form, "repair-item")
        if not items:
            raise ValidationError(REPAIR_PROMPT, field="repair-item", code=ErrorCode.MISSING_FIELD)
        for item in items:
            _require_key(item, table.repair, "repair-item", "repair item")
        data["repair_items"] = items

    else:
        items = _get_multi(form, "maintenance-item")
        if not items:
            raise ValidationError(
                MAINTENANCE_PROMPT, field="maintenance-item", code=ErrorCode.MISSING_FIELD
            )
        for item in items:
            _require_key(item, table.maintenance, "maintenance-item", "maintenance item")
        tank_size = _parse_int(value("maint-tank-size"), "maint-tank-size")
        data["maintenance_items"] = items
        data["maintenance_tank_size"] = tank_size

    try:
        selection = UserSelection.model_validate(data)
    except PydanticValidationError as e:
        err = e.errors()[0]
        attr = str(err["loc"][0]) if err["loc"] else None
        field_name = next((k for k, a in FIELD_ATTRIBUTES.items() if a == attr), attr)
        raise ValidationError(
            err["msg"], field=field_name, code=ErrorCode.INVALID_FIELD
        ) from e

    logger.debug("selection_parsed", work_type=work_type.value, region=region, zip_code=zip_code)
    return selection


def validate_selection(
    form: Mapping[str, Any],
    tables: CostTables,
    default_area_type: str = "suburban",
) -> ValidationResult:
    """Validate a submitted form without raising.

    Returns:
        ValidationResult with is_valid, errors and the parsed selection.
    """
    try:
        parsed = parse_selection(form, tables, default_area_type)
    except ValidationError as e:
        logger.info("selection_invalid", field=e.field, code=e.code, error=e.message)
        return ValidationResult(is_valid=False, errors=[e.to_dict()])
    return ValidationResult(is_valid=True, parsed=parsed)
