"""Pricing engine for septic installation, repair and maintenance estimates.

One canonical formula for every work type:

1. Collect base ranges (system components, or the selected repair and
   maintenance items). Installation components flagged ``per_bedroom``
   are multiplied by the bedroom count.
2. Multiply every line by the same chain of independent multipliers.
   Installation: soil, tank size ratio, tank material, water usage, area
   type, region. Repair and maintenance: area type, region.
3. Sum the adjusted lines and round each bound to the rounding increment.

Permit fees are ordinary cost components, never a separate additive fee,
so changing only the region scales every breakdown line by one factor.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple

import structlog

from septic_estimator.config.errors import ValidationError, ErrorCode
from septic_estimator.config.settings import settings
from septic_estimator.models.cost_tables import (
    CostTables,
    PriceRange,
    RegionalAdjustment,
    SepticCostTable,
)
from septic_estimator.models.estimate import (
    BreakdownLine,
    DetailLine,
    EstimateOutcome,
    EstimateResult,
    IncompatibleSelection,
)
from septic_estimator.models.selection import UserSelection, WorkType
from septic_estimator.services.cost_data_service import get_regional_adjustment

logger = structlog.get_logger(__name__)

INSTALLATION_DISCLAIMER = (
    "Disclaimer: This is an advanced budget estimation. A formal quote requires a "
    "professional site evaluation and soil (percolation) test."
)
SERVICE_DISCLAIMER = (
    "Disclaimer: This is a preliminary estimate for budgeting purposes only. "
    "Costs vary with site conditions, access and contractor pricing."
)


# =============================================================================
# Helpers
# =============================================================================


def round_to_increment(value: float, increment: int) -> float:
    """Round half-up to the nearest multiple of ``increment``."""
    return float(math.floor(value / increment + 0.5) * increment)


def humanize_key(key: str) -> str:
    """Turn a data key like ``pump_chamber`` into ``Pump Chamber``."""
    return " ".join(part.capitalize() for part in key.replace("-", "_").split("_") if part)


def _percent_change(multiplier: float) -> str:
    pct = (multiplier - 1.0) * 100
    return f"{pct:+.0f}%"


def _combine(multipliers: Dict[str, float]) -> float:
    combined = 1.0
    for factor in multipliers.values():
        combined *= factor
    return combined


def _scale_lines(
    base_lines: List[Tuple[str, str, PriceRange]],
    factor: float,
) -> List[BreakdownLine]:
    return [
        BreakdownLine(
            key=key,
            label=label,
            low=round(rng.low * factor, 2),
            high=round(rng.high * factor, 2),
        )
        for key, label, rng in base_lines
    ]


def _totals(
    base_lines: List[Tuple[str, str, PriceRange]],
    factor: float,
    increment: int,
) -> Tuple[float, float]:
    total = PriceRange.zero()
    for _, _, rng in base_lines:
        total = total + rng
    return (
        round_to_increment(total.low * factor, increment),
        round_to_increment(total.high * factor, increment),
    )


def _region_details(selection: UserSelection, region: RegionalAdjustment) -> List[DetailLine]:
    details = [DetailLine(label="Location", value=region.display_name)]
    if selection.zip_code:
        details.append(DetailLine(label="ZIP Code", value=selection.zip_code))
    return details


def _region_note(region: RegionalAdjustment) -> str:
    return (
        f"Costs are adjusted by {_percent_change(region.multiplier)} "
        f"for your selected region ({region.display_name})."
    )


def _area_factor(table: SepticCostTable, area_type: str) -> Tuple[str, float]:
    area = table.area_types.get(area_type)
    if area is None:
        raise ValidationError(
            f"Unknown area type '{area_type}'.",
            field="area-type",
            code=ErrorCode.INVALID_FIELD,
        )
    return area.name, area.multiplier


def suggest_systems(table: SepticCostTable, soil_type: str, exclude: Optional[str] = None) -> List[str]:
    """Keys of systems suited to a soil type, cheapest soil factor first."""
    compatible = [
        (system.soil_factor(soil_type), key)
        for key, system in table.systems.items()
        if key != exclude and system.is_compatible_with(soil_type)
    ]
    return [key for _, key in sorted(compatible)]


# =============================================================================
# Installation
# =============================================================================


def calculate_installation(
    selection: UserSelection,
    tables: CostTables,
    rounding_increment: Optional[int] = None,
) -> EstimateOutcome:
    """Estimate a new system installation.

    Returns an IncompatibleSelection, without any arithmetic, when the
    system's soil factor for the chosen soil is null.
    """
    table = tables.systems
    increment = rounding_increment or settings.rounding_increment

    system = table.systems.get(selection.system_type or "")
    if system is None:
        raise ValidationError("Please choose a system type.", field="system-type", code=ErrorCode.MISSING_FIELD)
    if not selection.soil_type:
        raise ValidationError("Please choose a soil type.", field="soil-type", code=ErrorCode.MISSING_FIELD)
    if not selection.bedrooms:
        raise ValidationError("Please choose the number of bedrooms.", field="bedrooms", code=ErrorCode.MISSING_FIELD)

    soil_factor = system.soil_factor(selection.soil_type)
    if soil_factor is None:
        suggestions = suggest_systems(table, selection.soil_type, exclude=selection.system_type)
        soil_name = table.soil_types.get(selection.soil_type, selection.soil_type)
        alternatives = " or ".join(table.systems[key].name for key in suggestions[:2])
        message = f'A {system.name} is not suitable for properties with "{soil_name}" soil.'
        if alternatives:
            message += f" Please choose a different system, like a {alternatives}."
        logger.info(
            "estimate_incompatible",
            soil_type=selection.soil_type,
            system_type=selection.system_type,
            suggestions=suggestions,
        )
        return IncompatibleSelection(
            soil_type=selection.soil_type,
            system_type=selection.system_type,
            message=message,
            suggested_systems=suggestions,
        )

    # 1. Base component ranges
    base_lines: List[Tuple[str, str, PriceRange]] = []
    for key, component in system.components.items():
        label = component.label or humanize_key(key)
        rng = component.range
        if component.per_bedroom:
            rng = rng * selection.bedrooms
            label = f"{label} ({selection.bedrooms} bedroom{'s' if selection.bedrooms != 1 else ''})"
        base_lines.append((key, label, rng))

    # 2. Multiplier chain
    tank_size = selection.tank_size or table.base_tank_size
    material = table.tank_materials.get(selection.tank_material)
    if material is None:
        raise ValidationError(
            f"Unknown tank material '{selection.tank_material}'.",
            field="tank-material",
            code=ErrorCode.INVALID_FIELD,
        )
    water_factor = table.water_usage.get(selection.water_usage.value, 1.0)
    area_name, area_factor = _area_factor(table, selection.area_type)
    region = get_regional_adjustment(tables.regional, selection.region, selection.zip_code)

    multipliers = {
        "soil": soil_factor,
        "tank_size": tank_size / table.base_tank_size,
        "tank_material": material.multiplier,
        "water_usage": water_factor,
        "area_type": area_factor,
        "regional": region.multiplier,
    }
    combined = _combine(multipliers)

    # 3. Scale, sum, round
    breakdown = _scale_lines(base_lines, combined)
    low, high = _totals(base_lines, combined, increment)

    notes = [_region_note(region)]
    if soil_factor != 1.0:
        notes.append(
            f"A soil adjustment of {soil_factor:g}x has been applied for "
            f"{table.soil_types.get(selection.soil_type, selection.soil_type).lower()} soil."
        )
    if water_factor != 1.0:
        notes.append(
            f"A {selection.water_usage.value} water usage adjustment of {water_factor:g}x "
            f"has been applied to the subtotal."
        )
    if tank_size != table.base_tank_size:
        notes.append(f"Cost adjusted for a {tank_size:,} gallon tank.")
    if material.multiplier != 1.0:
        notes.append(f"Cost adjusted for a {material.name.lower()} tank ({material.multiplier:g}x).")
    if area_factor != 1.0:
        notes.append(f"A {area_name.lower()} site access adjustment of {area_factor:g}x has been applied.")
    notes.append(INSTALLATION_DISCLAIMER)

    details = _region_details(selection, region) + [
        DetailLine(label="Home Size", value=f"{selection.bedrooms} Bedrooms"),
        DetailLine(label="Soil Type", value=table.soil_types.get(selection.soil_type, selection.soil_type)),
        DetailLine(label="System Type", value=system.name),
        DetailLine(label="Tank", value=f"{tank_size:,} Gallons, {material.name}"),
        DetailLine(label="Water Usage", value=selection.water_usage.value.capitalize()),
        DetailLine(label="Area Type", value=area_name),
    ]
    if selection.occupants:
        details.insert(3, DetailLine(label="Occupants", value=f"{selection.occupants.value} People"))

    return EstimateResult(
        work_type=WorkType.INSTALLATION,
        title=f"Estimate for a New {system.name}",
        low=low,
        high=high,
        breakdown=breakdown,
        multipliers=multipliers,
        region_name=region.display_name,
        region_code=region.state_code,
        zip_code=selection.zip_code,
        details=details,
        notes=notes,
    )


# =============================================================================
# Repair / Maintenance
# =============================================================================


def calculate_repair(
    selection: UserSelection,
    tables: CostTables,
    rounding_increment: Optional[int] = None,
) -> EstimateResult:
    """Estimate the selected repair items."""
    table = tables.systems
    increment = rounding_increment or settings.rounding_increment

    if not selection.repair_items:
        raise ValidationError(
            "Please select at least one repair item.",
            field="repair-item",
            code=ErrorCode.MISSING_FIELD,
        )

    base_lines: List[Tuple[str, str, PriceRange]] = []
    for key in selection.repair_items:
        item = table.repair.get(key)
        if item is None:
            raise ValidationError(
                f"Unknown repair item '{key}'.", field="repair-item", code=ErrorCode.INVALID_FIELD
            )
        base_lines.append((key, item.name, item.range))

    area_name, area_factor = _area_factor(table, selection.area_type)
    region = get_regional_adjustment(tables.regional, selection.region, selection.zip_code)
    multipliers = {"area_type": area_factor, "regional": region.multiplier}
    combined = _combine(multipliers)

    low, high = _totals(base_lines, combined, increment)
    notes = [
        _region_note(region) + " Does not include excavation complexities.",
    ]
    if area_factor != 1.0:
        notes.append(f"A {area_name.lower()} site access adjustment of {area_factor:g}x has been applied.")
    notes.append(SERVICE_DISCLAIMER)

    return EstimateResult(
        work_type=WorkType.REPAIR,
        title="Estimate for System Repairs",
        low=low,
        high=high,
        breakdown=_scale_lines(base_lines, combined),
        multipliers=multipliers,
        region_name=region.display_name,
        region_code=region.state_code,
        zip_code=selection.zip_code,
        details=_region_details(selection, region) + [
            DetailLine(label="Area Type", value=area_name),
            DetailLine(label="Repair Items", value=str(len(base_lines))),
        ],
        notes=notes,
    )


def calculate_maintenance(
    selection: UserSelection,
    tables: CostTables,
    rounding_increment: Optional[int] = None,
) -> EstimateResult:
    """Estimate the selected maintenance items.

    Items priced by tank size (pumping) use the maintenance tank size,
    falling back to the base tank size when none was given.
    """
    table = tables.systems
    increment = rounding_increment or settings.rounding_increment

    if not selection.maintenance_items:
        raise ValidationError(
            "Please select at least one maintenance item.",
            field="maintenance-item",
            code=ErrorCode.MISSING_FIELD,
        )

    tank_size = selection.maintenance_tank_size or table.base_tank_size
    base_lines: List[Tuple[str, str, PriceRange]] = []
    for key in selection.maintenance_items:
        item = table.maintenance.get(key)
        if item is None:
            raise ValidationError(
                f"Unknown maintenance item '{key}'.", field="maintenance-item", code=ErrorCode.INVALID_FIELD
            )
        label = item.name
        if item.depends_on_tank_size:
            label = f"{label} ({tank_size:,} gal)"
        base_lines.append((key, label, item.price_for(tank_size)))

    area_name, area_factor = _area_factor(table, selection.area_type)
    region = get_regional_adjustment(tables.regional, selection.region, selection.zip_code)
    multipliers = {"area_type": area_factor, "regional": region.multiplier}
    combined = _combine(multipliers)

    low, high = _totals(base_lines, combined, increment)
    notes = [_region_note(region)]
    if area_factor != 1.0:
        notes.append(f"A {area_name.lower()} site access adjustment of {area_factor:g}x has been applied.")
    if "pumping" in selection.maintenance_items:
        notes.append("Most households should pump their tank every 3 to 5 years.")
    notes.append(SERVICE_DISCLAIMER)

    return EstimateResult(
        work_type=WorkType.MAINTENANCE,
        title="Estimate for System Maintenance",
        low=low,
        high=high,
        breakdown=_scale_lines(base_lines, combined),
        multipliers=multipliers,
        region_name=region.display_name,
        region_code=region.state_code,
        zip_code=selection.zip_code,
        details=_region_details(selection, region) + [
            DetailLine(label="Area Type", value=area_name),
            DetailLine(label="Tank Size", value=f"{tank_size:,} Gallons"),
        ],
        notes=notes,
    )


# =============================================================================
# Main Entry Point
# =============================================================================

_CALCULATORS = {
    WorkType.INSTALLATION: calculate_installation,
    WorkType.REPAIR: calculate_repair,
    WorkType.MAINTENANCE: calculate_maintenance,
}


def calculate_estimate(
    selection: UserSelection,
    tables: CostTables,
    rounding_increment: Optional[int] = None,
) -> EstimateOutcome:
    """Compute an estimate for a validated selection.

    Args:
        selection: Validated user selection.
        tables: Loaded cost tables.
        rounding_increment: Rounding granularity for totals, defaults to settings.

    Returns:
        EstimateResult, or IncompatibleSelection for an unsuitable soil/system pair.

    Raises:
        ValidationError: If a selection required by the work type is missing.
    """
    calculator = _CALCULATORS[selection.work_type]
    outcome = calculator(selection, tables, rounding_increment)

    if not outcome.is_error:
        logger.info(
            "estimate_calculated",
            work_type=selection.work_type.value,
            region=outcome.region_code,
            low=outcome.low,
            high=outcome.high,
            lines=len(outcome.breakdown),
        )
    return outcome
