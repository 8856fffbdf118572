"""Pydantic models for cost tables, user selections and estimate results."""

from septic_estimator.models.cost_tables import (
    PriceRange,
    CostComponent,
    SepticSystem,
    NamedMultiplier,
    RepairItem,
    MaintenanceItem,
    SepticCostTable,
    SubRegion,
    StateAdjustment,
    RegionalCostTable,
    RegionalAdjustment,
    CostTables,
)
from septic_estimator.models.selection import (
    WorkType,
    WaterUsage,
    OccupantBand,
    UserSelection,
)
from septic_estimator.models.estimate import (
    BreakdownLine,
    DetailLine,
    EstimateResult,
    IncompatibleSelection,
    EstimateOutcome,
)

__all__ = [
    "PriceRange",
    "CostComponent",
    "SepticSystem",
    "NamedMultiplier",
    "RepairItem",
    "MaintenanceItem",
    "SepticCostTable",
    "SubRegion",
    "StateAdjustment",
    "RegionalCostTable",
    "RegionalAdjustment",
    "CostTables",
    "WorkType",
    "WaterUsage",
    "OccupantBand",
    "UserSelection",
    "BreakdownLine",
    "DetailLine",
    "EstimateResult",
    "IncompatibleSelection",
    "EstimateOutcome",
]
