"""Wizard controller for the three-step estimator form.

Tracks the current step and the selected work type, decides which form
fields are visible, and strips hidden fields from submitted data so a stale
installation answer can never leak into a repair estimate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import structlog

from septic_estimator.config.errors import ValidationError, ErrorCode
from septic_estimator.models.cost_tables import CostTables, SepticCostTable
from septic_estimator.models.selection import OccupantBand, WaterUsage, WorkType

logger = structlog.get_logger(__name__)


class WizardStep(IntEnum):
    WORK_TYPE = 1
    DETAILS = 2
    RESULTS = 3


LOCATION_FIELDS = ("region", "zip-code", "area-type")

FIELDS_BY_WORK_TYPE: Dict[WorkType, FrozenSet[str]] = {
    WorkType.INSTALLATION: frozenset(
        LOCATION_FIELDS
        + (
            "bedrooms",
            "people",
            "water-usage",
            "soil-type",
            "system-type",
            "tank-size",
            "tank-material",
        )
    ),
    WorkType.REPAIR: frozenset(LOCATION_FIELDS + ("repair-item",)),
    WorkType.MAINTENANCE: frozenset(LOCATION_FIELDS + ("maint-tank-size", "maintenance-item")),
}

ALL_FIELDS: FrozenSet[str] = frozenset().union(*FIELDS_BY_WORK_TYPE.values())

_LARGE_HOME_BEDROOMS = {"5", "6", "6+"}


# =============================================================================
# Recommendations
# =============================================================================


def recommend_tank_size(bedrooms: Optional[Any], people: Optional[str] = None) -> int:
    """Recommend a tank size in gallons from home size.

    1000 gal by default, 1250 for a 4 bedroom home or 5-6 occupants, 1500 for
    5 or more bedrooms or 7+ occupants. The larger recommendation wins.
    """
    bedrooms_key = str(bedrooms).strip() if bedrooms is not None else ""
    people_key = (people or "").strip()

    if bedrooms_key in _LARGE_HOME_BEDROOMS or people_key == "7+":
        return 1500
    if bedrooms_key == "4" or people_key == "5-6":
        return 1250
    return 1000


def compatible_systems(table: SepticCostTable, soil_type: Optional[str]) -> List[str]:
    """Keys of systems that can be built on a soil type.

    With no soil type selected every system is listed.
    """
    if not soil_type:
        return list(table.systems)
    return [key for key, system in table.systems.items() if system.is_compatible_with(soil_type)]


BEDROOM_CHOICES = ("1", "2", "3", "4", "5", "6+")


def form_options(
    tables: CostTables,
    soil_type: Optional[str] = None,
    bedrooms: Optional[str] = None,
    people: Optional[str] = None,
) -> Dict[str, Any]:
    """Dropdown contents for the details step.

    Systems carry a ``compatible`` flag for the chosen soil so the form can
    disable unsuitable choices, and the tank size recommendation follows the
    home size answers.
    """
    table = tables.systems
    compatible = set(compatible_systems(table, soil_type))
    return {
        "regions": [
            {"code": code, "name": state.name}
            for code, state in sorted(tables.regional.states().items(), key=lambda kv: kv[1].name)
        ],
        "area_types": [{"key": k, "name": v.name} for k, v in table.area_types.items()],
        "soil_types": [{"key": k, "name": v} for k, v in table.soil_types.items()],
        "systems": [
            {
                "key": key,
                "name": system.name,
                "description": system.description,
                "compatible": key in compatible,
            }
            for key, system in table.systems.items()
        ],
        "tank_sizes": list(table.tank_sizes),
        "tank_materials": [{"key": k, "name": v.name} for k, v in table.tank_materials.items()],
        "water_usage": [level.value for level in WaterUsage],
        "bedrooms": list(BEDROOM_CHOICES),
        "people": [band.value for band in OccupantBand],
        "repair_items": [{"key": k, "name": v.name} for k, v in table.repair.items()],
        "maintenance_items": [{"key": k, "name": v.name} for k, v in table.maintenance.items()],
        "recommended_tank_size": recommend_tank_size(bedrooms, people),
    }


# =============================================================================
# Controller
# =============================================================================


@dataclass
class WizardState:
    """Mutable state of one wizard session."""

    step: WizardStep = WizardStep.WORK_TYPE
    work_type: Optional[WorkType] = None
    visible_fields: FrozenSet[str] = field(default_factory=frozenset)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": int(self.step),
            "work_type": self.work_type.value if self.work_type else None,
            "visible_fields": sorted(self.visible_fields),
        }


class WizardController:
    """Step transitions and field visibility for the estimator form."""

    def __init__(self, state: Optional[WizardState] = None):
        self.state = state or WizardState()

    @property
    def step(self) -> WizardStep:
        return self.state.step

    @property
    def work_type(self) -> Optional[WorkType]:
        return self.state.work_type

    @property
    def visible_fields(self) -> FrozenSet[str]:
        return self.state.visible_fields

    def is_visible(self, field_name: str) -> bool:
        return field_name in self.state.visible_fields

    def select_work_type(self, work_type: Any) -> WizardState:
        """Choose a work type, reveal its fields and move to the details step."""
        try:
            selected = WorkType(work_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown work type '{work_type}'.",
                field="work-type",
                code=ErrorCode.INVALID_FIELD,
            ) from e

        self.state.work_type = selected
        self.state.visible_fields = FIELDS_BY_WORK_TYPE[selected]
        self.state.step = WizardStep.DETAILS
        logger.debug("wizard_work_type_selected", work_type=selected.value)
        return self.state

    def next_step(self) -> WizardState:
        """Advance one step. The details step needs a work type first."""
        if self.state.step == WizardStep.WORK_TYPE and self.state.work_type is None:
            raise ValidationError(
                "Please choose the type of work first.",
                field="work-type",
                code=ErrorCode.MISSING_FIELD,
            )
        if self.state.step < WizardStep.RESULTS:
            self.state.step = WizardStep(self.state.step + 1)
        return self.state

    def previous_step(self) -> WizardState:
        if self.state.step > WizardStep.WORK_TYPE:
            self.state.step = WizardStep(self.state.step - 1)
        return self.state

    def show_results(self) -> WizardState:
        if self.state.work_type is None:
            raise ValidationError(
                "Please choose the type of work first.",
                field="work-type",
                code=ErrorCode.MISSING_FIELD,
            )
        self.state.step = WizardStep.RESULTS
        return self.state

    def go_to(self, step: Any) -> WizardState:
        """Jump to a step by number, clamped to the steps the state allows.

        Results are only reachable through ``show_results`` once an
        estimate exists, so a jump to them lands on the details step.
        """
        try:
            target = WizardStep(int(step))
        except (TypeError, ValueError):
            return self.state
        if self.state.work_type is None:
            target = WizardStep.WORK_TYPE
        elif target == WizardStep.RESULTS:
            target = WizardStep.DETAILS
        self.state.step = target
        return self.state

    def reset(self) -> WizardState:
        self.state = WizardState()
        return self.state

    def active_form_data(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep only the submitted fields visible for the current work type.

        ``work-type`` itself is always kept.
        """
        data: Dict[str, Any] = {}
        if self.state.work_type is not None:
            data["work-type"] = self.state.work_type.value
        for key in self.state.visible_fields:
            if key in form:
                data[key] = form[key]

        dropped = sorted(k for k in form if k not in data and k != "work-type")
        if dropped:
            logger.debug("wizard_hidden_fields_dropped", fields=dropped)
        return data
