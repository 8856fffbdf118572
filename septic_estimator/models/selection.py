"""User selection models for the septic estimator."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class WorkType(str, Enum):
    """Kind of septic work being estimated."""

    INSTALLATION = "installation"
    REPAIR = "repair"
    MAINTENANCE = "maintenance"


class WaterUsage(str, Enum):
    """Household water usage level."""

    LOW = "low"
    AVERAGE = "average"
    HIGH = "high"


class OccupantBand(str, Enum):
    """Number of people living in the home."""

    ONE_TWO = "1-2"
    THREE_FOUR = "3-4"
    FIVE_SIX = "5-6"
    SEVEN_PLUS = "7+"


class UserSelection(BaseModel):
    """Validated form inputs for one calculation.

    Soil, system, tank material, area type and item keys are checked
    against the loaded cost tables by the selection validator, so they are
    plain strings here.
    """

    work_type: WorkType
    region: Optional[str] = Field(
        default=None,
        min_length=2,
        max_length=2,
        description="Two-letter state code, derived from the ZIP code when omitted",
    )
    zip_code: Optional[str] = Field(default=None, pattern=r"^\d{5}$")
    area_type: str = "suburban"

    # Installation
    bedrooms: Optional[int] = Field(default=None, ge=1, le=6)
    occupants: Optional[OccupantBand] = None
    water_usage: WaterUsage = WaterUsage.AVERAGE
    soil_type: Optional[str] = None
    system_type: Optional[str] = None
    tank_size: Optional[int] = Field(default=None, gt=0)
    tank_material: str = "concrete"

    # Repair / maintenance
    repair_items: List[str] = Field(default_factory=list)
    maintenance_items: List[str] = Field(default_factory=list)
    maintenance_tank_size: Optional[int] = Field(default=None, gt=0)
