"""Cost table Pydantic models for the septic estimator.

This module defines the typed shape of the two static data documents:
the installation/repair/maintenance cost table and the regional
adjustment table. Both are validated once at load time so the pricing
engine can trust every range and multiplier it reads.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# PRICE RANGE MODEL
# =============================================================================


class PriceRange(BaseModel):
    """A low/high price range in US dollars.

    Accepts either an object (``{"low": 100, "high": 200}``) or the
    two-element list form used by the data documents (``[100, 200]``).
    """

    low: float = Field(..., ge=0, description="Lower bound ($)")
    high: float = Field(..., ge=0, description="Upper bound ($)")

    @model_validator(mode="before")
    @classmethod
    def coerce_pair(cls, value):
        """Allow ranges to be written as [low, high] pairs."""
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError(f"Price range must have exactly two values, got {len(value)}")
            return {"low": value[0], "high": value[1]}
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "PriceRange":
        """Ensure low <= high."""
        if self.low > self.high:
            raise ValueError(
                f"Price range must be low <= high, got: low={self.low}, high={self.high}"
            )
        return self

    @classmethod
    def zero(cls) -> "PriceRange":
        """Create a zero price range."""
        return cls(low=0.0, high=0.0)

    def __add__(self, other: "PriceRange") -> "PriceRange":
        """Add two price ranges."""
        return PriceRange(low=self.low + other.low, high=self.high + other.high)

    def __mul__(self, factor: float) -> "PriceRange":
        """Scale a price range by a non-negative factor."""
        if factor < 0:
            raise ValueError(f"Cannot scale a price range by a negative factor ({factor})")
        return PriceRange(low=self.low * factor, high=self.high * factor)

    __rmul__ = __mul__

    def rounded(self, ndigits: int = 2) -> "PriceRange":
        """Round both bounds to ``ndigits`` decimals."""
        return PriceRange(low=round(self.low, ndigits), high=round(self.high, ndigits))

    def to_list(self) -> List[float]:
        return [self.low, self.high]


# =============================================================================
# INSTALLATION / REPAIR / MAINTENANCE TABLE
# =============================================================================


class CostComponent(BaseModel):
    """One base cost component of a septic system (permit, tank, labor...)."""

    range: PriceRange = Field(..., description="Base national-average range")
    label: Optional[str] = Field(default=None, description="Display label override")
    per_bedroom: bool = Field(
        default=False, description="Range is per bedroom and scales with bedroom count"
    )


class SepticSystem(BaseModel):
    """An installable septic system type."""

    name: str
    description: str = ""
    soil_factors: Dict[str, Optional[float]] = Field(
        ..., description="Soil key -> cost multiplier, null when the soil is unsuitable"
    )
    components: Dict[str, CostComponent] = Field(..., min_length=1)

    @field_validator("soil_factors")
    @classmethod
    def validate_soil_factors(cls, v: Dict[str, Optional[float]]) -> Dict[str, Optional[float]]:
        for soil, factor in v.items():
            if factor is not None and factor <= 0:
                raise ValueError(f"Soil factor for '{soil}' must be positive or null, got {factor}")
        return v

    def soil_factor(self, soil_type: str) -> Optional[float]:
        """Multiplier for a soil type, or None when the system is unsuitable."""
        return self.soil_factors.get(soil_type)

    def is_compatible_with(self, soil_type: str) -> bool:
        return self.soil_factor(soil_type) is not None


class NamedMultiplier(BaseModel):
    """A display name paired with a positive cost multiplier."""

    name: str
    multiplier: float = Field(..., gt=0)


class RepairItem(BaseModel):
    """A selectable repair line item."""

    name: str
    range: PriceRange


class MaintenanceItem(BaseModel):
    """A selectable maintenance line item.

    Priced either with a flat ``range`` or with ranges nested by tank size
    (``by_tank_size``), e.g. pumping a larger tank costs more.
    """

    name: str
    range: Optional[PriceRange] = None
    by_tank_size: Optional[Dict[int, PriceRange]] = None

    @model_validator(mode="after")
    def validate_pricing(self) -> "MaintenanceItem":
        if (self.range is None) == (self.by_tank_size is None):
            raise ValueError(
                f"Maintenance item '{self.name}' needs exactly one of 'range' or 'by_tank_size'"
            )
        return self

    @property
    def depends_on_tank_size(self) -> bool:
        return self.by_tank_size is not None

    def price_for(self, tank_size: Optional[int]) -> PriceRange:
        """Resolve the range for a tank size.

        Sizes between table entries use the next larger entry; sizes above the
        largest entry use the largest.
        """
        if self.range is not None:
            return self.range
        sizes = sorted(self.by_tank_size)
        if tank_size is None:
            return self.by_tank_size[sizes[0]]
        for size in sizes:
            if tank_size <= size:
                return self.by_tank_size[size]
        return self.by_tank_size[sizes[-1]]


class SepticCostTable(BaseModel):
    """The installation/repair/maintenance cost document."""

    version: str = "0.0.0"
    systems: Dict[str, SepticSystem] = Field(..., min_length=1)
    soil_types: Dict[str, str] = Field(..., min_length=1)
    tank_sizes: List[int] = Field(..., min_length=1)
    base_tank_size: int = Field(default=1000, gt=0)
    tank_materials: Dict[str, NamedMultiplier] = Field(..., min_length=1)
    water_usage: Dict[str, float] = Field(..., min_length=1)
    area_types: Dict[str, NamedMultiplier] = Field(..., min_length=1)
    repair: Dict[str, RepairItem] = Field(default_factory=dict)
    maintenance: Dict[str, MaintenanceItem] = Field(default_factory=dict)

    @field_validator("tank_sizes")
    @classmethod
    def validate_tank_sizes(cls, v: List[int]) -> List[int]:
        if any(size <= 0 for size in v):
            raise ValueError("Tank sizes must be positive")
        return sorted(v)

    @field_validator("water_usage")
    @classmethod
    def validate_water_usage(cls, v: Dict[str, float]) -> Dict[str, float]:
        for level, factor in v.items():
            if factor <= 0:
                raise ValueError(f"Water usage factor for '{level}' must be positive")
        return v

    @model_validator(mode="after")
    def validate_soil_keys(self) -> "SepticCostTable":
        """Every system must only reference declared soil types."""
        for key, system in self.systems.items():
            unknown = set(system.soil_factors) - set(self.soil_types)
            if unknown:
                raise ValueError(f"System '{key}' references unknown soil types: {sorted(unknown)}")
        return self


# =============================================================================
# REGIONAL ADJUSTMENT TABLE
# =============================================================================


class SubRegion(BaseModel):
    """A ZIP code range inside a state with its own relative multiplier."""

    name: str
    zip_start: str = Field(..., pattern=r"^\d{5}$")
    zip_end: str = Field(..., pattern=r"^\d{5}$")
    multiplier: float = Field(..., gt=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "SubRegion":
        if self.zip_start > self.zip_end:
            raise ValueError(f"Sub-region '{self.name}' has zip_start > zip_end")
        return self

    def contains(self, zip_code: str) -> bool:
        return self.zip_start <= zip_code <= self.zip_end


class StateAdjustment(BaseModel):
    """Regional adjustment for one state (or the national default)."""

    name: str
    multiplier: float = Field(..., gt=0)
    sub_regions: List[SubRegion] = Field(default_factory=list)


class RegionalCostTable(BaseModel):
    """The regional adjustment document: state code -> adjustment."""

    version: str = "0.0.0"
    regions: Dict[str, StateAdjustment] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_default(self) -> "RegionalCostTable":
        if "default" not in self.regions:
            raise ValueError("Regional table must include a 'default' entry")
        return self

    def states(self) -> Dict[str, StateAdjustment]:
        """Selectable two-letter state entries, excluding the default."""
        return {code: adj for code, adj in self.regions.items() if len(code) == 2}

    def get(self, state_code: Optional[str]) -> StateAdjustment:
        return self.regions.get(state_code or "default", self.regions["default"])


class RegionalAdjustment(BaseModel):
    """Resolved adjustment for a selection's state and ZIP code."""

    state_code: str
    name: str
    sub_region: Optional[str] = None
    multiplier: float = Field(..., gt=0)

    @property
    def display_name(self) -> str:
        if self.sub_region:
            return f"{self.name} ({self.sub_region})"
        return self.name


class CostTables(BaseModel):
    """Both loaded documents, handed to the pricing engine together."""

    systems: SepticCostTable
    regional: RegionalCostTable
