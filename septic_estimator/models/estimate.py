"""Estimate result models for the septic estimator.

A calculation produces either an ``EstimateResult`` (a rounded low/high
range with an itemized breakdown) or an ``IncompatibleSelection`` when the
chosen system cannot be built on the chosen soil. The latter is a result,
not an exception, so the wizard can show a corrective suggestion.
"""

from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, model_validator

from septic_estimator.models.selection import WorkType


class BreakdownLine(BaseModel):
    """One itemized component of an estimate, after adjustments."""

    key: str = Field(..., description="Component or item key")
    label: str = Field(..., description="Display label")
    low: float = Field(..., ge=0)
    high: float = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_order(self) -> "BreakdownLine":
        if self.low > self.high:
            raise ValueError(f"Breakdown line '{self.key}' has low > high")
        return self


class DetailLine(BaseModel):
    """A labelled project detail shown alongside the estimate."""

    label: str
    value: str


class EstimateResult(BaseModel):
    """A computed estimate range with its breakdown and notes."""

    kind: Literal["estimate"] = "estimate"
    work_type: WorkType
    title: str
    low: float = Field(..., ge=0, description="Rounded lower bound ($)")
    high: float = Field(..., ge=0, description="Rounded upper bound ($)")
    breakdown: List[BreakdownLine] = Field(default_factory=list)
    multipliers: Dict[str, float] = Field(
        default_factory=dict, description="Adjustment name -> applied multiplier"
    )
    region_name: str = ""
    region_code: str = ""
    zip_code: str | None = None
    details: List[DetailLine] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_order(self) -> "EstimateResult":
        if self.low > self.high:
            raise ValueError(f"Estimate must be low <= high, got low={self.low}, high={self.high}")
        return self

    @property
    def is_error(self) -> bool:
        return False

    @property
    def combined_multiplier(self) -> float:
        combined = 1.0
        for factor in self.multipliers.values():
            combined *= factor
        return combined

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = self.model_dump(mode="json")
        data["combined_multiplier"] = round(self.combined_multiplier, 4)
        return data


class IncompatibleSelection(BaseModel):
    """Structured error result for an unsuitable soil/system pairing."""

    kind: Literal["incompatible"] = "incompatible"
    work_type: WorkType = WorkType.INSTALLATION
    soil_type: str
    system_type: str
    message: str
    suggested_systems: List[str] = Field(
        default_factory=list, description="Keys of systems suited to the soil"
    )

    @property
    def is_error(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


EstimateOutcome = Union[EstimateResult, IncompatibleSelection]
