"""Validation of submitted wizard selections."""

from septic_estimator.validators.selection_validator import (
    ValidationResult,
    parse_selection,
    validate_selection,
)

__all__ = ["ValidationResult", "parse_selection", "validate_selection"]
