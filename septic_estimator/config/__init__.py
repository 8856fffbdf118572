"""Septic estimator configuration.

This package contains:
- settings: Environment variables and configuration
- errors: Custom exceptions and error codes
- logging_config: structlog setup
"""

from septic_estimator.config.settings import settings, Settings
from septic_estimator.config.errors import (
    ErrorCode,
    SepticEstimatorError,
    ValidationError,
    DataLoadError,
    PDFGenerationError,
)
from septic_estimator.config.logging_config import configure_logging

__all__ = [
    "settings",
    "Settings",
    "ErrorCode",
    "SepticEstimatorError",
    "ValidationError",
    "DataLoadError",
    "PDFGenerationError",
    "configure_logging",
]
