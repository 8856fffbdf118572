"""Septic estimator error handling.

Custom exceptions and error codes surfaced to the wizard and the JSON API.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"

    # Domain Errors
    INCOMPATIBLE_SELECTION = "INCOMPATIBLE_SELECTION"

    # Data Errors
    DATA_LOAD_FAILED = "DATA_LOAD_FAILED"
    INVALID_COST_DATA = "INVALID_COST_DATA"

    # Export Errors
    PDF_GENERATION_FAILED = "PDF_GENERATION_FAILED"

    # Catch-all
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SepticEstimatorError(Exception):
    """Base exception for estimator errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"SepticEstimatorError(code={self.code!r}, message={self.message!r})"


class ValidationError(SepticEstimatorError):
    """A required selection is missing or holds an unusable value."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: str = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class DataLoadError(SepticEstimatorError):
    """The cost data documents could not be read or parsed."""

    def __init__(self, message: str, path: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.DATA_LOAD_FAILED,
            message=message,
            details={**(details or {}), "path": path} if path else details
        )
        self.path = path


class PDFGenerationError(SepticEstimatorError):
    """The estimate report could not be converted to PDF."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.PDF_GENERATION_FAILED,
            message=message,
            details=details
        )
