"""Custom exceptions for RatingMF.

Defines specific exception types for better error handling and reporting.
"""

from typing import Any, Dict, Optional


class RatingMFException(Exception):
    """Base exception for RatingMF errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class MissingKeyError(RatingMFException, KeyError):
    """Raised when a user or item id is not in the model's row mapping."""

    def __init__(self, kind: str, key: Any):
        message = f"Unknown {kind} id {key!r}: not present when the model was built"
        super().__init__(
            message=message,
            status_code=404,
            details={"kind": kind, "id": key},
        )
        self.kind = kind
        self.key = key


class TrainingInProgressError(RatingMFException):
    """Raised when a model is reconfigured while a fit is running."""

    def __init__(self, operation: str):
        message = f"Cannot {operation} while the model is training"
        super().__init__(
            message=message,
            status_code=409,
            details={"operation": operation},
        )


class ModelNotReadyError(RatingMFException):
    """Raised when no trained model can be served."""

    def __init__(self, ratings_path: str, error: Optional[Exception] = None):
        message = f"No model available for ratings at '{ratings_path}'"
        details: Dict[str, Any] = {"ratings_path": ratings_path}
        if error is not None:
            message = f"{message}: {error}"
            details["error"] = str(error)
            details["error_type"] = type(error).__name__
        super().__init__(message=message, status_code=503, details=details)
