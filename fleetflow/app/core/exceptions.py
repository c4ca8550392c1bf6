"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
Business-rule failures map to 400, missing records to 404 and storage
failures to 500.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("fleetflow.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class BusinessRuleError(AppException):
    """Base for rule violations detected before any write is attempted."""

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class InvalidTransitionError(BusinessRuleError):
    """Raised when a state machine transition is not allowed."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "ERR_TRANSITION_001", details)


class ResourceUnavailableError(BusinessRuleError):
    """Raised when a vehicle cannot be committed to a trip."""

    def __init__(self, message: str = "Vehicle is not available", details: Dict[str, Any] = None):
        super().__init__(message, "ERR_UNAVAILABLE_001", details)


class DriverUnavailableError(BusinessRuleError):
    """Raised when a driver is not on duty."""

    def __init__(self, message: str = "Driver is not on duty", details: Dict[str, Any] = None):
        super().__init__(message, "ERR_UNAVAILABLE_002", details)


class LicenseExpiredError(BusinessRuleError):
    """Raised when a driver's licence has expired."""

    def __init__(self, message: str = "Driver license has expired", details: Dict[str, Any] = None):
        super().__init__(message, "ERR_LICENSE_001", details)


class CapacityExceededError(BusinessRuleError):
    """Raised when cargo weight exceeds vehicle capacity."""

    def __init__(self, cargo_weight: float, max_capacity: float):
        super().__init__(
            f"Cargo weight ({cargo_weight}kg) exceeds vehicle max capacity ({max_capacity}kg)",
            "ERR_CAPACITY_001",
            {"cargo_weight": cargo_weight, "max_capacity": max_capacity}
        )


class OdometerRegressionError(BusinessRuleError):
    """Raised when an odometer reading would go backwards."""

    def __init__(self, reading: float, baseline: float, message: str = None):
        super().__init__(
            message or f"End odometer ({reading}) cannot be less than start odometer ({baseline})",
            "ERR_ODOMETER_001",
            {"reading": reading, "baseline": baseline}
        )


class PastServiceDateError(BusinessRuleError):
    """Raised when a maintenance date is before today."""

    def __init__(self, service_date: Any = None):
        super().__init__(
            "Service date cannot be in the past",
            "ERR_SERVICE_DATE_001",
            {"date": str(service_date) if service_date else None}
        )


class DuplicateKeyError(BusinessRuleError):
    """Raised when a unique field already exists."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        super().__init__(message, "ERR_DUPLICATE_001", {"field": field, "value": value})


class DependentResourceActiveError(BusinessRuleError):
    """Raised when a record cannot be removed because something depends on it."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "ERR_DEPENDENT_001", details)


class StorageError(AppException):
    """Raised when a multi-record write fails and was rolled back."""

    def __init__(self, message: str = "Storage operation failed", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STORAGE_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.error_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry exception instances that JSONResponse cannot encode
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
