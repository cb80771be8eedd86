"""
Application Exception Handling

AppException base class and the catalog error taxonomy with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the entire API.

    Usage:
        raise AppException("Record not found", "RECORD_NOT_FOUND", 404)
        raise ValidationError("rating", "Input should be less than or equal to 10")

    Error Codes:
        Catalog:
            - VALIDATION_ERROR (422)
            - RECORD_NOT_FOUND (404)
            - CONFIRMATION_REQUIRED (428)
            - INVALID_SORT_OPTION (400)

        Storage:
            - PERSISTENCE_ERROR (507)
            - CORRUPT_STATE (500)

        Images:
            - INVALID_IMAGE (400)
            - IMAGE_NOT_FOUND (404)

        General:
            - STORE_NOT_LOADED (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "RECORD_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


# ============================================
# CATALOG ERRORS
# ============================================

class ValidationError(AppException):
    """Bad or missing input field. The operation is aborted with no state change."""

    def __init__(self, field: str, reason: str):
        self.field = field
        super().__init__(
            f"Invalid value for '{field}': {reason}",
            "VALIDATION_ERROR",
            422,
            {"field": field, "reason": reason}
        )


class NotFoundError(AppException):
    """An operation referenced a record id that does not exist."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(
            f"Product record '{record_id}' not found",
            "RECORD_NOT_FOUND",
            404,
            {"record_id": record_id}
        )


class ConfirmationRequiredError(AppException):
    """A destructive operation was attempted without explicit confirmation."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(
            "Deleting a product record requires confirmation",
            "CONFIRMATION_REQUIRED",
            428,
            {"record_id": record_id}
        )


class InvalidSortOptionError(AppException):
    """Unrecognized sort option. Treated as a configuration error."""

    def __init__(self, option: str, supported: Optional[list] = None):
        self.option = option
        details: Dict[str, Any] = {"sort": option}
        if supported:
            details["supported"] = supported
        super().__init__(
            f"Unsupported sort option: {option}",
            "INVALID_SORT_OPTION",
            400,
            details
        )


# ============================================
# STORAGE ERRORS
# ============================================

class PersistenceError(AppException):
    """
    The key-value store could not be read or rejected a write.

    The in-memory collection keeps a mutation whose write failed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PERSISTENCE_ERROR", 507, details)


class CorruptStateError(AppException):
    """The stored snapshot could not be decoded."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"Stored snapshot is unreadable: {reason}",
            "CORRUPT_STATE",
            500,
            {"reason": reason}
        )


class ImageProcessingError(AppException):
    """An uploaded image could not be turned into a preview reference."""

    def __init__(self, reason: str):
        super().__init__(
            f"Image could not be processed: {reason}",
            "INVALID_IMAGE",
            400,
            {"reason": reason}
        )


class ImageNotFoundError(AppException):
    """A product has no preview image to return."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(
            f"Product record '{record_id}' has no preview image",
            "IMAGE_NOT_FOUND",
            404,
            {"record_id": record_id}
        )


# ============================================
# FASTAPI HANDLERS
# ============================================

# Request parts FastAPI prefixes to an error location
_REQUEST_SOURCES = ("body", "query", "path", "header", "cookie")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    FastAPI exception handler for request parsing errors.

    Reports the first error as a ValidationError naming the field,
    e.g. ("body", "succeeded") becomes "succeeded" and a body that is
    not an object becomes "body".
    """
    errors = exc.errors()
    error = errors[0] if errors else {}

    location = [str(part) for part in error.get("loc", ())]
    source = location.pop(0) if location and location[0] in _REQUEST_SOURCES else ""
    field = ".".join(location) or source or "input"

    return await app_exception_handler(
        request,
        ValidationError(field, error.get("msg", "invalid request"))
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def store_not_loaded() -> AppException:
    """Create store not loaded exception."""
    return AppException(
        "Product store not loaded",
        "STORE_NOT_LOADED",
        500
    )


def quota_exceeded(size: int, quota: int) -> PersistenceError:
    """Create storage quota exceeded exception."""
    return PersistenceError(
        f"Storage quota exceeded: {size} bytes > {quota} bytes. "
        "Delete some older products to free space.",
        {"size": size, "quota": quota}
    )
