"""
==============================================================================
Core Package
==============================================================================

Core infrastructure for the application.

Modules:
--------
- exceptions: AppException hierarchy and error factory functions
- dependencies: FastAPI dependency injection functions

Usage:
------
    from tracker.core import exceptions
    raise exceptions.NotFoundError(record_id)

    from tracker.core.dependencies import get_catalog_store

==============================================================================
"""

from .exceptions import (
    AppException,
    ConfirmationRequiredError,
    CorruptStateError,
    ImageNotFoundError,
    ImageProcessingError,
    InvalidSortOptionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "ConfirmationRequiredError",
    "CorruptStateError",
    "ImageNotFoundError",
    "ImageProcessingError",
    "InvalidSortOptionError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
    "register_exception_handlers",
]
