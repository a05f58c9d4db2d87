"""
Error envelope and service-error → HTTP mapping shared by the routers.

Every error body has the shape {"error": {"code": ..., "message": ...}}.
"""
import logging

from fastapi import HTTPException, status

from app.services.errors import (
    AuthorizationError,
    ConcurrencyConflictError,
    InvariantViolationError,
    MovieNightError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[MovieNightError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvariantViolationError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConcurrencyConflictError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def error_envelope(code: str, message: str) -> dict:
    """Standard error envelope."""
    return {"error": {"code": code, "message": message}}


def to_http_exception(exc: MovieNightError) -> HTTPException:
    """Translate a service error; unknown subclasses become a 500."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=error_envelope(exc.code, str(exc)))

    logger.error("Unmapped service error %s: %s", type(exc).__name__, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error_envelope("INTERNAL_ERROR", "Something went wrong"),
    )
