import logging

from fastapi import FastAPI, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.requests import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SafetyBandError(Exception):
    """Base class for errors that map onto an API error response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.error)
        self.message = message or self.__class__.__doc__ or self.error


class ValidationError(SafetyBandError):
    """Missing or malformed identifying field."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"


class OwnerUnresolved(SafetyBandError):
    """No user could be identified for this device."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "owner_unresolved"


class StoreWriteFailure(SafetyBandError):
    """Failed to persist data."""

    error = "store_write_failure"


class NoLocationAvailable(SafetyBandError):
    """No location data available."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "no_location_available"


class DeliveryFailure(SafetyBandError):
    """Message delivery failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "delivery_failure"


class AuthenticationError(SafetyBandError):
    """Invalid credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "authentication_error"


class ConflictError(SafetyBandError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "conflict"


class NotFoundError(SafetyBandError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class RateLimited(SafetyBandError):
    """Rate limit exceeded."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "rate_limited"


def error_body(message: str, error: str) -> dict:
    return {"status": "error", "message": message, "error": error}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SafetyBandError)
    async def safetyband_error_handler(request: Request, exc: SafetyBandError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.error, request.url.path, exc.message, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.error))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={**error_body("Invalid request payload", ValidationError.error), "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Server error", SafetyBandError.error),
        )
