"""
Custom exception classes and error handling for the request relay.

Every failure leaves the service in the relay's error envelope:
``{"ok": false, "error": ..., "errorCode": ...}``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorEnvelope(BaseModel):
    """Standard error response format."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = False
    error: str
    error_code: str | None = None
    time_ms: int | None = None


class APIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)

    def to_envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(error=self.detail, error_code=self.error_code)


class BadRequestError(APIException):
    """Exception raised for malformed input (method, url, payload)."""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BAD_REQUEST"
        )


class UnauthorizedError(APIException):
    """Exception raised when no caller identity was supplied."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="UNAUTHORIZED"
        )


class HostNotAllowedError(APIException):
    """
    Exception raised when a target fails the egress policy.

    The message never says which rule matched.
    """

    def __init__(self):
        super().__init__(
            detail="Host not allowed",
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="HOST_NOT_ALLOWED"
        )


class ResourceNotFoundError(APIException):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id):
        super().__init__(
            detail=f"{resource_type} with id {resource_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND"
        )


class MethodNotAllowedError(APIException):
    """Exception raised when a route is called with an unsupported verb."""

    def __init__(self):
        super().__init__(
            detail="Method not allowed",
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            error_code="METHOD_NOT_ALLOWED"
        )


class PayloadTooLargeError(APIException):
    """Exception raised when a forwarded body exceeds the size cap."""

    def __init__(self, detail: str = "Body too large"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            error_code="BODY_TOO_LARGE"
        )


class ValidationError(APIException):
    """Exception raised when request validation fails."""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR"
        )


class NetworkError(APIException):
    """Exception raised when the forwarded call fails at the transport level."""

    def __init__(self, detail: str, time_ms: int = 0):
        self.time_ms = max(0, int(time_ms))
        super().__init__(
            detail=detail or "Fetch failed",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="NETWORK_ERROR"
        )

    def to_envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(error=self.detail, error_code=self.error_code, time_ms=self.time_ms)


class DatabaseError(APIException):
    """Exception raised when a database error occurs."""

    def __init__(self, detail: str = "Database error occurred"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="DATABASE_ERROR"
        )


def error_response(exc: APIException) -> JSONResponse:
    """Render an APIException as a JSON error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_envelope().model_dump(by_alias=True, exclude_none=True)
    )


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handler for custom API exceptions."""
    return error_response(exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    errors = exc.errors()
    error_messages = []
    for error in errors:
        loc = " -> ".join(str(l) for l in error["loc"])
        error_messages.append(f"{loc}: {error['msg']}")

    detail = "; ".join(error_messages) if error_messages else "Validation error"
    return error_response(ValidationError(detail))


async def sqlalchemy_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Handler for SQLAlchemy database errors."""
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(DatabaseError())


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
