"""
Error taxonomy shared by the platform services.

Every handler raises one of the ``ServiceError`` subclasses below; the
exception handlers registered by ``register_exception_handlers`` turn them
(and any unexpected failure) into a JSON body of the form
``{"detail": ..., "error_type": ...}`` so nothing escapes the request.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "internal_error"
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        self.detail = detail or self.default_detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.detail)


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "validation_error"
    default_detail = "Invalid request"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_detail = "Not found"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"
    default_detail = "Resource already exists"


class AuthError(ServiceError):
    """Credential or authorization failure (401, or 403 when access is denied)."""
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "auth_error"
    default_detail = "Invalid credentials"


class RateLimitError(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_type = "rate_limited"
    default_detail = "Too many requests"


class QueryError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "query_error"
    default_detail = "Invalid query parameters"


class InternalError(ServiceError):
    pass


def error_body(detail, error_type: str) -> dict:
    return {"detail": detail, "error_type": error_type}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail, exc.error_type))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    # Failures confined to query/path parameters are query errors, anything
    # touching the body is a validation error.
    if errors and all(err.get("loc", ("body",))[0] in ("query", "path") for err in errors):
        error_type = QueryError.error_type
        detail = QueryError.default_detail
    else:
        error_type = ValidationError.error_type
        detail = "Missing or invalid fields in request body"
    content = error_body(detail, error_type)
    content["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Database error", InternalError.error_type),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(InternalError.default_detail, InternalError.error_type),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
