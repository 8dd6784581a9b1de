"""Translate domain errors into the JSON error envelope.

Every error response has the shape
``{"status": "fail"|"error", "code": ..., "message": ...}`` with optional
``errors`` (field detail) and ``requireMFA`` markers.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from domain.model.errors import (
    AuthenticationError,
    DomainError,
    DuplicateError,
    InvalidMFASetupCodeError,
    MFAAlreadyEnabledError,
    MFANotSetupError,
    MFARequiredError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    TooManyRequestsError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific class first; the first isinstance match wins
STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidMFASetupCodeError, status.HTTP_400_BAD_REQUEST),
    (MFANotSetupError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateError, status.HTTP_409_CONFLICT),
    (MFAAlreadyEnabledError, status.HTTP_409_CONFLICT),
    (TooManyRequestsError, status.HTTP_429_TOO_MANY_REQUESTS),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(error: DomainError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def error_body(code: str, message: str, status_code: int, **extra) -> dict:
    body = {
        "status": "fail" if status_code < 500 else "error",
        "code": code,
        "message": message,
    }
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    headers = {}
    extra = {}

    if isinstance(exc, AuthenticationError):
        headers["WWW-Authenticate"] = "Bearer"
    if isinstance(exc, MFARequiredError):
        extra["requireMFA"] = True
    if isinstance(exc, ValidationError) and exc.errors:
        extra["errors"] = exc.errors
    if isinstance(exc, TooManyRequestsError):
        headers["Retry-After"] = str(exc.retry_after)
        extra["retryAfter"] = exc.retry_after

    if status_code >= 500:
        logger.error(
            "Request failed",
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method, "errorCode": exc.code},
        )
    else:
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "method": request.method, "errorCode": exc.code},
        )

    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.code, exc.message, status_code, **extra),
        headers=headers or None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are 400s; submitted values are never echoed back."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("VALIDATION_ERROR", "Validation Error", 400, errors=errors),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    status_code = exc.status_code
    code = {
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        503: "SERVICE_UNAVAILABLE",
    }.get(status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=status_code,
        content=error_body(code, str(exc.detail), status_code),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            "SERVER_ERROR",
            "Something went wrong on our end. Please try again later.",
            500,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
