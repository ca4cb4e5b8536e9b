"""Translate account-service errors into JSON HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core import errors

logger = logging.getLogger(__name__)

UNAUTHORIZED_BODY = {"message": "unauthorized"}
UNAVAILABLE_MESSAGE = "Service temporarily unavailable"
GENERIC_MESSAGE = "Something went wrong!"
LOGIN_PATH_SUFFIX = "/users/login"

# Most specific first; the first isinstance match wins.
ERROR_STATUS: list[tuple[type[errors.AccountError], int]] = [
    (errors.ValidationError, status.HTTP_400_BAD_REQUEST),
    (errors.ConflictError, status.HTTP_400_BAD_REQUEST),
    (errors.AuthenticationError, status.HTTP_400_BAD_REQUEST),
    (errors.UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (errors.NotFoundError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (errors.ConcurrentUpdateError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (errors.OperationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (errors.InfrastructureError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: errors.AccountError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def account_error_response(exc: errors.AccountError) -> JSONResponse:
    """Build the response for a taxonomy error without leaking storage details."""
    code = status_for(exc)
    if isinstance(exc, errors.UnauthorizedError):
        return JSONResponse(
            status_code=code,
            content=UNAUTHORIZED_BODY,
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, errors.InfrastructureError):
        return JSONResponse(status_code=code, content={"error": UNAVAILABLE_MESSAGE})
    return JSONResponse(status_code=code, content={"error": exc.message})


def _format_validation_error(exc: RequestValidationError) -> str:
    """Summarize the first body validation problem as '<field>: <reason>'."""
    for err in exc.errors():
        # Integer parts are byte offsets (json_invalid) or list indexes, not field names.
        loc = [str(part) for part in err.get("loc", ()) if part != "body" and not isinstance(part, int)]
        msg = err.get("msg", "Invalid value")
        return f"{'.'.join(loc)}: {msg}" if loc else msg
    return "Invalid request"


async def _handle_account_error(request: Request, exc: errors.AccountError) -> JSONResponse:
    if isinstance(exc, errors.InfrastructureError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.cause)
    return account_error_response(exc)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    if request.url.path.endswith(LOGIN_PATH_SUFFIX):
        # Login failures share one message whatever was wrong with the body.
        return account_error_response(errors.AuthenticationError())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _format_validation_error(exc)},
    )


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(status_code=exc.status_code, content={"error": "Page not found."})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": GENERIC_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach JSON error handlers for the taxonomy, request validation and fallbacks."""
    app.add_exception_handler(errors.AccountError, _handle_account_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected)
