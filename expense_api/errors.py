"""
Error taxonomy and the translation of storage faults into it.

Clients only ever see ``{"error": <terse message>}``; the full exception
is written to the server log.
"""

from contextlib import contextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .log import get_logger

logger = get_logger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidCredentials(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "UNIQUE constraint failed" in str(orig)


@contextmanager
def storage_errors(db: Session, message: str, conflict: AppError = None, **context):
    """Roll back and re-raise storage faults as ConflictError or InternalError."""
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        if conflict is not None and is_unique_violation(exc):
            logger.info("unique_violation", reason=conflict.message, **context)
            raise conflict from exc
        logger.error("storage_fault", reason=message, exc_info=True, **context)
        raise InternalError(message) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("storage_fault", reason=message, exc_info=True, **context)
        raise InternalError(message) from exc


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_failed",
        path=request.url.path,
        method=request.method,
        status=exc.status_code,
        reason=exc.message,
        user_id=getattr(request.state, "user_id", None),
    )
    return _error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    # an unparseable body reports the byte offset as its location
    if any(error["type"] == "json_invalid" for error in errors):
        fields = []
    else:
        fields = [
            ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
            for error in errors
        ]
        fields = [field for field in fields if field]
    logger.info("request_rejected", path=request.url.path, fields=fields, error_types=[error["type"] for error in errors])
    if fields:
        message = "Invalid or missing fields: " + ", ".join(fields)
    else:
        message = "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, exc_info=exc)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
