"""Custom exceptions and handlers for consistent error responses.

Every domain failure in the intake flow is raised as an `IntakeException`
subclass and rendered by `intake_exception_handler` into the standard
envelope. Nothing here is fatal to the process: each error is local to
the request that raised it.
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class IntakeException(Exception):
    """Base exception for asset intake errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Union[dict, list, None] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class StepRejectedError(IntakeException):
    """A wizard step (or asset block) failed validation.

    `field_errors` maps field name → message. For the asset-details step
    the values are themselves mappings, one per failing asset block.
    """

    def __init__(self, field_errors: dict, message: str = "Please fix the highlighted fields"):
        self.field_errors = field_errors
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="STEP_REJECTED",
            details={"fields": field_errors},
        )


class WizardStateError(IntakeException):
    """Operation not allowed from the wizard's current step."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="WIZARD_STATE",
        )


class DraftNotConfirmedError(IntakeException):
    def __init__(self, message: str = "Submission must be confirmed before it is saved"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="NOT_CONFIRMED",
        )


class PersistenceError(IntakeException):
    """The record store rejected or failed a write/read/delete."""

    def __init__(self, message: str = "Could not save the submission. Please try again."):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="PERSISTENCE_FAILED",
        )


class UploadError(IntakeException):
    """A single file could not be stored. Recovered per file by the assembler."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(
            message=f"{filename}: {reason}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="UPLOAD_FAILED",
        )


class ResourceNotFoundError(IntakeException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    headers: dict | None = None,
) -> JSONResponse:
    """Render the error envelope shared by every failing endpoint.

        {"error": {"code": "STEP_REJECTED", "message": "...", "details": {...}}}

    `details` is omitted when empty. For a rejected wizard step it carries
    `fields`, the per-field messages the form shows next to each input.
    """
    body: dict = {"code": error_code, "message": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


def _where(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


async def intake_exception_handler(request: Request, exc: IntakeException) -> JSONResponse:
    # Step rejections are routine form feedback, not warnings
    level = logging.INFO if isinstance(exc, StepRejectedError) else logging.WARNING
    logger.log(level, f"{exc.error_code}: {exc.message}", extra=_where(request))
    return create_error_response(exc.status_code, exc.message, exc.error_code, exc.details)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}", extra=_where(request))
    return create_error_response(
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Malformed request bodies (wrong JSON types, missing keys).

    Form-level rules of the wizard steps are not checked here; those come
    back as STEP_REJECTED with per-field messages.
    """
    logger.info(f"Request validation failed on {request.url.path}", extra=_where(request))
    errors = [
        {
            # Drop the leading "body" so the field reads like the form's name
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        {"errors": errors},
    )


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error(f"Integrity error on {request.url.path}: {exc.orig}", extra=_where(request))
    if "unique" in str(exc.orig).lower():
        message, code = "A record with this value already exists", "DUPLICATE_RECORD"
    else:
        message, code = "The record could not be saved", "INTEGRITY_ERROR"
    return create_error_response(status.HTTP_409_CONFLICT, message, code)


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error(f"Record store unavailable on {request.url.path}: {exc}", extra=_where(request))
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "The record store is temporarily unavailable. Please try again.",
        "DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        extra={**_where(request), "traceback": traceback.format_exc()},
        exc_info=True,
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Something went wrong. Your progress is saved; please try again.",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    app.add_exception_handler(IntakeException, intake_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
