import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError

from carelog.api.modules.v1.tickets.exceptions import TicketLifecycleError
from carelog.api.utils.response_payloads import error_response

logger = logging.getLogger("app")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic request validation errors and return a standardized JSON response.

    Args:
        request (Request): The incoming HTTP request.
        exc (RequestValidationError): The validation error raised by FastAPI/Pydantic.

    Returns:
        JSONResponse: Standardized error response containing field-level validation messages.
    """
    errors = {}
    for err in exc.errors():
        loc = str(err["loc"][-1])
        msg = err["msg"]
        if msg.startswith("Value error,"):
            msg = msg.replace("Value error,", "").strip()
        errors.setdefault(loc, []).append(msg)

    return error_response(
        status_code=422,
        message="Validation failed",
        error="VALIDATION_ERROR",
        errors=errors,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handle HTTP exceptions (4xx/5xx) and return a standardized JSON response.
    """
    logger.error(f"HTTP exception: {exc.detail} ({exc.status_code})")

    return error_response(
        status_code=exc.status_code,
        error="HTTP_ERROR",
        message=str(exc.detail),
    )


async def ticket_lifecycle_exception_handler(request: Request, exc: TicketLifecycleError):
    """
    Render ticket lifecycle errors (not found, invalid transition, conflict...)
    with the status code each error type carries.
    """
    logger.info(f"Ticket operation rejected on {request.url.path}: {exc.error} {exc.message}")

    return error_response(
        status_code=exc.status_code,
        error=exc.error,
        message=exc.message,
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions and return a standardized 500 response.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return error_response(
        status_code=500,
        error="INTERNAL_SERVER_ERROR",
        message="Internal server error",
    )


class CsvImportError(Exception):
    """Raised when an uploaded CSV cannot be processed at all (bad headers, too many rows)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
