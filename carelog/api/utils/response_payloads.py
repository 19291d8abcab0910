"""JSON envelopes shared by every route.

Success::

    {"status": "SUCCESS", "status_code": 200, "message": "...", "data": {...}}

Failure::

    {"error": "INVALID_TRANSITION", "message": "...", "status_code": 409, "errors": {}}
"""

from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _respond(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def success_response(status_code: int, message: str, data: Optional[Any] = None) -> JSONResponse:
    """Wrap ``data`` (an empty object when omitted) in the success envelope."""
    return _respond(
        status_code,
        {
            "status": "SUCCESS",
            "status_code": status_code,
            "message": message,
            "data": data if data is not None else {},
        },
    )


def error_response(
    *,
    status_code: int,
    message: str,
    error: str = "ERROR",
    errors: Optional[Dict[str, List[str]]] = None,
) -> JSONResponse:
    """
    Build the failure envelope.

    Args:
        error: Machine-readable code, e.g. ``"TICKET_NOT_FOUND"``.
        errors: Field-level messages keyed by field name.
    """
    return _respond(
        status_code,
        {
            "error": error,
            "message": message,
            "status_code": status_code,
            "errors": errors or {},
        },
    )
