"""
schemas/responses.py — Response envelope shared by every endpoint

Every JSON response is ``{success, data?, message?, error?, details?}``
with the HTTP status code carried alongside.

Called by: routers/*.py, main.py (error handlers)
Depends on: pydantic, schemas/errors.py
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse

from .errors import ErrorResponse

# OpenAPI docs for the error envelope, used as ``responses=`` on routers
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation or conflict error"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
    502: {"model": ErrorResponse, "description": "Extraction or mail transport failure"},
}


def ok(data: Any = None, message: str | None = None) -> dict:
    """Success envelope. Omits ``message`` when there is none."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def fail(message: str, status_code: int = 400, details: Any = None) -> JSONResponse:
    """Error envelope as a ready JSONResponse."""
    body: dict[str, Any] = {"success": False, "error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)
