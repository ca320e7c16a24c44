"""
schemas/errors.py — Structured error response model

Shared by the AppError, HTTPException and RequestValidationError
handlers in main.py.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: list | dict | str | None = None
