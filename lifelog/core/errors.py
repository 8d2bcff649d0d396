"""
Custom exception hierarchy for Lifelog.

Rule: every error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class LifelogException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LifelogException):
    """Bad caller input, e.g. an empty event name or a malformed date."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )


class NotFoundError(LifelogException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} {identifier} does not exist.",
            details={"resource": resource, "id": identifier},
        )


class FormatError(LifelogException):
    """A snapshot document that cannot be imported."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "FORMAT_ERROR"


class StorageError(LifelogException):
    """The database rejected or failed a write."""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_ERROR"


class IoError(LifelogException):
    """Reading or writing a backup file failed."""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "IO_ERROR"

    def __init__(self, message: str, path: str | None = None):
        super().__init__(
            message=message,
            details={"path": path} if path else {},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def lifelog_exception_handler(request: Request, exc: LifelogException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
