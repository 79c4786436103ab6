"""
Catalog error taxonomy and the FastAPI handlers that render it.

Every outcome the store adapter can produce is one of these exceptions; the
handlers turn them into the JSON error payloads clients rely on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class CatalogError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class BookNotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Book not found"


class InvalidBookId(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid book ID"


class DuplicateIsbn(CatalogError):
    status_code = status.HTTP_409_CONFLICT
    message = "A book with this ISBN already exists"


class StoreUnavailable(CatalogError):
    """The store failed in a way the caller cannot correct (never retried)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Server error"


class BookValidationFailed(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"

    def __init__(self, errors: list[FieldError]):
        super().__init__()
        self.errors = list(errors)

    @property
    def details(self) -> list[str]:
        return [e.message for e in self.errors]

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "details": self.details,
            "errors": [e.as_dict() for e in self.errors],
        }


def _request_field_errors(exc: RequestValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "path", "body")]
        field = loc[0] if loc else "general"
        errors.append(FieldError(field=field, message=f"{field}: {err.get('msg', 'invalid value')}"))
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        failure = BookValidationFailed(_request_field_errors(exc))
        return JSONResponse(status_code=failure.status_code, content=failure.payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return JSONResponse(
                status_code=404,
                content={"success": False, "error": "Route not found"},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
