"""JSON error envelope for the ``/api`` routes."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import DocumentNotFoundError, NoDocumentsError, PreviewError

# Domain error -> (HTTP status, envelope code).
PREVIEW_ERROR_STATUS: Dict[Type[PreviewError], Tuple[int, str]] = {
    DocumentNotFoundError: (404, "DOCUMENT_NOT_FOUND"),
    NoDocumentsError: (500, "NO_DOCUMENTS"),
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
    )


class APIError(Exception):
    """Raised by route handlers; rendered as ``{"error": {code, message, details}}``."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}

    @classmethod
    def from_preview_error(cls, exc: PreviewError) -> "APIError":
        status_code, code = PREVIEW_ERROR_STATUS.get(type(exc), (500, "PREVIEW_ERROR"))
        details = {"document": exc.key} if isinstance(exc, DocumentNotFoundError) else {}
        return cls(status_code, code, str(exc), details)


async def api_error_handler(_: Request, exc: APIError) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as ``BAD_REQUEST``."""
    return error_response(400, "BAD_REQUEST", "Invalid request payload", {"errors": exc.errors()})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
