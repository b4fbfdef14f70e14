"""Dependency providers for the API routes."""

from __future__ import annotations

from fastapi import Depends, Request

from ..documents import DocumentRef
from ..errors import NoDocumentsError
from ..state import ActiveDocumentContext
from .errors import APIError
from .runtime import PreviewRuntime


def get_runtime(request: Request) -> PreviewRuntime:
    """Access the shared runtime from app state."""
    return request.app.state.runtime


def get_context(runtime: PreviewRuntime = Depends(get_runtime)) -> ActiveDocumentContext:
    return runtime.context


def get_active_document(context: ActiveDocumentContext = Depends(get_context)) -> DocumentRef:
    try:
        return context.require_active()
    except NoDocumentsError as exc:
        raise APIError.from_preview_error(exc) from exc
