"""PDF download and ATS report endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, Response

from ....documents import DocumentRef
from ....errors import PreviewError
from ...deps import get_active_document, get_runtime
from ...pages import ats_results_page
from ...runtime import PreviewRuntime

router = APIRouter(tags=["artifacts"])
logger = logging.getLogger("resume_preview.web.api")


@router.get("/pdf")
async def get_pdf(
    runtime: PreviewRuntime = Depends(get_runtime),
    document: DocumentRef = Depends(get_active_document),
) -> Response:
    try:
        pdf_path = await runtime.coordinator.ensure_pdf(document)
    except (PreviewError, OSError) as exc:
        logger.error("pdf_request_failed document=%s error=%s", document.key, exc)
        return PlainTextResponse(f"PDF generation failed: {exc}", status_code=500)

    return FileResponse(
        pdf_path,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{document.safe_filename}"',
            "Cache-Control": "no-cache",
        },
    )


@router.get("/ats-test")
async def get_ats_report(
    runtime: PreviewRuntime = Depends(get_runtime),
    document: DocumentRef = Depends(get_active_document),
) -> Response:
    logger.info("ats_request document=%s", document.key)
    try:
        output = await runtime.coordinator.ats_report(document)
    except (PreviewError, OSError) as exc:
        logger.error("ats_request_failed document=%s error=%s", document.key, exc)
        return PlainTextResponse(f"ATS test failed: {exc}", status_code=500)

    return HTMLResponse(ats_results_page(document.key, output), headers={"Cache-Control": "no-cache"})
