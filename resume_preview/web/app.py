"""FastAPI app entrypoint for the resume preview server."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from time import perf_counter
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles

from ..errors import ExitCode, NoDocumentsError
from ..invokers import AtsExtractor, PdfRenderer
from ..observability import setup_logging
from ..settings import PreviewSettings, has_errors, validate_settings
from .api.router import api_router
from .errors import install_error_handlers
from .pages import loading_page
from .runtime import PreviewRuntime
from .server import ServerController

logger = logging.getLogger("resume_preview.web.api")

# Reachable even when no document exists.
ALWAYS_AVAILABLE_PATHS = {"/api/shutdown", "/api/shutdown-fast", "/healthz"}
NO_DOCUMENTS_MESSAGE = "No resumes found. Create a folder in resumes/ with resume.html"

mimetypes.add_type("font/woff2", ".woff2")
mimetypes.add_type("font/woff", ".woff")


def _resolve_static(tree: Path, request_path: str) -> Optional[Path]:
    """Map a URL path into ``tree``; None when it escapes the tree."""
    root = tree.resolve()
    candidate = (root / request_path.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def create_app(
    settings: Optional[PreviewSettings] = None,
    *,
    renderer: Optional[PdfRenderer] = None,
    extractor: Optional[AtsExtractor] = None,
    controller: Optional[ServerController] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or PreviewSettings.from_env()
    ui_dir = Path(__file__).resolve().parent / "ui"
    runtime = PreviewRuntime.build(settings, renderer=renderer, extractor=extractor, controller=controller)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        context = runtime.context
        document = await asyncio.to_thread(context.resolve_initial, settings.requested_document)
        runtime.watcher.start(document)
        if settings.idle_shutdown:
            runtime.idle.attach(runtime.registry)
        runtime.controller.install_fatal_handlers()
        logger.info(
            "server_started url=%s document=%s idle_shutdown=%s",
            settings.base_url,
            context.active_key or "-",
            settings.idle_shutdown,
        )
        try:
            yield
        finally:
            runtime.idle.disarm()
            await runtime.watcher.aclose()
            runtime.registry.close_all()
            runtime.controller.uninstall_fatal_handlers()
            logger.info("server_stopped exit_code=%s", runtime.controller.exit_code)

    app = FastAPI(title="Resume Preview", version="0.1.0", lifespan=lifespan)
    app.state.runtime = runtime
    app.include_router(api_router)
    app.mount("/web/static", StaticFiles(directory=ui_dir), name="web_static")

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = perf_counter()
        path = request.url.path
        if path not in ALWAYS_AVAILABLE_PATHS and not path.startswith("/web/static"):
            try:
                runtime.context.require_active()
            except NoDocumentsError:
                response = PlainTextResponse(NO_DOCUMENTS_MESSAGE, status_code=500)
                _log_request(request, response.status_code, start, "-")
                return response

        try:
            response = await call_next(request)
        except Exception:
            _log_request(request, 500, start, runtime.context.active_key or "-")
            raise

        _log_request(request, response.status_code, start, runtime.context.active_key or "-")
        return response

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict:
        return {"status": "ok"}

    @app.get("/", include_in_schema=False)
    async def preview_page() -> FileResponse:
        return FileResponse(ui_dir / "index.html", headers={"Cache-Control": "no-cache"})

    @app.get("/resume", include_in_schema=False)
    @app.get("/resume.html", include_in_schema=False)
    async def resume_document() -> Response:
        document = runtime.context.require_active()
        if not document.primary_document.is_file():
            return PlainTextResponse("Not Found", status_code=404)
        return FileResponse(document.primary_document, media_type="text/html", headers={"Cache-Control": "no-cache"})

    @app.get("/pdf", include_in_schema=False)
    async def pdf_loading() -> HTMLResponse:
        return HTMLResponse(loading_page("Generating PDF", "Please wait, this may take a few seconds...", "/api/pdf"))

    @app.get("/ats-test", include_in_schema=False)
    async def ats_loading() -> HTMLResponse:
        return HTMLResponse(loading_page("Running ATS Test", "Analyzing PDF for ATS compatibility...", "/api/ats-test"))

    @app.get("/{asset_path:path}", include_in_schema=False)
    async def document_asset(asset_path: str) -> Response:
        document = runtime.context.require_active()
        target = _resolve_static(document.path, asset_path)
        if target is None:
            logger.warning("static_path_blocked path=%s", asset_path)
            return PlainTextResponse("Forbidden", status_code=403)
        if not await asyncio.to_thread(target.is_file):
            return PlainTextResponse("Not Found", status_code=404)
        media_type, _ = mimetypes.guess_type(target.name)
        return FileResponse(target, media_type=media_type or "application/octet-stream")

    install_error_handlers(app)
    return app


def _log_request(request: Request, status: int, start: float, document: str) -> None:
    duration_ms = (perf_counter() - start) * 1000
    logger.info(
        "api_request method=%s path=%s status=%s duration_ms=%.2f document=%s",
        request.method,
        request.url.path,
        status,
        duration_ms,
        document,
    )


def main() -> None:
    """Run the preview server and exit with the code requested by the app."""
    import uvicorn

    settings = PreviewSettings.from_env()
    setup_logging(settings.verbose)

    issues = validate_settings(settings)
    for issue in issues:
        logger.warning("settings_issue field=%s severity=%s message=%s", issue.field, issue.severity.value, issue.message)
    if has_errors(issues):
        sys.exit(ExitCode.ERROR)

    controller = ServerController()
    app = create_app(settings, controller=controller)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        timeout_graceful_shutdown=3,
    )
    server = uvicorn.Server(config)
    controller.bind(server)
    try:
        server.run()
    except KeyboardInterrupt:
        pass
    sys.exit(int(controller.exit_code))


if __name__ == "__main__":
    main()
