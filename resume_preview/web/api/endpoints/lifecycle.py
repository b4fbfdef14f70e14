"""Shutdown, update status and sync endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .... import git_sync
from ....errors import ExitCode
from ...deps import get_runtime
from ...errors import APIError
from ...runtime import PreviewRuntime

router = APIRouter(tags=["lifecycle"])
logger = logging.getLogger("resume_preview.web.api")

# Delay between answering a stop request and stopping the server.
EXIT_DELAY_SECONDS = 0.5


class UpdateStatusResponse(BaseModel):
    updateAvailable: bool
    canSync: bool
    warning: Optional[str]
    branch: str


class SyncResponse(BaseModel):
    success: bool
    message: str


@router.post("/shutdown", response_class=PlainTextResponse)
async def shutdown(runtime: PreviewRuntime = Depends(get_runtime)) -> str:
    logger.info("shutdown_requested cleanup=true")
    runtime.controller.request_exit(ExitCode.SUCCESS, delay=EXIT_DELAY_SECONDS)
    return "Server shutting down..."


@router.post("/shutdown-fast", response_class=PlainTextResponse)
async def shutdown_fast(runtime: PreviewRuntime = Depends(get_runtime)) -> str:
    logger.info("shutdown_requested cleanup=false")
    runtime.controller.request_exit(ExitCode.FAST_STOP, delay=EXIT_DELAY_SECONDS)
    return "Server shutting down..."


@router.get("/update-status", response_model=UpdateStatusResponse)
async def update_status(runtime: PreviewRuntime = Depends(get_runtime)) -> UpdateStatusResponse:
    settings = runtime.settings
    details = await git_sync.update_details(settings.root_dir, settings.update_available)
    return UpdateStatusResponse(**details)


@router.post("/sync", response_model=SyncResponse)
async def sync(runtime: PreviewRuntime = Depends(get_runtime)) -> SyncResponse:
    logger.info("sync_requested root=%s", runtime.settings.root_dir)
    try:
        await git_sync.sync(runtime.settings.root_dir)
    except git_sync.SyncError as exc:
        raise APIError(500, "SYNC_FAILED", str(exc)) from exc

    runtime.controller.request_exit(ExitCode.RESTART, delay=EXIT_DELAY_SECONDS)
    return SyncResponse(success=True, message="Synced successfully. Restarting...")
