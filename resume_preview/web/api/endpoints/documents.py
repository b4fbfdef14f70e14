"""Document listing, configuration and switching endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ....errors import DocumentNotFoundError
from ....state import ActiveDocumentContext
from ...deps import get_context, get_runtime
from ...errors import APIError
from ...runtime import PreviewRuntime

router = APIRouter(tags=["documents"])
logger = logging.getLogger("resume_preview.web.api")

MAX_CONFIG_ENTRIES = 500


class DocumentListResponse(BaseModel):
    resumes: List[str]
    visible: List[str]
    categorized: Dict[str, List[str]]
    current: Optional[str]


class ConfigResponse(BaseModel):
    visibleResumes: Optional[List[str]]
    externalPaths: List[str]
    allResumes: List[str]


class UpdateConfigRequest(BaseModel):
    visibleResumes: Optional[List[str]] = Field(default=None, max_length=MAX_CONFIG_ENTRIES)
    externalPaths: Optional[List[str]] = Field(default=None, max_length=MAX_CONFIG_ENTRIES)


class UpdateConfigResponse(BaseModel):
    success: bool
    visibleResumes: Optional[List[str]] = None
    externalPaths: Optional[List[str]] = None
    current: Optional[str] = None


class SwitchResponse(BaseModel):
    success: bool
    current: str


@router.get("/resumes", response_model=DocumentListResponse)
async def list_documents(
    context: ActiveDocumentContext = Depends(get_context),
) -> DocumentListResponse:
    catalog = context.catalog
    return DocumentListResponse(
        resumes=await asyncio.to_thread(catalog.keys),
        visible=[ref.key for ref in await asyncio.to_thread(catalog.visible)],
        categorized=await asyncio.to_thread(catalog.categorized),
        current=context.active_key,
    )


@router.get("/config", response_model=ConfigResponse)
async def get_config(runtime: PreviewRuntime = Depends(get_runtime)) -> ConfigResponse:
    config = runtime.config_store.config
    return ConfigResponse(
        visibleResumes=config.visible_resumes,
        externalPaths=config.external_paths,
        allResumes=await asyncio.to_thread(runtime.catalog.keys),
    )


@router.post("/config", response_model=UpdateConfigResponse)
async def update_config(
    request: UpdateConfigRequest,
    runtime: PreviewRuntime = Depends(get_runtime),
) -> UpdateConfigResponse:
    if request.visibleResumes is None and request.externalPaths is None:
        raise APIError(400, "BAD_REQUEST", "Invalid data format")

    try:
        visible = await runtime.context.apply_visibility(request.visibleResumes, request.externalPaths)
    except ValueError as exc:
        raise APIError(400, "NO_VALID_DOCUMENTS", str(exc)) from exc

    if not await asyncio.to_thread(runtime.config_store.save):
        raise APIError(500, "CONFIG_SAVE_FAILED", "Failed to save config file")

    logger.info(
        "config_saved visible=%s external_paths=%s",
        ",".join(visible) if visible is not None else "-",
        len(runtime.config_store.config.external_paths),
    )
    return UpdateConfigResponse(
        success=True,
        visibleResumes=visible,
        externalPaths=list(request.externalPaths) if request.externalPaths is not None else None,
        current=runtime.context.active_key,
    )


@router.api_route("/switch/{name:path}", methods=["GET", "POST"], response_model=SwitchResponse)
async def switch_document(
    name: str,
    context: ActiveDocumentContext = Depends(get_context),
) -> SwitchResponse:
    try:
        document = await context.switch(name)
    except DocumentNotFoundError as exc:
        raise APIError.from_preview_error(exc) from exc
    return SwitchResponse(success=True, current=document.key)
