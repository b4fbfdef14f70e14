"""Server-sent event stream notifying the preview page of source changes."""

from __future__ import annotations

from typing import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ...deps import get_runtime
from ...runtime import PreviewRuntime

router = APIRouter(tags=["live-reload"])


@router.get("/live-reload")
async def live_reload_stream(runtime: PreviewRuntime = Depends(get_runtime)) -> StreamingResponse:
    registry = runtime.registry
    subscriber = registry.subscribe(runtime.context.active_key)

    async def event_stream() -> AsyncGenerator[str, None]:
        try:
            async for frame in subscriber.frames():
                yield frame
        finally:
            registry.unsubscribe(subscriber)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
