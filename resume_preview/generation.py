"""Staleness-aware PDF/ATS generation with one in-flight job per document."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Tuple

from .documents import DocumentRef
from .invokers import AtsExtractor, PdfRenderer
from .staleness import needs_regeneration

logger = logging.getLogger(__name__)


class ArtifactCoordinator:
    """Serve cached artifacts and regenerate them when the sources changed.

    Concurrent callers asking for the same document share one task, so two
    requests never spawn two renders of one document.
    """

    def __init__(self, renderer: PdfRenderer, extractor: AtsExtractor) -> None:
        self.renderer = renderer
        self.extractor = extractor
        self._inflight: Dict[Tuple[str, str], "asyncio.Task[Any]"] = {}

    async def ensure_pdf(self, document: DocumentRef) -> Path:
        """Return the path of an up-to-date ``resume.pdf``, rendering if stale."""
        return await self._single_flight("pdf", document, lambda: self._refresh_pdf(document))

    async def ats_report(self, document: DocumentRef) -> str:
        """Render if needed, then extract the text layer."""
        await self.ensure_pdf(document)
        return await self._single_flight("ats", document, lambda: self.extractor.extract(document))

    def in_flight(self, kind: str, document: DocumentRef) -> bool:
        return (kind, document.key) in self._inflight

    async def _refresh_pdf(self, document: DocumentRef) -> Path:
        stale = await asyncio.to_thread(needs_regeneration, document.path)
        if stale:
            logger.info("pdf_stale document=%s", document.key)
            return await self.renderer.render(document)
        logger.info("pdf_cached document=%s", document.key)
        return document.pdf_path

    async def _single_flight(
        self,
        kind: str,
        document: DocumentRef,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        key = (kind, document.key)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.info("generation_joined kind=%s document=%s", kind, document.key)
        # Shielded so one abandoned request does not cancel work others await.
        return await asyncio.shield(task)

    def _forget(self, key: Tuple[str, str], task: "asyncio.Task[Any]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved; awaiting callers still receive it.
            task.exception()
