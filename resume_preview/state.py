"""The single active document and the operations that change it."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from .config import ConfigStore
from .documents import DocumentCatalog, DocumentRef
from .errors import DocumentNotFoundError, NoDocumentsError
from .live_reload import ChangeEvent, FileWatcher, SubscriberRegistry

logger = logging.getLogger(__name__)


class ActiveDocumentContext:
    """Owns which document is being previewed.

    Switching is serialized by a lock so that the active document, the
    persisted ``lastResume``, the file watcher and the ``switch`` broadcast
    always move together.
    """

    def __init__(
        self,
        catalog: DocumentCatalog,
        config_store: ConfigStore,
        watcher: FileWatcher,
        registry: SubscriberRegistry,
    ) -> None:
        self.catalog = catalog
        self.config_store = config_store
        self.watcher = watcher
        self.registry = registry
        self._active: Optional[DocumentRef] = None
        self._lock = asyncio.Lock()

    @property
    def active(self) -> Optional[DocumentRef]:
        return self._active

    @property
    def active_key(self) -> Optional[str]:
        return self._active.key if self._active else None

    def resolve_initial(self, requested: Optional[str] = None) -> Optional[DocumentRef]:
        """Pick the document to show at startup.

        Order: the requested key, then ``lastResume`` when it is still known
        and visible, then the catalog's default fallback.
        """
        document = self.catalog.find(requested)
        if requested and document is None:
            logger.warning("requested_document_unknown document=%s", requested)

        if document is None:
            config = self.config_store.config
            candidate = self.catalog.find(config.last_resume)
            visible_filter = config.visible_resumes
            if candidate is not None and (not visible_filter or candidate.key in visible_filter):
                logger.info("restored_last_document document=%s", candidate.key)
                document = candidate

        if document is None:
            document = self.catalog.default()

        if document is None:
            logger.error("no_documents resumes_dir=%s", self.catalog.layout.resumes_dir)
        self._active = document
        return document

    def require_active(self) -> DocumentRef:
        """Return the active document, falling back to the default when it vanished."""
        document = self._active
        if document is not None and document.path.is_dir():
            return document
        document = self.catalog.default()
        if document is None:
            raise NoDocumentsError()
        self._active = document
        return document

    async def switch(self, key: str) -> DocumentRef:
        document = self.catalog.find(key)
        if document is None:
            raise DocumentNotFoundError(key)

        async with self._lock:
            self._active = document
            saved = await asyncio.to_thread(self.config_store.save, last_resume=document.key)
            if not saved:
                logger.warning("last_document_not_persisted document=%s", document.key)
            await self.watcher.restart(document)
            self.registry.broadcast(ChangeEvent.switch(document.key))

        logger.info("document_switched document=%s", document.key)
        return document

    async def apply_visibility(
        self,
        visible_resumes: Optional[Sequence[str]],
        external_paths: Optional[Sequence[str]],
    ) -> Optional[List[str]]:
        """Update the visible filter and external paths in memory.

        Returns the filtered visible list (``None`` when only external paths
        changed). Raises ValueError when a visible list keeps no known
        document. Persisting is left to the caller.
        """
        async with self._lock:
            if external_paths is not None:
                self.config_store.update(external_paths=list(external_paths))

            if visible_resumes is None:
                return None

            known = set(self.catalog.keys())
            valid = [key for key in visible_resumes if key in known]
            if not valid:
                raise ValueError("No valid resumes selected")

            self.config_store.update(visible_resumes=valid)
            if self.active_key not in valid:
                document = self.catalog.find(valid[0])
                self._active = document
                await self.watcher.restart(document)
                logger.info("active_document_hidden moved_to=%s", valid[0])
            return valid
