"""Objects shared by every request, built once per application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import ConfigStore
from ..documents import DocumentCatalog
from ..generation import ArtifactCoordinator
from ..idle import IdleShutdownSupervisor
from ..errors import ExitCode
from ..invokers import AtsExtractor, PdfRenderer
from ..live_reload import FileWatcher, SubscriberRegistry
from ..settings import PreviewSettings
from ..state import ActiveDocumentContext
from .server import ServerController


@dataclass
class PreviewRuntime:
    settings: PreviewSettings
    config_store: ConfigStore
    catalog: DocumentCatalog
    registry: SubscriberRegistry
    watcher: FileWatcher
    context: ActiveDocumentContext
    coordinator: ArtifactCoordinator
    idle: IdleShutdownSupervisor
    controller: ServerController

    @classmethod
    def build(
        cls,
        settings: PreviewSettings,
        renderer: Optional[PdfRenderer] = None,
        extractor: Optional[AtsExtractor] = None,
        controller: Optional[ServerController] = None,
    ) -> "PreviewRuntime":
        layout = settings.layout
        config_store = ConfigStore(layout.config_file)
        config_store.load()
        catalog = DocumentCatalog(layout, config_store)
        registry = SubscriberRegistry(heartbeat_seconds=settings.heartbeat_seconds)
        watcher = FileWatcher(registry, debounce_seconds=settings.debounce_seconds)
        context = ActiveDocumentContext(catalog, config_store, watcher, registry)
        coordinator = ArtifactCoordinator(
            renderer or PdfRenderer(timeout_seconds=settings.render_timeout_seconds),
            extractor or AtsExtractor(timeout_seconds=settings.extract_timeout_seconds),
        )
        controller = controller or ServerController()
        idle = IdleShutdownSupervisor(
            on_idle=lambda: controller.request_exit(ExitCode.SUCCESS),
            grace_seconds=settings.idle_grace_seconds,
        )
        controller.before_exit(registry.close_all)
        return cls(
            settings=settings,
            config_store=config_store,
            catalog=catalog,
            registry=registry,
            watcher=watcher,
            context=context,
            coordinator=coordinator,
            idle=idle,
            controller=controller,
        )
