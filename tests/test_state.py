"""Tests for active-document selection and switching."""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import List, Optional

import pytest

from resume_preview.config import ConfigStore
from resume_preview.documents import DocumentCatalog, DocumentRef, ProjectLayout
from resume_preview.errors import DocumentNotFoundError, NoDocumentsError
from resume_preview.live_reload import SubscriberRegistry
from resume_preview.state import ActiveDocumentContext


class FakeWatcher:
    def __init__(self) -> None:
        self.restarts: List[Optional[str]] = []

    async def restart(self, document: Optional[DocumentRef]) -> bool:
        self.restarts.append(document.key if document else None)
        return document is not None


def _context(layout: ProjectLayout, watcher: Optional[FakeWatcher] = None):
    store = ConfigStore(layout.config_file)
    store.load()
    catalog = DocumentCatalog(layout, store)
    return ActiveDocumentContext(catalog, store, watcher or FakeWatcher(), SubscriberRegistry())


def _write_config(layout: ProjectLayout, **data) -> None:
    layout.config_file.parent.mkdir(parents=True, exist_ok=True)
    layout.config_file.write_text(json.dumps(data), encoding="utf-8")


def test_resolve_prefers_requested_document(layout: ProjectLayout) -> None:
    _write_config(layout, lastResume="beta")
    context = _context(layout)
    assert context.resolve_initial("templates/classic").key == "templates/classic"
    assert context.active_key == "templates/classic"


def test_resolve_restores_last_document(layout: ProjectLayout) -> None:
    _write_config(layout, lastResume="beta")
    assert _context(layout).resolve_initial("missing").key == "beta"


def test_resolve_ignores_hidden_last_document(layout: ProjectLayout) -> None:
    _write_config(layout, lastResume="beta", visibleResumes=["templates/classic"])
    assert _context(layout).resolve_initial().key == "templates/classic"


def test_resolve_without_documents(tmp_path: Path) -> None:
    context = _context(ProjectLayout(tmp_path))
    assert context.resolve_initial() is None
    with pytest.raises(NoDocumentsError):
        context.require_active()


@pytest.mark.asyncio
async def test_switch_unknown_document_changes_nothing(layout: ProjectLayout) -> None:
    watcher = FakeWatcher()
    context = _context(layout, watcher)
    context.resolve_initial()

    with pytest.raises(DocumentNotFoundError):
        await context.switch("nope")

    assert context.active_key == "alpha"
    assert watcher.restarts == []
    assert not layout.config_file.exists()


@pytest.mark.asyncio
async def test_switch_persists_and_broadcasts(layout: ProjectLayout) -> None:
    watcher = FakeWatcher()
    context = _context(layout, watcher)
    context.resolve_initial()
    subscriber = context.registry.subscribe("alpha")
    subscriber.drain_nowait()

    document = await context.switch("beta")

    assert document.key == "beta"
    assert context.active_key == "beta"
    assert watcher.restarts == ["beta"]
    assert json.loads(layout.config_file.read_text(encoding="utf-8"))["lastResume"] == "beta"
    frames = subscriber.drain_nowait()
    assert len(frames) == 1
    assert frames[0].startswith("event: switch\n")
    assert '"documentName":"beta"' in frames[0]
    context.registry.close_all()


@pytest.mark.asyncio
async def test_visibility_keeps_only_known_keys(layout: ProjectLayout) -> None:
    context = _context(layout)
    context.resolve_initial()

    valid = await context.apply_visibility(["alpha", "ghost"], None)

    assert valid == ["alpha"]
    assert context.config_store.config.visible_resumes == ["alpha"]
    assert not layout.config_file.exists()


@pytest.mark.asyncio
async def test_visibility_with_no_valid_keys_is_rejected(layout: ProjectLayout) -> None:
    context = _context(layout)
    with pytest.raises(ValueError, match="No valid resumes selected"):
        await context.apply_visibility(["ghost"], None)
    assert context.config_store.config.visible_resumes is None


@pytest.mark.asyncio
async def test_hiding_active_document_moves_selection(layout: ProjectLayout) -> None:
    watcher = FakeWatcher()
    context = _context(layout, watcher)
    context.resolve_initial("alpha")

    await context.apply_visibility(["beta", "templates/classic"], None)

    assert context.active_key == "beta"
    assert watcher.restarts == ["beta"]


@pytest.mark.asyncio
async def test_external_paths_only_update(tmp_path: Path, layout: ProjectLayout, make_document) -> None:
    make_document(tmp_path / "elsewhere", "remote")
    context = _context(layout)

    result = await context.apply_visibility(None, [str(tmp_path / "elsewhere")])

    assert result is None
    assert any(key.startswith("external:remote|") for key in context.catalog.keys())


def test_require_active_falls_back_when_tree_vanishes(layout: ProjectLayout) -> None:
    context = _context(layout)
    context.resolve_initial("beta")
    shutil.rmtree(layout.resumes_dir / "beta")

    assert context.require_active().key == "alpha"
