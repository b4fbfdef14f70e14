"""Tests for document discovery, keys and the catalog."""

from __future__ import annotations

import json
from pathlib import Path

from resume_preview.config import ConfigStore
from resume_preview.documents import (
    DocumentCatalog,
    DocumentKind,
    DocumentRef,
    ProjectLayout,
    documents_in,
    external_documents,
)


def _catalog(layout: ProjectLayout) -> DocumentCatalog:
    store = ConfigStore(layout.config_file)
    store.load()
    return DocumentCatalog(layout, store)


def test_discovery_requires_primary_document(workspace: Path) -> None:
    (workspace / "resumes" / "draft").mkdir()
    names = [ref.name for ref in documents_in(workspace / "resumes", DocumentKind.LOCAL)]
    assert names == ["alpha", "beta"]


def test_catalog_orders_local_then_templates(layout: ProjectLayout) -> None:
    catalog = _catalog(layout)
    assert catalog.keys() == ["alpha", "beta", "templates/classic"]
    assert catalog.categorized() == {
        "resumes": ["alpha", "beta"],
        "templates": ["templates/classic"],
        "externals": [],
    }


def test_external_paths_are_scanned(tmp_path: Path, layout: ProjectLayout, make_document) -> None:
    outside = tmp_path / "elsewhere"
    make_document(outside, "remote")
    layout.config_file.write_text(json.dumps({"externalPaths": [f'"{outside}"']}), encoding="utf-8")

    catalog = _catalog(layout)
    externals = catalog.categorized()["externals"]
    assert externals == [f"external:remote|{outside / 'remote'}"]

    found = catalog.find(externals[0])
    assert found is not None
    assert found.kind is DocumentKind.EXTERNAL
    assert found.path == outside / "remote"


def test_external_folder_that_is_itself_a_document(tmp_path: Path, make_document) -> None:
    tree = make_document(tmp_path, "solo")
    refs = external_documents([str(tree)])
    assert [ref.name for ref in refs] == ["solo"]


def test_missing_external_path_is_skipped(tmp_path: Path) -> None:
    assert external_documents([str(tmp_path / "nope"), "", None]) == []


def test_visible_filter_applies(layout: ProjectLayout) -> None:
    layout.config_file.write_text(json.dumps({"visibleResumes": ["beta"]}), encoding="utf-8")
    catalog = _catalog(layout)
    assert [ref.key for ref in catalog.visible()] == ["beta"]
    assert catalog.default().key == "beta"


def test_default_prefers_local_resumes(tmp_path: Path, make_document) -> None:
    make_document(tmp_path / "templates", "classic")
    make_document(tmp_path / "resumes", "mine")
    catalog = _catalog(ProjectLayout(tmp_path))
    assert catalog.default().key == "mine"


def test_default_falls_back_to_template(tmp_path: Path, make_document) -> None:
    make_document(tmp_path / "templates", "classic")
    catalog = _catalog(ProjectLayout(tmp_path))
    assert catalog.default().key == "templates/classic"


def test_default_is_none_without_documents(tmp_path: Path) -> None:
    assert _catalog(ProjectLayout(tmp_path)).default() is None


def test_parse_key_round_trips_kinds(layout: ProjectLayout) -> None:
    template = DocumentRef.parse_key("templates/classic", layout)
    assert template.kind is DocumentKind.TEMPLATE
    assert template.path == layout.templates_dir / "classic"

    external = DocumentRef.parse_key("external:cv|/data/cv", layout)
    assert external.kind is DocumentKind.EXTERNAL
    assert external.name == "cv"
    assert external.path == Path("/data/cv")

    local = DocumentRef.parse_key("alpha", layout)
    assert local.kind is DocumentKind.LOCAL
    assert local.key == "alpha"


def test_find_only_returns_catalogued_documents(tmp_path: Path, layout: ProjectLayout, make_document) -> None:
    catalog = _catalog(layout)

    template = catalog.find("templates/classic")
    assert template is not None
    assert template.kind is DocumentKind.TEMPLATE
    assert catalog.find("classic") is None
    assert catalog.find("alpha/../beta") is None
    assert catalog.find("") is None

    stray = make_document(tmp_path / "elsewhere", "stray")
    assert catalog.find(f"external:stray|{stray}") is None


def test_safe_filename_replaces_unsafe_characters(layout: ProjectLayout) -> None:
    ref = DocumentRef(DocumentKind.LOCAL, "my cv/v2", layout.resumes_dir / "x")
    assert ref.safe_filename == "my-cv-v2-resume.pdf"
