"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from resume_preview.documents import ProjectLayout
from resume_preview.settings import PreviewSettings


@pytest.fixture(autouse=True)
def _isolate_runtime_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear local runtime env that can leak into tests on developer machines."""
    for key in list(os.environ):
        if key.startswith("CVAC_"):
            monkeypatch.delenv(key, raising=False)


def write_document(parent: Path, name: str, html: str = "<html><body>Resume</body></html>", css: bool = True) -> Path:
    tree = parent / name
    tree.mkdir(parents=True, exist_ok=True)
    (tree / "resume.html").write_text(html, encoding="utf-8")
    if css:
        (tree / "css").mkdir(exist_ok=True)
        (tree / "css" / "styles.css").write_text("body { color: black; }", encoding="utf-8")
    return tree


@pytest.fixture
def make_document():
    """Factory creating a source tree with resume.html and css/styles.css."""
    return write_document


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace with two resumes and one template."""
    write_document(tmp_path / "resumes", "alpha")
    write_document(tmp_path / "resumes", "beta")
    write_document(tmp_path / "templates", "classic")
    return tmp_path


@pytest.fixture
def layout(workspace: Path) -> ProjectLayout:
    return ProjectLayout(workspace)


@pytest.fixture
def settings(workspace: Path) -> PreviewSettings:
    return PreviewSettings(
        root_dir=workspace,
        debounce_seconds=0.05,
        heartbeat_seconds=30.0,
        idle_grace_seconds=0.2,
        idle_shutdown=False,
    )
