"""Tests for generated-artifact cleanup."""

from __future__ import annotations

from pathlib import Path

from resume_preview.cleanup import cleanup_generated
from resume_preview.documents import ProjectLayout


def _generate(tree: Path) -> None:
    (tree / "resume.pdf").write_bytes(b"%PDF-1.7")
    (tree / "ats-extracted-text.txt").write_text("text", encoding="utf-8")


def test_removes_artifacts_from_every_subfolder(layout: ProjectLayout) -> None:
    orphan = layout.resumes_dir / "orphan"
    orphan.mkdir()
    for tree in (layout.resumes_dir / "alpha", layout.templates_dir / "classic", orphan):
        _generate(tree)

    report = cleanup_generated(layout)

    assert len(report.removed) == 6
    assert report.failed == []
    assert not (orphan / "resume.pdf").exists()
    assert (layout.resumes_dir / "alpha" / "resume.html").exists()


def test_external_documents_and_dependency_dirs(tmp_path: Path, layout: ProjectLayout, make_document) -> None:
    external = make_document(tmp_path / "elsewhere", "remote")
    _generate(external)
    browsers = tmp_path / ".cvac" / "browsers"
    (browsers / "chromium").mkdir(parents=True)

    report = cleanup_generated(
        layout,
        external_paths=[str(tmp_path / "elsewhere")],
        dependency_dirs=[browsers, tmp_path / "absent"],
    )

    assert browsers in report.removed
    assert not browsers.exists()
    assert not (external / "resume.pdf").exists()
    assert (external / "resume.html").exists()


def test_nothing_to_remove(tmp_path: Path) -> None:
    report = cleanup_generated(ProjectLayout(tmp_path))
    assert report.removed == []
    assert report.failed == []
