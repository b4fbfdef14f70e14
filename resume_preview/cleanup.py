"""Remove generated artifacts and installed browser dependencies."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from .documents import PDF_ARTIFACT, TEXT_ARTIFACT, ProjectLayout, external_documents

logger = logging.getLogger(__name__)

GENERATED_FILES = (PDF_ARTIFACT, TEXT_ARTIFACT)


@dataclass
class CleanupReport:
    removed: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)


def _subfolders(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    try:
        return sorted(child for child in directory.iterdir() if child.is_dir())
    except OSError as exc:
        logger.warning("cleanup_scan_failed path=%s error=%s", directory, exc)
        return []


def _remove_file(path: Path, report: CleanupReport) -> None:
    if not path.is_file():
        return
    try:
        path.unlink()
    except OSError as exc:
        logger.warning("cleanup_remove_failed path=%s error=%s", path, exc)
        report.failed.append(path)
        return
    report.removed.append(path)


def cleanup_generated(
    layout: ProjectLayout,
    external_paths: Iterable[str] = (),
    dependency_dirs: Iterable[Path] = (),
) -> CleanupReport:
    """Delete ``resume.pdf`` and the extracted text in every known document tree.

    Each sub-folder of ``resumes/`` and ``templates/`` is cleaned whether or
    not it still holds ``resume.html``. Failures are counted, never raised.
    """
    report = CleanupReport()

    trees = [*_subfolders(layout.resumes_dir), *_subfolders(layout.templates_dir)]
    trees.extend(ref.path for ref in external_documents(external_paths))

    for tree in trees:
        for name in GENERATED_FILES:
            _remove_file(tree / name, report)

    for directory in dependency_dirs:
        if not directory.exists():
            continue
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            logger.warning("cleanup_remove_failed path=%s error=%s", directory, exc)
            report.failed.append(directory)
            continue
        report.removed.append(directory)

    logger.info("cleanup_done removed=%s failed=%s", len(report.removed), len(report.failed))
    return report
