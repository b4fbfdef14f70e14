"""Decide whether a document's PDF must be rendered again."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .documents import PDF_ARTIFACT, PRIMARY_DOCUMENT, STYLE_DIR


def source_files(tree_root: Path) -> List[Path]:
    """Files whose modification time invalidates the PDF.

    The primary document plus every ``*.css`` directly inside ``css/``.
    """
    files: List[Path] = []
    primary = tree_root / PRIMARY_DOCUMENT
    if primary.is_file():
        files.append(primary)
    style_dir = tree_root / STYLE_DIR
    if style_dir.is_dir():
        files.extend(sorted(p for p in style_dir.iterdir() if p.suffix == ".css" and p.is_file()))
    return files


def needs_regeneration(tree_root: Path) -> bool:
    """Return True when ``resume.pdf`` is missing or older than any source file.

    Equal timestamps count as fresh. Raises FileNotFoundError when
    ``tree_root`` does not exist.
    """
    if not tree_root.is_dir():
        raise FileNotFoundError(f"Source tree not found: {tree_root}")

    try:
        pdf_mtime = (tree_root / PDF_ARTIFACT).stat().st_mtime_ns
    except FileNotFoundError:
        return True

    return any(source.stat().st_mtime_ns > pdf_mtime for source in source_files(tree_root))
