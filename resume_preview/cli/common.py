"""Argument handling shared by the PDF and ATS programs."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from ..config import ConfigStore
from ..documents import DocumentCatalog, ProjectLayout
from ..settings import PreviewSettings


def add_document_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tree",
        type=Path,
        help="Source tree holding resume.html (overrides --resume)",
    )
    parser.add_argument(
        "--resume", "-r",
        help="Document key, e.g. 'my-resume' or 'templates/example' (default: first resume)",
    )
    parser.add_argument(
        "--root",
        type=Path,
        help="Workspace root holding resumes/ and templates/ (default: $CVAC_ROOT or cwd)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")


def resolve_tree(args: argparse.Namespace) -> Optional[Path]:
    """Map CLI arguments to a source tree, or None when no document exists."""
    if args.tree is not None:
        return args.tree.expanduser().resolve()

    root = args.root.expanduser().resolve() if args.root else PreviewSettings.from_env().root_dir
    layout = ProjectLayout(root)
    store = ConfigStore(layout.config_file)
    store.load()
    catalog = DocumentCatalog(layout, store)

    document = catalog.find(args.resume) if args.resume else None
    if document is None:
        document = catalog.default()
    return document.path if document else None
