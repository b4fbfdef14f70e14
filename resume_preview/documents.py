"""Resume document references and discovery.

A document is a folder holding ``resume.html`` (the primary document), an
optional ``css/`` folder of style sheets and any nested HTML fragments. Three
kinds exist: user resumes under ``resumes/``, bundled templates under
``templates/`` and external folders registered in the config file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .config import ConfigStore

logger = logging.getLogger(__name__)

PRIMARY_DOCUMENT = "resume.html"
STYLE_DIR = "css"
PDF_ARTIFACT = "resume.pdf"
TEXT_ARTIFACT = "ats-extracted-text.txt"

TEMPLATE_PREFIX = "templates/"
EXTERNAL_PREFIX = "external:"
EXTERNAL_SEPARATOR = "|"


class DocumentKind(Enum):
    LOCAL = "local"
    TEMPLATE = "template"
    EXTERNAL = "external"


@dataclass(frozen=True)
class ProjectLayout:
    """Directory layout of a preview workspace."""

    root_dir: Path

    @property
    def resumes_dir(self) -> Path:
        return self.root_dir / "resumes"

    @property
    def templates_dir(self) -> Path:
        return self.root_dir / "templates"

    @property
    def config_file(self) -> Path:
        return self.resumes_dir / "config.json"


@dataclass(frozen=True)
class DocumentRef:
    """One previewable document: its kind, folder name and source tree root."""

    kind: DocumentKind
    name: str
    path: Path

    @property
    def key(self) -> str:
        """Stable identifier used by the HTTP API and the config file."""
        if self.kind is DocumentKind.TEMPLATE:
            return f"{TEMPLATE_PREFIX}{self.name}"
        if self.kind is DocumentKind.EXTERNAL:
            return f"{EXTERNAL_PREFIX}{self.name}{EXTERNAL_SEPARATOR}{self.path}"
        return self.name

    @property
    def primary_document(self) -> Path:
        return self.path / PRIMARY_DOCUMENT

    @property
    def pdf_path(self) -> Path:
        return self.path / PDF_ARTIFACT

    @property
    def text_path(self) -> Path:
        return self.path / TEXT_ARTIFACT

    @property
    def safe_filename(self) -> str:
        """Name usable in a Content-Disposition header."""
        cleaned = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in self.name)
        return f"{cleaned}-resume.pdf"

    @classmethod
    def parse_key(cls, key: str, layout: ProjectLayout) -> "DocumentRef":
        """Build a reference from its key without checking that it exists."""
        if key.startswith(EXTERNAL_PREFIX):
            body = key[len(EXTERNAL_PREFIX) :]
            name, _, raw_path = body.partition(EXTERNAL_SEPARATOR)
            path = Path(raw_path or name)
            return cls(DocumentKind.EXTERNAL, name or path.name, path)
        if key.startswith(TEMPLATE_PREFIX):
            name = key[len(TEMPLATE_PREFIX) :]
            return cls(DocumentKind.TEMPLATE, name, layout.templates_dir / name)
        return cls(DocumentKind.LOCAL, key, layout.resumes_dir / key)


def is_source_tree(directory: Path) -> bool:
    return directory.is_dir() and (directory / PRIMARY_DOCUMENT).is_file()


def documents_in(directory: Path, kind: DocumentKind) -> List[DocumentRef]:
    """Return one reference per immediate sub-folder holding ``resume.html``."""
    if not directory.is_dir():
        return []
    items = [
        DocumentRef(kind=kind, name=child.name, path=child)
        for child in directory.iterdir()
        if is_source_tree(child)
    ]
    items.sort(key=lambda ref: ref.name)
    return items


def _clean_external_path(raw: str) -> str:
    return raw.strip().strip('"').strip()


def external_documents(paths: Iterable[str]) -> List[DocumentRef]:
    """Scan configured external folders for documents."""
    results: List[DocumentRef] = []
    for raw in paths:
        if not raw or not isinstance(raw, str):
            continue
        candidate = Path(_clean_external_path(raw)).expanduser()
        try:
            if not candidate.is_dir():
                logger.warning("external_path_missing path=%s", candidate)
                continue
            if is_source_tree(candidate):
                results.append(DocumentRef(DocumentKind.EXTERNAL, candidate.name, candidate))
            results.extend(documents_in(candidate, DocumentKind.EXTERNAL))
        except OSError as exc:
            logger.warning("external_path_unreadable path=%s error=%s", candidate, exc)
    return results


class DocumentCatalog:
    """Known documents, computed from the filesystem on every call."""

    def __init__(self, layout: ProjectLayout, config_store: ConfigStore) -> None:
        self.layout = layout
        self._config_store = config_store

    def all(self) -> List[DocumentRef]:
        return [
            *documents_in(self.layout.resumes_dir, DocumentKind.LOCAL),
            *documents_in(self.layout.templates_dir, DocumentKind.TEMPLATE),
            *external_documents(self._config_store.config.external_paths),
        ]

    def keys(self) -> List[str]:
        return [ref.key for ref in self.all()]

    def visible(self) -> List[DocumentRef]:
        documents = self.all()
        visible_filter = self._config_store.config.visible_resumes
        if visible_filter:
            return [ref for ref in documents if ref.key in visible_filter]
        return documents

    def categorized(self) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = {"resumes": [], "templates": [], "externals": []}
        bucket = {
            DocumentKind.LOCAL: "resumes",
            DocumentKind.TEMPLATE: "templates",
            DocumentKind.EXTERNAL: "externals",
        }
        for ref in self.all():
            groups[bucket[ref.kind]].append(ref.key)
        return groups

    def find(self, key: Optional[str]) -> Optional[DocumentRef]:
        if not key:
            return None
        wanted = DocumentRef.parse_key(key, self.layout)
        for ref in self.all():
            if ref == wanted:
                return ref
        return None

    def default(self) -> Optional[DocumentRef]:
        """Fallback selection: visible user resume, then any visible, then any."""
        visible = self.visible()
        for ref in visible:
            if ref.kind is DocumentKind.LOCAL:
                return ref
        if visible:
            return visible[0]
        documents = self.all()
        return documents[0] if documents else None
