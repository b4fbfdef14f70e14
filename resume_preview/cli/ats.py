"""Extract the text layer of ``resume.pdf`` the way an ATS parser reads it.

Usage:
    python -m resume_preview.cli.ats --tree resumes/my-resume
    python -m resume_preview.cli.ats --resume templates/example

Writes ``ats-extracted-text.txt`` next to the PDF and prints a report.
Exit codes: 0 success, 2 missing resume.pdf, 1 parse failure.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import fitz  # PyMuPDF

from ..documents import PDF_ARTIFACT, TEXT_ARTIFACT
from ..errors import MISSING_FILE_EXIT_CODE, ExitCode
from ..extraction import format_report, fragments_from_page, join_pages, layout_page
from ..observability import setup_logging
from .common import add_document_arguments, resolve_tree

logger = logging.getLogger(__name__)


def extract_text(pdf_path: Path) -> Tuple[str, int]:
    """Return the laid-out text of every page and the page count."""
    with fitz.open(pdf_path) as doc:
        pages = [layout_page(fragments_from_page(page)) for page in doc]
    return join_pages(pages), len(pages)


def run(tree: Path) -> int:
    pdf_path = tree / PDF_ARTIFACT
    if not pdf_path.is_file():
        print(
            f"[ERROR] resume.pdf not found. Run 'python -m resume_preview.cli.pdf --tree {tree}' first.",
            file=sys.stderr,
        )
        return MISSING_FILE_EXIT_CODE

    try:
        text, page_count = extract_text(pdf_path)
    except Exception as exc:
        print(f"[ERROR] Failed to parse PDF: {exc}", file=sys.stderr)
        logger.debug("ats_parse_failed pdf=%s", pdf_path, exc_info=True)
        return ExitCode.ERROR

    output = tree / TEXT_ARTIFACT
    output.write_text(text, encoding="utf-8")
    logger.info("ats_text_written path=%s characters=%s", output, len(text))
    sys.stdout.write(format_report(tree.name, page_count, text, str(output)))
    return ExitCode.SUCCESS


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Show the text an ATS parser extracts from resume.pdf")
    add_document_arguments(parser)
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    tree = resolve_tree(args)
    if tree is None:
        print("[ERROR] No resumes found in resumes/ or templates/ folder", file=sys.stderr)
        return ExitCode.ERROR
    return run(tree)


if __name__ == "__main__":
    sys.exit(int(main()))
