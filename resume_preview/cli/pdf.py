"""Render a resume source tree to ``resume.pdf`` with headless Chromium.

Usage:
    python -m resume_preview.cli.pdf --tree resumes/my-resume
    python -m resume_preview.cli.pdf --resume templates/example
    python -m resume_preview.cli.pdf --watch

Exit codes: 0 success, 2 missing resume.html, 1 any other failure.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Optional

from playwright.async_api import async_playwright
from watchfiles import awatch

from ..documents import PDF_ARTIFACT, PRIMARY_DOCUMENT
from ..errors import MISSING_FILE_EXIT_CODE, ExitCode
from ..live_reload import SourceFilter
from ..observability import setup_logging
from .common import add_document_arguments, resolve_tree

logger = logging.getLogger(__name__)

# A4 at 300 DPI; the device scale factor brings raster content to 1200 DPI.
A4_WIDTH_300DPI = 2480
A4_HEIGHT_300DPI = 3508
DEVICE_SCALE_FACTOR = 4
NAVIGATION_TIMEOUT_MS = 300_000

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--font-render-hinting=none",
    "--disable-font-subpixel-positioning",
    "--disable-gpu-compositing",
    "--enable-font-antialiasing",
    "--force-color-profile=srgb",
    "--disable-dev-shm-usage",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]

WAIT_FOR_IMAGES_JS = """
async () => {
    const images = [...document.querySelectorAll('img')];
    await Promise.all(images.map(img => img.complete ? null : new Promise(resolve => {
        img.onload = resolve;
        img.onerror = resolve;
    })));
    await Promise.all(images.map(img => img.decode ? img.decode().catch(() => null) : null));
}
"""

WAIT_FOR_LAYOUT_JS = """
() => new Promise(resolve => {
    document.body.offsetHeight;
    requestAnimationFrame(() => requestAnimationFrame(() => resolve()));
})
"""


class MissingDocumentError(Exception):
    """The tree has no ``resume.html``."""


async def render_pdf(tree: Path) -> Path:
    """Print ``<tree>/resume.html`` to ``<tree>/resume.pdf`` and return the output path."""
    source = tree / PRIMARY_DOCUMENT
    output = tree / PDF_ARTIFACT
    if not source.is_file():
        raise MissingDocumentError(f"resume.html not found at {source}")

    start = perf_counter()
    print(f"[PDF] Starting PDF generation for: {tree.name}")
    print(f"[PDF] Viewport: {A4_WIDTH_300DPI}x{A4_HEIGHT_300DPI} @ {DEVICE_SCALE_FACTOR}x")

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True, args=BROWSER_ARGS)
        try:
            page = await browser.new_page(
                viewport={"width": A4_WIDTH_300DPI, "height": A4_HEIGHT_300DPI},
                device_scale_factor=DEVICE_SCALE_FACTOR,
            )
            print("[PDF] Loading resume.html...")
            await page.goto(source.resolve().as_uri(), wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)

            print("[PDF] Waiting for fonts and images...")
            await page.evaluate("() => document.fonts.ready.then(() => null)")
            await page.evaluate(WAIT_FOR_IMAGES_JS)
            await page.evaluate(WAIT_FOR_LAYOUT_JS)

            print("[PDF] Generating PDF...")
            await page.pdf(
                path=str(output),
                format="A4",
                print_background=True,
                prefer_css_page_size=True,
                display_header_footer=False,
                margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
                tagged=True,
                outline=True,
                scale=1,
            )
        finally:
            await browser.close()

    duration = perf_counter() - start
    size_kb = output.stat().st_size / 1024
    print("\n[SUCCESS] PDF generated!")
    print(f"  Resume: {tree.name}")
    print(f"  Output: {output}")
    print(f"  Size: {size_kb:.1f} KB")
    print(f"  Time: {duration:.2f}s\n")
    logger.info("pdf_written tree=%s size_kb=%.1f duration_s=%.2f", tree, size_kb, duration)
    return output


async def _render_reporting(tree: Path) -> int:
    try:
        await render_pdf(tree)
    except MissingDocumentError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return MISSING_FILE_EXIT_CODE
    except Exception as exc:
        print(f"[ERROR] Error generating PDF: {exc}", file=sys.stderr)
        logger.debug("pdf_render_failed tree=%s", tree, exc_info=True)
        return ExitCode.ERROR
    return ExitCode.SUCCESS


async def watch_and_render(tree: Path) -> int:
    """Render once, then again after every change to the HTML or CSS sources."""
    print("[WATCH] Watch mode enabled. Watching for changes...\n")
    await _render_reporting(tree)
    async for changes in awatch(tree, watch_filter=SourceFilter()):
        changed = sorted({Path(path).name for _change, path in changes})
        print(f"\n[WATCH] Changed: {', '.join(changed)}")
        await _render_reporting(tree)
    return ExitCode.SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render resume.html to a print-quality A4 PDF")
    add_document_arguments(parser)
    parser.add_argument("--watch", "-w", action="store_true", help="Regenerate on HTML/CSS changes")
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    tree = resolve_tree(args)
    if tree is None:
        print("[ERROR] No resumes found in resumes/ or templates/ folder", file=sys.stderr)
        return ExitCode.ERROR
    if not (tree / PRIMARY_DOCUMENT).is_file():
        print(f"[ERROR] resume.html not found at {tree / PRIMARY_DOCUMENT}", file=sys.stderr)
        return MISSING_FILE_EXIT_CODE

    if args.watch:
        try:
            return asyncio.run(watch_and_render(tree))
        except KeyboardInterrupt:
            return ExitCode.SUCCESS
    return asyncio.run(_render_reporting(tree))


if __name__ == "__main__":
    sys.exit(int(main()))
