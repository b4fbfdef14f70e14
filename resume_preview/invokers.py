"""Async wrappers around the external PDF render and ATS extraction programs."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Dict, List, Optional, Sequence

from .documents import DocumentRef
from .errors import MissingSourceError, RenderError

logger = logging.getLogger(__name__)

PDF_COMMAND = (sys.executable, "-m", "resume_preview.cli.pdf")
ATS_COMMAND = (sys.executable, "-m", "resume_preview.cli.ats")


@dataclass
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Combined output, stderr first since it usually explains a failure."""
        parts = [part for part in (self.stderr.strip(), self.stdout.strip()) if part]
        return "\n".join(parts)


async def run_process(
    argv: Sequence[str],
    timeout: float,
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> ProcessResult:
    """Run a child process to completion without blocking the event loop.

    Raises:
        OSError: the process could not be spawned
        TimeoutError: the process did not finish in ``timeout`` seconds (it is killed)
    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env={**os.environ, **(env or {})},
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise TimeoutError(f"Command timed out after {timeout:g} seconds") from None
    except asyncio.CancelledError:
        process.kill()
        try:
            await asyncio.shield(process.wait())
        except asyncio.CancelledError:
            pass
        raise

    return ProcessResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


class PdfRenderer:
    """Render ``resume.html`` to ``resume.pdf`` in a headless-browser child process."""

    def __init__(self, timeout_seconds: float = 300.0, command: Optional[Sequence[str]] = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.command: List[str] = list(command or PDF_COMMAND)

    async def render(self, document: DocumentRef) -> Path:
        if not document.primary_document.is_file():
            raise MissingSourceError(f"resume.html not found at {document.primary_document}")

        argv = [*self.command, "--tree", str(document.path)]
        logger.info("pdf_render_start document=%s", document.key)
        start = perf_counter()
        try:
            result = await run_process(argv, timeout=self.timeout_seconds)
        except OSError as exc:
            raise RenderError(f"Failed to start PDF generation: {exc}") from exc
        except TimeoutError as exc:
            raise RenderError(f"PDF generation failed: {exc}") from exc

        duration_ms = (perf_counter() - start) * 1000
        if result.returncode != 0:
            logger.error(
                "pdf_render_failed document=%s exit_code=%s duration_ms=%.2f",
                document.key,
                result.returncode,
                duration_ms,
            )
            raise RenderError(f"PDF generation exited with code {result.returncode}", output=result.output)
        if not document.pdf_path.is_file():
            raise RenderError("PDF generation failed - output file not created", output=result.output)

        logger.info("pdf_render_done document=%s duration_ms=%.2f", document.key, duration_ms)
        return document.pdf_path


class AtsExtractor:
    """Extract the PDF text layer in a child process.

    Failures never raise: they come back as an ``[ERROR]`` string shown to the user.
    """

    def __init__(self, timeout_seconds: float = 120.0, command: Optional[Sequence[str]] = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.command: List[str] = list(command or ATS_COMMAND)

    async def extract(self, document: DocumentRef) -> str:
        if not document.pdf_path.is_file():
            return f"[ERROR] resume.pdf not found for {document.key}. Generate the PDF first."

        argv = [*self.command, "--tree", str(document.path)]
        logger.info("ats_extract_start document=%s", document.key)
        try:
            result = await run_process(argv, timeout=self.timeout_seconds)
        except OSError as exc:
            return f"[ERROR] Failed to run ATS test: {exc}"
        except TimeoutError as exc:
            return f"[ERROR] ATS test failed: {exc}"

        logger.info("ats_extract_done document=%s exit_code=%s", document.key, result.returncode)
        if not result.stdout.strip() and result.stderr.strip():
            return result.stderr
        return result.stdout or "[ERROR] No output from ATS test"
