"""Domain errors and process exit codes shared by the server, CLIs and launcher."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Contract between the preview server and its supervising launcher."""

    SUCCESS = 0
    ERROR = 1
    FAST_STOP = 2
    RESTART = 3


# CLI programs reuse code 2 to report a missing input file.
MISSING_FILE_EXIT_CODE = 2


class PreviewError(Exception):
    """Base class for resume preview failures."""


class DocumentNotFoundError(PreviewError):
    """Raised when a document key is not part of the known document set."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Resume '{key}' not found")
        self.key = key


class NoDocumentsError(PreviewError):
    """Raised when no document exists to preview."""

    def __init__(self) -> None:
        super().__init__("No resumes found. Create a folder in resumes/ with resume.html")


class MissingSourceError(PreviewError):
    """Raised before spawning a renderer when the source tree is incomplete."""


class RenderError(PreviewError):
    """External render process failed; ``output`` holds what it printed."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.output = output

    def __str__(self) -> str:
        if self.output:
            return f"{self.message}\n{self.output}"
        return self.message
