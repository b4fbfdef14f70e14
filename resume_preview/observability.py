"""Logging setup shared by the server, the launcher and the CLI programs."""

from __future__ import annotations

import logging

LOGGER_NAME = "resume_preview"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach one stream handler to the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
