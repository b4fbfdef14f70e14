"""Graceful server exit with an exit code the launcher understands."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from ..errors import ExitCode

logger = logging.getLogger(__name__)


class ServerController:
    """Records the requested exit code and asks uvicorn to stop.

    Exit is requested at most once; later requests are ignored so the first
    reason wins (a fast stop is never turned into a cleanup stop).
    """

    def __init__(self) -> None:
        self.exit_code: int = ExitCode.SUCCESS
        self.exit_requested = False
        self._server: Any = None
        self._before_exit: List[Callable[[], None]] = []
        self._pending: Optional[asyncio.TimerHandle] = None
        self._previous_excepthook: Optional[Callable[..., None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind(self, server: Any) -> None:
        """Attach the ``uvicorn.Server`` whose ``should_exit`` flag we flip."""
        self._server = server

    def before_exit(self, callback: Callable[[], None]) -> None:
        self._before_exit.append(callback)

    def request_exit(self, code: int, delay: float = 0.0) -> bool:
        if self.exit_requested:
            logger.info("server_exit_ignored exit_code=%s current=%s", code, self.exit_code)
            return False
        self.exit_requested = True
        self.exit_code = int(code)
        logger.info("server_exit_requested exit_code=%s delay=%s", code, delay)
        if delay > 0:
            loop = asyncio.get_running_loop()
            self._pending = loop.call_later(delay, self._stop)
        else:
            self._stop()
        return True

    def _stop(self) -> None:
        self._pending = None
        for callback in self._before_exit:
            try:
                callback()
            except Exception:
                logger.exception("server_before_exit_failed")
        if self._server is not None:
            self._server.should_exit = True

    def install_fatal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Turn unhandled errors into a graceful exit with code 1."""
        loop = loop or asyncio.get_running_loop()

        def loop_handler(_loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
            exc = context.get("exception")
            logger.error("unhandled_loop_error message=%s", context.get("message"), exc_info=exc)
            self.request_exit(ExitCode.ERROR)

        def excepthook(exc_type, exc, tb) -> None:
            logger.critical("unhandled_exception", exc_info=(exc_type, exc, tb))
            self.exit_code = ExitCode.ERROR
            if self._server is not None:
                self._server.should_exit = True

        loop.set_exception_handler(loop_handler)
        self._loop = loop
        self._previous_excepthook = sys.excepthook
        sys.excepthook = excepthook

    def uninstall_fatal_handlers(self) -> None:
        if self._loop is not None:
            self._loop.set_exception_handler(None)
            self._loop = None
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
            self._previous_excepthook = None
