"""Stop the server once the last live-reload client has been gone for a grace period."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .live_reload import SubscriberRegistry

logger = logging.getLogger(__name__)


class IdleShutdownSupervisor:
    """Arms a single timer when the subscriber count reaches zero.

    A new subscriber disarms it. If the timer fires while the count is still
    zero, ``on_idle`` runs, at most once per supervisor.
    """

    def __init__(self, on_idle: Callable[[], None], grace_seconds: float = 5.0) -> None:
        self.on_idle = on_idle
        self.grace_seconds = grace_seconds
        self._registry: Optional[SubscriberRegistry] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._fired = False

    @property
    def armed(self) -> bool:
        return self._timer is not None

    @property
    def fired(self) -> bool:
        return self._fired

    def attach(self, registry: SubscriberRegistry) -> None:
        self._registry = registry
        registry.add_listener(self.on_subscriber_count)

    def on_subscriber_count(self, count: int) -> None:
        if count == 0:
            self.arm()
        else:
            self.disarm()

    def arm(self) -> None:
        self.disarm()
        if self._fired:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.grace_seconds, self._expire)
        logger.info("idle_shutdown_armed grace_seconds=%s", self.grace_seconds)

    def disarm(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.debug("idle_shutdown_disarmed")

    def _expire(self) -> None:
        self._timer = None
        if self._fired:
            return
        if self._registry is not None and self._registry.count > 0:
            return
        self._fired = True
        logger.info("idle_shutdown_triggered grace_seconds=%s", self.grace_seconds)
        self.on_idle()
