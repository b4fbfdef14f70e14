"""Live reload: debounced source watching and the SSE subscriber registry."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Set

from watchfiles import Change, DefaultFilter, awatch

from .documents import DocumentRef

logger = logging.getLogger(__name__)

HEARTBEAT_FRAME = ": heartbeat\n\n"
SUBSCRIBER_QUEUE_SIZE = 256
WATCHED_SUFFIXES = (".html", ".css")


def _now_ms() -> int:
    return int(time.time() * 1000)


def most_recent(paths: Iterable[Path]) -> Optional[Path]:
    """Return the path with the newest ``st_mtime_ns``; unreadable paths rank last."""
    newest: Optional[Path] = None
    newest_mtime = -1
    for path in paths:
        try:
            mtime = path.stat().st_mtime_ns
        except OSError:
            mtime = -1
        if newest is None or mtime > newest_mtime:
            newest, newest_mtime = path, mtime
    return newest


@dataclass(frozen=True)
class ChangeEvent:
    """One live-reload notification, rendered once and written to every subscriber."""

    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_sse(self) -> str:
        data = json.dumps(self.payload, separators=(",", ":"), ensure_ascii=False)
        return f"event: {self.kind}\ndata: {data}\n\n"

    @classmethod
    def connected(cls, document_name: Optional[str]) -> "ChangeEvent":
        return cls("connected", {
            "message": "Live reload connected",
            "documentName": document_name,
            "timestamp": _now_ms(),
        })

    @classmethod
    def reload(cls, file: str, document_name: str) -> "ChangeEvent":
        return cls("reload", {"file": file, "documentName": document_name, "timestamp": _now_ms()})

    @classmethod
    def switch(cls, document_name: str) -> "ChangeEvent":
        return cls("switch", {"documentName": document_name, "timestamp": _now_ms()})


class SubscriberClosedError(Exception):
    """Raised when writing to a subscriber that is gone or not draining."""


class Subscriber:
    """One open event stream. Frames queue up until the response drains them."""

    def __init__(self, maxsize: int = SUBSCRIBER_QUEUE_SIZE) -> None:
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.heartbeat_task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, frame: str) -> None:
        if self._closed:
            raise SubscriberClosedError("subscriber closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise SubscriberClosedError("subscriber queue full") from None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # A full queue is drained by nobody; the reader checks ``closed`` instead.
            pass

    def drain_nowait(self) -> List[str]:
        """Pop every frame queued so far without waiting."""
        frames = []
        while not self._queue.empty():
            frame = self._queue.get_nowait()
            if frame is not None:
                frames.append(frame)
        return frames

    async def frames(self) -> AsyncIterator[str]:
        while True:
            if self._closed and self._queue.empty():
                return
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


class SubscriberRegistry:
    """The set of open live-reload streams."""

    def __init__(self, heartbeat_seconds: float = 30.0) -> None:
        self.heartbeat_seconds = heartbeat_seconds
        self._subscribers: Set[Subscriber] = set()
        self._listeners: List[Callable[[int], None]] = []

    @property
    def count(self) -> int:
        return len(self._subscribers)

    def add_listener(self, callback: Callable[[int], None]) -> None:
        """Register a callback invoked with the new size after every change."""
        self._listeners.append(callback)

    def subscribe(self, document_name: Optional[str], subscriber: Optional[Subscriber] = None) -> Subscriber:
        subscriber = subscriber or Subscriber()
        subscriber.write(ChangeEvent.connected(document_name).to_sse())
        subscriber.heartbeat_task = asyncio.ensure_future(self._heartbeat(subscriber))
        self._subscribers.add(subscriber)
        logger.info("live_reload_connected clients=%s", self.count)
        self._notify_listeners()
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        task = subscriber.heartbeat_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        subscriber.close()
        if subscriber not in self._subscribers:
            return
        self._subscribers.discard(subscriber)
        logger.info("live_reload_disconnected clients=%s", self.count)
        self._notify_listeners()

    def broadcast(self, event: ChangeEvent) -> int:
        """Write ``event`` to every subscriber; failed writers are dropped."""
        frame = event.to_sse()
        delivered = 0
        for subscriber in list(self._subscribers):
            try:
                subscriber.write(frame)
            except SubscriberClosedError:
                self.unsubscribe(subscriber)
                continue
            delivered += 1
        logger.info("live_reload_notified event=%s clients=%s", event.kind, delivered)
        return delivered

    def close_all(self) -> None:
        for subscriber in list(self._subscribers):
            self.unsubscribe(subscriber)

    async def _heartbeat(self, subscriber: Subscriber) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_seconds)
            try:
                subscriber.write(HEARTBEAT_FRAME)
            except SubscriberClosedError:
                self.unsubscribe(subscriber)
                return

    def _notify_listeners(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self.count)
            except Exception:
                logger.exception("live_reload_listener_failed")


class SourceFilter(DefaultFilter):
    """Admit only HTML and CSS files, on top of watchfiles' default ignores."""

    def __call__(self, change: Change, path: str) -> bool:
        return path.endswith(WATCHED_SUFFIXES) and super().__call__(change, path)


class FileWatcher:
    """Watch the active source tree and broadcast one ``reload`` per burst of changes."""

    def __init__(self, registry: SubscriberRegistry, debounce_seconds: float = 0.1) -> None:
        self.registry = registry
        self.debounce_seconds = debounce_seconds
        self.document: Optional[DocumentRef] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending_path: Optional[Path] = None

    @property
    def watching(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, document: Optional[DocumentRef]) -> bool:
        """Begin watching ``document``. Any previous watch is stopped first."""
        self.stop()
        if document is None:
            logger.info("live_reload_idle reason=no_document")
            return False
        if not document.path.is_dir():
            logger.warning("live_reload_not_started document=%s reason=missing_tree", document.key)
            return False
        if not document.primary_document.is_file():
            logger.warning("live_reload_not_started document=%s reason=missing_primary", document.key)
            return False

        self.document = document
        self._stop_event = asyncio.Event()
        self._task = asyncio.ensure_future(self._watch(document, self._stop_event))
        logger.info("live_reload_watching document=%s", document.key)
        return True

    async def restart(self, document: Optional[DocumentRef]) -> bool:
        await self.aclose()
        return self.start(document)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending_path = None
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._stop_event = None
        self.document = None

    async def aclose(self) -> None:
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def notify(self, path: Path) -> None:
        """Record a raw change and (re)start the debounce window."""
        if self.document is None:
            return
        self._pending_path = Path(path)
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._flush)

    def _flush(self) -> None:
        self._timer = None
        document = self.document
        path = self._pending_path
        self._pending_path = None
        if document is None or path is None:
            return
        try:
            relative = path.resolve().relative_to(document.path.resolve()).as_posix()
        except ValueError:
            relative = path.name
        logger.info("live_reload_changed document=%s file=%s", document.key, relative)
        self.registry.broadcast(ChangeEvent.reload(relative, document.key))

    async def _watch(self, document: DocumentRef, stop_event: asyncio.Event) -> None:
        try:
            async for changes in awatch(
                document.path,
                watch_filter=SourceFilter(),
                stop_event=stop_event,
                debounce=50,
                step=50,
            ):
                changed = sorted(Path(raw_path) for change, raw_path in changes if change is not Change.deleted)
                latest = most_recent(changed)
                if latest is not None:
                    self.notify(latest)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("live_reload_watcher_failed document=%s", document.key)
