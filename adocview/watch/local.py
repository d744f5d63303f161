"""Local directory watcher: a daemon-free source of document paths."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from adocview.watch.feed import DEFAULT_EXTENSIONS

logger = logging.getLogger(__name__)

_IGNORE_PARTS = {".git", "node_modules", "__pycache__"}
_WATCHED_EVENTS = {"created", "modified", "moved"}


def _should_ignore(path: str) -> bool:
    return any(part in _IGNORE_PARTS for part in Path(path).parts)


class _DocumentHandler(FileSystemEventHandler):
    """Filters events to document files and drops repeats inside the debounce window."""

    def __init__(
        self,
        extensions: tuple[str, ...],
        debounce_seconds: float,
        callback: Callable[[str], None],
    ) -> None:
        super().__init__()
        self._extensions = extensions
        self._debounce = debounce_seconds
        self._callback = callback
        self._lock = threading.Lock()
        self._last_event: dict[str, float] = {}

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _WATCHED_EVENTS:
            return
        path = event.dest_path if event.event_type == "moved" else event.src_path
        if isinstance(path, bytes):
            path = path.decode()
        if not path or not path.endswith(self._extensions) or _should_ignore(path):
            return

        now = time.monotonic()
        with self._lock:
            last = self._last_event.get(path)
            if last is not None and now - last < self._debounce:
                return
            self._last_event = {
                p: t for p, t in self._last_event.items() if now - t < self._debounce
            }
            self._last_event[path] = now

        try:
            self._callback(path)
        except Exception:
            logger.exception("Watcher callback failed for %s", path)


class DirectoryWatcher:
    """Watches a directory tree for created or modified documents.

    Paths are delivered to ``callback`` as absolute strings. When ``loop``
    is given the callback runs on that event loop instead of watchdog's
    observer thread.
    """

    def __init__(
        self,
        directory: str | Path,
        callback: Callable[[str], None],
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        debounce_seconds: float = 2.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._directory = Path(directory).resolve()
        self._extensions = tuple(extensions)
        self._callback = callback
        self._loop = loop
        self._observer: Observer | None = None
        self._handler = _DocumentHandler(self._extensions, debounce_seconds, self._deliver)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def running(self) -> bool:
        return self._observer is not None

    def _deliver(self, path: str) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._callback, path)
        else:
            self._callback(path)

    def scan(self) -> list[str]:
        """Existing documents under the directory, sorted by path."""
        found = [
            str(p)
            for p in self._directory.rglob("*")
            if p.is_file() and p.name.endswith(self._extensions) and not _should_ignore(str(p))
        ]
        return sorted(found)

    def start(self) -> None:
        if self._observer is not None:
            return
        if not self._directory.is_dir():
            raise NotADirectoryError(str(self._directory))
        self._observer = Observer()
        self._observer.schedule(self._handler, str(self._directory), recursive=True)
        self._observer.start()
        logger.info("Watching %s for %s", self._directory, ", ".join(self._extensions))

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("Stopped watching %s", self._directory)
