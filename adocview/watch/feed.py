"""Classify push-channel messages and feed file paths into the queue."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from adocview.queue.processor import QueueProcessor

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".adoc", ".asciidoc")

# Messages containing any of these are daemon status lines, even when they
# mention a path.
_STATUS_WORDS = ("Watcher", "Detected", "Error", "Running", "Processing")


def is_file_path(message: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    """Return True if ``message`` is a bare document path rather than a status line."""
    return (
        "/" in message
        and message.endswith(tuple(extensions))
        and not any(word in message for word in _STATUS_WORDS)
    )


class MessageKind(str, Enum):
    path = "path"
    status = "status"


class WatchFeed:
    """Routes channel messages: paths are enqueued, status lines update daemon state.

    A ``Watcher started`` message clears the queue, since the daemon's
    restart invalidates anything discovered in a previous session.
    """

    def __init__(
        self,
        queue: QueueProcessor,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self._queue = queue
        self._extensions = tuple(extensions)
        self.daemon_status = "Unknown"
        self.last_status: str | None = None

    def handle(self, message: str) -> MessageKind | None:
        message = message.strip()
        if not message:
            return None

        if is_file_path(message, self._extensions):
            self._queue.enqueue(message)
            return MessageKind.path

        self.last_status = message
        if "Watcher started" in message:
            self.daemon_status = "Running"
            self._queue.clear()
        elif "Watcher stopped" in message:
            self.daemon_status = "Stopped"
        elif message.startswith("Watcher status:"):
            self.daemon_status = message.split(":", 1)[1].strip() or self.daemon_status
        logger.info("Watcher: %s", message)
        return MessageKind.status

    def disconnected(self, error: Exception | None = None) -> None:
        self.daemon_status = "Disconnected"
