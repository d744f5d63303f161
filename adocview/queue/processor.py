"""Single-concurrency queue that converts discovered documents in arrival order."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from adocview.files import FileStore, LocalFileStore, output_path_for
from adocview.pipeline.controller import PipelineController
from adocview.pipeline.models import ConversionFailure, OutputType, SourceDocument
from adocview.queue.models import QueueItem, QueueStatus

logger = logging.getLogger(__name__)

QueueObserver = Callable[[list[QueueItem]], None]


class QueueItemFailed(Exception):
    """Raised inside the processing step; its message becomes the item's error."""


class QueueProcessor:
    """Mailbox of document paths drained one at a time.

    At most one item is ``processing`` at any moment: the drain step holds
    a bounded-1 lock for the whole claim-convert-mark sequence, so the
    invariant holds for concurrent callers of :meth:`drain` as well as the
    long-running :meth:`run` loop. A failing item is marked ``error`` and
    never stops the loop.

    The processor drives its own PipelineController session, fixed to the
    queue's output type, so it never touches the interactive selection.
    """

    def __init__(
        self,
        controller: PipelineController,
        files: FileStore,
        output_type: OutputType = OutputType.xml,
        timeout: float | None = 120.0,
        settle_delay: float = 0.1,
        writer: LocalFileStore | None = None,
        prune_completed: bool = False,
    ) -> None:
        self._controller = controller
        self._files = files
        self._output_type = output_type
        self._timeout = timeout
        self._settle_delay = settle_delay
        self._writer = writer
        self._prune_completed = prune_completed

        self._items: list[QueueItem] = []
        self._busy = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._running = False
        self._observers: list[QueueObserver] = []

        controller.store.select(output_type)

    # -- state -----------------------------------------------------------------

    @property
    def output_type(self) -> OutputType:
        return self._output_type

    @property
    def items(self) -> list[QueueItem]:
        """Snapshot of all items in arrival order."""
        return [item.model_copy() for item in self._items]

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    @property
    def has_pending(self) -> bool:
        return any(item.status is QueueStatus.pending for item in self._items)

    def get(self, path: str) -> QueueItem | None:
        """Most recent item for ``path``, or None."""
        for item in reversed(self._items):
            if item.path == path:
                return item.model_copy()
        return None

    def subscribe(self, observer: QueueObserver) -> Callable[[], None]:
        """Call ``observer`` with a snapshot after every change. Returns an unsubscribe."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.items
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Queue observer failed")

    # -- mutation --------------------------------------------------------------

    def enqueue(self, path: str) -> bool:
        """Add ``path`` as pending unless it is already pending or processing.

        Returns True when a new item was created.
        """
        if any(item.path == path and not item.status.terminal for item in self._items):
            logger.debug("Already queued: %s", path)
            return False
        self._items.append(QueueItem(path=path))
        logger.info("Queued %s", path)
        self._notify()
        self._wakeup.set()
        return True

    def clear(self) -> None:
        """Discard every item regardless of status."""
        if self._items:
            logger.info("Clearing %d queued item(s)", len(self._items))
        self._items = []
        self._notify()

    def prune_completed(self) -> int:
        """Remove completed items. Returns how many were removed."""
        before = len(self._items)
        self._items = [i for i in self._items if i.status is not QueueStatus.completed]
        removed = before - len(self._items)
        if removed:
            self._notify()
        return removed

    # -- draining --------------------------------------------------------------

    async def process_next(self) -> QueueItem | None:
        """Claim the oldest pending item, convert it, and return it.

        Returns None when nothing is pending.
        """
        async with self._busy:
            item = next((i for i in self._items if i.status is QueueStatus.pending), None)
            if item is None:
                return None

            item.mark(QueueStatus.processing)
            self._notify()

            try:
                if self._timeout is not None:
                    output = await asyncio.wait_for(self._process(item), self._timeout)
                else:
                    output = await self._process(item)
            except TimeoutError:
                logger.warning("Timed out converting %s", item.path)
                item.mark(QueueStatus.error, f"timed out after {self._timeout:g}s")
            except asyncio.CancelledError:
                logger.warning("Cancelled while converting %s", item.path)
                item.mark(QueueStatus.error, "cancelled")
                self._notify()
                raise
            except Exception as e:
                logger.warning("Failed to convert %s: %s", item.path, e)
                item.mark(QueueStatus.error, str(e) or type(e).__name__)
            else:
                item.output_path = str(output) if output is not None else None
                item.mark(QueueStatus.completed)
                logger.info("Converted %s", item.path)
                if self._prune_completed and item in self._items:
                    self._items.remove(item)

            self._notify()
            return item.model_copy()

    async def _process(self, item: QueueItem) -> Path | None:
        if self._output_type is OutputType.md2adoc and not item.path.lower().endswith(".md"):
            raise QueueItemFailed(f"md2adoc requires a .md source: {item.name}")

        content = await self._files.read(item.path)
        source = SourceDocument(content=content, path=item.path)
        outcome = await self._controller.convert(source, self._output_type)
        if isinstance(outcome, ConversionFailure):
            raise QueueItemFailed(outcome.detail)

        if self._writer is None:
            return None
        return await self._writer.write(output_path_for(item.path, self._output_type), outcome.content)

    async def drain(self) -> int:
        """Process items until none is pending. Returns how many were processed."""
        processed = 0
        while await self.process_next() is not None:
            processed += 1
            if self._settle_delay and self.has_pending:
                await asyncio.sleep(self._settle_delay)
        return processed

    async def run(self) -> None:
        """Drain forever, sleeping while idle. May only be started once."""
        if self._running:
            raise RuntimeError("Queue drain loop already running")
        self._running = True
        logger.info("Queue drain loop started (output: %s)", self._output_type.value)
        try:
            while True:
                await self._wakeup.wait()
                self._wakeup.clear()
                await self.drain()
        finally:
            self._running = False
