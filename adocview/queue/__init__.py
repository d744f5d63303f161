"""Automatic-conversion queue fed by the watch channel."""

from adocview.queue.models import QueueItem, QueueStatus
from adocview.queue.processor import QueueItemFailed, QueueProcessor

__all__ = ["QueueItem", "QueueItemFailed", "QueueProcessor", "QueueStatus"]
