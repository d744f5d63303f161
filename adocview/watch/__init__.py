"""Discovery of changed documents: daemon push channel or local watcher."""

from adocview.watch.channel import DaemonReply, WatchChannel, WatcherControl
from adocview.watch.feed import DEFAULT_EXTENSIONS, MessageKind, WatchFeed, is_file_path
from adocview.watch.local import DirectoryWatcher

__all__ = [
    "DEFAULT_EXTENSIONS",
    "DaemonReply",
    "DirectoryWatcher",
    "MessageKind",
    "WatchChannel",
    "WatchFeed",
    "WatcherControl",
    "is_file_path",
]
