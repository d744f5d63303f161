from .loader import DEFAULT_CONFIG_TEMPLATE, load_config
from .models import (
    AdocviewConfig,
    QueueConfig,
    ServiceConfig,
    StylesheetConfig,
    WatcherConfig,
)

__all__ = [
    "AdocviewConfig",
    "DEFAULT_CONFIG_TEMPLATE",
    "QueueConfig",
    "ServiceConfig",
    "StylesheetConfig",
    "WatcherConfig",
    "load_config",
]
