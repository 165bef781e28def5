"""
Safe Watcher package.

Polls Safe multisig transaction services and notifies about new,
updated, executed and suspicious transactions.
"""

from .config import WatcherConfig
from .models import Event, EventType, PrefixedAddress
from .service import SafeWatcherService
from .watcher import SafeWatcher

__all__ = [
    "Event",
    "EventType",
    "PrefixedAddress",
    "SafeWatcher",
    "SafeWatcherService",
    "WatcherConfig",
]
__version__ = "0.1.0"
