"""
Safe watcher service.

Wires configuration, the notification sender and the watcher registry,
and keeps the process alive until it is asked to stop.
"""

import asyncio
import logging

from .config import WatcherConfig
from .notifications import LoggingNotifier, NotificationSender, Notifier
from .registry import WatcherRegistry

logger = logging.getLogger(__name__)


class SafeWatcherService:
    """
    Top-level orchestrator for all watched safes.

    This class focuses on lifecycle management; change detection lives in
    SafeWatcher and delivery in the registered notifiers.
    """

    STATUS_LOG_INTERVAL = 300  # seconds

    def __init__(
        self,
        config: WatcherConfig,
        notifiers: list[Notifier] | None = None,
        registry: WatcherRegistry | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            config: Service configuration
            notifiers: Notifiers to register (a LoggingNotifier by default)
            registry: Watcher registry (created around the sender by default)
        """
        self.config = config
        self.sender = NotificationSender()
        for notifier in notifiers if notifiers is not None else [LoggingNotifier(config.safe_url)]:
            self.sender.add_notifier(notifier)

        self.registry = registry or WatcherRegistry(notifier=self.sender)
        self.running = False
        self.shutdown_event = asyncio.Event()

    @classmethod
    def from_env(cls, api_mode: str | None = None) -> "SafeWatcherService":
        """
        Create a service from environment variables.

        Raises:
            ValueError: If required environment variables are missing
        """
        config = WatcherConfig.from_env(api_mode=api_mode)
        config.log_config()
        return cls(config)

    async def apply_config(self, config: WatcherConfig) -> None:
        """Switch to a new configuration, reconciling running watchers."""
        self.config = config
        await self.registry.reconcile(config)

    async def _periodic_status_logger(self) -> None:
        while self.running:
            await asyncio.sleep(self.STATUS_LOG_INTERVAL)
            for address in self.registry.addresses:
                if (watcher := self.registry.get(address)) is not None:
                    logger.info(f"Status: {watcher.get_status()}")

    async def run(self) -> None:
        """Start all watchers and wait for shutdown."""
        self.running = True
        logger.info("Safe watcher service starting...")

        status_task: asyncio.Task | None = None
        try:
            await self.registry.reconcile(self.config)
            if len(self.registry) == 0:
                raise RuntimeError("No watcher could be started")

            status_task = asyncio.create_task(self._periodic_status_logger())
            logger.info(f"Watching {len(self.registry)} safes, waiting for changes...")
            await self.shutdown_event.wait()

        except Exception as e:
            logger.error(f"Error in main loop: {e}", exc_info=True)
            raise
        finally:
            self.running = False
            if status_task is not None:
                status_task.cancel()
            self.registry.stop_all()
            logger.info("Safe watcher service stopped")

    def stop(self) -> None:
        """Stop the service."""
        self.running = False
        self.shutdown_event.set()
