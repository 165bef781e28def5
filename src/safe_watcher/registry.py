"""
Registry of running watchers, keyed by prefixed safe address.

The registry reconciles the set of running watchers against a
configuration: new safes get a watcher, safes whose polling settings
changed get a fresh one, and safes that disappeared are stopped.
"""

import asyncio
import logging
from collections.abc import Callable

from .config import SafeConfig, WatcherConfig
from .notifications import Notifier
from .watcher import SafeWatcher

logger = logging.getLogger(__name__)

WatcherFactory = Callable[[SafeConfig, WatcherConfig, Notifier | None], SafeWatcher]


def create_watcher(
    safe: SafeConfig, config: WatcherConfig, notifier: Notifier | None
) -> SafeWatcher:
    return SafeWatcher(
        safe=safe.address,
        name=safe.alias,
        signers=config.signers,
        notifier=notifier,
        mode=config.monitoring.api_mode,
        retries=config.monitoring.retry_count,
        timeout=config.monitoring.request_timeout,
    )


class WatcherRegistry:
    """Owns the running watchers of the process."""

    def __init__(
        self,
        notifier: Notifier | None = None,
        watcher_factory: WatcherFactory = create_watcher,
    ) -> None:
        self.notifier = notifier
        self._factory = watcher_factory
        self._watchers: dict[str, SafeWatcher] = {}

    def __len__(self) -> int:
        return len(self._watchers)

    def __contains__(self, address: str) -> bool:
        return address in self._watchers

    def get(self, address: str) -> SafeWatcher | None:
        return self._watchers.get(address)

    @property
    def addresses(self) -> list[str]:
        return list(self._watchers)

    async def upsert(self, safe: SafeConfig, config: WatcherConfig, index: int = 0) -> SafeWatcher | None:
        """
        Ensure a watcher runs for ``safe`` with the current settings.

        New watchers wait ``index * startup_stagger`` seconds before their
        first fetch so that many safes do not hit the API at once. An
        existing watcher is replaced only if its poll interval or API mode
        changed; otherwise its alias and signer names are refreshed in place.

        Returns:
            The running watcher, or None if it failed to start
        """
        interval = config.monitoring.poll_interval
        existing = self._watchers.get(safe.address)
        if existing is not None:
            if existing.poll_interval == interval and existing.mode == config.monitoring.api_mode:
                existing.name = safe.alias
                existing.signers = dict(config.signers)
                return existing
            logger.info(f"Settings changed for {safe.address}, restarting watcher")
            existing.stop()
            del self._watchers[safe.address]
        elif index > 0 and config.monitoring.startup_stagger > 0:
            await asyncio.sleep(index * config.monitoring.startup_stagger)

        watcher = self._factory(safe, config, self.notifier)
        try:
            await watcher.start(interval)
        except Exception as e:
            logger.error(f"Failed to start watcher for {safe.address}: {e}", exc_info=True)
            return None

        self._watchers[safe.address] = watcher
        return watcher

    def remove(self, address: str) -> bool:
        """Stop and forget the watcher for ``address``."""
        watcher = self._watchers.pop(address, None)
        if watcher is None:
            return False
        watcher.stop()
        return True

    async def reconcile(self, config: WatcherConfig) -> None:
        """Bring the running watchers in line with ``config``."""
        await asyncio.gather(*(
            self.upsert(safe, config, index)
            for index, safe in enumerate(config.safes)
        ))

        configured = {safe.address for safe in config.safes}
        for address in self.addresses:
            if address not in configured:
                logger.info(f"Safe {address} no longer configured, stopping watcher")
                self.remove(address)

        logger.info(f"Watchers updated: {len(self._watchers)} running")

    def stop_all(self) -> None:
        for address in self.addresses:
            self.remove(address)
