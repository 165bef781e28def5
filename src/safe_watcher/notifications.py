"""
Notification sinks for watcher events.

Chat-platform delivery lives outside this package; anything with an async
``notify(event)`` method can be registered with the NotificationSender.
"""

import asyncio
import logging
from typing import Protocol

from .models import Event, EventType

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Receiver of watcher events."""

    async def notify(self, event: Event) -> None:
        ...


class NotificationSender:
    """
    Fans events out to every registered notifier.

    Shared by all watchers of the process. Deliveries are serialized so
    that notifiers never see interleaved calls, and a failing notifier
    does not prevent delivery to the others.
    """

    def __init__(self) -> None:
        self._notifiers: list[Notifier] = []
        self._lock = asyncio.Lock()

    def add_notifier(self, notifier: Notifier) -> None:
        self._notifiers.append(notifier)
        logger.info(f"Added notifier {type(notifier).__name__}")

    @property
    def notifiers(self) -> list[Notifier]:
        return list(self._notifiers)

    async def notify(self, event: Event) -> None:
        async with self._lock:
            for notifier in self._notifiers:
                try:
                    await notifier.notify(event)
                except Exception as e:
                    logger.error(
                        f"Notifier {type(notifier).__name__} failed for {event}: {e}",
                        exc_info=True,
                    )


class LoggingNotifier:
    """Writes a one-line summary of every event to the log."""

    def __init__(self, safe_url: str = "https://app.safe.global") -> None:
        self.safe_url = safe_url.rstrip("/")

    def format_event(self, event: Event) -> str:
        tx = event.tx
        proposer = str(tx.proposer) if tx.proposer else "unknown"
        signers = ", ".join(str(s) for s in tx.confirmations) or "none"
        link = f"{self.safe_url}/{event.chain_prefix}:{event.safe}/transactions/queue"
        title = f"{event.name} " if event.name else ""
        return (
            f"Transaction {event.type.value} on {title}{event.chain_prefix}:{event.safe} "
            f"[{len(tx.confirmations)}/{tx.confirmations_required}] "
            f"nonce={tx.nonce} safeTxHash={tx.safe_tx_hash} "
            f"proposer={proposer} signers={signers} "
            f"pending={len(event.pending)} {link}"
        )

    async def notify(self, event: Event) -> None:
        message = self.format_event(event)
        if event.type is EventType.MALICIOUS:
            logger.warning(f"🚨 MALICIOUS TRANSACTION DETECTED: {message}")
        else:
            logger.info(message)
