"""
Per-safe transaction watcher.

A SafeWatcher seeds its view of a safe's transactions with a full fetch,
then periodically fetches the latest window, diffs it against what it has
seen and emits one event per new or changed transaction.
"""

import asyncio
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from .models import (
    DetailedTx,
    Event,
    EventType,
    ListedTx,
    Operation,
    PrefixedAddress,
    SignedTx,
    Signer,
)
from .notifications import Notifier
from .safe.api_wrapper import SafeAPIMode, SafeApiWrapper
from .safe.base_api import SafeAPI
from .safe.constants import MULTISEND_CALL_ONLY
from .utils.checksum import checksum_for_prefix

logger = logging.getLogger(__name__)


class WatcherStatus(Enum):
    """Lifecycle of a watcher. STOPPED is terminal."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def is_malicious(tx: DetailedTx) -> bool:
    """
    Flag delegate calls to anything but the known MultiSendCallOnly contracts.

    A delegate call runs foreign code against the safe's own storage, so an
    unknown target can take over the safe.
    """
    return (
        tx.operation == Operation.DELEGATE_CALL
        and tx.to.lower() not in MULTISEND_CALL_ONLY
    )


class SafeWatcher:
    """
    Watches one safe and reports transaction changes to a notifier.

    State is kept in memory only and rebuilt by ``start``. Poll cycles of
    one watcher never overlap: a timer tick that fires while the previous
    cycle is still running is skipped.
    """

    def __init__(
        self,
        safe: str,
        name: str = "",
        signers: Mapping[str, str] | None = None,
        notifier: Notifier | None = None,
        api: SafeAPI | None = None,
        mode: SafeAPIMode | str = SafeAPIMode.FALLBACK,
        retries: int = 3,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the watcher.

        Args:
            safe: Prefixed safe address, e.g. ``rsk:0x...``
            name: Human-readable alias of the safe
            signers: Mapping of checksummed owner address to alias
            notifier: Receiver of emitted events
            api: Transaction API to use (a SafeApiWrapper in ``mode`` by default)
            mode: API mode when ``api`` is not given
            retries: Extra HTTP attempts when ``api`` is not given
            timeout: HTTP timeout in seconds when ``api`` is not given

        Raises:
            InvalidPrefixedAddressError: If ``safe`` is malformed
        """
        parsed = PrefixedAddress.parse(safe)
        self.prefix: str = parsed.prefix
        self.safe: str = parsed.address
        self.name = name
        self.signers: dict[str, str] = dict(signers or {})
        self.notifier = notifier
        self.mode = SafeAPIMode(mode)
        self.api: SafeAPI = api or SafeApiWrapper(
            safe, mode=self.mode, retries=retries, timeout=timeout
        )

        self.txs: dict[str, ListedTx] = {}
        self.status = WatcherStatus.IDLE
        self.poll_interval: float = 0

        self._timer_task: asyncio.Task | None = None
        self._poll_tasks: set[asyncio.Task] = set()
        self._poll_lock = asyncio.Lock()

        # Metrics tracking
        self.polls_completed = 0
        self.polls_skipped = 0
        self.poll_errors = 0
        self.events_emitted = 0

    @property
    def label(self) -> str:
        return f"{self.prefix}:{self.safe}"

    async def start(self, poll_interval: float) -> None:
        """
        Seed the transaction set and arm the poll timer.

        Args:
            poll_interval: Seconds between polls; 0 seeds once and never polls

        Raises:
            RuntimeError: If the watcher was already started or stopped
            Exception: Whatever the seeding fetch raised; the watcher stays idle
        """
        if self.status is not WatcherStatus.IDLE:
            raise RuntimeError(f"Watcher for {self.label} is already {self.status.value}")

        txs = await self.api.fetch_all()
        if not txs:
            logger.warning(
                f"Seeded {self.label} with no transactions; if the API was unreachable, "
                "transactions in the first successful poll will be reported as new"
            )
        for tx in txs:
            self.txs[tx.safe_tx_hash] = tx

        self.poll_interval = poll_interval
        self.status = WatcherStatus.RUNNING
        if poll_interval > 0:
            self._timer_task = asyncio.create_task(
                self._run_timer(poll_interval), name=f"poll-timer-{self.label}"
            )
        logger.info(f"Started watcher for {self.name or self.label} ({self.label}) with {len(txs)} txs")

    def stop(self) -> None:
        """Cancel future polls. An in-flight poll runs to completion."""
        if self.status is WatcherStatus.STOPPED:
            return
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        self.status = WatcherStatus.STOPPED
        logger.info(f"Stopped watcher for {self.label}")

    async def _run_timer(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self._poll_lock.locked():
                self.polls_skipped += 1
                logger.warning(f"Previous poll for {self.label} still running, skipping tick")
                continue
            task = asyncio.create_task(self._guarded_poll())
            self._poll_tasks.add(task)
            task.add_done_callback(self._poll_tasks.discard)

    async def _guarded_poll(self) -> None:
        async with self._poll_lock:
            try:
                await self.poll()
            except Exception as e:
                logger.error(f"Unexpected error polling {self.label}: {e}", exc_info=True)

    async def poll(self) -> None:
        """Run one poll cycle."""
        try:
            txs = await self.api.fetch_latest()
        except Exception as e:
            self.poll_errors += 1
            logger.error(f"Failed to fetch latest txs for {self.label}: {e}")
            return

        pending = tuple(sorted(
            (tx for tx in txs if not tx.is_executed), key=lambda tx: tx.nonce
        ))

        for tx in txs:
            try:
                old = self.txs.get(tx.safe_tx_hash)
                if old is None:
                    await self._process_new_tx(tx, pending)
                else:
                    await self._process_tx_update(tx, old, pending)
            except Exception as e:
                logger.error(f"Failed to process tx {tx.safe_tx_hash} of {self.label}: {e}")

        self.polls_completed += 1

    async def _process_new_tx(self, tx: ListedTx, pending: tuple[ListedTx, ...]) -> None:
        logger.info(f"Detected new tx {tx.safe_tx_hash} (nonce {tx.nonce}) on {self.label}")
        self.txs[tx.safe_tx_hash] = tx

        detailed = await self.api.fetch_detailed(tx.safe_tx_hash)
        event_type = EventType.MALICIOUS if is_malicious(detailed) else EventType.CREATED
        await self._emit(event_type, detailed, pending)

    async def _process_tx_update(
        self, tx: ListedTx, old: ListedTx, pending: tuple[ListedTx, ...]
    ) -> None:
        if (old.is_executed, old.confirmations) == (tx.is_executed, tx.confirmations):
            return
        logger.info(
            f"Detected updated tx {tx.safe_tx_hash} (nonce {tx.nonce}, "
            f"executed={tx.is_executed}) on {self.label}"
        )
        self.txs[tx.safe_tx_hash] = tx

        detailed = await self.api.fetch_detailed(tx.safe_tx_hash)
        event_type = EventType.EXECUTED if tx.is_executed else EventType.UPDATED
        await self._emit(event_type, detailed, pending)

    async def _emit(
        self, event_type: EventType, tx: DetailedTx, pending: tuple[ListedTx, ...]
    ) -> None:
        event = Event(
            type=event_type,
            name=self.name,
            chain_prefix=self.prefix,
            safe=self.safe,
            tx=self._sign(tx),
            pending=pending,
        )
        self.events_emitted += 1
        if self.notifier is not None:
            await self.notifier.notify(event)

    def _sign(self, tx: DetailedTx) -> SignedTx:
        return SignedTx(
            safe_tx_hash=tx.safe_tx_hash,
            nonce=tx.nonce,
            is_executed=tx.is_executed,
            confirmations_required=tx.confirmations_required,
            to=tx.to,
            operation=tx.operation,
            proposer=self.resolve_signer(tx.proposer) if tx.proposer else None,
            confirmations=tuple(self.resolve_signer(c) for c in tx.confirmations),
        )

    def resolve_signer(self, address: str) -> Signer:
        """Attach the configured alias, if any, to an owner address."""
        checksummed = checksum_for_prefix(address, self.prefix)
        return Signer(address=address, name=self.signers.get(checksummed))

    def get_status(self) -> dict[str, Any]:
        return {
            "safe": self.label,
            "name": self.name,
            "status": self.status.value,
            "poll_interval": self.poll_interval,
            "tracked_txs": len(self.txs),
            "polls_completed": self.polls_completed,
            "polls_skipped": self.polls_skipped,
            "poll_errors": self.poll_errors,
            "events_emitted": self.events_emitted,
        }
