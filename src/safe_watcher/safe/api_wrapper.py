"""
Mode-selecting facade over the classic and alternative transaction APIs.
"""

import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

import httpx

from ..models import DetailedTx, ListedTx, PrefixedAddress
from .alt_api import AltAPI
from .base_api import SafeAPI
from .classic_api import ClassicAPI

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SafeAPIMode(str, Enum):
    """Which upstream API a wrapper talks to."""
    CLASSIC = "classic"
    ALT = "alt"
    FALLBACK = "fallback"


class SafeApiWrapper:
    """
    SafeAPI implementation that picks an upstream per mode.

    In fallback mode every call goes to the classic API first and is
    repeated once against the alternative API if it fails. When both fail,
    listing calls return an empty list so a poll cycle can simply be
    skipped, while detail lookups raise the alternative API's error.

    Every listing result is checked against the detail caches of both
    adapters, whichever of them served it.
    """

    def __init__(
        self,
        safe: str,
        mode: SafeAPIMode | str = SafeAPIMode.FALLBACK,
        classic: SafeAPI | None = None,
        alt: SafeAPI | None = None,
        retries: int = 3,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the wrapper.

        Args:
            safe: Prefixed safe address
            mode: classic, alt or fallback
            classic: Classic adapter (built from ``safe`` when omitted)
            alt: Alternative adapter (built from ``safe`` when omitted)
            retries: Extra HTTP attempts for adapters built here
            timeout: HTTP timeout in seconds for adapters built here
            transport: Optional httpx transport for adapters built here

        Raises:
            InvalidPrefixedAddressError: If ``safe`` is malformed
            ValueError: If ``mode`` is unknown
        """
        self.safe = PrefixedAddress.parse(safe)
        self.mode = SafeAPIMode(mode)
        self._classic: SafeAPI = classic or ClassicAPI(
            safe, retries=retries, timeout=timeout, transport=transport
        )
        self._alt: SafeAPI = alt or AltAPI(
            safe, retries=retries, timeout=timeout, transport=transport
        )

    async def fetch_all(self) -> list[ListedTx]:
        return await self._list(lambda api: api.fetch_all(), "fetch_all")

    async def fetch_latest(self) -> list[ListedTx]:
        return await self._list(lambda api: api.fetch_latest(), "fetch_latest")

    async def fetch_detailed(self, safe_tx_hash: str) -> DetailedTx:
        return await self._dispatch(
            lambda api: api.fetch_detailed(safe_tx_hash), f"fetch_detailed({safe_tx_hash})"
        )

    async def _list(
        self, call: Callable[[SafeAPI], Awaitable[list[ListedTx]]], what: str
    ) -> list[ListedTx]:
        if self.mode is not SafeAPIMode.FALLBACK:
            txs = await self._dispatch(call, what)
        else:
            try:
                txs = await self._dispatch(call, what)
            except Exception as e:
                logger.error(f"Both APIs failed for {what} on {self.safe}, treating as empty: {e}")
                return []

        # either adapter may serve the next detail lookup
        for tx in txs:
            self._classic.invalidate(tx)
            self._alt.invalidate(tx)
        return txs

    async def _dispatch(self, call: Callable[[SafeAPI], Awaitable[T]], what: str) -> T:
        match self.mode:
            case SafeAPIMode.CLASSIC:
                return await call(self._classic)
            case SafeAPIMode.ALT:
                return await call(self._alt)

        try:
            return await call(self._classic)
        except Exception as e:
            logger.error(f"Classic API failed for {what} on {self.safe}: {e}")
            logger.warning("Falling back to alternative API")
        return await call(self._alt)
