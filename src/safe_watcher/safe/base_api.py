"""
Common plumbing for the Safe transaction API adapters.

Adapters share address validation, validated JSON fetching, pagination and
the per-hash detail cache. Subclasses only describe their URLs and how to
flatten upstream payloads into ListedTx / DetailedTx.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol

import httpx

from ..errors import (
    InvalidContentTypeError,
    InvalidStatusError,
    MalformedResponseError,
    TransportError,
)
from ..models import DetailedTx, ListedTx, PrefixedAddress
from ..utils.fetch_retry import fetch_with_retry


class SafeAPI(Protocol):
    """Capability shared by every transaction API implementation."""

    async def fetch_all(self) -> list[ListedTx]:
        """Every known transaction of the safe, all pages concatenated."""
        ...

    async def fetch_latest(self) -> list[ListedTx]:
        """The most recent page of transactions only."""
        ...

    async def fetch_detailed(self, safe_tx_hash: str) -> DetailedTx:
        """Full record of one transaction."""
        ...

    def invalidate(self, listed: ListedTx) -> None:
        """Drop cached detail that disagrees with a listing record."""
        ...


class BaseApi(ABC):
    """
    Base class for adapters talking to one upstream API flavour.

    The detail cache is unbounded for the adapter's lifetime. A cached
    entry is dropped when a later listing reports a different execution
    state or confirmation count for the same hash.
    """

    def __init__(
        self,
        safe: str,
        retries: int = 3,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            safe: Prefixed safe address, e.g. ``eth:0x...``
            retries: Extra attempts per HTTP request
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            InvalidPrefixedAddressError: If ``safe`` is malformed
        """
        parsed = PrefixedAddress.parse(safe)
        self.prefix: str = parsed.prefix
        self.address: str = parsed.address
        self.retries = retries
        self.timeout = timeout
        self._transport = transport
        self._cache: dict[str, DetailedTx] = {}

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def _all_url(self) -> str:
        """URL of the first page of the full listing."""

    @abstractmethod
    def _latest_url(self) -> str:
        """URL of the latest-window listing."""

    @abstractmethod
    def _detail_url(self, safe_tx_hash: str) -> str:
        """URL of the detail endpoint for one hash."""

    @abstractmethod
    def _normalize_listed(self, item: dict[str, Any]) -> ListedTx | None:
        """Flatten one listing item, or return None to exclude it."""

    @abstractmethod
    def _normalize_detailed(self, data: dict[str, Any]) -> DetailedTx:
        """Flatten a detail payload."""

    async def fetch_all(self) -> list[ListedTx]:
        txs: list[ListedTx] = []
        url: str | None = self._all_url()
        pages = 0
        while url:
            page = await self._fetch(url)
            txs.extend(self._parse_page(page))
            url = page.get("next")
            pages += 1
        self.logger.debug(f"Fetched {len(txs)} txs in {pages} pages for {self.prefix}:{self.address}")
        return txs

    async def fetch_latest(self) -> list[ListedTx]:
        page = await self._fetch(self._latest_url())
        return self._parse_page(page)

    async def fetch_detailed(self, safe_tx_hash: str) -> DetailedTx:
        if (cached := self._cache.get(safe_tx_hash)) is not None:
            return cached

        data = await self._fetch(self._detail_url(safe_tx_hash))
        try:
            tx = self._normalize_detailed(data)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"unexpected detail payload for {safe_tx_hash}: {e!r}"
            ) from e

        self._cache[safe_tx_hash] = tx
        return tx

    def _parse_page(self, page: dict[str, Any]) -> list[ListedTx]:
        if not isinstance(page, dict):
            raise MalformedResponseError(f"expected a page object, got {type(page).__name__}")
        try:
            txs = [
                tx for item in page["results"]
                if (tx := self._normalize_listed(item)) is not None
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(f"unexpected listing payload: {e!r}") from e

        for tx in txs:
            self.invalidate(tx)
        return txs

    def invalidate(self, listed: ListedTx) -> None:
        """Forget the cached detail of a transaction that changed since it was cached."""
        cached = self._cache.get(listed.safe_tx_hash)
        if cached is None:
            return
        if (cached.is_executed, cached.confirmation_count) != (listed.is_executed, listed.confirmations):
            del self._cache[listed.safe_tx_hash]

    @staticmethod
    def _validate_response(response: httpx.Response) -> None:
        if not response.is_success:
            raise InvalidStatusError(response.status_code)
        content_type = response.headers.get("content-type")
        if not content_type or "application/json" not in content_type:
            raise InvalidContentTypeError(content_type)

    async def _fetch(self, url: str) -> Any:
        """
        GET a JSON document through the retry utility.

        Raises:
            InvalidStatusError: On a non-2xx status after all retries
            InvalidContentTypeError: On a non-JSON response after all retries
            TransportError: On network failure after all retries
            MalformedResponseError: If the body is not valid JSON
        """
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            try:
                response = await fetch_with_retry(
                    client, url, retries=self.retries, validate=self._validate_response
                )
            except httpx.HTTPError as e:
                raise TransportError(f"request to {url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"invalid JSON from {url}") from e
