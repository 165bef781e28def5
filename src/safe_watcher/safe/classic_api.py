"""
Adapter for the Safe transaction service REST API.

The transaction service returns flat multisig transaction objects, keyed
by chain through a separate deployment per chain.
"""

from typing import Any

from ..errors import NoEndpointError
from ..models import DetailedTx, ListedTx
from .base_api import BaseApi
from .constants import APIS

ALL_PAGE_SIZE = 100
LATEST_PAGE_SIZE = 20


def normalize_listed(tx: dict[str, Any]) -> ListedTx:
    """Flatten a transaction service item.

    A missing or null ``confirmations`` array counts as zero confirmations.
    """
    return ListedTx(
        safe_tx_hash=tx["safeTxHash"],
        nonce=int(tx["nonce"]),
        is_executed=bool(tx["isExecuted"]),
        confirmations=len(tx.get("confirmations") or []),
        confirmations_required=int(tx["confirmationsRequired"]),
    )


def normalize_detailed(tx: dict[str, Any]) -> DetailedTx:
    confirmations = tuple(c["owner"] for c in tx.get("confirmations") or [])
    proposer = tx.get("proposer") or (confirmations[0] if confirmations else None)
    return DetailedTx(
        safe_tx_hash=tx["safeTxHash"],
        nonce=int(tx["nonce"]),
        is_executed=bool(tx["isExecuted"]),
        confirmations_required=int(tx["confirmationsRequired"]),
        to=tx["to"],
        operation=int(tx["operation"]),
        proposer=proposer,
        confirmations=confirmations,
    )


class ClassicAPI(BaseApi):
    """Safe transaction service client for one safe."""

    def _base_url(self) -> str:
        if (url := APIS.get(self.prefix)) is None:
            raise NoEndpointError(self.prefix)
        return url

    def _all_url(self) -> str:
        return (
            f"{self._base_url()}/v1/safes/{self.address}/multisig-transactions/"
            f"?limit={ALL_PAGE_SIZE}"
        )

    def _latest_url(self) -> str:
        return (
            f"{self._base_url()}/v1/safes/{self.address}/multisig-transactions/"
            f"?ordering=-modified&limit={LATEST_PAGE_SIZE}"
        )

    def _detail_url(self, safe_tx_hash: str) -> str:
        return f"{self._base_url()}/v1/multisig-transactions/{safe_tx_hash}/"

    def _normalize_listed(self, item: dict[str, Any]) -> ListedTx:
        return normalize_listed(item)

    def _normalize_detailed(self, data: dict[str, Any]) -> DetailedTx:
        return normalize_detailed(data)
