"""
Adapter for the Safe client gateway API.

The gateway wraps each transaction in a typed envelope with nested
``txInfo`` and ``executionInfo`` objects. Only multisig transaction
envelopes are relevant; labels, conflict headers and module transactions
are dropped.
"""

from typing import Any

from ..errors import NoEndpointError
from ..models import DetailedTx, ListedTx
from .base_api import BaseApi
from .constants import ALT_APIS, CHAIN_IDS

TRANSACTION_ITEM = "TRANSACTION"
MULTISIG_EXECUTION = "MULTISIG"
EXECUTED_STATUSES = frozenset({"SUCCESS", "FAILED"})


def _hash_from_id(tx_id: str) -> str:
    # multisig_<safe address>_<safe tx hash>
    return tx_id.rsplit("_", 1)[-1]


def normalize_listed(item: dict[str, Any]) -> ListedTx | None:
    """Flatten a gateway listing item, or None if it is not a multisig tx."""
    if item.get("type") != TRANSACTION_ITEM:
        return None
    tx = item["transaction"]
    execution = tx.get("executionInfo") or {}
    if execution.get("type") != MULTISIG_EXECUTION:
        return None

    return ListedTx(
        safe_tx_hash=_hash_from_id(tx["id"]),
        nonce=int(execution["nonce"]),
        is_executed=tx.get("txStatus") in EXECUTED_STATUSES,
        confirmations=int(execution.get("confirmationsSubmitted") or 0),
        confirmations_required=int(execution["confirmationsRequired"]),
    )


def normalize_detailed(data: dict[str, Any]) -> DetailedTx:
    execution = data["detailedExecutionInfo"]
    if execution.get("type") != MULTISIG_EXECUTION:
        raise ValueError(f"unsupported execution type {execution.get('type')!r}")

    tx_data = data["txData"]
    confirmations = tuple(
        c["signer"]["value"] for c in execution.get("confirmations") or []
    )
    proposer = (execution.get("proposer") or {}).get("value")
    return DetailedTx(
        safe_tx_hash=execution["safeTxHash"],
        nonce=int(execution["nonce"]),
        is_executed=data.get("txStatus") in EXECUTED_STATUSES,
        confirmations_required=int(execution["confirmationsRequired"]),
        to=tx_data["to"]["value"],
        operation=int(tx_data["operation"]),
        proposer=proposer or (confirmations[0] if confirmations else None),
        confirmations=confirmations,
    )


class AltAPI(BaseApi):
    """Safe client gateway client for one safe."""

    def _base_url(self) -> str:
        url = ALT_APIS.get(self.prefix)
        chain_id = CHAIN_IDS.get(self.prefix)
        if url is None or chain_id is None:
            raise NoEndpointError(self.prefix)
        return f"{url}/v1/chains/{chain_id}"

    def _all_url(self) -> str:
        return f"{self._base_url()}/safes/{self.address}/multisig-transactions"

    def _latest_url(self) -> str:
        # the gateway returns the most recent transactions first
        return self._all_url()

    def _detail_url(self, safe_tx_hash: str) -> str:
        return f"{self._base_url()}/transactions/{safe_tx_hash}"

    def _normalize_listed(self, item: dict[str, Any]) -> ListedTx | None:
        return normalize_listed(item)

    def _normalize_detailed(self, data: dict[str, Any]) -> DetailedTx:
        return normalize_detailed(data)
