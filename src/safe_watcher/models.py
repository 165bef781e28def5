#!/usr/bin/env python3
"""Data models for the Safe watcher.

This module provides immutable data classes for Safe transactions as seen
through the transaction APIs, and the events emitted when they change.
"""

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from .errors import InvalidPrefixedAddressError

PREFIXED_ADDRESS_RE = re.compile(r"^([a-zA-Z0-9]+):(0x[a-fA-F0-9]{40})$")


@dataclass(frozen=True, slots=True)
class PrefixedAddress:
    """A chain-prefixed Safe address such as ``eth:0x...``.

    Attributes:
        prefix: Short chain name (EIP-3770 prefix)
        address: 0x-prefixed 20-byte hex address, casing preserved
    """

    prefix: str
    address: str

    @classmethod
    def parse(cls, value: str) -> "PrefixedAddress":
        """Parse a ``prefix:0xADDRESS`` string.

        Raises:
            InvalidPrefixedAddressError: If the prefix is missing or the
                address is not exactly 40 hex characters
        """
        match = PREFIXED_ADDRESS_RE.fullmatch(value) if isinstance(value, str) else None
        if match is None:
            raise InvalidPrefixedAddressError(str(value))
        return cls(prefix=match.group(1), address=match.group(2))

    def __str__(self) -> str:
        return f"{self.prefix}:{self.address}"


class Operation(IntEnum):
    """Safe transaction operation type."""
    CALL = 0
    DELEGATE_CALL = 1


@dataclass(frozen=True, slots=True)
class ListedTx:
    """Transaction status as returned by a listing endpoint.

    Attributes:
        safe_tx_hash: Safe transaction hash, unique per transaction
        nonce: Safe nonce
        is_executed: Whether the transaction has been executed on chain
        confirmations: Number of owner confirmations collected so far
        confirmations_required: Threshold at proposal time
    """

    safe_tx_hash: str
    nonce: int
    is_executed: bool
    confirmations: int
    confirmations_required: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "safe_tx_hash": self.safe_tx_hash,
            "nonce": self.nonce,
            "is_executed": self.is_executed,
            "confirmations": self.confirmations,
            "confirmations_required": self.confirmations_required,
        }


@dataclass(frozen=True, slots=True)
class DetailedTx:
    """Full transaction record returned by a per-hash lookup.

    ``confirmations`` holds the confirming owner addresses, and ``proposer``
    is None when upstream reports neither a proposer nor any confirmation.
    """

    safe_tx_hash: str
    nonce: int
    is_executed: bool
    confirmations_required: int
    to: str
    operation: int
    proposer: str | None = None
    confirmations: tuple[str, ...] = field(default_factory=tuple)

    @property
    def confirmation_count(self) -> int:
        return len(self.confirmations)


@dataclass(frozen=True, slots=True)
class Signer:
    """An owner address with an optional human-readable alias."""

    address: str
    name: str | None = None

    def __str__(self) -> str:
        return self.name or self.address

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "name": self.name}


@dataclass(frozen=True, slots=True)
class SignedTx:
    """A DetailedTx whose proposer and confirmers carry signer aliases."""

    safe_tx_hash: str
    nonce: int
    is_executed: bool
    confirmations_required: int
    to: str
    operation: int
    proposer: Signer | None
    confirmations: tuple[Signer, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "safe_tx_hash": self.safe_tx_hash,
            "nonce": self.nonce,
            "is_executed": self.is_executed,
            "confirmations_required": self.confirmations_required,
            "to": self.to,
            "operation": self.operation,
            "proposer": self.proposer.to_dict() if self.proposer else None,
            "confirmations": [c.to_dict() for c in self.confirmations],
        }


class EventType(str, Enum):
    """Kind of change detected for a transaction."""
    CREATED = "created"
    UPDATED = "updated"
    EXECUTED = "executed"
    MALICIOUS = "malicious"


@dataclass(frozen=True, slots=True)
class Event:
    """Notification emitted by a watcher.

    Attributes:
        type: Detected change
        name: Human-readable alias of the safe
        chain_prefix: Chain prefix of the safe
        safe: Safe address
        tx: Transaction details with resolved signers
        pending: Unexecuted transactions in the latest window, by nonce
    """

    type: EventType
    name: str
    chain_prefix: str
    safe: str
    tx: SignedTx
    pending: tuple[ListedTx, ...] = ()

    def __str__(self) -> str:
        return (
            f"Event({self.type.value}, safe={self.chain_prefix}:{self.safe}, "
            f"nonce={self.tx.nonce}, tx={self.tx.safe_tx_hash[:10]}...)"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "name": self.name,
            "chain_prefix": self.chain_prefix,
            "safe": self.safe,
            "tx": self.tx.to_dict(),
            "pending": [tx.to_dict() for tx in self.pending],
        }
