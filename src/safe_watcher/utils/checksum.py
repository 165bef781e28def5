"""
Address checksum helpers.

Implements EIP-55 and its chain-aware extension EIP-1191, which Rootstock
uses for mixed-case addresses.
"""

import re

from web3 import Web3

from ..safe.constants import CHECKSUM_CHAIN_IDS

HEX_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_hex_address(value: str) -> bool:
    """Check the shape of an address without enforcing any checksum casing."""
    return bool(HEX_ADDRESS_RE.fullmatch(value))


def checksum_address(address: str, chain_id: int | None = None) -> str:
    """
    Return the mixed-case checksum form of an address.

    Args:
        address: 0x-prefixed 20-byte hex address, any casing
        chain_id: EIP-1191 chain id, or None for plain EIP-55

    Returns:
        Checksummed address

    Raises:
        ValueError: If the address is not 20 bytes of hex
    """
    if not is_hex_address(address):
        raise ValueError(f"Invalid address: {address}")

    lower = address[2:].lower()
    hashed_input = lower if chain_id is None else f"{chain_id}0x{lower}"
    digest = Web3.keccak(text=hashed_input).hex().removeprefix("0x")

    return "0x" + "".join(
        char.upper() if int(digest[i], 16) >= 8 else char
        for i, char in enumerate(lower)
    )


def checksum_for_prefix(address: str, prefix: str) -> str:
    """
    Checksum an address the way wallets on the given chain display it.

    Chains without a dedicated checksum variant get the address back unchanged.
    """
    chain_id = CHECKSUM_CHAIN_IDS.get(prefix.strip())
    if chain_id is None:
        return address
    return checksum_address(address, chain_id)
