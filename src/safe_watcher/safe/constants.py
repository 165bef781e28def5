"""Chain-level constants for the Safe transaction APIs."""

# MultiSendCallOnly deployments. Delegate calls into these are how the Safe
# UI batches transactions, so they are not treated as suspicious.
MULTISEND_CALL_ONLY: frozenset[str] = frozenset({
    "0x9641d764fc13c8b624c04430c7356c1c7c8102e2",
    "0x40a2accbd92bca938b02010e17a5b8929b49130d",
})

CHAIN_IDS: dict[str, int] = {
    "arb1": 42161,
    "eth": 1,
    "gor": 5,
    "oeth": 10,
    "rsk": 30,
    "trsk": 31,
}

# Safe transaction service, one deployment per chain
APIS: dict[str, str] = {
    "arb1": "https://safe-transaction-arbitrum.safe.global/api",
    "eth": "https://safe-transaction-mainnet.safe.global/api",
    "gor": "https://safe-transaction-goerli.safe.global/api",
    "oeth": "https://safe-transaction-optimism.safe.global/api",
    "rsk": "https://transaction.safe.rootstock.io/api",
    "trsk": "https://transaction.safe.rootstock.io/api",
}

# Safe client gateway, chains are addressed by chain id
ALT_APIS: dict[str, str] = {
    "arb1": "https://safe-client.safe.global",
    "eth": "https://safe-client.safe.global",
    "gor": "https://safe-client.safe.global",
    "oeth": "https://safe-client.safe.global",
    "rsk": "https://gateway.safe.rootstock.io",
    "trsk": "https://gateway.safe.rootstock.io",
}

# Chains whose wallets display EIP-1191 checksummed addresses
CHECKSUM_CHAIN_IDS: dict[str, int] = {
    "rsk": 30,
    "trsk": 31,
}
