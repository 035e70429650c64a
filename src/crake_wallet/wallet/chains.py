"""Chain definitions for supported EVM networks."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible blockchain network."""

    name: str
    chain_id: int
    rpc_url: str
    native_symbol: str
    explorer_url: str

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


CHAINS: dict[str, Chain] = {
    "ethereum": Chain(
        name="ethereum",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        native_symbol="ETH",
        explorer_url="https://etherscan.io",
    ),
    "polygon": Chain(
        name="polygon",
        chain_id=137,
        rpc_url="https://polygon-rpc.com",
        native_symbol="POL",
        explorer_url="https://polygonscan.com",
    ),
    "base": Chain(
        name="base",
        chain_id=8453,
        rpc_url="https://mainnet.base.org",
        native_symbol="ETH",
        explorer_url="https://basescan.org",
    ),
    "arbitrum": Chain(
        name="arbitrum",
        chain_id=42161,
        rpc_url="https://arb1.arbitrum.io/rpc",
        native_symbol="ETH",
        explorer_url="https://arbiscan.io",
    ),
    "optimism": Chain(
        name="optimism",
        chain_id=10,
        rpc_url="https://mainnet.optimism.io",
        native_symbol="ETH",
        explorer_url="https://optimistic.etherscan.io",
    ),
}


def get_chain(name: str, rpc_overrides: dict[str, str] | None = None) -> Chain:
    """Get a chain by name. Raises ``KeyError`` if not found.

    *rpc_overrides* maps chain names to replacement RPC endpoints (usually
    taken from the ``rpc_urls`` section of the config file).
    """
    if name not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    chain = CHAINS[name]
    if rpc_overrides and rpc_overrides.get(name):
        chain = replace(chain, rpc_url=rpc_overrides[name])
    return chain


def get_chain_by_id(chain_id: int) -> Chain | None:
    """Look up a chain by its numeric id, or ``None`` if unsupported."""
    for chain in CHAINS.values():
        if chain.chain_id == chain_id:
            return chain
    return None


def list_chain_names() -> list[str]:
    """Return the names of all supported chains."""
    return list(CHAINS.keys())
