"""ERC-20 token references and transfer encoding."""

from __future__ import annotations

from eth_abi import encode
from pydantic import BaseModel, ConfigDict
from web3 import Web3

from crake_wallet.errors import InvalidAddressError

# Minimal ERC-20 ABI: balance lookup and metadata.
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# keccak("transfer(address,uint256)")[:4]
TRANSFER_SELECTOR = "0xa9059cbb"


class TokenRef(BaseModel):
    """A reference to an ERC-20 contract."""

    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str
    decimals: int = 18
    name: str = ""


COMMON_TOKENS: dict[int, list[TokenRef]] = {
    1: [
        TokenRef(
            address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            symbol="USDC",
            decimals=6,
            name="USD Coin",
        ),
        TokenRef(
            address="0xdAC17F958D2ee523a2206206994597C13D831ec7",
            symbol="USDT",
            decimals=6,
            name="Tether USD",
        ),
        TokenRef(
            address="0x6B175474E89094C44Da98b954EedeAC495271d0F",
            symbol="DAI",
            decimals=18,
            name="Dai Stablecoin",
        ),
    ],
    137: [
        TokenRef(
            address="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
            symbol="USDC",
            decimals=6,
            name="USD Coin (PoS)",
        ),
        TokenRef(
            address="0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
            symbol="USDT",
            decimals=6,
            name="Tether USD (PoS)",
        ),
    ],
}


def find_token(chain_id: int, symbol_or_address: str) -> TokenRef | None:
    """Find a well-known token on *chain_id* by symbol or contract address."""
    needle = symbol_or_address.strip().lower()
    for token in COMMON_TOKENS.get(chain_id, []):
        if token.symbol.lower() == needle or token.address.lower() == needle:
            return token
    return None


def encode_transfer(recipient: str, amount: int) -> str:
    """Return hex calldata for ``transfer(recipient, amount)``.

    *amount* is in the token's smallest unit.
    """
    if not Web3.is_address(recipient):
        raise InvalidAddressError(f"Invalid recipient address: {recipient!r}")
    if amount < 0:
        raise ValueError("Transfer amount must be non-negative")
    args = encode(["address", "uint256"], [Web3.to_checksum_address(recipient), amount])
    return TRANSFER_SELECTOR + args.hex()
