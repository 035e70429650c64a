"""Chain access: the capability protocol the core depends on, and its Web3 adapter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from crake_wallet.wallet.chains import Chain, get_chain
from crake_wallet.wallet.tokens import ERC20_ABI

logger = logging.getLogger("crake_wallet.wallet.provider")


@dataclass(frozen=True)
class FeeData:
    """Current fee-per-gas as reported by the node. ``None`` if unknown."""

    gas_price: int | None


@dataclass(frozen=True)
class Receipt:
    status: int  # 1 = success, 0 = reverted
    gas_used: int
    block_number: int

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class TxInfo:
    hash: str
    from_address: str
    to_address: str | None
    value: int
    gas_price: int | None = None
    block_number: int | None = None


@runtime_checkable
class ChainProvider(Protocol):
    """The narrow set of chain operations the transaction lifecycle needs.

    Transactions are passed as web3-style dicts (``from``, ``to``,
    ``value``, ``data``, ``gas``, ``gasPrice``) with integer values in wei.
    """

    @property
    def chain_id(self) -> int: ...

    async def estimate_gas(self, tx: dict[str, Any]) -> int: ...

    async def get_fee_data(self) -> FeeData: ...

    async def get_balance(self, address: str) -> int: ...

    async def get_token_balance(self, token_address: str, owner: str) -> int: ...

    async def send_transaction(self, tx: dict[str, Any]) -> str: ...

    async def get_transaction(self, tx_hash: str) -> TxInfo | None: ...

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt | None: ...


class Web3Provider:
    """:class:`ChainProvider` backed by an ``AsyncWeb3`` HTTP connection.

    When *account* is given, transactions are signed locally and broadcast
    with ``eth_sendRawTransaction``; otherwise they are handed to the node
    (``eth_sendTransaction``), which must manage the sending account.
    """

    def __init__(self, chain: Chain, account: LocalAccount | None = None) -> None:
        self.chain = chain
        self._account = account
        self._w3 = AsyncWeb3(AsyncHTTPProvider(chain.rpc_url))

        # Inject POA middleware for non-mainnet chains (Base, Arbitrum, Polygon, Optimism)
        if chain.chain_id != 1:
            self._w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    @classmethod
    def for_chain(
        cls,
        chain_name: str,
        rpc_overrides: dict[str, str] | None = None,
        account: LocalAccount | None = None,
    ) -> Web3Provider:
        return cls(get_chain(chain_name, rpc_overrides), account=account)

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    @property
    def account_address(self) -> str | None:
        return self._account.address if self._account is not None else None

    async def close(self) -> None:
        await self._w3.provider.disconnect()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return int(await self._w3.eth.estimate_gas(self._prepare(tx)))

    async def get_fee_data(self) -> FeeData:
        gas_price = await self._w3.eth.gas_price
        return FeeData(gas_price=int(gas_price) if gas_price else None)

    async def get_balance(self, address: str) -> int:
        return int(await self._w3.eth.get_balance(Web3.to_checksum_address(address)))

    async def get_token_balance(self, token_address: str, owner: str) -> int:
        contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        return int(
            await contract.functions.balanceOf(Web3.to_checksum_address(owner)).call()
        )

    async def get_transaction(self, tx_hash: str) -> TxInfo | None:
        try:
            tx = await self._w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        return TxInfo(
            hash=Web3.to_hex(tx["hash"]),
            from_address=tx["from"],
            to_address=tx.get("to"),
            value=int(tx["value"]),
            gas_price=tx.get("gasPrice"),
            block_number=tx.get("blockNumber"),
        )

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt | None:
        try:
            receipt = await self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        return Receipt(
            status=int(receipt.get("status", 0)),
            gas_used=int(receipt["gasUsed"]),
            block_number=int(receipt["blockNumber"]),
        )

    # ------------------------------------------------------------------
    # Broadcast
    # ------------------------------------------------------------------

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """Send *tx* and return the transaction hash as a 0x-prefixed hex string."""
        prepared = self._prepare(tx)
        if self._account is None:
            tx_hash = await self._w3.eth.send_transaction(prepared)
        else:
            prepared.pop("from", None)
            prepared["nonce"] = await self._w3.eth.get_transaction_count(
                self._account.address, "pending"
            )
            prepared["chainId"] = self.chain.chain_id
            signed = self._account.sign_transaction(prepared)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Broadcast transaction on {self.chain.name}: {Web3.to_hex(tx_hash)}")
        return Web3.to_hex(tx_hash)

    @staticmethod
    def _prepare(tx: dict[str, Any]) -> dict[str, Any]:
        prepared = {k: v for k, v in tx.items() if v is not None}
        for key in ("from", "to"):
            if key in prepared:
                prepared[key] = Web3.to_checksum_address(prepared[key])
        return prepared
