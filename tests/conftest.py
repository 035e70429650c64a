"""Shared test fixtures for the crake-wallet test suite."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from web3 import Web3

from crake_wallet.storage import MemoryKeyValueStore
from crake_wallet.wallet.fees import FeeEstimator
from crake_wallet.wallet.history import HistoryStore
from crake_wallet.wallet.provider import FeeData, Receipt, TxInfo
from crake_wallet.wallet.session import SendSession
from crake_wallet.wallet.submitter import Submitter

SENDER = "0x" + "11" * 20
RECIPIENT = "0xABCD" + "0" * 32 + "1234"
OTHER = "0x" + "22" * 20


class FakeProvider:
    """Scriptable in-memory stand-in for a chain provider."""

    def __init__(
        self,
        chain_id: int = 1,
        balance: int = Web3.to_wei(1, "ether"),
        gas_limit: int = 21000,
        gas_price: int | None = Web3.to_wei(20, "gwei"),
    ) -> None:
        self._chain_id = chain_id
        self.default_balance = balance
        self.balances: dict[str, int] = {}
        self.token_balances: dict[tuple[str, str], int] = {}
        self.gas_limit = gas_limit
        self.gas_price = gas_price
        self.estimate_error: Exception | None = None
        self.send_error: Exception | None = None
        self.hold: asyncio.Event | None = None
        self.estimate_calls = 0
        self.fee_data_calls = 0
        self.transaction_error: Exception | None = None
        self.sent: list[dict[str, Any]] = []
        self.receipts: dict[str, Receipt | Exception] = {}
        self.transactions: dict[str, TxInfo] = {}
        self.receipt_calls = 0

    @property
    def chain_id(self) -> int:
        return self._chain_id

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        self.estimate_calls += 1
        limit = self.gas_limit
        error = self.estimate_error
        hold = self.hold
        if hold is not None:
            await hold.wait()
        if error is not None:
            raise error
        return limit

    async def get_fee_data(self) -> FeeData:
        self.fee_data_calls += 1
        return FeeData(gas_price=self.gas_price)

    async def get_balance(self, address: str) -> int:
        return self.balances.get(address.lower(), self.default_balance)

    async def get_token_balance(self, token_address: str, owner: str) -> int:
        return self.token_balances.get((token_address.lower(), owner.lower()), 0)

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(tx)
        return "0x" + f"{len(self.sent):064x}"

    async def get_transaction(self, tx_hash: str) -> TxInfo | None:
        if self.transaction_error is not None:
            raise self.transaction_error
        return self.transactions.get(tx_hash.lower())

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt | None:
        self.receipt_calls += 1
        result = self.receipts.get(tx_hash.lower())
        if isinstance(result, Exception):
            raise result
        return result


class BrokenStore:
    """A key-value store whose every operation fails."""

    async def get(self, key: str) -> str | None:
        raise OSError("storage unavailable")

    async def set(self, key: str, value: str) -> None:
        raise OSError("storage unavailable")

    async def remove(self, key: str) -> None:
        raise OSError("storage unavailable")


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def history(store) -> HistoryStore:
    return HistoryStore(store)


@pytest.fixture
def session(provider, history) -> SendSession:
    return SendSession(
        sender=SENDER,
        provider=provider,
        estimator=FeeEstimator(provider),
        submitter=Submitter(provider, history),
    )
