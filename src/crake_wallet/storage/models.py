"""Pydantic models for persisted wallet state.

Field aliases match the persisted JSON layout (``from``, ``blockNumber``,
``lastUsed`` ...), so records written by earlier versions of the wallet
load unchanged.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crake_wallet.wallet.tokens import TokenRef


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TxStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not TxStatus.PENDING


class TxDirection(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _new_id() -> str:
    """Generate a short hex ID (12 characters)."""
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------

class TransactionRecord(BaseModel):
    """One entry of the transaction history log.

    Frozen: the history store replaces a record with an updated copy when
    its status or chain-observed fields change.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hash: str
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    amount: str  # stored as string to preserve decimal precision
    status: TxStatus = TxStatus.PENDING
    timestamp: int = Field(default_factory=now_ms)
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    gas_used: Optional[str] = Field(default=None, alias="gasUsed")
    gas_price: Optional[str] = Field(default=None, alias="gasPrice")
    direction: TxDirection = TxDirection.SENT
    token: Optional[TokenRef] = None
    chain_id: Optional[int] = Field(default=None, alias="chainId")

    def involves(self, address: str) -> bool:
        needle = address.lower()
        return self.from_address.lower() == needle or self.to_address.lower() == needle

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AddressBookEntry(BaseModel):
    """A saved recipient."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    name: str
    address: str
    note: Optional[str] = None
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    last_used: Optional[int] = Field(default=None, alias="lastUsed")

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
