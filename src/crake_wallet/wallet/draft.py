"""The mutable working state of an in-progress send."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from web3 import Web3

from crake_wallet.errors import InvalidAddressError
from crake_wallet.units import NATIVE_DECIMALS, DecimalAmount, SmallestUnit
from crake_wallet.wallet.tokens import TokenRef, encode_transfer

Fingerprint = tuple[Any, ...]


def is_valid_address(value: str | None) -> bool:
    return bool(value) and Web3.is_address(value.strip())


@dataclass
class TransactionDraft:
    """What the user has typed so far.

    ``amount`` is a decimal string in whole units of the native coin, or of
    ``token`` when one is set. ``gas_limit`` and ``gas_price`` are optional
    user overrides as integer strings (gas units and wei).
    """

    recipient: str = ""
    amount: str = ""
    gas_limit: str | None = None
    gas_price: str | None = None
    data: str | None = None
    token: TokenRef | None = None

    @property
    def decimals(self) -> int:
        return self.token.decimals if self.token is not None else NATIVE_DECIMALS

    def fee_inputs(self) -> Fingerprint:
        """The fields that require a fresh gas simulation when they change."""
        return (
            self.recipient.strip().lower(),
            self.amount.strip(),
            self.data or "",
            self.token.address.lower() if self.token is not None else "",
        )

    def fingerprint(self) -> Fingerprint:
        """Every field a fee quote depends on, including gas overrides."""
        return self.fee_inputs() + (self.gas_limit or "", self.gas_price or "")

    def parsed_amount(self) -> DecimalAmount:
        return DecimalAmount.parse(self.amount, decimals=self.decimals)

    def to_tx(self, sender: str | None = None) -> dict[str, Any]:
        """Build the web3 transaction dict this draft describes (without gas fields).

        An empty amount is treated as zero so a fee can be quoted while the
        user is still typing.
        """
        recipient = self.recipient.strip()
        if not is_valid_address(recipient):
            raise InvalidAddressError(f"Invalid recipient address: {recipient!r}")

        units = (
            self.parsed_amount().to_smallest()
            if self.amount.strip()
            else SmallestUnit(0, self.decimals)
        )

        tx: dict[str, Any] = {}
        if sender:
            tx["from"] = sender
        if self.token is None:
            tx["to"] = recipient
            tx["value"] = units.value
            if self.data:
                tx["data"] = self.data
        else:
            tx["to"] = self.token.address
            tx["value"] = 0
            tx["data"] = encode_transfer(recipient, units.value)
        return tx
