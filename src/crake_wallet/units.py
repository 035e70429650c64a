"""Amount value types.

Two representations circulate through the send flow and they never mix
implicitly:

* :class:`DecimalAmount` -- a human-readable amount in whole units
  (``0.5`` ETH, ``12.25`` USDC).
* :class:`SmallestUnit` -- an integer count of the smallest denomination
  (wei for native coins, base units for ERC-20 tokens).

Arithmetic and ordering are only defined between values of the same type
and the same number of ``decimals``; anything else raises ``TypeError``.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext

from web3 import Web3

from crake_wallet.errors import InvalidAmountError

NATIVE_DECIMALS = 18
GWEI_DECIMALS = 9

# Enough precision for any uint256 expressed in decimal digits.
_PRECISION = 80


def _check_same(a, b) -> None:
    if type(a) is not type(b):
        raise TypeError(
            f"Cannot combine {type(a).__name__} with {type(b).__name__}; convert explicitly"
        )
    if a.decimals != b.decimals:
        raise TypeError(
            f"Cannot combine amounts with {a.decimals} and {b.decimals} decimals"
        )


@functools.total_ordering
@dataclass(frozen=True)
class DecimalAmount:
    """An amount in whole units with a fixed number of ``decimals``."""

    value: Decimal
    decimals: int = NATIVE_DECIMALS

    @classmethod
    def parse(cls, text: str | Decimal | int, decimals: int = NATIVE_DECIMALS) -> DecimalAmount:
        """Parse a user-entered amount.

        Raises
        ------
        InvalidAmountError
            If *text* is empty, not a finite number, or carries more
            fractional digits than *decimals* can represent.
        """
        if isinstance(text, str):
            text = text.strip()
            if not text:
                raise InvalidAmountError("Amount is required")
        if isinstance(text, float):
            raise InvalidAmountError("Floats are not accepted; pass a decimal string")
        try:
            value = Decimal(text)
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidAmountError(f"Not a number: {text!r}") from exc
        if not value.is_finite():
            raise InvalidAmountError(f"Not a finite number: {text!r}")
        if value != 0 and value.normalize().as_tuple().exponent < -decimals:
            raise InvalidAmountError(
                f"Too many decimal places for a {decimals}-decimal amount: {text!r}"
            )
        return cls(value=value, decimals=decimals)

    @classmethod
    def zero(cls, decimals: int = NATIVE_DECIMALS) -> DecimalAmount:
        return cls(value=Decimal(0), decimals=decimals)

    @property
    def is_positive(self) -> bool:
        return self.value > 0

    def to_smallest(self) -> SmallestUnit:
        """Convert to an integer amount of the smallest denomination."""
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return SmallestUnit(int(self.value.scaleb(self.decimals)), self.decimals)

    def __add__(self, other: DecimalAmount) -> DecimalAmount:
        _check_same(self, other)
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return DecimalAmount(self.value + other.value, self.decimals)

    def __lt__(self, other: DecimalAmount) -> bool:
        _check_same(self, other)
        return self.value < other.value

    def __str__(self) -> str:
        if self.value == 0:
            return "0"
        return format(self.value.normalize(), "f")


@functools.total_ordering
@dataclass(frozen=True)
class SmallestUnit:
    """An integer amount of the smallest denomination (wei, token base units)."""

    value: int
    decimals: int = NATIVE_DECIMALS

    @classmethod
    def parse(cls, text: str | int, decimals: int = NATIVE_DECIMALS) -> SmallestUnit:
        """Parse an integer string such as a user-supplied gas limit."""
        if isinstance(text, bool):
            raise InvalidAmountError("Booleans are not amounts")
        if isinstance(text, int):
            value = text
        else:
            text = str(text).strip()
            if not (text.isascii() and text.isdigit()):
                raise InvalidAmountError(f"Not a non-negative integer: {text!r}")
            value = int(text)
        if value < 0:
            raise InvalidAmountError(f"Negative amount: {value}")
        return cls(value=value, decimals=decimals)

    def to_decimal(self) -> DecimalAmount:
        """Convert to a whole-unit :class:`DecimalAmount`."""
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return DecimalAmount(Decimal(self.value).scaleb(-self.decimals), self.decimals)

    def __add__(self, other: SmallestUnit) -> SmallestUnit:
        _check_same(self, other)
        return SmallestUnit(self.value + other.value, self.decimals)

    def __lt__(self, other: SmallestUnit) -> bool:
        _check_same(self, other)
        return self.value < other.value

    def __str__(self) -> str:
        return str(self.value)


def gwei_to_wei(gwei: str | Decimal) -> int:
    """Convert a gwei amount (as typed by a user) to integer wei."""
    parsed = DecimalAmount.parse(gwei, decimals=GWEI_DECIMALS)
    return int(Web3.to_wei(parsed.value, "gwei"))


def wei_to_gwei(wei: int) -> Decimal:
    """Return *wei* expressed in gwei."""
    return Decimal(str(Web3.from_wei(wei, "gwei")))
