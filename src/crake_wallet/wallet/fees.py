"""Fee estimation for transaction drafts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from web3 import Web3

from crake_wallet.errors import EstimationError, InvalidAmountError, StaleQuoteError
from crake_wallet.units import DecimalAmount, SmallestUnit
from crake_wallet.wallet.draft import Fingerprint, TransactionDraft
from crake_wallet.wallet.provider import ChainProvider

logger = logging.getLogger("crake_wallet.wallet.fees")

DEFAULT_GAS_PRICE_WEI = Web3.to_wei(20, "gwei")


@dataclass(frozen=True)
class FeeQuote:
    """Estimated execution cost for one specific draft state.

    ``gas_limit`` and ``gas_price`` are the values that will be submitted:
    user overrides when present, otherwise what the node reported. The
    node's own figures are kept in ``oracle_gas_limit``/``oracle_gas_price``
    so overrides can be changed or removed without another simulation.
    """

    gas_limit: int
    gas_price: int
    oracle_gas_limit: int
    oracle_gas_price: int
    fingerprint: Fingerprint

    @property
    def estimated_cost(self) -> SmallestUnit:
        return SmallestUnit(self.gas_limit * self.gas_price)

    @property
    def estimated_cost_native(self) -> DecimalAmount:
        return self.estimated_cost.to_decimal()

    @property
    def overridden(self) -> bool:
        return (self.gas_limit, self.gas_price) != (self.oracle_gas_limit, self.oracle_gas_price)

    def matches(self, draft: TransactionDraft) -> bool:
        """True if this quote was computed for the draft's current state."""
        return self.fingerprint == draft.fingerprint()

    def for_draft(self, draft: TransactionDraft) -> FeeQuote:
        """Re-derive this quote for *draft*'s current gas overrides.

        Only gas overrides may differ; if recipient, amount, data or token
        changed, a new simulation is required and ``StaleQuoteError`` is
        raised.
        """
        if self.fingerprint[: len(draft.fee_inputs())] != draft.fee_inputs():
            raise StaleQuoteError("Draft changed since the fee was estimated")
        gas_limit, gas_price = _overrides(draft)
        return replace(
            self,
            gas_limit=gas_limit if gas_limit is not None else self.oracle_gas_limit,
            gas_price=gas_price if gas_price is not None else self.oracle_gas_price,
            fingerprint=draft.fingerprint(),
        )


def _overrides(draft: TransactionDraft) -> tuple[int | None, int | None]:
    gas_limit = gas_price = None
    if draft.gas_limit:
        gas_limit = SmallestUnit.parse(draft.gas_limit).value
        if gas_limit == 0:
            raise InvalidAmountError("Gas limit must be greater than zero")
    if draft.gas_price:
        gas_price = SmallestUnit.parse(draft.gas_price).value
    return gas_limit, gas_price


class FeeEstimator:
    """Quotes gas for a draft by simulating it against a :class:`ChainProvider`."""

    def __init__(
        self,
        provider: ChainProvider,
        default_gas_price: int = DEFAULT_GAS_PRICE_WEI,
    ) -> None:
        self.provider = provider
        self.default_gas_price = default_gas_price

    async def estimate(self, draft: TransactionDraft, sender: str | None = None) -> FeeQuote:
        """Return a :class:`FeeQuote` for *draft*.

        The recipient must already be a valid address. Raises
        :class:`EstimationError` if the simulation or fee lookup fails.
        """
        fingerprint = draft.fingerprint()
        tx = draft.to_tx(sender)
        overrides = _overrides(draft)

        try:
            gas_limit = await self.provider.estimate_gas(tx)
            fee_data = await self.provider.get_fee_data()
        except Exception as exc:
            logger.warning(f"Gas estimation failed for {tx.get('to')}: {exc}")
            raise EstimationError(f"Failed to estimate gas fees: {exc}") from exc

        gas_price = fee_data.gas_price
        if not gas_price:
            logger.info("Node reported no gas price; using default")
            gas_price = self.default_gas_price

        quote = FeeQuote(
            gas_limit=gas_limit,
            gas_price=gas_price,
            oracle_gas_limit=gas_limit,
            oracle_gas_price=gas_price,
            fingerprint=fingerprint,
        )
        if overrides != (None, None):
            quote = replace(
                quote,
                gas_limit=overrides[0] if overrides[0] is not None else gas_limit,
                gas_price=overrides[1] if overrides[1] is not None else gas_price,
            )
        logger.debug(
            f"Fee quote: {quote.gas_limit} gas @ {quote.gas_price} wei = "
            f"{quote.estimated_cost_native}"
        )
        return quote
