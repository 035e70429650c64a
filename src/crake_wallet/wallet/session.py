"""The send flow: one draft from first keystroke to submission."""

from __future__ import annotations

import logging
from dataclasses import replace

from crake_wallet.errors import (
    EstimationError,
    GateStateError,
    InvalidAmountError,
)
from crake_wallet.storage.models import TransactionRecord
from crake_wallet.units import DecimalAmount, SmallestUnit, gwei_to_wei
from crake_wallet.wallet.address_book import AddressBook
from crake_wallet.wallet.draft import TransactionDraft, is_valid_address
from crake_wallet.wallet.fees import FeeEstimator, FeeQuote
from crake_wallet.wallet.gate import ConfirmationGate, GateState, PendingApproval
from crake_wallet.wallet.provider import ChainProvider
from crake_wallet.wallet.submitter import Submitter
from crake_wallet.wallet.tokens import TokenRef
from crake_wallet.wallet.validation import ValidationResult, validate_draft

logger = logging.getLogger("crake_wallet.wallet.session")

_UNSET = object()


class SendSession:
    """Owns a :class:`TransactionDraft`, its current fee quote and a gate.

    Every edit to a fee input bumps ``generation``. An estimation started
    under an older generation, or finishing after the session was closed,
    is discarded instead of being applied to the current draft.
    """

    def __init__(
        self,
        sender: str,
        provider: ChainProvider,
        estimator: FeeEstimator,
        submitter: Submitter,
        gate: ConfirmationGate | None = None,
    ) -> None:
        self.sender = sender
        self.provider = provider
        self.estimator = estimator
        self.submitter = submitter
        self.gate = gate or ConfirmationGate()
        self.draft = TransactionDraft()
        self.quote: FeeQuote | None = None
        self.fee_error: str | None = None
        self._generation = 0
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def edit(
        self,
        *,
        recipient: str | None = None,
        amount: str | None = None,
        data: str | None | object = _UNSET,
        token: TokenRef | None | object = _UNSET,
    ) -> None:
        """Change draft fields. Any change to a fee input invalidates the quote."""
        self._require_editable()
        before = self.draft.fee_inputs()
        if recipient is not None:
            self.draft.recipient = recipient.strip()
        if amount is not None:
            self.draft.amount = amount.strip()
        if data is not _UNSET:
            self.draft.data = data or None
        if token is not _UNSET:
            self.draft.token = token
        if self.draft.fee_inputs() != before:
            self._invalidate()

    async def prefill_recipient(self, address_book: AddressBook, name_or_address: str) -> str | None:
        """Fill the recipient from a saved contact and mark the contact used."""
        address = await address_book.lookup(name_or_address)
        if address is None:
            return None
        await address_book.select(address)
        self.edit(recipient=address)
        return address

    def set_custom_gas(
        self,
        gas_limit: str | int | None = None,
        gas_price_gwei: str | None = None,
    ) -> None:
        """Override the gas limit and/or price (price entered in gwei).

        Passing ``None`` for both removes the overrides. The current quote is
        re-derived from the override values without another simulation.
        """
        self._require_editable()
        limit = None
        if gas_limit is not None and str(gas_limit).strip():
            limit = SmallestUnit.parse(gas_limit).value
            if limit == 0:
                raise InvalidAmountError("Gas limit must be greater than zero")
        price = None
        if gas_price_gwei is not None and str(gas_price_gwei).strip():
            price = gwei_to_wei(gas_price_gwei)

        self.draft.gas_limit = str(limit) if limit is not None else None
        self.draft.gas_price = str(price) if price is not None else None
        if self.quote is not None:
            self.quote = self.quote.for_draft(self.draft)

    # ------------------------------------------------------------------
    # Async boundaries
    # ------------------------------------------------------------------

    async def refresh_quote(self) -> FeeQuote | None:
        """Estimate the fee for the current draft.

        Returns the new quote, or ``None`` if the draft is not yet
        estimable, estimation failed (see ``fee_error``), or the draft
        changed while the estimate was in flight.
        """
        self._require_editable()
        if not is_valid_address(self.draft.recipient):
            return None
        if self.draft.amount:
            try:
                amount = self.draft.parsed_amount()
            except InvalidAmountError:
                return None
            if amount.value < 0:
                return None

        generation = self._generation
        snapshot = replace(self.draft)
        try:
            quote = await self.estimator.estimate(snapshot, self.sender)
        except EstimationError as exc:
            if self._is_current(generation):
                self.quote = None
                self.fee_error = str(exc)
            return None

        if not self._is_current(generation):
            logger.debug("Discarding fee quote for a superseded draft")
            return None

        # Gas overrides may have changed while the estimate was in flight.
        self.quote = quote.for_draft(self.draft)
        self.fee_error = None
        return self.quote

    async def read_balances(self) -> tuple[DecimalAmount, DecimalAmount | None]:
        """Native balance and, for token drafts, the token balance."""
        balance = SmallestUnit(await self.provider.get_balance(self.sender)).to_decimal()
        token_balance = None
        token = self.draft.token
        if token is not None:
            raw = await self.provider.get_token_balance(token.address, self.sender)
            token_balance = SmallestUnit(raw, token.decimals).to_decimal()
        return balance, token_balance

    async def validate(self) -> ValidationResult:
        balance, token_balance = await self.read_balances()
        return validate_draft(self.draft, self.quote, balance, token_balance, self.fee_error)

    async def review(self) -> PendingApproval:
        """Validate against fresh balances and open the confirmation gate.

        Re-estimates first if the current quote is missing or stale.
        Raises ``EstimationError`` if no fee can be estimated and
        ``ValidationError`` if the draft does not pass.
        """
        self._require_editable()
        if self.quote is None or not self.quote.matches(self.draft):
            await self.refresh_quote()
        if self.quote is None and self.fee_error:
            raise EstimationError(self.fee_error)
        balance, token_balance = await self.read_balances()
        return self.gate.open(self.draft, self.quote, balance, token_balance)

    async def confirm(self) -> TransactionRecord:
        """Approve the snapshot awaiting confirmation and submit it.

        On success the session is closed and the draft discarded. On
        ``SubmissionError`` the gate is closed again and the draft is kept
        for correction; resubmitting requires a fresh :meth:`review`.
        """
        approved = self.gate.confirm()
        record = await self.submitter.submit(approved, self.sender)
        self.close()
        return record

    # ------------------------------------------------------------------
    # Leaving the flow
    # ------------------------------------------------------------------

    def back(self) -> None:
        """Leave the confirmation step and return to editing the same draft."""
        self.gate.cancel()

    def cancel(self) -> None:
        """Abandon the flow entirely."""
        self.gate.cancel()
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self.draft = TransactionDraft()
        self.quote = None
        self.fee_error = None

    # ------------------------------------------------------------------

    def _invalidate(self) -> None:
        self._generation += 1
        self.quote = None
        self.fee_error = None

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _require_editable(self) -> None:
        if self._closed:
            raise GateStateError("Send flow is closed")
        if self.gate.state is not GateState.CLOSED:
            raise GateStateError(
                f"Draft cannot change while {self.gate.state.value}; go back to edit"
            )
