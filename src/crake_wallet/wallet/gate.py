"""Explicit confirmation step between a validated draft and submission."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from crake_wallet.errors import GateStateError
from crake_wallet.units import DecimalAmount
from crake_wallet.wallet.draft import TransactionDraft
from crake_wallet.wallet.fees import FeeQuote
from crake_wallet.wallet.tokens import TokenRef
from crake_wallet.wallet.validation import total_cost, validate_draft

logger = logging.getLogger("crake_wallet.wallet.gate")


class GateState(str, Enum):
    CLOSED = "closed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class PendingApproval:
    """Immutable snapshot of what the user is being asked to approve."""

    recipient: str
    amount: DecimalAmount
    gas_limit: int
    gas_price: int
    estimated_cost: DecimalAmount
    total_cost: DecimalAmount
    data: str | None = None
    token: TokenRef | None = None

    @classmethod
    def snapshot(cls, draft: TransactionDraft, quote: FeeQuote) -> PendingApproval:
        return cls(
            recipient=draft.recipient.strip(),
            amount=draft.parsed_amount(),
            gas_limit=quote.gas_limit,
            gas_price=quote.gas_price,
            estimated_cost=quote.estimated_cost_native,
            total_cost=total_cost(draft, quote),
            data=draft.data,
            token=draft.token,
        )

    def to_tx(self, sender: str) -> dict[str, Any]:
        """The full transaction dict to broadcast, gas fields included."""
        draft = TransactionDraft(
            recipient=self.recipient,
            amount=str(self.amount),
            data=self.data,
            token=self.token,
        )
        tx = draft.to_tx(sender)
        tx["gas"] = self.gas_limit
        tx["gasPrice"] = self.gas_price
        return tx


class ApprovedTransaction:
    """A single-use ticket minted by :meth:`ConfirmationGate.confirm`."""

    def __init__(self, approval: PendingApproval, gate: ConfirmationGate) -> None:
        self.approval = approval
        self._gate = gate
        self._used = False

    @property
    def used(self) -> bool:
        return self._used

    def consume(self) -> PendingApproval:
        """Mark the ticket used and return its snapshot. A second call raises."""
        if self._used:
            raise GateStateError("This approval has already been submitted")
        self._used = True
        return self.approval

    def release(self) -> None:
        """Return the issuing gate to ``closed`` once submission has finished."""
        self._gate.reset()


class ConfirmationGate:
    """State machine: ``closed`` -> ``awaiting_confirmation`` -> ``confirmed``.

    Cancelling from ``awaiting_confirmation`` goes straight back to
    ``closed`` and discards the snapshot. While a snapshot is awaiting
    confirmation nothing about it can change; editing requires cancelling
    first, which forces a fresh validation on the next :meth:`open`.
    """

    def __init__(self) -> None:
        self._state = GateState.CLOSED
        self._approval: PendingApproval | None = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def approval(self) -> PendingApproval | None:
        return self._approval

    def open(
        self,
        draft: TransactionDraft,
        quote: FeeQuote | None,
        balance: DecimalAmount,
        token_balance: DecimalAmount | None = None,
    ) -> PendingApproval:
        """Validate *draft* and, if it passes, hold it for confirmation.

        Raises ``ValidationError`` when the draft does not pass and
        ``GateStateError`` when the gate is not closed.
        """
        if self._state is not GateState.CLOSED:
            raise GateStateError(f"Cannot open confirmation while {self._state.value}")
        validate_draft(draft, quote, balance, token_balance).raise_for_errors()

        self._approval = PendingApproval.snapshot(draft, quote)
        self._state = GateState.AWAITING_CONFIRMATION
        logger.info(
            f"Awaiting confirmation: {self._approval.amount} to {self._approval.recipient} "
            f"(total {self._approval.total_cost})"
        )
        return self._approval

    def confirm(self) -> ApprovedTransaction:
        if self._state is not GateState.AWAITING_CONFIRMATION or self._approval is None:
            raise GateStateError(f"Nothing to confirm (gate is {self._state.value})")
        self._state = GateState.CONFIRMED
        return ApprovedTransaction(self._approval, self)

    def cancel(self) -> None:
        if self._state is GateState.CONFIRMED:
            raise GateStateError("Transaction already confirmed; it can no longer be cancelled")
        if self._state is GateState.AWAITING_CONFIRMATION:
            logger.info("Confirmation cancelled")
        self._state = GateState.CLOSED
        self._approval = None

    def reset(self) -> None:
        """Close the gate after a confirmed submission has succeeded or failed."""
        if self._state is GateState.AWAITING_CONFIRMATION:
            raise GateStateError("Use cancel() to leave awaiting_confirmation")
        self._state = GateState.CLOSED
        self._approval = None
