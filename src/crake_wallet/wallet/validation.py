"""Draft validation: recipient, amount, fee readiness and affordability.

Everything here is pure; balances are read by the caller and passed in.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from crake_wallet.errors import InvalidAmountError, ValidationError
from crake_wallet.units import DecimalAmount
from crake_wallet.wallet.draft import TransactionDraft, is_valid_address
from crake_wallet.wallet.fees import FeeQuote

RECIPIENT = "recipient"
AMOUNT = "amount"
FEE = "fee"

FEE_NOT_READY = "Fee estimate not ready"
FEE_STALE = "Fee estimate is out of date; re-estimating"


@dataclass(frozen=True)
class ValidationResult:
    errors: dict[str, str] = field(default_factory=dict)
    ready: bool = True  # False while no usable fee quote exists

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def total_cost(draft: TransactionDraft, quote: FeeQuote) -> DecimalAmount:
    """Native-coin cost of sending *draft*: amount plus fee, or just the fee for tokens."""
    fee = quote.estimated_cost_native
    if draft.token is not None:
        return fee
    return draft.parsed_amount() + fee


def validate_draft(
    draft: TransactionDraft,
    quote: FeeQuote | None,
    balance: DecimalAmount,
    token_balance: DecimalAmount | None = None,
    fee_error: str | None = None,
) -> ValidationResult:
    """Check *draft* against its fee quote and the sender's balances.

    *balance* is the native-coin balance. *token_balance* is required when
    the draft transfers a token. *fee_error* is the message from a failed
    estimation, reported instead of the generic "not ready" reason.
    """
    errors: dict[str, str] = {}
    ready = True

    recipient = draft.recipient.strip()
    if not recipient:
        errors[RECIPIENT] = "Recipient address is required"
    elif not is_valid_address(recipient):
        errors[RECIPIENT] = "Invalid Ethereum address"

    amount: DecimalAmount | None = None
    if not draft.amount.strip():
        errors[AMOUNT] = "Amount is required"
    else:
        try:
            amount = draft.parsed_amount()
        except InvalidAmountError as exc:
            errors[AMOUNT] = f"Invalid amount: {exc}"
        else:
            if not amount.is_positive:
                errors[AMOUNT] = "Amount must be greater than zero"
                amount = None

    if quote is None:
        ready = False
        errors[FEE] = f"Cannot estimate fee: {fee_error}" if fee_error else FEE_NOT_READY
    elif not quote.matches(draft):
        ready = False
        errors[FEE] = FEE_STALE

    if amount is None or not ready:
        return ValidationResult(errors=errors, ready=ready)

    fee = quote.estimated_cost_native
    if draft.token is None:
        total = amount + fee
        if total > balance:
            errors[AMOUNT] = (
                f"Insufficient balance: {amount} plus network fee {fee} "
                f"exceeds available {balance}"
            )
    else:
        if token_balance is None:
            errors[AMOUNT] = f"{draft.token.symbol} balance unavailable"
        elif amount > token_balance:
            errors[AMOUNT] = (
                f"Insufficient {draft.token.symbol} balance: {amount} exceeds "
                f"available {token_balance}"
            )
        if fee > balance:
            errors[FEE] = f"Insufficient balance for network fee {fee} (available {balance})"

    return ValidationResult(errors=errors, ready=ready)
