"""Tests for draft validation and affordability."""

from __future__ import annotations

import pytest
from web3 import Web3

from crake_wallet.errors import ValidationError
from crake_wallet.units import DecimalAmount
from crake_wallet.wallet.draft import TransactionDraft
from crake_wallet.wallet.fees import FeeQuote
from crake_wallet.wallet.tokens import find_token
from crake_wallet.wallet.validation import (
    AMOUNT,
    FEE,
    FEE_NOT_READY,
    FEE_STALE,
    RECIPIENT,
    total_cost,
    validate_draft,
)

from .conftest import RECIPIENT as TO


def quote_for(draft: TransactionDraft, fee_wei: int) -> FeeQuote:
    """A quote whose total cost is *fee_wei* (gas price 1 wei)."""
    return FeeQuote(
        gas_limit=fee_wei,
        gas_price=1,
        oracle_gas_limit=fee_wei,
        oracle_gas_price=1,
        fingerprint=draft.fingerprint(),
    )


def eth(text: str) -> DecimalAmount:
    return DecimalAmount.parse(text)


@pytest.mark.parametrize(
    "balance, amount, fee, ok",
    [
        ("1.0", "0.999", "0.002", False),
        ("1.0", "0.5", "0.0005", True),
        ("1.0", "0.9995", "0.0005", True),
        ("0.0005", "0.0003", "0.0003", False),
    ],
)
def test_amount_plus_fee_must_fit_balance(balance, amount, fee, ok):
    draft = TransactionDraft(recipient=TO, amount=amount)
    quote = quote_for(draft, Web3.to_wei(fee, "ether"))

    result = validate_draft(draft, quote, eth(balance))

    assert result.ready
    assert result.ok is ok
    if not ok:
        assert result.errors[AMOUNT].startswith("Insufficient balance")


def test_total_cost_sums_amount_and_fee():
    draft = TransactionDraft(recipient=TO, amount="0.1")
    quote = quote_for(draft, 21000 * Web3.to_wei(20, "gwei"))
    assert total_cost(draft, quote) == eth("0.10042")


@pytest.mark.parametrize(
    "recipient, message",
    [
        ("", "Recipient address is required"),
        ("0x1234", "Invalid Ethereum address"),
        ("not-an-address", "Invalid Ethereum address"),
    ],
)
def test_recipient_errors(recipient, message):
    draft = TransactionDraft(recipient=recipient, amount="0.1")
    result = validate_draft(draft, quote_for(draft, 1), eth("1"))
    assert result.errors[RECIPIENT] == message


@pytest.mark.parametrize(
    "amount, prefix",
    [
        ("", "Amount is required"),
        ("abc", "Invalid amount"),
        ("0", "Amount must be greater than zero"),
        ("-1", "Amount must be greater than zero"),
    ],
)
def test_amount_errors(amount, prefix):
    draft = TransactionDraft(recipient=TO, amount=amount)
    result = validate_draft(draft, quote_for(draft, 1), eth("1"))
    assert result.errors[AMOUNT].startswith(prefix)


def test_missing_quote_is_not_ready():
    draft = TransactionDraft(recipient=TO, amount="0.1")
    result = validate_draft(draft, None, eth("1"))
    assert not result.ready
    assert result.errors[FEE] == FEE_NOT_READY


def test_failed_estimation_is_reported():
    draft = TransactionDraft(recipient=TO, amount="0.1")
    result = validate_draft(draft, None, eth("1"), fee_error="Failed to estimate gas fees: boom")
    assert not result.ready
    assert result.errors[FEE] == "Cannot estimate fee: Failed to estimate gas fees: boom"


def test_quote_for_an_older_draft_is_stale():
    draft = TransactionDraft(recipient=TO, amount="0.1")
    quote = quote_for(draft, 1)
    draft.amount = "0.2"

    result = validate_draft(draft, quote, eth("1"))

    assert not result.ready
    assert result.errors[FEE] == FEE_STALE


def test_raise_for_errors():
    draft = TransactionDraft(recipient="", amount="")
    result = validate_draft(draft, None, eth("1"))
    with pytest.raises(ValidationError) as info:
        result.raise_for_errors()
    assert set(info.value.errors) == {RECIPIENT, AMOUNT, FEE}


def test_valid_result_does_not_raise():
    draft = TransactionDraft(recipient=TO, amount="0.1")
    validate_draft(draft, quote_for(draft, 1), eth("1")).raise_for_errors()


class TestTokenDrafts:
    usdc = find_token(1, "USDC")

    def draft(self, amount="10"):
        return TransactionDraft(recipient=TO, amount=amount, token=self.usdc)

    def test_fee_alone_is_charged_in_native_coin(self):
        draft = self.draft()
        quote = quote_for(draft, Web3.to_wei("0.001", "ether"))
        assert total_cost(draft, quote) == eth("0.001")

    def test_amount_checked_against_token_balance(self):
        draft = self.draft("10")
        quote = quote_for(draft, 1)

        ok = validate_draft(draft, quote, eth("1"), DecimalAmount.parse("10", 6))
        short = validate_draft(draft, quote, eth("1"), DecimalAmount.parse("9.99", 6))

        assert ok.ok
        assert short.errors[AMOUNT].startswith("Insufficient USDC balance")

    def test_fee_must_fit_native_balance(self):
        draft = self.draft("1")
        quote = quote_for(draft, Web3.to_wei("0.01", "ether"))

        result = validate_draft(draft, quote, eth("0.001"), DecimalAmount.parse("100", 6))

        assert AMOUNT not in result.errors
        assert result.errors[FEE].startswith("Insufficient balance for network fee")

    def test_unknown_token_balance_blocks(self):
        draft = self.draft("1")
        result = validate_draft(draft, quote_for(draft, 1), eth("1"))
        assert result.errors[AMOUNT] == "USDC balance unavailable"

    def test_token_precision_is_enforced(self):
        draft = self.draft("1.0000001")
        result = validate_draft(draft, quote_for(draft, 1), eth("1"), DecimalAmount.parse("5", 6))
        assert result.errors[AMOUNT].startswith("Invalid amount")
