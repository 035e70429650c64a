"""End-to-end tests for the send flow."""

from __future__ import annotations

import asyncio

import pytest
from web3 import Web3

from crake_wallet.errors import EstimationError, GateStateError, SubmissionError, ValidationError
from crake_wallet.storage.models import TxStatus
from crake_wallet.units import DecimalAmount
from crake_wallet.wallet.address_book import AddressBook
from crake_wallet.wallet.gate import GateState
from crake_wallet.wallet.tokens import TRANSFER_SELECTOR, find_token
from crake_wallet.wallet.validation import FEE

from .conftest import RECIPIENT, SENDER


async def _until_estimating(provider, calls: int = 1) -> None:
    for _ in range(20):
        if provider.estimate_calls >= calls:
            return
        await asyncio.sleep(0)
    raise AssertionError("estimation never started")


async def test_happy_path(session, provider, history):
    session.edit(recipient=RECIPIENT, amount="0.1")

    approval = await session.review()

    assert approval.estimated_cost == DecimalAmount.parse("0.00042")
    assert approval.total_cost == DecimalAmount.parse("0.10042")
    assert session.gate.state is GateState.AWAITING_CONFIRMATION

    record = await session.confirm()

    assert record.status is TxStatus.PENDING
    assert record.to_address == RECIPIENT
    assert record.amount == "0.1"
    assert provider.sent[0]["value"] == Web3.to_wei("0.1", "ether")
    assert [r.hash for r in await history.list_all()] == [record.hash]
    assert session.closed
    assert session.gate.state is GateState.CLOSED


async def test_superseded_estimate_is_discarded(session, provider):
    session.edit(recipient=RECIPIENT, amount="0.1")
    hold = asyncio.Event()
    provider.hold = hold
    first = asyncio.create_task(session.refresh_quote())
    await _until_estimating(provider)

    session.edit(amount="0.2")
    provider.hold = None
    provider.gas_limit = 30000
    second = await session.refresh_quote()

    hold.set()
    assert await first is None
    assert second is not None
    assert session.quote is second
    assert session.quote.gas_limit == 30000
    assert session.quote.matches(session.draft)


async def test_estimate_finishing_after_close_is_dropped(session, provider):
    session.edit(recipient=RECIPIENT, amount="0.1")
    hold = asyncio.Event()
    provider.hold = hold
    task = asyncio.create_task(session.refresh_quote())
    await _until_estimating(provider)

    session.cancel()
    hold.set()

    assert await task is None
    assert session.quote is None
    assert session.closed


async def test_edit_invalidates_quote(session):
    session.edit(recipient=RECIPIENT, amount="0.1")
    await session.refresh_quote()
    generation = session.generation

    session.edit(amount="0.1")
    assert session.quote is not None
    assert session.generation == generation

    session.edit(amount="0.15")
    assert session.quote is None
    assert session.generation == generation + 1


async def test_unestimable_draft_skips_provider(session, provider):
    session.edit(recipient="0x1234", amount="0.1")
    assert await session.refresh_quote() is None

    session.edit(recipient=RECIPIENT, amount="abc")
    assert await session.refresh_quote() is None
    assert provider.estimate_calls == 0


async def test_negative_amount_is_an_amount_error(session, provider):
    session.edit(recipient=RECIPIENT, amount="-5")

    assert await session.refresh_quote() is None
    with pytest.raises(ValidationError) as info:
        await session.review()

    assert info.value.errors["amount"] == "Amount must be greater than zero"
    assert provider.estimate_calls == 0
    assert session.gate.state is GateState.CLOSED


async def test_negative_token_amount_is_an_amount_error(session, provider):
    usdc = find_token(1, "USDC")
    provider.token_balances[(usdc.address.lower(), SENDER.lower())] = 20_000_000
    session.edit(recipient=RECIPIENT, amount="-5", token=usdc)

    with pytest.raises(ValidationError) as info:
        await session.review()

    assert info.value.errors["amount"] == "Amount must be greater than zero"
    assert provider.estimate_calls == 0
    assert provider.sent == []


async def test_estimation_failure_surfaces(session, provider):
    provider.estimate_error = RuntimeError("execution reverted")
    session.edit(recipient=RECIPIENT, amount="0.1")

    assert await session.refresh_quote() is None
    result = await session.validate()
    assert not result.ready
    assert "execution reverted" in result.errors[FEE]

    with pytest.raises(EstimationError):
        await session.review()
    assert session.gate.state is GateState.CLOSED


async def test_insufficient_balance_blocks_confirmation(session, provider):
    provider.default_balance = Web3.to_wei("0.0005", "ether")
    provider.gas_limit = 30000
    provider.gas_price = Web3.to_wei(10, "gwei")
    session.edit(recipient=RECIPIENT, amount="0.0003")

    with pytest.raises(ValidationError) as info:
        await session.review()

    assert info.value.errors["amount"].startswith("Insufficient balance")
    assert session.gate.state is GateState.CLOSED
    assert provider.sent == []


async def test_no_edits_while_awaiting_confirmation(session):
    session.edit(recipient=RECIPIENT, amount="0.1")
    await session.review()

    with pytest.raises(GateStateError):
        session.edit(amount="0.5")
    with pytest.raises(GateStateError):
        session.set_custom_gas(gas_limit="50000")

    session.back()
    session.edit(amount="0.5")
    approval = await session.review()
    assert approval.amount == DecimalAmount.parse("0.5")


async def test_custom_gas_requotes_without_simulating(session, provider):
    session.edit(recipient=RECIPIENT, amount="0.1")
    await session.refresh_quote()

    session.set_custom_gas(gas_limit="50000", gas_price_gwei="30")

    assert session.quote.gas_limit == 50000
    assert session.quote.gas_price == Web3.to_wei(30, "gwei")
    assert session.quote.estimated_cost_native == DecimalAmount.parse("0.0015")

    await session.review()
    await session.confirm()
    assert provider.estimate_calls == 1
    assert provider.sent[0]["gas"] == 50000
    assert provider.sent[0]["gasPrice"] == Web3.to_wei(30, "gwei")


async def test_clearing_custom_gas_restores_estimate(session):
    session.edit(recipient=RECIPIENT, amount="0.1")
    await session.refresh_quote()
    session.set_custom_gas(gas_limit="50000")
    session.set_custom_gas()
    assert session.quote.gas_limit == 21000
    assert not session.quote.overridden


async def test_submission_failure_keeps_draft(session, provider, history):
    provider.send_error = ValueError("nonce too low")
    session.edit(recipient=RECIPIENT, amount="0.1")
    await session.review()

    with pytest.raises(SubmissionError):
        await session.confirm()

    assert not session.closed
    assert session.draft.amount == "0.1"
    assert session.gate.state is GateState.CLOSED
    assert await history.list_all() == []

    provider.send_error = None
    await session.review()
    record = await session.confirm()
    assert (await history.get(record.hash)) is not None


async def test_closed_session_rejects_edits(session):
    session.cancel()
    with pytest.raises(GateStateError):
        session.edit(amount="1")


async def test_token_transfer(session, provider):
    usdc = find_token(1, "USDC")
    provider.token_balances[(usdc.address.lower(), SENDER.lower())] = 20_000_000
    session.edit(recipient=RECIPIENT, amount="12.5", token=usdc)

    approval = await session.review()
    record = await session.confirm()

    assert approval.total_cost == approval.estimated_cost
    sent = provider.sent[0]
    assert sent["to"] == usdc.address
    assert sent["value"] == 0
    assert sent["data"].startswith(TRANSFER_SELECTOR)
    assert record.token == usdc
    assert record.amount == "12.5"
    assert record.to_address == RECIPIENT


async def test_token_transfer_beyond_token_balance(session, provider):
    usdc = find_token(1, "USDC")
    provider.token_balances[(usdc.address.lower(), SENDER.lower())] = 1_000_000
    session.edit(recipient=RECIPIENT, amount="12.5", token=usdc)

    with pytest.raises(ValidationError):
        await session.review()


async def test_prefill_from_address_book(session, store):
    book = AddressBook(store)
    await book.add("Alice", RECIPIENT)

    assert await session.prefill_recipient(book, "alice") == RECIPIENT
    assert session.draft.recipient == RECIPIENT
    entries = await book.list_entries()
    assert entries[0].last_used is not None

    assert await session.prefill_recipient(book, "bob") is None
