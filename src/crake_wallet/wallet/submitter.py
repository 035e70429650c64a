"""Dispatch confirmed transactions and record them as pending."""

from __future__ import annotations

import logging

from crake_wallet.errors import SubmissionError
from crake_wallet.storage.models import TransactionRecord, TxDirection, TxStatus
from crake_wallet.wallet.gate import ApprovedTransaction
from crake_wallet.wallet.history import HistoryStore
from crake_wallet.wallet.provider import ChainProvider

logger = logging.getLogger("crake_wallet.wallet.submitter")


class Submitter:
    """Hands gate-approved transactions to the provider's signer."""

    def __init__(self, provider: ChainProvider, history: HistoryStore) -> None:
        self.provider = provider
        self.history = history

    async def submit(self, approved: ApprovedTransaction, sender: str) -> TransactionRecord:
        """Broadcast *approved* from *sender* and return its pending record.

        The approval ticket is consumed before the provider is called, so a
        second submit with the same ticket raises ``GateStateError`` instead
        of broadcasting twice. Whatever the outcome, the issuing gate is
        returned to ``closed``.

        Raises
        ------
        SubmissionError
            If the signer or provider rejects the transaction. No history
            record is created in that case.
        """
        if not isinstance(approved, ApprovedTransaction):
            raise TypeError("submit() only accepts an ApprovedTransaction from ConfirmationGate.confirm()")
        approval = approved.consume()

        try:
            tx_hash = await self.provider.send_transaction(approval.to_tx(sender))
        except Exception as exc:
            logger.warning(f"Transaction to {approval.recipient} rejected: {exc}")
            raise SubmissionError(f"Transaction failed: {exc}") from exc
        finally:
            approved.release()

        record = TransactionRecord(
            hash=tx_hash,
            from_address=sender,
            to_address=approval.recipient,
            amount=str(approval.amount),
            status=TxStatus.PENDING,
            gas_price=str(approval.gas_price),
            direction=TxDirection.SENT,
            token=approval.token,
            chain_id=self.provider.chain_id,
        )
        await self.history.insert(record)
        logger.info(f"Transaction {tx_hash} submitted: {record.amount} to {record.to_address}")
        return record
