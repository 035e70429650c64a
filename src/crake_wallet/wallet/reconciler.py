"""Advance pending history records to a terminal state."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from crake_wallet.storage.models import TransactionRecord, TxStatus
from crake_wallet.wallet.history import HistoryStore
from crake_wallet.wallet.provider import ChainProvider

logger = logging.getLogger("crake_wallet.wallet.reconciler")


@dataclass
class ReconcileSummary:
    checked: int = 0
    confirmed: int = 0
    failed: int = 0
    still_pending: int = 0
    errors: int = 0


class PendingReconciler:
    """On-demand sweep of pending records against one chain.

    Invoke :meth:`reconcile` whenever fresh statuses are wanted (opening
    the history view, regaining focus). Passes may overlap: the only side
    effect is :meth:`HistoryStore.update_status`, which is idempotent and
    never moves a settled record. Records tagged with a different chain id
    are left for a reconciler bound to that chain.
    """

    def __init__(self, history: HistoryStore, provider: ChainProvider) -> None:
        self.history = history
        self.provider = provider

    async def reconcile(self) -> ReconcileSummary:
        summary = ReconcileSummary()
        for record in await self.history.pending():
            if record.chain_id is not None and record.chain_id != self.provider.chain_id:
                continue
            summary.checked += 1
            try:
                status = await self._reconcile_one(record)
            except Exception as e:
                logger.warning(f"Failed to check transaction {record.hash}: {e}")
                summary.errors += 1
                continue

            if status is TxStatus.CONFIRMED:
                summary.confirmed += 1
            elif status is TxStatus.FAILED:
                summary.failed += 1
            else:
                summary.still_pending += 1

        if summary.checked:
            logger.info(
                f"Reconciled {summary.checked} pending transaction(s): "
                f"{summary.confirmed} confirmed, {summary.failed} failed, "
                f"{summary.still_pending} pending, {summary.errors} lookup error(s)"
            )
        return summary

    async def _reconcile_one(self, record: TransactionRecord) -> TxStatus:
        receipt = await self.provider.get_transaction_receipt(record.hash)
        if receipt is None:
            return TxStatus.PENDING

        status = TxStatus.CONFIRMED if receipt.succeeded else TxStatus.FAILED
        gas_price = record.gas_price
        if gas_price is None:
            try:
                tx = await self.provider.get_transaction(record.hash)
            except Exception as e:
                logger.warning(f"Failed to fetch gas price for {record.hash}: {e}")
                tx = None
            if tx is not None and tx.gas_price is not None:
                gas_price = str(tx.gas_price)

        await self.history.update_status(
            record.hash,
            status,
            block_number=receipt.block_number,
            gas_used=str(receipt.gas_used),
            gas_price=gas_price,
        )
        return status
