"""Durable, deduplicated, capped transaction history.

The whole log is a JSON array stored under a single key, newest first.
History is best-effort: a corrupt or unavailable store degrades to an empty
history and never breaks sending.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from crake_wallet.storage.base import KeyValueStore
from crake_wallet.storage.models import TransactionRecord, TxStatus

logger = logging.getLogger("crake_wallet.wallet.history")

HISTORY_KEY = "crakewallet_transaction_history"
MAX_HISTORY = 100


class HistoryStore:
    """Owner-agnostic log of :class:`TransactionRecord` objects.

    One instance is created per process and shared by the submitter and the
    reconciler. Mutations are serialized with an ``asyncio.Lock`` since the
    backing store is itself asynchronous and a read-modify-write can
    otherwise interleave at its await points.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        key: str = HISTORY_KEY,
        max_entries: int = MAX_HISTORY,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._storage = storage
        self.key = key
        self.max_entries = max_entries
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_all(self) -> list[TransactionRecord]:
        """Every record, newest first."""
        try:
            return await self._load()
        except Exception as e:
            logger.warning(f"Failed to read transaction history: {e}")
            return []

    async def query_by_address(self, address: str) -> list[TransactionRecord]:
        """Records sent from or to *address* (case-insensitive), newest first."""
        return [r for r in await self.list_all() if r.involves(address)]

    async def pending(self) -> list[TransactionRecord]:
        return [r for r in await self.list_all() if r.status is TxStatus.PENDING]

    async def get(self, tx_hash: str) -> Optional[TransactionRecord]:
        needle = tx_hash.lower()
        for record in await self.list_all():
            if record.hash.lower() == needle:
                return record
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, record: TransactionRecord) -> bool:
        """Prepend *record* unless its hash is already present.

        Returns ``True`` if the record was added. The log is truncated to
        ``max_entries``, evicting the oldest records.
        """
        async with self._lock:
            try:
                records = await self._load()
                needle = record.hash.lower()
                if any(r.hash.lower() == needle for r in records):
                    logger.debug(f"Transaction {record.hash} already in history")
                    return False
                records.insert(0, record)
                del records[self.max_entries:]
                await self._save(records)
            except Exception as e:
                logger.warning(f"Failed to save transaction {record.hash}: {e}")
                return False
        logger.info(f"Recorded transaction {record.hash} ({record.status.value})")
        return True

    async def update_status(
        self,
        tx_hash: str,
        status: TxStatus,
        *,
        block_number: Optional[int] = None,
        gas_used: Optional[str] = None,
        gas_price: Optional[str] = None,
    ) -> bool:
        """Overwrite the status (and chain-observed fields) of one record.

        No-op if the hash is unknown, or if the record is already in a
        different terminal state. Returns ``True`` if the record was changed.
        """
        status = TxStatus(status)
        async with self._lock:
            try:
                records = await self._load()
                needle = tx_hash.lower()
                for index, record in enumerate(records):
                    if record.hash.lower() == needle:
                        break
                else:
                    return False

                if record.status.terminal and status is not record.status:
                    logger.warning(
                        f"Ignoring status change {record.status.value} -> {status.value} "
                        f"for settled transaction {record.hash}"
                    )
                    return False

                update: dict = {"status": status}
                if block_number is not None:
                    update["block_number"] = block_number
                if gas_used is not None:
                    update["gas_used"] = gas_used
                if gas_price is not None:
                    update["gas_price"] = gas_price
                updated = record.model_copy(update=update)
                if updated == record:
                    return False
                records[index] = updated
                await self._save(records)
            except Exception as e:
                logger.warning(f"Failed to update transaction {tx_hash}: {e}")
                return False
        logger.info(f"Transaction {tx_hash} is now {status.value}")
        return True

    async def clear(self) -> None:
        """Remove the whole log."""
        async with self._lock:
            try:
                await self._storage.remove(self.key)
            except Exception as e:
                logger.warning(f"Failed to clear transaction history: {e}")
                return
        logger.info("Transaction history cleared")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    async def _load(self) -> list[TransactionRecord]:
        raw = await self._storage.get(self.key)
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON array under '{self.key}'")
        records: list[TransactionRecord] = []
        for item in data:
            try:
                records.append(TransactionRecord.model_validate(item))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed history entry: {e.error_count()} error(s)")
        return records

    async def _save(self, records: list[TransactionRecord]) -> None:
        await self._storage.set(self.key, json.dumps([r.to_storage() for r in records]))
