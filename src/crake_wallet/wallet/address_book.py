"""Saved recipients.

The send flow only reads from the address book (name -> address prefill);
adding, selecting and removing entries happen at the presentation layer.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from web3 import Web3

from crake_wallet.errors import ValidationError
from crake_wallet.storage.base import KeyValueStore
from crake_wallet.storage.models import AddressBookEntry, now_ms

logger = logging.getLogger("crake_wallet.wallet.address_book")

ADDRESS_BOOK_KEY = "crakewallet_address_book"


class AddressBook:
    def __init__(self, storage: KeyValueStore, key: str = ADDRESS_BOOK_KEY) -> None:
        self._storage = storage
        self.key = key
        self._lock = asyncio.Lock()

    async def list_entries(self) -> list[AddressBookEntry]:
        """Entries ordered by most recently used, then most recently added."""
        entries = await self._load_or_empty()
        return sorted(
            entries,
            key=lambda e: (e.last_used or 0, e.created_at),
            reverse=True,
        )

    async def add(self, name: str, address: str, note: Optional[str] = None) -> AddressBookEntry:
        """Save a new entry.

        Raises ``ValidationError`` for a missing name, an invalid address,
        or an address that is already saved (compared case-insensitively).
        """
        errors: dict[str, str] = {}
        name = name.strip()
        address = address.strip()
        if not name:
            errors["name"] = "Name is required"
        if not address:
            errors["address"] = "Address is required"
        elif not Web3.is_address(address):
            errors["address"] = "Invalid Ethereum address"

        async with self._lock:
            entries = await self._load_or_empty()
            if "address" not in errors and self._find(entries, address) is not None:
                errors["address"] = "Address already exists in address book"
            if errors:
                raise ValidationError(errors)

            entry = AddressBookEntry(name=name, address=address, note=(note or "").strip() or None)
            entries.insert(0, entry)
            await self._save(entries)
        logger.info(f"Saved address {address} as '{name}'")
        return entry

    async def select(self, address: str) -> Optional[AddressBookEntry]:
        """Mark the entry for *address* as just used and return it."""
        async with self._lock:
            entries = await self._load_or_empty()
            entry = self._find(entries, address)
            if entry is None:
                return None
            entry.last_used = max(now_ms(), (entry.last_used or 0) + 1)
            await self._save(entries)
        return entry

    async def remove(self, entry_id: str) -> bool:
        async with self._lock:
            entries = await self._load_or_empty()
            remaining = [e for e in entries if e.id != entry_id]
            if len(remaining) == len(entries):
                return False
            await self._save(remaining)
        return True

    async def lookup(self, name_or_address: str) -> Optional[str]:
        """Resolve a saved name (case-insensitive) or saved address to an address."""
        needle = name_or_address.strip().lower()
        for entry in await self.list_entries():
            if entry.name.lower() == needle or entry.address.lower() == needle:
                return entry.address
        return None

    @staticmethod
    def _find(entries: list[AddressBookEntry], address: str) -> Optional[AddressBookEntry]:
        needle = address.strip().lower()
        for entry in entries:
            if entry.address.lower() == needle:
                return entry
        return None

    async def _load_or_empty(self) -> list[AddressBookEntry]:
        try:
            raw = await self._storage.get(self.key)
            if not raw:
                return []
            return [AddressBookEntry.model_validate(item) for item in json.loads(raw)]
        except Exception as e:
            logger.warning(f"Failed to load address book: {e}")
            return []

    async def _save(self, entries: list[AddressBookEntry]) -> None:
        await self._storage.set(self.key, json.dumps([e.to_storage() for e in entries]))
