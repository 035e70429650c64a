"""High-level wallet manager used by the CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from eth_account.signers.local import LocalAccount

from crake_wallet.config import WalletConfig, get_data_dir, load_config
from crake_wallet.storage import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from crake_wallet.units import SmallestUnit, gwei_to_wei
from crake_wallet.wallet.address_book import AddressBook
from crake_wallet.wallet.chains import get_chain, get_chain_by_id, list_chain_names
from crake_wallet.wallet.fees import FeeEstimator
from crake_wallet.wallet.history import HistoryStore
from crake_wallet.wallet.provider import ChainProvider, Web3Provider
from crake_wallet.wallet.reconciler import PendingReconciler, ReconcileSummary
from crake_wallet.wallet.session import SendSession
from crake_wallet.wallet.submitter import Submitter

logger = logging.getLogger("crake_wallet.wallet.manager")

ProviderFactory = Callable[[str], ChainProvider]


class WalletManager:
    """Orchestrates storage, history, address book and chain providers.

    Exactly one :class:`HistoryStore` exists per manager; every send
    session and reconciliation pass receives that same instance.
    """

    def __init__(
        self,
        config: WalletConfig,
        storage: KeyValueStore,
        account: LocalAccount | None = None,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        self.config = config
        self.storage = storage
        self.account = account
        self.history = HistoryStore(
            storage,
            key=config.history.key,
            max_entries=config.history.max_entries,
        )
        self.address_book = AddressBook(storage)
        self._provider_factory = provider_factory or self._web3_provider
        self._providers: dict[str, ChainProvider] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    async def load(
        cls,
        base_path: Path | None = None,
        account: LocalAccount | None = None,
    ) -> WalletManager:
        """Load config from the data directory and open the configured store."""
        data_dir = get_data_dir(base_path)
        config = load_config(data_dir / "config.yaml")

        storage: KeyValueStore
        if config.storage.backend == "memory":
            storage = MemoryKeyValueStore()
        else:
            db_path = Path(config.storage.path) if config.storage.path else data_dir / "wallet.db"
            storage = SQLiteKeyValueStore(db_path)
            await storage.connect()

        return cls(config=config, storage=storage, account=account)

    async def shutdown(self) -> None:
        """Clean shutdown."""
        for provider in self._providers.values():
            close = getattr(provider, "close", None)
            if close is not None:
                await close()
        self._providers.clear()
        close_storage = getattr(self.storage, "close", None)
        if close_storage is not None:
            await close_storage()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def address(self) -> str | None:
        """The sending address: the signing account's, else the configured one."""
        if self.account is not None:
            return self.account.address
        return self.config.address

    def provider(self, chain_name: str | None = None) -> ChainProvider:
        """Return a (cached) provider for *chain_name* (default chain if omitted)."""
        chain_name = chain_name or self.config.default_chain
        if chain_name not in self._providers:
            get_chain(chain_name)  # raises KeyError for unknown chains
            self._providers[chain_name] = self._provider_factory(chain_name)
        return self._providers[chain_name]

    def _web3_provider(self, chain_name: str) -> ChainProvider:
        return Web3Provider.for_chain(chain_name, self.config.rpc_urls, account=self.account)

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_balance(self, chain_name: str | None = None) -> dict:
        """Get native token balance(s).

        If *chain_name* is ``None``, returns balances for all chains. Errors
        on individual chains don't abort the whole operation.
        """
        addr = self.address
        if addr is None:
            return {"error": "No address configured. Set 'address' in config.yaml or provide a signing key."}

        names = [chain_name] if chain_name else list_chain_names()
        results = {}
        for name in names:
            chain = get_chain(name)
            try:
                wei = await self.provider(name).get_balance(addr)
                results[name] = {
                    "balance": str(SmallestUnit(wei).to_decimal()),
                    "symbol": chain.native_symbol,
                    "error": None,
                }
            except Exception as e:
                logger.warning(f"Failed to get balance on {name}: {e}")
                results[name] = {"balance": "0", "symbol": chain.native_symbol, "error": str(e)}
        return results

    # ------------------------------------------------------------------
    # Send flow
    # ------------------------------------------------------------------

    def open_send(self, chain_name: str | None = None, sender: str | None = None) -> SendSession:
        """Start a send flow on *chain_name* from *sender* (default: :attr:`address`)."""
        sender = sender or self.address
        if sender is None:
            raise ValueError("No sending address. Provide a signing key or --from.")
        provider = self.provider(chain_name)
        estimator = FeeEstimator(
            provider,
            default_gas_price=gwei_to_wei(self.config.fees.default_gas_price_gwei),
        )
        return SendSession(
            sender=sender,
            provider=provider,
            estimator=estimator,
            submitter=Submitter(provider, self.history),
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def reconcile(self) -> dict[str, ReconcileSummary]:
        """Run one reconciliation pass for every chain with pending records.

        Records without a chain id are checked against the default chain.
        """
        chain_names: set[str] = set()
        for record in await self.history.pending():
            if record.chain_id is None:
                chain_names.add(self.config.default_chain)
                continue
            chain = get_chain_by_id(record.chain_id)
            if chain is None:
                logger.warning(
                    f"Transaction {record.hash} is on unsupported chain {record.chain_id}"
                )
                continue
            chain_names.add(chain.name)

        results = {}
        for name in sorted(chain_names):
            reconciler = PendingReconciler(self.history, self.provider(name))
            results[name] = await reconciler.reconcile()
        return results
