"""Transaction lifecycle for Ethereum-compatible chains.

A send flow (:class:`~crake_wallet.wallet.session.SendSession`) estimates
fees, validates affordability, holds the draft behind an explicit
confirmation gate and submits it. Submitted transactions are recorded in a
:class:`~crake_wallet.wallet.history.HistoryStore` and advanced to
``confirmed`` or ``failed`` by the
:class:`~crake_wallet.wallet.reconciler.PendingReconciler`.
"""
