"""Exception hierarchy for the transaction lifecycle.

Validation and estimation problems are resolved locally inside the send
flow. Submission errors propagate to the caller of the flow. Reconciliation
and persistence problems are logged and never raised to the user.
"""

from __future__ import annotations


class WalletError(Exception):
    """Base class for every error raised by crake_wallet."""


class InvalidAmountError(WalletError, ValueError):
    """A decimal or integer amount could not be parsed."""


class InvalidAddressError(WalletError, ValueError):
    """A string is not a syntactically valid EVM address."""


class ValidationError(WalletError):
    """A draft failed validation.

    ``errors`` maps a field name (``recipient``, ``amount``, ``fee``) to a
    human-readable reason.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        summary = "; ".join(f"{field}: {reason}" for field, reason in self.errors.items())
        super().__init__(summary or "Invalid transaction")


class EstimationError(WalletError):
    """Gas simulation or fee lookup failed. Retryable."""


class StaleQuoteError(WalletError):
    """A fee quote no longer matches the draft it is being applied to."""


class GateStateError(WalletError):
    """An illegal confirmation-gate transition was requested."""


class SubmissionError(WalletError):
    """The signer or provider rejected a confirmed transaction.

    No history record exists for a failed submission.
    """
