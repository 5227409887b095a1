"""
Error types.

Where each one is handled:
- WalletConnectionError: fatal to session establishment, no retry
- RejectionError: user declined to sign -> "cancelled" notification, re-raised
- TransientFetchError: RPC hiccup while polling -> swallowed, retried next tick
- SubmissionError: contract/node refused the transaction -> re-raised to caller
- ConfirmationTimeout: receipt never observed -> logged by the confirmation task
"""


class LacatError(Exception):
    """Base class for all lacat errors."""
    pass


class WalletConnectionError(LacatError, ConnectionError):
    """No wallet surface available, node unreachable, or access declined."""
    pass


class RejectionError(LacatError):
    """The signer declined the transaction."""
    pass


class TransientFetchError(LacatError):
    """A read against the wallet or ledger failed; safe to retry."""
    pass


class SubmissionError(LacatError):
    """The ledger rejected a mutating call (insufficient funds, revert, bad params)."""
    pass


class ConfirmationTimeout(LacatError):
    """No receipt was observed for a submitted transaction in time."""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"transaction {tx_hash} not confirmed after {timeout:.0f}s")
        self.tx_hash = tx_hash
        self.timeout = timeout
