"""
Transaction Workflow - Submit -> Confirm -> Notify

Same pipeline for deposit, full withdrawal and monthly withdrawal:

  1. no session or no ledger      -> no-op (returns None)
  2. convert human units          -> wei, unix seconds, basis points [0, 10000]
  3. submit the contract call
  4. signer declined              -> "cancelled" notification, RejectionError re-raised
     ledger refused               -> SubmissionError re-raised, no notification
  5. submitted                    -> "submitted" notification
  6. background task awaits one confirmation -> "confirmed-*" notification

The caller is never blocked on step 6 and the local mirror is never
patched: the effect shows up on the next synchronizer tick.
Confirmation tasks are not cancelled on shutdown.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from web3 import Web3

from .errors import ConfirmationTimeout, RejectionError, SubmissionError
from .notifications import Notification, NotificationKind, NotificationSink, Severity
from .session import SessionManager
from .settings import MAX_BASIS_POINTS

logger = logging.getLogger("lacat.workflow")


class OperationKind(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    MONTHLY_WITHDRAWAL = "monthly-withdrawal"


_LABELS = {
    OperationKind.DEPOSIT: "Deposit",
    OperationKind.WITHDRAWAL: "Withdrawal",
    OperationKind.MONTHLY_WITHDRAWAL: "Monthly withdrawal",
}

_CONFIRMED_KIND = {
    OperationKind.DEPOSIT: NotificationKind.CONFIRMED_DEPOSIT,
    OperationKind.WITHDRAWAL: NotificationKind.CONFIRMED_WITHDRAWAL,
    OperationKind.MONTHLY_WITHDRAWAL: NotificationKind.CONFIRMED_MONTHLY_WITHDRAWAL,
}


# ============================================================
# UNIT CONVERSION
# ============================================================

def eth_to_wei(amount_in_eth: Union[int, float, str, Decimal]) -> int:
    try:
        amount = Decimal(str(amount_in_eth))
    except InvalidOperation as e:
        raise ValueError(f"Invalid ETH amount: {amount_in_eth!r}") from e
    if not amount.is_finite():
        raise ValueError(f"ETH amount must be finite, got {amount_in_eth!r}")
    if amount < 0:
        raise ValueError(f"ETH amount must be non-negative, got {amount_in_eth}")
    return int(Web3.to_wei(amount, "ether"))


def to_unix_seconds(value: Union[int, float, datetime]) -> int:
    if isinstance(value, datetime):
        seconds = int(value.timestamp())
    else:
        seconds = int(value)
    if seconds < 0:
        raise ValueError(f"Timestamp must be non-negative, got {value}")
    return seconds


def validate_basis_points(basis_points: int) -> int:
    bp = int(basis_points)
    if bp != basis_points or not (0 <= bp <= MAX_BASIS_POINTS):
        raise ValueError(f"Basis points must be an integer in [0, {MAX_BASIS_POINTS}], got {basis_points}")
    return bp


def validate_deposit_id(deposit_id: int) -> int:
    if int(deposit_id) != deposit_id or deposit_id < 0:
        raise ValueError(f"Deposit id must be a non-negative integer, got {deposit_id}")
    return int(deposit_id)


@dataclass
class PendingTransaction:
    """A submitted transaction. `confirmation` resolves to the receipt, or None if it never confirmed."""
    kind: OperationKind
    tx_hash: str
    deposit_id: Optional[int]
    confirmation: asyncio.Task


class TransactionWorkflow:
    """
    Usage:
        workflow = TransactionWorkflow(session_manager, ledger, sink)
        pending = await workflow.withdraw_full(0)
        if pending:
            receipt = await pending.confirmation   # optional
    """

    def __init__(self, sessions: SessionManager, ledger=None,
                 sink: Optional[NotificationSink] = None):
        self.sessions = sessions
        self.ledger = ledger
        self.sink = sink or NotificationSink()
        self._pending: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def _ready(self):
        session = self.sessions.session
        if session is None or self.ledger is None:
            logger.debug("Workflow called without session or ledger, ignoring")
            return None
        return session

    # ============================================================
    # ENTRY POINTS
    # ============================================================

    async def make_deposit(self, amount_in_eth, unlock_timestamp,
                           monthly_withdraw_basis_points: int = 0) -> Optional[PendingTransaction]:
        session = self._ready()
        if session is None:
            return None

        value = eth_to_wei(amount_in_eth)
        unlock = to_unix_seconds(unlock_timestamp)
        bp = validate_basis_points(monthly_withdraw_basis_points)

        return await self._submit(
            OperationKind.DEPOSIT,
            lambda: self.ledger.deposit(session, unlock, bp, value),
        )

    async def withdraw_full(self, deposit_id: int) -> Optional[PendingTransaction]:
        session = self._ready()
        if session is None:
            return None

        deposit_id = validate_deposit_id(deposit_id)
        return await self._submit(
            OperationKind.WITHDRAWAL,
            lambda: self.ledger.withdraw(session, deposit_id),
            deposit_id=deposit_id,
        )

    async def withdraw_monthly_allowance(self, deposit_id: int) -> Optional[PendingTransaction]:
        session = self._ready()
        if session is None:
            return None

        deposit_id = validate_deposit_id(deposit_id)
        return await self._submit(
            OperationKind.MONTHLY_WITHDRAWAL,
            lambda: self.ledger.withdraw_monthly_allowance(session, deposit_id),
            deposit_id=deposit_id,
        )

    # ============================================================
    # PIPELINE
    # ============================================================

    async def _submit(self, kind: OperationKind, submit: Callable[[], Awaitable[str]],
                      deposit_id: Optional[int] = None) -> PendingTransaction:
        label = _LABELS[kind]
        try:
            tx_hash = await submit()
        except RejectionError:
            logger.info(f"{label} declined by signer")
            self.sink.emit(Notification(
                kind=NotificationKind.CANCELLED,
                message=f"{label} cancelled",
                severity=Severity.WARNING,
                deposit_id=deposit_id,
            ))
            raise
        except SubmissionError as e:
            logger.warning(f"{label} submission failed: {e}")
            raise

        self.sink.emit(Notification(
            kind=NotificationKind.SUBMITTED,
            message=f"{label} submitted, waiting for confirmation",
            severity=Severity.INFO,
            tx_hash=tx_hash,
            deposit_id=deposit_id,
        ))

        task = asyncio.create_task(self._confirm(kind, tx_hash, deposit_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return PendingTransaction(kind=kind, tx_hash=tx_hash, deposit_id=deposit_id, confirmation=task)

    async def _confirm(self, kind: OperationKind, tx_hash: str,
                       deposit_id: Optional[int]) -> Optional[dict]:
        label = _LABELS[kind]
        try:
            receipt = await self.ledger.wait_for_confirmation(tx_hash)
        except ConfirmationTimeout as e:
            logger.warning(f"{label} {tx_hash[:12]}... unconfirmed: {e}")
            return None
        except SubmissionError as e:
            logger.warning(f"{label} {tx_hash[:12]}... failed on chain: {e}")
            return None
        except Exception as e:
            logger.error(f"{label} {tx_hash[:12]}... confirmation error: {type(e).__name__}: {e}")
            return None

        self.sink.emit(Notification(
            kind=_CONFIRMED_KIND[kind],
            message=f"{label} confirmed",
            severity=Severity.SUCCESS,
            tx_hash=tx_hash,
            deposit_id=deposit_id,
        ))
        return receipt
