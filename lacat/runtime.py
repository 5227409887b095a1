"""
Lacat Runtime - wires the components together.

  wallet ─> SessionManager ─┬─> BalancePoller       (own ticker)
                            └─> DepositSynchronizer (own ticker) ─> LacatState
  ledger ─> TransactionWorkflow ─> NotificationSink

Pollers start once a session exists (connect()) and are stopped on
shutdown(). Confirmation tasks spawned by the workflow outlive shutdown.
"""

import logging
import time
from typing import Callable, Optional

from .balance import BalancePoller
from .chain import LacatLedger
from .deposit import LacatState
from .fees import FeeCalculator
from .notifications import NotificationSink
from .session import Session, SessionManager
from .settings import LacatSettings
from .sync import DepositSynchronizer
from .wallet import ApproveFn, Web3Wallet
from .workflow import TransactionWorkflow

logger = logging.getLogger("lacat.runtime")


class LacatRuntime:

    def __init__(self, settings: LacatSettings, wallet=None, ledger=None,
                 clock: Callable[[], float] = time.time,
                 sink: Optional[NotificationSink] = None):
        self.settings = settings
        self.clock = clock
        self.ledger = ledger
        self.sessions = SessionManager(wallet)
        self.sink = sink or NotificationSink()
        self.fees = FeeCalculator.from_settings(settings)
        self.workflow = TransactionWorkflow(self.sessions, ledger, self.sink)
        self.balance_poller: Optional[BalancePoller] = None
        self.synchronizer: Optional[DepositSynchronizer] = None

    @classmethod
    def from_settings(cls, settings: LacatSettings, approve: Optional[ApproveFn] = None) -> "LacatRuntime":
        wallet = Web3Wallet.from_settings(settings, approve=approve)
        ledger = LacatLedger.from_settings(wallet.w3, settings)
        return cls(settings, wallet=wallet, ledger=ledger)

    @property
    def session(self) -> Optional[Session]:
        return self.sessions.session

    @property
    def balance(self) -> int:
        return self.balance_poller.balance if self.balance_poller else 0

    @property
    def state(self) -> LacatState:
        return self.synchronizer.state if self.synchronizer else LacatState()

    async def connect(self) -> Session:
        session = await self.sessions.connect()
        self._start_pollers(session)
        return session

    def _start_pollers(self, session: Session) -> None:
        if self.balance_poller is None:
            self.balance_poller = BalancePoller(
                session, interval=self.settings.balance_poll_interval, clock=self.clock
            )
            self.balance_poller.start()

        if self.synchronizer is None and self.ledger is not None:
            self.synchronizer = DepositSynchronizer(
                session, self.ledger, interval=self.settings.deposit_poll_interval, clock=self.clock
            )
            self.synchronizer.start()

    async def shutdown(self) -> None:
        if self.balance_poller is not None:
            await self.balance_poller.stop()
        if self.synchronizer is not None:
            await self.synchronizer.stop()
        if self.workflow.in_flight:
            logger.info(f"Shutdown with {self.workflow.in_flight} confirmation(s) still pending")

    def get_status(self) -> dict:
        return {
            "connected": self.session is not None,
            "address": self.session.address if self.session else None,
            "lacat_address": self.settings.lacat_address,
            "balance_poller": self.balance_poller.get_status() if self.balance_poller else None,
            "synchronizer": self.synchronizer.get_status() if self.synchronizer else None,
            "pending_confirmations": self.workflow.in_flight,
        }
