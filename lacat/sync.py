"""
Deposit Synchronizer - Full-State Reconstruction

Every tick rebuilds the account's LacatState from scratch:

  N = getNumDeposits()
  for i in 0..N-1 (sequential, one request in flight):
      getDepositStatus(i) -> Deposit
  total_locked_up = sum(amount)

The new state is published with a single reference swap, so readers only
ever see a complete snapshot. A failed pass keeps the previous state.
After stop(), a pass that was already running finishes but its result is
thrown away, even if the synchronizer has been started again meanwhile.
"""

import logging
import time
from typing import Callable, Optional

from .deposit import Deposit, LacatState
from .session import Session
from .ticker import Ticker

logger = logging.getLogger("lacat.sync")

StateListener = Callable[[LacatState], None]


class DepositSynchronizer:

    def __init__(self, session: Session, ledger, interval: float = 10.0,
                 clock: Callable[[], float] = time.time):
        self.session = session
        self.ledger = ledger
        self._clock = clock
        self._ticker = Ticker("deposits", interval, self.tick)
        self._state = LacatState()
        self._has_synced = False
        self._stopped = False
        self._generation = 0
        self._listeners: list[StateListener] = []
        self.failures: int = 0

    @property
    def state(self) -> LacatState:
        return self._state

    @property
    def has_synced(self) -> bool:
        return self._has_synced

    def on_state(self, listener: StateListener) -> None:
        """Register a callback invoked with every published state."""
        self._listeners.append(listener)

    async def fetch_state(self) -> LacatState:
        """One full pass against the ledger. Does not publish."""
        account = self.session.address
        count = await self.ledger.get_num_deposits(account)
        deposits = []
        for index in range(count):
            raw = await self.ledger.get_deposit_status(account, index)
            deposits.append(Deposit.from_raw(index, raw))
        return LacatState.from_deposits(deposits, synced_at=self._clock())

    async def tick(self) -> None:
        generation = self._generation
        try:
            state = await self.fetch_state()
        except Exception as e:
            self.failures += 1
            logger.warning(f"Deposit sync failed (keeping previous state): {e}")
            return

        if self._stopped or generation != self._generation:
            logger.debug("Synchronizer stopped or restarted, discarding late result")
            return
        self._publish(state)

    def _publish(self, state: LacatState) -> None:
        previous = self._state
        if self._has_synced:
            self._check_monotonic(previous, state)
        self._state = state
        self._has_synced = True
        logger.debug(
            f"Deposits synced: {len(state.deposits)} slots | "
            f"locked={state.total_locked_up} wei"
        )
        for listener in self._listeners:
            try:
                listener(state)
            except Exception as e:
                logger.warning(f"State listener failed: {e}")

    @staticmethod
    def _check_monotonic(previous: LacatState, current: LacatState) -> None:
        # Amounts only ever go down. An increase means the slot moved.
        for deposit in current.deposits:
            before: Optional[Deposit] = previous.get(deposit.id)
            if before is not None and deposit.amount > before.amount:
                logger.warning(
                    f"Deposit {deposit.id} amount increased "
                    f"({before.amount} -> {deposit.amount}); ledger slots may have been reordered"
                )

    def start(self) -> None:
        if self._ticker.running:
            return
        self._generation += 1
        self._stopped = False
        self._ticker.start()

    async def stop(self) -> None:
        self._generation += 1
        self._stopped = True
        await self._ticker.stop()

    def get_status(self) -> dict:
        return {
            **self._ticker.get_status(),
            "deposits": len(self._state.deposits),
            "synced_at": self._state.synced_at if self._has_synced else None,
            "failures": self.failures,
        }
