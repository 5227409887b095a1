"""
Balance Poller - spendable balance of the session account.

Fetches immediately, then every `interval` seconds. A failed fetch keeps the
previous value; the next tick retries. No backoff.
"""

import logging
import time
from typing import Callable, Optional

from .session import Session
from .ticker import Ticker

logger = logging.getLogger("lacat.balance")


class BalancePoller:

    def __init__(self, session: Session, interval: float = 10.0,
                 clock: Callable[[], float] = time.time):
        self.session = session
        self._clock = clock
        self._ticker = Ticker("balance", interval, self.tick)
        self._balance: int = 0
        self._last_updated: Optional[float] = None
        self._stopped = False
        self._generation = 0
        self.failures: int = 0

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def last_updated(self) -> Optional[float]:
        return self._last_updated

    async def tick(self) -> None:
        generation = self._generation
        try:
            balance = await self.session.wallet.get_spendable_balance()
        except Exception as e:
            self.failures += 1
            logger.warning(f"Balance fetch failed (keeping previous value): {e}")
            return

        if self._stopped or generation != self._generation:
            logger.debug("Balance poller stopped or restarted, discarding late result")
            return
        self._balance = int(balance)
        self._last_updated = self._clock()

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
            "balance_wei": str(self._balance),
            "last_updated": self._last_updated,
            "failures": self.failures,
        }
