"""
Deposit - Immutable Vault Slot Snapshot & Eligibility Rules

Every Deposit and LacatState is built wholesale by one synchronizer pass
and thrown away by the next. Nothing here is ever mutated in place.

Eligibility depends on wall-clock time (unlock dates pass, 30-day windows
elapse) without any event from the ledger, so predicates take `now`
explicitly and are never cached.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from .settings import MONTHLY_WINDOW_DAYS, SECONDS_PER_DAY

MONTHLY_WINDOW_SECONDS = MONTHLY_WINDOW_DAYS * SECONDS_PER_DAY
WEI_PER_ETH = 10 ** 18


@dataclass(frozen=True)
class Deposit:
    id: int                                  # slot index from enumeration order
    amount: int                              # remaining wei; 0 = fully withdrawn
    unlock_date: int                         # unix seconds
    monthly_withdraw: int = 0                # wei per 30-day window; 0 = disabled
    last_withdraw: Optional[int] = None      # unix seconds, None = never

    def __post_init__(self):
        for name in ("id", "amount", "unlock_date", "monthly_withdraw"):
            if getattr(self, name) < 0:
                raise ValueError(f"Deposit.{name} must be non-negative, got {getattr(self, name)}")
        if self.last_withdraw is not None and self.last_withdraw < 0:
            raise ValueError(f"Deposit.last_withdraw must be non-negative, got {self.last_withdraw}")

    @classmethod
    def from_raw(cls, index: int, raw) -> "Deposit":
        """
        Build from a getDepositStatus() tuple:
        (amount, unlockTimestamp, monthlyWithdrawAmount, lastWithdrawTimestampOrZero)
        """
        amount, unlock, monthly, last = (int(v) for v in raw)
        return cls(
            id=index,
            amount=amount,
            unlock_date=unlock,
            monthly_withdraw=monthly,
            last_withdraw=last or None,
        )

    # ============================================================
    # ELIGIBILITY
    # ============================================================

    def is_already_withdrawn(self) -> bool:
        return self.amount == 0

    def monthly_withdraw_supported(self) -> bool:
        return self.monthly_withdraw > 0

    def can_be_unlocked(self, now: float) -> bool:
        return not self.is_already_withdrawn() and now >= self.unlock_date

    def can_withdraw_monthly_allowance(self, now: float) -> bool:
        if not self.monthly_withdraw_supported():
            return False
        if self.last_withdraw is None:
            return True
        return now - self.last_withdraw >= MONTHLY_WINDOW_SECONDS

    def next_monthly_withdraw_at(self) -> Optional[int]:
        """When the allowance opens next. None if the feature is off."""
        if not self.monthly_withdraw_supported():
            return None
        if self.last_withdraw is None:
            return 0
        return self.last_withdraw + MONTHLY_WINDOW_SECONDS

    def seconds_until_unlock(self, now: float) -> float:
        return max(0.0, self.unlock_date - now)

    def to_dict(self, now: float) -> dict:
        return {
            "id": self.id,
            "amount_wei": str(self.amount),
            "amount_eth": self.amount / WEI_PER_ETH,
            "unlock_date": self.unlock_date,
            "monthly_withdraw_wei": str(self.monthly_withdraw),
            "last_withdraw": self.last_withdraw,
            "is_already_withdrawn": self.is_already_withdrawn(),
            "monthly_withdraw_supported": self.monthly_withdraw_supported(),
            "can_be_unlocked": self.can_be_unlocked(now),
            "can_withdraw_monthly_allowance": self.can_withdraw_monthly_allowance(now),
            "next_monthly_withdraw_at": self.next_monthly_withdraw_at(),
            "seconds_until_unlock": self.seconds_until_unlock(now),
        }


@dataclass(frozen=True)
class LacatState:
    """All deposits of the account, ordered by slot index, plus the locked total."""
    deposits: tuple[Deposit, ...] = ()
    total_locked_up: int = 0
    synced_at: float = field(default=0.0, compare=False)

    @classmethod
    def from_deposits(cls, deposits, synced_at: Optional[float] = None) -> "LacatState":
        ordered = tuple(sorted(deposits, key=lambda d: d.id))
        return cls(
            deposits=ordered,
            total_locked_up=sum(d.amount for d in ordered),
            synced_at=time.time() if synced_at is None else synced_at,
        )

    def get(self, deposit_id: int) -> Optional[Deposit]:
        for d in self.deposits:
            if d.id == deposit_id:
                return d
        return None

    def unlockable(self, now: float) -> list[Deposit]:
        return [d for d in self.deposits if d.can_be_unlocked(now)]

    def monthly_available(self, now: float) -> list[Deposit]:
        return [d for d in self.deposits if d.can_withdraw_monthly_allowance(now)]

    def to_dict(self, now: float) -> dict:
        return {
            "deposits": [d.to_dict(now) for d in self.deposits],
            "total_locked_up_wei": str(self.total_locked_up),
            "total_locked_up_eth": self.total_locked_up / WEI_PER_ETH,
            "synced_at": self.synced_at,
        }
