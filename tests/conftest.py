import asyncio
from typing import Optional

import pytest
import pytest_asyncio

from lacat.errors import RejectionError, WalletConnectionError
from lacat.session import Session, SessionManager
from lacat.settings import LacatSettings

ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
NOW = 1_700_000_000
DAY = 86_400
ETH = 10 ** 18


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWallet:
    """Wallet surface double: access, address, balance."""

    def __init__(self, address: str = ADDRESS, balance: int = 0, deny_access: bool = False):
        self.address = address
        self.balance = balance
        self.deny_access = deny_access
        self.balance_error: Optional[Exception] = None
        self.balance_gate: Optional[asyncio.Event] = None
        self.access_requests = 0

    async def request_access(self):
        self.access_requests += 1
        if self.deny_access:
            raise WalletConnectionError("User rejected the request")

    async def get_address(self):
        return self.address

    async def get_spendable_balance(self):
        if self.balance_gate is not None:
            await self.balance_gate.wait()
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance


class FakeLedger:
    """Ledger double backed by a list of raw getDepositStatus tuples."""

    def __init__(self, slots=None):
        self.slots = list(slots or [])
        self.reads: list[int] = []
        self.submitted: list[tuple] = []
        self.reject = False
        self.submit_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None
        self.count_gate: Optional[asyncio.Event] = None
        self.status_gate: Optional[asyncio.Event] = None
        self.confirm_gate: Optional[asyncio.Event] = None
        self.confirm_error: Optional[Exception] = None

    async def get_num_deposits(self, account):
        if self.count_gate is not None:
            await self.count_gate.wait()
        if self.read_error is not None:
            raise self.read_error
        return len(self.slots)

    async def get_deposit_status(self, account, index):
        if self.status_gate is not None and index == 1:
            await self.status_gate.wait()
        self.reads.append(index)
        return self.slots[index]

    def _submit(self, call):
        if self.reject:
            raise RejectionError("MetaMask Tx Signature: User denied transaction signature.")
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(call)
        return f"0x{len(self.submitted):064x}"

    async def deposit(self, session, unlock_timestamp, basis_points, value):
        return self._submit(("deposit", unlock_timestamp, basis_points, value))

    async def withdraw(self, session, deposit_id):
        return self._submit(("withdraw", deposit_id))

    async def withdraw_monthly_allowance(self, session, deposit_id):
        return self._submit(("withdrawMonthlyAllowance", deposit_id))

    async def wait_for_confirmation(self, tx_hash):
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        if self.confirm_error is not None:
            raise self.confirm_error
        return {"status": 1, "transactionHash": tx_hash, "blockNumber": 1}


@pytest.fixture
def settings():
    return LacatSettings(balance_poll_interval=10.0, deposit_poll_interval=10.0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wallet():
    return FakeWallet(balance=3 * ETH)


@pytest.fixture
def ledger():
    return FakeLedger([
        (2 * ETH, NOW - DAY, 0, 0),
        (ETH, NOW + 10 * DAY, ETH // 10, NOW - 31 * DAY),
    ])


@pytest.fixture
def session(wallet):
    return Session(address=wallet.address, wallet=wallet)


@pytest_asyncio.fixture
async def sessions(wallet):
    manager = SessionManager(wallet)
    await manager.connect()
    return manager
