"""
Lacat Ledger - On-Chain Contract Surface

Reads deposit state from the lacat contract and submits the three mutating
calls (deposit, withdraw, withdrawMonthlyAllowance).

Design:
- Embedded minimal ABI, only the functions we call, no compiled JSON needed
- Sync Web3 calls wrapped in asyncio.run_in_executor()
- Reads are made "from" the session address: the contract keys deposits by msg.sender
- Read failures -> TransientFetchError (pollers retry next tick)
- Writes are signed by the session's wallet
- Confirmation = receipt observed and `confirmations` later blocks mined, bounded
  by confirmation_timeout
"""

import asyncio
import logging
import time

from web3 import Web3
from web3.exceptions import TimeExhausted

from .errors import ConfirmationTimeout, SubmissionError, TransientFetchError
from .settings import LacatSettings

logger = logging.getLogger("lacat.chain")


# ============================================================
# MINIMAL ABI - only functions we call at runtime
# ============================================================

LACAT_ABI = [
    # getNumDeposits() -> uint256
    {
        "inputs": [],
        "name": "getNumDeposits",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    # getDepositStatus(uint256) -> (amount, unlock, monthlyWithdraw, lastWithdraw)
    {
        "inputs": [{"name": "index", "type": "uint256"}],
        "name": "getDepositStatus",
        "outputs": [
            {"name": "amount", "type": "uint256"},
            {"name": "unlock", "type": "uint256"},
            {"name": "monthlyWithdraw", "type": "uint256"},
            {"name": "lastWithdraw", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    # deposit(uint256 unlockTimestamp, uint256 monthlyWithdrawBasisPoints) payable
    {
        "inputs": [
            {"name": "unlockTimestamp", "type": "uint256"},
            {"name": "monthlyWithdrawBasisPoints", "type": "uint256"},
        ],
        "name": "deposit",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    # withdraw(uint256 depositId)
    {
        "inputs": [{"name": "depositId", "type": "uint256"}],
        "name": "withdraw",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    # withdrawMonthlyAllowance(uint256 depositId)
    {
        "inputs": [{"name": "depositId", "type": "uint256"}],
        "name": "withdrawMonthlyAllowance",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


class LacatLedger:
    """
    Usage:
        ledger = LacatLedger.from_settings(wallet.w3, settings)
        n = await ledger.get_num_deposits(session.address)
        tx_hash = await ledger.withdraw(session, 0)
        receipt = await ledger.wait_for_confirmation(tx_hash)
    """

    def __init__(
        self,
        w3: Web3,
        address: str,
        confirmations: int = 1,
        confirmation_timeout: float = 600.0,
        poll_latency: float = 1.0,
    ):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=LACAT_ABI)
        self.confirmations = max(1, confirmations)
        self.confirmation_timeout = confirmation_timeout
        self.poll_latency = poll_latency

    @classmethod
    def from_settings(cls, w3: Web3, settings: LacatSettings) -> "LacatLedger":
        return cls(
            w3,
            settings.lacat_address,
            confirmations=settings.confirmations,
            confirmation_timeout=settings.confirmation_timeout,
            poll_latency=settings.receipt_poll_latency,
        )

    async def _run(self, fn):
        return await asyncio.get_running_loop().run_in_executor(None, fn)

    # ============================================================
    # READS
    # ============================================================

    async def get_num_deposits(self, account: str) -> int:
        try:
            return int(await self._run(
                lambda: self.contract.functions.getNumDeposits().call({"from": account})
            ))
        except Exception as e:
            raise TransientFetchError(f"getNumDeposits failed: {e}") from e

    async def get_deposit_status(self, account: str, index: int) -> tuple[int, int, int, int]:
        try:
            raw = await self._run(
                lambda: self.contract.functions.getDepositStatus(index).call({"from": account})
            )
        except Exception as e:
            raise TransientFetchError(f"getDepositStatus({index}) failed: {e}") from e
        return tuple(int(v) for v in raw)

    # ============================================================
    # WRITE TRANSACTIONS
    # ============================================================

    async def deposit(self, session, unlock_timestamp: int, basis_points: int, value: int) -> str:
        tx_fn = self.contract.functions.deposit(unlock_timestamp, basis_points)
        return await session.wallet.send_transaction(tx_fn, value=value)

    async def withdraw(self, session, deposit_id: int) -> str:
        tx_fn = self.contract.functions.withdraw(deposit_id)
        return await session.wallet.send_transaction(tx_fn)

    async def withdraw_monthly_allowance(self, session, deposit_id: int) -> str:
        tx_fn = self.contract.functions.withdrawMonthlyAllowance(deposit_id)
        return await session.wallet.send_transaction(tx_fn)

    # ============================================================
    # CONFIRMATION
    # ============================================================

    async def wait_for_confirmation(self, tx_hash: str) -> dict:
        """
        Block (in the executor) until the transaction is mined and the chain
        head is `confirmations` blocks past the inclusion block. Raises ConfirmationTimeout or
        SubmissionError (reverted).
        """
        def _wait():
            deadline = time.monotonic() + self.confirmation_timeout
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_latency,
            )
            target_block = receipt["blockNumber"] + self.confirmations
            while self.w3.eth.block_number < target_block:
                if time.monotonic() > deadline:
                    raise TimeExhausted(f"{tx_hash} not followed by {self.confirmations} block(s)")
                time.sleep(self.poll_latency)
            return receipt

        try:
            receipt = await self._run(_wait)
        except TimeExhausted as e:
            raise ConfirmationTimeout(tx_hash, self.confirmation_timeout) from e

        if receipt.get("status", 1) != 1:
            raise SubmissionError(f"TX reverted: {tx_hash}")
        return receipt
