"""
Wallet - Identity & Signing Surface

The account side of the ledger: grant access, report the address, report
the spendable balance, sign and send transactions.

Design:
- Sync Web3 calls wrapped in asyncio.run_in_executor() (web3.py async is fragile)
- Two signing modes:
    * local key (PRIVATE_KEY): build, estimate gas (+20% buffer), sign, send raw.
      An optional approve(tx) callback plays the role of the signing prompt
      and may decline.
    * node-managed account (no key): first account from eth_accounts, transact()
- EIP-1193 code 4001 / "user denied" RPC errors -> RejectionError,
  anything else while sending -> SubmissionError
"""

import asyncio
import logging
from typing import Callable, Optional

from eth_account import Account
from web3 import Web3

from .errors import RejectionError, SubmissionError, TransientFetchError, WalletConnectionError
from .settings import LacatSettings

logger = logging.getLogger("lacat.wallet")

USER_REJECTED_CODE = 4001

ApproveFn = Callable[[dict], bool]


def is_user_rejection(exc: BaseException) -> bool:
    """True if an RPC error means the signer declined."""
    for arg in getattr(exc, "args", ()):
        if isinstance(arg, dict) and arg.get("code") == USER_REJECTED_CODE:
            return True
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict):
        error = rpc_response.get("error")
        if isinstance(error, dict) and error.get("code") == USER_REJECTED_CODE:
            return True
    text = str(exc).lower()
    return "user rejected" in text or "user denied" in text


class Web3Wallet:
    """
    Usage:
        wallet = Web3Wallet.from_settings(settings)
        await wallet.request_access()
        address = await wallet.get_address()
    """

    def __init__(
        self,
        w3: Web3,
        private_key: str = "",
        chain_id: Optional[int] = None,
        approve: Optional[ApproveFn] = None,
        gas_buffer: float = 1.2,
        default_gas: int = 200_000,
    ):
        self.w3 = w3
        self._private_key = private_key
        self._chain_id = chain_id
        self._approve = approve
        self._gas_buffer = gas_buffer
        self._default_gas = default_gas
        self._account = None
        self._address: str = ""

    @classmethod
    def from_settings(cls, settings: LacatSettings, approve: Optional[ApproveFn] = None) -> "Web3Wallet":
        w3 = Web3(Web3.HTTPProvider(settings.rpc_url, request_kwargs={"timeout": 30}))
        return cls(
            w3,
            private_key=settings.private_key,
            chain_id=settings.chain_id,
            approve=approve,
            gas_buffer=settings.gas_buffer,
            default_gas=settings.default_gas,
        )

    @property
    def uses_local_key(self) -> bool:
        return bool(self._private_key)

    async def _run(self, fn):
        return await asyncio.get_running_loop().run_in_executor(None, fn)

    # ============================================================
    # ACCESS
    # ============================================================

    async def request_access(self) -> None:
        def _access() -> str:
            if not self.w3.is_connected():
                raise WalletConnectionError("Cannot connect to RPC node")

            if self._private_key:
                try:
                    self._account = Account.from_key(self._private_key)
                except Exception as e:
                    raise WalletConnectionError(f"Invalid PRIVATE_KEY: {e}") from e
                return self._account.address

            try:
                accounts = self.w3.eth.accounts
            except Exception as e:
                raise WalletConnectionError(f"Account access failed: {e}") from e
            if not accounts:
                raise WalletConnectionError("No accounts available (access declined)")
            return accounts[0]

        self._address = await self._run(_access)
        mode = "local key" if self._account is not None else "node account"
        logger.info(f"Wallet access granted: {self._address[:10]}... ({mode})")

    async def get_address(self) -> str:
        if not self._address:
            raise WalletConnectionError("Wallet access has not been granted")
        return self._address

    async def get_spendable_balance(self) -> int:
        address = await self.get_address()
        try:
            return int(await self._run(lambda: self.w3.eth.get_balance(address)))
        except Exception as e:
            raise TransientFetchError(f"balance fetch failed: {e}") from e

    # ============================================================
    # SIGNING
    # ============================================================

    def _build_signed(self, tx_fn, value: int):
        nonce = self.w3.eth.get_transaction_count(self._address, "pending")
        params = {
            "from": self._address,
            "value": value,
            "nonce": nonce,
            "gasPrice": self.w3.eth.gas_price,
        }
        if self._chain_id is not None:
            params["chainId"] = self._chain_id
        tx = tx_fn.build_transaction(params)

        # Gas estimation + buffer
        try:
            tx["gas"] = int(self.w3.eth.estimate_gas(tx) * self._gas_buffer)
        except Exception as gas_err:
            logger.warning(f"Gas estimation failed, using default {self._default_gas}: {gas_err}")
            tx["gas"] = self._default_gas

        if self._approve is not None and not self._approve(tx):
            raise RejectionError("Signer declined the transaction")

        return self._account.sign_transaction(tx)

    async def send_transaction(self, tx_fn, value: int = 0) -> str:
        """Sign and broadcast a contract call. Returns the 0x-prefixed tx hash."""
        await self.get_address()

        def _execute():
            if self._account is None:
                return tx_fn.transact({"from": self._address, "value": value})
            signed = self._build_signed(tx_fn, value)
            return self.w3.eth.send_raw_transaction(signed.raw_transaction)

        try:
            tx_hash = await self._run(_execute)
        except RejectionError:
            raise
        except Exception as e:
            if is_user_rejection(e):
                raise RejectionError(str(e)) from e
            raise SubmissionError(f"{type(e).__name__}: {e}") from e

        return Web3.to_hex(tx_hash)
