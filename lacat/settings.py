"""
Lacat Settings - Runtime Configuration

One frozen value holding everything the components need: which contract to
talk to, where the RPC node lives, fee basis points, polling cadence.
Built once at startup (from .env / environment) and passed explicitly into
every component. Nothing reads os.environ after bootstrap.
"""

import os
from dataclasses import dataclass
from typing import Final, Optional


# ============================================================
# DEFAULTS
# ============================================================

# Local hardhat/anvil deployment address of the lacat contract
DEFAULT_LACAT_ADDRESS: Final[str] = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DEFAULT_RPC_URL: Final[str] = "http://127.0.0.1:8545"
DEFAULT_CHAIN_ID: Final[int] = 31337

MAX_BASIS_POINTS: Final[int] = 10_000
SECONDS_PER_DAY: Final[int] = 86_400
MONTHLY_WINDOW_DAYS: Final[int] = 30


@dataclass(frozen=True)
class LacatSettings:
    """Frozen dataclass = immutable for the process lifetime."""

    # --- LEDGER ---
    lacat_address: str = DEFAULT_LACAT_ADDRESS
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = DEFAULT_CHAIN_ID
    private_key: str = ""                      # empty = use node-managed accounts

    # --- FEES (advisory; the contract computes the real fee) ---
    base_fee_basis_points: int = 35            # 0.35% on every deposit
    monthly_withdraw_fee_basis_points: int = 15  # +0.15% when the monthly allowance is enabled

    # --- POLLING ---
    balance_poll_interval: float = 10.0        # seconds
    deposit_poll_interval: float = 10.0        # seconds

    # --- CONFIRMATION ---
    confirmations: int = 1
    confirmation_timeout: float = 600.0        # seconds before ConfirmationTimeout
    receipt_poll_latency: float = 1.0

    # --- GAS (local-key signing only) ---
    gas_buffer: float = 1.2                    # estimate + 20%
    default_gas: int = 200_000

    # --- HTTP ---
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def monthly_window_seconds(self) -> int:
        return MONTHLY_WINDOW_DAYS * SECONDS_PER_DAY

    @classmethod
    def from_env(cls, env: Optional[dict] = None) -> "LacatSettings":
        """Build settings from environment variables (call after load_dotenv())."""
        env = os.environ if env is None else env
        return cls(
            lacat_address=env.get("LACAT_ADDRESS", DEFAULT_LACAT_ADDRESS),
            rpc_url=env.get("RPC_URL", DEFAULT_RPC_URL),
            chain_id=int(env.get("CHAIN_ID", DEFAULT_CHAIN_ID)),
            private_key=env.get("PRIVATE_KEY", ""),
            balance_poll_interval=float(env.get("BALANCE_POLL_INTERVAL", 10.0)),
            deposit_poll_interval=float(env.get("DEPOSIT_POLL_INTERVAL", 10.0)),
            confirmations=int(env.get("CONFIRMATIONS", 1)),
            confirmation_timeout=float(env.get("CONFIRMATION_TIMEOUT", 600.0)),
            host=env.get("HOST", "127.0.0.1"),
            port=int(env.get("PORT", 8000)),
        )
