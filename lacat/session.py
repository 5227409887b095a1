"""
Session Manager - one identity per process.

connect() asks the wallet for access, reads the address and freezes both
into a Session. There is no reconnect: a failed or revoked session needs a
restart.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .errors import WalletConnectionError

logger = logging.getLogger("lacat.session")


@dataclass(frozen=True)
class Session:
    address: str
    wallet: Any        # signing capability (Web3Wallet or compatible)


class SessionManager:

    def __init__(self, wallet=None):
        self._wallet = wallet
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    async def connect(self) -> Session:
        if self._session is not None:
            return self._session

        if self._wallet is None:
            logger.error("No wallet surface configured")
            raise WalletConnectionError("No wallet surface available")

        try:
            await self._wallet.request_access()
            address = await self._wallet.get_address()
        except WalletConnectionError as e:
            logger.error(f"Wallet connection failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Wallet connection failed: {e}")
            raise WalletConnectionError(str(e)) from e

        self._session = Session(address=address, wallet=self._wallet)
        logger.info(f"Session established: {address}")
        return self._session
