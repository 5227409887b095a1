"""
lacat API Server - FastAPI Backend

Endpoints:
- GET  /health                          Liveness + poller status
- GET  /session                         Connected account (or null)
- POST /connect                         Establish the wallet session, start pollers
- GET  /balance                         Spendable balance of the account
- GET  /deposits                        Current deposit snapshot with eligibility
- GET  /fees                            Advisory fee / monthly allowance quote
- POST /deposit                         Lock funds (submit -> confirm -> notify)
- POST /deposits/{id}/withdraw          Full withdrawal of an unlocked deposit
- POST /deposits/{id}/withdraw-monthly  Monthly allowance withdrawal
- GET  /notifications                   Recent transaction notifications

Reads never touch the chain: they serve the latest snapshot from the pollers.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from lacat.deposit import WEI_PER_ETH
from lacat.errors import RejectionError, SubmissionError, WalletConnectionError
from lacat.runtime import LacatRuntime
from lacat.settings import MAX_BASIS_POINTS

logger = logging.getLogger("lacat.api")


# ============================================================
# MODELS
# ============================================================

class SessionResponse(BaseModel):
    connected: bool
    address: Optional[str] = None


class BalanceResponse(BaseModel):
    balance_wei: str
    balance_eth: float
    last_updated: Optional[float] = None


class DepositRequest(BaseModel):
    amount_in_eth: float = Field(..., gt=0)
    unlock_timestamp: int = Field(..., ge=0)
    monthly_withdraw_basis_points: int = Field(0, ge=0, le=MAX_BASIS_POINTS)


class TransactionResponse(BaseModel):
    kind: str
    tx_hash: str
    deposit_id: Optional[int] = None


# ============================================================
# SERVER FACTORY
# ============================================================

def create_app(runtime: LacatRuntime, connect_on_startup: bool = False) -> FastAPI:
    """
    Create FastAPI app wired to a LacatRuntime.

    connect_on_startup: establish the wallet session in the lifespan
    (a WalletConnectionError then aborts startup).
    """

    @asynccontextmanager
    async def lifespan(app):
        if connect_on_startup:
            await runtime.connect()
        yield
        await runtime.shutdown()

    app = FastAPI(
        title="lacat",
        description="Time-release vault: lock funds, watch them unlock.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS: allow all in dev, restrict in production via CORS_ORIGINS env var
    cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def _run_workflow(call):
        if runtime.session is None:
            raise HTTPException(503, "No wallet session. POST /connect first.")
        try:
            pending = await call()
        except RejectionError:
            raise HTTPException(409, "Transaction cancelled by signer")
        except SubmissionError as e:
            raise HTTPException(400, f"Transaction rejected: {e}")
        except ValueError as e:
            raise HTTPException(422, str(e))
        if pending is None:
            raise HTTPException(503, "Ledger unavailable")
        return TransactionResponse(
            kind=pending.kind.value,
            tx_hash=pending.tx_hash,
            deposit_id=pending.deposit_id,
        )

    # ============================================================
    # ROUTES
    # ============================================================

    @app.get("/health")
    async def health():
        return {"ok": True, **runtime.get_status()}

    @app.get("/session", response_model=SessionResponse)
    async def session():
        s = runtime.session
        return SessionResponse(connected=s is not None, address=s.address if s else None)

    @app.post("/connect", response_model=SessionResponse)
    async def connect():
        try:
            s = await runtime.connect()
        except WalletConnectionError as e:
            logger.warning(f"/connect failed: {e}")
            raise HTTPException(503, f"Wallet connection failed: {e}")
        return SessionResponse(connected=True, address=s.address)

    @app.get("/balance", response_model=BalanceResponse)
    async def balance():
        poller = runtime.balance_poller
        wei = runtime.balance
        return BalanceResponse(
            balance_wei=str(wei),
            balance_eth=wei / WEI_PER_ETH,
            last_updated=poller.last_updated if poller else None,
        )

    @app.get("/deposits")
    async def deposits():
        """Latest snapshot; eligibility evaluated against the current clock."""
        return runtime.state.to_dict(runtime.clock())

    @app.get("/fees")
    async def fees(amount_in_eth: float, monthly_withdraw_basis_points: int = 0):
        if amount_in_eth < 0:
            raise HTTPException(422, "amount_in_eth must be non-negative")
        if not 0 <= monthly_withdraw_basis_points <= MAX_BASIS_POINTS:
            raise HTTPException(422, f"monthly_withdraw_basis_points must be in [0, {MAX_BASIS_POINTS}]")
        return runtime.fees.quote(amount_in_eth, monthly_withdraw_basis_points)

    @app.post("/deposit", response_model=TransactionResponse)
    async def deposit(req: DepositRequest):
        return await _run_workflow(lambda: runtime.workflow.make_deposit(
            req.amount_in_eth, req.unlock_timestamp, req.monthly_withdraw_basis_points,
        ))

    @app.post("/deposits/{deposit_id}/withdraw", response_model=TransactionResponse)
    async def withdraw(deposit_id: int):
        return await _run_workflow(lambda: runtime.workflow.withdraw_full(deposit_id))

    @app.post("/deposits/{deposit_id}/withdraw-monthly", response_model=TransactionResponse)
    async def withdraw_monthly(deposit_id: int):
        return await _run_workflow(
            lambda: runtime.workflow.withdraw_monthly_allowance(deposit_id)
        )

    @app.get("/notifications")
    async def notifications(limit: int = 20):
        return {"notifications": [n.to_dict() for n in runtime.sink.recent(limit)]}

    return app
