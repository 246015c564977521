"""API endpoints for the AMM simulation service."""

import structlog
from fastapi import APIRouter, Depends, Query

from amm_engine.models.api import (
    AddLiquidityRequest,
    BalanceResponse,
    CreatePoolRequest,
    DepositRequest,
    LiquidityResponse,
    PoolCreatedResponse,
    PoolStateResponse,
    QuoteResponse,
    RemoveLiquidityRequest,
    SwapRequest,
    SwapResponse,
)
from amm_engine.results import LiquidityResult
from amm_engine.simulation import Simulation, get_default_simulation

logger = structlog.get_logger()

router = APIRouter()


def get_simulation() -> Simulation:
    """Dependency provider for the simulation instance.

    Override this in tests to inject a fresh simulation:
        app.dependency_overrides[get_simulation] = lambda: build_simulation()
    """
    return get_default_simulation()


def _liquidity_response(result: LiquidityResult) -> LiquidityResponse:
    return LiquidityResponse(
        pool_id=result.pool_id,
        provider=result.provider,
        token_a=result.token_a,
        token_b=result.token_b,
        amount_a=result.amount_a,
        amount_b=result.amount_b,
        shares=result.shares,
    )


@router.post("/pools", status_code=201)
async def create_pool(
    request: CreatePoolRequest,
    sim: Simulation = Depends(get_simulation),
) -> PoolCreatedResponse:
    """Register a pool for a token pair.

    Error Handling:
        - identical_assets / invalid_asset: 400
        - pool_already_exists: 409
    """
    created = sim.engine.create_pool(request.token_a, request.token_b).unwrap()
    return PoolCreatedResponse(
        pool_id=created.pool_id,
        token_a=created.token_a,
        token_b=created.token_b,
    )


@router.get("/pools/{pool_id}")
async def get_pool(
    pool_id: str,
    sim: Simulation = Depends(get_simulation),
) -> PoolStateResponse:
    """Current state of a pool (404 if unknown)."""
    pool = sim.engine.registry.get_pool(pool_id)
    return PoolStateResponse(
        pool_id=pool.pool_id,
        token_a=pool.token_a,
        token_b=pool.token_b,
        reserve_a=pool.reserve_a,
        reserve_b=pool.reserve_b,
        total_shares=pool.total_shares,
    )


@router.get("/pools/{pool_id}/shares/{account}")
async def get_shares(
    pool_id: str,
    account: str,
    sim: Simulation = Depends(get_simulation),
) -> BalanceResponse:
    """Share balance of an account in a pool (404 if the pool is unknown)."""
    sim.engine.registry.get_pool(pool_id)
    balance = sim.engine.share_balance(pool_id, account)
    return BalanceResponse(account=account, balance=balance)


@router.post("/liquidity/add")
async def add_liquidity(
    request: AddLiquidityRequest,
    sim: Simulation = Depends(get_simulation),
) -> LiquidityResponse:
    """Deposit both assets of a pair and receive shares."""
    result = sim.engine.add_liquidity(
        request.token_a,
        request.token_b,
        int(request.amount_a),
        int(request.amount_b),
        request.provider,
    ).unwrap()
    return _liquidity_response(result)


@router.post("/liquidity/remove")
async def remove_liquidity(
    request: RemoveLiquidityRequest,
    sim: Simulation = Depends(get_simulation),
) -> LiquidityResponse:
    """Burn shares and withdraw both assets pro rata."""
    result = sim.engine.remove_liquidity(
        request.token_a,
        request.token_b,
        int(request.shares),
        request.provider,
    ).unwrap()
    return _liquidity_response(result)


@router.post("/swap")
async def swap(
    request: SwapRequest,
    sim: Simulation = Depends(get_simulation),
) -> SwapResponse:
    """Execute an exact-input swap."""
    result = sim.engine.swap(
        request.token_in,
        request.token_out,
        int(request.amount_in),
        int(request.min_amount_out),
        request.trader,
    ).unwrap()
    return SwapResponse(
        pool_id=result.pool_id,
        trader=result.trader,
        token_in=result.token_in,
        token_out=result.token_out,
        amount_in=result.amount_in,
        amount_out=result.amount_out,
    )


@router.get("/quote")
async def quote(
    token_in: str = Query(alias="tokenIn"),
    token_out: str = Query(alias="tokenOut"),
    amount_in: int = Query(alias="amountIn", ge=0),
    sim: Simulation = Depends(get_simulation),
) -> QuoteResponse:
    """Price quote: output for amountIn at current reserves (0 if no pool)."""
    amount_out = sim.engine.get_amount_out(token_in, token_out, amount_in)
    return QuoteResponse(amount_out=amount_out)


@router.post("/accounts/deposit")
async def deposit(
    request: DepositRequest,
    sim: Simulation = Depends(get_simulation),
) -> BalanceResponse:
    """Fund a simulated account with an asset balance."""
    sim.bank.deposit(request.asset, request.account, int(request.amount))
    balance = sim.bank.balance_of(request.asset, request.account)
    logger.info(
        "account_funded",
        asset=request.asset[-8:],
        account=request.account[-8:],
        amount=request.amount,
    )
    return BalanceResponse(account=request.account, balance=balance)
