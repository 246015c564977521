"""Pydantic request and response models for the simulation API.

Amounts travel as decimal strings (Uint256) and identifiers as 0x-prefixed
hex, with camelCase field names on the wire.
"""

from pydantic import BaseModel, Field

from amm_engine.models.types import Address, PoolId, Uint256

_API_CONFIG = {"populate_by_name": True}


class CreatePoolRequest(BaseModel):
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")

    model_config = _API_CONFIG


class PoolCreatedResponse(BaseModel):
    pool_id: PoolId = Field(alias="poolId")
    token_a: Address = Field(alias="tokenA", description="Smaller asset identifier.")
    token_b: Address = Field(alias="tokenB", description="Larger asset identifier.")

    model_config = _API_CONFIG


class PoolStateResponse(BaseModel):
    """Current reserves and shares of a pool, in canonical order."""

    pool_id: PoolId = Field(alias="poolId")
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    reserve_a: Uint256 = Field(alias="reserveA")
    reserve_b: Uint256 = Field(alias="reserveB")
    total_shares: Uint256 = Field(alias="totalShares")

    model_config = _API_CONFIG


class AddLiquidityRequest(BaseModel):
    """Deposit request. amountA pairs with tokenA as given, in any order."""

    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    amount_a: Uint256 = Field(alias="amountA")
    amount_b: Uint256 = Field(alias="amountB")
    provider: Address

    model_config = _API_CONFIG


class RemoveLiquidityRequest(BaseModel):
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    shares: Uint256
    provider: Address

    model_config = _API_CONFIG


class LiquidityResponse(BaseModel):
    """Executed deposit or withdrawal, amounts in canonical order."""

    pool_id: PoolId = Field(alias="poolId")
    provider: Address
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    amount_a: Uint256 = Field(alias="amountA")
    amount_b: Uint256 = Field(alias="amountB")
    shares: Uint256 = Field(description="Shares issued (add) or burned (remove).")

    model_config = _API_CONFIG


class SwapRequest(BaseModel):
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount_in: Uint256 = Field(alias="amountIn")
    min_amount_out: Uint256 = Field(default="0", alias="minAmountOut")
    trader: Address

    model_config = _API_CONFIG


class SwapResponse(BaseModel):
    pool_id: PoolId = Field(alias="poolId")
    trader: Address
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = _API_CONFIG


class QuoteResponse(BaseModel):
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = _API_CONFIG


class DepositRequest(BaseModel):
    """Fund a simulated account."""

    asset: Address
    account: Address
    amount: Uint256

    model_config = _API_CONFIG


class BalanceResponse(BaseModel):
    account: str
    balance: Uint256

    model_config = _API_CONFIG


class ErrorResponse(BaseModel):
    """Body returned for a rejected operation."""

    error: str = Field(description="Error kind, e.g. 'slippage_exceeded'.")
    detail: str | None = None
