"""Pydantic models for engine notifications.

Events are emitted to the EventSink collaborator as the last step of a
successful operation. Amounts are plain ints; ``model_dump(by_alias=True)``
gives the camelCase wire form.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Discriminator, Field

from amm_engine.models.types import Address, PoolId

_EVENT_CONFIG = {"populate_by_name": True, "frozen": True}


class PoolCreated(BaseModel):
    """A pool was registered for a canonical asset pair."""

    kind: Literal["poolCreated"] = "poolCreated"
    token_a: Address = Field(alias="tokenA", description="Smaller asset identifier.")
    token_b: Address = Field(alias="tokenB", description="Larger asset identifier.")
    pool_id: PoolId = Field(alias="poolId")

    model_config = _EVENT_CONFIG


class LiquidityAdded(BaseModel):
    """A provider deposited both assets and received shares."""

    kind: Literal["liquidityAdded"] = "liquidityAdded"
    pool_id: PoolId = Field(alias="poolId")
    provider: Address
    amount_a: int = Field(alias="amountA", ge=0)
    amount_b: int = Field(alias="amountB", ge=0)
    issued: int = Field(ge=0, description="Shares minted to the provider.")

    model_config = _EVENT_CONFIG


class LiquidityRemoved(BaseModel):
    """A provider burned shares and withdrew both assets."""

    kind: Literal["liquidityRemoved"] = "liquidityRemoved"
    pool_id: PoolId = Field(alias="poolId")
    provider: Address
    amount_a: int = Field(alias="amountA", ge=0)
    amount_b: int = Field(alias="amountB", ge=0)
    shares: int = Field(ge=0)

    model_config = _EVENT_CONFIG


class TokensSwapped(BaseModel):
    """A trader exchanged one asset of the pair for the other."""

    kind: Literal["tokensSwapped"] = "tokensSwapped"
    pool_id: PoolId = Field(alias="poolId")
    trader: Address
    asset_in: Address = Field(alias="assetIn")
    amount_in: int = Field(alias="amountIn", ge=0)
    amount_out: int = Field(alias="amountOut", ge=0)

    model_config = _EVENT_CONFIG


# Discriminated union of all engine events
Event = Annotated[
    PoolCreated | LiquidityAdded | LiquidityRemoved | TokensSwapped,
    Discriminator("kind"),
]
