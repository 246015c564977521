"""Pydantic models for engine events and the simulation API."""

from amm_engine.models.events import (
    Event,
    LiquidityAdded,
    LiquidityRemoved,
    PoolCreated,
    TokensSwapped,
)
from amm_engine.models.types import Address, PoolId, Uint256

__all__ = [
    # Types
    "Address",
    "PoolId",
    "Uint256",
    # Events
    "Event",
    "PoolCreated",
    "LiquidityAdded",
    "LiquidityRemoved",
    "TokensSwapped",
]
