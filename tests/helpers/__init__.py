"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Asset and account addresses
- factories: Simulation setup helpers
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    CAROL,
    DAI,
    LARGE_BALANCE,
    TOKEN_X,
    TOKEN_Y,
    USDC,
    WETH,
    ZERO_ADDRESS,
)
from tests.helpers.factories import fund, make_pool, snapshot_state

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "TOKEN_X",
    "TOKEN_Y",
    "ZERO_ADDRESS",
    "ALICE",
    "BOB",
    "CAROL",
    "LARGE_BALANCE",
    # Factories
    "fund",
    "make_pool",
    "snapshot_state",
]
