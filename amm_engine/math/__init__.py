"""Arithmetic kernel for the AMM engine.

This package provides the pure functions the engine builds on:
- integer_sqrt, quote_output, quote_input: constant-product math
- sort_assets, pair_identifier: canonical pair handling
"""

from amm_engine.math.constant_product import (
    DEFAULT_FEE_DENOMINATOR,
    DEFAULT_FEE_NUMERATOR,
    integer_sqrt,
    quote_input,
    quote_output,
)
from amm_engine.math.pair import pair_identifier, sort_assets

__all__ = [
    "DEFAULT_FEE_NUMERATOR",
    "DEFAULT_FEE_DENOMINATOR",
    "integer_sqrt",
    "quote_output",
    "quote_input",
    "pair_identifier",
    "sort_assets",
]
