"""Constant-product pricing math.

Formula (exact input):
    after_fee  = amount_in * (fee_den - fee_num)
    amount_out = after_fee * reserve_out / (reserve_in * fee_den + after_fee)

The fee is deducted from the input leg before the trade is priced, so the
product of reserves after the swap is never below the product before it.
All intermediate values go through SafeInt and fail on overflow.
"""

from __future__ import annotations

from amm_engine.safe_int import UINT256_MAX, S

__all__ = [
    "integer_sqrt",
    "quote_output",
    "quote_input",
    "DEFAULT_FEE_NUMERATOR",
    "DEFAULT_FEE_DENOMINATOR",
]

# 0.3% swap fee
DEFAULT_FEE_NUMERATOR = 3
DEFAULT_FEE_DENOMINATOR = 1000


def integer_sqrt(x: int) -> int:
    """Return floor(sqrt(x)) without floating point.

    Args:
        x: Non-negative integer

    Returns:
        Largest integer r with r * r <= x (0 for x == 0)

    Raises:
        ValueError: If x is negative
    """
    if x < 0:
        raise ValueError(f"integer_sqrt of negative value: {x}")
    return S(x).isqrt().value


def _check_fee(fee_num: int, fee_den: int) -> None:
    if fee_den <= 0 or not 0 <= fee_num < fee_den:
        raise ValueError(f"Invalid fee rate {fee_num}/{fee_den}")


def quote_output(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_num: int = DEFAULT_FEE_NUMERATOR,
    fee_den: int = DEFAULT_FEE_DENOMINATOR,
) -> int:
    """Calculate swap output for an exact input amount.

    Args:
        amount_in: Input asset amount
        reserve_in: Pool reserve of the input asset
        reserve_out: Pool reserve of the output asset
        fee_num: Fee numerator (3 for 0.3%)
        fee_den: Fee denominator (1000 for 0.3%)

    Returns:
        Output asset amount, or 0 if either reserve is empty

    Raises:
        Overflow: If an intermediate product exceeds uint256
    """
    _check_fee(fee_num, fee_den)
    if reserve_in == 0 or reserve_out == 0:
        return 0

    amount_in_after_fee = S(amount_in) * (S(fee_den) - S(fee_num))
    numerator = amount_in_after_fee * S(reserve_out)
    denominator = S(reserve_in) * S(fee_den) + amount_in_after_fee

    return (numerator // denominator).value


def quote_input(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    fee_num: int = DEFAULT_FEE_NUMERATOR,
    fee_den: int = DEFAULT_FEE_DENOMINATOR,
) -> int:
    """Calculate the input required to receive at least amount_out.

    Formula: amount_in = (res_in * out * fee_den) / ((res_out - out) * (fee_den - fee_num)) + 1

    Args:
        amount_out: Desired output asset amount
        reserve_in: Pool reserve of the input asset
        reserve_out: Pool reserve of the output asset
        fee_num: Fee numerator
        fee_den: Fee denominator

    Returns:
        Required input amount. 0 for a zero amount or empty reserves,
        UINT256_MAX when amount_out cannot be reached (>= reserve_out).
    """
    _check_fee(fee_num, fee_den)
    if amount_out == 0:
        return 0
    if reserve_in == 0 or reserve_out == 0:
        return 0
    if amount_out >= reserve_out:
        return UINT256_MAX

    numerator = S(reserve_in) * S(amount_out) * S(fee_den)
    denominator = (S(reserve_out) - S(amount_out)) * (S(fee_den) - S(fee_num))

    return ((numerator // denominator) + S(1)).value
