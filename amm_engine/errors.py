"""Engine error kinds.

Every terminal condition an operation can hit has an ErrorKind value and a
matching exception class. Exceptions are raised inside the engine and turned
into error results at the public boundary (see amm_engine.results).
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Terminal error conditions surfaced to callers verbatim."""

    IDENTICAL_ASSETS = "identical_assets"
    INVALID_ASSET = "invalid_asset"
    INVALID_ACCOUNT = "invalid_account"
    POOL_ALREADY_EXISTS = "pool_already_exists"
    POOL_NOT_FOUND = "pool_not_found"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    INSUFFICIENT_SHARES = "insufficient_shares"
    INSUFFICIENT_LIQUIDITY_BURNED = "insufficient_liquidity_burned"
    ZERO_AMOUNT = "zero_amount"
    SLIPPAGE_EXCEEDED = "slippage_exceeded"
    OVERFLOW = "overflow"
    UNDERFLOW = "underflow"
    DIVISION_BY_ZERO = "division_by_zero"
    REENTRANT_CALL = "reentrant_call"
    TRANSFER_FAILED = "transfer_failed"


class AMMError(Exception):
    """Base error for engine operations."""

    kind: ErrorKind


class IdenticalAssets(AMMError):
    """Both sides of a pair are the same asset."""

    kind = ErrorKind.IDENTICAL_ASSETS


class InvalidAsset(AMMError):
    """Asset identifier is the null address or malformed."""

    kind = ErrorKind.INVALID_ASSET


class InvalidAccount(AMMError):
    """Provider or trader identifier is malformed."""

    kind = ErrorKind.INVALID_ACCOUNT


class PoolAlreadyExists(AMMError):
    """A pool for this canonical pair is already registered."""

    kind = ErrorKind.POOL_ALREADY_EXISTS


class PoolNotFound(AMMError):
    kind = ErrorKind.POOL_NOT_FOUND


class InsufficientLiquidity(AMMError):
    """Deposit issues no shares, or a swap would drain the output reserve."""

    kind = ErrorKind.INSUFFICIENT_LIQUIDITY


class InsufficientShares(AMMError):
    """Provider holds fewer shares than requested for withdrawal."""

    kind = ErrorKind.INSUFFICIENT_SHARES


class InsufficientLiquidityBurned(AMMError):
    """Withdrawal would pay out zero of at least one asset."""

    kind = ErrorKind.INSUFFICIENT_LIQUIDITY_BURNED


class ZeroAmount(AMMError):
    kind = ErrorKind.ZERO_AMOUNT


class SlippageExceeded(AMMError):
    """Swap output is below the caller's minimum."""

    kind = ErrorKind.SLIPPAGE_EXCEEDED


class ReentrantCall(AMMError):
    """A mutating operation re-entered a pool it is already mutating."""

    kind = ErrorKind.REENTRANT_CALL


class TransferFailed(AMMError):
    """A collaborator rejected a transfer, mint or burn."""

    kind = ErrorKind.TRANSFER_FAILED


class SafeIntError(AMMError, ArithmeticError):
    """Base class for checked arithmetic errors."""


class Overflow(SafeIntError):
    """Result exceeds the uint256 maximum."""

    kind = ErrorKind.OVERFLOW


class Underflow(SafeIntError):
    """Result would be negative."""

    kind = ErrorKind.UNDERFLOW


class DivisionByZero(SafeIntError):
    """Division or modulo by zero."""

    kind = ErrorKind.DIVISION_BY_ZERO
