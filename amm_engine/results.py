"""Engine operation result types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from amm_engine import errors
from amm_engine.errors import AMMError, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class CreatePoolResult:
    """A newly registered pool."""

    pool_id: str
    token_a: str
    token_b: str


@dataclass(frozen=True)
class LiquidityResult:
    """Outcome of adding or removing liquidity.

    Amounts are reported in canonical pool order (token_a < token_b), so
    amount_a always refers to token_a regardless of caller argument order.
    """

    pool_id: str
    provider: str
    token_a: str
    token_b: str
    amount_a: int
    amount_b: int
    shares: int


@dataclass(frozen=True)
class SwapResult:
    """Outcome of an executed swap."""

    pool_id: str
    trader: str
    token_in: str
    token_out: str
    amount_in: int
    amount_out: int


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Result of a mutating engine operation.

    Terminal conditions come back as an error kind rather than an exception,
    so callers can surface the kind verbatim at their own boundary.

    Attributes:
        value: The operation's result, or None on failure.
        error: The error kind if the operation failed.
        error_detail: Optional human-readable detail about the error.

    Examples:
        result = engine.swap(WETH, USDC, 10**18, 0, trader)
        if result.is_error:
            return {"error": result.error.value}
        amount_out = result.value.amount_out
    """

    value: T | None
    error: ErrorKind | None = None
    error_detail: str | None = None

    @property
    def is_valid(self) -> bool:
        """True if the operation committed."""
        return self.error is None

    @property
    def is_error(self) -> bool:
        """True if the operation was rejected and rolled back."""
        return self.error is not None

    def unwrap(self) -> T:
        """Return the value, raising the matching AMMError on failure."""
        if self.error is not None:
            raise _ERROR_CLASSES.get(self.error, AMMError)(self.error_detail or self.error.value)
        assert self.value is not None
        return self.value

    @classmethod
    def ok(cls, value: T) -> OperationResult[T]:
        """Create a successful result."""
        return cls(value=value)

    @classmethod
    def with_error(cls, error: ErrorKind, detail: str | None = None) -> OperationResult[T]:
        """Create an error result."""
        return cls(value=None, error=error, error_detail=detail)

    @classmethod
    def from_exception(cls, exc: AMMError) -> OperationResult[T]:
        """Create an error result from a raised engine error."""
        return cls.with_error(exc.kind, str(exc) or None)


_ERROR_CLASSES: dict[ErrorKind, type[AMMError]] = {
    cls.kind: cls
    for cls in (
        errors.IdenticalAssets,
        errors.InvalidAsset,
        errors.InvalidAccount,
        errors.PoolAlreadyExists,
        errors.PoolNotFound,
        errors.InsufficientLiquidity,
        errors.InsufficientShares,
        errors.InsufficientLiquidityBurned,
        errors.ZeroAmount,
        errors.SlippageExceeded,
        errors.ReentrantCall,
        errors.TransferFailed,
        errors.Overflow,
        errors.Underflow,
        errors.DivisionByZero,
    )
}
