"""Engine configuration."""

from dataclasses import dataclass

from amm_engine.math.constant_product import DEFAULT_FEE_DENOMINATOR, DEFAULT_FEE_NUMERATOR


@dataclass(frozen=True)
class EngineConfig:
    """Centralized configuration for the liquidity and swap engine.

    Attributes:
        fee_numerator: Swap fee numerator (default: 3)
        fee_denominator: Swap fee denominator (default: 1000, i.e. 0.3%)
        verify_invariants: If True, re-check pool invariants after every
            committed mutation and log an error on violation.
    """

    fee_numerator: int = DEFAULT_FEE_NUMERATOR
    fee_denominator: int = DEFAULT_FEE_DENOMINATOR

    verify_invariants: bool = False

    def __post_init__(self) -> None:
        if self.fee_denominator <= 0 or not 0 <= self.fee_numerator < self.fee_denominator:
            raise ValueError(
                f"Invalid fee rate {self.fee_numerator}/{self.fee_denominator}"
            )


# Default configuration instance
DEFAULT_ENGINE_CONFIG = EngineConfig()
