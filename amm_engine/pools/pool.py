"""Pool state for one trading pair."""

from __future__ import annotations

from dataclasses import dataclass, replace

from amm_engine.models.types import normalize_address


@dataclass
class Pool:
    """Reserve and share state of a constant-product pool.

    token_a < token_b always holds (canonical order). Reserves and
    total_shares are either all zero or all positive.
    """

    pool_id: str
    token_a: str
    token_b: str
    reserve_a: int = 0
    reserve_b: int = 0
    total_shares: int = 0
    # Pools are never deleted, only drained to zero
    exists: bool = True

    def is_token_a(self, token: str) -> bool:
        """True if token is the canonical first asset.

        Raises:
            ValueError: If token is not in the pool
        """
        token_norm = normalize_address(token)
        if token_norm == self.token_a:
            return True
        if token_norm == self.token_b:
            return False
        raise ValueError(f"Token {token} not in pool")

    def get_reserves(self, token_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        if self.is_token_a(token_in):
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def get_token_out(self, token_in: str) -> str:
        """Get the output token for a given input token."""
        return self.token_b if self.is_token_a(token_in) else self.token_a

    def snapshot(self) -> Pool:
        """Copy of the current state."""
        return replace(self)

    def restore(self, snapshot: Pool) -> None:
        """Reset mutable state from a snapshot of the same pool."""
        self.reserve_a = snapshot.reserve_a
        self.reserve_b = snapshot.reserve_b
        self.total_shares = snapshot.total_shares
