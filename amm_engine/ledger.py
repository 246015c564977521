"""Share ledger: per-pool ownership balances.

The ledger maps (pool_id, account) -> share balance. It knows nothing about
reserves; the engine owns it by composition and keeps it in step with each
pool's total_shares.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator

from amm_engine.errors import InsufficientShares
from amm_engine.models.types import normalize_address
from amm_engine.safe_int import S


class ShareLedger:
    """Fungible share accounting scoped by pool identifier.

    Entries are created on first credit and are kept (at zero) after a full
    withdrawal, so an account that once provided liquidity stays listed.
    """

    def __init__(self) -> None:
        self._balances: dict[str, dict[str, int]] = defaultdict(dict)

    def balance_of(self, pool_id: str, account: str) -> int:
        """Return the account's share balance (0 if never credited)."""
        return self._balances.get(pool_id, {}).get(normalize_address(account), 0)

    def credit(self, pool_id: str, account: str, amount: int) -> int:
        """Add shares to an account and return the new balance.

        Raises:
            Overflow: If the balance would exceed uint256
        """
        account = normalize_address(account)
        entries = self._balances[pool_id]
        new_balance = (S(entries.get(account, 0)) + S(amount)).value
        entries[account] = new_balance
        return new_balance

    def debit(self, pool_id: str, account: str, amount: int) -> int:
        """Remove shares from an account and return the new balance.

        Raises:
            InsufficientShares: If the account holds fewer than amount
        """
        account = normalize_address(account)
        current = self.balance_of(pool_id, account)
        if current < amount:
            raise InsufficientShares(
                f"Account {account} holds {current} shares, requested {amount}"
            )
        new_balance = current - amount
        self._balances[pool_id][account] = new_balance
        return new_balance

    def entry(self, pool_id: str, account: str) -> int | None:
        """Return the account's balance, or None if it has no entry yet."""
        return self._balances.get(pool_id, {}).get(normalize_address(account))

    def restore(self, pool_id: str, account: str, previous: int | None) -> None:
        """Put an entry back as entry() reported it. None removes the entry.

        Used to undo a credit or debit on rollback.
        """
        account = normalize_address(account)
        if previous is None:
            entries = self._balances.get(pool_id)
            if entries is not None:
                entries.pop(account, None)
                if not entries:
                    del self._balances[pool_id]
            return
        self._balances[pool_id][account] = S(previous).value

    def total(self, pool_id: str) -> int:
        """Sum of all account balances for a pool."""
        return sum(self._balances.get(pool_id, {}).values())

    def holders(self, pool_id: str) -> Iterator[tuple[str, int]]:
        """Iterate (account, balance) entries for a pool, zero balances included."""
        yield from self._balances.get(pool_id, {}).items()

    def __repr__(self) -> str:
        entries = sum(len(v) for v in self._balances.values())
        return f"ShareLedger({len(self._balances)} pools, {entries} entries)"
