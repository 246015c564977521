"""Liquidity and swap engine.

Mutates pool reserves and the share ledger for the three state transitions
of a constant-product pool:

- add_liquidity: deposit both assets, receive shares
    first deposit:  issued = isqrt(amount_a * amount_b)
    later deposits: issued = min(amount_a * total / reserve_a,
                                 amount_b * total / reserve_b)
- remove_liquidity: burn shares, withdraw pro rata (floor division)
- swap: exact input, priced by quote_output with the configured fee

Every mutating operation runs under its pool's lock inside a rollback
journal, so either every step commits (reserves, ledger, transfers, share
token, event) or none does. Terminal conditions are returned as error
results, never raised past this module.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from amm_engine.collaborators import AssetTransferService, EventSink, ShareTokenLedger
from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.errors import (
    AMMError,
    IdenticalAssets,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientShares,
    InvalidAccount,
    SlippageExceeded,
    ZeroAmount,
)
from amm_engine.ledger import ShareLedger
from amm_engine.locking import PoolLocks
from amm_engine.math import integer_sqrt, quote_input, quote_output
from amm_engine.models.events import LiquidityAdded, LiquidityRemoved, TokensSwapped
from amm_engine.models.types import is_valid_address, normalize_address
from amm_engine.pools import Pool, PoolRegistry
from amm_engine.results import CreatePoolResult, LiquidityResult, OperationResult, SwapResult
from amm_engine.safe_int import S
from amm_engine.transaction import Transaction, transaction

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class EngineState:
    """Everything the engine mutates: the pool table and the share ledger."""

    registry: PoolRegistry
    ledger: ShareLedger = field(default_factory=ShareLedger)


def _validate_account(account: str) -> str:
    if not isinstance(account, str):
        raise InvalidAccount(f"Account must be a string, got {type(account).__name__}")
    account_norm = normalize_address(account)
    if not is_valid_address(account_norm):
        raise InvalidAccount(f"Malformed account: {account}")
    return account_norm


def _require_amount(amount: int, name: str) -> int:
    """Validate an amount as a positive uint256."""
    value = S(amount).value
    if value == 0:
        raise ZeroAmount(f"{name} must be positive")
    return value


class AMMEngine:
    """Constant-product AMM state machine.

    The engine owns no assets. It authorizes balance movements through the
    transfer collaborator, mirrors share issuance to the share token, and
    notifies the event sink.
    """

    def __init__(
        self,
        transfers: AssetTransferService,
        share_token: ShareTokenLedger,
        events: EventSink,
        state: EngineState | None = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> None:
        """Create an engine.

        Args:
            transfers: Moves assets between accounts and pool custody
            share_token: External share token mirroring the ledger
            events: Receives one notification per committed operation
            state: Existing pool table and ledger. If None, a fresh state is
                created whose registry emits to ``events``.
            config: Fee and verification settings
        """
        self.transfers = transfers
        self.share_token = share_token
        self.events = events
        self.state = state if state is not None else EngineState(registry=PoolRegistry(events))
        self.config = config
        self._locks = PoolLocks()
        # pool_id -> state before the in-flight operation first mutated it
        self._committed: dict[str, Pool] = {}

    @property
    def registry(self) -> PoolRegistry:
        return self.state.registry

    @property
    def ledger(self) -> ShareLedger:
        return self.state.ledger

    # ------------------------------------------------------------------
    # Result boundary
    # ------------------------------------------------------------------

    def _run(self, operation: str, body: Callable[[], T]) -> OperationResult[T]:
        """Run an operation body, converting engine errors into results."""
        try:
            value = body()
        except AMMError as exc:
            logger.warning(
                "operation_rejected",
                operation=operation,
                error=exc.kind.value,
                detail=str(exc),
            )
            return OperationResult.from_exception(exc)
        return OperationResult.ok(value)

    @contextmanager
    def _operation(self, pool: Pool, name: str) -> Iterator[Transaction]:
        """Hold the pool and open a rollback journal for one mutation."""
        with self._locks.hold(pool.pool_id):
            try:
                with transaction(name) as txn:
                    yield txn
            finally:
                self._committed.pop(pool.pool_id, None)

    def _view(self, pool: Pool) -> Pool:
        """The pool as of its last committed operation.

        Only differs from ``pool`` while the calling thread is inside an
        operation on it, e.g. in a collaborator callback.
        """
        return self._committed.get(pool.pool_id, pool)

    def _after_commit(self, pool: Pool) -> None:
        if not self.config.verify_invariants:
            return
        # check_invariants takes the pool lock, so it sees a settled pool
        violations = self.check_invariants(pool.pool_id)
        if violations:
            logger.error(
                "invariant_violation",
                pool_id=pool.pool_id[-8:],
                violations=violations,
            )

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def create_pool(self, token_a: str, token_b: str) -> OperationResult[CreatePoolResult]:
        """Register a pool for a pair. See PoolRegistry.create_pool."""
        return self._run("create_pool", lambda: self.registry.create_pool(token_a, token_b))

    def add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        provider: str,
    ) -> OperationResult[LiquidityResult]:
        """Deposit both assets of a pair and issue shares to the provider.

        Amounts follow the caller's token order. A deposit off the current
        reserve ratio is accepted, but shares are capped by the side that
        contributes proportionally less; the surplus stays in the pool.

        Args:
            token_a: First asset (any order)
            token_b: Second asset
            amount_a: Amount of token_a to deposit
            amount_b: Amount of token_b to deposit
            provider: Account funding the deposit and receiving shares

        Returns:
            LiquidityResult (canonical order, shares = issued) or an error:
            pool_not_found, zero_amount, insufficient_liquidity,
            transfer_failed, overflow, reentrant_call
        """
        return self._run(
            "add_liquidity",
            lambda: self._add_liquidity(token_a, token_b, amount_a, amount_b, provider),
        )

    def _add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        provider: str,
    ) -> LiquidityResult:
        pool = self.registry.require_pool_for_pair(token_a, token_b)
        provider = _validate_account(provider)
        amount_a = _require_amount(amount_a, "amount_a")
        amount_b = _require_amount(amount_b, "amount_b")

        # Map caller order onto the canonical pool sides
        if pool.is_token_a(token_a):
            amount0, amount1 = amount_a, amount_b
        else:
            amount0, amount1 = amount_b, amount_a

        with self._operation(pool, "add_liquidity") as txn:
            self._transfer_in(txn, pool.token_a, provider, amount0)
            self._transfer_in(txn, pool.token_b, provider, amount1)

            if pool.total_shares == 0:
                issued = integer_sqrt((S(amount0) * S(amount1)).value)
            else:
                total = S(pool.total_shares)
                issued = (
                    ((S(amount0) * total) // S(pool.reserve_a))
                    .min((S(amount1) * total) // S(pool.reserve_b))
                    .value
                )
            if issued == 0:
                raise InsufficientLiquidity(
                    f"Deposit of {amount0}/{amount1} issues no shares"
                )

            new_reserve_a = (S(pool.reserve_a) + S(amount0)).value
            new_reserve_b = (S(pool.reserve_b) + S(amount1)).value
            new_total = (S(pool.total_shares) + S(issued)).value

            self._mutate_pool(txn, pool, new_reserve_a, new_reserve_b, new_total)
            self._credit_shares(txn, pool, provider, issued)

            self.events.emit(
                LiquidityAdded(
                    pool_id=pool.pool_id,
                    provider=provider,
                    amount_a=amount0,
                    amount_b=amount1,
                    issued=issued,
                )
            )

        logger.info(
            "liquidity_added",
            pool_id=pool.pool_id[-8:],
            provider=provider[-8:],
            amount_a=amount0,
            amount_b=amount1,
            issued=issued,
            total_shares=pool.total_shares,
        )
        self._after_commit(pool)
        return LiquidityResult(
            pool_id=pool.pool_id,
            provider=provider,
            token_a=pool.token_a,
            token_b=pool.token_b,
            amount_a=amount0,
            amount_b=amount1,
            shares=issued,
        )

    def remove_liquidity(
        self,
        token_a: str,
        token_b: str,
        shares: int,
        provider: str,
    ) -> OperationResult[LiquidityResult]:
        """Burn shares and pay out the provider's pro-rata reserves.

        Payouts are floored, so the pool never overpays on withdrawal.

        Returns:
            LiquidityResult (canonical order, shares = burned) or an error:
            pool_not_found, zero_amount, insufficient_shares,
            insufficient_liquidity_burned, transfer_failed, reentrant_call
        """
        return self._run(
            "remove_liquidity",
            lambda: self._remove_liquidity(token_a, token_b, shares, provider),
        )

    def _remove_liquidity(
        self,
        token_a: str,
        token_b: str,
        shares: int,
        provider: str,
    ) -> LiquidityResult:
        pool = self.registry.require_pool_for_pair(token_a, token_b)
        provider = _validate_account(provider)
        shares = _require_amount(shares, "shares")

        with self._operation(pool, "remove_liquidity") as txn:
            held = self.ledger.balance_of(pool.pool_id, provider)
            if held < shares:
                raise InsufficientShares(
                    f"Provider {provider[-8:]} holds {held} shares, requested {shares}"
                )

            amount0, amount1 = self._pro_rata(pool, shares)
            if amount0 == 0 or amount1 == 0:
                raise InsufficientLiquidityBurned(
                    f"Burning {shares} shares pays out {amount0}/{amount1}"
                )

            self._debit_shares(txn, pool, provider, shares)
            self._mutate_pool(
                txn,
                pool,
                (S(pool.reserve_a) - S(amount0)).value,
                (S(pool.reserve_b) - S(amount1)).value,
                (S(pool.total_shares) - S(shares)).value,
            )
            self._transfer_out(txn, pool.token_a, provider, amount0)
            self._transfer_out(txn, pool.token_b, provider, amount1)

            self.events.emit(
                LiquidityRemoved(
                    pool_id=pool.pool_id,
                    provider=provider,
                    amount_a=amount0,
                    amount_b=amount1,
                    shares=shares,
                )
            )

        logger.info(
            "liquidity_removed",
            pool_id=pool.pool_id[-8:],
            provider=provider[-8:],
            amount_a=amount0,
            amount_b=amount1,
            shares=shares,
            total_shares=pool.total_shares,
        )
        self._after_commit(pool)
        return LiquidityResult(
            pool_id=pool.pool_id,
            provider=provider,
            token_a=pool.token_a,
            token_b=pool.token_b,
            amount_a=amount0,
            amount_b=amount1,
            shares=shares,
        )

    def swap(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        min_amount_out: int,
        trader: str,
    ) -> OperationResult[SwapResult]:
        """Swap an exact input amount for as much output as the curve gives.

        Args:
            token_in: Asset the trader sells
            token_out: Asset the trader buys
            amount_in: Exact input amount
            min_amount_out: Minimum acceptable output (slippage protection)
            trader: Account paying the input and receiving the output

        Returns:
            SwapResult or an error: identical_assets, zero_amount,
            pool_not_found, slippage_exceeded, insufficient_liquidity,
            transfer_failed, reentrant_call
        """
        return self._run(
            "swap",
            lambda: self._swap(token_in, token_out, amount_in, min_amount_out, trader),
        )

    def _swap(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        min_amount_out: int,
        trader: str,
    ) -> SwapResult:
        if normalize_address(token_in) == normalize_address(token_out):
            raise IdenticalAssets(f"Cannot swap {token_in} for itself")
        amount_in = _require_amount(amount_in, "amount_in")
        min_amount_out = S(min_amount_out).value

        pool = self.registry.require_pool_for_pair(token_in, token_out)
        trader = _validate_account(trader)
        token_in = normalize_address(token_in)
        token_out = pool.get_token_out(token_in)

        with self._operation(pool, "swap") as txn:
            reserve_in, reserve_out = pool.get_reserves(token_in)
            amount_out = quote_output(
                amount_in,
                reserve_in,
                reserve_out,
                self.config.fee_numerator,
                self.config.fee_denominator,
            )
            if amount_out < min_amount_out:
                raise SlippageExceeded(
                    f"Output {amount_out} below minimum {min_amount_out}"
                )
            if amount_out >= reserve_out:
                raise InsufficientLiquidity(
                    f"Output {amount_out} would drain reserve {reserve_out}"
                )

            self._transfer_in(txn, token_in, trader, amount_in)
            self._transfer_out(txn, token_out, trader, amount_out)

            new_in = (S(reserve_in) + S(amount_in)).value
            new_out = (S(reserve_out) - S(amount_out)).value
            if pool.is_token_a(token_in):
                self._mutate_pool(txn, pool, new_in, new_out, pool.total_shares)
            else:
                self._mutate_pool(txn, pool, new_out, new_in, pool.total_shares)

            self.events.emit(
                TokensSwapped(
                    pool_id=pool.pool_id,
                    trader=trader,
                    asset_in=token_in,
                    amount_in=amount_in,
                    amount_out=amount_out,
                )
            )

        logger.info(
            "tokens_swapped",
            pool_id=pool.pool_id[-8:],
            trader=trader[-8:],
            token_in=token_in[-8:],
            amount_in=amount_in,
            amount_out=amount_out,
        )
        self._after_commit(pool)
        return SwapResult(
            pool_id=pool.pool_id,
            trader=trader,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
        )

    # ------------------------------------------------------------------
    # Journaled steps
    # ------------------------------------------------------------------

    def _transfer_in(self, txn: Transaction, asset: str, account: str, amount: int) -> None:
        self.transfers.transfer_in(asset, account, amount)
        txn.on_rollback(
            "transfer_in",
            lambda: self.transfers.transfer_out(asset, account, amount),
        )

    def _transfer_out(self, txn: Transaction, asset: str, account: str, amount: int) -> None:
        self.transfers.transfer_out(asset, account, amount)
        txn.on_rollback(
            "transfer_out",
            lambda: self.transfers.transfer_in(asset, account, amount),
        )

    def _mutate_pool(
        self,
        txn: Transaction,
        pool: Pool,
        reserve_a: int,
        reserve_b: int,
        total_shares: int,
    ) -> None:
        snapshot = pool.snapshot()
        self._committed.setdefault(pool.pool_id, snapshot)
        txn.on_rollback("pool_state", lambda: pool.restore(snapshot))
        pool.reserve_a = reserve_a
        pool.reserve_b = reserve_b
        pool.total_shares = total_shares

    def _credit_shares(self, txn: Transaction, pool: Pool, account: str, amount: int) -> None:
        previous = self.ledger.entry(pool.pool_id, account)
        self.ledger.credit(pool.pool_id, account, amount)
        txn.on_rollback(
            "ledger_credit",
            lambda: self.ledger.restore(pool.pool_id, account, previous),
        )
        self.share_token.mint(pool.pool_id, account, amount)
        txn.on_rollback("mint", lambda: self.share_token.burn(pool.pool_id, account, amount))

    def _debit_shares(self, txn: Transaction, pool: Pool, account: str, amount: int) -> None:
        previous = self.ledger.entry(pool.pool_id, account)
        self.ledger.debit(pool.pool_id, account, amount)
        txn.on_rollback(
            "ledger_debit",
            lambda: self.ledger.restore(pool.pool_id, account, previous),
        )
        self.share_token.burn(pool.pool_id, account, amount)
        txn.on_rollback("burn", lambda: self.share_token.mint(pool.pool_id, account, amount))

    @staticmethod
    def _pro_rata(pool: Pool, shares: int) -> tuple[int, int]:
        if pool.total_shares == 0:
            return 0, 0
        total = S(pool.total_shares)
        amount0 = (S(shares) * S(pool.reserve_a)) // total
        amount1 = (S(shares) * S(pool.reserve_b)) // total
        return amount0.value, amount1.value

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------
    #
    # Quotes read the last committed state of a pool. Called from inside an
    # operation on the same pool (a collaborator callback), they see the pool
    # as it was before that operation started.

    def _quote_pool(self, token_in: str, token_out: str) -> Pool | None:
        if normalize_address(token_in) == normalize_address(token_out):
            return None
        return self.registry.get_pool_for_pair(token_in, token_out)

    def get_amount_out(self, token_in: str, token_out: str, amount_in: int) -> int:
        """Quote the output swap() would produce right now.

        Returns 0 when the pair has no pool or the pool is empty.
        """
        pool = self._quote_pool(token_in, token_out)
        if pool is None:
            return 0
        with self._locks.read(pool.pool_id):
            reserve_in, reserve_out = self._view(pool).get_reserves(token_in)
        amount_out = quote_output(
            amount_in,
            reserve_in,
            reserve_out,
            self.config.fee_numerator,
            self.config.fee_denominator,
        )
        logger.debug(
            "quote_amount_out",
            pool_id=pool.pool_id[-8:],
            amount_in=amount_in,
            amount_out=amount_out,
        )
        return amount_out

    def get_amount_in(self, token_in: str, token_out: str, amount_out: int) -> int:
        """Quote the input needed to receive at least amount_out.

        Returns 0 when the pair has no pool, UINT256_MAX when the output
        cannot be reached.
        """
        pool = self._quote_pool(token_in, token_out)
        if pool is None:
            return 0
        with self._locks.read(pool.pool_id):
            reserve_in, reserve_out = self._view(pool).get_reserves(token_in)
        return quote_input(
            amount_out,
            reserve_in,
            reserve_out,
            self.config.fee_numerator,
            self.config.fee_denominator,
        )

    def get_reserves(self, token_a: str, token_b: str) -> tuple[int, int]:
        """Reserves of a pair in the caller's token order.

        Raises:
            PoolNotFound: If the pair has no pool
        """
        pool = self.registry.require_pool_for_pair(token_a, token_b)
        with self._locks.read(pool.pool_id):
            view = self._view(pool)
            if view.is_token_a(token_a):
                return view.reserve_a, view.reserve_b
            return view.reserve_b, view.reserve_a

    def share_balance(self, pool_id: str, account: str) -> int:
        return self.ledger.balance_of(pool_id.lower(), account)

    def quote_remove_liquidity(self, pool_id: str, shares: int) -> tuple[int, int]:
        """Preview the canonical-order payout for burning shares.

        Raises:
            PoolNotFound: If no pool has this identifier
        """
        pool = self.registry.get_pool(pool_id)
        with self._locks.read(pool.pool_id):
            return self._pro_rata(self._view(pool), shares)

    def check_invariants(self, pool_id: str) -> list[str]:
        """Return descriptions of any violated pool invariants (empty if sound).

        Checks reserve/share emptiness, ledger sum versus total_shares and,
        when the share token exposes balance_of, per-holder parity.
        """
        pool = self.registry.get_pool(pool_id)
        with self._locks.read(pool.pool_id):
            return self._violations(pool)

    def _violations(self, pool: Pool) -> list[str]:
        violations: list[str] = []

        empty_reserves = pool.reserve_a == 0 and pool.reserve_b == 0
        if empty_reserves != (pool.total_shares == 0):
            violations.append(
                f"reserves ({pool.reserve_a}, {pool.reserve_b}) inconsistent with "
                f"total_shares {pool.total_shares}"
            )
        if (pool.reserve_a == 0) != (pool.reserve_b == 0):
            violations.append(f"one-sided reserves ({pool.reserve_a}, {pool.reserve_b})")

        ledger_total = self.ledger.total(pool.pool_id)
        if ledger_total != pool.total_shares:
            violations.append(f"ledger sum {ledger_total} != total_shares {pool.total_shares}")

        balance_of = getattr(self.share_token, "balance_of", None)
        if callable(balance_of):
            for account, balance in self.ledger.holders(pool.pool_id):
                token_balance = balance_of(pool.pool_id, account)
                if token_balance != balance:
                    violations.append(
                        f"share token balance {token_balance} != ledger {balance} "
                        f"for {account}"
                    )
        return violations
