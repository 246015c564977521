"""Per-pool serialization and reentrancy rejection."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from amm_engine.collaborators import InMemoryAssetBank
from amm_engine.errors import ErrorKind
from amm_engine.simulation import Simulation
from tests.helpers import ALICE, BOB, CAROL, DAI, TOKEN_X, TOKEN_Y, USDC, WETH, fund, make_pool
from tests.helpers.factories import snapshot_state
from tests.helpers.fakes import ExplodingEventSink, make_simulation


class ReentrantBank(InMemoryAssetBank):
    """Bank whose first transfer in the given direction calls back into the engine."""

    def __init__(self, direction: str = "in") -> None:
        super().__init__()
        self.direction = direction
        self.callback = None
        self.inner_results: list = []

    def _fire(self, direction: str) -> None:
        if direction == self.direction and self.callback is not None:
            callback, self.callback = self.callback, None
            self.inner_results.append(callback())

    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        super().transfer_in(asset, sender, amount)
        self._fire("in")

    def transfer_out(self, asset: str, recipient: str, amount: int) -> None:
        super().transfer_out(asset, recipient, amount)
        self._fire("out")


class TestSerialization:
    def test_concurrent_swaps_keep_books_balanced(self, sim: Simulation):
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 10**12, 4 * 10**12)
        traders = [BOB, CAROL]
        for trader in traders:
            fund(sim, trader, TOKEN_X, TOKEN_Y)

        def trade(i: int):
            trader = traders[i % 2]
            if i % 3:
                return sim.engine.swap(TOKEN_X, TOKEN_Y, 10**6 + i, 0, trader)
            return sim.engine.swap(TOKEN_Y, TOKEN_X, 4 * 10**6 + i, 0, trader)

        with ThreadPoolExecutor(max_workers=8) as pool_executor:
            results = list(pool_executor.map(trade, range(200)))

        assert all(r.is_valid for r in results)
        pool = sim.engine.registry.get_pool(pool_id)
        # Custody holds exactly the reserves
        assert sim.bank.balance_of(TOKEN_X, sim.bank.custody) == pool.reserve_a
        assert sim.bank.balance_of(TOKEN_Y, sim.bank.custody) == pool.reserve_b
        assert pool.reserve_a * pool.reserve_b >= 10**12 * 4 * 10**12
        assert len(sim.events.events) == 2 + 200
        assert sim.engine.check_invariants(pool_id) == []

    def test_concurrent_providers(self, sim: Simulation):
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 10**9, 10**9)
        providers = [BOB, CAROL]
        for provider in providers:
            fund(sim, provider, TOKEN_X, TOKEN_Y)

        def provide(i: int):
            provider = providers[i % 2]
            added = sim.engine.add_liquidity(TOKEN_X, TOKEN_Y, 1000, 1000, provider).unwrap()
            return sim.engine.remove_liquidity(TOKEN_X, TOKEN_Y, added.shares // 2, provider)

        with ThreadPoolExecutor(max_workers=8) as pool_executor:
            results = list(pool_executor.map(provide, range(100)))

        assert all(r.is_valid for r in results)
        assert sim.engine.check_invariants(pool_id) == []

    def test_independent_pools(self, sim: Simulation):
        first = make_pool(sim, WETH, USDC, 10**12, 10**12)
        second = make_pool(sim, WETH, DAI, 10**12, 10**12)
        fund(sim, BOB, WETH, USDC, DAI)
        barrier = threading.Barrier(2)

        def run(token_out: str):
            barrier.wait()
            return [sim.engine.swap(WETH, token_out, 1000, 0, BOB) for _ in range(50)]

        with ThreadPoolExecutor(max_workers=2) as pool_executor:
            outcomes = list(pool_executor.map(run, [USDC, DAI]))

        assert all(r.is_valid for batch in outcomes for r in batch)
        assert sim.engine.check_invariants(first) == []
        assert sim.engine.check_invariants(second) == []


class TestReentrancy:
    def test_reentrant_swap_rejected(self):
        bank = ReentrantBank()
        sim = make_simulation(bank=bank)
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        fund(sim, BOB, TOKEN_X, TOKEN_Y)
        bank.callback = lambda: sim.engine.swap(TOKEN_X, TOKEN_Y, 50, 0, BOB)

        outer = sim.engine.swap(TOKEN_X, TOKEN_Y, 100, 0, BOB)

        assert outer.is_valid
        assert outer.value.amount_out == 362
        [inner] = bank.inner_results
        assert inner.error == ErrorKind.REENTRANT_CALL
        pool = sim.engine.registry.get_pool(pool_id)
        assert (pool.reserve_a, pool.reserve_b) == (1100, 3638)

    def test_read_from_callback_sees_committed_reserves(self):
        """A quote from inside a transfer succeeds and prices the pre-swap pool."""
        bank = ReentrantBank()
        sim = make_simulation(bank=bank)
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        fund(sim, BOB, TOKEN_X, TOKEN_Y)
        bank.callback = lambda: sim.engine.get_amount_out(TOKEN_X, TOKEN_Y, 100)

        outer = sim.engine.swap(TOKEN_X, TOKEN_Y, 100, 0, BOB)

        assert outer.is_valid
        assert bank.inner_results == [362]
        pool = sim.engine.registry.get_pool(pool_id)
        assert (pool.reserve_a, pool.reserve_b) == (1100, 3638)
        assert sim.bank.balance_of(TOKEN_X, sim.bank.custody) == 1100
        assert sim.bank.balance_of(TOKEN_Y, sim.bank.custody) == 3638
        assert sim.engine.check_invariants(pool_id) == []

    def test_read_during_payout_sees_pre_operation_state(self):
        """Reserves are already debited when payouts run; reads still see the old pool."""
        bank = ReentrantBank(direction="out")
        sim = make_simulation(bank=bank)
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        bank.callback = lambda: (
            sim.engine.get_reserves(TOKEN_Y, TOKEN_X),
            sim.engine.quote_remove_liquidity(pool_id, 1000),
            sim.engine.get_amount_in(TOKEN_X, TOKEN_Y, 362),
        )

        result = sim.engine.remove_liquidity(TOKEN_X, TOKEN_Y, 1000, ALICE)

        assert result.is_valid
        assert bank.inner_results == [((4000, 1000), (500, 2000), 100)]
        assert sim.engine.get_reserves(TOKEN_X, TOKEN_Y) == (500, 2000)

    def test_failed_operation_restores_custody(self):
        """A read during transfer_in does not stop a later failure from refunding the trader."""
        bank = ReentrantBank()
        events = ExplodingEventSink(explode_on=set())
        sim = make_simulation(bank=bank, events=events)
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        fund(sim, BOB, TOKEN_X, TOKEN_Y)
        before = snapshot_state(sim, pool_id, BOB)
        bank.callback = lambda: sim.engine.get_reserves(TOKEN_X, TOKEN_Y)
        events.explode_on = {"tokensSwapped"}

        with pytest.raises(RuntimeError, match="event sink unavailable"):
            sim.engine.swap(TOKEN_X, TOKEN_Y, 100, 0, BOB)

        assert bank.inner_results == [(1000, 4000)]
        assert snapshot_state(sim, pool_id, BOB) == before

    def test_other_pool_allowed_from_callback(self):
        bank = ReentrantBank()
        sim = make_simulation(bank=bank)
        make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        make_pool(sim, WETH, USDC, 1000, 4000)
        fund(sim, BOB, TOKEN_X, TOKEN_Y, WETH, USDC)
        bank.callback = lambda: sim.engine.swap(WETH, USDC, 10, 0, BOB)

        outer = sim.engine.swap(TOKEN_X, TOKEN_Y, 100, 0, BOB)

        assert outer.is_valid
        assert bank.inner_results[0].is_valid

    def test_lock_released_after_rejection(self):
        bank = ReentrantBank()
        sim = make_simulation(bank=bank)
        make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        fund(sim, ALICE, TOKEN_X, TOKEN_Y)
        bank.callback = lambda: sim.engine.add_liquidity(TOKEN_X, TOKEN_Y, 10, 40, ALICE)

        first = sim.engine.swap(TOKEN_X, TOKEN_Y, 100, 0, ALICE)

        assert first.is_valid
        assert bank.inner_results[0].error == ErrorKind.REENTRANT_CALL
        assert sim.engine.swap(TOKEN_X, TOKEN_Y, 100, 0, ALICE).is_valid

    def test_invariant_check_waits_for_in_flight_operation(self):
        bank = ReentrantBank(direction="out")
        sim = make_simulation(bank=bank)
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        entered = threading.Event()
        release = threading.Event()
        bank.callback = lambda: (entered.set(), release.wait(timeout=5))
        checks: list[list[str]] = []

        remover = threading.Thread(
            target=lambda: sim.engine.remove_liquidity(TOKEN_X, TOKEN_Y, 1000, ALICE)
        )
        checker = threading.Thread(
            target=lambda: checks.append(sim.engine.check_invariants(pool_id))
        )
        remover.start()
        assert entered.wait(timeout=5)
        checker.start()
        time.sleep(0.05)
        # Blocked behind the remove until its payouts finish
        assert checks == []
        release.set()
        remover.join(timeout=5)
        checker.join(timeout=5)

        assert checks == [[]]
        assert sim.engine.get_reserves(TOKEN_X, TOKEN_Y) == (500, 2000)
