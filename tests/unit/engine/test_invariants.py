"""Pool invariants across mixed sequences of operations."""

import pytest

from amm_engine.config import EngineConfig
from amm_engine.simulation import Simulation, build_simulation
from tests.helpers import ALICE, BOB, CAROL, LARGE_BALANCE, TOKEN_X, TOKEN_Y, fund, make_pool


def _scenario(sim: Simulation, pool_id: str) -> None:
    engine = sim.engine
    steps = [
        lambda: engine.add_liquidity(TOKEN_X, TOKEN_Y, 3_000, 12_000, BOB),
        lambda: engine.swap(TOKEN_X, TOKEN_Y, 250, 0, CAROL),
        lambda: engine.swap(TOKEN_Y, TOKEN_X, 7_777, 0, CAROL),
        lambda: engine.add_liquidity(TOKEN_Y, TOKEN_X, 1_000, 1_000, CAROL),
        lambda: engine.remove_liquidity(TOKEN_X, TOKEN_Y, 1_500, BOB),
        lambda: engine.swap(TOKEN_X, TOKEN_Y, 1, 0, BOB),
        lambda: engine.remove_liquidity(TOKEN_X, TOKEN_Y, 10**9, ALICE),
        lambda: engine.swap(TOKEN_X, TOKEN_X, 1, 0, BOB),
    ]
    for step in steps:
        step()
        assert engine.check_invariants(pool_id) == []


class TestInvariants:
    def test_mixed_sequence(self, sim: Simulation):
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        fund(sim, BOB, TOKEN_X, TOKEN_Y)
        fund(sim, CAROL, TOKEN_X, TOKEN_Y)
        _scenario(sim, pool_id)

        pool = sim.engine.registry.get_pool(pool_id)
        assert sim.bank.balance_of(TOKEN_X, sim.bank.custody) == pool.reserve_a
        assert sim.bank.balance_of(TOKEN_Y, sim.bank.custody) == pool.reserve_b
        assert sim.share_token.total_supply(pool_id) == pool.total_shares

    @pytest.mark.parametrize(
        "amounts", [(1000, 4000), (1, 1), (10**18, 3 * 10**6), (999, 1001)]
    )
    def test_add_then_remove_never_profits(self, sim: Simulation, amounts):
        make_pool(sim, TOKEN_X, TOKEN_Y, 7_000, 21_000)
        fund(sim, BOB, TOKEN_X, TOKEN_Y)

        added = sim.engine.add_liquidity(TOKEN_X, TOKEN_Y, *amounts, BOB)
        if added.is_error:
            return
        removed = sim.engine.remove_liquidity(TOKEN_X, TOKEN_Y, added.value.shares, BOB)

        if removed.is_valid:
            assert removed.value.amount_a <= amounts[0]
            assert removed.value.amount_b <= amounts[1]
        assert sim.bank.balance_of(TOKEN_X, BOB) <= LARGE_BALANCE
        assert sim.bank.balance_of(TOKEN_Y, BOB) <= LARGE_BALANCE

    def test_detects_tampering(self, sim: Simulation):
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        pool = sim.engine.registry.get_pool(pool_id)

        pool.total_shares += 1
        pool.reserve_b = 0

        violations = sim.engine.check_invariants(pool_id)
        assert any("one-sided" in v for v in violations)
        assert any("ledger sum" in v for v in violations)

    def test_share_token_drift(self, sim: Simulation):
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        sim.share_token.mint(pool_id, ALICE, 1)

        [violation] = sim.engine.check_invariants(pool_id)
        assert "share token" in violation

    def test_verification_logs_nothing_when_sound(self):
        sim = build_simulation(EngineConfig(verify_invariants=True))
        pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        fund(sim, BOB, TOKEN_X, TOKEN_Y)
        fund(sim, CAROL, TOKEN_X, TOKEN_Y)
        _scenario(sim, pool_id)


class TestFeeConfig:
    def test_custom_fee(self):
        sim = build_simulation(EngineConfig(fee_numerator=0, fee_denominator=1000))
        make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
        fund(sim, BOB, TOKEN_X)

        result = sim.engine.swap(TOKEN_X, TOKEN_Y, 100, 0, BOB).unwrap()

        assert result.amount_out == 100 * 4000 // 1100

    def test_invalid_fee(self):
        with pytest.raises(ValueError):
            EngineConfig(fee_numerator=1000, fee_denominator=1000)
