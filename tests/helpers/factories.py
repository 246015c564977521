"""Factory functions for setting up simulations in tests.

Usage:
    from tests.helpers import fund, make_pool

    sim = build_simulation()
    pool_id = make_pool(sim, TOKEN_X, TOKEN_Y, 1000, 4000)
"""

from amm_engine.simulation import Simulation
from tests.helpers.constants import ALICE, LARGE_BALANCE


def fund(sim: Simulation, account: str, *assets: str, amount: int = LARGE_BALANCE) -> None:
    """Give an account a balance of every listed asset."""
    for asset in assets:
        sim.bank.deposit(asset, account, amount)


def make_pool(
    sim: Simulation,
    token_a: str,
    token_b: str,
    amount_a: int | None = None,
    amount_b: int | None = None,
    provider: str = ALICE,
) -> str:
    """Create a pool and optionally seed it with liquidity from provider.

    The provider is funded automatically. Amounts follow the argument
    order of token_a/token_b.

    Returns:
        The pool identifier
    """
    created = sim.engine.create_pool(token_a, token_b).unwrap()
    if amount_a is not None and amount_b is not None:
        fund(sim, provider, token_a, token_b)
        sim.engine.add_liquidity(token_a, token_b, amount_a, amount_b, provider).unwrap()
    return created.pool_id


def snapshot_state(sim: Simulation, pool_id: str, *accounts: str) -> dict:
    """Everything an operation on pool_id may touch, for before/after comparison.

    Covers pool reserves and shares, the share ledger, share-token supply,
    the emitted events, and bank balances of custody plus each account.
    """
    pool = sim.engine.registry.get_pool(pool_id)
    holders = (sim.bank.custody, *accounts)
    return {
        "pool": (pool.reserve_a, pool.reserve_b, pool.total_shares),
        "ledger": dict(sim.engine.ledger.holders(pool_id)),
        "share_supply": sim.share_token.total_supply(pool_id),
        "share_balances": {a: sim.share_token.balance_of(pool_id, a) for a in accounts},
        "bank": {
            (token, a): sim.bank.balance_of(token, a)
            for token in (pool.token_a, pool.token_b)
            for a in holders
        },
        "events": len(sim.events.events),
    }
