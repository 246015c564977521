"""Pool registry: creation and lookup of pools by pair identifier.

Pools are keyed by pair_identifier(token_a, token_b), which is
order-independent, so callers may pass a pair in either order.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

import structlog

from amm_engine.collaborators import EventSink
from amm_engine.errors import IdenticalAssets, InvalidAsset, PoolAlreadyExists, PoolNotFound
from amm_engine.math import pair_identifier, sort_assets
from amm_engine.models.events import PoolCreated
from amm_engine.models.types import ZERO_ADDRESS, is_valid_address, normalize_address
from amm_engine.pools.pool import Pool
from amm_engine.results import CreatePoolResult

logger = structlog.get_logger()


def _validate_asset(asset: str) -> str:
    """Normalize an asset identifier, rejecting null or malformed ones."""
    if not isinstance(asset, str):
        raise InvalidAsset(f"Asset identifier must be a string, got {type(asset).__name__}")
    asset_norm = normalize_address(asset)
    if not is_valid_address(asset_norm):
        raise InvalidAsset(f"Malformed asset identifier: {asset}")
    if asset_norm == ZERO_ADDRESS:
        raise InvalidAsset("Null asset identifier")
    return asset_norm


class PoolRegistry:
    """Registry of constant-product pools.

    Owns the pool table. Pool creation is serialized by a registry-level
    lock; reads are lock-free dict lookups.
    """

    def __init__(self, events: EventSink | None = None) -> None:
        """Initialize an empty registry.

        Args:
            events: Sink notified with PoolCreated. If None, no notification
                is sent.
        """
        self._pools: dict[str, Pool] = {}
        self._events = events
        self._create_lock = threading.Lock()

    def create_pool(self, token_a: str, token_b: str) -> CreatePoolResult:
        """Register a pool for a pair.

        Args:
            token_a: First asset address (any order)
            token_b: Second asset address (any order)

        Returns:
            CreatePoolResult with the pool id and canonical token order

        Raises:
            IdenticalAssets: If both assets are the same
            InvalidAsset: If either asset is null or malformed
            PoolAlreadyExists: If the pair already has a pool
        """
        if isinstance(token_a, str) and isinstance(token_b, str):
            if normalize_address(token_a) == normalize_address(token_b):
                raise IdenticalAssets(f"Identical assets: {token_a}")
        token0, token1 = sort_assets(_validate_asset(token_a), _validate_asset(token_b))
        pool_id = pair_identifier(token0, token1)

        with self._create_lock:
            if pool_id in self._pools:
                raise PoolAlreadyExists(f"Pool already exists for {token0} / {token1}")
            event = PoolCreated(token_a=token0, token_b=token1, pool_id=pool_id)
            if self._events is not None:
                # Emit before inserting so a failing sink leaves no pool behind
                self._events.emit(event)
            self._pools[pool_id] = Pool(pool_id=pool_id, token_a=token0, token_b=token1)

        logger.info(
            "pool_created",
            pool_id=pool_id[-8:],
            token_a=token0[-8:],
            token_b=token1[-8:],
        )
        return CreatePoolResult(pool_id=pool_id, token_a=token0, token_b=token1)

    def get_pool(self, pool_id: str) -> Pool:
        """Get a pool by identifier.

        Raises:
            PoolNotFound: If no pool has this identifier
        """
        pool = self._pools.get(pool_id.lower())
        if pool is None:
            raise PoolNotFound(f"No pool with id {pool_id}")
        return pool

    def pool_exists(self, pool_id: str) -> bool:
        return pool_id.lower() in self._pools

    def get_pool_for_pair(self, token_a: str, token_b: str) -> Pool | None:
        """Get the pool for a token pair (order independent).

        Returns:
            Pool if found, None otherwise (including malformed addresses)
        """
        token_a_norm = normalize_address(token_a)
        token_b_norm = normalize_address(token_b)
        if not (is_valid_address(token_a_norm) and is_valid_address(token_b_norm)):
            return None
        return self._pools.get(pair_identifier(token_a_norm, token_b_norm))

    def require_pool_for_pair(self, token_a: str, token_b: str) -> Pool:
        """Get the pool for a token pair.

        Raises:
            PoolNotFound: If the pair has no pool
        """
        pool = self.get_pool_for_pair(token_a, token_b)
        if pool is None:
            raise PoolNotFound(f"No pool for {token_a} / {token_b}")
        return pool

    def pools(self) -> Iterator[Pool]:
        """Iterate over all registered pools."""
        yield from list(self._pools.values())

    @property
    def pool_count(self) -> int:
        """Return the number of pools in the registry."""
        return len(self._pools)
