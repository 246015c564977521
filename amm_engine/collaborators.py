"""External collaborators of the engine.

The engine never moves assets or issues tokens itself. It calls into three
collaborators, defined here as Protocols, and ships in-memory
implementations that make the engine a self-contained simulator.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Protocol, runtime_checkable

import structlog

from amm_engine.errors import TransferFailed
from amm_engine.models.events import Event
from amm_engine.models.types import normalize_address
from amm_engine.safe_int import S

logger = structlog.get_logger()

# Account holding assets on behalf of all pools in the in-memory bank
DEFAULT_CUSTODY = "0x" + "c0" * 20


@runtime_checkable
class AssetTransferService(Protocol):
    """Moves assets between accounts and pool custody."""

    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        """Move amount of asset from sender into custody.

        Raises:
            TransferFailed: If the transfer cannot be made. Nothing is moved in that case
        """
        ...

    def transfer_out(self, asset: str, recipient: str, amount: int) -> None:
        """Move amount of asset from custody to recipient.

        Raises:
            TransferFailed: If the transfer cannot be made. Nothing is moved in that case
        """
        ...


@runtime_checkable
class ShareTokenLedger(Protocol):
    """External share token mirroring the engine's share ledger."""

    def mint(self, pool_id: str, account: str, amount: int) -> None: ...

    def burn(self, pool_id: str, account: str, amount: int) -> None: ...


@runtime_checkable
class EventSink(Protocol):
    """Receives structured notifications after each committed operation."""

    def emit(self, event: Event) -> None: ...


class InMemoryAssetBank:
    """Asset balances keyed by (asset, account), with a single custody account.

    Seed balances with deposit(); the engine then moves them with
    transfer_in/transfer_out.
    """

    def __init__(self, custody: str = DEFAULT_CUSTODY) -> None:
        self.custody = normalize_address(custody)
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._lock = threading.Lock()

    def balance_of(self, asset: str, account: str) -> int:
        return self._balances.get((normalize_address(asset), normalize_address(account)), 0)

    def deposit(self, asset: str, account: str, amount: int) -> None:
        """Credit an account out of thin air (simulation funding)."""
        key = (normalize_address(asset), normalize_address(account))
        with self._lock:
            self._balances[key] = (S(self._balances[key]) + S(amount)).value

    def _move(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        asset = normalize_address(asset)
        src = (asset, normalize_address(sender))
        dst = (asset, normalize_address(recipient))
        with self._lock:
            available = self._balances.get(src, 0)
            if available < amount:
                raise TransferFailed(
                    f"Insufficient {asset[-8:]} balance for {src[1][-8:]}: "
                    f"has {available}, needs {amount}"
                )
            self._balances[src] = available - amount
            self._balances[dst] = (S(self._balances[dst]) + S(amount)).value

    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        self._move(asset, sender, self.custody, amount)

    def transfer_out(self, asset: str, recipient: str, amount: int) -> None:
        self._move(asset, self.custody, recipient, amount)


class InMemoryShareToken:
    """Share token balances keyed by (pool_id, account)."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._supply: dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def balance_of(self, pool_id: str, account: str) -> int:
        return self._balances.get((pool_id, normalize_address(account)), 0)

    def total_supply(self, pool_id: str) -> int:
        return self._supply.get(pool_id, 0)

    def mint(self, pool_id: str, account: str, amount: int) -> None:
        key = (pool_id, normalize_address(account))
        with self._lock:
            self._balances[key] = (S(self._balances[key]) + S(amount)).value
            self._supply[pool_id] = (S(self._supply[pool_id]) + S(amount)).value

    def burn(self, pool_id: str, account: str, amount: int) -> None:
        key = (pool_id, normalize_address(account))
        with self._lock:
            held = self._balances.get(key, 0)
            if held < amount:
                raise TransferFailed(f"Cannot burn {amount} shares, {key[1][-8:]} holds {held}")
            self._balances[key] = held - amount
            self._supply[pool_id] -= amount


class RecordingEventSink:
    """Keeps every emitted event in order. Useful for tests and the API."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()


class LoggingEventSink:
    """Writes each event to the structured log."""

    def emit(self, event: Event) -> None:
        logger.info("amm_event", **event.model_dump(by_alias=True))
