"""Rollback journal for all-or-nothing engine operations.

Each operation records how to undo every step it completes: restoring a pool
snapshot, reversing a transfer, burning a mint. If the operation fails, the
undo actions run newest-first and the original error propagates.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

import structlog

logger = structlog.get_logger()


class Transaction:
    """Undo log for a single engine operation."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._undo: list[tuple[str, Callable[[], None]]] = []
        self.committed = False

    def on_rollback(self, label: str, action: Callable[[], None]) -> None:
        """Register an undo action for a step that has just completed."""
        self._undo.append((label, action))

    def rollback(self) -> None:
        """Run all undo actions, newest first."""
        logger.debug("transaction_rollback", operation=self.name, steps=len(self._undo))
        while self._undo:
            label, action = self._undo.pop()
            try:
                action()
            except Exception:
                logger.exception("rollback_step_failed", operation=self.name, step=label)
                raise

    @property
    def step_count(self) -> int:
        return len(self._undo)


@contextmanager
def transaction(name: str) -> Iterator[Transaction]:
    """Open a transaction; roll it back if the block raises.

    Usage:
        with transaction("swap") as txn:
            bank.transfer_in(asset, trader, amount)
            txn.on_rollback("transfer_in", lambda: bank.transfer_out(asset, trader, amount))
    """
    txn = Transaction(name)
    try:
        yield txn
    except BaseException:
        txn.rollback()
        raise
    txn.committed = True
