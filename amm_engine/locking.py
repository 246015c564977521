"""Per-pool mutual exclusion with a reentrancy guard.

Mutating operations hold their pool's lock for the whole operation. A second
thread touching the same pool waits; the same thread re-entering the pool
(e.g. from a collaborator callback) is rejected with ReentrantCall instead of
deadlocking. Read-only queries use read(), which lets that thread through.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from amm_engine.errors import ReentrantCall

logger = structlog.get_logger()


class PoolLocks:
    """Lazily created lock per pool identifier."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        # pool_id -> thread ident currently inside the pool
        self._owners: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for key until the block exits, on every exit path.

        Raises:
            ReentrantCall: If the calling thread already holds this key
        """
        me = threading.get_ident()
        with self._guard:
            if self._owners.get(key) == me:
                logger.warning("reentrant_call_rejected", key=key[-8:])
                raise ReentrantCall(f"Reentrant call on {key}")
            lock = self._locks.setdefault(key, threading.Lock())

        lock.acquire()
        try:
            with self._guard:
                self._owners[key] = me
            yield
        finally:
            with self._guard:
                self._owners.pop(key, None)
            lock.release()

    @contextmanager
    def read(self, key: str) -> Iterator[None]:
        """Hold key for a read-only query.

        Unlike hold(), the thread already inside key is let through without
        waiting, so a collaborator callback can still read the pool.
        """
        me = threading.get_ident()
        with self._guard:
            if self._owners.get(key) == me:
                lock = None
            else:
                lock = self._locks.setdefault(key, threading.Lock())

        if lock is None:
            yield
            return
        with lock:
            yield

    def is_held(self, key: str) -> bool:
        """True if some thread is currently inside key."""
        with self._guard:
            return key in self._owners
