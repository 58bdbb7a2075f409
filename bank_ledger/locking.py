"""
Per-Record Lock Registry

Serializes read-modify-write cycles on individual aggregates (accounts by
account number, customers by id) within one process. Locks for several keys
are always taken in sorted order so two transfers touching the same pair of
accounts in opposite directions cannot deadlock.
"""

import threading
from contextlib import contextmanager, ExitStack
from typing import Dict, Hashable


class LockRegistry:
    """Hands out one re-entrant lock per key, created on first use"""

    def __init__(self, namespace: str = "default"):
        self.namespace = namespace
        self._locks: Dict[Hashable, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: Hashable):
        """
        Acquire the locks for all given keys for the duration of the block

        Duplicate keys are collapsed; acquisition order is sorted by the
        string form of the key.
        """
        ordered = sorted(set(keys), key=lambda k: (type(k).__name__, str(k)))
        with ExitStack() as stack:
            for key in ordered:
                stack.enter_context(self._lock_for(key))
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
