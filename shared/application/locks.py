"""
Per-key mutexes

Process-local complement to ``SELECT ... FOR UPDATE``: serializes
check-then-insert sequences that target the same key inside one process,
including on database backends without row-level locks.
"""

from contextlib import contextmanager
from typing import Dict, Hashable, Iterable, Iterator, List
import logging
import threading

logger = logging.getLogger(__name__)


class LockTimeout(Exception):
    """Raised when a key could not be locked within the allowed time."""


class KeyedLockRegistry:
    """
    Registry of mutexes keyed by an arbitrary hashable value

    Locks are created on first use and dropped when no holder or waiter
    references them anymore. Several keys are always acquired in sorted
    order so two multi-key holders cannot deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._refcounts: Dict[Hashable, int] = {}

    def _checkout(self, key) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
                self._refcounts[key] = 0
            self._refcounts[key] += 1
            return lock

    def _checkin(self, key):
        with self._guard:
            self._refcounts[key] -= 1
            if self._refcounts[key] == 0:
                del self._refcounts[key]
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[Hashable], timeout: float = -1) -> Iterator[List[Hashable]]:
        """
        Hold the mutexes of all ``keys`` for the duration of the block

        Yields the sorted, de-duplicated key list. ``timeout`` applies to
        each key; -1 waits forever.
        """
        ordered = sorted(set(keys), key=str)
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                if not lock.acquire(timeout=timeout):
                    self._checkin(key)
                    raise LockTimeout(f"Timed out waiting for lock on {key}")
                acquired.append((key, lock))
            yield ordered
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Locks on catalog item ids, shared by every booking handler in the process
item_locks = KeyedLockRegistry()
