"""
Per-key mutexes.

Serializes check-then-write sequences (e.g. batch block creation) per
(user, date) so two requests for the same day cannot both pass validation
against the same pre-write snapshot.
"""

import logging
import threading
from collections.abc import Generator, Hashable
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class KeyedLock:
    """
    Thread-safe registry of one lock per key.

    A key's lock lives only while some thread holds or waits for it, so the
    registry stays bounded by the number of concurrent requests.

    Usage:
        locks = KeyedLock()
        with locks.hold(("user-1", "2025-01-06")):
            ...
    """

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: Hashable) -> None:
        with self._registry_lock:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                # No holder or waiter left for this key
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Generator[None, None, None]:
        """Hold the lock for `key` for the duration of the block."""
        lock = self._checkout(key)
        try:
            lock.acquire()
            logger.debug("Acquired lock %r", key)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        with self._registry_lock:
            return len(self._locks)
