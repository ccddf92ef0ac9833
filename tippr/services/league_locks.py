"""
Per-league mutual exclusion for the aggregation and rank phase.

Rank assignment copies the current rank into ``previous_rank`` and then
overwrites it, so two writers on the same league must not interleave. Locks
are handed out per league id and always taken in ascending id order.
"""

import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class LeagueLockRegistry:
    def __init__(self):
        self._locks = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, league_id):
        with self._registry_lock:
            lock = self._locks.get(league_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[league_id] = lock
            return lock

    @contextmanager
    def hold(self, league_ids):
        """Hold the locks of every league in ``league_ids`` for the block"""
        ordered = sorted(set(league_ids))
        acquired = []
        try:
            for league_id in ordered:
                lock = self.lock_for(league_id)
                lock.acquire()
                acquired.append(lock)
            if ordered:
                logger.debug(f"Holding league locks {ordered}")
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self):
        with self._registry_lock:
            return len(self._locks)


league_locks = LeagueLockRegistry()
