import logging
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class FifoLock:
    """
    A non-reentrant lock that admits waiters strictly in arrival order.

    threading.Lock makes no fairness promise, so two racing capacity updates for
    the same mentor could otherwise apply out of submission order.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._next_ticket = 0
        self._serving = 0
        self._abandoned = set()

    def acquire(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            if not self._cond.wait_for(lambda: self._serving == ticket, timeout=timeout):
                # Give the slot up so later tickets are not blocked forever
                self._abandon(ticket)
                return False
            return True

    def _abandon(self, ticket: int):
        # Called with the condition held; release() skips over abandoned tickets
        self._abandoned.add(ticket)

    def release(self):
        with self._cond:
            self._serving += 1
            while self._serving in self._abandoned:
                self._abandoned.discard(self._serving)
                self._serving += 1
            self._cond.notify_all()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


class MentorLockRegistry:
    """Hands out one FifoLock per mentor id for the lifetime of the process."""

    def __init__(self):
        self._locks: Dict[Hashable, FifoLock] = {}
        self._registry_lock = threading.Lock()

    def get(self, mentor_id: Hashable) -> FifoLock:
        with self._registry_lock:
            lock = self._locks.get(mentor_id)
            if lock is None:
                lock = FifoLock()
                self._locks[mentor_id] = lock
            return lock

    @contextmanager
    def hold(self, mentor_id: Hashable):
        """Context manager serializing every capacity/rating mutation of one mentor."""
        lock = self.get(mentor_id)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()


# Process-wide registry shared by the capacity and feedback services
mentor_locks = MentorLockRegistry()
