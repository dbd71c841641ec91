"""Per-account locks for serializing postings."""

import logging
import threading
import time
import weakref
from contextlib import contextmanager
from typing import Iterable, Iterator

from ledgerkit.domain.errors import BusyError

logger = logging.getLogger(__name__)


class AccountLockManager:
    """Exclusive locks keyed by account ID.

    Locks are always taken in ascending account ID order, so two postings
    that share several accounts can never wait on each other in a cycle.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, account_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, account_ids: Iterable[int], timeout: float) -> Iterator[None]:
        """Hold the locks of all given accounts for the duration of the block.

        Args:
            account_ids: Accounts to lock (duplicates are ignored)
            timeout: Seconds to wait for the whole set before giving up

        Raises:
            BusyError: If the locks could not all be acquired in time
        """
        deadline = time.monotonic() + timeout
        acquired: list[threading.Lock] = []
        try:
            for account_id in sorted(set(account_ids)):
                lock = self._lock_for(account_id)
                remaining = max(deadline - time.monotonic(), 0)
                if not lock.acquire(timeout=remaining):
                    logger.warning(
                        "Timed out waiting for account lock",
                        extra={"account_id": account_id, "timeout": timeout},
                    )
                    raise BusyError(f"Account {account_id} is busy, try again")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


_managers: "weakref.WeakKeyDictionary[object, AccountLockManager]" = weakref.WeakKeyDictionary()
_managers_guard = threading.Lock()


def lock_manager_for(db: object) -> AccountLockManager:
    """Return the lock manager shared by every service using the same store."""
    with _managers_guard:
        manager = _managers.get(db)
        if manager is None:
            manager = _managers[db] = AccountLockManager()
        return manager
