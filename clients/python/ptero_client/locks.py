"""Bounded-wait locking for state shared between pool threads."""

import threading
from contextlib import contextmanager
from typing import Iterator

from .errors import LockTimeoutError


@contextmanager
def locked(lock: "threading.Lock", timeout: float) -> Iterator[None]:
    """Hold ``lock`` for the body of the block.

    A lock that cannot be taken within ``timeout`` seconds means another
    thread is stuck while holding it, so this raises instead of waiting
    forever.

    Raises:
        LockTimeoutError: If the lock was not acquired in time.
    """
    if not lock.acquire(blocking=False) and not lock.acquire(timeout=timeout):
        raise LockTimeoutError(timeout)
    try:
        yield
    finally:
        lock.release()
