"""Delayed execution on a thread pool."""

import logging
import threading
from concurrent.futures import Executor
from typing import Any, Callable, Optional, Union

from .errors import SessionClosedError
from .locks import locked

_log = logging.getLogger("ptero_client")


class ScheduledTask:
    """Handle for a scheduled call. ``cancel()`` prevents it from starting.

    A task either runs or is abandoned, never both. ``on_cancel`` is called
    once if the task is abandoned, whether by ``cancel()``, by scheduler
    shutdown or because the pool no longer accepts work.
    """

    def __init__(
        self,
        scheduler: "Scheduler",
        fn: Callable[..., Any],
        args: tuple,
        on_cancel: Optional[Callable[[], Any]] = None,
    ):
        self._scheduler = scheduler
        self._fn = fn
        self._args = args
        self._on_cancel = on_cancel
        self._cancelled = threading.Event()
        self._settled = False
        self._state_lock = threading.Lock()
        self._timer: Union[threading.Timer, None] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()
        self._scheduler._forget(self)
        self._abandon()

    def _settle(self) -> bool:
        """Claim the outcome of this task. Only the first caller gets True."""
        with self._state_lock:
            if self._settled:
                return False
            self._settled = True
            return True

    def _abandon(self) -> None:
        if not self._settle() or self._on_cancel is None:
            return
        try:
            self._on_cancel()
        except Exception:
            _log.exception("Cancel hook of scheduled task %r raised", self._fn)

    def _fire(self) -> None:
        self._scheduler._forget(self)
        if self._cancelled.is_set():
            return
        try:
            self._scheduler._pool.submit(self._run)
        except RuntimeError:
            _log.debug("Dropping scheduled task %r, pool is shut down", self._fn)
            self._abandon()

    def _run(self) -> None:
        if self._cancelled.is_set() or not self._settle():
            return
        try:
            self._fn(*self._args)
        except Exception:
            _log.exception("Scheduled task %r raised", self._fn)


class Scheduler:
    """Runs callables on an executor after a delay.

    Timers only wait; the work itself always runs on the executor, so a
    slow task never holds up other timers.
    """

    def __init__(self, pool: Executor, lock_timeout: float = 10.0):
        self._pool = pool
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._pending: set[ScheduledTask] = set()
        self._closed = False

    def schedule(
        self,
        delay: float,
        fn: Callable[..., Any],
        *args: Any,
        on_cancel: Optional[Callable[[], Any]] = None,
    ) -> ScheduledTask:
        """Run ``fn(*args)`` on the pool after ``delay`` seconds.

        Args:
            delay: Seconds to wait; zero or less submits right away.
            fn: The callable to run.
            on_cancel: Called instead of ``fn`` if the task is cancelled
                or dropped at shutdown.

        Raises:
            SessionClosedError: If the scheduler has been shut down.
        """
        task = ScheduledTask(self, fn, args, on_cancel)
        with locked(self._lock, self._lock_timeout):
            if self._closed:
                raise SessionClosedError()
            if delay <= 0:
                try:
                    self._pool.submit(task._run)
                except RuntimeError as exc:
                    raise SessionClosedError() from exc
                return task
            task._timer = threading.Timer(delay, task._fire)
            task._timer.daemon = True
            self._pending.add(task)
        task._timer.start()
        return task

    def _forget(self, task: ScheduledTask) -> None:
        with locked(self._lock, self._lock_timeout):
            self._pending.discard(task)

    @property
    def pending(self) -> int:
        """Number of timers that have not fired yet."""
        with locked(self._lock, self._lock_timeout):
            return len(self._pending)

    def shutdown(self) -> None:
        """Cancel every pending timer and refuse new work.

        Cancelled tasks run their ``on_cancel`` hook.
        """
        with locked(self._lock, self._lock_timeout):
            self._closed = True
            pending = list(self._pending)
        for task in pending:
            task.cancel()
