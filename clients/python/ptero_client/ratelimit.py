"""Shared rate limit state and the queue of deferred requests."""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Mapping, Optional

from .errors import SessionClosedError
from .locks import locked
from .models import Request, Response
from .scheduler import ScheduledTask, Scheduler

_log = logging.getLogger("ptero_client")

Dispatch = Callable[[Request], Optional[float]]


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_retry_after(value: Optional[str], now: float) -> Optional[float]:
    """Parse a Retry-After header given as seconds or as an HTTP date."""
    if not value:
        return None
    try:
        seconds = float(value)
        return seconds if seconds >= 0 else None
    except ValueError:
        pass
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, dt.timestamp() - now)


@dataclass
class QueueEntry:
    """A deferred request and the call that performs it once quota is back."""
    request: Request
    dispatch: Dispatch


@dataclass(frozen=True)
class RateLimitSnapshot:
    """Point-in-time view of the limiter."""
    limit: Optional[int]
    remaining: Optional[int]
    retry_after: float
    queued: int


class RateLimiter:
    """Tracks the server quota and defers queueable requests while throttled.

    The limiter is open while no reset deadline lies in the future. A 429
    response, or a response reporting zero remaining quota, sets a deadline
    and the limiter is throttled until it passes. Queued requests are
    drained in arrival order by a single consumer running on the rate limit
    pool; a request that hits the limit again re-arms the timer and stays
    at the head of the queue.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        lock_timeout: float = 10.0,
        default_retry_after: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self._scheduler = scheduler
        self._lock_timeout = lock_timeout
        self._default_retry_after = default_retry_after
        self._clock = clock
        self._wall_clock = wall_clock

        self._lock = threading.Lock()
        self._limit: Optional[int] = None
        self._remaining: Optional[int] = None
        self._reset_at = 0.0

        self._queue_lock = threading.Lock()
        self._queue: deque[QueueEntry] = deque()
        self._timer: Optional[ScheduledTask] = None
        self._current: Optional[QueueEntry] = None
        self._draining = False
        self._closed = False

    # =========================================================================
    # Quota state
    # =========================================================================

    def get_rate_limit(self) -> float:
        """Return the remaining wait in seconds, or 0 if a request may proceed.

        Throttling is driven by responses only; the quota reported by the
        server is not counted down locally.
        """
        with locked(self._lock, self._lock_timeout):
            wait = self._reset_at - self._clock()
            if wait > 0:
                return wait
            if self._remaining == 0:
                # The window has passed, the next response will tell.
                self._remaining = None
            return 0.0

    def handle_response(self, request: Request, response: Response) -> Optional[float]:
        """Learn the quota from response headers.

        Returns:
            Seconds to wait if the response was a 429, otherwise None.
        """
        headers = response.headers
        limit = _parse_int(headers.get("X-RateLimit-Limit"))
        remaining = _parse_int(headers.get("X-RateLimit-Remaining"))

        with locked(self._lock, self._lock_timeout):
            if limit is not None:
                self._limit = max(0, limit)
            if remaining is not None:
                self._remaining = max(0, remaining)

            if response.status == 429:
                wait = self._throttle_duration(headers)
                self._reset_at = max(self._reset_at, self._clock() + wait)
                _log.warning(
                    "Encountered 429 on %s, retrying after %.3f seconds",
                    request.route, wait,
                )
                return wait

            if self._remaining == 0:
                wait = self._throttle_duration(headers)
                self._reset_at = max(self._reset_at, self._clock() + wait)
                _log.debug(
                    "Quota exhausted after %s, throttling for %.3f seconds",
                    request.route, wait,
                )
            return None

    def _throttle_duration(self, headers: Mapping[str, str]) -> float:
        """Length of a throttle window; always positive.

        A hint that is zero or already in the past counts as no hint.
        """
        now = self._wall_clock()
        wait = _parse_retry_after(headers.get("Retry-After"), now)
        if wait is not None and wait > 0:
            return wait
        reset = _parse_int(headers.get("X-RateLimit-Reset"))
        if reset is not None and reset > now:
            return reset - now
        return self._default_retry_after

    def snapshot(self) -> RateLimitSnapshot:
        """Return the current quota state without consuming any of it."""
        with locked(self._lock, self._lock_timeout):
            limit = self._limit
            remaining = self._remaining
            retry_after = max(0.0, self._reset_at - self._clock())
        with locked(self._queue_lock, self._lock_timeout):
            queued = len(self._queue)
        return RateLimitSnapshot(
            limit=limit, remaining=remaining, retry_after=retry_after, queued=queued
        )

    # =========================================================================
    # Queue
    # =========================================================================

    def queue_request(self, request: Request, dispatch: Dispatch) -> None:
        """Append a request and make sure a drain is scheduled.

        Raises:
            SessionClosedError: If the limiter has been shut down.
        """
        with locked(self._queue_lock, self._lock_timeout):
            if self._closed:
                raise SessionClosedError()
            self._queue.append(QueueEntry(request, dispatch))
            if self._draining or self._timer is not None:
                return
            self._arm(self._current_wait())

    def _current_wait(self) -> float:
        with locked(self._lock, self._lock_timeout):
            return max(0.0, self._reset_at - self._clock())

    def _arm(self, delay: float) -> None:
        """Schedule a drain. Must be called with the queue lock held."""
        if delay > 0:
            _log.debug("Rate limited, resuming %d queued requests in %.3f seconds",
                       len(self._queue), delay)
        self._timer = self._scheduler.schedule(delay, self._drain)

    def _drain(self) -> None:
        with locked(self._queue_lock, self._lock_timeout):
            self._timer = None
            if self._closed:
                return
            self._draining = True

        while True:
            with locked(self._queue_lock, self._lock_timeout):
                if self._closed or not self._queue:
                    self._draining = False
                    return
                entry = self._queue[0]
                if entry.request.skipped:
                    self._queue.popleft()
                    continue
                self._current = entry

            try:
                retry_after = entry.dispatch(entry.request)
            except Exception as exc:
                _log.error("Queued request %s failed: %s", entry.request, exc)
                entry.request.handle_response(Response.failed(exc))
                retry_after = None

            with locked(self._queue_lock, self._lock_timeout):
                self._current = None
                closed = self._closed
                if retry_after is not None and not closed:
                    self._draining = False
                    self._arm(retry_after)
                    return
                if self._queue and self._queue[0] is entry:
                    self._queue.popleft()

            if retry_after is not None:
                entry.request.handle_response(Response.failed(SessionClosedError()))

    @property
    def queued(self) -> int:
        with locked(self._queue_lock, self._lock_timeout):
            return len(self._queue)

    def shutdown(self) -> None:
        """Stop draining and fail every request still waiting in the queue."""
        with locked(self._queue_lock, self._lock_timeout):
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            pending = [e for e in self._queue if e is not self._current]
            self._queue.clear()
        for entry in pending:
            if not entry.request.skipped:
                entry.request.handle_response(Response.failed(SessionClosedError()))
