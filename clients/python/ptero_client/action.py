"""Deferred, composable units of work."""

import abc
import logging
import threading
import time
from concurrent.futures import CancelledError, Future
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar, Union

from .errors import CombinatorError, PteroError, RateLimitedError, SessionClosedError
from .models import Request, Response, Transformer
from .route import CompiledRoute

if TYPE_CHECKING:
    from .session import Session

_log = logging.getLogger("ptero_client")

T = TypeVar("T")
U = TypeVar("U")

SuccessCallback = Callable[[Any], Any]
FailureCallback = Callable[[BaseException], Any]
ErrorPredicate = Callable[[BaseException], bool]


def _log_success(value: Any) -> None:
    _log.debug("Action completed without a success callback")


def _log_failure(error: BaseException) -> None:
    if isinstance(error, RateLimitedError):
        _log.error("Action was rate limited and no failure callback was given: %s", error)
    else:
        _log.error(
            "Action failed and no failure callback was given: %s",
            error,
            exc_info=(type(error), error, error.__traceback__),
        )


def wrap_error(error: BaseException, message: str) -> BaseException:
    """Wrap an exception raised by user code in a CombinatorError.

    Client errors pass through untouched.
    """
    if isinstance(error, PteroError):
        return error
    wrapped = CombinatorError(f"{message}: {error!r}")
    wrapped.__cause__ = error
    return wrapped


class Action(abc.ABC, Generic[T]):
    """A deferred unit of work yielding ``T``.

    Nothing happens until ``execute`` (blocking) or ``execute_async``
    (callbacks) is called; every call runs the work again. Combinators
    return new actions wrapping this one.

    Example:
        >>> action = session.action(Route("GET", "application/users/{id}").compile(5))
        >>> name = action.map(lambda user: user["attributes"]["username"]).execute()
        >>> action.execute_async(print, lambda error: print(f"failed: {error}"))
    """

    _default_success: SuccessCallback = staticmethod(_log_success)
    _default_failure: FailureCallback = staticmethod(_log_failure)

    def __init__(self, session: "Session"):
        self._session = session

    @property
    def session(self) -> "Session":
        return self._session

    # =========================================================================
    # Default callbacks
    # =========================================================================

    @classmethod
    def set_default_success(cls, callback: Optional[SuccessCallback]) -> None:
        """Replace the success handler used when ``execute_async`` gets none."""
        Action._default_success = staticmethod(callback or _log_success)

    @classmethod
    def set_default_failure(cls, callback: Optional[FailureCallback]) -> None:
        """Replace the failure handler used when ``execute_async`` gets none."""
        Action._default_failure = staticmethod(callback or _log_failure)

    @staticmethod
    def _do_success(callback: Optional[SuccessCallback], value: Any) -> None:
        handler = callback if callback is not None else Action._default_success
        try:
            handler(value)
        except Exception:
            _log.exception("Encountered exception in success callback")

    @staticmethod
    def _do_failure(callback: Optional[FailureCallback], error: BaseException) -> None:
        handler = callback if callback is not None else Action._default_failure
        try:
            handler(error)
        except Exception:
            _log.exception("Encountered exception in failure callback")

    # =========================================================================
    # Terminal operations
    # =========================================================================

    @abc.abstractmethod
    def execute(self, should_queue: bool = True) -> T:
        """Run the action on the calling thread and return its result.

        Args:
            should_queue: Wait out an active rate limit instead of failing.

        Raises:
            RateLimitedError: If rate limited and ``should_queue`` is False.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        """Run the action in the background.

        Exactly one of ``success`` or ``failure`` is invoked. Errors are
        never raised to the caller of this method.
        """
        raise NotImplementedError

    def submit(self, should_queue: bool = True) -> "Future[T]":
        """Run the action in the background and expose the outcome as a Future."""
        future: Future = Future()
        future.set_running_or_notify_cancel()
        self.execute_async(future.set_result, future.set_exception, should_queue)
        return future

    # =========================================================================
    # Combinators
    # =========================================================================

    def map(self, fn: Callable[[T], U]) -> "Action[U]":
        """Transform the successful result. Failures pass through."""
        from .operators import MapAction

        return MapAction(self, fn)

    def flat_map(self, fn: Callable[[T], "Action[U]"]) -> "Action[U]":
        """Continue with the action produced from the successful result."""
        from .operators import FlatMapAction

        return FlatMapAction(self, fn)

    def flat_map_error(
        self,
        predicate: Optional[ErrorPredicate],
        fn: Callable[[BaseException], "Action[T]"],
    ) -> "Action[T]":
        """Recover from a failure matching ``predicate`` with another action.

        Args:
            predicate: Which failures to recover from; None matches all.
            fn: Produces the recovery action from the failure.
        """
        from .operators import FlatMapErrorAction

        return FlatMapErrorAction(self, predicate, fn)

    def map_error(
        self,
        predicate: Optional[ErrorPredicate],
        fn: Callable[[BaseException], T],
    ) -> "Action[T]":
        """Recover from a failure matching ``predicate`` with a plain value."""
        return self.flat_map_error(
            predicate, lambda error: CompletedAction(self._session, fn(error))
        )

    def delay(self, delay: Union[float, timedelta]) -> "Action[T]":
        """Hold back the result for ``delay`` (seconds or timedelta) after completion."""
        from .operators import DelayAction

        if isinstance(delay, timedelta):
            delay = delay.total_seconds()
        return DelayAction(self, delay)

    # =========================================================================
    # Factories
    # =========================================================================

    @staticmethod
    def on_request_execute(
        session: "Session",
        route: CompiledRoute,
        transformer: Optional[Transformer] = None,
        body: Optional[Any] = None,
    ) -> "RequestAction":
        """Action performing one HTTP request, its response mapped by ``transformer``."""
        return RequestAction(session, route, transformer=transformer, body=body)

    @staticmethod
    def on_execute(session: "Session", supplier: Callable[[], T]) -> "SupplierAction[T]":
        """Action running an arbitrary computation, without a request of its own."""
        return SupplierAction(session, supplier)

    @staticmethod
    def completed(session: "Session", value: T) -> "CompletedAction[T]":
        return CompletedAction(session, value)

    @staticmethod
    def failed(session: "Session", error: BaseException) -> "CompletedAction[Any]":
        return CompletedAction(session, error=error)


class RequestAction(Action[T]):
    """Performs a single request through the session's requester."""

    def __init__(
        self,
        session: "Session",
        route: CompiledRoute,
        *,
        transformer: Optional[Transformer] = None,
        body: Optional[Any] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        super().__init__(session)
        self.route = route
        self.transformer = transformer
        self.body = body
        self.cancel_event = cancel_event

    def _request(
        self,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        should_queue: bool,
    ) -> Request:
        return Request(
            self.route,
            self.body,
            transformer=self.transformer,
            on_success=on_success,
            on_failure=on_failure,
            should_queue=should_queue,
            cancel_event=self.cancel_event,
        )

    def execute(self, should_queue: bool = True) -> T:
        if self._session.closed:
            raise SessionClosedError()
        future: Future = Future()
        future.set_running_or_notify_cancel()
        request = self._request(future.set_result, future.set_exception, should_queue)

        while True:
            retry_after = self._session.requester.execute(request)
            if retry_after is None:
                break
            if not should_queue:
                raise RateLimitedError(retry_after)
            _log.debug("Waiting %.3f seconds for rate limit on %s", retry_after, self.route)
            time.sleep(retry_after)

        if not future.done():
            raise CancelledError(f"Request {self.route} was skipped")
        return future.result()

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        session = self._session
        request = self._request(
            lambda value: session.run_callback(self._do_success, success, value),
            lambda error: session.run_callback(self._do_failure, failure, error),
            should_queue,
        )
        if session.closed:
            self._do_failure(failure, SessionClosedError())
            return
        try:
            session.action_pool.submit(self._dispatch, request)
        except RuntimeError:
            self._do_failure(failure, SessionClosedError())

    def _dispatch(self, request: Request) -> None:
        try:
            self._session.requester.request(request)
        except Exception as exc:
            request.handle_response(Response.failed(exc))

    def __repr__(self) -> str:
        return f"RequestAction({self.route})"


class SupplierAction(Action[T]):
    """Wraps a computation as an action, for composing other actions."""

    def __init__(self, session: "Session", supplier: Callable[[], T]):
        super().__init__(session)
        self._supplier = supplier

    def _run(self) -> T:
        try:
            return self._supplier()
        except PteroError:
            raise
        except Exception as exc:
            raise wrap_error(exc, "on_execute supplier failed")

    def execute(self, should_queue: bool = True) -> T:
        return self._run()

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        try:
            self._session.supplier_pool.submit(self._run_async, success, failure)
        except RuntimeError:
            self._do_failure(failure, SessionClosedError())

    def _run_async(
        self, success: Optional[SuccessCallback], failure: Optional[FailureCallback]
    ) -> None:
        try:
            value = self._run()
        except Exception as exc:
            self._session.run_callback(self._do_failure, failure, exc)
            return
        self._session.run_callback(self._do_success, success, value)


class CompletedAction(Action[T]):
    """An action whose outcome is already known; it never touches the network."""

    def __init__(
        self,
        session: "Session",
        value: Optional[T] = None,
        error: Optional[BaseException] = None,
    ):
        super().__init__(session)
        self.value = value
        self.error = error

    def execute(self, should_queue: bool = True) -> T:
        if self.error is not None:
            raise self.error
        return self.value

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        if self.error is None:
            self._do_success(success, self.value)
        else:
            self._do_failure(failure, self.error)

    def map(self, fn: Callable[[T], U]) -> "Action[U]":
        """Apply ``fn`` right away; the result is another completed action."""
        if self.error is not None:
            return CompletedAction(self._session, error=self.error)
        try:
            return CompletedAction(self._session, fn(self.value))
        except Exception as exc:
            return CompletedAction(self._session, error=wrap_error(exc, "map failed"))
