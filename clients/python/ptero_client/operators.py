"""Combinators wrapping an inner action.

Each operator implements both terminal operations in terms of the inner
action's, so composition works the same whether the chain is executed
synchronously or asynchronously.
"""

import logging
import time
from typing import Any, Callable, Optional

from .action import (
    Action,
    ErrorPredicate,
    FailureCallback,
    SuccessCallback,
    wrap_error,
)
from .errors import CombinatorError, PteroError, SessionClosedError

_log = logging.getLogger("ptero_client")


class ActionOperator(Action):
    """Base for actions that wrap another action."""

    def __init__(self, action: Action):
        super().__init__(action.session)
        self.action = action


class MapAction(ActionOperator):
    def __init__(self, action: Action, fn: Callable[[Any], Any]):
        super().__init__(action)
        self._fn = fn

    def _apply(self, value: Any) -> Any:
        try:
            return self._fn(value)
        except PteroError:
            raise
        except Exception as exc:
            raise wrap_error(exc, "map failed")

    def execute(self, should_queue: bool = True) -> Any:
        return self._apply(self.action.execute(should_queue))

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        def on_success(value: Any) -> None:
            try:
                mapped = self._apply(value)
            except Exception as exc:
                self._do_failure(failure, exc)
                return
            self._do_success(success, mapped)

        self.action.execute_async(on_success, failure, should_queue)


class FlatMapAction(ActionOperator):
    def __init__(self, action: Action, fn: Callable[[Any], Action]):
        super().__init__(action)
        self._fn = fn

    def _then(self, value: Any) -> Action:
        try:
            then = self._fn(value)
        except PteroError:
            raise
        except Exception as exc:
            raise wrap_error(exc, "flat_map failed")
        if then is None:
            raise CombinatorError("flat_map operand is None")
        return then

    def execute(self, should_queue: bool = True) -> Any:
        return self._then(self.action.execute(should_queue)).execute(should_queue)

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        def on_success(value: Any) -> None:
            try:
                then = self._then(value)
            except Exception as exc:
                self._do_failure(failure, exc)
                return
            then.execute_async(success, failure, should_queue)

        self.action.execute_async(on_success, failure, should_queue)


class FlatMapErrorAction(ActionOperator):
    def __init__(
        self,
        action: Action,
        predicate: Optional[ErrorPredicate],
        fn: Callable[[BaseException], Action],
    ):
        super().__init__(action)
        self._predicate = predicate
        self._fn = fn

    def _recover(self, error: BaseException) -> Optional[Action]:
        """Return the recovery action, or None if ``error`` should propagate."""
        try:
            if self._predicate is not None and not self._predicate(error):
                return None
            then = self._fn(error)
        except Exception as exc:
            wrapped = CombinatorError(f"flat_map_error recovery failed: {exc!r}", original=error)
            wrapped.__cause__ = exc
            raise wrapped
        if then is None:
            wrapped = CombinatorError("flat_map_error operand is None", original=error)
            wrapped.__cause__ = error
            raise wrapped
        return then

    def execute(self, should_queue: bool = True) -> Any:
        try:
            return self.action.execute(should_queue)
        except Exception as error:
            then = self._recover(error)
            if then is None:
                raise
        return then.execute(should_queue)

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        def on_failure(error: BaseException) -> None:
            try:
                then = self._recover(error)
            except CombinatorError as exc:
                self._do_failure(failure, exc)
                return
            if then is None:
                self._do_failure(failure, error)
            else:
                then.execute_async(success, failure, should_queue)

        self.action.execute_async(success, on_failure, should_queue)


class DelayAction(ActionOperator):
    def __init__(self, action: Action, delay: float):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        super().__init__(action)
        self.delay_seconds = delay

    def execute(self, should_queue: bool = True) -> Any:
        result = self.action.execute(should_queue)
        time.sleep(self.delay_seconds)
        return result

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        session = self.session

        def closed() -> None:
            session.run_callback(self._do_failure, failure, SessionClosedError())

        def on_success(value: Any) -> None:
            try:
                session.scheduler.schedule(
                    self.delay_seconds, self._do_success, success, value, on_cancel=closed
                )
            except SessionClosedError as exc:
                self._do_failure(failure, exc)

        self.action.execute_async(on_success, failure, should_queue)
