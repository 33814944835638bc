"""Data models for the Pterodactyl client."""

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx

from .errors import ApplicationError, PteroError, RateLimitedError, ServerError, TransportError
from .route import CompiledRoute

_log = logging.getLogger("ptero_client")


@dataclass(frozen=True)
class Response:
    """Outcome of one logical network exchange.

    Exactly one of these holds:

    - ``retry_after`` is set: the request was rate limited and not performed
      (or answered with 429).
    - ``exception`` is set: the exchange failed before a usable response.
    - otherwise ``status`` and ``body`` describe the final HTTP response.

    Attributes:
        status: HTTP status code, if a response was received.
        body: Raw response body.
        headers: Response headers (case-insensitive).
        retry_after: Seconds to wait before the limit window resets.
        exception: Transport or configuration failure.
    """
    status: Optional[int] = None
    body: bytes = b""
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    retry_after: Optional[float] = None
    exception: Optional[BaseException] = None

    @classmethod
    def from_httpx(
        cls, response: httpx.Response, retry_after: Optional[float] = None
    ) -> "Response":
        """Snapshot an httpx response. The body must already be read."""
        return cls(
            status=response.status_code,
            body=response.content,
            headers=httpx.Headers(response.headers),
            retry_after=retry_after,
        )

    @classmethod
    def rate_limited(cls, retry_after: float) -> "Response":
        return cls(retry_after=retry_after)

    @classmethod
    def failed(cls, exception: BaseException) -> "Response":
        return cls(exception=exception)

    @property
    def is_rate_limit(self) -> bool:
        return self.retry_after is not None

    @property
    def is_ok(self) -> bool:
        return (
            self.exception is None
            and self.retry_after is None
            and self.status is not None
            and self.status < 400
        )

    @property
    def is_error(self) -> bool:
        return not self.is_ok

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON. An empty body decodes to None."""
        if not self.body:
            return None
        return json.loads(self.body)

    def error_detail(self) -> str:
        """Best human-readable error message found in the body."""
        try:
            data = self.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            errors = data.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                detail = errors[0].get("detail") or errors[0].get("code")
                if detail:
                    return str(detail)
            if data.get("message"):
                return str(data["message"])
        return self.text or "No response body"

    def to_error(self) -> Optional[BaseException]:
        """Map a failed outcome to the exception delivered to callers.

        Returns:
            The exception for this outcome, or None if the response is a success.
        """
        if self.exception is not None:
            if isinstance(self.exception, PteroError):
                return self.exception
            if isinstance(self.exception, httpx.HTTPError):
                error = TransportError(str(self.exception) or type(self.exception).__name__)
                error.__cause__ = self.exception
                return error
            return self.exception
        if self.retry_after is not None:
            return RateLimitedError(self.retry_after)
        if self.status is None:
            return TransportError("No response received")
        if self.status >= 500:
            return ServerError(self.status, self.error_detail(), body=self.text)
        if self.status >= 400:
            return ApplicationError(self.status, self.error_detail(), body=self.text)
        return None


Transformer = Callable[[Response], Any]
Callback = Callable[[Any], Any]


def json_transformer(response: Response) -> Any:
    """Default transformer: the decoded JSON body, or None for empty bodies."""
    return response.json()


class Request:
    """A compiled route plus optional body, consumed once by the requester.

    The request owns its completion callbacks: ``handle_response`` runs the
    transformer on success and invokes exactly one of ``on_success`` or
    ``on_failure``.
    """

    def __init__(
        self,
        route: CompiledRoute,
        body: Optional[Any] = None,
        *,
        transformer: Optional[Transformer] = None,
        on_success: Callback,
        on_failure: Callback,
        should_queue: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.route = route
        self.body = body
        self.transformer = transformer or json_transformer
        self.on_success = on_success
        self.on_failure = on_failure
        self.should_queue = should_queue
        self._cancel_event = cancel_event
        self._skipped = False

    @property
    def skipped(self) -> bool:
        if self._skipped:
            return True
        return self._cancel_event is not None and self._cancel_event.is_set()

    def cancel(self) -> None:
        """Mark the request as skipped. Pending attempts are not started."""
        self._skipped = True

    def handle_response(self, response: Response) -> None:
        """Deliver a terminal outcome to the completion callbacks."""
        error = response.to_error()
        if error is not None:
            self.on_failure(error)
            return
        try:
            result = self.transformer(response)
        except Exception as exc:
            _log.debug("Transformer failed for %s: %s", self.route, exc)
            self.on_failure(exc)
            return
        self.on_success(result)

    def __repr__(self) -> str:
        return f"Request({self.route}, should_queue={self.should_queue})"


@dataclass
class PaginationMeta:
    """Pagination block of a listing response.

    Attributes:
        total: Total number of items across all pages.
        count: Number of items on this page.
        per_page: Page size.
        current_page: 1-based index of this page.
        total_pages: Number of pages.
    """
    total: int
    count: int
    per_page: int
    current_page: int
    total_pages: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaginationMeta":
        """Parse from the ``meta.pagination`` object of a listing."""
        return cls(
            total=int(data.get("total", 0)),
            count=int(data.get("count", 0)),
            per_page=int(data.get("per_page", 0)),
            current_page=int(data.get("current_page", 1)),
            total_pages=int(data.get("total_pages", 1)),
        )

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


@dataclass
class Page:
    """One page of a listing: its raw items and pagination meta."""
    items: list[dict[str, Any]]
    meta: PaginationMeta

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Page":
        pagination = data.get("meta", {}).get("pagination")
        items = list(data.get("data", []))
        if pagination is None:
            meta = PaginationMeta(
                total=len(items),
                count=len(items),
                per_page=len(items),
                current_page=1,
                total_pages=1,
            )
        else:
            meta = PaginationMeta.from_dict(pagination)
        return cls(items=items, meta=meta)

    @classmethod
    def from_response(cls, response: Response) -> "Page":
        return cls.from_dict(response.json() or {})
